"""
Query interpreter tests: path resolution, each operator, $or, and sorting.
"""
import re
from datetime import date, datetime, timedelta, timezone

import pytest

from opportunity_hub.core.errors import QueryError, UnsupportedOperatorError
from opportunity_hub.query.interpreter import (
    MISSING,
    Eq,
    Filter,
    Gte,
    Or,
    Regex,
    as_datetime,
    compare,
    matches,
    parse_filter,
    resolve_path,
    sort_records,
    with_default_regex_options,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

RECORD = {
    "title": "HackMIT 2026",
    "is_active": True,
    "location": {"city": "Cambridge", "state": "MA"},
    "dates": {"end_date": "2026-03-10T00:00:00+00:00"},
    "skills_required": ["Python", "React", "Node.js"],
    "team_size": {"max": 4},
}


class TestResolvePath:
    def test_nested(self):
        assert resolve_path(RECORD, "location.city") == "Cambridge"

    def test_missing_segment_is_sentinel(self):
        assert resolve_path(RECORD, "location.zip") is MISSING
        assert resolve_path(RECORD, "title.length") is MISSING
        assert resolve_path({}, "a.b.c") is MISSING

    def test_sentinel_is_falsy_singleton(self):
        assert not MISSING
        assert type(MISSING)() is MISSING


class TestAsDatetime:
    def test_iso_string_with_zulu(self):
        assert as_datetime("2026-03-10T00:00:00Z") == datetime(2026, 3, 10, tzinfo=timezone.utc)

    def test_naive_values_are_utc(self):
        assert as_datetime(datetime(2026, 3, 10)) == datetime(2026, 3, 10, tzinfo=timezone.utc)
        assert as_datetime(date(2026, 3, 10)) == datetime(2026, 3, 10, tzinfo=timezone.utc)

    def test_plain_text_is_not_a_date(self):
        assert as_datetime("Cambridge") is None
        assert as_datetime("2026") is None
        assert as_datetime(12) is None


class TestParse:
    def test_tree_shape(self):
        flt = parse_filter({"title": "x", "dates.end_date": {"$gte": NOW}, "$or": [{"a": 1}]})
        assert flt.conditions[0] == Eq("title", "x")
        assert flt.conditions[1] == Gte("dates.end_date", NOW)
        assert isinstance(flt.conditions[2], Or)

    def test_regex_defaults_to_case_insensitive(self):
        (cond,) = parse_filter({"title": {"$regex": "hack"}}).conditions
        assert isinstance(cond, Regex)
        assert cond.pattern.flags & re.IGNORECASE

    def test_unknown_operator(self):
        with pytest.raises(UnsupportedOperatorError) as exc:
            parse_filter({"team_size.max": {"$gt": 2}})
        assert exc.value.operator == "$gt"

    def test_unknown_top_level_operator(self):
        with pytest.raises(UnsupportedOperatorError):
            parse_filter({"$and": [{"a": 1}]})

    def test_empty_or_rejected(self):
        with pytest.raises(QueryError):
            parse_filter({"$or": []})

    def test_mixed_operator_and_field_keys_rejected(self):
        with pytest.raises(QueryError):
            parse_filter({"location": {"$regex": "x", "city": "y"}})

    def test_parsed_filter_passes_through(self):
        flt = Filter((Eq("title", "x"),))
        assert parse_filter(flt) is flt


class TestMatches:
    def test_empty_filter_matches_everything(self):
        assert matches(RECORD, {})
        assert matches(RECORD, None)

    def test_equality_nested_and_boolean(self):
        assert matches(RECORD, {"location.city": "Cambridge", "is_active": True})
        assert not matches(RECORD, {"is_active": 1})

    def test_equality_missing_field_matches_none(self):
        assert matches(RECORD, {"location.zip": None})
        assert not matches(RECORD, {"location.zip": "02139"})

    def test_equality_against_array_contains(self):
        assert matches(RECORD, {"skills_required": "React"})
        assert matches(RECORD, {"skills_required": ["Python", "React", "Node.js"]})
        assert not matches(RECORD, {"skills_required": "Go"})

    def test_equality_coerces_dates(self):
        assert matches(RECORD, {"dates.end_date": datetime(2026, 3, 10, tzinfo=timezone.utc)})

    def test_regex_substring_case_insensitive(self):
        assert matches(RECORD, {"title": {"$regex": "hackmit"}})
        assert not matches(RECORD, {"title": {"$regex": "hackmit", "$options": ""}})

    def test_regex_on_missing_field(self):
        assert not matches(RECORD, {"organizer": {"$regex": "mit"}})

    def test_range_on_iso_string_dates(self):
        assert matches(RECORD, {"dates.end_date": {"$gte": NOW}})
        assert not matches(RECORD, {"dates.end_date": {"$lt": NOW}})
        assert matches(RECORD, {"dates.end_date": {"$gte": NOW, "$lt": NOW + timedelta(days=30)}})

    def test_range_on_numbers(self):
        assert matches(RECORD, {"team_size.max": {"$gte": 4}})
        assert not matches(RECORD, {"team_size.max": {"$lt": 4}})

    def test_range_never_matches_missing_or_mismatched_types(self):
        assert not matches(RECORD, {"dates.start_date": {"$lt": NOW}})
        assert not matches(RECORD, {"team_size.max": {"$gte": "3"}})

    def test_in_scalar_membership(self):
        assert matches(RECORD, {"location.state": {"$in": ["NY", "MA"]}})
        assert not matches(RECORD, {"location.state": {"$in": ["NY", "CA"]}})

    def test_in_array_with_patterns(self):
        assert matches(RECORD, {"skills_required": {"$in": [re.compile("^node", re.I)]}})
        assert matches(RECORD, {"skills_required": {"$in": ["Go", "Python"]}})
        assert not matches(RECORD, {"skills_required": {"$in": [re.compile("rust", re.I)]}})

    def test_in_missing_field_only_matches_none(self):
        assert matches(RECORD, {"organizer": {"$in": [None, "MLH"]}})
        assert not matches(RECORD, {"organizer": {"$in": ["MLH"]}})

    def test_or_combined_with_implicit_and(self):
        flt = {
            "is_active": True,
            "$or": [{"location.city": "Boston"}, {"location.state": "MA"}],
        }
        assert matches(RECORD, flt)
        assert not matches({**RECORD, "is_active": False}, flt)

    def test_nested_or(self):
        flt = {
            "$or": [{"location.city": "Boston", "$or": [{"title": {"$regex": "mit"}}]},
                    {"location.city": "Cambridge", "$or": [{"title": {"$regex": "mit"}}]}],
        }
        assert matches(RECORD, flt)

    def test_deterministic(self):
        flt = {"skills_required": {"$in": [re.compile("py", re.I)]}, "title": {"$regex": "2026"}}
        assert all(matches(RECORD, flt) for _ in range(5))


class TestDefaultRegexOptions:
    def test_adds_options_recursively(self):
        raw = {"$or": [{"title": {"$regex": "a"}}, {"city": {"$regex": "b", "$options": ""}}]}
        out = with_default_regex_options(raw)
        assert out["$or"][0]["title"] == {"$regex": "a", "$options": "i"}
        assert out["$or"][1]["city"] == {"$regex": "b", "$options": ""}
        assert "$options" not in raw["$or"][0]["title"]


class TestSorting:
    def test_cross_type_rank(self):
        assert compare({}, "x") < compare({"x": 1}, "x") < compare({"x": "a"}, "x")
        assert compare({"x": "a"}, "x") < compare({"x": True}, "x") < compare({"x": NOW}, "x")

    def test_date_strings_sort_as_dates(self):
        assert compare({"d": "2026-03-10T00:00:00+00:00"}, "d") == compare(
            {"d": datetime(2026, 3, 10, tzinfo=timezone.utc)}, "d"
        )

    def test_stable_multi_key(self):
        rows = [
            {"n": 1, "city": "B", "title": "first"},
            {"n": 2, "city": "A", "title": "second"},
            {"n": 3, "city": "B", "title": "third"},
            {"n": 4, "city": "A", "title": "fourth"},
        ]
        ordered = sort_records(rows, {"city": 1})
        assert [r["n"] for r in ordered] == [2, 4, 1, 3]

        ordered = sort_records(rows, [("city", -1), ("title", 1)])
        assert [r["n"] for r in ordered] == [1, 3, 4, 2]

    def test_descending_keeps_ties_in_insertion_order(self):
        rows = [{"n": 1, "k": 1}, {"n": 2, "k": 1}, {"n": 3, "k": 2}]
        assert [r["n"] for r in sort_records(rows, {"k": -1})] == [3, 1, 2]

    def test_bad_direction(self):
        with pytest.raises(QueryError):
            sort_records([{"a": 1}], {"a": 0})
