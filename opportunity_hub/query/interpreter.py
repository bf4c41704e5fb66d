# opportunity_hub/query/interpreter.py
"""
In-memory evaluation of Mongo-style filters.

The JSON file collection uses this module to answer the same filters the
Mongo collection hands to the database, so the supported operator set is
deliberately small:

    {"title": "HackX"}                                   equality
    {"dates.end_date": {"$gte": now, "$lt": later}}      range (dates coerced)
    {"location.city": {"$regex": "boston", "$options": "i"}}
    {"skills_required": {"$in": [re.compile("py", re.I), "Go"]}}
    {"$or": [{...}, {...}]}                              any branch

Raw dict filters are parsed into a small tree of condition objects
(`Eq`, `Regex`, `Gte`, `Lt`, `In`, `Or`) before evaluation. Field paths are
dot-separated and resolved with `resolve_path`, which never raises and
returns `MISSING` when a segment is absent.
"""
from __future__ import annotations

import operator
import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from opportunity_hub.core.errors import QueryError, UnsupportedOperatorError


class _Missing:
    """Sentinel for a field path that does not resolve."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()

_REGEX_FLAGS = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "x": re.VERBOSE,
}

# Regex filters without explicit options are case-insensitive.
DEFAULT_REGEX_OPTIONS = "i"

_ISO_DATE_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}"
    r"(?:[T ]\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?(?:Z|[+-]\d{2}:?\d{2})?)?$"
)


# ------------------------------------------------------------------------------
# Condition tree
# ------------------------------------------------------------------------------

@dataclass(frozen=True)
class Eq:
    path: str
    value: Any


@dataclass(frozen=True)
class Regex:
    path: str
    pattern: "re.Pattern[str]"


@dataclass(frozen=True)
class Gte:
    path: str
    value: Any


@dataclass(frozen=True)
class Lt:
    path: str
    value: Any


@dataclass(frozen=True)
class In:
    path: str
    values: Tuple[Any, ...]


@dataclass(frozen=True)
class Or:
    branches: Tuple["Filter", ...]


Condition = Union[Eq, Regex, Gte, Lt, In, Or]


@dataclass(frozen=True)
class Filter:
    """Implicit AND of every condition."""
    conditions: Tuple[Condition, ...] = ()


FilterLike = Union[Filter, Mapping[str, Any], None]


# ------------------------------------------------------------------------------
# Path resolution and value coercion
# ------------------------------------------------------------------------------

def resolve_path(record: Any, path: str) -> Any:
    """Walk a dot-separated path through nested dicts; MISSING if any hop is absent."""
    current = record
    for segment in path.split("."):
        if isinstance(current, Mapping) and segment in current:
            current = current[segment]
        else:
            return MISSING
    return current


def as_datetime(value: Any) -> Optional[datetime]:
    """Return an aware UTC datetime for date-like values (datetime, date, ISO string)."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, str) and _ISO_DATE_RE.match(value.strip()):
        text = value.strip().replace(" ", "T", 1)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def values_equal(a: Any, b: Any) -> bool:
    """Strict equality, except that two date-like operands compare as instants."""
    da, db = as_datetime(a), as_datetime(b)
    if da is not None and db is not None:
        return da == db
    if isinstance(a, bool) or isinstance(b, bool):
        return type(a) is type(b) and a == b
    if _is_number(a) and _is_number(b):
        return a == b
    if isinstance(a, list) and isinstance(b, list):
        return len(a) == len(b) and all(values_equal(x, y) for x, y in zip(a, b))
    if isinstance(a, Mapping) and isinstance(b, Mapping):
        return a.keys() == b.keys() and all(values_equal(a[k], b[k]) for k in a)
    return type(a) is type(b) and a == b


# ------------------------------------------------------------------------------
# Parsing
# ------------------------------------------------------------------------------

def compile_regex(pattern: Any, options: Optional[str] = None) -> "re.Pattern[str]":
    if options is None:
        options = DEFAULT_REGEX_OPTIONS
    flags = 0
    for letter in options:
        if letter not in _REGEX_FLAGS:
            raise QueryError(f"unsupported $options flag: {letter!r}")
        flags |= _REGEX_FLAGS[letter]
    if isinstance(pattern, re.Pattern):
        return re.compile(pattern.pattern, pattern.flags | flags)
    if not isinstance(pattern, str):
        raise QueryError(f"$regex expects a string, got {type(pattern).__name__}")
    try:
        return re.compile(pattern, flags)
    except re.error as exc:
        raise QueryError(f"invalid $regex {pattern!r}: {exc}") from exc


def _is_operator_object(value: Any) -> bool:
    if not isinstance(value, Mapping) or not value:
        return False
    dollar = [k.startswith("$") for k in value]
    if all(dollar):
        return True
    if any(dollar):
        raise QueryError(f"cannot mix operators and fields: {sorted(value)}")
    return False


def _parse_operators(path: str, ops: Mapping[str, Any]) -> List[Condition]:
    conditions: List[Condition] = []
    for op, operand in ops.items():
        if op == "$regex":
            conditions.append(Regex(path, compile_regex(operand, ops.get("$options"))))
        elif op == "$options":
            if "$regex" not in ops:
                raise QueryError(f"$options without $regex on {path!r}")
        elif op == "$gte":
            conditions.append(Gte(path, operand))
        elif op == "$lt":
            conditions.append(Lt(path, operand))
        elif op == "$in":
            if not isinstance(operand, (list, tuple, set, frozenset)):
                raise QueryError(f"$in on {path!r} needs a list")
            conditions.append(In(path, tuple(operand)))
        else:
            raise UnsupportedOperatorError(op)
    return conditions


def parse_filter(raw: FilterLike) -> Filter:
    """Turn a Mongo-style dict into a `Filter`; already-parsed filters pass through."""
    if raw is None:
        return Filter()
    if isinstance(raw, Filter):
        return raw
    if not isinstance(raw, Mapping):
        raise QueryError(f"filter must be a mapping, got {type(raw).__name__}")

    conditions: List[Condition] = []
    for key, value in raw.items():
        if key == "$or":
            if not isinstance(value, (list, tuple)) or not value:
                raise QueryError("$or needs a non-empty list of filters")
            conditions.append(Or(tuple(parse_filter(branch) for branch in value)))
        elif key.startswith("$"):
            raise UnsupportedOperatorError(key)
        elif _is_operator_object(value):
            conditions.extend(_parse_operators(key, value))
        else:
            conditions.append(Eq(key, value))
    return Filter(tuple(conditions))


def with_default_regex_options(raw: Any) -> Any:
    """
    Copy of a raw filter where every string `$regex` carries explicit `$options`.
    The database would otherwise match case-sensitively.
    """
    if isinstance(raw, Mapping):
        out: Dict[str, Any] = {k: with_default_regex_options(v) for k, v in raw.items()}
        if isinstance(out.get("$regex"), str) and "$options" not in out:
            out["$options"] = DEFAULT_REGEX_OPTIONS
        return out
    if isinstance(raw, list):
        return [with_default_regex_options(v) for v in raw]
    return raw


# ------------------------------------------------------------------------------
# Evaluation
# ------------------------------------------------------------------------------

def _match_eq(value: Any, expected: Any) -> bool:
    if value is MISSING:
        return expected is None
    if isinstance(value, list):
        return values_equal(value, expected) or any(values_equal(v, expected) for v in value)
    return values_equal(value, expected)


def _match_regex(value: Any, pattern: "re.Pattern[str]") -> bool:
    if isinstance(value, str):
        return pattern.search(value) is not None
    if isinstance(value, list):
        return any(isinstance(v, str) and pattern.search(v) is not None for v in value)
    return False


def _compare(value: Any, operand: Any, op: Callable[[Any, Any], bool]) -> bool:
    if isinstance(value, list):
        return any(_compare(v, operand, op) for v in value)
    if value is MISSING or value is None or operand is None:
        return False
    dv, do = as_datetime(value), as_datetime(operand)
    if dv is not None and do is not None:
        return op(dv, do)
    if _is_number(value) and _is_number(operand):
        return op(value, operand)
    if isinstance(value, str) and isinstance(operand, str):
        return op(value, operand)
    return False


def _in_element(value: Any, candidate: Any) -> bool:
    if isinstance(candidate, re.Pattern):
        return isinstance(value, str) and candidate.search(value) is not None
    return values_equal(value, candidate)


def _match_in(value: Any, candidates: Sequence[Any]) -> bool:
    if isinstance(value, list):
        # array field: any element against any candidate, or the whole array
        if any(_in_element(v, c) for v in value for c in candidates):
            return True
        return any(isinstance(c, list) and values_equal(value, c) for c in candidates)
    if value is MISSING:
        return any(c is None for c in candidates)
    return any(_in_element(value, c) for c in candidates)


def _evaluate(record: Mapping[str, Any], cond: Condition) -> bool:
    if isinstance(cond, Or):
        return any(_matches_parsed(record, branch) for branch in cond.branches)

    value = resolve_path(record, cond.path)
    if isinstance(cond, Eq):
        return _match_eq(value, cond.value)
    if isinstance(cond, Regex):
        return _match_regex(value, cond.pattern)
    if isinstance(cond, Gte):
        return _compare(value, cond.value, operator.ge)
    if isinstance(cond, Lt):
        return _compare(value, cond.value, operator.lt)
    if isinstance(cond, In):
        return _match_in(value, cond.values)
    raise QueryError(f"unknown condition: {cond!r}")


def _matches_parsed(record: Mapping[str, Any], flt: Filter) -> bool:
    return all(_evaluate(record, cond) for cond in flt.conditions)


def matches(record: Mapping[str, Any], flt: FilterLike) -> bool:
    """True when `record` satisfies every condition of `flt` (empty filter matches all)."""
    return _matches_parsed(record, parse_filter(flt))


# ------------------------------------------------------------------------------
# Sorting
# ------------------------------------------------------------------------------

# Cross-type ordering follows the database: missing/null < numbers < strings
# < objects < arrays < booleans < dates.
_RANK_NULL, _RANK_NUMBER, _RANK_STRING, _RANK_OBJECT, _RANK_ARRAY, _RANK_BOOL, _RANK_DATE = range(7)

SortSpec = Union[Mapping[str, int], Sequence[Tuple[str, int]], None]


def compare(record: Mapping[str, Any], path: str) -> Tuple[int, Any]:
    """Sort key for `path` on `record`; date-like strings sort as dates."""
    value = resolve_path(record, path)
    if value is MISSING or value is None:
        return (_RANK_NULL, 0)
    if isinstance(value, bool):
        return (_RANK_BOOL, value)
    if _is_number(value):
        return (_RANK_NUMBER, value)
    as_dt = as_datetime(value)
    if as_dt is not None:
        return (_RANK_DATE, as_dt)
    if isinstance(value, str):
        return (_RANK_STRING, value)
    if isinstance(value, Mapping):
        return (_RANK_OBJECT, repr(sorted(value.items(), key=lambda kv: kv[0])))
    if isinstance(value, list):
        return (_RANK_ARRAY, repr(value))
    return (_RANK_OBJECT, repr(value))


def normalize_sort(sort: SortSpec) -> List[Tuple[str, int]]:
    if not sort:
        return []
    items: Iterable[Tuple[str, int]] = sort.items() if isinstance(sort, Mapping) else sort
    out: List[Tuple[str, int]] = []
    for path, direction in items:
        if direction not in (1, -1):
            raise QueryError(f"sort direction for {path!r} must be 1 or -1")
        out.append((path, direction))
    return out


def sort_records(records: List[Dict[str, Any]], sort: SortSpec) -> List[Dict[str, Any]]:
    """Stable multi-key sort; ties keep insertion order."""
    ordered = list(records)
    # sort by the least significant key first so earlier keys win
    for path, direction in reversed(normalize_sort(sort)):
        ordered.sort(key=lambda r, p=path: compare(r, p), reverse=(direction == -1))
    return ordered
