"""Mongo-style filter evaluation for in-memory record sets."""

from .interpreter import (
    MISSING,
    Eq,
    Filter,
    Gte,
    In,
    Lt,
    Or,
    Regex,
    as_datetime,
    compare,
    matches,
    parse_filter,
    resolve_path,
    sort_records,
)

__all__ = [
    "MISSING",
    "Eq",
    "Filter",
    "Gte",
    "In",
    "Lt",
    "Or",
    "Regex",
    "as_datetime",
    "compare",
    "matches",
    "parse_filter",
    "resolve_path",
    "sort_records",
]
