"""Application-level service helpers."""

from .opportunity_feed import (
    build_listing_query,
    get_filter_options,
    get_opportunity,
    get_search_suggestions,
    get_stats,
    list_opportunities,
)

__all__ = [
    "build_listing_query",
    "get_filter_options",
    "get_opportunity",
    "get_search_suggestions",
    "get_stats",
    "list_opportunities",
]
