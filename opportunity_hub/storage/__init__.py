"""Catalog storage: JSON file and Mongo collections behind one facade."""

from .base import DocumentCollection, UpsertResult
from .facade import OpportunityStore
from .json_collection import JsonCollection

__all__ = [
    "DocumentCollection",
    "JsonCollection",
    "OpportunityStore",
    "UpsertResult",
]
