"""Persistence layer for the offline show catalog.

Public API:
- CatalogStore: SQLite-backed store for shows, recordings and the search index
- SchemaMismatchError: Raised when the on-disk schema is not the expected one
"""

from .catalog_store import CatalogStore, SchemaMismatchError

__all__ = [
    "CatalogStore",
    "SchemaMismatchError",
]
