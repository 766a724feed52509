"""Data store backends for the MCP server.

The server only depends on ``DataStore``; the backend is chosen by
configuration.
"""

from typing import Any, Optional

from shared.config import DataStoreSettings
from datastore.base import DataStore, Filter, Query
from datastore.errors import DataStoreError
from datastore.memory import InMemoryDataStore
from datastore.postgrest import PostgrestDataStore


def create_data_store(
    settings: DataStoreSettings,
    relations: Optional[dict[str, Any]] = None,
    defaults: Optional[dict[str, Any]] = None
) -> DataStore:
    """
    Build the configured data store backend.

    Args:
        settings: Data store settings
        relations: Embeddable relations (in-memory backend only)
        defaults: Column default factories (in-memory backend only)

    Returns:
        A data store instance

    Raises:
        ValueError: If the PostgREST backend is selected without credentials
    """
    if settings.backend == "postgrest":
        if not settings.url or not settings.service_key:
            raise ValueError("PostgREST backend requires url and service_key")
        return PostgrestDataStore(
            url=settings.url,
            service_key=settings.service_key,
            timeout=settings.timeout_seconds,
        )

    if settings.seed_path:
        return InMemoryDataStore.from_yaml(
            settings.seed_path, relations=relations, defaults=defaults
        )
    return InMemoryDataStore(relations=relations, defaults=defaults)


__all__ = [
    "DataStore",
    "DataStoreError",
    "Filter",
    "InMemoryDataStore",
    "PostgrestDataStore",
    "Query",
    "create_data_store",
]
