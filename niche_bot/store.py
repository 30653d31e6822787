"""
Backing-store access via Supabase.

Exposes the three generic operations the pipeline needs (select with
filters/limit, upsert by key, insert row). Everything domain-specific
lives in the modules that call it.
"""

import logging
from typing import Any, Iterable, Optional

from postgrest.exceptions import APIError
from supabase import Client, create_client

from .config import Config


logger = logging.getLogger(__name__)


# Filter operators supported by select(); each maps to a postgrest builder method
FILTER_OPS = ("eq", "gt", "gte", "lt", "lte")

Filter = tuple[str, str, Any]


class StoreError(Exception):
    """Raised when a store query or write fails."""
    pass


class SupabaseStore:
    """
    Thin wrapper around a lazily created Supabase client.

    The client is only built on first use, so a missing credential
    surfaces as ConfigError when the store is actually needed.
    """

    def __init__(self, config: Config):
        self._config = config
        self._client: Optional[Client] = None

    @property
    def client(self) -> Client:
        if self._client is None:
            url = self._config.require("supabase_url")
            key = self._config.require("supabase_service_key")
            self._client = create_client(url, key)
            logger.info("Supabase client initialized")
        return self._client

    def select(
        self,
        table: str,
        filters: Iterable[Filter] = (),
        limit: Optional[int] = None,
    ) -> list[dict]:
        """
        Fetch rows from a table in the store's natural order.

        Args:
            table: Table name.
            filters: (column, op, value) triples; op is one of FILTER_OPS.
            limit: Maximum number of rows to return.

        Returns:
            List of row dicts (empty if none match).

        Raises:
            StoreError: If the query fails.
        """
        query = self.client.table(table).select("*")
        for column, op, value in filters:
            if op not in FILTER_OPS:
                raise ValueError(f"Unsupported filter operator: {op}")
            query = getattr(query, op)(column, value)
        if limit is not None:
            query = query.limit(limit)

        try:
            response = query.execute()
        except APIError as e:
            raise StoreError(f"Query on {table} failed: {e}") from e
        except Exception as e:
            raise StoreError(f"Unexpected error querying {table}: {e}") from e

        return response.data or []

    def upsert(self, table: str, row: dict, on_conflict: str) -> None:
        """Insert a row, replacing any existing row with the same `on_conflict` key."""
        client = self.client
        try:
            client.table(table).upsert(row, on_conflict=on_conflict).execute()
        except APIError as e:
            raise StoreError(f"Upsert into {table} failed: {e}") from e
        except Exception as e:
            raise StoreError(f"Unexpected error upserting into {table}: {e}") from e

    def insert(self, table: str, row: dict) -> None:
        """Insert a single row."""
        client = self.client
        try:
            client.table(table).insert(row).execute()
        except APIError as e:
            raise StoreError(f"Insert into {table} failed: {e}") from e
        except Exception as e:
            raise StoreError(f"Unexpected error inserting into {table}: {e}") from e
