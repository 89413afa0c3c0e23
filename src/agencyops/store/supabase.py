from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

import httpx
from postgrest.exceptions import APIError
from supabase import Client, create_client

from agencyops.config import StoreConfig

logger = logging.getLogger(__name__)


class StoreError(RuntimeError):
    pass


class SupabaseStore:
    """Table/view access over a Supabase project.

    Every driver failure surfaces as ``StoreError`` so callers only deal with
    one exception type for store problems.
    """

    def __init__(self, client: Client) -> None:
        self.client = client

    @classmethod
    def connect(cls, config: StoreConfig) -> SupabaseStore:
        if not config.url or not config.key:
            raise StoreError("Store credentials missing. Set SUPABASE_URL and SUPABASE_ANON_KEY.")
        return cls(create_client(config.url, config.key))

    def fetch_all(
        self,
        table: str,
        *,
        columns: str = "*",
        eq: Mapping[str, Any] | None = None,
        gte: Mapping[str, Any] | None = None,
        lte: Mapping[str, Any] | None = None,
        not_null: Iterable[str] = (),
        or_: str | None = None,
        order: str | None = None,
        desc: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        query = self.client.table(table).select(columns)
        for column, value in (eq or {}).items():
            query = query.eq(column, value)
        for column, value in (gte or {}).items():
            query = query.gte(column, value)
        for column, value in (lte or {}).items():
            query = query.lte(column, value)
        for column in not_null:
            query = query.not_.is_(column, "null")
        if or_:
            query = query.or_(or_)
        if order:
            query = query.order(order, desc=desc)
        if limit is not None:
            query = query.limit(limit)
        response = self._execute(query, f"read {table}")
        return list(response.data or [])

    def fetch_one(self, table: str, *, eq: Mapping[str, Any], columns: str = "*") -> dict[str, Any] | None:
        query = self.client.table(table).select(columns)
        for column, value in eq.items():
            query = query.eq(column, value)
        response = self._execute(query.maybe_single(), f"read {table}")
        if response is None:
            return None
        return response.data or None

    def count(self, table: str, *, eq: Mapping[str, Any] | None = None) -> int:
        query = self.client.table(table).select("*", count="exact", head=True)
        for column, value in (eq or {}).items():
            query = query.eq(column, value)
        response = self._execute(query, f"count {table}")
        return response.count or 0

    def insert(self, table: str, row: Mapping[str, Any]) -> dict[str, Any]:
        response = self._execute(self.client.table(table).insert(dict(row)), f"insert into {table}")
        return _first(response.data, table)

    def update(self, table: str, row: Mapping[str, Any], *, eq: Mapping[str, Any]) -> list[dict[str, Any]]:
        query = self.client.table(table).update(dict(row))
        for column, value in eq.items():
            query = query.eq(column, value)
        response = self._execute(query, f"update {table}")
        return list(response.data or [])

    def upsert(self, table: str, row: Mapping[str, Any], *, on_conflict: str) -> dict[str, Any]:
        query = self.client.table(table).upsert(dict(row), on_conflict=on_conflict)
        response = self._execute(query, f"upsert into {table}")
        return _first(response.data, table)

    def delete(self, table: str, *, eq: Mapping[str, Any]) -> None:
        query = self.client.table(table).delete()
        for column, value in eq.items():
            query = query.eq(column, value)
        self._execute(query, f"delete from {table}")

    def rpc(self, name: str, params: Mapping[str, Any] | None = None) -> Any:
        response = self._execute(self.client.rpc(name, dict(params or {})), f"call {name}")
        return response.data

    def _execute(self, query, action: str):
        try:
            return query.execute()
        except APIError as exc:
            message = exc.message or str(exc)
            logger.error("Store rejected %s: %s", action, message)
            raise StoreError(f"Failed to {action}: {message}") from exc
        except httpx.HTTPError as exc:
            logger.error("Store unreachable during %s: %s", action, exc)
            raise StoreError(f"Failed to {action}: {exc}") from exc


def _first(data: Any, table: str) -> dict[str, Any]:
    if not data:
        raise StoreError(f"No row returned from {table}.")
    return dict(data[0]) if isinstance(data, list) else dict(data)
