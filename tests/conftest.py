from __future__ import annotations

import copy
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any

import pytest

from agencyops.store.cache import QueryCache
from agencyops.store.supabase import StoreError

VIEWS = {
    "deliverables_with_client": "deliverables",
    "invoices_with_client": "invoices",
    "tasks_with_relations": "tasks",
    "content_with_client": "content_items",
    "content_requests_with_client": "content_requests",
}

CODE_PREFIXES = {
    "generate_client_id": "CLI",
    "generate_deliverable_id": "DEL",
    "generate_invoice_id": "INV",
    "generate_task_id": "TSK",
}


@dataclass
class RecordingNotifier:
    successes: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def success(self, message: str) -> None:
        self.successes.append(message)

    def error(self, message: str) -> None:
        self.errors.append(message)


class FakeStore:
    """In-memory stand-in for SupabaseStore that records every call."""

    def __init__(self) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = defaultdict(list)
        self.calls: list[tuple[str, str]] = []
        self.failing: set[str] = set()
        self._ids = 0
        self._codes: dict[str, int] = defaultdict(int)

    def seed(self, table: str, *rows: dict[str, Any]) -> None:
        for row in rows:
            self.tables[table].append(dict(row))

    def _check(self, op: str, table: str) -> None:
        self.calls.append((op, table))
        if table in self.failing or f"{op}:{table}" in self.failing:
            raise StoreError(f"Failed to {op} {table}: boom")

    def _rows(self, table: str) -> list[dict[str, Any]]:
        return self.tables[VIEWS.get(table, table)]

    @staticmethod
    def _matches(row: dict[str, Any], eq) -> bool:
        return all(row.get(k) == v for k, v in (eq or {}).items())

    def fetch_all(
        self,
        table,
        *,
        columns="*",
        eq=None,
        gte=None,
        lte=None,
        not_null=(),
        or_=None,
        order=None,
        desc=False,
        limit=None,
    ):
        self._check("read", table)
        rows = [r for r in self._rows(table) if self._matches(r, eq)]
        rows = [r for r in rows if all(r.get(k) is not None and r[k] >= v for k, v in (gte or {}).items())]
        rows = [r for r in rows if all(r.get(k) is not None and r[k] <= v for k, v in (lte or {}).items())]
        rows = [r for r in rows if all(r.get(k) is not None for k in not_null)]
        if or_:
            needles = [part.split(".ilike.")[1].strip("%").lower() for part in or_.split(",")]
            columns_ = [part.split(".ilike.")[0] for part in or_.split(",")]
            rows = [
                r for r in rows if any(n in str(r.get(c) or "").lower() for c, n in zip(columns_, needles))
            ]
        if order:
            rows = sorted(rows, key=lambda r: (r.get(order) is None, r.get(order) or ""), reverse=desc)
        if limit is not None:
            rows = rows[:limit]
        return copy.deepcopy(rows)

    def fetch_one(self, table, *, eq, columns="*"):
        self._check("read", table)
        for row in self._rows(table):
            if self._matches(row, eq):
                return copy.deepcopy(row)
        return None

    def count(self, table, *, eq=None):
        self._check("count", table)
        return sum(1 for r in self._rows(table) if self._matches(r, eq))

    def insert(self, table, row):
        self._check("insert", table)
        self._ids += 1
        saved = {"id": f"{table}-{self._ids}", "created_at": f"2026-02-16T09:00:{self._ids:02d}+00:00"}
        saved.update(row)
        self.tables[table].append(saved)
        return copy.deepcopy(saved)

    def update(self, table, row, *, eq):
        self._check("update", table)
        updated = []
        for existing in self.tables[table]:
            if self._matches(existing, eq):
                existing.update(row)
                updated.append(copy.deepcopy(existing))
        return updated

    def upsert(self, table, row, *, on_conflict):
        self._check("upsert", table)
        keys = [k.strip() for k in on_conflict.split(",")]
        for existing in self.tables[table]:
            if all(existing.get(k) == row.get(k) for k in keys):
                existing.update(row)
                return copy.deepcopy(existing)
        self._ids += 1
        saved = {"id": f"{table}-{self._ids}"}
        saved.update(row)
        self.tables[table].append(saved)
        return copy.deepcopy(saved)

    def delete(self, table, *, eq):
        self._check("delete", table)
        self.tables[table] = [r for r in self.tables[table] if not self._matches(r, eq)]

    def rpc(self, name, params=None):
        self._check("rpc", name)
        self._codes[name] += 1
        return f"{CODE_PREFIXES.get(name, 'X')}-{self._codes[name]:03d}"


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def cache() -> QueryCache:
    return QueryCache()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
