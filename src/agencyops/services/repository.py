from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Generic, Protocol, TypeVar

from agencyops.services.events import EventLogger
from agencyops.services.feedback import LogNotifier, Notifier
from agencyops.store.cache import QueryCache
from agencyops.store.supabase import StoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")
ALL = "all"


class StoreLike(Protocol):
    def fetch_all(self, table: str, **kwargs: Any) -> list[dict[str, Any]]:
        ...

    def fetch_one(self, table: str, *, eq: Mapping[str, Any], columns: str = "*") -> dict[str, Any] | None:
        ...

    def count(self, table: str, *, eq: Mapping[str, Any] | None = None) -> int:
        ...

    def insert(self, table: str, row: Mapping[str, Any]) -> dict[str, Any]:
        ...

    def update(self, table: str, row: Mapping[str, Any], *, eq: Mapping[str, Any]) -> list[dict[str, Any]]:
        ...

    def upsert(self, table: str, row: Mapping[str, Any], *, on_conflict: str) -> dict[str, Any]:
        ...

    def delete(self, table: str, *, eq: Mapping[str, Any]) -> None:
        ...

    def rpc(self, name: str, params: Mapping[str, Any] | None = None) -> Any:
        ...


@dataclass(frozen=True)
class EntitySpec(Generic[T]):
    """How one entity is read, written and invalidated."""

    name: str
    label: str
    read_table: str
    write_table: str
    mapper: Callable[[Mapping[str, Any]], T]
    to_row: Callable[[Any], dict[str, Any]]
    order: str = "created_at"
    desc: bool = True
    filters: Mapping[str, str] = field(default_factory=dict)
    search_columns: tuple[str, ...] = ()
    validator: Callable[..., None] | None = None
    code_rpc: str | None = None
    code_prefix: str | None = None
    code_column: str | None = None
    columns: str = "*"


def build_query(spec: EntitySpec, filters: Mapping[str, Any] | None) -> dict[str, Any]:
    """Translate a filter mapping into store query arguments.

    ``None``, empty strings and the ``"all"`` sentinel mean "no filter".
    """
    eq: dict[str, Any] = {}
    or_: str | None = None
    for name, value in (filters or {}).items():
        if value is None or value == "" or value == ALL:
            continue
        if name == "search":
            or_ = ",".join(f"{column}.ilike.%{value}%" for column in spec.search_columns) or None
            continue
        column = spec.filters.get(name)
        if column is None:
            raise ValueError(f"Unknown {spec.label.lower()} filter: {name}")
        eq[column] = getattr(value, "value", value)
    query: dict[str, Any] = {"order": spec.order, "desc": spec.desc}
    if spec.columns != "*":
        query["columns"] = spec.columns
    if eq:
        query["eq"] = eq
    if or_:
        query["or_"] = or_
    return query


class Repository(Generic[T]):
    def __init__(
        self,
        store: StoreLike,
        cache: QueryCache,
        spec: EntitySpec[T],
        notifier: Notifier | None = None,
        events: EventLogger | None = None,
    ) -> None:
        self.store = store
        self.cache = cache
        self.spec = spec
        self.notifier = notifier or LogNotifier()
        self.events = events

    def list(self, filters: Mapping[str, Any] | None = None) -> list[T]:
        spec = self.spec

        def load() -> list[T]:
            rows = self.store.fetch_all(spec.read_table, **build_query(spec, filters))
            return [spec.mapper(row) for row in rows]

        return self.cache.fetch(spec.name, filters, load)

    def get(self, record_id: str) -> T | None:
        spec = self.spec

        def load() -> T | None:
            row = self.store.fetch_one(spec.read_table, eq={"id": record_id}, columns=spec.columns)
            return spec.mapper(row) if row else None

        return self.cache.fetch(spec.name, {"id": record_id}, load)

    def create(self, values: Mapping[str, Any]) -> T:
        spec = self.spec
        if spec.validator is not None:
            spec.validator(values)
        row = spec.to_row(values)

        def write() -> dict[str, Any]:
            if spec.code_column and not row.get(spec.code_column):
                row[spec.code_column] = self._next_code()
            return self.store.insert(spec.write_table, row)

        created = self._mutate("create", write, f"{spec.label} created successfully")
        self._record("created", created.get("id"), row)
        return spec.mapper(created)

    def update(self, record_id: str, values: Mapping[str, Any], success: str | None = None) -> T:
        spec = self.spec
        if spec.validator is not None:
            spec.validator(values, partial=True)
        row = spec.to_row(values)

        def write() -> list[dict[str, Any]]:
            rows = self.store.update(spec.write_table, row, eq={"id": record_id})
            if not rows:
                raise StoreError(f"{spec.label} {record_id} not found")
            return rows

        rows = self._mutate("update", write, success or f"{spec.label} updated")
        self._record("updated", record_id, row)
        return spec.mapper(rows[0])

    def delete(self, record_id: str) -> None:
        spec = self.spec
        self._mutate(
            "delete",
            lambda: self.store.delete(spec.write_table, eq={"id": record_id}),
            f"{spec.label} deleted",
        )
        self._record("deleted", record_id, ())

    def _next_code(self) -> str | None:
        spec = self.spec
        if spec.code_rpc:
            return self.store.rpc(spec.code_rpc)
        if spec.code_prefix:
            return f"{spec.code_prefix}-{self.store.count(spec.write_table) + 1:03d}"
        return None

    def _mutate(self, verb: str, write: Callable[[], Any], success: str) -> Any:
        label = self.spec.label.lower()
        try:
            result = write()
        except StoreError as exc:
            self.notifier.error(f"Failed to {verb} {label}: {exc}")
            raise
        self.cache.invalidate_for(self.spec.name)
        self.notifier.success(success)
        logger.info("%s %s", label, verb)
        return result

    def _record(self, event_type: str, entity_id: str | None, fields) -> None:
        if self.events is not None:
            self.events.log(
                event_type=event_type,
                entity_type=self.spec.name,
                entity_id=entity_id,
                changed_fields=list(fields),
            )


class StoreService:
    """Base for services whose reads and writes don't fit the plain CRUD shape."""

    def __init__(self, store: StoreLike, cache: QueryCache, notifier: Notifier | None = None) -> None:
        self.store = store
        self.cache = cache
        self.notifier = notifier or LogNotifier()

    def _write(self, entity: str, action: str, write: Callable[[], Any], success: str | None = None) -> Any:
        try:
            result = write()
        except StoreError as exc:
            self.notifier.error(f"Failed to {action}: {exc}")
            raise
        self.cache.invalidate_for(entity)
        if success:
            self.notifier.success(success)
        return result
