from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
CacheKey = tuple[str, tuple[tuple[str, str], ...]]

# Mutated entity -> every query group whose cached results it can make stale.
INVALIDATES: dict[str, frozenset[str]] = {
    "clients": frozenset(
        {"clients", "pipeline-clients", "dashboard", "deliverables", "invoices", "tasks", "content", "calendar"}
    ),
    "pipeline": frozenset({"pipeline-clients", "clients", "dashboard"}),
    "deliverables": frozenset({"deliverables", "tasks", "dashboard", "calendar"}),
    "invoices": frozenset({"invoices", "dashboard"}),
    "tasks": frozenset({"tasks", "dashboard", "calendar"}),
    "content": frozenset({"content", "dashboard"}),
    "quality-scores": frozenset({"quality-scores", "content"}),
    "content-performance": frozenset({"content-performance", "content"}),
    "content-requests": frozenset({"content-requests"}),
    "activity-logs": frozenset({"activity-logs", "activity-unread", "activity-log"}),
    "notifications": frozenset({"notifications"}),
    "notification-rules": frozenset({"notification-rules"}),
    "portal-access": frozenset({"portal-access"}),
    "portal-messages": frozenset({"portal-messages", "portal-unread", "activity-logs", "activity-unread"}),
    "sla-definitions": frozenset({"sla-definitions"}),
    "retainer-tiers": frozenset({"retainer-tiers"}),
    "retainer-usage": frozenset({"retainer-usage"}),
    "proposals": frozenset({"proposals"}),
    "templates": frozenset({"templates"}),
    "template-apply": frozenset({"deliverables", "tasks", "dashboard", "calendar"}),
    "content-versions": frozenset({"content-versions", "content"}),
    "content-reviews": frozenset({"content-reviews", "content"}),
    "time-entries": frozenset({"time-entries"}),
}


def affected_keys(entity: str) -> frozenset[str]:
    try:
        return INVALIDATES[entity]
    except KeyError as exc:
        raise KeyError(f"No invalidation entry declared for {entity!r}") from exc


class QueryStatus(str, Enum):
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class CacheEntry:
    status: QueryStatus
    data: Any = None
    error: Exception | None = None


class QueryCache:
    def __init__(self) -> None:
        self._entries: dict[CacheKey, CacheEntry] = {}

    @staticmethod
    def key(entity: str, filters: Mapping[str, Any] | None = None) -> CacheKey:
        pairs = tuple(sorted((k, str(v)) for k, v in (filters or {}).items() if v is not None))
        return entity, pairs

    def entry(self, entity: str, filters: Mapping[str, Any] | None = None) -> CacheEntry | None:
        return self._entries.get(self.key(entity, filters))

    def fetch(self, entity: str, filters: Mapping[str, Any] | None, loader: Callable[[], T]) -> T:
        key = self.key(entity, filters)
        cached = self._entries.get(key)
        if cached is not None and cached.status is QueryStatus.SUCCESS:
            return cached.data
        self._entries[key] = CacheEntry(QueryStatus.LOADING)
        try:
            data = loader()
        except Exception as exc:
            self._entries[key] = CacheEntry(QueryStatus.ERROR, error=exc)
            raise
        self._entries[key] = CacheEntry(QueryStatus.SUCCESS, data=data)
        return data

    def invalidate(self, entity: str) -> int:
        stale = [key for key in self._entries if key[0] == entity]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def invalidate_many(self, entities: Iterable[str]) -> int:
        dropped = sum(self.invalidate(entity) for entity in entities)
        logger.debug("Invalidated %s cached queries", dropped)
        return dropped

    def invalidate_for(self, mutated: str) -> int:
        return self.invalidate_many(affected_keys(mutated))

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
