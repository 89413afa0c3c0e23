from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from agencyops.domain import rules
from agencyops.domain.mappers import (
    map_activity_log,
    map_notification,
    map_notification_rule,
    to_activity_log_row,
    to_notification_rule_row,
)
from agencyops.domain.models import ActivityLog, Notification, NotificationRule
from agencyops.services.repository import EntitySpec, Repository, StoreService

FEED_LIMIT = 30
TIMELINE_LIMIT = 50
NOTIFICATION_LIMIT = 50

NOTIFICATION_RULES = EntitySpec(
    name="notification-rules",
    label="Notification rule",
    read_table="notification_rules",
    write_table="notification_rules",
    mapper=map_notification_rule,
    to_row=to_notification_rule_row,
    order="created_at",
    desc=True,
    filters={"trigger_type": "trigger_type", "channel": "channel"},
    validator=rules.validate_notification_rule,
)


class NotificationRuleRepository(Repository[NotificationRule]):
    def __init__(self, store, cache, notifier=None, events=None) -> None:
        super().__init__(store, cache, NOTIFICATION_RULES, notifier, events)

    def toggle(self, record_id: str, is_active: bool) -> NotificationRule | None:
        return self.update(record_id, {"is_active": is_active})


class ActivityService(StoreService):
    """Dashboard activity feed (``activity_logs``) and per-client timeline (``activity_log``)."""

    def feed(self, limit: int = FEED_LIMIT) -> list[ActivityLog]:
        def load() -> list[ActivityLog]:
            rows = self.store.fetch_all("activity_logs", order="created_at", desc=True, limit=limit)
            return [map_activity_log(row) for row in rows]

        return self.cache.fetch("activity-logs", {"limit": limit}, load)

    def unread_count(self) -> int:
        return self.cache.fetch(
            "activity-unread", None, lambda: self.store.count("activity_logs", eq={"is_read": False})
        )

    def mark_read(self, log_id: str) -> None:
        self._write(
            "activity-logs",
            "mark activity read",
            lambda: self.store.update("activity_logs", {"is_read": True}, eq={"id": log_id}),
        )

    def mark_all_read(self) -> None:
        self._write(
            "activity-logs",
            "mark activity read",
            lambda: self.store.update("activity_logs", {"is_read": True}, eq={"is_read": False}),
        )

    def log(self, values: Mapping[str, Any]) -> ActivityLog:
        row = to_activity_log_row(values)
        saved = self._write("activity-logs", "log activity", lambda: self.store.insert("activity_logs", row))
        return map_activity_log(saved)

    def timeline(self, client_id: str | None = None, limit: int = TIMELINE_LIMIT) -> list[ActivityLog]:
        def load() -> list[ActivityLog]:
            rows = self.store.fetch_all(
                "activity_log",
                eq={"client_id": client_id} if client_id else None,
                order="created_at",
                desc=True,
                limit=limit,
            )
            return [map_activity_log(row) for row in rows]

        return self.cache.fetch("activity-log", {"client_id": client_id, "limit": limit}, load)

    def add_timeline_entry(self, values: Mapping[str, Any]) -> ActivityLog:
        row = to_activity_log_row(values)
        saved = self._write("activity-logs", "add activity", lambda: self.store.insert("activity_log", row))
        return map_activity_log(saved)


class NotificationService(StoreService):
    def list(self, user_email: str | None = None) -> list[Notification]:
        def load() -> list[Notification]:
            rows = self.store.fetch_all(
                "notifications",
                eq={"user_email": user_email} if user_email else None,
                order="created_at",
                desc=True,
                limit=NOTIFICATION_LIMIT,
            )
            return [map_notification(row) for row in rows]

        return self.cache.fetch("notifications", {"user_email": user_email}, load)

    def unread(self, user_email: str | None = None) -> list[Notification]:
        return [n for n in self.list(user_email) if not n.is_read]

    def mark_read(self, notification_id: str) -> None:
        self._write(
            "notifications",
            "mark notification read",
            lambda: self.store.update("notifications", {"is_read": True}, eq={"id": notification_id}),
        )

    def mark_all_read(self, user_email: str) -> None:
        self._write(
            "notifications",
            "mark notifications read",
            lambda: self.store.update(
                "notifications", {"is_read": True}, eq={"user_email": user_email, "is_read": False}
            ),
            "All notifications marked as read",
        )
