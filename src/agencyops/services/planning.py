from __future__ import annotations

import calendar
import logging
from collections.abc import Mapping
from typing import Any

from agencyops.derive.onboarding import ChecklistProgress, checklist_progress
from agencyops.domain import rules
from agencyops.domain.mappers import (
    map_retainer_tier,
    map_retainer_usage,
    map_sla_definition,
    map_team_member,
    to_retainer_tier_row,
    to_retainer_usage_row,
    to_sla_definition_row,
)
from agencyops.domain.models import CalendarEvent, RetainerTier, RetainerUsage, SlaDefinition, TeamMember
from agencyops.services.repository import StoreService
from agencyops.store.supabase import StoreError

logger = logging.getLogger(__name__)

CALENDAR_COLUMNS = "id, name, due_date, status, client_name"
BASE_COLUMNS = "id, name, due_date, status"


def month_bounds(year: int, month: int) -> tuple[str, str]:
    if not 1 <= month <= 12:
        raise ValueError(f"Month must be 1-12, got {month}.")
    last = calendar.monthrange(year, month)[1]
    return f"{year:04d}-{month:02d}-01", f"{year:04d}-{month:02d}-{last:02d}"


class PlanningService(StoreService):
    """SLA definitions, retainer quotas, team and the due-date calendar."""

    def sla_definitions(self) -> list[SlaDefinition]:
        def load() -> list[SlaDefinition]:
            rows = self.store.fetch_all("sla_definitions", order="content_type")
            return [map_sla_definition(row) for row in rows]

        return self.cache.fetch("sla-definitions", None, load)

    def update_sla_definition(self, definition_id: str, values: Mapping[str, Any]) -> SlaDefinition | None:
        rules.validate_sla_definition(values, partial=True)
        row = to_sla_definition_row(values)
        rows = self._write(
            "sla-definitions",
            "update SLA",
            lambda: self.store.update("sla_definitions", row, eq={"id": definition_id}),
            "SLA definition updated",
        )
        return map_sla_definition(rows[0]) if rows else None

    def retainer_tiers(self) -> list[RetainerTier]:
        def load() -> list[RetainerTier]:
            rows = self.store.fetch_all("retainer_tiers", order="name")
            return [map_retainer_tier(row) for row in rows]

        return self.cache.fetch("retainer-tiers", None, load)

    def update_retainer_tier(self, tier_id: str, values: Mapping[str, Any]) -> RetainerTier | None:
        rules.validate_retainer_tier(values, partial=True)
        row = to_retainer_tier_row(values)
        rows = self._write(
            "retainer-tiers",
            "update tier",
            lambda: self.store.update("retainer_tiers", row, eq={"id": tier_id}),
            "Retainer tier updated",
        )
        return map_retainer_tier(rows[0]) if rows else None

    def retainer_usage(self, client_id: str, month: str | None = None) -> RetainerUsage | None:
        eq = {"client_id": client_id}
        if month:
            eq["month"] = month

        def load() -> RetainerUsage | None:
            row = self.store.fetch_one("retainer_usage", eq=eq)
            return map_retainer_usage(row) if row else None

        return self.cache.fetch("retainer-usage", eq, load)

    def record_usage(self, client_id: str, month: str, values: Mapping[str, Any]) -> RetainerUsage:
        row = to_retainer_usage_row(values)
        row["client_id"] = client_id
        row["month"] = month
        saved = self._write(
            "retainer-usage",
            "update usage",
            lambda: self.store.upsert("retainer_usage", row, on_conflict="client_id,month"),
            "Retainer usage updated",
        )
        return map_retainer_usage(saved)

    def team_members(self) -> list[TeamMember]:
        def load() -> list[TeamMember]:
            rows = self.store.fetch_all("team_members", order="name")
            return [map_team_member(row) for row in rows]

        return self.cache.fetch("team-members", None, load)

    def calendar(self, year: int, month: int) -> list[CalendarEvent]:
        """Deliverables and tasks due in the given month, ordered by due date."""
        first, last = month_bounds(year, month)

        def load() -> list[CalendarEvent]:
            events = self._due_between("deliverable", "deliverables_with_client", "deliverables", first, last)
            events += self._due_between("task", "tasks_with_relations", "tasks", first, last)
            return sorted(events, key=lambda event: (event.due_date, event.kind, event.name))

        return self.cache.fetch("calendar", {"year": year, "month": month}, load)

    def _due_between(self, kind: str, view: str, table: str, first: str, last: str) -> list[CalendarEvent]:
        window = {"gte": {"due_date": first}, "lte": {"due_date": last}, "not_null": ("due_date",)}
        try:
            rows = self.store.fetch_all(view, columns=CALENDAR_COLUMNS, **window)
        except StoreError as exc:
            logger.warning("Calendar view %s failed, reading %s instead: %s", view, table, exc)
            rows = self.store.fetch_all(table, columns=BASE_COLUMNS, **window)
        return [
            CalendarEvent(
                id=row["id"],
                kind=kind,
                name=row.get("name") or "",
                due_date=row["due_date"],
                status=row.get("status"),
                client_name=row.get("client_name"),
            )
            for row in rows
        ]

    def onboarding(self, branding_set: bool = False) -> ChecklistProgress:
        return checklist_progress(
            clients=self.store.count("clients"),
            deliverables=self.store.count("deliverables"),
            team_members=self.store.count("team_members"),
            portals=self.store.count("portal_access"),
            branding_set=branding_set,
        )
