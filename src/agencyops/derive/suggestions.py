"""Smart suggestions: actionable follow-ups derived from the current data.

Whether a follow-up already exists is checked when suggestions are generated,
not when one is confirmed. A list that has gone stale can therefore create a
duplicate task; that window is accepted and no locking is attempted.
"""
from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from agencyops.derive.activity import format_amount
from agencyops.domain.models import Client, ContentItem, Deliverable, Invoice, Task
from agencyops.domain.stages import (
    DELIVERED_STATUSES,
    ContentStatus,
    DeliverableStatus,
    InvoiceStatus,
    SuggestionPriority,
    TaskCategory,
    TaskStatus,
)
from agencyops.services.utils import iso_date, parse_timestamp, utc_now

DAY = timedelta(days=1)
PRIORITY_ORDER = {SuggestionPriority.HIGH: 0, SuggestionPriority.MEDIUM: 1, SuggestionPriority.LOW: 2}
STALE_IDEATION = timedelta(days=7)
STALE_CONTENT_LIMIT = 2
DEFAULT_BILLING_ASSIGNEE = "Robert"


@dataclass(frozen=True)
class TaskTemplate:
    name: str
    assigned_to: str | None
    category: str
    due_date: str
    client_id: str | None = None
    deliverable_id: str | None = None
    notes: str | None = None

    def as_values(self) -> dict[str, Any]:
        values = {
            "name": self.name,
            "assigned_to": self.assigned_to,
            "category": self.category,
            "due_date": self.due_date,
            "status": TaskStatus.TODO.value,
        }
        for key in ("client_id", "deliverable_id", "notes"):
            if getattr(self, key):
                values[key] = getattr(self, key)
        return values


@dataclass(frozen=True)
class Suggestion:
    id: str
    kind: str
    priority: SuggestionPriority
    title: str
    description: str
    action: str
    task: TaskTemplate | None = field(default=None)


def _open(task: Task) -> bool:
    return task.status != TaskStatus.DONE.value


def generate_suggestions(
    clients: Iterable[Client],
    deliverables: Iterable[Deliverable],
    invoices: Iterable[Invoice],
    tasks: Iterable[Task],
    content: Iterable[ContentItem],
    now: datetime | None = None,
    billing_assignee: str = DEFAULT_BILLING_ASSIGNEE,
) -> list[Suggestion]:
    now = now or utc_now()
    tomorrow = iso_date(now + DAY)
    horizon = now + 3 * DAY
    clients_by_id = {c.id: c for c in clients}
    deliverables = list(deliverables)
    tasks = list(tasks)
    items: list[Suggestion] = []

    for d in deliverables:
        due = parse_timestamp(d.due_date)
        if due is None or due >= now or d.status in DELIVERED_STATUSES:
            continue
        if any(t.deliverable_id == d.id and _open(t) for t in tasks):
            continue
        items.append(
            Suggestion(
                id=f"overdue-{d.id}",
                kind="overdue",
                priority=SuggestionPriority.HIGH,
                title=f'"{d.name}" is overdue',
                description=(
                    f"Due {d.due_date} for {d.client_name or 'unknown client'}, still {d.status}. "
                    "No follow-up task exists."
                ),
                action="Create Follow-up Task",
                task=TaskTemplate(
                    name=f"Follow up: {d.name} (overdue)",
                    assigned_to=d.assigned_to,
                    category=TaskCategory.OPS.value,
                    due_date=tomorrow,
                    client_id=d.client_id,
                    deliverable_id=d.id,
                    notes=f"Overdue deliverable: {d.name}",
                ),
            )
        )

    for inv in invoices:
        if inv.status != InvoiceStatus.OVERDUE.value:
            continue
        code = inv.invoice_code or inv.id
        if any(t.notes and code in t.notes and _open(t) for t in tasks):
            continue
        client = clients_by_id.get(inv.client_id)
        items.append(
            Suggestion(
                id=f"invoice-{inv.id}",
                kind="invoice",
                priority=SuggestionPriority.HIGH,
                title=f"Invoice {code} is overdue (${format_amount(inv.amount)})",
                description=f"{client.company_name if client else 'Client'} hasn't paid. Send a payment reminder.",
                action="Create Payment Follow-up",
                task=TaskTemplate(
                    name=f"Payment follow-up: {code} (${format_amount(inv.amount)})",
                    assigned_to=billing_assignee,
                    category=TaskCategory.SALES.value,
                    due_date=tomorrow,
                    client_id=inv.client_id,
                    notes=f"Payment reminder for invoice {code}",
                ),
            )
        )

    for d in deliverables:
        due = parse_timestamp(d.due_date)
        if due is None or not (now <= due <= horizon) or d.status != DeliverableStatus.NOT_STARTED.value:
            continue
        days = math.ceil((due - now).total_seconds() / 86400)
        items.append(
            Suggestion(
                id=f"deadline-{d.id}",
                kind="deadline",
                priority=SuggestionPriority.MEDIUM,
                title=f'"{d.name}" due in {days} days but Not Started',
                description=(
                    f"Assigned to {d.assigned_to} for {d.client_name or 'unknown client'}. "
                    "Consider creating a task to kick this off."
                ),
                action="Create Start Task",
                task=TaskTemplate(
                    name=f"Start work on: {d.name}",
                    assigned_to=d.assigned_to,
                    category=TaskCategory.OPS.value,
                    due_date=iso_date(now),
                    client_id=d.client_id,
                    deliverable_id=d.id,
                ),
            )
        )

    stale = []
    for c in content:
        created = parse_timestamp(c.created_at)
        if c.status == ContentStatus.IDEATION.value and created is not None and now - created > STALE_IDEATION:
            stale.append(c)
    for c in stale[:STALE_CONTENT_LIMIT]:
        items.append(
            Suggestion(
                id=f"content-{c.id}",
                kind="content",
                priority=SuggestionPriority.LOW,
                title=f'Content "{c.title}" stuck in Ideation',
                description=f"Created over a week ago. Assigned to {c.assigned_to}. Consider moving to Draft.",
                action="Create Draft Task",
                task=TaskTemplate(
                    name=f"Draft content: {c.title}",
                    assigned_to=c.assigned_to,
                    category=TaskCategory.CONTENT.value,
                    due_date=iso_date(now + 3 * DAY),
                    client_id=c.client_id or None,
                ),
            )
        )

    # sorted() is stable, so scan order is kept within a priority
    return sorted(items, key=lambda s: PRIORITY_ORDER[s.priority])
