from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import assert_never

from agencyops.domain.models import ContentItem, Deliverable, Invoice, Task
from agencyops.domain.stages import ActivityKind
from agencyops.services.utils import parse_timestamp, utc_now


@dataclass(frozen=True)
class ActivityItem:
    id: str
    kind: ActivityKind
    action: str
    title: str
    timestamp: str
    subtitle: str | None = None


def format_amount(amount: float) -> str:
    if float(amount).is_integer():
        return f"{int(amount):,}"
    return f"{amount:,.2f}"


def _stamp(item) -> str:
    return item.updated_at or item.created_at or ""


def _deliverable_action(status: str) -> str:
    return status if status in {"Delivered", "Approved"} else "Updated"


def _invoice_action(status: str) -> str:
    return status if status in {"Paid", "Sent"} else "Updated"


def _content_action(status: str) -> str:
    return status if status in {"Published", "Approved"} else "Updated"


def build_activity_feed(
    deliverables: Iterable[Deliverable],
    invoices: Iterable[Invoice],
    tasks: Iterable[Task],
    content: Iterable[ContentItem],
    limit: int = 10,
) -> list[ActivityItem]:
    items: list[ActivityItem] = []
    for d in deliverables:
        if ts := _stamp(d):
            items.append(
                ActivityItem(f"d-{d.id}", ActivityKind.DELIVERABLE, _deliverable_action(d.status), d.name, ts,
                             d.client_name or None)
            )
    for i in invoices:
        if ts := _stamp(i):
            title = f"{i.invoice_code} - ${format_amount(i.amount)}"
            items.append(
                ActivityItem(f"i-{i.id}", ActivityKind.INVOICE, _invoice_action(i.status), title, ts,
                             i.client_name or None)
            )
    for t in tasks:
        if ts := _stamp(t):
            action = "Completed" if t.status == "Done" else "Updated"
            items.append(ActivityItem(f"t-{t.id}", ActivityKind.TASK, action, t.name, ts, t.assigned_to))
    for c in content:
        if ts := _stamp(c):
            items.append(
                ActivityItem(f"c-{c.id}", ActivityKind.CONTENT, _content_action(c.status), c.title, ts,
                             c.client_name or c.platform or None)
            )

    def sort_key(item: ActivityItem) -> float:
        moment = parse_timestamp(item.timestamp)
        return moment.timestamp() if moment else float("-inf")

    items.sort(key=sort_key, reverse=True)
    return items[:limit]


def time_ago(timestamp: str, now: datetime | None = None) -> str:
    moment = parse_timestamp(timestamp)
    if moment is None:
        return ""
    seconds = int(((now or utc_now()) - moment).total_seconds())
    if seconds < 60:
        return "just now"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    if seconds < 604800:
        return f"{seconds // 86400}d ago"
    return moment.date().isoformat()


def kind_icon(kind: ActivityKind) -> str:
    match kind:
        case ActivityKind.DELIVERABLE:
            return "▣"
        case ActivityKind.INVOICE:
            return "$"
        case ActivityKind.TASK:
            return "☐"
        case ActivityKind.CONTENT:
            return "✎"
        case _:
            assert_never(kind)


def kind_link(kind: ActivityKind) -> str:
    match kind:
        case ActivityKind.DELIVERABLE:
            return "/deliverables"
        case ActivityKind.INVOICE:
            return "/invoices"
        case ActivityKind.TASK:
            return "/tasks"
        case ActivityKind.CONTENT:
            return "/content"
        case _:
            assert_never(kind)
