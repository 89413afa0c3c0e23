from __future__ import annotations

import math
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta
from typing import assert_never

from agencyops.domain.models import ContentItem, SlaDefinition
from agencyops.domain.stages import ContentStatus, SlaStatus
from agencyops.services.utils import iso_date, parse_timestamp, utc_now

HOUR = 3600.0
DAY = 86400.0


def calculate_sla_deadline(
    content_type: str | None,
    created_at: str | datetime,
    definitions: Iterable[SlaDefinition],
) -> str | None:
    """Add the content type's ``total_days`` in business days to ``created_at``.

    Steps one calendar day at a time and only counts Monday to Friday, so the
    result never lands on a weekend. Returns an ISO date, or None when the
    content type has no definition.
    """
    definition = next((d for d in definitions if d.content_type == content_type), None)
    if definition is None:
        return None
    start = parse_timestamp(created_at)
    if start is None:
        return None
    start = start.astimezone(UTC)
    remaining = definition.total_days
    deadline = start
    while remaining > 0:
        deadline += timedelta(days=1)
        if deadline.weekday() < 5:
            remaining -= 1
    return iso_date(deadline)


def _hours_left(deadline: str | datetime, now: datetime) -> float | None:
    moment = parse_timestamp(deadline)
    if moment is None:
        return None
    return (moment - now).total_seconds() / HOUR


def get_sla_status(deadline: str | datetime | None, now: datetime | None = None) -> SlaStatus:
    if not deadline:
        return SlaStatus.ON_TRACK
    hours = _hours_left(deadline, now or utc_now())
    if hours is None:
        return SlaStatus.ON_TRACK
    if hours <= 0:
        return SlaStatus.BREACHED
    if hours <= 24:
        return SlaStatus.CRITICAL
    if hours <= 48:
        return SlaStatus.WARNING
    return SlaStatus.ON_TRACK


def days_remaining(deadline: str | datetime | None, now: datetime | None = None) -> float:
    if not deadline:
        return math.inf
    moment = parse_timestamp(deadline)
    if moment is None:
        return math.inf
    return math.ceil((moment - (now or utc_now())).total_seconds() / DAY)


def status_label(status: SlaStatus) -> str:
    match status:
        case SlaStatus.ON_TRACK:
            return "On Track"
        case SlaStatus.WARNING:
            return "Due Soon"
        case SlaStatus.CRITICAL:
            return "Urgent"
        case SlaStatus.BREACHED:
            return "Overdue"
        case _:
            assert_never(status)


def status_color(status: SlaStatus) -> str:
    """Terminal colour name used by the CLI."""
    match status:
        case SlaStatus.ON_TRACK:
            return "green"
        case SlaStatus.WARNING:
            return "yellow"
        case SlaStatus.CRITICAL:
            return "red"
        case SlaStatus.BREACHED:
            return "bright_red"
        case _:
            assert_never(status)


def content_sla_rows(
    items: Iterable[ContentItem],
    definitions: Iterable[SlaDefinition],
    now: datetime | None = None,
) -> list[dict[str, object]]:
    """SLA view of every unpublished content item that has a definition."""
    now = now or utc_now()
    definitions = list(definitions)
    rows = []
    for item in items:
        if item.status == ContentStatus.PUBLISHED.value or not item.created_at:
            continue
        deadline = calculate_sla_deadline(item.content_type, item.created_at, definitions)
        if deadline is None:
            continue
        status = get_sla_status(deadline, now)
        rows.append(
            {
                "content_id": item.id,
                "title": item.title,
                "content_type": item.content_type,
                "deadline": deadline,
                "days_remaining": days_remaining(deadline, now),
                "status": status,
                "label": status_label(status),
            }
        )
    return sorted(rows, key=lambda r: r["deadline"])
