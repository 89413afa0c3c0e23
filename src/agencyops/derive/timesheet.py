from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from agencyops.domain.models import TimeEntry


@dataclass(frozen=True)
class TimeSummary:
    total_hours: float
    billable_hours: float
    billable_amount: float


def summarize_time(entries: Iterable[TimeEntry]) -> TimeSummary:
    total = billable = amount = 0.0
    for entry in entries:
        total += entry.hours
        if entry.is_billable:
            billable += entry.hours
            amount += entry.hours * (entry.hourly_rate or 0)
    return TimeSummary(total_hours=round(total, 2), billable_hours=round(billable, 2), billable_amount=round(amount, 2))
