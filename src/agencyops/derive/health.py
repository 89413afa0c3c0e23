from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import assert_never

from agencyops.domain.models import Client, Deliverable, Invoice, Task
from agencyops.domain.stages import DELIVERED_STATUSES, HealthTrend, InvoiceStatus, TaskStatus
from agencyops.services.utils import parse_timestamp, round_half_up, utc_now

GRADE_THRESHOLDS: tuple[tuple[int, str], ...] = ((90, "A"), (75, "B"), (60, "C"), (40, "D"), (0, "F"))
RECENT_WINDOW = timedelta(days=14)


@dataclass(frozen=True)
class HealthFactor:
    name: str
    score: int
    weight: float
    detail: str


@dataclass(frozen=True)
class ClientHealth:
    client_id: str
    company_name: str
    market: str
    monthly_value: float
    plan_tier: str
    score: int
    grade: str
    trend: HealthTrend
    factors: tuple[HealthFactor, ...]


def grade_for(score: int) -> str:
    for threshold, grade in GRADE_THRESHOLDS:
        if score >= threshold:
            return grade
    return "F"


def _is_past(value: str | None, now: datetime) -> bool:
    due = parse_timestamp(value)
    return due is not None and due < now


def _is_recent(item: Deliverable | Task, now: datetime) -> bool:
    touched = parse_timestamp(item.updated_at or item.created_at)
    return touched is not None and now - touched < RECENT_WINDOW


def calculate_health_score(
    client: Client,
    deliverables: Iterable[Deliverable],
    invoices: Iterable[Invoice],
    tasks: Iterable[Task],
    now: datetime | None = None,
) -> ClientHealth:
    now = now or utc_now()
    client_deliverables = [d for d in deliverables if d.client_id == client.id]
    client_invoices = [i for i in invoices if i.client_id == client.id]
    client_tasks = [t for t in tasks if t.client_id == client.id]

    total = len(client_deliverables)
    completed = sum(1 for d in client_deliverables if d.status in DELIVERED_STATUSES)
    delivery_rate = completed / total * 100 if total else 100.0

    overdue_count = sum(
        1 for d in client_deliverables if _is_past(d.due_date, now) and d.status not in DELIVERED_STATUSES
    ) + sum(1 for t in client_tasks if _is_past(t.due_date, now) and t.status != TaskStatus.DONE.value)
    on_time = max(0, 100 - overdue_count * 25)

    invoice_total = len(client_invoices)
    paid = sum(1 for i in client_invoices if i.status == InvoiceStatus.PAID.value)
    overdue_invoices = sum(1 for i in client_invoices if i.status == InvoiceStatus.OVERDUE.value)
    payment = paid / invoice_total * 100 - overdue_invoices * 20 if invoice_total else 100.0
    payment = max(0.0, min(100.0, payment))

    recent = sum(1 for d in client_deliverables if _is_recent(d, now)) + sum(
        1 for t in client_tasks if _is_recent(t, now)
    )
    if recent:
        engagement = 100
    elif total == 0 and not client_tasks:
        engagement = 70
    else:
        engagement = 40

    factors = (
        HealthFactor("Delivery Rate", round_half_up(delivery_rate), 0.3, f"{completed}/{total} completed"),
        HealthFactor(
            "On-Time Delivery",
            on_time,
            0.25,
            f"{overdue_count} overdue item{'' if overdue_count == 1 else 's'}",
        ),
        HealthFactor(
            "Payment Health",
            round_half_up(payment),
            0.25,
            f"{paid} paid, {overdue_invoices} overdue of {invoice_total}",
        ),
        HealthFactor(
            "Engagement",
            engagement,
            0.2,
            f"{recent} items updated recently" if recent else "No recent activity",
        ),
    )
    score = round_half_up(sum(f.score * f.weight for f in factors))

    # declining is checked first and wins over improving
    has_history = bool(client_deliverables or client_invoices or client_tasks)
    if overdue_count > 2 or overdue_invoices > 0:
        trend = HealthTrend.DECLINING
    elif has_history and delivery_rate > 80 and overdue_count == 0 and payment > 80:
        trend = HealthTrend.IMPROVING
    else:
        trend = HealthTrend.STABLE

    return ClientHealth(
        client_id=client.id,
        company_name=client.company_name,
        market=client.market,
        monthly_value=client.monthly_value,
        plan_tier=client.plan_tier,
        score=score,
        grade=grade_for(score),
        trend=trend,
        factors=factors,
    )


def rank_clients(
    clients: Iterable[Client],
    deliverables: Iterable[Deliverable],
    invoices: Iterable[Invoice],
    tasks: Iterable[Task],
    now: datetime | None = None,
) -> list[ClientHealth]:
    """Scores for every client, lowest score first."""
    deliverables, invoices, tasks = list(deliverables), list(invoices), list(tasks)
    scores = [calculate_health_score(c, deliverables, invoices, tasks, now) for c in clients]
    return sorted(scores, key=lambda h: h.score)


def trend_symbol(trend: HealthTrend) -> str:
    match trend:
        case HealthTrend.IMPROVING:
            return "↑"
        case HealthTrend.STABLE:
            return "→"
        case HealthTrend.DECLINING:
            return "↓"
        case _:
            assert_never(trend)
