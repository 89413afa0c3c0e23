from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping
from datetime import date
from typing import Any

from agencyops.domain.stages import (
    ClientStatus,
    ContentStatus,
    ContentType,
    Currency,
    DELIVERED_STATUSES,
    DeliverableStatus,
    InvoiceStatus,
    Market,
    NotificationChannel,
    PerformanceTier,
    PlanTier,
    Platform,
    Priority,
    ProposalStatus,
    RequestPriority,
    ReviewAction,
    ReviewerType,
    ServiceType,
    TaskCategory,
    TaskStatus,
    TriggerType,
    values,
)

URL_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://[^\s/?#]+[^\s]*$")


class ValidationError(ValueError):
    def __init__(self, message: str, errors: Mapping[str, str] | None = None) -> None:
        super().__init__(message)
        self.errors: dict[str, str] = dict(errors or {})


def _fail(field: str, message: str) -> None:
    raise ValidationError(message, {field: message})


def require(value: Any, field: str, message: str | None = None) -> None:
    if value is None or str(value).strip() == "":
        _fail(field, message or f"{field} is required.")


def validate_enum(value: str | None, allowed: Iterable[str], field: str) -> None:
    if value is None:
        return
    allowed = list(allowed)
    if value not in allowed:
        _fail(field, f"{field} must be one of: {', '.join(sorted(allowed))}")


def parse_date(value: str | None, field: str) -> date | None:
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise ValidationError(f"{field} must be YYYY-MM-DD.", {field: f"{field} must be YYYY-MM-DD."}) from exc


def number(value: Any, field: str, *, minimum: float | None = None, maximum: float | None = None,
           positive: bool = False, message: str | None = None) -> float:
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        _fail(field, f"{field} must be a number.")
    if positive and parsed <= 0:
        _fail(field, message or f"{field} must be positive.")
    if minimum is not None and parsed < minimum:
        _fail(field, message or f"{field} must be at least {minimum:g}.")
    if maximum is not None and parsed > maximum:
        _fail(field, message or f"{field} must be at most {maximum:g}.")
    return parsed


def optional_url(value: str | None, field: str) -> None:
    if value in (None, ""):
        return
    if not URL_RE.match(str(value)):
        _fail(field, "Must be a valid URL")


Check = Callable[[Any, str], Any]


def _required(message: str) -> Check:
    return lambda value, field: require(value, field, message)


def _one_of(enum_cls) -> Check:
    def check(value: Any, field: str) -> None:
        if value is None or value == "":
            _fail(field, f"{field} is required.")
        validate_enum(value, values(enum_cls), field)

    return check


def _optional_one_of(enum_cls) -> Check:
    return lambda value, field: None if value in (None, "") else validate_enum(value, values(enum_cls), field)


def _score(value: Any, field: str) -> None:
    number(value, field, minimum=0, maximum=100)


def _days(value: Any, field: str) -> None:
    number(value, field, minimum=1, message="Must be at least 1 day")


def _count(value: Any, field: str) -> None:
    number(value, field, minimum=0)


def _run(values_: Mapping[str, Any], checks: Mapping[str, Check], partial: bool) -> None:
    errors: dict[str, str] = {}
    for field, check in checks.items():
        if partial and field not in values_:
            continue
        try:
            check(values_.get(field), field)
        except ValidationError as exc:
            errors.update(exc.errors or {field: str(exc)})
    if errors:
        raise ValidationError("; ".join(f"{k}: {v}" for k, v in errors.items()), errors)


CLIENT_CHECKS: dict[str, Check] = {
    "company_name": _required("Company name is required"),
    "market": _one_of(Market),
    "industry": _required("Industry is required"),
    "plan_tier": _one_of(PlanTier),
    "status": _one_of(ClientStatus),
    "primary_contact": _required("Contact name is required"),
    "monthly_value": lambda v, f: number(0 if v in (None, "") else v, f, minimum=0, message="Value must be positive"),
    "ghl_url": optional_url,
}

DELIVERABLE_CHECKS: dict[str, Check] = {
    "client_id": _required("Select a client"),
    "service_type": _one_of(ServiceType),
    "name": _required("Name is required"),
    "assigned_to": _required("Assignee is required"),
    "priority": _one_of(Priority),
    "status": _one_of(DeliverableStatus),
    "due_date": _required("Due date is required"),
    "market": _one_of(Market),
}

INVOICE_CHECKS: dict[str, Check] = {
    "client_id": _required("Select a client"),
    "month": _required("Month is required"),
    "amount": lambda v, f: number(v, f, positive=True, message="Amount must be positive"),
    "currency": _one_of(Currency),
    "services_billed": _required("Services description required"),
    "status": _one_of(InvoiceStatus),
    "market": _one_of(Market),
}

TASK_CHECKS: dict[str, Check] = {
    "name": _required("Task name is required"),
    "assigned_to": _required("Assignee is required"),
    "category": _one_of(TaskCategory),
    "status": _one_of(TaskStatus),
    "due_date": _required("Due date is required"),
}

CONTENT_CHECKS: dict[str, Check] = {
    "title": _required("Title is required"),
    "content_type": _one_of(ContentType),
    "platform": _optional_one_of(Platform),
    "status": _one_of(ContentStatus),
    "assigned_to": _required("Assignee is required"),
    "due_date": _required("Due date is required"),
    "market": _one_of(Market),
}

NOTIFICATION_RULE_CHECKS: dict[str, Check] = {
    "name": _required("Rule name is required"),
    "trigger_type": _one_of(TriggerType),
    "channel": _one_of(NotificationChannel),
    "recipients": lambda v, f: None if v else _fail(f, "At least one recipient is required"),
}

CONTENT_REQUEST_CHECKS: dict[str, Check] = {
    "content_type": _required("Content type is required"),
    "topic": _required("Topic is required"),
    "priority": _one_of(RequestPriority),
}

SLA_DEFINITION_CHECKS: dict[str, Check] = {
    "content_type": _required("Content type is required"),
    "brief_to_draft_days": _days,
    "draft_to_review_days": _days,
    "review_to_publish_days": _days,
    "total_days": _days,
}

RETAINER_TIER_CHECKS: dict[str, Check] = {
    "name": _required("Tier name is required"),
    "blogs_per_month": _count,
    "service_pages_per_month": _count,
    "pseo_pages_per_month": _count,
    "social_cascades_per_month": _count,
    "email_sequences_per_month": _count,
    "case_studies_per_month": _count,
}

QUALITY_SCORE_CHECKS: dict[str, Check] = {
    "seo_score": _score,
    "brand_voice_score": _score,
    "uniqueness_score": _score,
    "humanness_score": _score,
    "completeness_score": _score,
}

PERFORMANCE_CHECKS: dict[str, Check] = {
    "impressions": _count,
    "clicks": _count,
    "avg_position": lambda v, f: None if v is None else number(v, f, minimum=0),
    "performance_tier": _optional_one_of(PerformanceTier),
}


PROPOSAL_CHECKS: dict[str, Check] = {
    "client_id": _required("Select a client"),
    "title": _required("Title is required"),
    "currency": _one_of(Currency),
    "status": _one_of(ProposalStatus),
    "valid_until": lambda v, f: None if v in (None, "") else parse_date(str(v), f),
    "sections": lambda v, f: validate_sections(v),
}

TIME_ENTRY_CHECKS: dict[str, Check] = {
    "team_member": _required("Team member is required"),
    "hours": lambda v, f: number(v, f, minimum=0.25, message="Minimum 0.25 hours"),
    "date": lambda v, f: require(v, f, "Date is required") or parse_date(str(v), f),
    "hourly_rate": lambda v, f: None if v in (None, "") else number(v, f, minimum=0),
}

CONTENT_REVIEW_CHECKS: dict[str, Check] = {
    "reviewer_type": _one_of(ReviewerType),
    "reviewer_name": _required("Reviewer name is required"),
    "action": _one_of(ReviewAction),
}

TEMPLATE_CHECKS: dict[str, Check] = {
    "name": _required("Template name is required"),
    "category": _required("Category is required"),
}


def validate_client(values_: Mapping[str, Any], partial: bool = False) -> None:
    _run(values_, CLIENT_CHECKS, partial)
    start = values_.get("contract_start") or None
    end = values_.get("contract_end") or None
    if start and end and parse_date(str(end)[:10], "contract_end") < parse_date(str(start)[:10], "contract_start"):
        _fail("contract_end", "Contract end must be on or after contract start")


def validate_deliverable(values_: Mapping[str, Any], partial: bool = False) -> None:
    _run(values_, DELIVERABLE_CHECKS, partial)
    # a delivery date only exists on a delivered or approved deliverable
    if values_.get("delivery_date") and values_.get("status") not in DELIVERED_STATUSES:
        _fail("delivery_date", "Delivery date needs a Delivered or Approved status")


def validate_invoice(values_: Mapping[str, Any], partial: bool = False) -> None:
    _run(values_, INVOICE_CHECKS, partial)


def validate_task(values_: Mapping[str, Any], partial: bool = False) -> None:
    _run(values_, TASK_CHECKS, partial)


def validate_content(values_: Mapping[str, Any], partial: bool = False) -> None:
    _run(values_, CONTENT_CHECKS, partial)


def validate_notification_rule(values_: Mapping[str, Any], partial: bool = False) -> None:
    _run(values_, NOTIFICATION_RULE_CHECKS, partial)


def validate_content_request(values_: Mapping[str, Any], partial: bool = False) -> None:
    _run(values_, CONTENT_REQUEST_CHECKS, partial)


def validate_sla_definition(values_: Mapping[str, Any], partial: bool = False) -> None:
    _run(values_, SLA_DEFINITION_CHECKS, partial)


def validate_retainer_tier(values_: Mapping[str, Any], partial: bool = False) -> None:
    _run(values_, RETAINER_TIER_CHECKS, partial)


def validate_quality_scores(values_: Mapping[str, Any]) -> None:
    _run(values_, QUALITY_SCORE_CHECKS, partial=False)


def validate_performance(values_: Mapping[str, Any]) -> None:
    _run(values_, PERFORMANCE_CHECKS, partial=True)


def validate_sections(sections: Any) -> None:
    """Sections are a list of ``{title, items: [{name, qty, rate}]}`` mappings."""
    if not isinstance(sections, list) or not sections:
        _fail("sections", "At least one section is required")
    for s_index, section in enumerate(sections):
        if not isinstance(section, Mapping) or not isinstance(section.get("items"), list):
            _fail("sections", f"Section {s_index + 1} needs an items list")
        for i_index, item in enumerate(section["items"]):
            where = f"Section {s_index + 1} item {i_index + 1}"
            if not isinstance(item, Mapping):
                _fail("sections", f"{where} must be a mapping")
            number(item.get("qty"), "sections", minimum=0, message=f"{where}: qty must not be negative")
            number(item.get("rate"), "sections", minimum=0, message=f"{where}: rate must not be negative")


def validate_proposal(values_: Mapping[str, Any], partial: bool = False) -> None:
    _run(values_, PROPOSAL_CHECKS, partial)


def validate_time_entry(values_: Mapping[str, Any], partial: bool = False) -> None:
    _run(values_, TIME_ENTRY_CHECKS, partial)


def validate_content_review(values_: Mapping[str, Any]) -> None:
    _run(values_, CONTENT_REVIEW_CHECKS, partial=False)


def validate_template(values_: Mapping[str, Any], partial: bool = False) -> None:
    _run(values_, TEMPLATE_CHECKS, partial)
