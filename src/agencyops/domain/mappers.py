from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from agencyops.domain import models


class RowMappingError(ValueError):
    pass


@dataclass(frozen=True)
class Field:
    attr: str
    column: str | None = None
    kind: str = "text"
    optional: bool = True
    writable: bool = True

    @property
    def col(self) -> str:
        return self.column or self.attr


def _read(name: str, **kwargs: Any) -> Field:
    return Field(name, writable=False, **kwargs)


def _req(name: str, column: str | None = None, kind: str = "text") -> Field:
    return Field(name, column, kind, optional=False)


def _num(name: str, optional: bool = False) -> Field:
    return Field(name, kind="number", optional=optional)


ID = _read("id", optional=False)
CREATED = _read("created_at")
UPDATED = _read("updated_at")

CLIENT_FIELDS = (
    ID,
    Field("client_code", "client_id"),
    _req("company_name"),
    _req("market"),
    Field("industry"),
    _req("plan_tier"),
    Field("ghl_url"),
    _req("status"),
    Field("primary_contact"),
    Field("contract_start"),
    Field("contract_end"),
    _num("monthly_value"),
    _req("pipeline_stage"),
    Field("last_contacted_at"),
    CREATED,
    UPDATED,
)

DELIVERABLE_FIELDS = (
    ID,
    Field("deliverable_code", "deliverable_id"),
    _req("client_id"),
    _read("client_name"),
    Field("service_type"),
    _req("name"),
    Field("description"),
    Field("assigned_to"),
    _req("priority"),
    _req("status"),
    Field("due_date"),
    Field("delivery_date"),
    Field("file_link"),
    Field("client_approved", kind="bool", optional=False),
    Field("market"),
    CREATED,
    UPDATED,
)

INVOICE_FIELDS = (
    ID,
    Field("invoice_code", "invoice_id"),
    _req("client_id"),
    _read("client_name"),
    Field("month"),
    _num("amount"),
    _req("currency"),
    Field("services_billed"),
    Field("invoice_file_link"),
    _req("status"),
    Field("payment_date"),
    Field("market"),
    CREATED,
    UPDATED,
)

TASK_FIELDS = (
    ID,
    Field("task_code", "task_id"),
    _req("name"),
    Field("client_id"),
    _read("client_name"),
    Field("deliverable_id"),
    _read("deliverable_name"),
    Field("assigned_to"),
    Field("category"),
    _req("status"),
    Field("due_date"),
    Field("notes"),
    CREATED,
    UPDATED,
)

CONTENT_FIELDS = (
    ID,
    Field("content_code", "content_id"),
    Field("client_id"),
    _read("client_name"),
    _req("title"),
    Field("content_type"),
    Field("platform"),
    _req("status"),
    Field("assigned_to"),
    Field("due_date"),
    Field("publish_date"),
    Field("content_body"),
    Field("file_link"),
    Field("notes"),
    Field("market"),
    CREATED,
    UPDATED,
)

QUALITY_SCORE_FIELDS = (
    ID,
    _req("content_id"),
    Field("seo_score", kind="int", optional=False),
    Field("brand_voice_score", kind="int", optional=False),
    Field("uniqueness_score", kind="int", optional=False),
    Field("humanness_score", kind="int", optional=False),
    Field("completeness_score", kind="int", optional=False),
    Field("composite_score", kind="int", optional=False),
    Field("scored_by"),
    Field("scored_at"),
)

PERFORMANCE_FIELDS = (
    ID,
    _req("content_id"),
    Field("impressions", kind="int", optional=False),
    Field("clicks", kind="int", optional=False),
    _num("avg_position", optional=True),
    Field("performance_tier"),
    Field("last_updated_at"),
)

ACTIVITY_LOG_FIELDS = (
    ID,
    Field("client_id"),
    Field("client_name"),
    _req("entity_type"),
    Field("entity_id"),
    _req("action"),
    Field("description"),
    Field("performed_by"),
    Field("link_path"),
    Field("is_read", kind="bool", optional=False),
    CREATED,
)

NOTIFICATION_FIELDS = (
    ID,
    _req("user_email"),
    _req("title"),
    Field("message"),
    _req("type"),
    Field("is_read", kind="bool", optional=False),
    Field("link"),
    CREATED,
)

NOTIFICATION_RULE_FIELDS = (
    ID,
    _req("name"),
    _req("trigger_type"),
    _req("channel"),
    Field("recipients", kind="list", optional=False),
    Field("is_active", kind="bool", optional=False),
    Field("conditions", kind="json", optional=False),
    CREATED,
)

PORTAL_ACCESS_FIELDS = (
    ID,
    _req("client_id"),
    _req("access_token"),
    Field("contact_email"),
    Field("contact_name"),
    Field("is_active", kind="bool", optional=False),
    Field("last_accessed_at"),
    CREATED,
)

PORTAL_MESSAGE_FIELDS = (
    ID,
    _req("client_id"),
    Field("deliverable_id"),
    _req("sender_type"),
    Field("sender_name"),
    _req("content"),
    Field("is_read", kind="bool", optional=False),
    CREATED,
)

CONTENT_REQUEST_FIELDS = (
    ID,
    Field("request_code", "request_id"),
    _req("client_id"),
    _read("client_name"),
    Field("content_type"),
    _req("topic"),
    Field("target_keyword"),
    _req("priority"),
    Field("desired_date"),
    Field("reference_urls", kind="list", optional=False),
    Field("reference_notes"),
    _req("status"),
    CREATED,
)

SLA_DEFINITION_FIELDS = (
    ID,
    _req("content_type"),
    Field("brief_to_draft_days", kind="int", optional=False),
    Field("draft_to_review_days", kind="int", optional=False),
    Field("review_to_publish_days", kind="int", optional=False),
    Field("total_days", kind="int", optional=False),
)

RETAINER_TIER_FIELDS = (
    ID,
    _req("name"),
    Field("blogs_per_month", kind="int", optional=False),
    Field("service_pages_per_month", kind="int", optional=False),
    Field("pseo_pages_per_month", kind="int", optional=False),
    Field("social_cascades_per_month", kind="int", optional=False),
    Field("email_sequences_per_month", kind="int", optional=False),
    Field("case_studies_per_month", kind="int", optional=False),
)

RETAINER_USAGE_FIELDS = (
    ID,
    _req("client_id"),
    _req("month"),
    Field("blogs_used", kind="int", optional=False),
    Field("service_pages_used", kind="int", optional=False),
    Field("pseo_pages_used", kind="int", optional=False),
    Field("social_cascades_used", kind="int", optional=False),
    Field("email_sequences_used", kind="int", optional=False),
    Field("case_studies_used", kind="int", optional=False),
)

TEAM_MEMBER_FIELDS = (
    ID,
    _req("name"),
    Field("email"),
    Field("role"),
    Field("is_active", kind="bool", optional=False),
)

PROPOSAL_FIELDS = (
    ID,
    Field("proposal_code"),
    _req("client_id"),
    _read("client_name"),
    _req("title"),
    Field("sections", kind="list", optional=False),
    _num("total_amount"),
    _req("currency"),
    _req("status"),
    Field("valid_until"),
    Field("notes"),
    Field("viewed_at"),
    Field("accepted_at"),
    CREATED,
    Field("updated_at"),
)

PROJECT_TEMPLATE_FIELDS = (
    ID,
    _req("name"),
    Field("description"),
    Field("category"),
    CREATED,
)

TEMPLATE_DELIVERABLE_FIELDS = (
    ID,
    _req("template_id"),
    _req("name"),
    Field("description"),
    Field("sort_order", kind="int", optional=False),
)

TEMPLATE_TASK_FIELDS = (
    ID,
    _req("template_deliverable_id"),
    _req("name"),
    _req("priority"),
)

CONTENT_VERSION_FIELDS = (
    ID,
    _req("content_id"),
    Field("version_number", kind="int", optional=False),
    _req("title"),
    Field("content_body"),
    Field("author"),
    Field("notes"),
    CREATED,
)

CONTENT_REVIEW_FIELDS = (
    ID,
    _req("content_id"),
    _req("reviewer_type"),
    _req("reviewer_name"),
    _req("action"),
    Field("comments"),
    CREATED,
)

TIME_ENTRY_FIELDS = (
    ID,
    _req("team_member"),
    _num("hours"),
    _req("date"),
    Field("notes"),
    Field("is_billable", kind="bool", optional=False),
    _num("hourly_rate", optional=True),
    Field("client_id"),
    Field("task_id"),
    Field("deliverable_id"),
    CREATED,
)


def to_number(value: Any, column: str = "value") -> int | float:
    """Coerce a numeric column; integral values come back as int."""
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        parsed = value
    else:
        try:
            parsed = float(str(value).strip())
        except ValueError as exc:
            raise RowMappingError(f"{column} is not numeric: {value!r}") from exc
    if isinstance(parsed, float) and parsed.is_integer():
        return int(parsed)
    return parsed


def _read_value(field: Field, value: Any) -> Any:
    if field.kind == "number":
        if value is None and field.optional:
            return None
        return to_number(value, field.col)
    if field.kind == "int":
        return int(to_number(value, field.col))
    if field.kind == "bool":
        return bool(value)
    if field.kind == "json":
        return dict(value) if value else {}
    if field.kind == "list":
        return list(value) if value else []
    return value


def map_row(cls: type, fields: tuple[Field, ...], row: Mapping[str, Any]) -> Any:
    kwargs: dict[str, Any] = {}
    for field in fields:
        if field.col not in row:
            continue
        value = _read_value(field, row[field.col])
        if value is None and not field.optional:
            continue
        kwargs[field.attr] = value
    try:
        return cls(**kwargs)
    except TypeError as exc:
        raise RowMappingError(f"{cls.__name__} row is incomplete: {exc}") from exc


def _input_items(values: Mapping[str, Any] | Any) -> dict[str, Any]:
    if dataclasses.is_dataclass(values) and not isinstance(values, type):
        return {k: v for k, v in dataclasses.asdict(values).items() if v is not None}
    return dict(values)


def _write_value(field: Field, value: Any) -> Any:
    if isinstance(value, Enum):
        value = value.value
    if field.optional and (value is None or value == ""):
        return None
    if field.kind in {"number", "int"} and isinstance(value, str):
        return to_number(value, field.col)
    if field.kind == "list" and value is not None and not isinstance(value, list):
        return list(value)
    return value


def to_row(fields: tuple[Field, ...], values: Mapping[str, Any] | Any) -> dict[str, Any]:
    """Only attributes present in ``values`` are written; read-only columns never are."""
    items = _input_items(values)
    row: dict[str, Any] = {}
    for field in fields:
        if not field.writable or field.attr not in items:
            continue
        row[field.col] = _write_value(field, items[field.attr])
    return row


def map_client(row: Mapping[str, Any]) -> models.Client:
    return map_row(models.Client, CLIENT_FIELDS, row)


def to_client_row(values: Mapping[str, Any] | Any) -> dict[str, Any]:
    return to_row(CLIENT_FIELDS, values)


def map_deliverable(row: Mapping[str, Any]) -> models.Deliverable:
    return map_row(models.Deliverable, DELIVERABLE_FIELDS, row)


def to_deliverable_row(values: Mapping[str, Any] | Any) -> dict[str, Any]:
    return to_row(DELIVERABLE_FIELDS, values)


def map_invoice(row: Mapping[str, Any]) -> models.Invoice:
    return map_row(models.Invoice, INVOICE_FIELDS, row)


def to_invoice_row(values: Mapping[str, Any] | Any) -> dict[str, Any]:
    return to_row(INVOICE_FIELDS, values)


def map_task(row: Mapping[str, Any]) -> models.Task:
    return map_row(models.Task, TASK_FIELDS, row)


def to_task_row(values: Mapping[str, Any] | Any) -> dict[str, Any]:
    return to_row(TASK_FIELDS, values)


def map_content_item(row: Mapping[str, Any]) -> models.ContentItem:
    return map_row(models.ContentItem, CONTENT_FIELDS, row)


def to_content_row(values: Mapping[str, Any] | Any) -> dict[str, Any]:
    return to_row(CONTENT_FIELDS, values)


def map_quality_score(row: Mapping[str, Any]) -> models.QualityScore:
    return map_row(models.QualityScore, QUALITY_SCORE_FIELDS, row)


def map_content_performance(row: Mapping[str, Any]) -> models.ContentPerformance:
    return map_row(models.ContentPerformance, PERFORMANCE_FIELDS, row)


def map_activity_log(row: Mapping[str, Any]) -> models.ActivityLog:
    return map_row(models.ActivityLog, ACTIVITY_LOG_FIELDS, row)


def to_activity_log_row(values: Mapping[str, Any] | Any) -> dict[str, Any]:
    return to_row(ACTIVITY_LOG_FIELDS, values)


def map_notification(row: Mapping[str, Any]) -> models.Notification:
    return map_row(models.Notification, NOTIFICATION_FIELDS, row)


def map_notification_rule(row: Mapping[str, Any]) -> models.NotificationRule:
    return map_row(models.NotificationRule, NOTIFICATION_RULE_FIELDS, row)


def to_notification_rule_row(values: Mapping[str, Any] | Any) -> dict[str, Any]:
    return to_row(NOTIFICATION_RULE_FIELDS, values)


def map_portal_access(row: Mapping[str, Any]) -> models.PortalAccess:
    return map_row(models.PortalAccess, PORTAL_ACCESS_FIELDS, row)


def to_portal_access_row(values: Mapping[str, Any] | Any) -> dict[str, Any]:
    return to_row(PORTAL_ACCESS_FIELDS, values)


def map_portal_message(row: Mapping[str, Any]) -> models.PortalMessage:
    return map_row(models.PortalMessage, PORTAL_MESSAGE_FIELDS, row)


def to_portal_message_row(values: Mapping[str, Any] | Any) -> dict[str, Any]:
    return to_row(PORTAL_MESSAGE_FIELDS, values)


def map_content_request(row: Mapping[str, Any]) -> models.ContentRequest:
    return map_row(models.ContentRequest, CONTENT_REQUEST_FIELDS, row)


def to_content_request_row(values: Mapping[str, Any] | Any) -> dict[str, Any]:
    return to_row(CONTENT_REQUEST_FIELDS, values)


def map_sla_definition(row: Mapping[str, Any]) -> models.SlaDefinition:
    return map_row(models.SlaDefinition, SLA_DEFINITION_FIELDS, row)


def to_sla_definition_row(values: Mapping[str, Any] | Any) -> dict[str, Any]:
    return to_row(SLA_DEFINITION_FIELDS, values)


def map_retainer_tier(row: Mapping[str, Any]) -> models.RetainerTier:
    return map_row(models.RetainerTier, RETAINER_TIER_FIELDS, row)


def to_retainer_tier_row(values: Mapping[str, Any] | Any) -> dict[str, Any]:
    return to_row(RETAINER_TIER_FIELDS, values)


def map_retainer_usage(row: Mapping[str, Any]) -> models.RetainerUsage:
    return map_row(models.RetainerUsage, RETAINER_USAGE_FIELDS, row)


def to_retainer_usage_row(values: Mapping[str, Any] | Any) -> dict[str, Any]:
    return to_row(RETAINER_USAGE_FIELDS, values)


def map_team_member(row: Mapping[str, Any]) -> models.TeamMember:
    return map_row(models.TeamMember, TEAM_MEMBER_FIELDS, row)


def map_proposal(row: Mapping[str, Any]) -> models.Proposal:
    # the list query embeds the client as clients(company_name)
    client = row.get("clients") or {}
    if "client_name" not in row and client.get("company_name"):
        row = {**row, "client_name": client["company_name"]}
    return map_row(models.Proposal, PROPOSAL_FIELDS, row)


def to_proposal_row(values: Mapping[str, Any] | Any) -> dict[str, Any]:
    return to_row(PROPOSAL_FIELDS, values)


def map_template_task(row: Mapping[str, Any]) -> models.TemplateTask:
    return map_row(models.TemplateTask, TEMPLATE_TASK_FIELDS, row)


def map_template_deliverable(row: Mapping[str, Any]) -> models.TemplateDeliverable:
    deliverable = map_row(models.TemplateDeliverable, TEMPLATE_DELIVERABLE_FIELDS, row)
    tasks = tuple(map_template_task(task) for task in row.get("template_tasks") or ())
    return dataclasses.replace(deliverable, tasks=tasks)


def map_project_template(row: Mapping[str, Any]) -> models.ProjectTemplate:
    template = map_row(models.ProjectTemplate, PROJECT_TEMPLATE_FIELDS, row)
    deliverables = sorted(
        (map_template_deliverable(d) for d in row.get("template_deliverables") or ()),
        key=lambda d: d.sort_order,
    )
    return dataclasses.replace(template, deliverables=tuple(deliverables))


def to_project_template_row(values: Mapping[str, Any] | Any) -> dict[str, Any]:
    return to_row(PROJECT_TEMPLATE_FIELDS, values)


def map_content_version(row: Mapping[str, Any]) -> models.ContentVersion:
    return map_row(models.ContentVersion, CONTENT_VERSION_FIELDS, row)


def to_content_version_row(values: Mapping[str, Any] | Any) -> dict[str, Any]:
    return to_row(CONTENT_VERSION_FIELDS, values)


def map_content_review(row: Mapping[str, Any]) -> models.ContentReview:
    return map_row(models.ContentReview, CONTENT_REVIEW_FIELDS, row)


def to_content_review_row(values: Mapping[str, Any] | Any) -> dict[str, Any]:
    return to_row(CONTENT_REVIEW_FIELDS, values)


def map_time_entry(row: Mapping[str, Any]) -> models.TimeEntry:
    return map_row(models.TimeEntry, TIME_ENTRY_FIELDS, row)


def to_time_entry_row(values: Mapping[str, Any] | Any) -> dict[str, Any]:
    return to_row(TIME_ENTRY_FIELDS, values)
