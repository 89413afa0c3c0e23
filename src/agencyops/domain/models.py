from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# Dates and timestamps stay as the ISO strings the store returns; the derive
# package parses them on demand.


@dataclass(frozen=True)
class Client:
    id: str
    company_name: str
    client_code: str | None = None
    market: str = "SG"
    industry: str | None = None
    plan_tier: str = "Starter"
    ghl_url: str | None = None
    status: str = "Prospect"
    primary_contact: str | None = None
    contract_start: str | None = None
    contract_end: str | None = None
    monthly_value: float = 0
    pipeline_stage: str = "lead"
    last_contacted_at: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass(frozen=True)
class Deliverable:
    id: str
    client_id: str
    name: str
    deliverable_code: str | None = None
    client_name: str | None = None
    service_type: str | None = None
    description: str | None = None
    assigned_to: str | None = None
    priority: str = "Medium"
    status: str = "Not Started"
    due_date: str | None = None
    delivery_date: str | None = None
    file_link: str | None = None
    client_approved: bool = False
    market: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass(frozen=True)
class Invoice:
    id: str
    client_id: str
    amount: float
    invoice_code: str | None = None
    client_name: str | None = None
    month: str | None = None
    currency: str = "SGD"
    services_billed: str | None = None
    invoice_file_link: str | None = None
    status: str = "Draft"
    payment_date: str | None = None
    market: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass(frozen=True)
class Task:
    id: str
    name: str
    task_code: str | None = None
    client_id: str | None = None
    client_name: str | None = None
    deliverable_id: str | None = None
    deliverable_name: str | None = None
    assigned_to: str | None = None
    category: str | None = None
    status: str = "To Do"
    due_date: str | None = None
    notes: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass(frozen=True)
class ContentItem:
    id: str
    title: str
    content_code: str | None = None
    client_id: str | None = None
    client_name: str | None = None
    content_type: str | None = None
    platform: str | None = None
    status: str = "Ideation"
    assigned_to: str | None = None
    due_date: str | None = None
    publish_date: str | None = None
    content_body: str | None = None
    file_link: str | None = None
    notes: str | None = None
    market: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass(frozen=True)
class QualityScore:
    id: str
    content_id: str
    seo_score: int = 0
    brand_voice_score: int = 0
    uniqueness_score: int = 0
    humanness_score: int = 0
    completeness_score: int = 0
    composite_score: int = 0
    scored_by: str | None = None
    scored_at: str | None = None


@dataclass(frozen=True)
class ContentPerformance:
    id: str
    content_id: str
    impressions: int = 0
    clicks: int = 0
    avg_position: float | None = None
    performance_tier: str | None = None
    last_updated_at: str | None = None


@dataclass(frozen=True)
class ActivityLog:
    id: str
    entity_type: str
    action: str
    description: str | None = None
    client_id: str | None = None
    client_name: str | None = None
    entity_id: str | None = None
    performed_by: str | None = None
    link_path: str | None = None
    is_read: bool = False
    created_at: str | None = None


@dataclass(frozen=True)
class Notification:
    id: str
    user_email: str
    title: str
    message: str | None = None
    type: str = "info"
    is_read: bool = False
    link: str | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class NotificationRule:
    id: str
    name: str
    trigger_type: str
    channel: str = "in_app"
    recipients: list[str] = field(default_factory=list)
    is_active: bool = True
    conditions: dict[str, Any] = field(default_factory=dict)
    created_at: str | None = None


@dataclass(frozen=True)
class PortalAccess:
    id: str
    client_id: str
    access_token: str
    contact_email: str | None = None
    contact_name: str | None = None
    is_active: bool = True
    last_accessed_at: str | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class PortalMessage:
    id: str
    client_id: str
    sender_type: str
    content: str
    sender_name: str | None = None
    deliverable_id: str | None = None
    is_read: bool = False
    created_at: str | None = None


@dataclass(frozen=True)
class ContentRequest:
    id: str
    client_id: str
    topic: str
    request_code: str | None = None
    client_name: str | None = None
    content_type: str | None = None
    target_keyword: str | None = None
    priority: str = "standard"
    desired_date: str | None = None
    reference_urls: list[str] = field(default_factory=list)
    reference_notes: str | None = None
    status: str = "pending"
    created_at: str | None = None


@dataclass(frozen=True)
class SlaDefinition:
    id: str
    content_type: str
    brief_to_draft_days: int = 0
    draft_to_review_days: int = 0
    review_to_publish_days: int = 0
    total_days: int = 0


@dataclass(frozen=True)
class RetainerTier:
    id: str
    name: str
    blogs_per_month: int = 0
    service_pages_per_month: int = 0
    pseo_pages_per_month: int = 0
    social_cascades_per_month: int = 0
    email_sequences_per_month: int = 0
    case_studies_per_month: int = 0


@dataclass(frozen=True)
class RetainerUsage:
    id: str
    client_id: str
    month: str
    blogs_used: int = 0
    service_pages_used: int = 0
    pseo_pages_used: int = 0
    social_cascades_used: int = 0
    email_sequences_used: int = 0
    case_studies_used: int = 0


@dataclass(frozen=True)
class TeamMember:
    id: str
    name: str
    email: str | None = None
    role: str | None = None
    is_active: bool = True


@dataclass(frozen=True)
class Proposal:
    id: str
    client_id: str
    title: str
    proposal_code: str | None = None
    client_name: str | None = None
    # each section is {"title": str, "items": [{"name": str, "qty": number, "rate": number}]}
    sections: list[dict[str, Any]] = field(default_factory=list)
    total_amount: float = 0
    currency: str = "SGD"
    status: str = "draft"
    valid_until: str | None = None
    notes: str | None = None
    viewed_at: str | None = None
    accepted_at: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass(frozen=True)
class TemplateTask:
    id: str
    template_deliverable_id: str
    name: str
    priority: str = "medium"


@dataclass(frozen=True)
class TemplateDeliverable:
    id: str
    template_id: str
    name: str
    description: str | None = None
    sort_order: int = 0
    tasks: tuple[TemplateTask, ...] = ()


@dataclass(frozen=True)
class ProjectTemplate:
    id: str
    name: str
    description: str | None = None
    category: str | None = None
    deliverables: tuple[TemplateDeliverable, ...] = ()
    created_at: str | None = None


@dataclass(frozen=True)
class ContentVersion:
    id: str
    content_id: str
    version_number: int
    title: str
    content_body: str | None = None
    author: str | None = None
    notes: str | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class ContentReview:
    id: str
    content_id: str
    reviewer_type: str
    reviewer_name: str
    action: str
    comments: str | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class TimeEntry:
    id: str
    team_member: str
    hours: float
    date: str
    notes: str | None = None
    is_billable: bool = True
    hourly_rate: float | None = None
    client_id: str | None = None
    task_id: str | None = None
    deliverable_id: str | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class UserProfile:
    email: str
    full_name: str
    role: str = "member"
    avatar_url: str | None = None
    market: str | None = None


@dataclass(frozen=True)
class Session:
    access_token: str
    user_id: str
    profile: UserProfile
    expires_at: str | None = None


@dataclass(frozen=True)
class CalendarEvent:
    id: str
    kind: str
    name: str
    due_date: str
    status: str | None = None
    client_name: str | None = None
