from __future__ import annotations

from enum import Enum


class Market(str, Enum):
    SG = "SG"
    ID = "ID"
    US = "US"


class PlanTier(str, Enum):
    STARTER = "Starter"
    GROWTH = "Growth"
    PRO = "Pro"


class ClientStatus(str, Enum):
    PROSPECT = "Prospect"
    ONBOARDING = "Onboarding"
    ACTIVE = "Active"
    CHURNED = "Churned"


class PipelineStage(str, Enum):
    LEAD = "lead"
    QUALIFIED = "qualified"
    PROPOSAL_SENT = "proposal_sent"
    NEGOTIATION = "negotiation"
    WON = "won"
    LOST = "lost"


class Priority(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class ServiceType(str, Enum):
    SEO = "SEO"
    VOICE_AI = "Voice AI"
    CRM = "CRM"
    PAID_MEDIA = "Paid Media"
    CONTENT = "Content"
    AUTOMATION = "Automation"
    STRATEGY = "Strategy"


class DeliverableStatus(str, Enum):
    NOT_STARTED = "Not Started"
    IN_PROGRESS = "In Progress"
    REVIEW = "Review"
    DELIVERED = "Delivered"
    APPROVED = "Approved"


class Currency(str, Enum):
    SGD = "SGD"
    USD = "USD"
    IDR = "IDR"


class InvoiceStatus(str, Enum):
    DRAFT = "Draft"
    SENT = "Sent"
    PAID = "Paid"
    OVERDUE = "Overdue"


class TaskCategory(str, Enum):
    ADMIN = "Admin"
    STRATEGY = "Strategy"
    CONTENT = "Content"
    TECH = "Tech"
    SALES = "Sales"
    OPS = "Ops"


class TaskStatus(str, Enum):
    TODO = "To Do"
    IN_PROGRESS = "In Progress"
    DONE = "Done"
    BLOCKED = "Blocked"


class ContentType(str, Enum):
    BLOG = "Blog"
    SOCIAL_POST = "Social Post"
    EMAIL_CAMPAIGN = "Email Campaign"
    VIDEO = "Video"
    CASE_STUDY = "Case Study"
    NEWSLETTER = "Newsletter"


class Platform(str, Enum):
    WEBSITE = "Website"
    INSTAGRAM = "Instagram"
    LINKEDIN = "LinkedIn"
    FACEBOOK = "Facebook"
    YOUTUBE = "YouTube"
    EMAIL = "Email"
    TIKTOK = "TikTok"


class ContentStatus(str, Enum):
    IDEATION = "Ideation"
    DRAFT = "Draft"
    REVIEW = "Review"
    APPROVED = "Approved"
    SCHEDULED = "Scheduled"
    PUBLISHED = "Published"


class PerformanceTier(str, Enum):
    HIGH = "high"
    MID = "mid"
    LOW = "low"


class TriggerType(str, Enum):
    OVERDUE_DELIVERABLE = "overdue_deliverable"
    OVERDUE_INVOICE = "overdue_invoice"
    STATUS_CHANGE = "status_change"
    UPCOMING_DUE = "upcoming_due"
    NEW_ASSIGNMENT = "new_assignment"
    CLIENT_ONBOARDING = "client_onboarding"


class NotificationChannel(str, Enum):
    EMAIL = "email"
    IN_APP = "in_app"
    BOTH = "both"


class SenderType(str, Enum):
    CLIENT = "client"
    AGENCY = "agency"


class UserRole(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    MEMBER = "member"


class RequestStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CONVERTED = "converted"


class RequestPriority(str, Enum):
    STANDARD = "standard"
    URGENT = "urgent"
    RUSH = "rush"


class ActivityKind(str, Enum):
    DELIVERABLE = "deliverable"
    INVOICE = "invoice"
    TASK = "task"
    CONTENT = "content"


class SlaStatus(str, Enum):
    ON_TRACK = "on_track"
    WARNING = "warning"
    CRITICAL = "critical"
    BREACHED = "breached"


class HealthTrend(str, Enum):
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


class SuggestionPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ProposalStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    VIEWED = "viewed"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class ReviewerType(str, Enum):
    CLIENT = "client"
    AGENCY = "agency"


class ReviewAction(str, Enum):
    APPROVE = "approve"
    REQUEST_CHANGES = "request_changes"
    REJECT = "reject"


DELIVERED_STATUSES = frozenset({DeliverableStatus.DELIVERED.value, DeliverableStatus.APPROVED.value})


def values(enum_cls: type[Enum]) -> list[str]:
    return [member.value for member in enum_cls]
