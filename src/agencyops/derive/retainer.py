from __future__ import annotations

from dataclasses import dataclass

from agencyops.domain.models import RetainerTier, RetainerUsage

# (label, tier quota attribute, usage attribute)
METERS: tuple[tuple[str, str, str], ...] = (
    ("Blogs", "blogs_per_month", "blogs_used"),
    ("Service Pages", "service_pages_per_month", "service_pages_used"),
    ("pSEO Pages", "pseo_pages_per_month", "pseo_pages_used"),
    ("Social Cascades", "social_cascades_per_month", "social_cascades_used"),
    ("Email Sequences", "email_sequences_per_month", "email_sequences_used"),
    ("Case Studies", "case_studies_per_month", "case_studies_used"),
)


def usage_percent(used: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return min(used / total * 100, 100.0)


def usage_level(used: int, total: int) -> str:
    pct = usage_percent(used, total)
    if pct > 90:
        return "critical"
    if pct >= 75:
        return "warning"
    return "ok"


@dataclass(frozen=True)
class UsageMeter:
    label: str
    used: int
    total: int

    @property
    def percent(self) -> float:
        return usage_percent(self.used, self.total)

    @property
    def level(self) -> str:
        return usage_level(self.used, self.total)


def find_tier(tiers: list[RetainerTier], plan_tier: str) -> RetainerTier | None:
    return next((t for t in tiers if t.name == plan_tier), None)


def usage_meters(tier: RetainerTier, usage: RetainerUsage | None) -> list[UsageMeter]:
    """One meter per quota; a month with no usage row counts as nothing used."""
    return [
        UsageMeter(label, getattr(usage, used_attr) if usage else 0, getattr(tier, quota_attr))
        for label, quota_attr, used_attr in METERS
    ]
