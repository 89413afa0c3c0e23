from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from agencyops.derive.quality import composite_score
from agencyops.domain import rules
from agencyops.domain.mappers import (
    map_content_item,
    map_content_performance,
    map_content_request,
    map_content_review,
    map_content_version,
    map_quality_score,
    to_content_request_row,
    to_content_review_row,
    to_content_row,
    to_content_version_row,
)
from agencyops.domain.models import (
    ContentItem,
    ContentPerformance,
    ContentRequest,
    ContentReview,
    ContentVersion,
    QualityScore,
)
from agencyops.domain.stages import RequestStatus, values
from agencyops.services.repository import EntitySpec, Repository
from agencyops.services.utils import utc_now_iso
from agencyops.store.supabase import StoreError

CONTENT = EntitySpec(
    name="content",
    label="Content item",
    read_table="content_with_client",
    write_table="content_items",
    mapper=map_content_item,
    to_row=to_content_row,
    order="due_date",
    desc=False,
    filters={
        "assignee": "assigned_to",
        "market": "market",
        "client_id": "client_id",
        "status": "status",
        "content_type": "content_type",
    },
    search_columns=("title", "content_id"),
    validator=rules.validate_content,
)

CONTENT_REQUESTS = EntitySpec(
    name="content-requests",
    label="Content request",
    read_table="content_requests_with_client",
    write_table="content_requests",
    mapper=map_content_request,
    to_row=to_content_request_row,
    order="created_at",
    desc=True,
    filters={"client_id": "client_id", "status": "status"},
    validator=rules.validate_content_request,
)

QUALITY_COLUMNS = ("seo_score", "brand_voice_score", "uniqueness_score", "humanness_score", "completeness_score")


class ContentRepository(Repository[ContentItem]):
    def __init__(self, store, cache, notifier=None, events=None) -> None:
        super().__init__(store, cache, CONTENT, notifier, events)

    def quality_score(self, content_id: str) -> QualityScore | None:
        def load() -> QualityScore | None:
            row = self.store.fetch_one("quality_scores", eq={"content_id": content_id})
            return map_quality_score(row) if row else None

        return self.cache.fetch("quality-scores", {"content_id": content_id}, load)

    def score_quality(
        self, content_id: str, scores: Mapping[str, Any], scored_by: str | None = None
    ) -> QualityScore:
        rules.validate_quality_scores(scores)
        row: dict[str, Any] = {"content_id": content_id}
        row.update({column: int(scores[column]) for column in QUALITY_COLUMNS})
        row["composite_score"] = composite_score(row)
        row["scored_at"] = utc_now_iso()
        if scored_by:
            row["scored_by"] = scored_by
        saved = self._upsert("quality_scores", row, "quality-scores", "Quality score saved")
        return map_quality_score(saved)

    def performance(self, content_id: str) -> ContentPerformance | None:
        def load() -> ContentPerformance | None:
            row = self.store.fetch_one("content_performance", eq={"content_id": content_id})
            return map_content_performance(row) if row else None

        return self.cache.fetch("content-performance", {"content_id": content_id}, load)

    def record_performance(self, content_id: str, metrics: Mapping[str, Any]) -> ContentPerformance:
        rules.validate_performance(metrics)
        row: dict[str, Any] = {
            "content_id": content_id,
            "impressions": int(metrics.get("impressions") or 0),
            "clicks": int(metrics.get("clicks") or 0),
            "last_updated_at": utc_now_iso(),
        }
        if metrics.get("avg_position") is not None:
            row["avg_position"] = float(metrics["avg_position"])
        if metrics.get("performance_tier"):
            row["performance_tier"] = metrics["performance_tier"]
        saved = self._upsert("content_performance", row, "content-performance", "Performance data saved")
        return map_content_performance(saved)

    def versions(self, content_id: str) -> list[ContentVersion]:
        def load() -> list[ContentVersion]:
            rows = self.store.fetch_all(
                "content_versions", eq={"content_id": content_id}, order="version_number", desc=True
            )
            return [map_content_version(row) for row in rows]

        return self.cache.fetch("content-versions", {"content_id": content_id}, load)

    def save_version(
        self, content_id: str, title: str, author: str, content_body: str | None = None, notes: str | None = None
    ) -> ContentVersion:
        """Store a snapshot numbered one past the latest version of this item."""
        rules.require(title, "title", "Title is required")
        rules.require(author, "author", "Author is required")
        row = to_content_version_row(
            {"content_id": content_id, "title": title, "author": author, "content_body": content_body, "notes": notes}
        )

        def write() -> dict[str, Any]:
            latest = self.store.fetch_all(
                "content_versions", eq={"content_id": content_id}, order="version_number", desc=True, limit=1
            )
            row["version_number"] = (int(latest[0]["version_number"]) if latest else 0) + 1
            return self.store.insert("content_versions", row)

        saved = self._write("content-versions", "save version", write)
        self.notifier.success(f"Version {saved['version_number']} saved")
        return map_content_version(saved)

    def reviews(self, content_id: str) -> list[ContentReview]:
        def load() -> list[ContentReview]:
            rows = self.store.fetch_all("content_reviews", eq={"content_id": content_id}, order="created_at", desc=True)
            return [map_content_review(row) for row in rows]

        return self.cache.fetch("content-reviews", {"content_id": content_id}, load)

    def submit_review(self, content_id: str, values_: Mapping[str, Any]) -> ContentReview:
        rules.validate_content_review(values_)
        row = to_content_review_row({**values_, "content_id": content_id})
        saved = self._write(
            "content-reviews", "submit review", lambda: self.store.insert("content_reviews", row), "Review submitted"
        )
        return map_content_review(saved)

    def _upsert(self, table: str, row: dict[str, Any], entity: str, success: str) -> dict[str, Any]:
        return self._write(
            entity,
            f"save {table.replace('_', ' ')}",
            lambda: self.store.upsert(table, row, on_conflict="content_id"),
            success,
        )

    def _write(self, entity: str, action: str, write, success: str | None = None) -> Any:
        try:
            result = write()
        except StoreError as exc:
            self.notifier.error(f"Failed to {action}: {exc}")
            raise
        self.cache.invalidate_for(entity)
        if success:
            self.notifier.success(success)
        return result


class ContentRequestRepository(Repository[ContentRequest]):
    def __init__(self, store, cache, notifier=None, events=None) -> None:
        super().__init__(store, cache, CONTENT_REQUESTS, notifier, events)

    def set_status(self, record_id: str, status: str) -> ContentRequest | None:
        rules.validate_enum(status, values(RequestStatus), "status")
        return self.update(record_id, {"status": status})
