import pytest

from agencyops.derive.quality import composite_score
from agencyops.domain.rules import ValidationError
from agencyops.services.content import ContentRepository, ContentRequestRepository

SCORES = {
    "seo_score": 80,
    "brand_voice_score": 90,
    "uniqueness_score": 70,
    "humanness_score": 60,
    "completeness_score": 100,
}


def test_composite_score_weights() -> None:
    # 24 + 22.5 + 14 + 9 + 10
    assert composite_score(SCORES) == 80
    assert composite_score({"seo_score": 90}) == 27


def test_score_quality_upserts_one_row_per_content(store, cache, notifier) -> None:
    repo = ContentRepository(store, cache, notifier)

    first = repo.score_quality("content-1", SCORES, scored_by="Mia")
    second = repo.score_quality("content-1", {**SCORES, "seo_score": 100})

    assert len(store.tables["quality_scores"]) == 1
    assert first.composite_score == 80
    assert second.composite_score == 86
    assert second.scored_by == "Mia"
    assert second.scored_at
    assert repo.quality_score("content-1").seo_score == 100


def test_out_of_range_score_is_rejected(store, cache) -> None:
    with pytest.raises(ValidationError) as excinfo:
        ContentRepository(store, cache).score_quality("content-1", {**SCORES, "seo_score": 120})
    assert "seo_score" in excinfo.value.errors
    assert store.calls == []


def test_record_performance_upserts(store, cache) -> None:
    repo = ContentRepository(store, cache)

    repo.record_performance("content-1", {"impressions": 1000, "clicks": 40, "avg_position": 4.5})
    saved = repo.record_performance("content-1", {"impressions": 1200, "clicks": 50, "performance_tier": "high"})

    assert len(store.tables["content_performance"]) == 1
    assert saved.impressions == 1200
    assert saved.avg_position == 4.5
    assert saved.performance_tier == "high"


def test_content_list_reads_joined_view(store, cache) -> None:
    store.seed(
        "content_items",
        {"id": "1", "title": "Post", "status": "Draft", "due_date": "2026-02-20", "content_type": "Blog"},
        {"id": "2", "title": "Video", "status": "Ideation", "due_date": "2026-02-18", "content_type": "Video"},
    )

    items = ContentRepository(store, cache).list({"content_type": "all"})

    assert [i.id for i in items] == ["2", "1"]
    assert store.calls == [("read", "content_with_client")]


def test_request_status_transitions(store, cache) -> None:
    store.seed("content_requests", {"id": "r1", "client_id": "c1", "topic": "FAQ", "status": "pending"})
    repo = ContentRequestRepository(store, cache)

    assert repo.set_status("r1", "accepted").status == "accepted"
    with pytest.raises(ValidationError):
        repo.set_status("r1", "archived")


def test_versions_number_upward_per_content_item(store, cache, notifier) -> None:
    store.seed("content_versions", {"id": "v0", "content_id": "other", "version_number": 7, "title": "x"})
    repo = ContentRepository(store, cache, notifier)

    first = repo.save_version("content-1", "Draft", "Mia", content_body="Hello")
    assert repo.versions("content-1") == [first]
    second = repo.save_version("content-1", "Edited", "Mia", notes="tightened intro")

    assert (first.version_number, second.version_number) == (1, 2)
    assert [v.version_number for v in repo.versions("content-1")] == [2, 1]
    assert notifier.successes == ["Version 1 saved", "Version 2 saved"]


def test_version_needs_an_author(store, cache) -> None:
    with pytest.raises(ValidationError) as excinfo:
        ContentRepository(store, cache).save_version("content-1", "Draft", "")
    assert excinfo.value.errors["author"] == "Author is required"


def test_review_is_recorded_against_the_item(store, cache, notifier) -> None:
    repo = ContentRepository(store, cache, notifier)

    review = repo.submit_review(
        "content-1",
        {"reviewer_type": "client", "reviewer_name": "Tan", "action": "request_changes", "comments": "Shorter"},
    )

    assert review.content_id == "content-1"
    assert [r.action for r in repo.reviews("content-1")] == ["request_changes"]
    assert notifier.successes == ["Review submitted"]


def test_review_action_must_be_known(store, cache) -> None:
    with pytest.raises(ValidationError) as excinfo:
        ContentRepository(store, cache).submit_review(
            "content-1", {"reviewer_type": "client", "reviewer_name": "Tan", "action": "shrug"}
        )
    assert "action" in excinfo.value.errors
    assert store.calls == []
