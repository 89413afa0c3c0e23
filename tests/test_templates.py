from datetime import date

import pytest

from agencyops.domain.rules import ValidationError
from agencyops.services.templates import TemplateService

LAUNCH = {
    "id": "t1",
    "name": "Website launch",
    "category": "Web",
    "created_at": "2026-01-05",
    "template_deliverables": [
        {
            "id": "td2",
            "template_id": "t1",
            "name": "QA pass",
            "sort_order": 1,
            "template_tasks": [{"id": "tt3", "template_deliverable_id": "td2", "name": "Browser checks"}],
        },
        {
            "id": "td1",
            "template_id": "t1",
            "name": "Sitemap",
            "description": "Page inventory",
            "sort_order": 0,
            "template_tasks": [
                {"id": "tt1", "template_deliverable_id": "td1", "name": "Crawl", "priority": "high"},
                {"id": "tt2", "template_deliverable_id": "td1", "name": "Draft tree"},
            ],
        },
    ],
}


def test_create_writes_template_then_ordered_deliverables_then_their_tasks(store, cache, notifier) -> None:
    service = TemplateService(store, cache, notifier)

    template_id = service.create(
        "Retainer onboarding",
        "SEO",
        [
            {"name": "Audit", "tasks": [{"name": "Crawl site", "priority": "high"}, {"name": "Keyword map"}]},
            {"name": "Report", "description": "Monthly"},
        ],
    )

    assert template_id == store.tables["project_templates"][0]["id"]
    deliverables = store.tables["template_deliverables"]
    assert [(d["name"], d["sort_order"], d["template_id"]) for d in deliverables] == [
        ("Audit", 0, template_id),
        ("Report", 1, template_id),
    ]
    tasks = store.tables["template_tasks"]
    assert [(t["name"], t["priority"]) for t in tasks] == [("Crawl site", "high"), ("Keyword map", "medium")]
    assert {t["template_deliverable_id"] for t in tasks} == {deliverables[0]["id"]}
    assert notifier.successes == ["Template created successfully"]


def test_create_rejects_unnamed_deliverables_before_writing(store, cache) -> None:
    with pytest.raises(ValidationError) as excinfo:
        TemplateService(store, cache).create("Launch", "Web", [{"name": "ok"}, {"name": ""}])

    assert excinfo.value.errors["deliverables"] == "Deliverable 2 needs a name"
    assert store.calls == []


def test_templates_read_back_with_deliverables_in_sort_order(store, cache) -> None:
    store.seed("project_templates", LAUNCH)

    [template] = TemplateService(store, cache).list()

    assert [d.name for d in template.deliverables] == ["Sitemap", "QA pass"]
    assert [t.name for t in template.deliverables[0].tasks] == ["Crawl", "Draft tree"]


def test_apply_creates_unassigned_work_due_in_thirty_days(store, cache, notifier) -> None:
    store.seed("project_templates", LAUNCH)

    applied = TemplateService(store, cache, notifier).apply("t1", "c9", today=date(2026, 3, 1))

    assert applied.deliverable_codes == ("DEL-001", "DEL-002")
    assert applied.task_codes == ("TSK-001", "TSK-002", "TSK-003")
    deliverables = store.tables["deliverables"]
    assert [d["name"] for d in deliverables] == ["Sitemap", "QA pass"]
    assert {(d["status"], d["assigned_to"], d["client_id"], d["due_date"]) for d in deliverables} == {
        ("Not Started", "", "c9", "2026-03-31")
    }
    tasks = store.tables["tasks"]
    assert [t["deliverable_id"] for t in tasks] == [deliverables[0]["id"]] * 2 + [deliverables[1]["id"]]
    assert all(t["status"] == "To Do" and t["due_date"] == "2026-03-31" for t in tasks)
    assert all("priority" not in t for t in tasks)
    assert notifier.successes == ["Template applied successfully"]


def test_apply_drops_cached_deliverables_and_tasks(store, cache) -> None:
    store.seed("project_templates", LAUNCH)
    cache.fetch("deliverables", None, lambda: ["stale"])
    cache.fetch("tasks", None, lambda: ["stale"])

    TemplateService(store, cache).apply("t1", "c9")

    assert cache.entry("deliverables") is None
    assert cache.entry("tasks") is None


def test_apply_unknown_template_fails_without_writing(store, cache) -> None:
    with pytest.raises(ValidationError, match="Template t404 not found"):
        TemplateService(store, cache).apply("t404", "c9")

    assert store.tables["deliverables"] == []


def test_update_only_touches_name_description_and_category(store, cache, notifier) -> None:
    store.seed("project_templates", {"id": "t1", "name": "Old", "category": "Web"})

    TemplateService(store, cache, notifier).update("t1", {"name": "New", "description": "Refreshed", "id": "t2"})

    row = store.tables["project_templates"][0]
    assert (row["id"], row["name"], row["description"], row["category"]) == ("t1", "New", "Refreshed", "Web")
    assert notifier.successes == ["Template updated"]


def test_delete(store, cache, notifier) -> None:
    store.seed("project_templates", {"id": "t1", "name": "Old", "category": "Web"})

    TemplateService(store, cache, notifier).delete("t1")

    assert store.tables["project_templates"] == []
    assert notifier.successes == ["Template deleted"]
