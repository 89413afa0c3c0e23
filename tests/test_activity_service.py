import pytest

from agencyops.domain.rules import ValidationError
from agencyops.services.activity import ActivityService, NotificationRuleRepository, NotificationService


def _logs(store) -> None:
    store.seed(
        "activity_logs",
        *[
            {
                "id": f"a{n}",
                "entity_type": "deliverable",
                "action": "updated",
                "description": f"entry {n}",
                "is_read": n % 2 == 0,
                "created_at": f"2026-02-{n + 1:02d}T00:00:00Z",
            }
            for n in range(5)
        ],
    )


def test_feed_newest_first_with_limit(store, cache) -> None:
    _logs(store)

    feed = ActivityService(store, cache).feed(limit=3)

    assert [log.id for log in feed] == ["a4", "a3", "a2"]


def test_unread_count_and_mark_all_read(store, cache) -> None:
    _logs(store)
    service = ActivityService(store, cache)

    assert service.unread_count() == 2
    service.mark_read("a1")
    assert service.unread_count() == 1
    service.mark_all_read()
    assert service.unread_count() == 0


def test_log_invalidates_feed(store, cache) -> None:
    service = ActivityService(store, cache)
    assert service.feed() == []

    service.log({"entity_type": "invoice", "action": "created", "description": "INV-001 created"})

    assert [log.description for log in service.feed()] == ["INV-001 created"]


def test_timeline_reads_per_client_table(store, cache) -> None:
    store.seed(
        "activity_log",
        {"id": "x1", "client_id": "c1", "entity_type": "client", "action": "note", "created_at": "2026-02-01"},
        {"id": "x2", "client_id": "c2", "entity_type": "client", "action": "note", "created_at": "2026-02-02"},
    )
    service = ActivityService(store, cache)

    assert [log.id for log in service.timeline("c1")] == ["x1"]
    service.add_timeline_entry({"client_id": "c1", "entity_type": "client", "action": "call"})
    assert len(service.timeline("c1")) == 2


def test_notifications_per_user(store, cache, notifier) -> None:
    store.seed(
        "notifications",
        {"id": "n1", "user_email": "mia@agency.test", "title": "Due", "type": "info", "is_read": False},
        {"id": "n2", "user_email": "mia@agency.test", "title": "Paid", "type": "info", "is_read": True},
        {"id": "n3", "user_email": "lee@agency.test", "title": "Other", "type": "info", "is_read": False},
    )
    service = NotificationService(store, cache, notifier)

    assert {n.id for n in service.list("mia@agency.test")} == {"n1", "n2"}
    assert [n.id for n in service.unread("mia@agency.test")] == ["n1"]
    service.mark_all_read("mia@agency.test")
    assert service.unread("mia@agency.test") == []
    assert [n.id for n in service.unread("lee@agency.test")] == ["n3"]
    assert notifier.successes == ["All notifications marked as read"]


def test_notification_rule_crud(store, cache) -> None:
    repo = NotificationRuleRepository(store, cache)

    rule = repo.create(
        {"name": "Overdue", "trigger_type": "overdue_invoice", "channel": "email", "recipients": ["ops@agency.test"]}
    )
    assert rule.recipients == ["ops@agency.test"]
    assert repo.toggle(rule.id, False).is_active is False

    with pytest.raises(ValidationError):
        repo.create({"name": "Empty", "trigger_type": "overdue_invoice", "channel": "email", "recipients": []})
