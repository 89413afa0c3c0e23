from datetime import UTC, datetime

from agencyops.derive.activity import build_activity_feed, format_amount, kind_link, time_ago
from agencyops.domain.models import ContentItem, Deliverable, Invoice, Task
from agencyops.domain.stages import ActivityKind


def test_feed_merges_kinds_newest_first() -> None:
    deliverables = [
        Deliverable(id="d1", client_id="c1", name="Audit", status="Delivered", updated_at="2026-02-16T10:00:00Z",
                    client_name="Acme")
    ]
    invoices = [
        Invoice(id="i1", client_id="c1", amount=1500, invoice_code="INV-001", status="Paid",
                created_at="2026-02-16T11:00:00Z")
    ]
    tasks = [Task(id="t1", name="Call", status="Done", assigned_to="Robert", updated_at="2026-02-15T09:00:00Z")]
    content = [ContentItem(id="c1", title="Post", status="Draft", platform="LinkedIn", created_at="2026-02-14")]

    feed = build_activity_feed(deliverables, invoices, tasks, content)

    assert [item.id for item in feed] == ["i-i1", "d-d1", "t-t1", "c-c1"]
    assert feed[0].title == "INV-001 - $1,500"
    assert feed[0].action == "Paid"
    assert feed[1].action == "Delivered"
    assert feed[1].subtitle == "Acme"
    assert feed[2].action == "Completed"
    assert feed[3].action == "Updated"
    assert feed[3].subtitle == "LinkedIn"


def test_feed_skips_undated_rows_and_respects_limit() -> None:
    tasks = [Task(id=f"t{n}", name=f"Task {n}", updated_at=f"2026-02-{n + 10:02d}T00:00:00Z") for n in range(5)]
    tasks.append(Task(id="undated", name="No stamp"))

    feed = build_activity_feed([], [], tasks, [], limit=3)

    assert [item.id for item in feed] == ["t-t4", "t-t3", "t-t2"]


def test_time_ago_buckets() -> None:
    now = datetime(2026, 2, 16, 12, 0, tzinfo=UTC)
    assert time_ago("2026-02-16T11:59:30Z", now) == "just now"
    assert time_ago("2026-02-16T11:15:00Z", now) == "45m ago"
    assert time_ago("2026-02-16T07:00:00Z", now) == "5h ago"
    assert time_ago("2026-02-13T12:00:00Z", now) == "3d ago"
    assert time_ago("2026-01-01T12:00:00Z", now) == "2026-01-01"
    assert time_ago("not a date", now) == ""


def test_format_amount() -> None:
    assert format_amount(1500) == "1,500"
    assert format_amount(99.5) == "99.50"


def test_kind_link() -> None:
    assert kind_link(ActivityKind.INVOICE) == "/invoices"
