from datetime import UTC, datetime

from agencyops.derive.suggestions import generate_suggestions
from agencyops.domain.models import Client, ContentItem, Deliverable, Invoice, Task
from agencyops.domain.stages import SuggestionPriority
from agencyops.services.tasks import TaskRepository

NOW = datetime(2026, 2, 16, 12, 0, tzinfo=UTC)
CLIENTS = [Client(id="c1", company_name="Acme")]


def _overdue() -> Deliverable:
    return Deliverable(
        id="d1",
        client_id="c1",
        client_name="Acme",
        name="Audit",
        assigned_to="Mia",
        status="In Progress",
        due_date="2026-02-10",
    )


def test_overdue_deliverable_suggests_follow_up_task() -> None:
    items = generate_suggestions(CLIENTS, [_overdue()], [], [], [], now=NOW)

    assert len(items) == 1
    suggestion = items[0]
    assert suggestion.id == "overdue-d1"
    assert suggestion.priority is SuggestionPriority.HIGH
    assert suggestion.task.deliverable_id == "d1"
    assert suggestion.task.due_date == "2026-02-17"
    values = suggestion.task.as_values()
    assert values["status"] == "To Do"
    assert values["category"] == "Ops"
    assert values["notes"] == "Overdue deliverable: Audit"


def test_open_follow_up_suppresses_overdue_suggestion() -> None:
    follow_up = Task(id="t1", name="Follow up", deliverable_id="d1", status="In Progress")
    done = Task(id="t2", name="Old", deliverable_id="d1", status="Done")

    assert generate_suggestions(CLIENTS, [_overdue()], [], [follow_up], [], now=NOW) == []
    assert len(generate_suggestions(CLIENTS, [_overdue()], [], [done], [], now=NOW)) == 1


def test_overdue_invoice_uses_billing_assignee_and_code_in_notes() -> None:
    invoice = Invoice(id="i1", client_id="c1", amount=2500, invoice_code="INV-007", status="Overdue")

    items = generate_suggestions(CLIENTS, [], [invoice], [], [], now=NOW, billing_assignee="Sam")

    assert items[0].title == "Invoice INV-007 is overdue ($2,500)"
    assert items[0].task.assigned_to == "Sam"
    assert items[0].task.category == "Sales"
    reminder = Task(id="t1", name="Chase", notes=items[0].task.notes, status="To Do")
    assert generate_suggestions(CLIENTS, [], [invoice], [reminder], [], now=NOW) == []


def test_upcoming_not_started_deliverable_is_medium() -> None:
    upcoming = Deliverable(
        id="d2", client_id="c1", name="Launch", assigned_to="Mia", status="Not Started", due_date="2026-02-18"
    )
    started = Deliverable(
        id="d3", client_id="c1", name="Other", assigned_to="Mia", status="In Progress", due_date="2026-02-18"
    )

    items = generate_suggestions(CLIENTS, [upcoming, started], [], [], [], now=NOW)

    assert [s.id for s in items] == ["deadline-d2"]
    assert items[0].title == '"Launch" due in 2 days but Not Started'
    assert items[0].task.due_date == "2026-02-16"


def test_stale_ideation_content_capped_at_two_and_sorted_last() -> None:
    content = [
        ContentItem(id=f"c{n}", title=f"Idea {n}", status="Ideation", assigned_to="Lee", created_at="2026-01-01")
        for n in range(4)
    ]
    fresh = ContentItem(id="fresh", title="New", status="Ideation", created_at="2026-02-15")

    items = generate_suggestions(CLIENTS, [_overdue()], [], [], content + [fresh], now=NOW)

    assert [s.id for s in items] == ["overdue-d1", "content-c0", "content-c1"]
    assert items[-1].task.due_date == "2026-02-19"


def test_confirm_creates_task_from_template(store, cache, notifier) -> None:
    suggestion = generate_suggestions(CLIENTS, [_overdue()], [], [], [], now=NOW)[0]

    task = TaskRepository(store, cache, notifier).confirm_suggestion(suggestion)

    assert task.name == suggestion.task.name
    assert task.deliverable_id == "d1"
    assert task.notes == "Overdue deliverable: Audit"
    assert task.task_code == "TSK-001"
    assert store.tables["tasks"][0]["status"] == "To Do"
