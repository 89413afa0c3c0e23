import pytest

from agencyops.adapters.email_relay import EmailRelayError
from agencyops.domain.rules import ValidationError
from agencyops.services.deliverables import DeliverableRepository
from agencyops.services.portal import PortalService


class FakeRelay:
    def __init__(self, fail: bool = False) -> None:
        self.sent = []
        self.fail = fail

    def send(self, subject, html, *, client_id=None, portal_access_id=None):
        if self.fail:
            raise EmailRelayError("relay down", 502)
        self.sent.append({"subject": subject, "html": html, "client_id": client_id})
        return {"success": True}


def _deliverable(store) -> None:
    store.seed(
        "deliverables",
        {"id": "d1", "client_id": "c1", "name": "SEO Audit", "status": "In Progress", "due_date": "2026-02-20"},
    )


def test_status_change_emails_portal_contact(store, cache, notifier) -> None:
    _deliverable(store)
    relay = FakeRelay()
    repo = DeliverableRepository(store, cache, notifier, relay=relay)

    repo.update("d1", {"status": "Delivered"})

    assert len(relay.sent) == 1
    assert relay.sent[0]["subject"] == "Project update: SEO Audit"
    assert relay.sent[0]["client_id"] == "c1"
    assert "Delivered" in relay.sent[0]["html"]


def test_other_updates_send_nothing(store, cache) -> None:
    _deliverable(store)
    relay = FakeRelay()

    DeliverableRepository(store, cache, relay=relay).update("d1", {"name": "SEO Audit v2"})

    assert relay.sent == []


def test_relay_failure_does_not_fail_the_update(store, cache, notifier, caplog) -> None:
    _deliverable(store)
    repo = DeliverableRepository(store, cache, notifier, relay=FakeRelay(fail=True))

    updated = repo.update("d1", {"status": "Review"})

    assert updated.status == "Review"
    assert notifier.successes == ["Deliverable updated"]
    assert "not sent" in caplog.text


def test_client_portal_message_writes_activity_log(store, cache, notifier) -> None:
    relay = FakeRelay()
    service = PortalService(store, cache, notifier, relay=relay)

    message = service.send_message(
        {"client_id": "c1", "sender_type": "client", "sender_name": "Jo", "content": "Looks great"},
        client_name="Acme",
    )

    logs = store.tables["activity_logs"]
    assert len(logs) == 1
    assert logs[0]["entity_id"] == message.id
    assert logs[0]["description"] == "Jo sent a portal message"
    assert logs[0]["client_name"] == "Acme"
    assert relay.sent == []


def test_agency_portal_message_emails_contact(store, cache) -> None:
    relay = FakeRelay()
    service = PortalService(store, cache, relay=relay)

    service.send_message({"client_id": "c1", "sender_type": "agency", "sender_name": "Mia", "content": "x" * 500})

    assert store.tables["activity_logs"] == []
    assert relay.sent[0]["subject"] == "New message from your project team"
    assert "x" * 200 in relay.sent[0]["html"]
    assert "x" * 201 not in relay.sent[0]["html"]


def test_delivery_date_with_open_status_is_rejected(store, cache, notifier) -> None:
    _deliverable(store)
    repo = DeliverableRepository(store, cache, notifier)

    with pytest.raises(ValidationError):
        repo.update("d1", {"delivery_date": "2026-02-10", "status": "In Progress"})

    assert notifier.successes == []
    assert "delivery_date" not in store.tables["deliverables"][0]


def test_reopening_clears_delivery_date(store, cache) -> None:
    _deliverable(store)
    repo = DeliverableRepository(store, cache)
    repo.update("d1", {"status": "Delivered", "delivery_date": "2026-02-18"})

    reopened = repo.update("d1", {"status": "Review"})

    assert reopened.delivery_date is None
