import re

import pytest

from agencyops.domain.rules import ValidationError
from agencyops.services.portal import PortalService


def test_grant_creates_active_access_with_random_token(store, cache, notifier) -> None:
    service = PortalService(store, cache, notifier)

    first = service.grant("c1", "jo@acme.test", "Jo")
    second = service.grant("c1", "sam@acme.test")

    assert re.fullmatch(r"[0-9a-f]{64}", first.access_token)
    assert first.access_token != second.access_token
    assert first.is_active
    assert second.contact_name is None
    assert notifier.successes == ["Portal access created", "Portal access created"]


def test_token_lookup_only_finds_active_rows_and_stamps_access(store, cache) -> None:
    store.seed(
        "portal_access",
        {"id": "p1", "client_id": "c1", "access_token": "live", "is_active": True},
        {"id": "p2", "client_id": "c2", "access_token": "off", "is_active": False},
    )
    service = PortalService(store, cache)

    access = service.access_by_token("live")

    assert access.client_id == "c1"
    assert store.tables["portal_access"][0]["last_accessed_at"]
    assert service.access_by_token("off") is None
    assert service.access_by_token("missing") is None


def test_toggle_and_revoke(store, cache) -> None:
    store.seed("portal_access", {"id": "p1", "client_id": "c1", "access_token": "t", "is_active": True})
    service = PortalService(store, cache)
    assert len(service.access_list()) == 1

    service.set_active("p1", False)
    assert service.access_list()[0].is_active is False

    service.revoke("p1")
    assert service.access_list() == []


def test_thread_is_oldest_first(store, cache) -> None:
    store.seed(
        "portal_messages",
        {"id": "m2", "client_id": "c1", "sender_type": "agency", "content": "B", "created_at": "2026-02-16T10:00:00Z"},
        {"id": "m1", "client_id": "c1", "sender_type": "client", "content": "A", "created_at": "2026-02-16T09:00:00Z"},
        {"id": "m3", "client_id": "c2", "sender_type": "client", "content": "C", "created_at": "2026-02-16T08:00:00Z"},
    )

    thread = PortalService(store, cache).messages("c1")

    assert [m.content for m in thread] == ["A", "B"]


def test_unread_counts_and_mark_read(store, cache) -> None:
    store.seed(
        "portal_messages",
        {"id": "m1", "client_id": "c1", "sender_type": "client", "content": "A", "is_read": False},
        {"id": "m2", "client_id": "c1", "sender_type": "client", "content": "B", "is_read": False},
        {"id": "m3", "client_id": "c2", "sender_type": "client", "content": "C", "is_read": False},
        {"id": "m4", "client_id": "c2", "sender_type": "agency", "content": "D", "is_read": False},
    )
    service = PortalService(store, cache)

    assert service.unread_counts() == {"c1": 2, "c2": 1}
    service.mark_read("c1", "client")
    assert service.unread_counts() == {"c2": 1}


def test_refresh_rereads_thread(store, cache) -> None:
    service = PortalService(store, cache)
    assert service.messages("c1") == []
    store.seed("portal_messages", {"id": "m1", "client_id": "c1", "sender_type": "client", "content": "hi"})

    assert service.messages("c1") == []
    assert [m.id for m in service.refresh_messages("c1")] == ["m1"]


def test_message_requires_known_sender_type(store, cache) -> None:
    with pytest.raises(ValidationError):
        PortalService(store, cache).send_message({"client_id": "c1", "sender_type": "bot", "content": "x"})
    assert store.calls == []


def test_token_lookup_still_resolves_when_stamp_fails(store, cache, caplog) -> None:
    store.seed("portal_access", {"id": "p1", "client_id": "c1", "access_token": "live", "is_active": True})
    store.failing.add("update:portal_access")

    access = PortalService(store, cache).access_by_token("live")

    assert access.client_id == "c1"
    assert access.last_accessed_at is None
    assert "Could not stamp portal access p1" in caplog.text
