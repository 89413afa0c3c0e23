from __future__ import annotations

import logging
import uuid
from collections import Counter
from collections.abc import Mapping
from typing import Any

from agencyops.adapters.email_relay import EmailRelayClient, EmailRelayError, portal_message_html
from agencyops.domain import rules
from agencyops.domain.mappers import (
    map_portal_access,
    map_portal_message,
    to_activity_log_row,
    to_portal_message_row,
)
from agencyops.domain.models import PortalAccess, PortalMessage
from agencyops.domain.stages import SenderType, values
from agencyops.services.repository import StoreService
from agencyops.services.utils import utc_now_iso
from agencyops.store.supabase import StoreError

logger = logging.getLogger(__name__)

PREVIEW_CHARS = 200


def new_access_token() -> str:
    return uuid.uuid4().hex + uuid.uuid4().hex


class PortalService(StoreService):
    def __init__(self, store, cache, notifier=None, relay: EmailRelayClient | None = None) -> None:
        super().__init__(store, cache, notifier)
        self.relay = relay

    def access_list(self) -> list[PortalAccess]:
        def load() -> list[PortalAccess]:
            rows = self.store.fetch_all("portal_access", order="created_at", desc=True)
            return [map_portal_access(row) for row in rows]

        return self.cache.fetch("portal-access", None, load)

    def access_by_token(self, token: str) -> PortalAccess | None:
        """Resolve an active portal token and stamp ``last_accessed_at``."""
        row = self.store.fetch_one("portal_access", eq={"access_token": token, "is_active": True})
        if row is None:
            return None
        stamp = utc_now_iso()
        try:
            self.store.update("portal_access", {"last_accessed_at": stamp}, eq={"access_token": token})
        except StoreError as exc:
            logger.warning("Could not stamp portal access %s: %s", row.get("id"), exc)
        else:
            self.cache.invalidate_for("portal-access")
            row = {**row, "last_accessed_at": stamp}
        return map_portal_access(row)

    def grant(self, client_id: str, contact_email: str, contact_name: str | None = None) -> PortalAccess:
        rules.require(client_id, "client_id")
        rules.require(contact_email, "contact_email")
        row = {
            "client_id": client_id,
            "contact_email": contact_email,
            "contact_name": contact_name or None,
            "access_token": new_access_token(),
            "is_active": True,
        }
        saved = self._write(
            "portal-access", "create portal access", lambda: self.store.insert("portal_access", row),
            "Portal access created",
        )
        return map_portal_access(saved)

    def set_active(self, access_id: str, is_active: bool) -> None:
        self._write(
            "portal-access",
            "update portal access",
            lambda: self.store.update("portal_access", {"is_active": is_active}, eq={"id": access_id}),
            "Portal access updated",
        )

    def revoke(self, access_id: str) -> None:
        self._write(
            "portal-access",
            "revoke portal access",
            lambda: self.store.delete("portal_access", eq={"id": access_id}),
            "Portal access revoked",
        )

    def messages(self, client_id: str) -> list[PortalMessage]:
        def load() -> list[PortalMessage]:
            rows = self.store.fetch_all("portal_messages", eq={"client_id": client_id}, order="created_at")
            return [map_portal_message(row) for row in rows]

        return self.cache.fetch("portal-messages", {"client_id": client_id}, load)

    def refresh_messages(self, client_id: str) -> list[PortalMessage]:
        self.cache.invalidate("portal-messages")
        return self.messages(client_id)

    def deliverable_feedback(self, deliverable_id: str) -> list[PortalMessage]:
        def load() -> list[PortalMessage]:
            rows = self.store.fetch_all(
                "portal_messages", eq={"deliverable_id": deliverable_id}, order="created_at"
            )
            return [map_portal_message(row) for row in rows]

        return self.cache.fetch("portal-messages", {"deliverable_id": deliverable_id}, load)

    def unread_counts(self) -> dict[str, int]:
        """Unread client-sent messages per client."""

        def load() -> dict[str, int]:
            rows = self.store.fetch_all(
                "portal_messages",
                columns="client_id",
                eq={"sender_type": SenderType.CLIENT.value, "is_read": False},
            )
            return dict(Counter(row["client_id"] for row in rows))

        return self.cache.fetch("portal-unread", None, load)

    def mark_read(self, client_id: str, sender_type: str) -> None:
        rules.validate_enum(sender_type, values(SenderType), "sender_type")
        self._write(
            "portal-messages",
            "mark messages read",
            lambda: self.store.update(
                "portal_messages",
                {"is_read": True},
                eq={"client_id": client_id, "sender_type": sender_type, "is_read": False},
            ),
        )

    def send_message(self, values_: Mapping[str, Any], client_name: str | None = None) -> PortalMessage:
        rules.require(values_.get("client_id"), "client_id")
        rules.require(values_.get("content"), "content")
        rules.validate_enum(values_.get("sender_type"), values(SenderType), "sender_type")
        row = to_portal_message_row(values_)
        saved = self._write("portal-messages", "send message", lambda: self.store.insert("portal_messages", row))
        message = map_portal_message(saved)

        if message.sender_type == SenderType.CLIENT.value:
            entry = to_activity_log_row(
                {
                    "client_id": message.client_id,
                    "client_name": client_name,
                    "entity_type": "contact",
                    "entity_id": message.id,
                    "action": "commented",
                    "description": f"{message.sender_name} sent a portal message",
                    "performed_by": message.sender_name or "client",
                    "link_path": "/portal-admin",
                }
            )
            self._write("activity-logs", "log portal message", lambda: self.store.insert("activity_logs", entry))
        elif self.relay is not None:
            self._email_contact(message)
        return message

    def _email_contact(self, message: PortalMessage) -> None:
        try:
            self.relay.send(
                "New message from your project team",
                portal_message_html(message.sender_name or "Your project team", message.content[:PREVIEW_CHARS]),
                client_id=message.client_id,
            )
        except EmailRelayError as exc:
            logger.warning("Portal message email for client %s not sent: %s", message.client_id, exc)
