from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from agencyops.adapters.email_relay import EmailRelayClient, EmailRelayError, deliverable_status_html
from agencyops.domain import rules
from agencyops.domain.mappers import map_deliverable, to_deliverable_row
from agencyops.domain.models import Deliverable
from agencyops.domain.stages import DELIVERED_STATUSES
from agencyops.services.repository import EntitySpec, Repository

logger = logging.getLogger(__name__)

DELIVERABLES = EntitySpec(
    name="deliverables",
    label="Deliverable",
    read_table="deliverables_with_client",
    write_table="deliverables",
    mapper=map_deliverable,
    to_row=to_deliverable_row,
    order="due_date",
    desc=False,
    filters={
        "assignee": "assigned_to",
        "market": "market",
        "client_id": "client_id",
        "status": "status",
        "service_type": "service_type",
    },
    search_columns=("name", "deliverable_id"),
    validator=rules.validate_deliverable,
    code_rpc="generate_deliverable_id",
    code_column="deliverable_id",
)


class DeliverableRepository(Repository[Deliverable]):
    def __init__(self, store, cache, notifier=None, events=None, relay: EmailRelayClient | None = None) -> None:
        super().__init__(store, cache, DELIVERABLES, notifier, events)
        self.relay = relay

    def update(self, record_id: str, values: Mapping[str, Any]) -> Deliverable:
        if "status" in values and values["status"] not in DELIVERED_STATUSES and "delivery_date" not in values:
            values = {**values, "delivery_date": None}
        updated = super().update(record_id, values)
        if "status" in values:
            self._email_status(updated)
        return updated

    def _email_status(self, deliverable: Deliverable) -> None:
        if self.relay is None:
            return
        try:
            self.relay.send(
                f"Project update: {deliverable.name}",
                deliverable_status_html(deliverable.name, deliverable.status),
                client_id=deliverable.client_id,
            )
        except EmailRelayError as exc:
            logger.warning("Status email for deliverable %s not sent: %s", deliverable.id, exc)
