from __future__ import annotations

from agencyops.domain import rules
from agencyops.domain.mappers import map_invoice, to_invoice_row
from agencyops.domain.models import Invoice
from agencyops.domain.stages import InvoiceStatus
from agencyops.services.repository import EntitySpec, Repository
from agencyops.services.utils import today_iso

INVOICES = EntitySpec(
    name="invoices",
    label="Invoice",
    read_table="invoices_with_client",
    write_table="invoices",
    mapper=map_invoice,
    to_row=to_invoice_row,
    order="created_at",
    desc=True,
    filters={"status": "status", "market": "market", "client_id": "client_id", "month": "month"},
    search_columns=("invoice_id", "services_billed"),
    validator=rules.validate_invoice,
    code_rpc="generate_invoice_id",
    code_column="invoice_id",
)


class InvoiceRepository(Repository[Invoice]):
    def __init__(self, store, cache, notifier=None, events=None) -> None:
        super().__init__(store, cache, INVOICES, notifier, events)

    def mark_paid(self, record_id: str, payment_date: str | None = None) -> Invoice | None:
        return self.update(
            record_id, {"status": InvoiceStatus.PAID.value, "payment_date": payment_date or today_iso()}
        )

    def outstanding_total(self, filters=None) -> float:
        unpaid = {InvoiceStatus.SENT.value, InvoiceStatus.OVERDUE.value}
        return sum(i.amount for i in self.list(filters) if i.status in unpaid)
