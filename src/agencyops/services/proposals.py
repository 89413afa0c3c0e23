from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from agencyops.derive.proposals import proposal_total
from agencyops.domain import rules
from agencyops.domain.mappers import map_proposal, to_proposal_row
from agencyops.domain.models import Proposal
from agencyops.domain.stages import ProposalStatus, values
from agencyops.services.repository import EntitySpec, Repository
from agencyops.services.utils import utc_now_iso


PROPOSALS = EntitySpec(
    name="proposals",
    label="Proposal",
    read_table="proposals",
    write_table="proposals",
    mapper=map_proposal,
    to_row=to_proposal_row,
    filters={"client_id": "client_id", "status": "status"},
    search_columns=("title", "proposal_code"),
    validator=rules.validate_proposal,
    code_prefix="PROP",
    code_column="proposal_code",
    columns="*, clients(company_name)",
)


class ProposalRepository(Repository[Proposal]):
    def __init__(self, store, cache, notifier=None, events=None) -> None:
        super().__init__(store, cache, PROPOSALS, notifier, events)

    def create(self, values_: Mapping[str, Any]) -> Proposal:
        """New proposals start as drafts; the total is summed from the section items."""
        rules.validate_sections(values_.get("sections"))
        return super().create(
            {**values_, "status": ProposalStatus.DRAFT.value, "total_amount": proposal_total(values_["sections"])}
        )

    def update(self, record_id: str, values_: Mapping[str, Any], success: str | None = None) -> Proposal:
        changes = {**values_, "updated_at": utc_now_iso()}
        if "sections" in values_:
            rules.validate_sections(values_["sections"])
            changes["total_amount"] = proposal_total(values_["sections"])
        return super().update(record_id, changes, success=success)

    def set_status(self, record_id: str, status: str) -> Proposal:
        rules.validate_enum(status, values(ProposalStatus), "status")
        changes: dict[str, Any] = {"status": status}
        now = utc_now_iso()
        if status == ProposalStatus.VIEWED.value:
            changes["viewed_at"] = now
        elif status == ProposalStatus.ACCEPTED.value:
            changes["accepted_at"] = now
        return self.update(record_id, changes, success="Proposal status updated")
