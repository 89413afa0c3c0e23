from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from agencyops.domain.mappers import to_number
from agencyops.domain.models import Proposal
from agencyops.domain.stages import ProposalStatus


def section_total(section: Mapping[str, Any]) -> float:
    return sum(to_number(item.get("qty")) * to_number(item.get("rate")) for item in section.get("items") or ())


def proposal_total(sections: Iterable[Mapping[str, Any]]) -> float:
    return sum(section_total(section) for section in sections)


@dataclass(frozen=True)
class ProposalSummary:
    drafts: int
    open: int
    accepted: int
    accepted_value: float


def summarize_proposals(proposals: Iterable[Proposal]) -> ProposalSummary:
    """Counts shown above the proposals list; sent and viewed proposals are both open."""
    drafts = open_ = accepted = 0
    accepted_value = 0.0
    for p in proposals:
        if p.status == ProposalStatus.DRAFT.value:
            drafts += 1
        elif p.status in (ProposalStatus.SENT.value, ProposalStatus.VIEWED.value):
            open_ += 1
        elif p.status == ProposalStatus.ACCEPTED.value:
            accepted += 1
            accepted_value += p.total_amount
    return ProposalSummary(drafts=drafts, open=open_, accepted=accepted, accepted_value=accepted_value)
