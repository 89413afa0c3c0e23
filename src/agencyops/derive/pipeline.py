from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import assert_never

from agencyops.domain.models import Client
from agencyops.domain.stages import PipelineStage

COLUMN_IDS: tuple[str, ...] = tuple(stage.value for stage in PipelineStage)


@dataclass(frozen=True)
class StageMove:
    client_id: str
    from_stage: str
    to_stage: str


@dataclass(frozen=True)
class PipelineColumn:
    stage: PipelineStage
    label: str
    clients: tuple[Client, ...]

    @property
    def total_value(self) -> float:
        return sum(c.monthly_value for c in self.clients)


def stage_label(stage: PipelineStage) -> str:
    match stage:
        case PipelineStage.LEAD:
            return "Lead"
        case PipelineStage.QUALIFIED:
            return "Qualified"
        case PipelineStage.PROPOSAL_SENT:
            return "Proposal Sent"
        case PipelineStage.NEGOTIATION:
            return "Negotiation"
        case PipelineStage.WON:
            return "Won"
        case PipelineStage.LOST:
            return "Lost"
        case _:
            assert_never(stage)


def stage_badge(stage: PipelineStage) -> str:
    match stage:
        case PipelineStage.LEAD:
            return "New"
        case PipelineStage.QUALIFIED:
            return "Warm"
        case PipelineStage.PROPOSAL_SENT:
            return "Active"
        case PipelineStage.NEGOTIATION:
            return "Hot"
        case PipelineStage.WON:
            return "Won"
        case PipelineStage.LOST:
            return "Lost"
        case _:
            assert_never(stage)


def build_board(clients: Iterable[Client]) -> list[PipelineColumn]:
    """Group clients into the six stage columns; unknown stages fall into Lead."""
    grouped: dict[str, list[Client]] = {stage: [] for stage in COLUMN_IDS}
    for client in clients:
        key = client.pipeline_stage if client.pipeline_stage in grouped else PipelineStage.LEAD.value
        grouped[key].append(client)
    return [
        PipelineColumn(stage=stage, label=stage_label(stage), clients=tuple(grouped[stage.value]))
        for stage in PipelineStage
    ]


def resolve_drop_target(over_id: str | None, clients: Iterable[Client]) -> str | None:
    """Target stage for a drop onto ``over_id``: a column id or another card."""
    if over_id is None:
        return None
    if over_id in COLUMN_IDS:
        return over_id
    for client in clients:
        if client.id == over_id:
            return client.pipeline_stage or None
    return None


def plan_move(active_id: str, over_id: str | None, clients: Iterable[Client]) -> StageMove | None:
    """The stage change a drop should persist, or None when nothing changes."""
    clients = list(clients)
    target = resolve_drop_target(over_id, clients)
    if target is None:
        return None
    current = next((c for c in clients if c.id == active_id), None)
    if current is None or current.pipeline_stage == target:
        return None
    return StageMove(client_id=current.id, from_stage=current.pipeline_stage, to_stage=target)
