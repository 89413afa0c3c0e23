from __future__ import annotations

from agencyops.derive.pipeline import StageMove, plan_move
from agencyops.domain import rules
from agencyops.domain.mappers import map_client, to_client_row
from agencyops.domain.models import Client
from agencyops.domain.stages import PipelineStage, values
from agencyops.services.repository import EntitySpec, Repository
from agencyops.services.utils import utc_now_iso
from agencyops.store.supabase import StoreError

CLIENTS = EntitySpec(
    name="clients",
    label="Client",
    read_table="clients",
    write_table="clients",
    mapper=map_client,
    to_row=to_client_row,
    order="created_at",
    desc=True,
    filters={"market": "market", "status": "status", "pipeline_stage": "pipeline_stage"},
    search_columns=("company_name", "client_id"),
    validator=rules.validate_client,
    code_rpc="generate_client_id",
    code_column="client_id",
)


class ClientRepository(Repository[Client]):
    def __init__(self, store, cache, notifier=None, events=None) -> None:
        super().__init__(store, cache, CLIENTS, notifier, events)

    def pipeline(self) -> list[Client]:
        def load() -> list[Client]:
            rows = self.store.fetch_all("clients", order="created_at", desc=True)
            return [map_client(row) for row in rows]

        return self.cache.fetch("pipeline-clients", None, load)

    def move_stage(self, client_id: str, stage: str) -> None:
        """Persist a stage change. Any stage may follow any other."""
        rules.validate_enum(stage, values(PipelineStage), "pipeline_stage")
        try:
            self.store.update("clients", {"pipeline_stage": stage}, eq={"id": client_id})
        except StoreError as exc:
            self.notifier.error(f"Failed to move client: {exc}")
            raise
        self.cache.invalidate_for("pipeline")
        self._record("stage_changed", client_id, ["pipeline_stage"])

    def apply_drop(self, active_id: str, over_id: str | None) -> StageMove | None:
        move = plan_move(active_id, over_id, self.pipeline())
        if move is not None:
            self.move_stage(move.client_id, move.to_stage)
        return move

    def touch(self, client_id: str) -> None:
        self.update(client_id, {"last_contacted_at": utc_now_iso()})
