from __future__ import annotations

import json
import logging
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from agencyops.services.utils import utc_now_iso

logger = logging.getLogger(__name__)


@dataclass
class EventLogger:
    """Append-only NDJSON record of every successful mutation."""

    path: Path
    actor: str | None = None
    enabled: bool = True

    def log(
        self,
        *,
        event_type: str,
        entity_type: str,
        entity_id: str | None,
        changed_fields: Iterable[str] | None = None,
    ) -> None:
        if not self.enabled:
            return
        payload = {
            "ts": utc_now_iso(),
            "actor": self.actor,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "event_type": event_type,
            "changed_fields": sorted(changed_fields or []),
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(payload) + "\n")

    def recent(self, limit: int = 20, entity_type: str | None = None) -> list[dict[str, Any]]:
        """Newest-last tail of the log; unreadable lines are skipped."""
        if not self.path.exists():
            return []
        tail: deque[dict[str, Any]] = deque(maxlen=limit)
        with self.path.open(encoding="utf-8") as handle:
            for lineno, line in enumerate(handle, start=1):
                if not line.strip():
                    continue
                try:
                    event = json.loads(line)
                except json.JSONDecodeError:
                    logger.warning("Skipping malformed event at %s:%d", self.path, lineno)
                    continue
                if entity_type is None or event.get("entity_type") == entity_type:
                    tail.append(event)
        return list(tail)
