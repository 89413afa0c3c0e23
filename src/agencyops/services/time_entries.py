from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from agencyops.domain import rules
from agencyops.domain.mappers import map_time_entry, to_time_entry_row
from agencyops.domain.models import TimeEntry
from agencyops.services.repository import ALL, EntitySpec, Repository

TIME_ENTRIES = EntitySpec(
    name="time-entries",
    label="Time entry",
    read_table="time_entries",
    write_table="time_entries",
    mapper=map_time_entry,
    to_row=to_time_entry_row,
    order="date",
    desc=True,
    filters={"client_id": "client_id", "task_id": "task_id", "deliverable_id": "deliverable_id"},
    validator=rules.validate_time_entry,
)


class TimeEntryRepository(Repository[TimeEntry]):
    def __init__(self, store, cache, notifier=None, events=None) -> None:
        super().__init__(store, cache, TIME_ENTRIES, notifier, events)

    def list(self, filters: Mapping[str, Any] | None = None) -> list[TimeEntry]:
        """Entries are only listed for a client, task or deliverable, never all at once."""
        if not any((filters or {}).get(name) not in (None, "", ALL) for name in TIME_ENTRIES.filters):
            raise rules.ValidationError(
                "Filter time entries by client, task or deliverable.",
                {"filters": "Filter time entries by client, task or deliverable."},
            )
        return super().list(filters)

    def log(self, values_: Mapping[str, Any]) -> TimeEntry:
        entry = {"is_billable": True, **values_}
        if not entry["is_billable"]:
            entry["hourly_rate"] = None
        return self.create(entry)
