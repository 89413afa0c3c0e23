from __future__ import annotations

from agencyops.derive.suggestions import Suggestion
from agencyops.domain import rules
from agencyops.domain.mappers import map_task, to_task_row
from agencyops.domain.models import Task
from agencyops.services.repository import EntitySpec, Repository

TASKS = EntitySpec(
    name="tasks",
    label="Task",
    read_table="tasks_with_relations",
    write_table="tasks",
    mapper=map_task,
    to_row=to_task_row,
    order="due_date",
    desc=False,
    filters={
        "assignee": "assigned_to",
        "category": "category",
        "client_id": "client_id",
        "deliverable_id": "deliverable_id",
        "status": "status",
    },
    search_columns=("name", "task_id"),
    validator=rules.validate_task,
    code_rpc="generate_task_id",
    code_column="task_id",
)


class TaskRepository(Repository[Task]):
    def __init__(self, store, cache, notifier=None, events=None) -> None:
        super().__init__(store, cache, TASKS, notifier, events)

    def confirm_suggestion(self, suggestion: Suggestion) -> Task:
        """Create the task a suggestion proposes.

        No duplicate check happens here; a suggestion confirmed twice creates
        two tasks.
        """
        if suggestion.task is None:
            raise ValueError(f"Suggestion {suggestion.id} has no task template.")
        return self.create(suggestion.task.as_values())
