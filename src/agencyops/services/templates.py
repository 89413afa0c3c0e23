from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any

from agencyops.domain import rules
from agencyops.domain.mappers import map_project_template, to_project_template_row
from agencyops.domain.models import ProjectTemplate
from agencyops.domain.stages import DeliverableStatus, Market, Priority, ServiceType, TaskCategory, TaskStatus
from agencyops.services.repository import StoreService

logger = logging.getLogger(__name__)

TEMPLATE_COLUMNS = "*, template_deliverables(*, template_tasks(*))"
APPLY_DUE_DAYS = 30


@dataclass(frozen=True)
class AppliedTemplate:
    template_id: str
    client_id: str
    deliverable_codes: tuple[str, ...]
    task_codes: tuple[str, ...]


class TemplateService(StoreService):
    """Project templates: a named set of deliverables, each with its tasks."""

    def list(self) -> list[ProjectTemplate]:
        def load() -> list[ProjectTemplate]:
            rows = self.store.fetch_all("project_templates", columns=TEMPLATE_COLUMNS, order="created_at", desc=True)
            return [map_project_template(row) for row in rows]

        return self.cache.fetch("templates", None, load)

    def get(self, template_id: str) -> ProjectTemplate | None:
        def load() -> ProjectTemplate | None:
            row = self.store.fetch_one("project_templates", eq={"id": template_id}, columns=TEMPLATE_COLUMNS)
            return map_project_template(row) if row else None

        return self.cache.fetch("templates", {"id": template_id}, load)

    def create(
        self,
        name: str,
        category: str,
        deliverables: Sequence[Mapping[str, Any]],
        description: str | None = None,
    ) -> str:
        """Insert the template, then its deliverables in order, then each one's tasks.

        ``deliverables`` items look like ``{"name", "description", "tasks": [{"name", "priority"}]}``.
        Returns the new template id.
        """
        rules.validate_template({"name": name, "category": category})
        for index, item in enumerate(deliverables):
            rules.require(item.get("name"), "deliverables", f"Deliverable {index + 1} needs a name")

        def write() -> str:
            template = self.store.insert(
                "project_templates",
                to_project_template_row({"name": name, "description": description, "category": category}),
            )
            for index, item in enumerate(deliverables):
                saved = self.store.insert(
                    "template_deliverables",
                    {
                        "template_id": template["id"],
                        "name": item["name"],
                        "description": item.get("description") or None,
                        "sort_order": index,
                    },
                )
                for task in item.get("tasks") or ():
                    self.store.insert(
                        "template_tasks",
                        {
                            "template_deliverable_id": saved["id"],
                            "name": task["name"],
                            "priority": task.get("priority") or "medium",
                        },
                    )
            return template["id"]

        return self._write("templates", "create template", write, "Template created successfully")

    def update(self, template_id: str, values_: Mapping[str, Any]) -> None:
        """Only name, description and category change; deliverables are kept as they are."""
        rules.validate_template(values_, partial=True)
        row = {k: v for k, v in to_project_template_row(values_).items() if k in ("name", "description", "category")}
        self._write(
            "templates",
            "update template",
            lambda: self.store.update("project_templates", row, eq={"id": template_id}),
            "Template updated",
        )

    def delete(self, template_id: str) -> None:
        # template_deliverables and template_tasks go with it through ON DELETE CASCADE
        self._write(
            "templates",
            "delete template",
            lambda: self.store.delete("project_templates", eq={"id": template_id}),
            "Template deleted",
        )

    def apply(self, template_id: str, client_id: str, today: date | None = None) -> AppliedTemplate:
        """Create real deliverables and tasks for a client from a template.

        Everything is due 30 days out and left unassigned.
        """
        due = ((today or date.today()) + timedelta(days=APPLY_DUE_DAYS)).isoformat()

        def write() -> AppliedTemplate:
            row = self.store.fetch_one("project_templates", eq={"id": template_id}, columns=TEMPLATE_COLUMNS)
            if row is None:
                raise rules.ValidationError(
                    f"Template {template_id} not found", {"template_id": f"Template {template_id} not found"}
                )
            template = map_project_template(row)
            deliverable_codes: list[str] = []
            task_codes: list[str] = []
            for item in template.deliverables:
                code = self.store.rpc("generate_deliverable_id")
                created = self.store.insert(
                    "deliverables",
                    {
                        "deliverable_id": code,
                        "client_id": client_id,
                        "name": item.name,
                        "description": item.description or None,
                        "status": DeliverableStatus.NOT_STARTED.value,
                        "market": Market.SG.value,
                        "service_type": ServiceType.STRATEGY.value,
                        "assigned_to": "",
                        "priority": Priority.MEDIUM.value,
                        "due_date": due,
                    },
                )
                deliverable_codes.append(code)
                for task in item.tasks:
                    task_code = self.store.rpc("generate_task_id")
                    self.store.insert(
                        "tasks",
                        {
                            "task_id": task_code,
                            "deliverable_id": created["id"],
                            "client_id": client_id,
                            "name": task.name,
                            "status": TaskStatus.TODO.value,
                            "assigned_to": "",
                            "category": TaskCategory.STRATEGY.value,
                            "due_date": due,
                        },
                    )
                    task_codes.append(task_code)
            logger.info("Applied template %s to client %s", template_id, client_id)
            return AppliedTemplate(template_id, client_id, tuple(deliverable_codes), tuple(task_codes))

        return self._write("template-apply", "apply template", write, "Template applied successfully")
