from __future__ import annotations

from dataclasses import dataclass

from agencyops.services.utils import round_half_up


@dataclass(frozen=True)
class ChecklistStep:
    key: str
    label: str
    path: str


@dataclass(frozen=True)
class ChecklistProgress:
    completed: frozenset[str]
    total: int

    @property
    def count(self) -> int:
        return len(self.completed)

    @property
    def percent(self) -> int:
        return round_half_up(self.count / self.total * 100) if self.total else 0

    @property
    def done(self) -> bool:
        return self.count >= self.total


STEPS: tuple[ChecklistStep, ...] = (
    ChecklistStep("client_added", "Add your first client", "/clients"),
    ChecklistStep("deliverable_created", "Create a deliverable", "/deliverables"),
    ChecklistStep("team_setup", "Set up your team", "/team"),
    ChecklistStep("portal_granted", "Grant a client portal", "/portal-admin"),
    ChecklistStep("branding_set", "Customize your branding", "/settings"),
)


def checklist_progress(
    clients: int, deliverables: int, team_members: int, portals: int, branding_set: bool = False
) -> ChecklistProgress:
    completed = set()
    if clients > 0:
        completed.add("client_added")
    if deliverables > 0:
        completed.add("deliverable_created")
    if team_members > 0:
        completed.add("team_setup")
    if portals > 0:
        completed.add("portal_granted")
    if branding_set:
        completed.add("branding_set")
    return ChecklistProgress(completed=frozenset(completed), total=len(STEPS))
