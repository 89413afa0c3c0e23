from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import typer
import yaml
from supabase import acreate_client

from agencyops import __version__
from agencyops.adapters.ai import AIClient, AIError, ClientContext
from agencyops.adapters.email_relay import EmailRelayClient, EmailRelayError
from agencyops.config import ConfigError, Settings, config_path, load_settings, write_config
from agencyops.derive.activity import build_activity_feed, kind_icon, kind_link, time_ago
from agencyops.derive.health import rank_clients, trend_symbol
from agencyops.derive.onboarding import STEPS
from agencyops.derive.pipeline import build_board, stage_badge
from agencyops.derive.proposals import section_total, summarize_proposals
from agencyops.derive.retainer import find_tier, usage_meters
from agencyops.derive.sla import content_sla_rows, status_color
from agencyops.derive.suggestions import generate_suggestions
from agencyops.derive.timesheet import summarize_time
from agencyops.domain.mappers import RowMappingError
from agencyops.domain.rules import ValidationError
from agencyops.domain.stages import DELIVERED_STATUSES, SenderType
from agencyops.services import exports
from agencyops.services.activity import ActivityService, NotificationRuleRepository, NotificationService
from agencyops.services.clients import ClientRepository
from agencyops.services.content import ContentRepository, ContentRequestRepository
from agencyops.services.deliverables import DeliverableRepository
from agencyops.services.events import EventLogger
from agencyops.services.feedback import ConsoleNotifier
from agencyops.services.invoices import InvoiceRepository
from agencyops.services.planning import PlanningService
from agencyops.services.portal import PortalService
from agencyops.services.proposals import ProposalRepository
from agencyops.services.session import SessionError, SessionManager, SupabaseAuth, load_session, session_file_listener
from agencyops.services.tasks import TaskRepository
from agencyops.services.templates import TemplateService
from agencyops.services.time_entries import TimeEntryRepository
from agencyops.services.utils import today_iso, utc_now
from agencyops.store import realtime
from agencyops.store.cache import QueryCache
from agencyops.store.supabase import StoreError, SupabaseStore

logger = logging.getLogger(__name__)

app = typer.Typer(help="Agency operations CLI")
clients_app = typer.Typer(help="Client records")
deliverables_app = typer.Typer(help="Deliverables")
invoices_app = typer.Typer(help="Invoices")
tasks_app = typer.Typer(help="Tasks")
content_app = typer.Typer(help="Content calendar, quality and performance")
pipeline_app = typer.Typer(help="Sales pipeline board")
sla_app = typer.Typer(help="Content SLAs")
suggest_app = typer.Typer(help="Smart suggestions")
activity_app = typer.Typer(help="Activity feed and notifications")
portal_app = typer.Typer(help="Client portal")
calendar_app = typer.Typer(help="Due-date calendar")
ai_app = typer.Typer(help="AI drafting")
export_app = typer.Typer(help="Exports")
proposals_app = typer.Typer(help="Client proposals")
templates_app = typer.Typer(help="Project templates")
time_app = typer.Typer(help="Time tracking")
rules_app = typer.Typer(help="Notification rules")
retainer_app = typer.Typer(help="Retainer tiers and monthly usage")
team_app = typer.Typer(help="Team members")
auth_app = typer.Typer(help="Sign in and out")

app.add_typer(clients_app, name="clients")
app.add_typer(deliverables_app, name="deliverables")
app.add_typer(invoices_app, name="invoices")
app.add_typer(tasks_app, name="tasks")
app.add_typer(content_app, name="content")
app.add_typer(pipeline_app, name="pipeline")
app.add_typer(sla_app, name="sla")
app.add_typer(suggest_app, name="suggest")
app.add_typer(activity_app, name="activity")
app.add_typer(portal_app, name="portal")
app.add_typer(calendar_app, name="calendar")
app.add_typer(ai_app, name="ai")
app.add_typer(export_app, name="export")
app.add_typer(proposals_app, name="proposals")
app.add_typer(templates_app, name="templates")
app.add_typer(time_app, name="time")
app.add_typer(rules_app, name="rules")
app.add_typer(retainer_app, name="retainer")
app.add_typer(team_app, name="team")
app.add_typer(auth_app, name="auth")

HANDLED_ERRORS = (
    StoreError, ValidationError, RowMappingError, AIError, EmailRelayError, ConfigError, SessionError
)


@dataclass
class Runtime:
    settings: Settings
    store: SupabaseStore
    cache: QueryCache = field(default_factory=QueryCache)
    notifier: ConsoleNotifier = field(default_factory=ConsoleNotifier)
    events: EventLogger | None = None

    def relay(self) -> EmailRelayClient | None:
        if not self.settings.store.url or not self.settings.store.key:
            return None
        return EmailRelayClient(self.settings.store.url, self.settings.store.key)

    def clients(self) -> ClientRepository:
        return ClientRepository(self.store, self.cache, self.notifier, self.events)

    def deliverables(self) -> DeliverableRepository:
        return DeliverableRepository(self.store, self.cache, self.notifier, self.events, relay=self.relay())

    def invoices(self) -> InvoiceRepository:
        return InvoiceRepository(self.store, self.cache, self.notifier, self.events)

    def tasks(self) -> TaskRepository:
        return TaskRepository(self.store, self.cache, self.notifier, self.events)

    def content(self) -> ContentRepository:
        return ContentRepository(self.store, self.cache, self.notifier, self.events)

    def requests(self) -> ContentRequestRepository:
        return ContentRequestRepository(self.store, self.cache, self.notifier, self.events)

    def activity(self) -> ActivityService:
        return ActivityService(self.store, self.cache, self.notifier)

    def notifications(self) -> NotificationService:
        return NotificationService(self.store, self.cache, self.notifier)

    def portal(self) -> PortalService:
        return PortalService(self.store, self.cache, self.notifier, relay=self.relay())

    def planning(self) -> PlanningService:
        return PlanningService(self.store, self.cache, self.notifier)

    def proposals(self) -> ProposalRepository:
        return ProposalRepository(self.store, self.cache, self.notifier, self.events)

    def templates(self) -> TemplateService:
        return TemplateService(self.store, self.cache, self.notifier)

    def time_entries(self) -> TimeEntryRepository:
        return TimeEntryRepository(self.store, self.cache, self.notifier, self.events)

    def notification_rules(self) -> NotificationRuleRepository:
        return NotificationRuleRepository(self.store, self.cache, self.notifier, self.events)

    def sessions(self) -> SessionManager:
        manager = SessionManager(SupabaseAuth(self.store.client))
        manager.restore(load_session(self.settings.session_path))
        manager.subscribe(session_file_listener(self.settings.session_path))
        return manager


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", help="Show version and exit."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    if version:
        typer.echo(__version__)
        raise typer.Exit()
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command("init")
def init(
    url: str | None = typer.Option(None, "--url", help="Supabase project URL."),
    key: str | None = typer.Option(None, "--key", help="Supabase anon key."),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing config file."),
) -> None:
    """Write an agencyops.yaml template in the current directory."""
    path = config_path()
    if path.exists() and not force:
        raise typer.BadParameter(f"Config already exists: {path}. Use --force to overwrite.")
    write_config(path, url, key)
    Path("exports").mkdir(exist_ok=True)
    typer.echo(f"Config written: {path}")


@app.command("health")
def health(json_output: bool = typer.Option(False, "--json", help="Emit JSON output.")) -> None:
    """Client health scores, lowest first."""
    rt = _runtime()
    with _handled():
        ranked = rank_clients(
            rt.clients().list(), rt.deliverables().list(), rt.invoices().list(), rt.tasks().list()
        )
    if json_output:
        payload = [
            {
                "client_id": h.client_id,
                "company_name": h.company_name,
                "score": h.score,
                "grade": h.grade,
                "trend": h.trend.value,
                "factors": {f.name: f.score for f in h.factors},
            }
            for h in ranked
        ]
        typer.echo(json.dumps(payload, indent=2))
        return
    for h in ranked:
        typer.echo(f"{h.grade} | {h.score:>3} | {trend_symbol(h.trend)} | {h.company_name} | {h.market}")


@app.command("onboarding")
def onboarding(branding: bool = typer.Option(False, "--branding", help="Branding has been customized.")) -> None:
    rt = _runtime()
    with _handled():
        progress = rt.planning().onboarding(branding_set=branding)
    for step in STEPS:
        mark = "x" if step.key in progress.completed else " "
        typer.echo(f"[{mark}] {step.label} ({step.path})")
    typer.echo(f"{progress.count}/{progress.total} complete ({progress.percent}%)")


# clients


@clients_app.command("list")
def clients_list(
    market: str | None = typer.Option(None, "--market"),
    status: str | None = typer.Option(None, "--status"),
    stage: str | None = typer.Option(None, "--stage"),
    search: str | None = typer.Option(None, "--search"),
) -> None:
    rt = _runtime()
    with _handled():
        rows = rt.clients().list({"market": market, "status": status, "pipeline_stage": stage, "search": search})
    for c in rows:
        typer.echo(f"{c.client_code or '-'} | {c.company_name} | {c.market} | {c.status} | {c.pipeline_stage} | {c.id}")


@clients_app.command("add")
def clients_add(
    company: str = typer.Option(..., "--company"),
    industry: str = typer.Option(..., "--industry"),
    contact: str = typer.Option(..., "--contact"),
    market: str = typer.Option("SG", "--market"),
    plan: str = typer.Option("Starter", "--plan"),
    status: str = typer.Option("Prospect", "--status"),
    value: float = typer.Option(0, "--value"),
    start: str | None = typer.Option(None, "--start"),
    end: str | None = typer.Option(None, "--end"),
    ghl_url: str | None = typer.Option(None, "--ghl-url"),
) -> None:
    rt = _runtime()
    values = {
        "company_name": company,
        "industry": industry,
        "primary_contact": contact,
        "market": market,
        "plan_tier": plan,
        "status": status,
        "monthly_value": value,
        "contract_start": start,
        "contract_end": end,
        "ghl_url": ghl_url,
        "pipeline_stage": "lead",
    }
    with _handled():
        client = rt.clients().create(values)
    typer.echo(f"Created client: {client.client_code or client.id}")


@clients_app.command("update")
def clients_update(
    client_id: str = typer.Argument(...),
    status: str | None = typer.Option(None, "--status"),
    plan: str | None = typer.Option(None, "--plan"),
    value: float | None = typer.Option(None, "--value"),
    contact: str | None = typer.Option(None, "--contact"),
    end: str | None = typer.Option(None, "--end"),
) -> None:
    rt = _runtime()
    values = _present(status=status, plan_tier=plan, monthly_value=value, primary_contact=contact, contract_end=end)
    if not values:
        raise typer.BadParameter("Nothing to update.")
    with _handled():
        rt.clients().update(client_id, values)


@clients_app.command("touch")
def clients_touch(client_id: str = typer.Argument(...)) -> None:
    rt = _runtime()
    with _handled():
        rt.clients().touch(client_id)


@clients_app.command("delete")
def clients_delete(client_id: str = typer.Argument(...)) -> None:
    rt = _runtime()
    with _handled():
        rt.clients().delete(client_id)


# deliverables


@deliverables_app.command("list")
def deliverables_list(
    client: str | None = typer.Option(None, "--client"),
    status: str | None = typer.Option(None, "--status"),
    assignee: str | None = typer.Option(None, "--assignee"),
    market: str | None = typer.Option(None, "--market"),
    service: str | None = typer.Option(None, "--service"),
    search: str | None = typer.Option(None, "--search"),
) -> None:
    rt = _runtime()
    filters = {
        "client_id": client,
        "status": status,
        "assignee": assignee,
        "market": market,
        "service_type": service,
        "search": search,
    }
    with _handled():
        rows = rt.deliverables().list(filters)
    for d in rows:
        typer.echo(
            f"{d.deliverable_code or '-'} | {d.name} | {d.client_name or '-'} | {d.status} | {d.due_date or '-'} | {d.id}"
        )


@deliverables_app.command("add")
def deliverables_add(
    client: str = typer.Option(..., "--client", help="Client row id."),
    name: str = typer.Option(..., "--name"),
    assignee: str = typer.Option(..., "--assignee"),
    due: str = typer.Option(..., "--due"),
    service: str = typer.Option("SEO", "--service"),
    priority: str = typer.Option("Medium", "--priority"),
    market: str = typer.Option("SG", "--market"),
    description: str | None = typer.Option(None, "--description"),
) -> None:
    rt = _runtime()
    values = {
        "client_id": client,
        "name": name,
        "assigned_to": assignee,
        "due_date": due,
        "service_type": service,
        "priority": priority,
        "status": "Not Started",
        "market": market,
        "description": description,
    }
    with _handled():
        created = rt.deliverables().create(values)
    typer.echo(f"Created deliverable: {created.deliverable_code or created.id}")


@deliverables_app.command("status")
def deliverables_status(
    deliverable_id: str = typer.Argument(...),
    status: str = typer.Argument(...),
    delivered_on: str | None = typer.Option(None, "--delivered-on", help="Delivery date, defaults to today."),
) -> None:
    """Change status; the client's portal contact is e-mailed."""
    values: dict[str, Any] = {"status": status}
    if status in DELIVERED_STATUSES:
        values["delivery_date"] = delivered_on or today_iso()
    rt = _runtime()
    with _handled():
        rt.deliverables().update(deliverable_id, values)


@deliverables_app.command("delete")
def deliverables_delete(deliverable_id: str = typer.Argument(...)) -> None:
    rt = _runtime()
    with _handled():
        rt.deliverables().delete(deliverable_id)


# invoices


@invoices_app.command("list")
def invoices_list(
    client: str | None = typer.Option(None, "--client"),
    status: str | None = typer.Option(None, "--status"),
    market: str | None = typer.Option(None, "--market"),
    month: str | None = typer.Option(None, "--month"),
) -> None:
    rt = _runtime()
    with _handled():
        rows = rt.invoices().list({"client_id": client, "status": status, "market": market, "month": month})
    for i in rows:
        typer.echo(
            f"{i.invoice_code or '-'} | {i.client_name or '-'} | {i.currency} {i.amount:,} | {i.status} | {i.id}"
        )


@invoices_app.command("add")
def invoices_add(
    client: str = typer.Option(..., "--client", help="Client row id."),
    month: str = typer.Option(..., "--month"),
    amount: float = typer.Option(..., "--amount"),
    services: str = typer.Option(..., "--services"),
    currency: str = typer.Option("SGD", "--currency"),
    market: str = typer.Option("SG", "--market"),
) -> None:
    rt = _runtime()
    values = {
        "client_id": client,
        "month": month,
        "amount": amount,
        "services_billed": services,
        "currency": currency,
        "market": market,
        "status": "Draft",
    }
    with _handled():
        created = rt.invoices().create(values)
    typer.echo(f"Created invoice: {created.invoice_code or created.id}")


@invoices_app.command("paid")
def invoices_paid(
    invoice_id: str = typer.Argument(...),
    date: str | None = typer.Option(None, "--date", help="Payment date (defaults to today)."),
) -> None:
    rt = _runtime()
    with _handled():
        rt.invoices().mark_paid(invoice_id, date)


@invoices_app.command("outstanding")
def invoices_outstanding(market: str | None = typer.Option(None, "--market")) -> None:
    rt = _runtime()
    with _handled():
        total = rt.invoices().outstanding_total({"market": market})
    typer.echo(f"Outstanding: {total:,.2f}")


@invoices_app.command("delete")
def invoices_delete(invoice_id: str = typer.Argument(...)) -> None:
    rt = _runtime()
    with _handled():
        rt.invoices().delete(invoice_id)


# tasks


@tasks_app.command("list")
def tasks_list(
    assignee: str | None = typer.Option(None, "--assignee"),
    status: str | None = typer.Option(None, "--status"),
    category: str | None = typer.Option(None, "--category"),
    client: str | None = typer.Option(None, "--client"),
) -> None:
    rt = _runtime()
    with _handled():
        rows = rt.tasks().list({"assignee": assignee, "status": status, "category": category, "client_id": client})
    for t in rows:
        typer.echo(f"{t.task_code or '-'} | {t.name} | {t.assigned_to or '-'} | {t.status} | {t.due_date or '-'} | {t.id}")


@tasks_app.command("add")
def tasks_add(
    name: str = typer.Option(..., "--name"),
    assignee: str = typer.Option(..., "--assignee"),
    due: str = typer.Option(..., "--due"),
    category: str = typer.Option("Ops", "--category"),
    client: str | None = typer.Option(None, "--client"),
    deliverable: str | None = typer.Option(None, "--deliverable"),
    notes: str | None = typer.Option(None, "--notes"),
) -> None:
    rt = _runtime()
    values = {
        "name": name,
        "assigned_to": assignee,
        "due_date": due,
        "category": category,
        "status": "To Do",
        "client_id": client,
        "deliverable_id": deliverable,
        "notes": notes,
    }
    with _handled():
        created = rt.tasks().create(values)
    typer.echo(f"Created task: {created.task_code or created.id}")


@tasks_app.command("status")
def tasks_status(task_id: str = typer.Argument(...), status: str = typer.Argument(...)) -> None:
    rt = _runtime()
    with _handled():
        rt.tasks().update(task_id, {"status": status})


@tasks_app.command("delete")
def tasks_delete(task_id: str = typer.Argument(...)) -> None:
    rt = _runtime()
    with _handled():
        rt.tasks().delete(task_id)


# content


@content_app.command("list")
def content_list(
    status: str | None = typer.Option(None, "--status"),
    content_type: str | None = typer.Option(None, "--type"),
    client: str | None = typer.Option(None, "--client"),
    assignee: str | None = typer.Option(None, "--assignee"),
) -> None:
    rt = _runtime()
    with _handled():
        rows = rt.content().list(
            {"status": status, "content_type": content_type, "client_id": client, "assignee": assignee}
        )
    for c in rows:
        typer.echo(f"{c.content_code or '-'} | {c.title} | {c.content_type} | {c.status} | {c.due_date or '-'} | {c.id}")


@content_app.command("add")
def content_add(
    title: str = typer.Option(..., "--title"),
    assignee: str = typer.Option(..., "--assignee"),
    due: str = typer.Option(..., "--due"),
    content_type: str = typer.Option("Blog", "--type"),
    platform: str | None = typer.Option(None, "--platform"),
    client: str | None = typer.Option(None, "--client"),
    market: str = typer.Option("SG", "--market"),
) -> None:
    rt = _runtime()
    values = {
        "title": title,
        "assigned_to": assignee,
        "due_date": due,
        "content_type": content_type,
        "platform": platform,
        "client_id": client,
        "market": market,
        "status": "Ideation",
    }
    with _handled():
        created = rt.content().create(values)
    typer.echo(f"Created content item: {created.id}")


@content_app.command("score")
def content_score(
    content_id: str = typer.Argument(...),
    seo: int = typer.Option(..., "--seo"),
    brand: int = typer.Option(..., "--brand"),
    uniqueness: int = typer.Option(..., "--uniqueness"),
    humanness: int = typer.Option(..., "--humanness"),
    completeness: int = typer.Option(..., "--completeness"),
    scored_by: str | None = typer.Option(None, "--by"),
) -> None:
    rt = _runtime()
    scores = {
        "seo_score": seo,
        "brand_voice_score": brand,
        "uniqueness_score": uniqueness,
        "humanness_score": humanness,
        "completeness_score": completeness,
    }
    with _handled():
        saved = rt.content().score_quality(content_id, scores, scored_by)
    typer.echo(f"Composite score: {saved.composite_score}")


@content_app.command("performance")
def content_performance(
    content_id: str = typer.Argument(...),
    impressions: int = typer.Option(0, "--impressions"),
    clicks: int = typer.Option(0, "--clicks"),
    position: float | None = typer.Option(None, "--position"),
    tier: str | None = typer.Option(None, "--tier"),
) -> None:
    rt = _runtime()
    metrics = {"impressions": impressions, "clicks": clicks, "avg_position": position, "performance_tier": tier}
    with _handled():
        rt.content().record_performance(content_id, metrics)


@content_app.command("requests")
def content_requests(
    status: str | None = typer.Option(None, "--status"),
    client: str | None = typer.Option(None, "--client"),
) -> None:
    rt = _runtime()
    with _handled():
        rows = rt.requests().list({"status": status, "client_id": client})
    for r in rows:
        typer.echo(f"{r.status} | {r.priority} | {r.content_type} | {r.topic} | {r.client_name or '-'} | {r.id}")


@content_app.command("request-status")
def content_request_status(request_id: str = typer.Argument(...), status: str = typer.Argument(...)) -> None:
    rt = _runtime()
    with _handled():
        rt.requests().set_status(request_id, status)


@content_app.command("show")
def content_show(content_id: str = typer.Argument(...)) -> None:
    """One content item with its quality score, performance, versions and reviews."""
    rt = _runtime()
    repo = rt.content()
    with _handled():
        item = repo.get(content_id)
        if item is None:
            _exit_with_error(f"Content item not found: {content_id}")
        score = repo.quality_score(content_id)
        perf = repo.performance(content_id)
        versions = repo.versions(content_id)
        reviews = repo.reviews(content_id)
    typer.echo(
        f"{item.title} | {item.content_type} | {item.status} | {item.assigned_to or '-'} | due {item.due_date or '-'}"
    )
    if score is None:
        typer.echo("Quality: not scored")
    else:
        typer.echo(
            f"Quality: {score.composite_score} (seo {score.seo_score}, brand {score.brand_voice_score}, "
            f"unique {score.uniqueness_score}, human {score.humanness_score}, complete {score.completeness_score})"
        )
    if perf is None:
        typer.echo("Performance: no data")
    else:
        position = f"{perf.avg_position:g}" if perf.avg_position is not None else "-"
        typer.echo(
            f"Performance: {perf.impressions:,} impressions | {perf.clicks:,} clicks | position {position}"
            f" | {perf.performance_tier or '-'}"
        )
    typer.echo(f"Versions: {len(versions)}" + (f" (latest v{versions[0].version_number})" if versions else ""))
    for review in reviews:
        typer.echo(f"  {review.created_at or '-'} | {review.reviewer_type} {review.reviewer_name} | {review.action}")


@content_app.command("versions")
def content_versions(content_id: str = typer.Argument(...)) -> None:
    rt = _runtime()
    with _handled():
        rows = rt.content().versions(content_id)
    for v in rows:
        typer.echo(f"v{v.version_number} | {v.title} | {v.author or '-'} | {v.created_at or '-'} | {v.notes or ''}")


@content_app.command("save-version")
def content_save_version(
    content_id: str = typer.Argument(...),
    title: str = typer.Option(..., "--title"),
    author: str = typer.Option(..., "--author"),
    body: Path | None = typer.Option(None, "--body", help="File holding the content body."),
    notes: str | None = typer.Option(None, "--notes"),
) -> None:
    rt = _runtime()
    with _handled():
        rt.content().save_version(
            content_id, title, author, content_body=body.read_text(encoding="utf-8") if body else None, notes=notes
        )


@content_app.command("review")
def content_review(
    content_id: str = typer.Argument(...),
    reviewer: str = typer.Option(..., "--reviewer"),
    action: str = typer.Option(..., "--action", help="approve, request_changes or reject"),
    reviewer_type: str = typer.Option("agency", "--as", help="agency or client"),
    comments: str | None = typer.Option(None, "--comments"),
) -> None:
    rt = _runtime()
    values = {"reviewer_name": reviewer, "reviewer_type": reviewer_type, "action": action, "comments": comments}
    with _handled():
        rt.content().submit_review(content_id, values)


# pipeline


@pipeline_app.command("board")
def pipeline_board() -> None:
    rt = _runtime()
    with _handled():
        columns = build_board(rt.clients().pipeline())
    for column in columns:
        typer.echo(f"{column.label} [{stage_badge(column.stage)}] ({len(column.clients)}) {column.total_value:,.0f}")
        for c in column.clients:
            typer.echo(f"  {c.company_name} | {c.monthly_value:,.0f} | {c.id}")


@pipeline_app.command("move")
def pipeline_move(client_id: str = typer.Argument(...), stage: str = typer.Argument(...)) -> None:
    rt = _runtime()
    with _handled():
        rt.clients().move_stage(client_id, stage)
    typer.echo(f"Moved {client_id} to {stage}")


@pipeline_app.command("drop")
def pipeline_drop(
    active_id: str = typer.Argument(..., help="Client being dragged."),
    over_id: str = typer.Argument(..., help="Column id or client card dropped on."),
) -> None:
    rt = _runtime()
    with _handled():
        move = rt.clients().apply_drop(active_id, over_id)
    if move is None:
        typer.echo("No change.")
        return
    typer.echo(f"Moved {move.client_id}: {move.from_stage} -> {move.to_stage}")


# sla


@sla_app.command("status")
def sla_status() -> None:
    """Deadline status of every unpublished content item."""
    rt = _runtime()
    with _handled():
        rows = content_sla_rows(rt.content().list(), rt.planning().sla_definitions())
    for row in rows:
        label = typer.style(str(row["label"]), fg=status_color(row["status"]))
        typer.echo(f"{label} | {row['deadline'][:10]} | {row['content_type']} | {row['title']}")


@sla_app.command("definitions")
def sla_definitions() -> None:
    rt = _runtime()
    with _handled():
        rows = rt.planning().sla_definitions()
    for d in rows:
        typer.echo(
            f"{d.content_type} | {d.brief_to_draft_days}/{d.draft_to_review_days}/{d.review_to_publish_days}"
            f" | total {d.total_days} | {d.id}"
        )


@sla_app.command("set")
def sla_set(
    definition_id: str = typer.Argument(...),
    total: int | None = typer.Option(None, "--total"),
    brief: int | None = typer.Option(None, "--brief"),
    draft: int | None = typer.Option(None, "--draft"),
    review: int | None = typer.Option(None, "--review"),
) -> None:
    rt = _runtime()
    values = _present(
        total_days=total, brief_to_draft_days=brief, draft_to_review_days=draft, review_to_publish_days=review
    )
    if not values:
        raise typer.BadParameter("Nothing to update.")
    with _handled():
        rt.planning().update_sla_definition(definition_id, values)


# suggestions


@suggest_app.command("list")
def suggest_list() -> None:
    rt = _runtime()
    with _handled():
        items = _suggestions(rt)
    if not items:
        typer.echo("No suggestions.")
        return
    for s in items:
        typer.echo(f"{s.priority.value} | {s.id} | {s.title}")
        typer.echo(f"    {s.description}")


@suggest_app.command("confirm")
def suggest_confirm(suggestion_id: str = typer.Argument(...)) -> None:
    rt = _runtime()
    with _handled():
        chosen = next((s for s in _suggestions(rt) if s.id == suggestion_id), None)
        if chosen is None:
            _exit_with_error(f"No current suggestion with id {suggestion_id}.")
        task = rt.tasks().confirm_suggestion(chosen)
    typer.echo(f"Created task: {task.task_code or task.id}")


# activity


@activity_app.command("feed")
def activity_feed(limit: int = typer.Option(30, "--limit")) -> None:
    rt = _runtime()
    with _handled():
        service = rt.activity()
        rows = service.feed(limit)
        unread = service.unread_count()
    typer.echo(f"{unread} unread")
    for log in rows:
        mark = " " if log.is_read else "*"
        stamp = time_ago(log.created_at) if log.created_at else "-"
        typer.echo(f"{mark} {stamp} | {log.description} | {log.performed_by or '-'}")


@activity_app.command("recent")
def activity_recent(limit: int = typer.Option(10, "--limit")) -> None:
    """Latest changes across deliverables, invoices, tasks and content."""
    rt = _runtime()
    with _handled():
        items = build_activity_feed(
            rt.deliverables().list(None),
            rt.invoices().list(None),
            rt.tasks().list(None),
            rt.content().list(None),
            limit=limit,
        )
    for item in items:
        subtitle = f" ({item.subtitle})" if item.subtitle else ""
        typer.echo(
            f"{kind_icon(item.kind)} {time_ago(item.timestamp)} | {item.action}: {item.title}{subtitle} | {kind_link(item.kind)}"
        )


@activity_app.command("read")
def activity_read(
    log_id: str | None = typer.Argument(None),
    all_: bool = typer.Option(False, "--all", help="Mark every entry read."),
) -> None:
    if not log_id and not all_:
        raise typer.BadParameter("Pass an id or --all.")
    rt = _runtime()
    with _handled():
        if all_:
            rt.activity().mark_all_read()
        else:
            rt.activity().mark_read(log_id)


@activity_app.command("timeline")
def activity_timeline(client_id: str = typer.Argument(...), limit: int = typer.Option(50, "--limit")) -> None:
    rt = _runtime()
    with _handled():
        rows = rt.activity().timeline(client_id, limit)
    for log in rows:
        typer.echo(f"{log.created_at} | {log.action} | {log.description}")


@activity_app.command("events")
def activity_events(
    limit: int = typer.Option(20, "--limit"),
    entity: str | None = typer.Option(None, "--entity", help="Only this entity type."),
) -> None:
    """Local mutation log written by this CLI."""
    settings = _settings()
    events = EventLogger(path=settings.events_path)
    for event in events.recent(limit, entity):
        fields = ", ".join(event.get("changed_fields") or []) or "-"
        typer.echo(
            f"{event.get('ts')} | {event.get('event_type')} {event.get('entity_type')} "
            f"{event.get('entity_id') or '-'} | {fields}"
        )


@activity_app.command("note")
def activity_note(
    client_id: str = typer.Argument(...),
    text: str = typer.Argument(...),
    by: str | None = typer.Option(None, "--by"),
    action: str = typer.Option("note", "--action", help="e.g. note, call, meeting"),
) -> None:
    """Add an entry to a client's timeline."""
    rt = _runtime()
    values = {
        "client_id": client_id,
        "entity_type": "client",
        "entity_id": client_id,
        "action": action,
        "description": text,
        "performed_by": by,
    }
    with _handled():
        rt.activity().add_timeline_entry(values)


@activity_app.command("notifications")
def activity_notifications(
    email: str | None = typer.Option(None, "--email"),
    unread: bool = typer.Option(False, "--unread"),
    mark_read: bool = typer.Option(False, "--mark-read", help="Mark all as read (needs --email)."),
) -> None:
    rt = _runtime()
    service = rt.notifications()
    with _handled():
        if mark_read:
            if not email:
                raise typer.BadParameter("--mark-read needs --email.")
            service.mark_all_read(email)
            return
        rows = service.unread(email) if unread else service.list(email)
    for n in rows:
        mark = " " if n.is_read else "*"
        typer.echo(f"{mark} {n.title} | {n.message or ''} | {n.created_at}")


@activity_app.command("watch")
def activity_watch(
    seconds: float | None = typer.Option(None, "--seconds", help="Stop after this many seconds."),
) -> None:
    """Stream new activity_logs rows as they are inserted."""
    settings = _settings()
    if not settings.store.url or not settings.store.key:
        _exit_with_error("Store credentials missing. Set SUPABASE_URL and SUPABASE_ANON_KEY.")
    try:
        asyncio.run(_watch_activity(settings, QueryCache(), seconds))
    except KeyboardInterrupt:
        typer.echo("Stopped.")


async def _watch_activity(settings: Settings, cache: QueryCache, seconds: float | None) -> None:
    client = await acreate_client(settings.store.url, settings.store.key)

    def show(payload: dict[str, Any]) -> None:
        record = _inserted_record(payload)
        typer.echo(f"{record.get('created_at', '')} | {record.get('description', '')}")

    channel = await realtime.subscribe_activity_logs(client, cache, on_insert=show)
    try:
        if seconds is None:
            await asyncio.Event().wait()
        else:
            await asyncio.sleep(seconds)
    finally:
        await realtime.unsubscribe(client, channel)


def _inserted_record(payload: dict[str, Any]) -> dict[str, Any]:
    data = payload.get("data") or payload
    return data.get("record") or data.get("new") or {}


# portal


@portal_app.command("access")
def portal_access() -> None:
    rt = _runtime()
    with _handled():
        rows = rt.portal().access_list()
    for a in rows:
        state = "active" if a.is_active else "inactive"
        typer.echo(f"{a.contact_email} | {a.contact_name or '-'} | {state} | {a.last_accessed_at or 'never'} | {a.id}")


@portal_app.command("grant")
def portal_grant(
    client_id: str = typer.Argument(...),
    email: str = typer.Option(..., "--email"),
    name: str | None = typer.Option(None, "--name"),
) -> None:
    rt = _runtime()
    with _handled():
        access = rt.portal().grant(client_id, email, name)
    app_url = rt.settings.email.app_url or ""
    typer.echo(f"{app_url.rstrip('/')}/portal/{access.access_token}")


@portal_app.command("toggle")
def portal_toggle(
    access_id: str = typer.Argument(...),
    active: bool = typer.Option(True, "--active/--inactive"),
) -> None:
    rt = _runtime()
    with _handled():
        rt.portal().set_active(access_id, active)


@portal_app.command("revoke")
def portal_revoke(access_id: str = typer.Argument(...)) -> None:
    rt = _runtime()
    with _handled():
        rt.portal().revoke(access_id)


@portal_app.command("messages")
def portal_messages(
    client_id: str = typer.Argument(...),
    mark_read: bool = typer.Option(False, "--mark-read", help="Mark client messages as read."),
) -> None:
    rt = _runtime()
    service = rt.portal()
    with _handled():
        rows = service.messages(client_id)
        if mark_read:
            service.mark_read(client_id, SenderType.CLIENT.value)
    for m in rows:
        typer.echo(_format_message(m))


@portal_app.command("send")
def portal_send(
    client_id: str = typer.Argument(...),
    content: str = typer.Option(..., "--content"),
    sender: str = typer.Option(..., "--sender", help="Sender display name."),
    sender_type: str = typer.Option("agency", "--as", help="agency or client"),
    deliverable: str | None = typer.Option(None, "--deliverable"),
) -> None:
    rt = _runtime()
    values = {
        "client_id": client_id,
        "content": content,
        "sender_name": sender,
        "sender_type": sender_type,
        "deliverable_id": deliverable,
    }
    with _handled():
        rt.portal().send_message(values)


@portal_app.command("open")
def portal_open(
    token: str = typer.Argument(...),
    deliverable: str | None = typer.Option(None, "--deliverable", help="Only feedback on this deliverable."),
) -> None:
    """Resolve a portal link the way the client sees it."""
    rt = _runtime()
    service = rt.portal()
    with _handled():
        access = service.access_by_token(token)
        if access is None:
            _exit_with_error("Portal link is invalid or has been deactivated.")
        rows = service.deliverable_feedback(deliverable) if deliverable else service.messages(access.client_id)
    typer.echo(f"{access.contact_name or access.contact_email or '-'} | client {access.client_id}")
    for m in rows:
        if m.client_id == access.client_id:
            typer.echo(_format_message(m))


@portal_app.command("unread")
def portal_unread() -> None:
    rt = _runtime()
    with _handled():
        counts = rt.portal().unread_counts()
    if not counts:
        typer.echo("No unread client messages.")
    for client_id, count in sorted(counts.items()):
        typer.echo(f"{client_id} | {count}")


@portal_app.command("poll")
def portal_poll(
    client_id: str = typer.Argument(...),
    interval: float = typer.Option(realtime.PORTAL_POLL_SECONDS, "--interval"),
    rounds: int | None = typer.Option(None, "--rounds", help="Stop after this many refreshes."),
) -> None:
    """Print new messages in a thread as they arrive."""
    rt = _runtime()
    try:
        with _handled():
            asyncio.run(_poll_messages(rt.portal(), client_id, interval, rounds))
    except KeyboardInterrupt:
        typer.echo("Stopped.")


async def _poll_messages(service: PortalService, client_id: str, interval: float, rounds: int | None) -> None:
    stop = asyncio.Event()
    seen: set[str] = set()
    done = 0

    def show(messages) -> None:
        nonlocal done
        for m in messages:
            if m.id not in seen:
                seen.add(m.id)
                typer.echo(_format_message(m))
        done += 1
        if rounds is not None and done >= rounds:
            stop.set()

    await realtime.poll(lambda: service.refresh_messages(client_id), stop, interval, show)


def _format_message(m) -> str:
    return f"{m.created_at} | {m.sender_type} | {m.sender_name or '-'} | {m.content}"


# calendar


@calendar_app.command("month")
def calendar_month(year: int = typer.Argument(...), month: int = typer.Argument(...)) -> None:
    rt = _runtime()
    with _handled():
        events = rt.planning().calendar(year, month)
    if not events:
        typer.echo("Nothing due.")
    for e in events:
        typer.echo(f"{e.due_date} | {e.kind} | {e.name} | {e.status or '-'} | {e.client_name or '-'}")


# ai


@ai_app.command("content")
def ai_content(
    prompt: str = typer.Argument(...),
    content_type: str = typer.Option("Blog", "--type"),
    platform: str | None = typer.Option(None, "--platform"),
    tone: str | None = typer.Option(None, "--tone"),
    client_id: str | None = typer.Option(None, "--client"),
    existing: Path | None = typer.Option(None, "--existing", help="File with content to refine."),
) -> None:
    rt = _runtime()
    ai = _ai_client(rt.settings)
    with _handled():
        context = _client_context(rt, client_id) if client_id else None
        text = ai.generate_content(
            prompt,
            content_type,
            platform=platform,
            tone=tone,
            client=context,
            existing_content=existing.read_text(encoding="utf-8") if existing else None,
        )
    typer.echo(text)


@ai_app.command("email")
def ai_email(
    email_type: str = typer.Argument(..., help="e.g. follow-up, invoice reminder, monthly report"),
    client_id: str = typer.Argument(...),
    context: str | None = typer.Option(None, "--context"),
) -> None:
    rt = _runtime()
    ai = _ai_client(rt.settings)
    with _handled():
        client = _client_context(rt, client_id)
        draft = ai.generate_email(
            email_type,
            client,
            additional_context=context,
            deliverables=rt.deliverables().list({"client_id": client_id}),
            invoices=rt.invoices().list({"client_id": client_id}),
        )
    typer.echo(f"Subject: {draft.subject}\n")
    typer.echo(draft.body)


# exports


@export_app.command("excel")
def export_excel(out: str = typer.Option(..., "--out")) -> None:
    rt = _runtime()
    with _handled():
        exports.export_excel(rt.store, Path(out))
    typer.echo(f"Exported Excel to {out}")


@export_app.command("csv")
def export_csv(out: str = typer.Option(..., "--out", help="Output directory.")) -> None:
    rt = _runtime()
    with _handled():
        written = exports.export_csv_tables(rt.store, Path(out))
    typer.echo(f"Exported {len(written)} CSV files to {out}")


# proposals


@proposals_app.command("list")
def proposals_list(
    status: str | None = typer.Option(None, "--status"),
    client: str | None = typer.Option(None, "--client"),
) -> None:
    rt = _runtime()
    with _handled():
        rows = rt.proposals().list({"status": status, "client_id": client})
    for p in rows:
        typer.echo(
            f"{p.proposal_code or '-'} | {p.title} | {p.client_name or '-'} | {p.currency} {p.total_amount:,.2f}"
            f" | {p.status} | {p.valid_until or '-'} | {p.id}"
        )


@proposals_app.command("show")
def proposals_show(proposal_id: str = typer.Argument(...)) -> None:
    rt = _runtime()
    with _handled():
        p = rt.proposals().get(proposal_id)
    if p is None:
        _exit_with_error(f"Proposal not found: {proposal_id}")
    typer.echo(f"{p.proposal_code or '-'} | {p.title} | {p.client_name or '-'} | {p.status}")
    for section in p.sections:
        typer.echo(f"  {section.get('title') or 'Untitled'}: {section_total(section):,.2f}")
        for item in section.get("items") or ():
            typer.echo(f"    {item.get('name') or '-'} | {item.get('qty')} x {item.get('rate')}")
    typer.echo(f"Total: {p.currency} {p.total_amount:,.2f}")


@proposals_app.command("add")
def proposals_add(
    client: str = typer.Option(..., "--client", help="Client row id."),
    title: str = typer.Option(..., "--title"),
    sections: Path = typer.Option(..., "--sections", help="YAML file with the priced sections."),
    currency: str = typer.Option("SGD", "--currency"),
    valid_until: str | None = typer.Option(None, "--valid-until"),
    notes: str | None = typer.Option(None, "--notes"),
) -> None:
    rt = _runtime()
    values = {
        "client_id": client,
        "title": title,
        "sections": _load_sections(sections),
        "currency": currency,
        "valid_until": valid_until,
        "notes": notes,
    }
    with _handled():
        created = rt.proposals().create(values)
    typer.echo(
        f"Created proposal: {created.proposal_code or created.id} ({created.currency} {created.total_amount:,.2f})"
    )


@proposals_app.command("update")
def proposals_update(
    proposal_id: str = typer.Argument(...),
    title: str | None = typer.Option(None, "--title"),
    sections: Path | None = typer.Option(None, "--sections", help="YAML file with the priced sections."),
    currency: str | None = typer.Option(None, "--currency"),
    valid_until: str | None = typer.Option(None, "--valid-until"),
    notes: str | None = typer.Option(None, "--notes"),
) -> None:
    rt = _runtime()
    values = _present(title=title, currency=currency, valid_until=valid_until, notes=notes)
    if sections is not None:
        values["sections"] = _load_sections(sections)
    if not values:
        raise typer.BadParameter("Nothing to update.")
    with _handled():
        rt.proposals().update(proposal_id, values)


@proposals_app.command("status")
def proposals_status(proposal_id: str = typer.Argument(...), status: str = typer.Argument(...)) -> None:
    rt = _runtime()
    with _handled():
        rt.proposals().set_status(proposal_id, status)


@proposals_app.command("delete")
def proposals_delete(proposal_id: str = typer.Argument(...)) -> None:
    rt = _runtime()
    with _handled():
        rt.proposals().delete(proposal_id)


@proposals_app.command("summary")
def proposals_summary() -> None:
    rt = _runtime()
    with _handled():
        summary = summarize_proposals(rt.proposals().list())
    typer.echo(f"Drafts: {summary.drafts}")
    typer.echo(f"Open: {summary.open}")
    typer.echo(f"Accepted: {summary.accepted} ({summary.accepted_value:,.2f})")


# templates


@templates_app.command("list")
def templates_list() -> None:
    rt = _runtime()
    with _handled():
        rows = rt.templates().list()
    for t in rows:
        tasks = sum(len(d.tasks) for d in t.deliverables)
        typer.echo(f"{t.name} | {t.category or '-'} | {len(t.deliverables)} deliverables | {tasks} tasks | {t.id}")


@templates_app.command("add")
def templates_add(
    name: str = typer.Option(..., "--name"),
    category: str = typer.Option(..., "--category"),
    deliverables: Path = typer.Option(..., "--deliverables", help="YAML list of deliverables with their tasks."),
    description: str | None = typer.Option(None, "--description"),
) -> None:
    rt = _runtime()
    items = _load_yaml_list(deliverables, "deliverables")
    with _handled():
        template_id = rt.templates().create(name, category, items, description=description)
    typer.echo(f"Created template: {template_id}")


@templates_app.command("update")
def templates_update(
    template_id: str = typer.Argument(...),
    name: str | None = typer.Option(None, "--name"),
    category: str | None = typer.Option(None, "--category"),
    description: str | None = typer.Option(None, "--description"),
) -> None:
    rt = _runtime()
    values = _present(name=name, category=category, description=description)
    if not values:
        raise typer.BadParameter("Nothing to update.")
    with _handled():
        rt.templates().update(template_id, values)


@templates_app.command("delete")
def templates_delete(template_id: str = typer.Argument(...)) -> None:
    rt = _runtime()
    with _handled():
        rt.templates().delete(template_id)


@templates_app.command("apply")
def templates_apply(template_id: str = typer.Argument(...), client_id: str = typer.Argument(...)) -> None:
    """Create a client's deliverables and tasks from a template."""
    rt = _runtime()
    with _handled():
        applied = rt.templates().apply(template_id, client_id)
    typer.echo(f"Created {len(applied.deliverable_codes)} deliverables and {len(applied.task_codes)} tasks")


# time


@time_app.command("list")
def time_list(
    client: str | None = typer.Option(None, "--client"),
    task: str | None = typer.Option(None, "--task"),
    deliverable: str | None = typer.Option(None, "--deliverable"),
) -> None:
    rt = _runtime()
    with _handled():
        rows = rt.time_entries().list({"client_id": client, "task_id": task, "deliverable_id": deliverable})
    for e in rows:
        billing = f"billable @ {e.hourly_rate:g}" if e.is_billable and e.hourly_rate else (
            "billable" if e.is_billable else "non-billable"
        )
        typer.echo(f"{e.date} | {e.team_member} | {e.hours:g}h | {billing} | {e.notes or ''} | {e.id}")
    summary = summarize_time(rows)
    typer.echo(
        f"Total {summary.total_hours:g}h | billable {summary.billable_hours:g}h | {summary.billable_amount:,.2f}"
    )


@time_app.command("log")
def time_log(
    member: str = typer.Option(..., "--member"),
    hours: float = typer.Option(..., "--hours"),
    date: str | None = typer.Option(None, "--date", help="Defaults to today."),
    notes: str | None = typer.Option(None, "--notes"),
    billable: bool = typer.Option(True, "--billable/--non-billable"),
    rate: float | None = typer.Option(None, "--rate", help="Hourly rate for billable time."),
    client: str | None = typer.Option(None, "--client"),
    task: str | None = typer.Option(None, "--task"),
    deliverable: str | None = typer.Option(None, "--deliverable"),
) -> None:
    rt = _runtime()
    values = {
        "team_member": member,
        "hours": hours,
        "date": date or today_iso(),
        "notes": notes,
        "is_billable": billable,
        "hourly_rate": rate,
        "client_id": client,
        "task_id": task,
        "deliverable_id": deliverable,
    }
    with _handled():
        rt.time_entries().log(values)


@time_app.command("delete")
def time_delete(entry_id: str = typer.Argument(...)) -> None:
    rt = _runtime()
    with _handled():
        rt.time_entries().delete(entry_id)


# notification rules


@rules_app.command("list")
def rules_list() -> None:
    rt = _runtime()
    with _handled():
        rows = rt.notification_rules().list()
    for r in rows:
        state = "on" if r.is_active else "off"
        typer.echo(f"{state} | {r.name} | {r.trigger_type} | {r.channel} | {', '.join(r.recipients)} | {r.id}")


@rules_app.command("add")
def rules_add(
    name: str = typer.Option(..., "--name"),
    trigger: str = typer.Option(..., "--trigger"),
    recipient: list[str] = typer.Option(..., "--recipient", help="Repeat for several recipients."),
    channel: str = typer.Option("in_app", "--channel"),
    days: int | None = typer.Option(None, "--days", help="Days before or after the due date."),
) -> None:
    rt = _runtime()
    values = {
        "name": name,
        "trigger_type": trigger,
        "channel": channel,
        "recipients": recipient,
        "is_active": True,
        "conditions": {"days": days} if days is not None else {},
    }
    with _handled():
        rt.notification_rules().create(values)


@rules_app.command("toggle")
def rules_toggle(rule_id: str = typer.Argument(...), active: bool = typer.Option(True, "--active/--inactive")) -> None:
    rt = _runtime()
    with _handled():
        rt.notification_rules().toggle(rule_id, active)


@rules_app.command("delete")
def rules_delete(rule_id: str = typer.Argument(...)) -> None:
    rt = _runtime()
    with _handled():
        rt.notification_rules().delete(rule_id)


# retainer and team


@retainer_app.command("tiers")
def retainer_tiers() -> None:
    rt = _runtime()
    with _handled():
        rows = rt.planning().retainer_tiers()
    for t in rows:
        typer.echo(
            f"{t.name} | blogs {t.blogs_per_month} | service pages {t.service_pages_per_month}"
            f" | pSEO {t.pseo_pages_per_month} | social {t.social_cascades_per_month}"
            f" | email {t.email_sequences_per_month} | case studies {t.case_studies_per_month} | {t.id}"
        )


@retainer_app.command("set-tier")
def retainer_set_tier(
    tier_id: str = typer.Argument(...),
    blogs: int | None = typer.Option(None, "--blogs"),
    service_pages: int | None = typer.Option(None, "--service-pages"),
    pseo_pages: int | None = typer.Option(None, "--pseo-pages"),
    social: int | None = typer.Option(None, "--social"),
    email: int | None = typer.Option(None, "--email"),
    case_studies: int | None = typer.Option(None, "--case-studies"),
) -> None:
    rt = _runtime()
    values = _present(
        blogs_per_month=blogs,
        service_pages_per_month=service_pages,
        pseo_pages_per_month=pseo_pages,
        social_cascades_per_month=social,
        email_sequences_per_month=email,
        case_studies_per_month=case_studies,
    )
    if not values:
        raise typer.BadParameter("Nothing to update.")
    with _handled():
        rt.planning().update_retainer_tier(tier_id, values)


@retainer_app.command("usage")
def retainer_usage(
    client_id: str = typer.Argument(...),
    month: str | None = typer.Option(None, "--month", help="YYYY-MM, defaults to this month."),
) -> None:
    """Quota meters for a client's plan tier in one month."""
    rt = _runtime()
    month = month or utc_now().strftime("%Y-%m")
    with _handled():
        client = rt.clients().get(client_id)
        if client is None:
            _exit_with_error(f"Client not found: {client_id}")
        tier = find_tier(rt.planning().retainer_tiers(), client.plan_tier)
        usage = rt.planning().retainer_usage(client_id, month)
    if tier is None:
        typer.echo(f'No retainer tier found for "{client.plan_tier}".')
        return
    typer.echo(f"{client.company_name} | {tier.name} | {month}")
    for meter in usage_meters(tier, usage):
        typer.echo(f"{meter.label} | {meter.used}/{meter.total} | {meter.percent:.0f}% | {meter.level}")


@retainer_app.command("record")
def retainer_record(
    client_id: str = typer.Argument(...),
    month: str | None = typer.Option(None, "--month", help="YYYY-MM, defaults to this month."),
    blogs: int | None = typer.Option(None, "--blogs"),
    service_pages: int | None = typer.Option(None, "--service-pages"),
    pseo_pages: int | None = typer.Option(None, "--pseo-pages"),
    social: int | None = typer.Option(None, "--social"),
    email: int | None = typer.Option(None, "--email"),
    case_studies: int | None = typer.Option(None, "--case-studies"),
) -> None:
    rt = _runtime()
    values = _present(
        blogs_used=blogs,
        service_pages_used=service_pages,
        pseo_pages_used=pseo_pages,
        social_cascades_used=social,
        email_sequences_used=email,
        case_studies_used=case_studies,
    )
    if not values:
        raise typer.BadParameter("Nothing to record.")
    with _handled():
        rt.planning().record_usage(client_id, month or utc_now().strftime("%Y-%m"), values)


@team_app.command("list")
def team_list() -> None:
    rt = _runtime()
    with _handled():
        rows = rt.planning().team_members()
    for m in rows:
        state = "active" if m.is_active else "inactive"
        typer.echo(f"{m.name} | {m.email or '-'} | {m.role or '-'} | {state}")


# auth


@auth_app.command("login")
def auth_login(
    email: str = typer.Option(..., "--email", prompt=True),
    password: str = typer.Option(..., "--password", prompt=True, hide_input=True),
) -> None:
    rt = _runtime()
    with _handled():
        session = rt.sessions().sign_in(email, password)
    typer.echo(f"Signed in as {session.profile.full_name} ({session.profile.role})")


@auth_app.command("whoami")
def auth_whoami() -> None:
    settings = _settings()
    session = load_session(settings.session_path)
    if session is None:
        _exit_with_error("Not signed in.")
    profile = session.profile
    typer.echo(f"{profile.full_name} | {profile.email} | {profile.role} | expires {session.expires_at or '-'}")


@auth_app.command("logout")
def auth_logout() -> None:
    rt = _runtime()
    with _handled():
        rt.sessions().sign_out()
    typer.echo("Signed out.")


def _suggestions(rt: Runtime):
    return generate_suggestions(
        rt.clients().list(),
        rt.deliverables().list(),
        rt.invoices().list(),
        rt.tasks().list(),
        rt.content().list(),
        billing_assignee=rt.settings.billing_assignee,
    )


def _client_context(rt: Runtime, client_id: str) -> ClientContext:
    client = rt.clients().get(client_id)
    if client is None:
        _exit_with_error(f"Client not found: {client_id}")
    return ClientContext(
        company_name=client.company_name,
        primary_contact=client.primary_contact,
        industry=client.industry,
        market=client.market,
        plan_tier=client.plan_tier,
        monthly_value=client.monthly_value,
    )


def _ai_client(settings: Settings) -> AIClient:
    ai = AIClient(settings.ai.api_key, settings.ai.model)
    if not ai.configured:
        _exit_with_error("AI API key not configured. Set OPENROUTER_API_KEY.")
    return ai


def _present(**values: Any) -> dict[str, Any]:
    return {k: v for k, v in values.items() if v is not None}


def _load_yaml_list(path: Path, key: str) -> list[Any]:
    """Read a YAML list, either at the top level or under ``key``."""
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise typer.BadParameter(f"Cannot read {path}: {exc}") from exc
    if isinstance(data, dict):
        data = data.get(key)
    if not isinstance(data, list):
        raise typer.BadParameter(f"{path} must hold a list of {key}.")
    return data


def _load_sections(path: Path) -> list[Any]:
    return _load_yaml_list(path, "sections")


def _settings() -> Settings:
    try:
        return load_settings()
    except ConfigError as exc:
        _exit_with_error(str(exc))


def _runtime(events: bool = True) -> Runtime:
    settings = _settings()
    try:
        store = SupabaseStore.connect(settings.store)
    except StoreError as exc:
        _exit_with_error(str(exc))
    return Runtime(
        settings=settings,
        store=store,
        events=EventLogger(path=settings.events_path, enabled=events),
    )


@contextmanager
def _handled() -> Iterator[None]:
    try:
        yield
    except HANDLED_ERRORS as exc:
        logger.debug("Command failed", exc_info=True)
        _exit_with_error(str(exc))


def _exit_with_error(message: str) -> None:
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
