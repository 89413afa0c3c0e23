import pytest

from agencyops.domain import mappers
from agencyops.domain.mappers import (
    RowMappingError,
    map_client,
    map_content_request,
    map_deliverable,
    map_invoice,
    map_notification_rule,
    to_client_row,
    to_deliverable_row,
    to_invoice_row,
    to_number,
)
from agencyops.domain.models import Client
from agencyops.domain.stages import Market


def test_client_row_maps_code_and_numeric_value() -> None:
    client = map_client(
        {
            "id": "uuid-1",
            "client_id": "CLI-007",
            "company_name": "Acme",
            "market": "ID",
            "plan_tier": "Pro",
            "status": "Active",
            "monthly_value": "4500.00",
            "pipeline_stage": "won",
        }
    )

    assert client.client_code == "CLI-007"
    assert client.monthly_value == 4500
    assert isinstance(client.monthly_value, int)
    assert client.industry is None


def test_missing_columns_take_model_defaults() -> None:
    client = map_client({"id": "1", "company_name": "Acme"})
    assert client.pipeline_stage == "lead"
    assert client.monthly_value == 0


def test_incomplete_row_raises() -> None:
    with pytest.raises(RowMappingError):
        map_deliverable({"id": "d1", "name": "Audit"})


def test_non_numeric_amount_raises() -> None:
    with pytest.raises(RowMappingError):
        map_invoice({"id": "i1", "client_id": "c1", "amount": "lots", "status": "Draft"})


def test_to_number_mirrors_number_coercion() -> None:
    assert to_number(None) == 0
    assert to_number("") == 0
    assert to_number("12.50") == 12.5
    assert to_number(3.0) == 3


def test_partial_row_only_contains_given_fields() -> None:
    assert to_deliverable_row({"status": "Review"}) == {"status": "Review"}


def test_read_only_columns_are_never_written() -> None:
    row = to_invoice_row({"client_name": "Acme", "invoice_code": "INV-1", "amount": "99"})
    assert row == {"invoice_id": "INV-1", "amount": 99}


def test_empty_optional_strings_become_null_and_enums_unwrap() -> None:
    row = to_client_row({"industry": "", "market": Market.US, "company_name": "Acme"})
    assert row == {"industry": None, "market": "US", "company_name": "Acme"}


def test_dataclass_input_drops_none_fields() -> None:
    row = to_client_row(Client(id="1", company_name="Acme"))
    assert "client_id" not in row
    assert "id" not in row
    assert row["company_name"] == "Acme"
    assert row["pipeline_stage"] == "lead"


def test_list_and_json_columns_default_to_empty() -> None:
    rule = map_notification_rule(
        {"id": "r1", "name": "x", "trigger_type": "upcoming_due", "channel": "email", "recipients": None}
    )
    assert rule.recipients == []
    assert rule.conditions == {}

    request = map_content_request({"id": "q1", "client_id": "c1", "topic": "FAQ", "request_id": "REQ-1"})
    assert request.request_code == "REQ-1"
    assert request.reference_urls == []


SAMPLE_VALUES = {"text": "x", "number": 12.5, "int": 3, "bool": True, "json": {"days": 2}, "list": ["a"]}

ROUND_TRIPS = [
    (mappers.CLIENT_FIELDS, mappers.map_client, mappers.to_client_row),
    (mappers.DELIVERABLE_FIELDS, mappers.map_deliverable, mappers.to_deliverable_row),
    (mappers.INVOICE_FIELDS, mappers.map_invoice, mappers.to_invoice_row),
    (mappers.TASK_FIELDS, mappers.map_task, mappers.to_task_row),
    (mappers.CONTENT_FIELDS, mappers.map_content_item, mappers.to_content_row),
    (mappers.ACTIVITY_LOG_FIELDS, mappers.map_activity_log, mappers.to_activity_log_row),
    (mappers.NOTIFICATION_RULE_FIELDS, mappers.map_notification_rule, mappers.to_notification_rule_row),
    (mappers.PORTAL_ACCESS_FIELDS, mappers.map_portal_access, mappers.to_portal_access_row),
    (mappers.PORTAL_MESSAGE_FIELDS, mappers.map_portal_message, mappers.to_portal_message_row),
    (mappers.CONTENT_REQUEST_FIELDS, mappers.map_content_request, mappers.to_content_request_row),
    (mappers.SLA_DEFINITION_FIELDS, mappers.map_sla_definition, mappers.to_sla_definition_row),
    (mappers.RETAINER_TIER_FIELDS, mappers.map_retainer_tier, mappers.to_retainer_tier_row),
    (mappers.RETAINER_USAGE_FIELDS, mappers.map_retainer_usage, mappers.to_retainer_usage_row),
    (mappers.PROPOSAL_FIELDS, mappers.map_proposal, mappers.to_proposal_row),
    (mappers.PROJECT_TEMPLATE_FIELDS, mappers.map_project_template, mappers.to_project_template_row),
    (mappers.CONTENT_VERSION_FIELDS, mappers.map_content_version, mappers.to_content_version_row),
    (mappers.CONTENT_REVIEW_FIELDS, mappers.map_content_review, mappers.to_content_review_row),
    (mappers.TIME_ENTRY_FIELDS, mappers.map_time_entry, mappers.to_time_entry_row),
]


@pytest.mark.parametrize(("fields", "read", "write"), ROUND_TRIPS, ids=lambda v: getattr(v, "__name__", None))
def test_writing_a_mapped_row_gives_back_its_writable_columns(fields, read, write) -> None:
    row = {f.col: SAMPLE_VALUES[f.kind] for f in fields}

    written = write(read(row))

    assert written == {f.col: row[f.col] for f in fields if f.writable}


def test_proposal_takes_client_name_from_embedded_client() -> None:
    proposal = mappers.map_proposal(
        {"id": "p1", "client_id": "c1", "title": "SEO", "clients": {"company_name": "Acme"}}
    )
    assert proposal.client_name == "Acme"
    assert proposal.sections == []
    assert proposal.status == "draft"


def test_template_deliverables_are_nested_and_ordered() -> None:
    template = mappers.map_project_template(
        {
            "id": "t1",
            "name": "Launch",
            "template_deliverables": [
                {"id": "d2", "template_id": "t1", "name": "Second", "sort_order": 1},
                {
                    "id": "d1",
                    "template_id": "t1",
                    "name": "First",
                    "sort_order": 0,
                    "template_tasks": [{"id": "k1", "template_deliverable_id": "d1", "name": "Kickoff"}],
                },
            ],
        }
    )
    assert [d.name for d in template.deliverables] == ["First", "Second"]
    assert template.deliverables[0].tasks[0].priority == "medium"
