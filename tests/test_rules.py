import pytest

from agencyops.domain import rules
from agencyops.domain.rules import ValidationError

CLIENT = {
    "company_name": "Acme",
    "market": "SG",
    "industry": "Retail",
    "plan_tier": "Starter",
    "status": "Prospect",
    "primary_contact": "Jo",
    "monthly_value": 0,
}


def test_valid_client_passes() -> None:
    rules.validate_client(CLIENT)


def test_client_errors_are_collected_per_field() -> None:
    with pytest.raises(ValidationError) as excinfo:
        rules.validate_client({**CLIENT, "industry": " ", "monthly_value": -5, "ghl_url": "not a url"})

    assert excinfo.value.errors == {
        "industry": "Industry is required",
        "monthly_value": "Value must be positive",
        "ghl_url": "Must be a valid URL",
    }


def test_contract_end_before_start_is_rejected() -> None:
    with pytest.raises(ValidationError) as excinfo:
        rules.validate_client({**CLIENT, "contract_start": "2026-03-01", "contract_end": "2026-02-01"})
    assert "contract_end" in excinfo.value.errors


def test_partial_validation_checks_only_given_fields() -> None:
    rules.validate_client({"status": "Active"}, partial=True)
    with pytest.raises(ValidationError):
        rules.validate_client({"status": "Dormant"}, partial=True)


def test_invoice_amount_must_be_positive() -> None:
    with pytest.raises(ValidationError) as excinfo:
        rules.validate_invoice({"amount": 0}, partial=True)
    assert excinfo.value.errors == {"amount": "Amount must be positive"}


def test_content_platform_is_optional() -> None:
    values = {
        "title": "Post",
        "content_type": "Blog",
        "status": "Draft",
        "assigned_to": "Lee",
        "due_date": "2026-02-20",
        "market": "US",
    }
    rules.validate_content(values)
    with pytest.raises(ValidationError):
        rules.validate_content({**values, "platform": "MySpace"})


def test_content_request_priority() -> None:
    rules.validate_content_request({"content_type": "Blog", "topic": "FAQ", "priority": "rush"})
    with pytest.raises(ValidationError):
        rules.validate_content_request({"content_type": "Blog", "topic": "FAQ", "priority": "asap"})


def test_parse_date() -> None:
    assert rules.parse_date(None, "due") is None
    assert rules.parse_date("2026-02-16", "due").day == 16
    with pytest.raises(ValidationError):
        rules.parse_date("16/02/2026", "due")


def test_delivery_date_requires_terminal_status() -> None:
    rules.validate_deliverable({"delivery_date": "2026-02-10", "status": "Delivered"}, partial=True)
    with pytest.raises(ValidationError) as excinfo:
        rules.validate_deliverable({"delivery_date": "2026-02-10", "status": "In Progress"}, partial=True)
    assert "delivery_date" in excinfo.value.errors
    with pytest.raises(ValidationError):
        rules.validate_deliverable({"delivery_date": "2026-02-10"}, partial=True)
