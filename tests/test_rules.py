from datetime import datetime, timedelta, timezone

import pytest

from rental_console import rules
from rental_console.errors import ValidationError
from rental_console.rules import CategoryRatePricing, FixedRatePricing


def test_transitions_follow_state_machines():
    assert rules.can_transition("reservation", "pending", "confirmed")
    assert rules.can_transition("reservation", "confirmed", "completed")
    assert not rules.can_transition("reservation", "cancelled", "confirmed")
    assert rules.can_transition("maintenance", "scheduled", "in-progress")
    assert not rules.can_transition("maintenance", "completed", "scheduled")
    assert rules.can_transition("payment", "completed", "refunded")
    assert not rules.can_transition("invoice", "paid", "issued")


def test_same_status_is_always_allowed():
    assert rules.can_transition("invoice", "paid", "paid")
    assert rules.can_transition("rental", rules.RentalStatus.COMPLETED, "completed")


def test_check_transition_raises():
    with pytest.raises(ValidationError, match="from 'completed' to 'active'"):
        rules.check_transition("rental", "completed", "active")


def test_active_rental_past_expected_return_shows_overdue():
    expected = datetime(2025, 6, 4)
    assert rules.rental_display_status("active", expected, datetime(2025, 6, 5)) == "overdue"
    assert rules.rental_display_status("active", expected, datetime(2025, 6, 3)) == "active"
    assert rules.rental_display_status("completed", expected, datetime(2025, 6, 5)) == "completed"


def test_overdue_derivation_handles_aware_datetimes():
    expected = datetime(2025, 6, 4, 12, tzinfo=timezone(timedelta(hours=3)))
    # 09:00 UTC == 12:00 +03:00
    assert rules.rental_display_status("active", expected, datetime(2025, 6, 4, 9, 30)) == "overdue"
    assert rules.rental_display_status("active", expected, datetime(2025, 6, 4, 8, 30)) == "active"


def test_issued_invoice_past_due_shows_overdue():
    due = datetime(2025, 7, 1)
    assert rules.invoice_display_status("issued", due, datetime(2025, 7, 2)) == "overdue"
    assert rules.invoice_display_status("paid", due, datetime(2025, 7, 2)) == "paid"


def test_rental_days_rounds_partial_days_up():
    assert rules.rental_days(datetime(2025, 6, 1), datetime(2025, 6, 4)) == 3
    assert rules.rental_days(datetime(2025, 6, 1), datetime(2025, 6, 2, 1)) == 2
    assert rules.rental_days(datetime(2025, 6, 1), datetime(2025, 6, 1, 2)) == 1


@pytest.mark.parametrize("return_date", [datetime(2025, 6, 1), datetime(2025, 5, 30)])
def test_rental_days_rejects_empty_or_negative_span(return_date):
    with pytest.raises(ValidationError):
        rules.rental_days(datetime(2025, 6, 1), return_date)


def test_fixed_rate_quote():
    fees = FixedRatePricing().quote(3)
    assert fees["base_fee"] == 150
    assert fees["insurance_fee"] == 45
    assert fees["tax_amount"] == 25.35
    assert fees["total_amount"] == pytest.approx(220.35)
    assert fees["late_fee"] == 0.0


def test_fixed_rate_ignores_category():
    category = {"base_rental_rate": 75, "insurance_rate": 15}
    assert FixedRatePricing().quote(2, category)["base_fee"] == 100


def test_category_rate_quote():
    fees = CategoryRatePricing().quote(3, {"base_rental_rate": 45, "insurance_rate": 9})
    assert fees["base_fee"] == 135
    assert fees["insurance_fee"] == 27
    assert fees["tax_amount"] == 21.06
    assert fees["total_amount"] == pytest.approx(183.06)


def test_category_rate_requires_category():
    with pytest.raises(ValidationError):
        CategoryRatePricing().quote(3, None)


def test_invoice_total_must_match_fees():
    fees = {"base_fee": 100, "insurance_fee": 20, "tax_amount": 15.6}
    rules.check_invoice_total(fees, 135.6)
    with pytest.raises(ValidationError):
        rules.check_invoice_total(fees, 140)


def test_pricing_policy_by_name():
    assert isinstance(rules.pricing_policy("fixed"), FixedRatePricing)
    assert isinstance(rules.pricing_policy("category"), CategoryRatePricing)
    with pytest.raises(ValueError):
        rules.pricing_policy("auction")
