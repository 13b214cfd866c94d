"""Unit tests for loan amortization"""

import pytest
from finhome_engine.domain.amortization import (
    amortize,
    annuity_payment,
    compute_monthly_payment,
    compute_prepayment_impact,
    compute_total_cost,
    compute_total_interest,
    compute_with_promotional_rate,
    remaining_balance,
)
from finhome_engine.domain.exceptions import InvalidParameter
from finhome_engine.domain.models import LoanParameters


def test_monthly_payment_matches_present_value_reference(home_loan: LoanParameters):
    """Discounting the level payment over the term must give back the principal"""
    payment = compute_monthly_payment(home_loan)

    r = 8.5 / 100 / 12
    present_value = sum(payment / (1 + r) ** k for k in range(1, 241))
    assert present_value == pytest.approx(2_400_000_000, abs=0.01)

    # Closed form written as P·r / (1 - (1+r)^-n)
    reference = 2_400_000_000 * r / (1 - (1 + r) ** -240)
    assert payment == pytest.approx(reference, rel=1e-12)
    assert 20_800_000 < payment < 20_850_000


def test_zero_rate_payment_is_exact_division():
    params = LoanParameters(principal=1_000_000, annual_rate_percent=0, term_months=12)

    assert compute_monthly_payment(params) == 1_000_000 / 12
    result = compute_with_promotional_rate(params)
    assert result.total_interest == 0
    assert result.final_balance == 0


@pytest.mark.parametrize(
    "principal,rate,term",
    [
        (2_400_000_000, 8.5, 240),
        (100_000, 12.0, 1),
        (999_999.99, 3.3, 37),
        (5_000_000_000, 0.0, 360),
        (1, 25.0, 12),
    ],
)
def test_schedule_ends_at_zero_balance(principal, rate, term):
    params = LoanParameters(principal=principal, annual_rate_percent=rate, term_months=term)

    schedule = amortize(params)

    assert len(schedule) == term
    assert schedule[-1].balance == 0
    assert sum(e.principal for e in schedule) == pytest.approx(principal, abs=0.01)


def test_promotional_boundary_balance_is_continuous():
    """Balance after the promo segment equals a promo-only amortization over the same months"""
    params = LoanParameters(
        principal=2_000_000_000,
        annual_rate_percent=9.0,
        term_months=240,
        promotional_rate_percent=7.0,
        promotional_period_months=24,
    )
    schedule = amortize(params)

    promo_payment = annuity_payment(2_000_000_000, 7.0, 240)
    expected = remaining_balance(2_000_000_000, 7.0, 24, promo_payment)

    assert schedule[23].balance == pytest.approx(expected, rel=1e-9)
    assert schedule[23].payment == pytest.approx(promo_payment)
    assert schedule[24].rate_percent == 9.0
    assert schedule[24].payment > schedule[23].payment


def test_promotional_result_reports_both_payments():
    params = LoanParameters(
        principal=1_200_000_000,
        annual_rate_percent=10.0,
        term_months=120,
        promotional_rate_percent=6.0,
        promotional_period_months=12,
    )

    result = compute_with_promotional_rate(params)

    assert result.promotional_payment == round(annuity_payment(1_200_000_000, 6.0, 120), 2)
    assert result.monthly_payment > result.promotional_payment
    assert result.total_cost == pytest.approx(compute_total_cost(params), abs=0.05)
    assert result.total_interest == pytest.approx(compute_total_interest(params), abs=0.05)
    assert result.final_balance == 0


def test_promotion_lowers_total_cost():
    regular = LoanParameters(principal=1_000_000_000, annual_rate_percent=9.0, term_months=180)
    promo = LoanParameters(
        principal=1_000_000_000,
        annual_rate_percent=9.0,
        term_months=180,
        promotional_rate_percent=6.5,
        promotional_period_months=12,
    )

    assert compute_total_cost(promo) < compute_total_cost(regular)


def test_result_values_are_rounded_to_cents():
    params = LoanParameters(principal=1_000_003, annual_rate_percent=7.77, term_months=17)

    result = compute_with_promotional_rate(params)

    for value in (result.monthly_payment, result.total_cost, result.total_interest):
        assert value == round(value, 2)
    assert all(e.payment == round(e.payment, 2) for e in result.schedule)


def test_rate_shock_reamortizes_remaining_balance(home_loan: LoanParameters):
    schedule = amortize(home_loan, rate_shocks={13: 3.0})

    assert schedule[11].rate_percent == 8.5
    assert schedule[12].rate_percent == 11.5
    assert schedule[12].payment == pytest.approx(annuity_payment(schedule[11].balance, 11.5, 228))
    assert schedule[-1].balance == 0


def test_rate_shock_outside_term_is_rejected(home_loan: LoanParameters):
    with pytest.raises(InvalidParameter):
        amortize(home_loan, rate_shocks={241: 1.0})


@pytest.mark.parametrize("prepayments", [{241: 1_000_000}, {0: 1_000_000}, {12: -5.0}, {12: float("inf")}])
def test_prepayment_outside_term_or_malformed_is_rejected(home_loan: LoanParameters, prepayments):
    with pytest.raises(InvalidParameter):
        amortize(home_loan, prepayments=prepayments)


def test_negative_effective_rate_is_rejected():
    params = LoanParameters(principal=1_000_000, annual_rate_percent=1.0, term_months=24)

    with pytest.raises(InvalidParameter):
        amortize(params, rate_shocks={6: -2.0})


def test_prepayment_impact_saves_interest_and_months(home_loan: LoanParameters):
    impact = compute_prepayment_impact(home_loan, amount=500_000_000, month=12)

    assert impact.interest_saved > 0
    assert impact.months_saved > 0
    assert impact.payoff_month == 240 - impact.months_saved
    baseline_interest = compute_with_promotional_rate(home_loan, include_schedule=False).total_interest
    assert impact.new_total_interest == pytest.approx(baseline_interest - impact.interest_saved, abs=0.02)


@pytest.mark.parametrize("amount,month", [(0, 12), (-1, 12), (1_000, 0), (1_000, 240)])
def test_prepayment_impact_rejects_bad_input(home_loan: LoanParameters, amount, month):
    with pytest.raises(InvalidParameter):
        compute_prepayment_impact(home_loan, amount=amount, month=month)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"principal": 0, "annual_rate_percent": 8, "term_months": 12},
        {"principal": -5, "annual_rate_percent": 8, "term_months": 12},
        {"principal": float("nan"), "annual_rate_percent": 8, "term_months": 12},
        {"principal": 1000, "annual_rate_percent": -1, "term_months": 12},
        {"principal": 1000, "annual_rate_percent": float("inf"), "term_months": 12},
        {"principal": 1000, "annual_rate_percent": 8, "term_months": 0},
        {"principal": 1000, "annual_rate_percent": 8, "term_months": 12.5},
        {"principal": 1000, "annual_rate_percent": 8, "term_months": 12, "promotional_rate_percent": 5},
        {
            "principal": 1000,
            "annual_rate_percent": 8,
            "term_months": 12,
            "promotional_rate_percent": 5,
            "promotional_period_months": 12,
        },
    ],
)
def test_invalid_loan_parameters_are_rejected(kwargs):
    with pytest.raises(InvalidParameter):
        LoanParameters(**kwargs)
