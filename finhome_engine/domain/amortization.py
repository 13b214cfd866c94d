"""Loan amortization - level payments, schedules and loan cost"""

import math
from typing import List, Mapping, Optional

from finhome_engine.domain.exceptions import InvalidParameter
from finhome_engine.domain.models import (
    AmortizationResult,
    LoanParameters,
    PrepaymentImpact,
    ScheduleEntry,
)


def _monthly_rate(annual_rate_percent: float) -> float:
    return annual_rate_percent / 100 / 12


def _cents(value: float) -> float:
    return round(value, 2)


def annuity_payment(principal: float, annual_rate_percent: float, months: int) -> float:
    """
    Unrounded level payment retiring `principal` over `months`.

    M = P·r·(1+r)^n / ((1+r)^n − 1), with r = annual/100/12.
    The formula is undefined at r = 0, where M = P / n.
    """
    r = _monthly_rate(annual_rate_percent)
    if r == 0:
        return principal / months
    growth = (1 + r) ** months
    return principal * r * growth / (growth - 1)


def remaining_balance(principal: float, annual_rate_percent: float, months_paid: int, payment: float) -> float:
    """Closed-form balance after `months_paid` level payments"""
    r = _monthly_rate(annual_rate_percent)
    if r == 0:
        return principal - payment * months_paid
    growth = (1 + r) ** months_paid
    return principal * growth - payment * (growth - 1) / r


def compute_monthly_payment(params: LoanParameters) -> float:
    """Regular-rate level payment over the full term (unrounded)"""
    return annuity_payment(params.principal, params.annual_rate_percent, params.term_months)


def _contract_rate(params: LoanParameters, month: int) -> float:
    if params.has_promotion and month <= params.promotional_period_months:
        return params.promotional_rate_percent
    return params.annual_rate_percent


def amortize(
    params: LoanParameters,
    rate_shocks: Optional[Mapping[int, float]] = None,
    prepayments: Optional[Mapping[int, float]] = None,
) -> List[ScheduleEntry]:
    """
    Build the unrounded month-by-month schedule.

    The payment is re-amortized over the remaining months whenever the
    effective rate changes: at the promotional boundary and at every month
    listed in `rate_shocks` (percentage-point delta applied from that month
    on). Prepayments reduce the balance after that month's payment and keep
    the payment level, shortening the loan. The final payment absorbs any
    floating-point residue so the last balance is exactly zero.
    """
    rate_shocks = dict(rate_shocks or {})
    prepayments = dict(prepayments or {})
    n = params.term_months
    for month, delta in rate_shocks.items():
        if not 1 <= month <= n or not math.isfinite(delta):
            raise InvalidParameter(f"rate shock {delta!r} at month {month} is outside the loan term")
    for month, amount in prepayments.items():
        if not 1 <= month <= n:
            raise InvalidParameter(f"prepayment at month {month} is outside the loan term of {n} months")
        if not math.isfinite(amount) or amount < 0:
            raise InvalidParameter(f"prepayment amount must be a finite number >= 0, got {amount!r}")

    balance = float(params.principal)
    payment = 0.0
    current_rate: Optional[float] = None
    shock_total = 0.0
    schedule: List[ScheduleEntry] = []

    for month in range(1, n + 1):
        shock_total += rate_shocks.get(month, 0.0)
        rate = _contract_rate(params, month) + shock_total
        if rate < 0:
            raise InvalidParameter(f"effective rate {rate}% at month {month} is negative")

        if balance <= 0:
            schedule.append(ScheduleEntry(month, rate, 0.0, 0.0, 0.0, 0.0))
            continue

        if rate != current_rate:
            payment = annuity_payment(balance, rate, n - month + 1)
            current_rate = rate

        interest = balance * _monthly_rate(rate)
        if month == n or payment >= balance + interest:
            principal_paid = balance
        else:
            principal_paid = payment - interest
        balance -= principal_paid

        prepaid = min(prepayments.get(month, 0.0), balance)
        balance -= prepaid

        schedule.append(
            ScheduleEntry(
                month=month,
                rate_percent=rate,
                payment=principal_paid + interest,
                principal=principal_paid,
                interest=interest,
                balance=balance,
                prepayment=prepaid,
            )
        )

    return schedule


def compute_with_promotional_rate(params: LoanParameters, include_schedule: bool = True) -> AmortizationResult:
    """
    Amortize a loan with an optional promotional segment.

    The promotional payment is the full-term annuity at the promotional rate.
    After `promotional_period_months` the outstanding balance is re-amortized
    at the regular rate over the remaining months. Values are rounded to
    cents here and nowhere earlier.
    """
    schedule = amortize(params)
    total_cost = sum(e.payment for e in schedule)
    total_interest = sum(e.interest for e in schedule)

    promotional_payment = None
    if params.has_promotion:
        promo = annuity_payment(params.principal, params.promotional_rate_percent, params.term_months)
        transition_balance = remaining_balance(
            params.principal, params.promotional_rate_percent, params.promotional_period_months, promo
        )
        regular = annuity_payment(
            transition_balance, params.annual_rate_percent, params.term_months - params.promotional_period_months
        )
        promotional_payment = _cents(promo)
    else:
        regular = compute_monthly_payment(params)

    rounded_schedule = ()
    if include_schedule:
        rounded_schedule = tuple(
            ScheduleEntry(
                month=e.month,
                rate_percent=e.rate_percent,
                payment=_cents(e.payment),
                principal=_cents(e.principal),
                interest=_cents(e.interest),
                balance=_cents(e.balance),
            )
            for e in schedule
        )

    return AmortizationResult(
        monthly_payment=_cents(regular),
        total_interest=_cents(total_interest),
        total_cost=_cents(total_cost),
        promotional_payment=promotional_payment,
        schedule=rounded_schedule,
    )


def compute_total_cost(params: LoanParameters) -> float:
    """Sum of all payments over the term (segment-wise for promotional loans)"""
    if not params.has_promotion:
        return compute_monthly_payment(params) * params.term_months

    period = params.promotional_period_months
    promo = annuity_payment(params.principal, params.promotional_rate_percent, params.term_months)
    transition_balance = remaining_balance(params.principal, params.promotional_rate_percent, period, promo)
    regular = annuity_payment(transition_balance, params.annual_rate_percent, params.term_months - period)
    return promo * period + regular * (params.term_months - period)


def compute_total_interest(params: LoanParameters) -> float:
    return compute_total_cost(params) - params.principal


def compute_prepayment_impact(params: LoanParameters, amount: float, month: int) -> PrepaymentImpact:
    """Interest and months saved by a single extra principal payment"""
    if not math.isfinite(amount) or amount <= 0:
        raise InvalidParameter(f"prepayment amount must be > 0, got {amount}")
    if not 1 <= month < params.term_months:
        raise InvalidParameter(f"prepayment month must be within 1..{params.term_months - 1}, got {month}")

    original = amortize(params)
    adjusted = amortize(params, prepayments={month: amount})
    original_interest = sum(e.interest for e in original)
    new_interest = sum(e.interest for e in adjusted)
    payoff_month = max(e.month for e in adjusted if e.payment > 0)

    return PrepaymentImpact(
        interest_saved=_cents(original_interest - new_interest),
        months_saved=params.term_months - payoff_month,
        new_total_interest=_cents(new_interest),
        payoff_month=payoff_month,
    )
