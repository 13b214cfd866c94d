"""
Scenario projection engine.

Projects a month-by-month household cash-flow timeline for a loan plan under
a set of economic assumptions, and derives the predefined variants (optimistic,
pessimistic, stress, early payoff, career growth) from the baseline using
configured perturbations.
The projection loop is deterministic: no clock, randomness or shared state.
"""

import math
from dataclasses import replace
from typing import Dict, List, Optional, Tuple

from finhome_engine.config import ScenarioPerturbation, ScenarioPolicy, settings
from finhome_engine.domain.amortization import amortize, compute_with_promotional_rate
from finhome_engine.domain.exceptions import InvalidParameter, InvalidScenarioInput
from finhome_engine.domain.models import (
    InvestmentParameters,
    LoanParameters,
    MonthlyProjection,
    PersonalFinances,
    Prepayment,
    PropertyMarketTrend,
    ScenarioDefinition,
    ScenarioMetrics,
    ScenarioResult,
    ScenarioType,
)

# (payment / net income) upper bound → affordability score
_AFFORDABILITY_BANDS: Tuple[Tuple[float, int], ...] = (
    (0.2, 10),
    (0.3, 8),
    (0.4, 7),
    (0.6, 5),
    (0.8, 3),
)
_COMPOUNDING_MODES = ("annual", "monthly")


def affordability_score(monthly_payment: float, finances: PersonalFinances) -> int:
    """Score 0-10; 0 when expenses already consume all income"""
    net_income = finances.monthly_income - finances.monthly_expenses
    if net_income <= 0:
        return 0
    ratio = monthly_payment / net_income
    for upper, score in _AFFORDABILITY_BANDS:
        if ratio <= upper:
            return score
    return 1


class ScenarioEngine:
    """
    Projection engine bound to one plan.

    Each instance owns only the inputs given to its constructor; results are
    recomputed on every call and never cached.
    """

    def __init__(
        self,
        baseline: ScenarioDefinition,
        loan: LoanParameters,
        finances: PersonalFinances,
        investment: Optional[InvestmentParameters] = None,
        horizon_months: Optional[int] = None,
        policy: Optional[ScenarioPolicy] = None,
    ):
        self.baseline = baseline
        self.loan = loan
        self.finances = finances
        self.investment = investment
        self.horizon_months = loan.term_months if horizon_months is None else horizon_months
        self.policy = policy or settings.scenario_policy

        if isinstance(self.horizon_months, bool) or not isinstance(self.horizon_months, int) or self.horizon_months <= 0:
            raise InvalidScenarioInput(f"horizon_months must be a positive integer, got {self.horizon_months!r}")
        if self.policy.growth_compounding not in _COMPOUNDING_MODES:
            raise InvalidScenarioInput(f"growth_compounding must be one of {_COMPOUNDING_MODES}")
        missing = [t.value for t in PropertyMarketTrend if t.value not in self.policy.trend_appreciation_adjustments]
        if missing:
            raise InvalidScenarioInput(f"trend_appreciation_adjustments missing trends: {missing}")

    # --- input resolution ---

    def _resolve_inputs(
        self, definition: ScenarioDefinition
    ) -> Tuple[LoanParameters, PersonalFinances, Optional[InvestmentParameters]]:
        o = definition.overrides
        changes = {}
        if o.loan_amount is not None:
            changes["principal"] = o.loan_amount
        if o.annual_rate_percent is not None:
            changes["annual_rate_percent"] = o.annual_rate_percent
        if o.term_months is not None:
            changes["term_months"] = o.term_months
        try:
            loan = replace(self.loan, **changes)
        except InvalidParameter as e:
            raise InvalidScenarioInput(f"Scenario {definition.id}: {e}") from e

        finances = PersonalFinances(
            monthly_income=self.finances.monthly_income + o.monthly_income_change,
            monthly_expenses=self.finances.monthly_expenses + o.monthly_expense_change,
        )

        investment_changed = any(
            (o.rental_income_change, o.property_expense_change, o.appreciation_rate_change)
        )
        if self.investment is None:
            if investment_changed:
                raise InvalidScenarioInput(
                    f"Scenario {definition.id} overrides investment values but the plan has no investment property"
                )
            return loan, finances, None

        investment = replace(
            self.investment,
            expected_rental_income=self.investment.expected_rental_income + o.rental_income_change,
            property_expenses=self.investment.property_expenses + o.property_expense_change,
            appreciation_rate_percent=self.investment.appreciation_rate_percent + o.appreciation_rate_change,
        )
        return loan, finances, investment

    def _growth_factor(self, annual_rate_percent: float, month: int) -> float:
        if self.policy.growth_compounding == "monthly":
            return (1 + annual_rate_percent / 100 / 12) ** (month - 1)
        return (1 + annual_rate_percent / 100) ** ((month - 1) // 12)

    # --- metrics ---

    def _metrics(
        self,
        loan: LoanParameters,
        finances: PersonalFinances,
        investment: Optional[InvestmentParameters],
        total_interest: float,
        total_paid: float,
    ) -> ScenarioMetrics:
        payment = compute_with_promotional_rate(loan, include_schedule=False).monthly_payment

        roi = None
        payback = None
        if investment is not None:
            down_payment = investment.initial_property_value - loan.principal
            annual_net = (investment.expected_rental_income - investment.property_expenses - payment) * 12
            if down_payment > 0:
                roi = round(annual_net / down_payment * 100, 2)
                if annual_net > 0:
                    payback = math.ceil(down_payment / (annual_net / 12))

        return ScenarioMetrics(
            monthly_payment=payment,
            total_interest=round(total_interest, 2),
            total_paid=round(total_paid, 2),
            affordability_score=affordability_score(payment, finances),
            debt_to_income_percent=round(payment / finances.monthly_income * 100, 2),
            roi_percent=roi,
            payback_months=payback,
        )

    # --- projection ---

    def generate_scenario(self, definition: ScenarioDefinition) -> ScenarioResult:
        """
        Project the monthly series for one scenario.

        Raises:
            InvalidScenarioInput: overrides or assumptions produce invalid inputs
        """
        loan, finances, investment = self._resolve_inputs(definition)
        o = definition.overrides
        a = definition.assumptions

        rate_shocks: Dict[int, float] = {}
        if o.rate_shock_month is not None:
            if o.rate_shock_month > loan.term_months:
                raise InvalidScenarioInput(
                    f"Scenario {definition.id}: rate shock at month {o.rate_shock_month} "
                    f"is after the {loan.term_months}-month loan term"
                )
            if o.rate_shock_delta:
                rate_shocks[o.rate_shock_month] = o.rate_shock_delta
        prepayments: Dict[int, float] = {}
        for p in o.prepayments:
            if p.month > loan.term_months:
                raise InvalidScenarioInput(
                    f"Scenario {definition.id}: prepayment at month {p.month} "
                    f"is after the {loan.term_months}-month loan term"
                )
            prepayments[p.month] = prepayments.get(p.month, 0.0) + p.amount

        try:
            schedule = amortize(loan, rate_shocks=rate_shocks, prepayments=prepayments)
        except InvalidParameter as e:
            raise InvalidScenarioInput(f"Scenario {definition.id}: {e}") from e

        appreciation = 0.0
        if investment is not None:
            appreciation = (
                investment.appreciation_rate_percent
                + self.policy.trend_appreciation_adjustments[a.property_market_trend.value]
            )
            if appreciation / 100 / 12 <= -1:
                raise InvalidScenarioInput(f"Scenario {definition.id}: appreciation rate {appreciation}% is not viable")

        series: List[MonthlyProjection] = []
        cumulative = 0.0
        for month in range(1, self.horizon_months + 1):
            entry = schedule[month - 1] if month <= len(schedule) else None
            payment = entry.payment if entry else 0.0
            interest = entry.interest if entry else 0.0
            principal = entry.principal if entry else 0.0
            prepaid = entry.prepayment if entry else 0.0
            balance = entry.balance if entry else 0.0

            income = finances.monthly_income * self._growth_factor(a.personal_career_growth_percent, month)
            if o.income_shock_month is not None and month >= o.income_shock_month:
                income *= 1 - o.income_shock_percent / 100
            expenses = finances.monthly_expenses * self._growth_factor(a.inflation_rate_percent, month)

            rent = property_expenses = property_value = 0.0
            if investment is not None:
                rent = investment.expected_rental_income * self._growth_factor(a.economic_growth_percent, month)
                property_expenses = investment.property_expenses * self._growth_factor(a.inflation_rate_percent, month)
                property_value = investment.initial_property_value * (1 + appreciation / 100 / 12) ** month

            net = income + rent - expenses - payment - property_expenses - prepaid
            cumulative += net
            equity = property_value - balance

            series.append(
                MonthlyProjection(
                    month=month,
                    income=round(income, 2),
                    expenses=round(expenses, 2),
                    loan_payment=round(payment, 2),
                    interest_payment=round(interest, 2),
                    principal_payment=round(principal, 2),
                    loan_balance=round(balance, 2),
                    rental_income=round(rent, 2),
                    property_expenses=round(property_expenses, 2),
                    prepayment=round(prepaid, 2),
                    property_value=round(property_value, 2),
                    net_cash_flow=round(net, 2),
                    cumulative_cash_flow=round(cumulative, 2),
                    equity=round(equity, 2),
                    net_worth=round(cumulative + equity, 2),
                    debt_to_income_percent=round(payment / income * 100, 2),
                )
            )

        metrics = self._metrics(
            loan,
            finances,
            investment,
            total_interest=sum(e.interest for e in schedule),
            total_paid=sum(e.payment + e.prepayment for e in schedule),
        )
        return ScenarioResult(
            scenario_id=definition.id,
            scenario_name=definition.name,
            scenario_type=definition.type,
            series=tuple(series),
            metrics=metrics,
            assumptions=a,
        )

    # --- predefined variants ---

    def _perturb(self, key: str, p: ScenarioPerturbation) -> ScenarioDefinition:
        base_a = self.baseline.assumptions
        base_o = self.baseline.overrides

        assumptions = replace(
            base_a,
            economic_growth_percent=base_a.economic_growth_percent + p.economic_growth_delta,
            inflation_rate_percent=base_a.inflation_rate_percent + p.inflation_delta,
            personal_career_growth_percent=base_a.personal_career_growth_percent + p.career_growth_delta,
            property_market_trend=(
                p.property_market_trend if p.property_market_trend is not None else base_a.property_market_trend
            ),
        )

        changes = {
            "monthly_income_change": base_o.monthly_income_change
            + self.finances.monthly_income * p.income_change_percent / 100,
            "monthly_expense_change": base_o.monthly_expense_change
            + self.finances.monthly_expenses * p.expense_change_percent / 100,
        }
        if p.rate_delta:
            base_rate = (
                base_o.annual_rate_percent if base_o.annual_rate_percent is not None else self.loan.annual_rate_percent
            )
            changes["annual_rate_percent"] = base_rate + p.rate_delta
        if self.investment is not None:
            changes["rental_income_change"] = (
                base_o.rental_income_change
                + self.investment.expected_rental_income * p.rental_income_change_percent / 100
            )
            changes["appreciation_rate_change"] = base_o.appreciation_rate_change + p.appreciation_delta
        if p.income_shock_month is not None:
            changes["income_shock_percent"] = p.income_shock_percent
            changes["income_shock_month"] = p.income_shock_month
        term_months = base_o.term_months if base_o.term_months is not None else self.loan.term_months
        # Shocks and lump sums scheduled by a perturbation only exist within the loan term
        if p.rate_shock_month is not None and p.rate_shock_month <= term_months:
            changes["rate_shock_delta"] = p.rate_shock_delta
            changes["rate_shock_month"] = p.rate_shock_month
        if p.prepayment_income_percent and p.prepayment_years:
            lump_sum = self.finances.monthly_income * p.prepayment_income_percent / 100 * 12
            changes["prepayments"] = base_o.prepayments + tuple(
                Prepayment(month=year * 12, amount=lump_sum)
                for year in range(1, p.prepayment_years + 1)
                if year * 12 <= term_months
            )

        scenario_type = p.scenario_type
        if scenario_type is None:
            try:
                scenario_type = ScenarioType(key)
            except ValueError:
                scenario_type = ScenarioType.custom
        if scenario_type == ScenarioType.baseline:
            raise InvalidScenarioInput("A perturbation cannot be keyed 'baseline'")

        return ScenarioDefinition(
            id=key,
            name=p.name,
            type=scenario_type,
            overrides=replace(base_o, **changes),
            assumptions=assumptions,
        )

    def predefined_definitions(self) -> List[ScenarioDefinition]:
        """Definitions derived from the baseline, one per configured perturbation"""
        return [self._perturb(key, p) for key, p in self.policy.perturbations.items()]

    def generate_predefined_scenarios(self) -> List[ScenarioResult]:
        """Baseline result followed by each configured variant"""
        definitions = [self.baseline] + self.predefined_definitions()
        return [self.generate_scenario(d) for d in definitions]
