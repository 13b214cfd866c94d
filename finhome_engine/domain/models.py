"""Domain models - validated, immutable dataclasses passed through the engine"""

import math
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, List, Optional, Tuple

from finhome_engine.domain.exceptions import InvalidParameter, InvalidScenarioInput, PerItemError


class PropertyMarketTrend(str, Enum):
    declining = "declining"
    stable = "stable"
    growing = "growing"


class ScenarioType(str, Enum):
    baseline = "baseline"
    optimistic = "optimistic"
    pessimistic = "pessimistic"
    stress = "stress"
    alternative = "alternative"
    custom = "custom"


class RateTier(str, Enum):
    excellent = "excellent"
    good = "good"
    average = "average"
    poor = "poor"


class LoanPurpose(str, Enum):
    home_purchase = "home_purchase"
    investment = "investment"
    upgrade = "upgrade"
    refinance = "refinance"


class Frequency(str, Enum):
    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"
    yearly = "yearly"


class TransactionType(str, Enum):
    expense = "expense"
    income = "income"
    transfer = "transfer"


def _check_finite(owner: object, names: Tuple[str, ...], error: type) -> None:
    for name in names:
        value = getattr(owner, name)
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise error(f"{type(owner).__name__}.{name} must be a finite number, got {value!r}")


def _coerce_enum(owner: object, name: str, enum_cls: type, error: type) -> None:
    value = getattr(owner, name)
    try:
        object.__setattr__(owner, name, enum_cls(value))
    except ValueError as e:
        allowed = ", ".join(member.value for member in enum_cls)
        raise error(f"{type(owner).__name__}.{name}={value!r} is not one of: {allowed}") from e


def _is_whole(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


# --- Loans ---


@dataclass(frozen=True)
class LoanParameters:
    """Fixed-rate loan request, optionally with an initial promotional rate"""

    principal: float
    annual_rate_percent: float
    term_months: int
    promotional_rate_percent: Optional[float] = None
    promotional_period_months: Optional[int] = None

    def __post_init__(self) -> None:
        _check_finite(self, ("principal", "annual_rate_percent", "promotional_rate_percent"), InvalidParameter)
        if self.principal <= 0:
            raise InvalidParameter(f"principal must be > 0, got {self.principal}")
        if self.annual_rate_percent < 0:
            raise InvalidParameter(f"annual_rate_percent must be >= 0, got {self.annual_rate_percent}")
        if not _is_whole(self.term_months) or self.term_months < 1:
            raise InvalidParameter(f"term_months must be an integer >= 1, got {self.term_months!r}")

        promo_rate, promo_period = self.promotional_rate_percent, self.promotional_period_months
        if (promo_rate is None) != (promo_period is None):
            raise InvalidParameter("promotional rate and promotional period must be given together")
        if promo_rate is not None:
            if promo_rate < 0:
                raise InvalidParameter(f"promotional_rate_percent must be >= 0, got {promo_rate}")
            if not _is_whole(promo_period) or not 0 < promo_period < self.term_months:
                raise InvalidParameter(
                    f"promotional_period_months must satisfy 0 < period < {self.term_months}, got {promo_period!r}"
                )

    @property
    def has_promotion(self) -> bool:
        return self.promotional_rate_percent is not None


@dataclass(frozen=True)
class ScheduleEntry:
    """One month of an amortization schedule"""

    month: int
    rate_percent: float
    payment: float
    principal: float
    interest: float
    balance: float
    prepayment: float = 0.0


@dataclass(frozen=True)
class PrepaymentImpact:
    interest_saved: float
    months_saved: int
    new_total_interest: float
    payoff_month: int


@dataclass(frozen=True)
class AmortizationResult:
    """
    Loan cost summary.

    monthly_payment is the regular-rate payment; for promotional loans the
    first-segment payment is reported as promotional_payment.
    """

    monthly_payment: float
    total_interest: float
    total_cost: float
    promotional_payment: Optional[float] = None
    schedule: Tuple[ScheduleEntry, ...] = ()

    @property
    def final_balance(self) -> Optional[float]:
        return self.schedule[-1].balance if self.schedule else None


# --- Scenarios ---


@dataclass(frozen=True)
class EconomicAssumptions:
    """Macro and personal assumptions perturbed across scenarios"""

    economic_growth_percent: float = 0.0
    inflation_rate_percent: float = 0.0
    property_market_trend: PropertyMarketTrend = PropertyMarketTrend.stable
    personal_career_growth_percent: float = 0.0
    emergency_fund_months: float = 0.0

    def __post_init__(self) -> None:
        _check_finite(
            self,
            (
                "economic_growth_percent",
                "inflation_rate_percent",
                "personal_career_growth_percent",
                "emergency_fund_months",
            ),
            InvalidScenarioInput,
        )
        _coerce_enum(self, "property_market_trend", PropertyMarketTrend, InvalidScenarioInput)
        if self.emergency_fund_months < 0:
            raise InvalidScenarioInput(f"emergency_fund_months must be >= 0, got {self.emergency_fund_months}")
        for name in ("inflation_rate_percent", "personal_career_growth_percent", "economic_growth_percent"):
            if getattr(self, name) <= -100:
                raise InvalidScenarioInput(f"{name} must be > -100, got {getattr(self, name)}")


@dataclass(frozen=True)
class Prepayment:
    """One-off extra principal payment at a given month"""

    month: int
    amount: float

    def __post_init__(self) -> None:
        _check_finite(self, ("amount",), InvalidScenarioInput)
        if not _is_whole(self.month) or self.month < 1:
            raise InvalidScenarioInput(f"prepayment month must be an integer >= 1, got {self.month!r}")
        if self.amount <= 0:
            raise InvalidScenarioInput(f"prepayment amount must be > 0, got {self.amount}")


@dataclass(frozen=True)
class ScenarioOverrides:
    """Explicit parameter overrides applied on top of the baseline inputs"""

    loan_amount: Optional[float] = None
    annual_rate_percent: Optional[float] = None
    term_months: Optional[int] = None
    monthly_income_change: float = 0.0
    monthly_expense_change: float = 0.0
    rental_income_change: float = 0.0
    property_expense_change: float = 0.0
    appreciation_rate_change: float = 0.0
    income_shock_percent: float = 0.0
    income_shock_month: Optional[int] = None
    rate_shock_delta: float = 0.0
    rate_shock_month: Optional[int] = None
    prepayments: Tuple[Prepayment, ...] = ()

    def __post_init__(self) -> None:
        _check_finite(
            self,
            (
                "loan_amount",
                "annual_rate_percent",
                "monthly_income_change",
                "monthly_expense_change",
                "rental_income_change",
                "property_expense_change",
                "appreciation_rate_change",
                "income_shock_percent",
                "rate_shock_delta",
            ),
            InvalidScenarioInput,
        )
        if self.loan_amount is not None and self.loan_amount <= 0:
            raise InvalidScenarioInput(f"loan_amount override must be > 0, got {self.loan_amount}")
        if self.annual_rate_percent is not None and self.annual_rate_percent < 0:
            raise InvalidScenarioInput(f"annual_rate_percent override must be >= 0, got {self.annual_rate_percent}")
        if self.term_months is not None and (not _is_whole(self.term_months) or self.term_months <= 0):
            raise InvalidScenarioInput(f"term_months override must be an integer > 0, got {self.term_months!r}")
        if not 0 <= self.income_shock_percent < 100:
            raise InvalidScenarioInput(f"income_shock_percent must be in [0, 100), got {self.income_shock_percent}")
        for name in ("income_shock_month", "rate_shock_month"):
            month = getattr(self, name)
            if month is not None and (not _is_whole(month) or month < 1):
                raise InvalidScenarioInput(f"{name} must be an integer >= 1, got {month!r}")
        object.__setattr__(self, "prepayments", tuple(self.prepayments))


@dataclass(frozen=True)
class ScenarioDefinition:
    """Named set of overrides and assumptions; never mutated (use dataclasses.replace)"""

    id: str
    name: str
    type: ScenarioType
    overrides: ScenarioOverrides = field(default_factory=ScenarioOverrides)
    assumptions: EconomicAssumptions = field(default_factory=EconomicAssumptions)

    def __post_init__(self) -> None:
        if not self.id:
            raise InvalidScenarioInput("scenario id must not be empty")
        _coerce_enum(self, "type", ScenarioType, InvalidScenarioInput)


@dataclass(frozen=True)
class PersonalFinances:
    monthly_income: float
    monthly_expenses: float

    def __post_init__(self) -> None:
        _check_finite(self, ("monthly_income", "monthly_expenses"), InvalidScenarioInput)
        if self.monthly_income <= 0:
            raise InvalidScenarioInput(f"monthly_income must be > 0, got {self.monthly_income}")
        if self.monthly_expenses < 0:
            raise InvalidScenarioInput(f"monthly_expenses must be >= 0, got {self.monthly_expenses}")


@dataclass(frozen=True)
class InvestmentParameters:
    expected_rental_income: float
    property_expenses: float
    appreciation_rate_percent: float
    initial_property_value: float

    def __post_init__(self) -> None:
        _check_finite(
            self,
            ("expected_rental_income", "property_expenses", "appreciation_rate_percent", "initial_property_value"),
            InvalidScenarioInput,
        )
        if self.expected_rental_income < 0 or self.property_expenses < 0:
            raise InvalidScenarioInput("rental income and property expenses must be >= 0")
        if self.initial_property_value <= 0:
            raise InvalidScenarioInput(f"initial_property_value must be > 0, got {self.initial_property_value}")
        if self.appreciation_rate_percent <= -1200:
            raise InvalidScenarioInput(f"appreciation_rate_percent too low: {self.appreciation_rate_percent}")


@dataclass(frozen=True)
class MonthlyProjection:
    """Cash-flow snapshot for month t of a scenario"""

    month: int
    income: float
    expenses: float
    loan_payment: float
    interest_payment: float
    principal_payment: float
    loan_balance: float
    rental_income: float
    property_expenses: float
    prepayment: float
    property_value: float
    net_cash_flow: float
    cumulative_cash_flow: float
    equity: float
    net_worth: float
    debt_to_income_percent: float


@dataclass(frozen=True)
class ScenarioMetrics:
    """Summary metrics computed once from the month-0 inputs"""

    monthly_payment: float
    total_interest: float
    total_paid: float
    affordability_score: int
    debt_to_income_percent: float
    roi_percent: Optional[float] = None
    payback_months: Optional[int] = None


@dataclass(frozen=True)
class ScenarioResult:
    """Projection output for one ScenarioDefinition"""

    scenario_id: str
    scenario_name: str
    scenario_type: ScenarioType
    series: Tuple[MonthlyProjection, ...]
    metrics: ScenarioMetrics
    assumptions: EconomicAssumptions = field(default_factory=EconomicAssumptions)

    @property
    def horizon_months(self) -> int:
        return len(self.series)

    @property
    def net_worth_at_horizon(self) -> float:
        return self.series[-1].net_worth

    @property
    def worst_monthly_cash_flow(self) -> float:
        return min(p.net_cash_flow for p in self.series)

    @property
    def cumulative_cash_flow(self) -> float:
        return self.series[-1].cumulative_cash_flow


# --- Lender offers ---


@dataclass(frozen=True)
class LenderOffer:
    """Read-only catalog entry; None bounds are unbounded"""

    bank_id: str
    interest_rate_percent: float
    bank_name: str = ""
    promotional_rate_percent: Optional[float] = None
    promotional_period_months: Optional[int] = None
    min_amount: Optional[float] = None
    max_amount: Optional[float] = None
    min_term_months: Optional[int] = None
    max_term_months: Optional[int] = None
    max_ltv_ratio_percent: Optional[float] = None
    processing_fee: float = 0.0

    def __post_init__(self) -> None:
        _check_finite(
            self,
            (
                "interest_rate_percent",
                "promotional_rate_percent",
                "min_amount",
                "max_amount",
                "max_ltv_ratio_percent",
                "processing_fee",
            ),
            InvalidParameter,
        )
        if self.interest_rate_percent < 0:
            raise InvalidParameter(f"offer {self.bank_id}: interest rate must be >= 0")
        if self.processing_fee < 0:
            raise InvalidParameter(f"offer {self.bank_id}: processing fee must be >= 0")
        if (self.promotional_rate_percent is None) != (self.promotional_period_months is None):
            raise InvalidParameter(f"offer {self.bank_id}: promotional rate and period must be given together")
        if self.promotional_period_months is not None and (
            not _is_whole(self.promotional_period_months) or self.promotional_period_months < 1
        ):
            raise InvalidParameter(f"offer {self.bank_id}: promotional period must be >= 1 month")
        if self.min_amount is not None and self.max_amount is not None and self.min_amount > self.max_amount:
            raise InvalidParameter(f"offer {self.bank_id}: min_amount exceeds max_amount")
        if (
            self.min_term_months is not None
            and self.max_term_months is not None
            and self.min_term_months > self.max_term_months
        ):
            raise InvalidParameter(f"offer {self.bank_id}: min_term_months exceeds max_term_months")


@dataclass(frozen=True)
class RateRecommendation:
    """Scored offer for a specific loan request"""

    offer: LenderOffer
    monthly_payment: float
    total_interest: float
    total_cost: float
    tier: RateTier
    savings_vs_worst: float = 0.0
    promotional_payment: Optional[float] = None
    promotional_savings: Optional[float] = None
    flags: Tuple[str, ...] = ()
    rationale: Tuple[str, ...] = ()


@dataclass(frozen=True)
class RateOptimizationResult:
    best: RateRecommendation
    alternatives: Tuple[RateRecommendation, ...]
    ranked: Tuple[RateRecommendation, ...]
    market_average_rate_percent: float
    market_average_fee: float
    savings: float
    used_default_rate: bool = False


# --- Recurring transactions ---


@dataclass(frozen=True)
class TransactionTemplate:
    """Transaction fields copied into every materialized occurrence"""

    transaction_type: TransactionType
    amount: float
    wallet_id: str
    name: str = ""
    description: Optional[str] = None
    category_id: Optional[str] = None
    transfer_to_wallet_id: Optional[str] = None

    def __post_init__(self) -> None:
        _coerce_enum(self, "transaction_type", TransactionType, InvalidParameter)
        _check_finite(self, ("amount",), InvalidParameter)
        if self.amount <= 0:
            raise InvalidParameter(f"template amount must be > 0, got {self.amount}")
        if not self.wallet_id:
            raise InvalidParameter("template wallet_id must not be empty")
        if self.transaction_type == TransactionType.transfer and not self.transfer_to_wallet_id:
            raise InvalidParameter("transfer templates require transfer_to_wallet_id")


@dataclass(frozen=True)
class RecurringDefinition:
    """Recurring transaction; only the scheduler derives new versions of it"""

    id: str
    owner_id: str
    template: TransactionTemplate
    frequency: Frequency
    interval: int
    start_date: date
    next_due_date: date
    end_date: Optional[date] = None
    max_occurrences: Optional[int] = None
    occurrences_created: int = 0
    is_active: bool = True

    def __post_init__(self) -> None:
        _coerce_enum(self, "frequency", Frequency, InvalidParameter)
        if not self.id:
            raise InvalidParameter("recurring definition id must not be empty")
        if not _is_whole(self.interval) or self.interval < 1:
            raise InvalidParameter(f"interval must be an integer >= 1, got {self.interval!r}")
        if not _is_whole(self.occurrences_created) or self.occurrences_created < 0:
            raise InvalidParameter(f"occurrences_created must be >= 0, got {self.occurrences_created!r}")
        if self.max_occurrences is not None and (not _is_whole(self.max_occurrences) or self.max_occurrences < 1):
            raise InvalidParameter(f"max_occurrences must be >= 1, got {self.max_occurrences!r}")
        if self.end_date is not None and self.end_date < self.start_date:
            raise InvalidParameter("end_date precedes start_date")
        if self.next_due_date < self.start_date:
            raise InvalidParameter("next_due_date precedes start_date")


@dataclass(frozen=True)
class LedgerEntryRequest:
    """Denormalized snapshot of a definition at materialization time"""

    definition_id: str
    owner_id: str
    due_date: date
    transaction_type: TransactionType
    amount: float
    wallet_id: str
    description: str
    occurrence_number: int
    materialized_on: date
    category_id: Optional[str] = None
    transfer_to_wallet_id: Optional[str] = None

    @property
    def idempotency_key(self) -> Tuple[str, date]:
        return (self.definition_id, self.due_date)


@dataclass(frozen=True)
class Transition:
    """Intent for one processed definition: the entry to append (if any) and its new state"""

    definition_id: str
    updated: RecurringDefinition
    entry: Optional[LedgerEntryRequest] = None

    @property
    def completed(self) -> bool:
        return not self.updated.is_active


@dataclass
class ProcessDueResult:
    transitions: List[Transition] = field(default_factory=list)
    errors: List[PerItemError] = field(default_factory=list)

    @property
    def materialized(self) -> List[LedgerEntryRequest]:
        return [t.entry for t in self.transitions if t.entry is not None]

    @property
    def updated_definitions(self) -> List[RecurringDefinition]:
        return [t.updated for t in self.transitions]

    @property
    def errors_by_id(self) -> Dict[str, PerItemError]:
        return {e.definition_id: e for e in self.errors}


# --- Comparison ---


@dataclass(frozen=True)
class ScenarioDelta:
    """Differences of one scenario against the baseline"""

    scenario_id: str
    affordability_score_diff: int
    net_worth_at_horizon_diff: float
    worst_monthly_cash_flow: float
    worst_monthly_cash_flow_diff: float


@dataclass(frozen=True)
class RankedScenario:
    rank: int
    scenario_id: str
    scenario_name: str
    metric_value: float
    affordability_score: int


@dataclass(frozen=True)
class Comparison:
    baseline_id: str
    primary_metric: str
    ranking: Tuple[RankedScenario, ...]
    deltas: Dict[str, ScenarioDelta]

    @property
    def best(self) -> RankedScenario:
        return self.ranking[0]

    @property
    def worst(self) -> RankedScenario:
        return self.ranking[-1]


@dataclass(frozen=True)
class Analysis:
    """Single-scenario liquidity and leverage review"""

    scenario_id: str
    liquidity_risk_month: int
    minimum_cash_flow: float
    positive_cash_flow_month: Optional[int]
    dti_danger_threshold_percent: float
    dti_exceeds_threshold: bool
    peak_debt_to_income_percent: float
    negative_cash_flow_months: int
    risk_flags: Tuple[str, ...] = ()
    insights: Tuple[str, ...] = ()
    risk_factors: Tuple[str, ...] = ()
    opportunities: Tuple[str, ...] = ()


# --- Boundary records ---


class AppendOutcome(str, Enum):
    ok = "ok"
    duplicate = "duplicate"


@dataclass(frozen=True)
class PlanInputs:
    """A stored plan mapped into engine value types"""

    plan_id: str
    purpose: LoanPurpose
    loan: LoanParameters
    finances: PersonalFinances
    investment: Optional[InvestmentParameters] = None
