"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field
from datetime import date
from typing import Dict, List, Optional

from finhome_engine.domain.models import (
    Analysis,
    LedgerEntryRequest,
    PropertyMarketTrend,
    RateRecommendation,
    RecurringDefinition,
    ScenarioResult,
)


# --- Recurring transactions ---


class LedgerEntrySchema(BaseModel):
    """Ledger entry written for one occurrence"""

    recurring_transaction_id: str
    user_id: str
    due_date: date
    transaction_type: str
    amount: float
    wallet_id: str
    description: str
    occurrence_number: int

    @classmethod
    def from_entry(cls, entry: LedgerEntryRequest) -> "LedgerEntrySchema":
        return cls(
            recurring_transaction_id=entry.definition_id,
            user_id=entry.owner_id,
            due_date=entry.due_date,
            transaction_type=entry.transaction_type.value,
            amount=entry.amount,
            wallet_id=entry.wallet_id,
            description=entry.description,
            occurrence_number=entry.occurrence_number,
        )


class ItemErrorSchema(BaseModel):
    recurring_transaction_id: str
    error: str


class ProcessRecurringResponse(BaseModel):
    """Response for POST /v1/recurring/process"""

    run_id: str
    as_of: date
    processed: int
    materialized: List[LedgerEntrySchema]
    duplicates: int
    completed: List[str]
    errors: List[ItemErrorSchema]
    cancelled: bool = False


class RecurringDefinitionSchema(BaseModel):
    """Scheduling state of one recurring definition"""

    id: str
    user_id: str
    name: str
    transaction_type: str
    amount: float
    frequency: str
    interval: int
    next_due_date: date
    end_date: Optional[date] = None
    max_occurrences: Optional[int] = None
    occurrences_created: int

    @classmethod
    def from_definition(cls, definition: RecurringDefinition) -> "RecurringDefinitionSchema":
        return cls(
            id=definition.id,
            user_id=definition.owner_id,
            name=definition.template.name,
            transaction_type=definition.template.transaction_type.value,
            amount=definition.template.amount,
            frequency=definition.frequency.value,
            interval=definition.interval,
            next_due_date=definition.next_due_date,
            end_date=definition.end_date,
            max_occurrences=definition.max_occurrences,
            occurrences_created=definition.occurrences_created,
        )


class DueRecurringResponse(BaseModel):
    """Response for GET /v1/recurring/due"""

    as_of: date
    due: List[RecurringDefinitionSchema]
    upcoming: List[RecurringDefinitionSchema]


# --- Plans ---


class ProjectionRequest(BaseModel):
    """Request body for POST /v1/plans/{plan_id}/projection"""

    economic_growth_percent: float = 0.0
    inflation_rate_percent: float = 0.0
    property_market_trend: PropertyMarketTrend = PropertyMarketTrend.stable
    personal_career_growth_percent: float = 0.0
    horizon_months: Optional[int] = Field(None, gt=0, description="Defaults to the loan term")
    primary_metric: Optional[str] = None


class ScenarioSummarySchema(BaseModel):
    scenario_id: str
    scenario_name: str
    scenario_type: str
    monthly_payment: float
    total_interest: float
    affordability_score: int
    debt_to_income_percent: float
    roi_percent: Optional[float] = None
    net_worth_at_horizon: float
    worst_monthly_cash_flow: float
    liquidity_risk_month: int
    positive_cash_flow_month: Optional[int] = None
    dti_exceeds_threshold: bool
    risk_flags: List[str]
    insights: List[str]
    risk_factors: List[str]
    opportunities: List[str]

    @classmethod
    def from_result(cls, result: ScenarioResult, analysis: Analysis) -> "ScenarioSummarySchema":
        return cls(
            scenario_id=result.scenario_id,
            scenario_name=result.scenario_name,
            scenario_type=result.scenario_type.value,
            monthly_payment=result.metrics.monthly_payment,
            total_interest=result.metrics.total_interest,
            affordability_score=result.metrics.affordability_score,
            debt_to_income_percent=result.metrics.debt_to_income_percent,
            roi_percent=result.metrics.roi_percent,
            net_worth_at_horizon=result.net_worth_at_horizon,
            worst_monthly_cash_flow=result.worst_monthly_cash_flow,
            liquidity_risk_month=analysis.liquidity_risk_month,
            positive_cash_flow_month=analysis.positive_cash_flow_month,
            dti_exceeds_threshold=analysis.dti_exceeds_threshold,
            risk_flags=list(analysis.risk_flags),
            insights=list(analysis.insights),
            risk_factors=list(analysis.risk_factors),
            opportunities=list(analysis.opportunities),
        )


class RankingItem(BaseModel):
    rank: int
    scenario_id: str
    metric_value: float


class ProjectionResponse(BaseModel):
    """Response for POST /v1/plans/{plan_id}/projection"""

    plan_id: str
    horizon_months: int
    primary_metric: str
    baseline_id: str
    ranking: List[RankingItem]
    scenarios: List[ScenarioSummarySchema]
    net_worth_vs_baseline: Dict[str, float]


class OfferRecommendationSchema(BaseModel):
    bank_id: str
    bank_name: str
    interest_rate_percent: float
    tier: str
    monthly_payment: float
    promotional_payment: Optional[float] = None
    total_interest: float
    total_cost: float
    processing_fee: float
    savings_vs_worst: float
    promotional_savings: Optional[float] = None
    flags: List[str]
    rationale: List[str]

    @classmethod
    def from_recommendation(cls, rec: RateRecommendation) -> "OfferRecommendationSchema":
        return cls(
            bank_id=rec.offer.bank_id,
            bank_name=rec.offer.bank_name,
            interest_rate_percent=rec.offer.interest_rate_percent,
            tier=rec.tier.value,
            monthly_payment=rec.monthly_payment,
            promotional_payment=rec.promotional_payment,
            total_interest=rec.total_interest,
            total_cost=rec.total_cost,
            processing_fee=rec.offer.processing_fee,
            savings_vs_worst=rec.savings_vs_worst,
            promotional_savings=rec.promotional_savings,
            flags=list(rec.flags),
            rationale=list(rec.rationale),
        )


class RateRecommendationResponse(BaseModel):
    """Response for GET /v1/plans/{plan_id}/rates"""

    plan_id: str
    best: OfferRecommendationSchema
    alternatives: List[OfferRecommendationSchema]
    market_average_rate_percent: float
    market_average_fee: float
    savings: float
    used_default_rate: bool
