"""Plan projection and rate recommendation endpoints"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Request

from finhome_engine.api.dependencies import get_planning_service, get_request_id
from finhome_engine.api.v1.schemas import (
    OfferRecommendationSchema,
    ProjectionRequest,
    ProjectionResponse,
    RankingItem,
    RateRecommendationResponse,
    ScenarioSummarySchema,
)
from finhome_engine.domain.exceptions import DomainException, NoRateAvailable
from finhome_engine.domain.models import EconomicAssumptions
from finhome_engine.services.planning_service import PlanningService

router = APIRouter()


@router.post("/plans/{plan_id}/projection", response_model=ProjectionResponse)
def project_plan(
    plan_id: str,
    request_body: ProjectionRequest,
    request: Request,
    service: PlanningService = Depends(get_planning_service),
):
    """
    Project the baseline and predefined scenarios of a saved plan.

    Returns:
        Ranking by the primary metric plus a per-scenario summary
    """
    request_id = get_request_id(request)
    try:
        assumptions = EconomicAssumptions(
            economic_growth_percent=request_body.economic_growth_percent,
            inflation_rate_percent=request_body.inflation_rate_percent,
            property_market_trend=request_body.property_market_trend,
            personal_career_growth_percent=request_body.personal_career_growth_percent,
        )
        projection = service.project_plan(
            plan_id,
            assumptions=assumptions,
            horizon_months=request_body.horizon_months,
            primary_metric=request_body.primary_metric,
        )
    except LookupError:
        raise HTTPException(status_code=404, detail="Plan not found")
    except DomainException as e:
        logging.warning(f"Projection rejected: {e}", extra={"request_id": request_id, "plan_id": plan_id})
        raise HTTPException(status_code=422, detail=str(e))

    comparison = projection.comparison
    return ProjectionResponse(
        plan_id=plan_id,
        horizon_months=projection.results[0].horizon_months,
        primary_metric=comparison.primary_metric,
        baseline_id=comparison.baseline_id,
        ranking=[
            RankingItem(rank=r.rank, scenario_id=r.scenario_id, metric_value=r.metric_value)
            for r in comparison.ranking
        ],
        scenarios=[
            ScenarioSummarySchema.from_result(r, projection.analyses[r.scenario_id]) for r in projection.results
        ],
        net_worth_vs_baseline={
            scenario_id: d.net_worth_at_horizon_diff for scenario_id, d in comparison.deltas.items()
        },
    )


@router.get("/plans/{plan_id}/rates", response_model=RateRecommendationResponse)
def recommend_rates(
    plan_id: str,
    request: Request,
    service: PlanningService = Depends(get_planning_service),
):
    """Best lender offer and alternatives for the plan's loan"""
    request_id = get_request_id(request)
    try:
        result = service.recommend_rates(plan_id)
    except LookupError:
        raise HTTPException(status_code=404, detail="Plan not found")
    except NoRateAvailable as e:
        logging.warning(f"No rate available: {e}", extra={"request_id": request_id, "plan_id": plan_id})
        raise HTTPException(status_code=422, detail=str(e))
    except DomainException as e:
        raise HTTPException(status_code=422, detail=str(e))

    return RateRecommendationResponse(
        plan_id=plan_id,
        best=OfferRecommendationSchema.from_recommendation(result.best),
        alternatives=[OfferRecommendationSchema.from_recommendation(r) for r in result.alternatives],
        market_average_rate_percent=result.market_average_rate_percent,
        market_average_fee=result.market_average_fee,
        savings=result.savings,
        used_default_rate=result.used_default_rate,
    )
