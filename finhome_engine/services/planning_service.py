"""Plan projections and rate recommendations over stored plans"""

import time
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from finhome_engine.config import ScenarioPolicy
from finhome_engine.domain.comparison import ScenarioComparator
from finhome_engine.domain.models import (
    Analysis,
    Comparison,
    EconomicAssumptions,
    PlanInputs,
    RateOptimizationResult,
    ScenarioDefinition,
    ScenarioOverrides,
    ScenarioResult,
    ScenarioType,
)
from finhome_engine.domain.rates import RateOptimizer
from finhome_engine.domain.scenarios import ScenarioEngine
from finhome_engine.infrastructure.observability.logging import log_projection
from finhome_engine.infrastructure.observability.metrics import (
    projection_duration_histogram,
    record_rate_recommendation,
)
from finhome_engine.services.ports import LenderOfferCatalog, PlanSource


@dataclass(frozen=True)
class PlanProjection:
    plan_id: str
    results: Tuple[ScenarioResult, ...]
    comparison: Comparison
    analyses: Dict[str, Analysis]


class PlanningService:
    """Loads a plan, runs the engine over it and ranks the outcome"""

    def __init__(
        self,
        plans: PlanSource,
        offers: LenderOfferCatalog,
        optimizer: Optional[RateOptimizer] = None,
        comparator: Optional[ScenarioComparator] = None,
        scenario_policy: Optional[ScenarioPolicy] = None,
    ):
        self.plans = plans
        self.offers = offers
        self.optimizer = optimizer or RateOptimizer()
        self.comparator = comparator or ScenarioComparator(policy=scenario_policy)
        self.scenario_policy = scenario_policy

    def _load(self, plan_id: str) -> PlanInputs:
        plan = self.plans.get_plan(plan_id)
        if plan is None:
            raise LookupError(f"Plan {plan_id} not found")
        return plan

    def project_plan(
        self,
        plan_id: str,
        assumptions: Optional[EconomicAssumptions] = None,
        horizon_months: Optional[int] = None,
        primary_metric: Optional[str] = None,
    ) -> PlanProjection:
        """
        Baseline plus predefined scenarios for a stored plan, compared and
        analyzed one by one.

        Raises:
            LookupError: plan does not exist
            InvalidScenarioInput: assumptions or horizon are invalid
        """
        start_time = time.time()
        plan = self._load(plan_id)
        baseline = ScenarioDefinition(
            id="baseline",
            name="Baseline",
            type=ScenarioType.baseline,
            overrides=ScenarioOverrides(),
            assumptions=assumptions or EconomicAssumptions(),
        )
        engine = ScenarioEngine(
            baseline,
            plan.loan,
            plan.finances,
            investment=plan.investment,
            horizon_months=horizon_months,
            policy=self.scenario_policy,
        )
        results = engine.generate_predefined_scenarios()
        comparison = self.comparator.compare(results, primary_metric=primary_metric)
        analyses = {r.scenario_id: self.comparator.analyze(r) for r in results}

        duration = time.time() - start_time
        projection_duration_histogram.observe(duration)
        log_projection(plan_id, len(results), comparison.best.scenario_id, duration * 1000)

        return PlanProjection(plan_id=plan_id, results=tuple(results), comparison=comparison, analyses=analyses)

    def recommend_rates(self, plan_id: str) -> RateOptimizationResult:
        """
        Rank the catalog offers for the plan's loan purpose.

        Raises:
            LookupError: plan does not exist
            NoRateAvailable: no offer matched and no default applies
        """
        plan = self._load(plan_id)
        catalog = self.offers.list_for_purpose(plan.purpose)
        result = self.optimizer.recommend(catalog, plan.loan.principal, plan.loan.term_months, plan.purpose)
        record_rate_recommendation(result.used_default_rate, result.best.tier.value)
        return result
