"""Scenario ranking and single-scenario analysis"""

from typing import Callable, Dict, List, Optional, Sequence, Tuple

from finhome_engine.config import InsightThresholds, ScenarioPolicy, settings
from finhome_engine.domain.exceptions import InvalidScenarioInput
from finhome_engine.domain.models import (
    Analysis,
    Comparison,
    PropertyMarketTrend,
    RankedScenario,
    ScenarioDelta,
    ScenarioResult,
    ScenarioType,
)

# metric name → (extractor, higher is better)
RANKING_METRICS: Dict[str, Tuple[Callable[[ScenarioResult], float], bool]] = {
    "net_worth_at_horizon": (lambda r: r.net_worth_at_horizon, True),
    "cumulative_cash_flow": (lambda r: r.cumulative_cash_flow, True),
    "worst_monthly_cash_flow": (lambda r: r.worst_monthly_cash_flow, True),
    "affordability_score": (lambda r: r.metrics.affordability_score, True),
    "total_interest": (lambda r: r.metrics.total_interest, False),
    "debt_to_income_percent": (lambda r: r.metrics.debt_to_income_percent, False),
}


def _check_metric(metric: str) -> str:
    if metric not in RANKING_METRICS:
        raise InvalidScenarioInput(f"Unknown ranking metric {metric!r}; expected one of {sorted(RANKING_METRICS)}")
    return metric


def _insights(result: ScenarioResult, negative_months: int, t: InsightThresholds) -> List[str]:
    metrics = result.metrics
    notes = []
    if metrics.debt_to_income_percent > t.payment_income_share_percent:
        notes.append(f"Loan payment takes {round(metrics.debt_to_income_percent)}% of income")
    if negative_months:
        notes.append(f"Negative cash flow in {negative_months} of {len(result.series)} months")
    if metrics.affordability_score >= t.strong_affordability_score:
        notes.append("Affordability is strong; additional investment is within reach")
    elif metrics.affordability_score < t.low_affordability_score:
        notes.append("Affordability is limited; the plan needs another look")
    if metrics.roi_percent is not None:
        if metrics.roi_percent > t.attractive_roi_percent:
            notes.append(f"ROI of {metrics.roi_percent}% beats typical bank deposit rates")
        elif metrics.roi_percent < t.weak_roi_percent:
            notes.append(f"ROI of {metrics.roi_percent}% is low; compare other investment channels")
    return notes


def _risk_factors(
    result: ScenarioResult, minimum_cash_flow: float, dti_threshold: float, t: InsightThresholds
) -> List[str]:
    risks = []
    if result.metrics.debt_to_income_percent > dti_threshold:
        risks.append(f"Debt-to-income ratio above {dti_threshold:g}%")
    if result.metrics.affordability_score < t.low_affordability_score:
        risks.append("Low affordability score")
    if minimum_cash_flow < -t.large_negative_cash_flow:
        risks.append("Large negative cash flow in some months")
    if result.assumptions.property_market_trend == PropertyMarketTrend.declining:
        risks.append("Declining property market")
    return risks


def _opportunities(result: ScenarioResult, t: InsightThresholds) -> List[str]:
    metrics = result.metrics
    found = []
    if metrics.affordability_score >= t.strong_affordability_score:
        found.append("Extra payments could cut total interest")
    positive = [p.net_cash_flow for p in result.series if p.net_cash_flow > 0]
    if positive and sum(positive) / len(positive) > t.strong_positive_cash_flow:
        found.append("Healthy positive cash flow leaves room to invest more")
    if metrics.roi_percent is not None and metrics.roi_percent > t.high_roi_percent:
        found.append("High ROI; consider expanding the portfolio")
    if result.assumptions.personal_career_growth_percent > t.high_career_growth_percent:
        found.append("Strong career outlook supports further borrowing")
    return found


class ScenarioComparator:
    """Ranks scenario results and reviews individual timelines"""

    def __init__(
        self,
        primary_metric: Optional[str] = None,
        dti_danger_threshold_percent: Optional[float] = None,
        policy: Optional[ScenarioPolicy] = None,
    ):
        self.primary_metric = _check_metric(primary_metric or settings.comparison_primary_metric)
        self.dti_danger_threshold_percent = (
            dti_danger_threshold_percent
            if dti_danger_threshold_percent is not None
            else settings.dti_danger_threshold_percent
        )
        self.policy = policy or settings.scenario_policy

    def compare(self, results: Sequence[ScenarioResult], primary_metric: Optional[str] = None) -> Comparison:
        """
        Deltas against the baseline and a ranking by the primary metric.

        The baseline is the first result of type baseline, else the first
        result. Ties on the metric fall back to affordability score
        (descending), then scenario id.
        """
        if not results:
            raise InvalidScenarioInput("No scenario results to compare")
        horizons = {r.horizon_months for r in results}
        if len(horizons) > 1:
            raise InvalidScenarioInput(f"Scenario horizons differ: {sorted(horizons)}")
        ids = [r.scenario_id for r in results]
        if len(set(ids)) != len(ids):
            raise InvalidScenarioInput("Scenario ids must be unique within a comparison")

        metric = _check_metric(primary_metric or self.primary_metric)
        extract, higher_is_better = RANKING_METRICS[metric]

        baseline = next((r for r in results if r.scenario_type == ScenarioType.baseline), results[0])
        baseline_worst = baseline.worst_monthly_cash_flow

        deltas = {}
        for r in results:
            worst = r.worst_monthly_cash_flow
            deltas[r.scenario_id] = ScenarioDelta(
                scenario_id=r.scenario_id,
                affordability_score_diff=r.metrics.affordability_score - baseline.metrics.affordability_score,
                net_worth_at_horizon_diff=round(r.net_worth_at_horizon - baseline.net_worth_at_horizon, 2),
                worst_monthly_cash_flow=worst,
                worst_monthly_cash_flow_diff=round(worst - baseline_worst, 2),
            )

        def sort_key(r: ScenarioResult):
            value = extract(r)
            return (-value if higher_is_better else value, -r.metrics.affordability_score, r.scenario_id)

        ranking = tuple(
            RankedScenario(
                rank=position,
                scenario_id=r.scenario_id,
                scenario_name=r.scenario_name,
                metric_value=extract(r),
                affordability_score=r.metrics.affordability_score,
            )
            for position, r in enumerate(sorted(results, key=sort_key), start=1)
        )

        return Comparison(baseline_id=baseline.scenario_id, primary_metric=metric, ranking=ranking, deltas=deltas)

    def analyze(self, result: ScenarioResult, dti_danger_threshold_percent: Optional[float] = None) -> Analysis:
        """
        Liquidity risk point, cash-flow turnaround month and DTI danger flag,
        plus readable insight, risk and opportunity notes.
        """
        if not result.series:
            raise InvalidScenarioInput(f"Scenario {result.scenario_id} has an empty series")
        threshold = (
            dti_danger_threshold_percent
            if dti_danger_threshold_percent is not None
            else self.dti_danger_threshold_percent
        )

        lowest = min(result.series, key=lambda p: (p.net_cash_flow, p.month))

        # First month after which cash flow never dips to zero or below again
        positive_from: Optional[int] = 1
        for point in result.series:
            if point.net_cash_flow <= 0:
                positive_from = point.month + 1
        if positive_from > result.series[-1].month:
            positive_from = None

        peak_dti = max(p.debt_to_income_percent for p in result.series)
        exceeds = peak_dti > threshold
        negative_months = sum(1 for p in result.series if p.net_cash_flow < 0)

        flags = []
        if negative_months:
            flags.append("negative_cash_flow")
        if positive_from is None:
            flags.append("never_cash_flow_positive")
        if exceeds:
            flags.append("dti_above_threshold")
        thresholds = self.policy.insights
        if result.metrics.affordability_score < thresholds.low_affordability_score:
            flags.append("low_affordability")

        return Analysis(
            scenario_id=result.scenario_id,
            liquidity_risk_month=lowest.month,
            minimum_cash_flow=lowest.net_cash_flow,
            positive_cash_flow_month=positive_from,
            dti_danger_threshold_percent=threshold,
            dti_exceeds_threshold=exceeds,
            peak_debt_to_income_percent=peak_dti,
            negative_cash_flow_months=negative_months,
            risk_flags=tuple(flags),
            insights=tuple(_insights(result, negative_months, thresholds)),
            risk_factors=tuple(_risk_factors(result, lowest.net_cash_flow, threshold, thresholds)),
            opportunities=tuple(_opportunities(result, thresholds)),
        )
