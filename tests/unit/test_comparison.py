"""Unit tests for scenario comparison and analysis"""

import pytest
from finhome_engine.config import InsightThresholds, ScenarioPolicy
from finhome_engine.domain.comparison import ScenarioComparator
from finhome_engine.domain.exceptions import InvalidScenarioInput
from finhome_engine.domain.models import (
    EconomicAssumptions,
    MonthlyProjection,
    ScenarioMetrics,
    ScenarioResult,
    ScenarioType,
)
from finhome_engine.domain.scenarios import ScenarioEngine


def make_result(
    scenario_id: str,
    cash_flows: list,
    scenario_type: ScenarioType = ScenarioType.custom,
    affordability: int = 5,
    dti: float = 30.0,
    roi: float = None,
    assumptions: EconomicAssumptions = EconomicAssumptions(),
) -> ScenarioResult:
    """Small hand-built timeline; net worth tracks cumulative cash flow"""
    series = []
    cumulative = 0.0
    for month, net in enumerate(cash_flows, start=1):
        cumulative += net
        series.append(
            MonthlyProjection(
                month=month,
                income=10_000,
                expenses=5_000,
                loan_payment=3_000,
                interest_payment=1_000,
                principal_payment=2_000,
                loan_balance=100_000,
                rental_income=0,
                property_expenses=0,
                prepayment=0,
                property_value=0,
                net_cash_flow=net,
                cumulative_cash_flow=cumulative,
                equity=0,
                net_worth=cumulative,
                debt_to_income_percent=dti,
            )
        )
    metrics = ScenarioMetrics(
        monthly_payment=3_000,
        total_interest=10_000,
        total_paid=110_000,
        affordability_score=affordability,
        debt_to_income_percent=dti,
        roi_percent=roi,
    )
    return ScenarioResult(
        scenario_id=scenario_id,
        scenario_name=scenario_id.title(),
        scenario_type=scenario_type,
        series=tuple(series),
        metrics=metrics,
        assumptions=assumptions,
    )


def test_compare_ranks_by_net_worth_and_reports_deltas():
    results = [
        make_result("low", [100, 100, 100]),
        make_result("base", [200, 200, 200], scenario_type=ScenarioType.baseline),
        make_result("high", [300, -50, 400]),
    ]

    comparison = ScenarioComparator().compare(results)

    assert comparison.baseline_id == "base"
    assert [r.scenario_id for r in comparison.ranking] == ["high", "base", "low"]
    assert [r.rank for r in comparison.ranking] == [1, 2, 3]
    assert comparison.best.scenario_id == "high"
    assert comparison.worst.scenario_id == "low"
    assert comparison.deltas["low"].net_worth_at_horizon_diff == -300
    assert comparison.deltas["high"].worst_monthly_cash_flow == -50
    assert comparison.deltas["high"].worst_monthly_cash_flow_diff == -250
    assert comparison.deltas["base"].net_worth_at_horizon_diff == 0


def test_baseline_defaults_to_first_result():
    results = [make_result("a", [1, 1]), make_result("b", [2, 2])]

    assert ScenarioComparator().compare(results).baseline_id == "a"


def test_ties_break_on_affordability_then_id():
    results = [
        make_result("zeta", [100], affordability=5),
        make_result("alpha", [100], affordability=5),
        make_result("mid", [100], affordability=8),
    ]

    ranking = ScenarioComparator().compare(results).ranking

    assert [r.scenario_id for r in ranking] == ["mid", "alpha", "zeta"]


def test_lower_is_better_metrics_rank_ascending():
    results = [make_result("heavy", [1], dti=55.0), make_result("light", [1], dti=20.0)]

    comparison = ScenarioComparator(primary_metric="debt_to_income_percent").compare(results)

    assert comparison.primary_metric == "debt_to_income_percent"
    assert comparison.best.scenario_id == "light"


def test_compare_rejects_mismatched_horizons():
    with pytest.raises(InvalidScenarioInput):
        ScenarioComparator().compare([make_result("a", [1, 2]), make_result("b", [1, 2, 3])])


def test_compare_rejects_empty_and_duplicate_input():
    with pytest.raises(InvalidScenarioInput):
        ScenarioComparator().compare([])
    with pytest.raises(InvalidScenarioInput):
        ScenarioComparator().compare([make_result("a", [1]), make_result("a", [2])])


def test_unknown_metric_is_rejected():
    with pytest.raises(InvalidScenarioInput):
        ScenarioComparator(primary_metric="happiness")


def test_analyze_finds_liquidity_risk_and_turnaround():
    result = make_result("plan", [50, -200, -10, -200, 30, 40])

    analysis = ScenarioComparator().analyze(result)

    # Earliest of the two lowest months
    assert analysis.liquidity_risk_month == 2
    assert analysis.minimum_cash_flow == -200
    assert analysis.positive_cash_flow_month == 5
    assert analysis.negative_cash_flow_months == 3
    assert "negative_cash_flow" in analysis.risk_flags
    assert "never_cash_flow_positive" not in analysis.risk_flags


def test_analyze_reports_no_turnaround_when_last_month_negative():
    analysis = ScenarioComparator().analyze(make_result("sinking", [10, 20, -5]))

    assert analysis.positive_cash_flow_month is None
    assert "never_cash_flow_positive" in analysis.risk_flags


def test_analyze_positive_from_first_month():
    analysis = ScenarioComparator().analyze(make_result("healthy", [10, 20, 30]))

    assert analysis.positive_cash_flow_month == 1
    assert analysis.risk_flags == ()


def test_dti_threshold_is_configurable():
    result = make_result("leveraged", [10], dti=45.0, affordability=3)

    default = ScenarioComparator().analyze(result)
    relaxed = ScenarioComparator(dti_danger_threshold_percent=50.0).analyze(result)

    assert default.dti_exceeds_threshold is True
    assert default.peak_debt_to_income_percent == 45.0
    assert "dti_above_threshold" in default.risk_flags
    assert "low_affordability" in default.risk_flags
    assert relaxed.dti_exceeds_threshold is False
    assert ScenarioComparator().analyze(result, dti_danger_threshold_percent=60.0).dti_exceeds_threshold is False


def test_compare_engine_output(baseline, home_loan, household, rental_property):
    results = ScenarioEngine(baseline, home_loan, household, investment=rental_property).generate_predefined_scenarios()

    comparison = ScenarioComparator().compare(results)

    assert comparison.baseline_id == "baseline"
    assert set(comparison.deltas) == {
        "baseline",
        "optimistic",
        "pessimistic",
        "stress",
        "early_payoff",
        "career_growth",
    }
    assert comparison.ranking[0].scenario_id == "career_growth"
    assert comparison.deltas["pessimistic"].net_worth_at_horizon_diff < 0


def test_analysis_explains_a_strained_plan():
    declining = EconomicAssumptions(property_market_trend="declining")
    result = make_result("strained", [-6_000_000, 100, 200], affordability=3, dti=45.0, roi=3.5, assumptions=declining)

    analysis = ScenarioComparator().analyze(result)

    assert analysis.insights == (
        "Loan payment takes 45% of income",
        "Negative cash flow in 1 of 3 months",
        "Affordability is limited; the plan needs another look",
        "ROI of 3.5% is low; compare other investment channels",
    )
    assert analysis.risk_factors == (
        "Debt-to-income ratio above 40%",
        "Low affordability score",
        "Large negative cash flow in some months",
        "Declining property market",
    )
    assert analysis.opportunities == ()


def test_analysis_spots_opportunities():
    ambitious = EconomicAssumptions(personal_career_growth_percent=12.0)
    result = make_result("thriving", [6_000_000, 7_000_000], affordability=9, dti=15.0, roi=11.0, assumptions=ambitious)

    analysis = ScenarioComparator().analyze(result)

    assert analysis.risk_factors == ()
    assert analysis.insights == (
        "Affordability is strong; additional investment is within reach",
        "ROI of 11.0% beats typical bank deposit rates",
    )
    assert analysis.opportunities == (
        "Extra payments could cut total interest",
        "Healthy positive cash flow leaves room to invest more",
        "High ROI; consider expanding the portfolio",
        "Strong career outlook supports further borrowing",
    )


def test_insight_thresholds_come_from_policy():
    result = make_result("modest", [100, 100], affordability=6)
    strict = ScenarioPolicy(insights=InsightThresholds(low_affordability_score=7))

    assert ScenarioComparator().analyze(result).risk_flags == ()
    analysis = ScenarioComparator(policy=strict).analyze(result)

    assert "low_affordability" in analysis.risk_flags
    assert "Low affordability score" in analysis.risk_factors
