"""Lender offer ranking and rate recommendations"""

from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Union

from finhome_engine.config import DefaultRate, RatePolicy, settings
from finhome_engine.domain.amortization import annuity_payment, compute_with_promotional_rate
from finhome_engine.domain.exceptions import NoRateAvailable
from finhome_engine.domain.models import (
    LenderOffer,
    LoanParameters,
    LoanPurpose,
    RateOptimizationResult,
    RateRecommendation,
    RateTier,
)


def _in_window(value: float, lower: Optional[float], upper: Optional[float]) -> bool:
    if lower is not None and value < lower:
        return False
    if upper is not None and value > upper:
        return False
    return True


class RateOptimizer:
    """
    Scores a catalog of lender offers for one loan request.

    Thresholds and the default-rate table are injected (or taken from
    settings) so that tiering never depends on constants inside the ranking.
    """

    def __init__(
        self,
        policy: Optional[RatePolicy] = None,
        default_rates: Optional[Dict[str, DefaultRate]] = None,
    ):
        self.policy = policy or settings.rate_policy
        self.default_rates = default_rates if default_rates is not None else settings.default_rates

    @staticmethod
    def select_candidates(catalog: Iterable[LenderOffer], amount: float, term_months: int) -> List[LenderOffer]:
        """Offers whose amount and term windows (inclusive) contain the request"""
        return [
            offer
            for offer in catalog
            if _in_window(amount, offer.min_amount, offer.max_amount)
            and _in_window(term_months, offer.min_term_months, offer.max_term_months)
        ]

    def resolve_default_rate(self, purpose: Union[LoanPurpose, str, None]) -> LenderOffer:
        """
        Explicit fallback when the catalog has no match.

        Raises:
            NoRateAvailable: purpose missing, unknown, or absent from the table
        """
        if purpose is None:
            raise NoRateAvailable("No matching lender offer and no loan purpose to resolve a default rate")
        try:
            purpose = LoanPurpose(purpose)
        except ValueError as e:
            raise NoRateAvailable(f"Unknown loan purpose {purpose!r}") from e

        default = self.default_rates.get(purpose.value)
        if default is None:
            raise NoRateAvailable(f"No default rate configured for {purpose.value}")

        return LenderOffer(
            bank_id=f"default:{purpose.value}",
            bank_name="Market default",
            interest_rate_percent=default.regular_rate_percent,
            promotional_rate_percent=default.promotional_rate_percent,
            promotional_period_months=default.promotional_period_months,
        )

    def classify_tier(self, rate_percent: float) -> RateTier:
        tiers = self.policy.tiers
        if rate_percent < tiers.excellent_below:
            return RateTier.excellent
        elif rate_percent < tiers.good_below:
            return RateTier.good
        elif rate_percent <= tiers.average_up_to:
            return RateTier.average
        else:
            return RateTier.poor

    def _score(self, offer: LenderOffer, amount: float, term_months: int) -> RateRecommendation:
        promo_fits = (
            offer.promotional_rate_percent is not None and offer.promotional_period_months < term_months
        )
        params = LoanParameters(
            principal=amount,
            annual_rate_percent=offer.interest_rate_percent,
            term_months=term_months,
            promotional_rate_percent=offer.promotional_rate_percent if promo_fits else None,
            promotional_period_months=offer.promotional_period_months if promo_fits else None,
        )
        result = compute_with_promotional_rate(params, include_schedule=False)
        tier = self.classify_tier(offer.interest_rate_percent)

        flags = []
        rationale = [f"{tier.value.capitalize()} regular rate of {offer.interest_rate_percent}%"]

        promotional_savings = None
        if promo_fits:
            # Both payments use the full term so the difference isolates the rate discount
            regular = annuity_payment(amount, offer.interest_rate_percent, term_months)
            promotional = annuity_payment(amount, offer.promotional_rate_percent, term_months)
            promotional_savings = round((regular - promotional) * offer.promotional_period_months, 2)
            rationale.append(
                f"Promotional rate {offer.promotional_rate_percent}% for "
                f"{offer.promotional_period_months} months saves {promotional_savings:,.0f}"
            )
        elif offer.promotional_rate_percent is not None:
            rationale.append(
                f"Promotional period of {offer.promotional_period_months} months does not fit a "
                f"{term_months}-month term; regular rate applied"
            )

        if offer.processing_fee < self.policy.low_fee_threshold:
            flags.append("low_processing_fee")
            rationale.append(f"Low processing fee of {offer.processing_fee:,.0f}")
        elif offer.processing_fee > self.policy.high_fee_threshold:
            flags.append("high_processing_fee")
            rationale.append(f"High processing fee of {offer.processing_fee:,.0f}")

        if offer.max_ltv_ratio_percent is not None and offer.max_ltv_ratio_percent >= self.policy.favorable_ltv_percent:
            flags.append("favorable_ltv")
            rationale.append(f"Lends up to {offer.max_ltv_ratio_percent}% of property value")

        return RateRecommendation(
            offer=offer,
            monthly_payment=result.monthly_payment,
            total_interest=result.total_interest,
            total_cost=result.total_cost,
            tier=tier,
            promotional_payment=result.promotional_payment,
            promotional_savings=promotional_savings,
            flags=tuple(flags),
            rationale=tuple(rationale),
        )

    def rank(self, candidates: Iterable[LenderOffer], amount: float, term_months: int) -> List[RateRecommendation]:
        """Score candidates and sort by total cost, then processing fee"""
        scored = [self._score(offer, amount, term_months) for offer in candidates]
        scored.sort(key=lambda r: (r.total_cost, r.offer.processing_fee))
        if not scored:
            return []

        worst_cost = scored[-1].total_cost
        return [replace(r, savings_vs_worst=round(worst_cost - r.total_cost, 2)) for r in scored]

    def recommend(
        self,
        catalog: Iterable[LenderOffer],
        amount: float,
        term_months: int,
        purpose: Union[LoanPurpose, str, None] = None,
    ) -> RateOptimizationResult:
        """
        Best offer, top alternatives and market averages for a request.

        Falls back to the default-rate table for `purpose` when no offer
        matches. Savings = total cost of the worst candidate minus the best.

        Raises:
            NoRateAvailable: nothing matched and no default applies
        """
        candidates = self.select_candidates(catalog, amount, term_months)
        used_default = False
        if not candidates:
            candidates = [self.resolve_default_rate(purpose)]
            used_default = True

        ranked = self.rank(candidates, amount, term_months)
        best, worst = ranked[0], ranked[-1]
        count = self.policy.alternatives_count

        return RateOptimizationResult(
            best=best,
            alternatives=tuple(ranked[1 : 1 + count]),
            ranked=tuple(ranked),
            market_average_rate_percent=round(
                sum(c.interest_rate_percent for c in candidates) / len(candidates), 4
            ),
            market_average_fee=round(sum(c.processing_fee for c in candidates) / len(candidates), 2),
            savings=round(worst.total_cost - best.total_cost, 2),
            used_default_rate=used_default,
        )
