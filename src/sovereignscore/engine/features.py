"""
SovereignScore Feature Engineer

Pure transform (VerifiedDataSummary, EconomicContext, as_of) -> FeatureVector.

Every feature lies in [0, 1] and the vector always has the same names in
the same order. Elapsed-time features are measured against the supplied
as_of; nothing here reads the clock. Features whose inputs are absent use
the configured default and are listed in FeatureVector.missing.
"""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Optional

from ..exceptions import ensure_bounds
from ..models.enums import SourceType, VerificationStatus
from ..models.evidence import VerifiedDataSummary
from ..models.policy import FEATURE_NAMES, FeatureConfig
from ..models.regional import EconomicContext
from ..models.score import FeatureVector
from .regional_context import validate_income

# How much a field's verification tier is trusted when it feeds a feature
STATUS_TRUST: dict[VerificationStatus, float] = {
    VerificationStatus.VERIFIED: 1.0,
    VerificationStatus.PARTIALLY_VERIFIED: 0.8,
    VerificationStatus.DECLARED: 0.5,
    VerificationStatus.UNVERIFIED: 0.25,
}

# Currencies whose minor unit is the major unit
_ZERO_EXPONENT = ("XOF", "XAF")


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def _days_between(earlier: datetime, later: datetime) -> float:
    return (later - earlier).total_seconds() / 86400


class FeatureEngineer:
    """
    Builds the fixed-order feature vector.

    Usage:
        engineer = FeatureEngineer()
        vector = engineer.build(summary, context, as_of)
    """

    def __init__(self, config: Optional[FeatureConfig] = None):
        self.config = config or FeatureConfig()
        self._features: dict[str, Callable[[VerifiedDataSummary, EconomicContext, datetime], Optional[float]]] = {
            "income_stability": self._income_stability,
            "income_plausibility": self._income_plausibility,
            "expense_health": self._expense_health,
            "mobile_money_activity": self._mobile_money_activity,
            "credit_discipline": self._credit_discipline,
            "attestation_coverage": self._attestation_coverage,
            "verification_rate": self._verification_rate,
            "data_confidence": self._data_confidence,
            "regional_risk": self._regional_risk,
            "verification_recency": self._verification_recency,
            "evidence_age": self._evidence_age,
        }

    def build(
        self,
        summary: VerifiedDataSummary,
        context: EconomicContext,
        as_of: datetime,
    ) -> FeatureVector:
        values: list[float] = []
        missing: list[str] = []
        for name in FEATURE_NAMES:
            value = self._features[name](summary, context, as_of)
            if value is None:
                missing.append(name)
                value = self.config.default(name)
            value = round(value, 6)
            values.append(ensure_bounds(name, value, 0.0, 1.0))
        return FeatureVector(
            names=FEATURE_NAMES,
            values=tuple(values),
            missing=tuple(missing),
            as_of=as_of,
        )

    # =========================================================================
    # Income & expenses
    # =========================================================================

    def _monthly_income_xof(self, summary: VerifiedDataSummary) -> Optional[int]:
        entry = summary.winner("monthly_income") or summary.winner("salary_amount")
        if entry is None or entry.normalized_value is None:
            return None
        if (entry.normalized_value.unit or "XOF") not in _ZERO_EXPONENT:
            return None
        return int(entry.normalized_value.value)

    def _income_stability(self, summary, context, as_of) -> Optional[float]:
        """Trust in the income figure, blended with employment tenure when known."""
        entry = summary.winner("monthly_income") or summary.winner("salary_amount")
        if entry is None:
            return None
        trust = entry.confidence / 100 * STATUS_TRUST[entry.status]
        since = summary.value_of("employment_since")
        if since is None:
            return _clamp01(trust)
        months = (as_of.date() - date.fromisoformat(since)).days / 30.44
        tenure = _clamp01(months / 24)
        return _clamp01(0.7 * trust + 0.3 * tenure)

    def _income_plausibility(self, summary, context, as_of) -> Optional[float]:
        income = self._monthly_income_xof(summary)
        if income is None or income <= 0:
            return None
        return validate_income(income, context).confidence

    def _expense_health(self, summary, context, as_of) -> Optional[float]:
        """Share of income left after declared expenses."""
        income = self._monthly_income_xof(summary)
        expenses = summary.winner("monthly_expenses")
        if income is None or income <= 0 or expenses is None or expenses.normalized_value is None:
            return None
        return _clamp01(1 - int(expenses.normalized_value.value) / income)

    # =========================================================================
    # Behaviour
    # =========================================================================

    def _mobile_money_activity(self, summary, context, as_of) -> Optional[float]:
        """Daily transaction velocity mapped onto [0, 1] around the healthy band."""
        count = summary.value_of("momo_transactions_30d")
        if count is None:
            return None
        daily = float(Decimal(count)) / 30
        low, high = self.config.momo_daily_low, self.config.momo_daily_high
        if daily <= 0:
            return 0.0
        if daily < low:
            return 0.5 * daily / low
        if daily < high:
            return 0.5 + 0.5 * (daily - low) / (high - low)
        return 1.0

    def _credit_discipline(self, summary, context, as_of) -> Optional[float]:
        rates = [
            float(summary.value_of(name))
            for name in ("repayment_rate", "discipline_rate")
            if summary.value_of(name) is not None
        ]
        if not rates:
            return None
        return _clamp01(sum(rates) / len(rates))

    # =========================================================================
    # Evidence quality
    # =========================================================================

    def _attestation_coverage(self, summary, context, as_of) -> float:
        """Share of resolved fields backed by a partner attestation."""
        winners = summary.winners()
        if not winners:
            return 0.0
        attested = sum(
            1 for entry in winners
            if entry.source_type == SourceType.PARTNER_ATTESTATION
            or (entry.verification_method or "").startswith("attestation:")
        )
        return attested / len(winners)

    def _verification_rate(self, summary, context, as_of) -> float:
        return summary.verification_rate / 100

    def _data_confidence(self, summary, context, as_of) -> float:
        return summary.overall_confidence / 100

    def _regional_risk(self, summary, context, as_of) -> float:
        return _clamp01((context.risk_adjustment + 10) / 20)

    # =========================================================================
    # Elapsed time
    # =========================================================================

    def _ages(self, summary: VerifiedDataSummary, as_of: datetime) -> list[float]:
        return [
            _days_between(entry.verified_at, as_of)
            for entry in summary.winners()
            if entry.verified_at is not None and entry.verified_at <= as_of
        ]

    def _verification_recency(self, summary, context, as_of) -> Optional[float]:
        """Age of the newest verification relative to the recency horizon."""
        ages = self._ages(summary, as_of)
        if not ages:
            return None
        return _clamp01(1 - min(ages) / self.config.recency_horizon_days)

    def _evidence_age(self, summary, context, as_of) -> Optional[float]:
        """Mean verification age relative to the evidence horizon."""
        ages = self._ages(summary, as_of)
        if not ages:
            return None
        return _clamp01(1 - (sum(ages) / len(ages)) / self.config.evidence_age_horizon_days)
