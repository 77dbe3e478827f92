"""
SovereignScore Scoring Engine

Deterministic weighted-feature model:

    contribution_i = 100 * w_i * (x_i - 0.5) / sum(w)
    base_score     = baseline + sum(contribution_i)
    final_score    = clamp(base_score + risk_adjustment, 0, 100)

Gating runs before any computation: a HIT screening outcome yields a
BLOCKED result and a REVIEW outcome a REVIEW result, neither carrying a
score, band or explanation.

audit_ref is a content hash of every input, so identical inputs always
produce an identical ScoreResult.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Sequence

from ..canon import content_hash_short, subject_ref
from ..exceptions import ensure_bounds
from ..models.enums import AMLDecision, ScoreStatus
from ..models.evidence import VerifiedDataSummary
from ..models.policy import ScoringConfig
from ..models.regional import EconomicContext
from ..models.score import FeatureContribution, FeatureVector, ScoreExplanation, ScoreResult
from ..models.screening import AMLAuditRecord
from .features import FeatureEngineer

logger = logging.getLogger(__name__)

TOP_FACTORS = 3

_GATED_STATUS = {
    AMLDecision.HIT: ScoreStatus.BLOCKED,
    AMLDecision.REVIEW: ScoreStatus.REVIEW,
}


class ScoringEngine:
    """
    Computes gated, explained scores.

    Usage:
        engine = ScoringEngine()
        result = engine.score(summary, context, AMLDecision.CLEAR, as_of)
    """

    def __init__(
        self,
        config: Optional[ScoringConfig] = None,
        feature_engineer: Optional[FeatureEngineer] = None,
    ):
        self.config = config or ScoringConfig()
        self.feature_engineer = feature_engineer or FeatureEngineer()

    def audit_ref(
        self,
        summary: VerifiedDataSummary,
        context: EconomicContext,
        aml_status: AMLDecision,
        as_of: datetime,
        subject_id: Optional[str] = None,
        policy_hash: Optional[str] = None,
    ) -> str:
        """Deterministic audit log key for a scoring request."""
        return "aud_" + content_hash_short({
            "subject": subject_ref(subject_id) if subject_id else None,
            "summary": summary.digest(),
            "context": context.to_dict(),
            "aml_status": aml_status.value,
            "as_of": as_of,
            "model_version": self.config.model_version,
            "weights": self.config.normalized_weights(),
            "policy_hash": policy_hash,
        }, 24)

    def explain(self, features: FeatureVector, risk_adjustment: float) -> ScoreExplanation:
        """Per-feature contributions and the resulting scores."""
        weights = self.config.normalized_weights()
        contributions = tuple(
            FeatureContribution(
                feature=name,
                value=value,
                weight=round(weights[name], 6),
                contribution=round(100 * weights[name] * (value - 0.5), 4),
            )
            for name, value in zip(features.names, features.values)
        )
        base = round(self.config.baseline + sum(c.contribution for c in contributions), 2)
        ensure_bounds("base_score", base, 0, 100)
        ensure_bounds("risk_adjustment", risk_adjustment, -10, 10)
        final = round(max(0.0, min(100.0, base + risk_adjustment)), 2)

        ranked = sorted(contributions, key=lambda c: (-abs(c.contribution), c.feature))
        positive = tuple(c.feature for c in ranked if c.contribution > 0)[:TOP_FACTORS]
        negative = tuple(c.feature for c in ranked if c.contribution < 0)[:TOP_FACTORS]
        return ScoreExplanation(
            baseline=self.config.baseline,
            contributions=contributions,
            base_score=base,
            risk_adjustment=risk_adjustment,
            final_score=final,
            positive_factors=positive,
            negative_factors=negative,
        )

    def score(
        self,
        summary: VerifiedDataSummary,
        context: EconomicContext,
        aml_status: AMLDecision,
        as_of: datetime,
        subject_id: Optional[str] = None,
        policy_hash: Optional[str] = None,
        warnings: Sequence[str] = (),
        aml_record: Optional[AMLAuditRecord] = None,
    ) -> ScoreResult:
        """
        Score a subject once its screening outcome is known.

        Raises:
            InternalInvariantError: If a computed value leaves its range
        """
        ref = self.audit_ref(summary, context, aml_status, as_of, subject_id, policy_hash)
        common = dict(
            verified_data_summary=summary,
            aml_status=aml_status,
            audit_ref=ref,
            subject_id=subject_id,
            as_of=as_of,
            model_version=self.config.model_version,
            policy_hash=policy_hash,
            warnings=tuple(warnings),
            aml_record=aml_record,
        )
        extra = {"audit_ref": ref, "decision": aml_status.value}
        if subject_id:
            extra["subject_ref"] = subject_ref(subject_id)

        gated = _GATED_STATUS.get(aml_status)
        if gated is not None:
            logger.info("Score withheld: %s", gated.value, extra={**extra, "status": gated.value})
            return ScoreResult(status=gated, **common)

        features = self.feature_engineer.build(summary, context, as_of)
        explanation = self.explain(features, context.risk_adjustment)
        ensure_bounds("score", explanation.final_score, 0, 100, subject_id)
        band = self.config.band_for(explanation.final_score)
        if features.missing:
            common["warnings"] = common["warnings"] + (
                f"features defaulted for missing inputs: {', '.join(features.missing)}",
            )
        logger.info(
            "Scored %.2f (%s)", explanation.final_score, band,
            extra={**extra, "status": ScoreStatus.SCORED.value},
        )
        return ScoreResult(
            status=ScoreStatus.SCORED,
            score=explanation.final_score,
            band=band,
            explanation=explanation,
            **common,
        )
