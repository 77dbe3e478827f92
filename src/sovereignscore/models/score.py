"""
SovereignScore Score Models

Feature vectors, explanations and the issued ScoreResult.

A ScoreResult is immutable once issued. Re-scoring a subject always
produces a new result.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from ..exceptions import InternalInvariantError
from .enums import AMLDecision, ScoreStatus
from .evidence import VerifiedDataSummary
from .screening import AMLAuditRecord


@dataclass(frozen=True)
class FeatureVector:
    """
    Fixed-length feature vector.

    Attributes:
        names: Feature names in fixed order
        values: Feature values in [0, 1], same order
        missing: Features that fell back to their configured default
        as_of: Reference time used for elapsed-time features
    """
    names: tuple[str, ...]
    values: tuple[float, ...]
    missing: tuple[str, ...]
    as_of: datetime

    def __len__(self) -> int:
        return len(self.values)

    def get(self, name: str) -> float:
        return self.values[self.names.index(name)]

    def as_dict(self) -> dict[str, float]:
        return dict(zip(self.names, self.values))


@dataclass(frozen=True)
class FeatureContribution:
    """
    Signed contribution of one feature to base_score.

    Attributes:
        feature: Feature name
        value: Feature value [0, 1]
        weight: Normalized weight (weights sum to 1)
        contribution: Points above (+) or below (-) the neutral baseline
    """
    feature: str
    value: float
    weight: float
    contribution: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "feature": self.feature,
            "value": self.value,
            "weight": self.weight,
            "contribution": self.contribution,
        }


@dataclass(frozen=True)
class ScoreExplanation:
    """
    Audit explanation of a score.

    base_score = baseline + sum(contribution) and
    final_score = clamp(base_score + risk_adjustment, 0, 100).
    """
    baseline: float
    contributions: tuple[FeatureContribution, ...]
    base_score: float
    risk_adjustment: float
    final_score: float
    positive_factors: tuple[str, ...] = ()
    negative_factors: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "baseline": self.baseline,
            "contributions": [c.to_dict() for c in self.contributions],
            "base_score": self.base_score,
            "risk_adjustment": self.risk_adjustment,
            "final_score": self.final_score,
            "positive_factors": list(self.positive_factors),
            "negative_factors": list(self.negative_factors),
        }


@dataclass(frozen=True)
class ScoreResult:
    """
    Issued scoring outcome.

    Attributes:
        status: SCORED, BLOCKED or REVIEW
        verified_data_summary: Fused evidence summary
        aml_status: Screening decision joined before release
        audit_ref: Deterministic reference into the audit log
        score: Final score [0, 100] (SCORED only)
        band: Score band (SCORED only)
        explanation: Feature contributions (SCORED only)
        subject_id: Scored subject
        as_of: Reference time of the request
        model_version: Scoring model version from the policy
        policy_hash: Hash of the policy in force
        warnings: Staleness and quality warnings
        aml_record: Anonymized screening record
    """
    status: ScoreStatus
    verified_data_summary: VerifiedDataSummary
    aml_status: AMLDecision
    audit_ref: str
    score: Optional[float] = None
    band: Optional[str] = None
    explanation: Optional[ScoreExplanation] = None
    subject_id: Optional[str] = None
    as_of: Optional[datetime] = None
    model_version: Optional[str] = None
    policy_hash: Optional[str] = None
    warnings: tuple[str, ...] = ()
    aml_record: Optional[AMLAuditRecord] = None

    def __post_init__(self) -> None:
        if self.status != ScoreStatus.SCORED:
            if self.score is not None or self.band is not None or self.explanation is not None:
                raise InternalInvariantError(
                    message=f"{self.status.value} result must not carry a score or band",
                    subject_id=self.subject_id,
                )
        elif self.score is None or self.band is None:
            raise InternalInvariantError(
                message="SCORED result requires a score and band",
                subject_id=self.subject_id,
            )

    @property
    def is_released(self) -> bool:
        return self.status == ScoreStatus.SCORED

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "score": self.score,
            "band": self.band,
            "explanation": self.explanation.to_dict() if self.explanation else None,
            "verified_data_summary": self.verified_data_summary.to_dict(),
            "aml_status": self.aml_status.value,
            "audit_ref": self.audit_ref,
            "subject_id": self.subject_id,
            "as_of": self.as_of.isoformat() if self.as_of else None,
            "model_version": self.model_version,
            "policy_hash": self.policy_hash,
            "warnings": list(self.warnings),
            "aml_record": self.aml_record.to_dict() if self.aml_record else None,
        }
