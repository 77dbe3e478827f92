"""
SovereignScore - Sovereign Scoring & Verification Pipeline

Alternative credit scoring for thin-file applicants in the UEMOA zone.
Evidence from documents, declarations, APIs and partner attestations is
fused into a verified data summary, adjusted for regional economic
context, and scored. The score is released only after sanctions/PEP
screening has cleared the subject.

Core Principle: "No score leaves the pipeline before compliance does."

Key Features:
- Rule-based OCR field extraction with checksum and plausibility checks
- Signed partner attestations (HMAC-SHA256) with expiry and revocation
- Per-field evidence fusion with explicit conflict and precedence rules
- Versioned, cached regional indicators with a bounded risk adjustment
- Linear, fully explained scoring with named weights from a policy pack
- Fuzzy sanctions/PEP screening with an anonymized audit record

Quick Start:
    import asyncio
    from sovereignscore.engine import ScoringPipeline, FileSanctionsSource
    from sovereignscore.packs import load_policy
    from sovereignscore.schemas import parse_score_request

    pipeline = ScoringPipeline(
        load_policy(),
        keys={"mfi-001": b"partner-secret"},
        sanctions_source=FileSanctionsSource("sanctions.yaml"),
    )
    result = asyncio.run(pipeline.score(parse_score_request(payload)))

Version: 0.1.0
"""
from __future__ import annotations

__version__ = "0.1.0"

from .exceptions import (
    ExternalFetchError,
    InputError,
    InternalInvariantError,
    SovereignScoreError,
    ValidationError,
)
from .models import (
    AMLDecision,
    Attestation,
    DataSourceInfo,
    ScoreRequest,
    ScoreResult,
    ScoreStatus,
    ScoringPolicy,
    SubjectIdentity,
    VerifiedDataSummary,
)

__all__ = [
    "__version__",
    # Exceptions
    "SovereignScoreError",
    "InputError",
    "ExternalFetchError",
    "ValidationError",
    "InternalInvariantError",
    # Models
    "AMLDecision",
    "Attestation",
    "DataSourceInfo",
    "ScoreRequest",
    "ScoreResult",
    "ScoreStatus",
    "ScoringPolicy",
    "SubjectIdentity",
    "VerifiedDataSummary",
]
