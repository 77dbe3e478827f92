"""
SovereignScore Engine

Services of the scoring and verification pipeline.

Services:
- DocumentExtractor: Rule-based field extraction from document text
- AttestationValidator: Partner attestation signatures, validity and boosts
- DataFusionLedger: Multi-source evidence fusion into a VerifiedDataSummary
- RegionalContextProvider: Cached regional indicators and risk adjustment
- FeatureEngineer: Bounded feature vector from fused evidence
- ScoringEngine: Gated, explainable 0-100 score
- AMLScreeningEngine: Sanctions and PEP screening
- ScoringPipeline: End-to-end orchestration

Usage:
    from sovereignscore.engine import ScoringPipeline, StaticSanctionsSource

    pipeline = ScoringPipeline(policy, keys=keys, sanctions_source=source)
    result = await pipeline.score(request)
"""
from __future__ import annotations

from .aml_screening import (
    AMLScreeningEngine,
    FileSanctionsSource,
    SanctionsSource,
    StaticSanctionsSource,
    load_sanctions_file,
)
from .attestation_validator import (
    AttestationValidator,
    FieldBoost,
    KeyLookup,
)
from .document_extractor import (
    DEFAULT_RULE_SETS,
    DocumentExtractor,
    ExtractionRule,
    RuleSet,
    mrz_check_digit,
)
from .features import FeatureEngineer
from .fusion import DataFusionLedger, sources_from_extraction
from .normalizers import normalize_value, parse_amount, parse_date, values_agree
from .pipeline import ScoringPipeline
from .regional_context import (
    RegionalContextProvider,
    RegionalFeed,
    StaticRegionalFeed,
    build_snapshot,
    compute_risk_adjustment,
    load_indicator_seed,
    validate_income,
)
from .scoring import ScoringEngine
from .stores import (
    AttestationStore,
    AuditLog,
    EvidenceStore,
    InMemoryAttestationStore,
    InMemoryAuditLog,
    InMemoryEvidenceStore,
)

__all__ = [
    # Extraction
    "DocumentExtractor",
    "ExtractionRule",
    "RuleSet",
    "DEFAULT_RULE_SETS",
    "mrz_check_digit",
    # Normalization
    "normalize_value",
    "parse_amount",
    "parse_date",
    "values_agree",
    # Attestations
    "AttestationValidator",
    "FieldBoost",
    "KeyLookup",
    # Fusion
    "DataFusionLedger",
    "sources_from_extraction",
    # Regional
    "RegionalContextProvider",
    "RegionalFeed",
    "StaticRegionalFeed",
    "build_snapshot",
    "compute_risk_adjustment",
    "load_indicator_seed",
    "validate_income",
    # Scoring
    "FeatureEngineer",
    "ScoringEngine",
    # Screening
    "AMLScreeningEngine",
    "SanctionsSource",
    "StaticSanctionsSource",
    "FileSanctionsSource",
    "load_sanctions_file",
    # Stores
    "EvidenceStore",
    "AttestationStore",
    "AuditLog",
    "InMemoryEvidenceStore",
    "InMemoryAttestationStore",
    "InMemoryAuditLog",
    # Pipeline
    "ScoringPipeline",
]
