"""
SovereignScore domain models.
"""
from .attestation import (
    DEFAULT_ATTESTATION_TYPES,
    DEFAULT_PARTNER_TRUST,
    Attestation,
    AttestationCheck,
    AttestationType,
    PartnerTrustLevel,
)
from .enums import (
    AMLDecision,
    DataQuality,
    DocumentType,
    FieldKind,
    ListSource,
    MatchType,
    PartnerType,
    ScoreStatus,
    SourceType,
    VerificationStatus,
)
from .evidence import (
    DataSourceInfo,
    DocumentExtractionResult,
    ExtractedField,
    VerifiedDataSummary,
    determine_verification_status,
)
from .fields import (
    DEFAULT_FIELD_REGISTRY,
    DEFAULT_FIELD_SPECS,
    FieldRegistry,
    FieldSpec,
    FieldValue,
)
from .policy import (
    DEFAULT_BANDS,
    DEFAULT_FEATURE_WEIGHTS,
    FEATURE_NAMES,
    AMLConfig,
    FeatureConfig,
    FusionConfig,
    RegionalConfig,
    ScoringConfig,
    ScoringPolicy,
)
from .regional import (
    INDICATOR_NAMES,
    ContextResolution,
    EconomicContext,
    IncomePlausibility,
    RegionalIndicator,
    RegionalSnapshot,
)
from .request import DocumentInput, ScoreRequest
from .score import (
    FeatureContribution,
    FeatureVector,
    ScoreExplanation,
    ScoreResult,
)
from .screening import (
    AMLAuditRecord,
    PEPCategory,
    SanctionEntry,
    SanctionsListSnapshot,
    ScreeningMatch,
    ScreeningResult,
    SubjectIdentity,
)

__all__ = [
    # Enums
    "AMLDecision",
    "DataQuality",
    "DocumentType",
    "FieldKind",
    "ListSource",
    "MatchType",
    "PartnerType",
    "ScoreStatus",
    "SourceType",
    "VerificationStatus",
    # Fields
    "DEFAULT_FIELD_REGISTRY",
    "DEFAULT_FIELD_SPECS",
    "FieldRegistry",
    "FieldSpec",
    "FieldValue",
    # Evidence
    "DataSourceInfo",
    "DocumentExtractionResult",
    "ExtractedField",
    "VerifiedDataSummary",
    "determine_verification_status",
    # Attestations
    "DEFAULT_ATTESTATION_TYPES",
    "DEFAULT_PARTNER_TRUST",
    "Attestation",
    "AttestationCheck",
    "AttestationType",
    "PartnerTrustLevel",
    # Regional
    "INDICATOR_NAMES",
    "ContextResolution",
    "EconomicContext",
    "IncomePlausibility",
    "RegionalIndicator",
    "RegionalSnapshot",
    # Screening
    "AMLAuditRecord",
    "PEPCategory",
    "SanctionEntry",
    "SanctionsListSnapshot",
    "ScreeningMatch",
    "ScreeningResult",
    "SubjectIdentity",
    # Policy
    "DEFAULT_BANDS",
    "DEFAULT_FEATURE_WEIGHTS",
    "FEATURE_NAMES",
    "AMLConfig",
    "FeatureConfig",
    "FusionConfig",
    "RegionalConfig",
    "ScoringConfig",
    "ScoringPolicy",
    # Requests
    "DocumentInput",
    "ScoreRequest",
    # Score
    "FeatureContribution",
    "FeatureVector",
    "ScoreExplanation",
    "ScoreResult",
]
