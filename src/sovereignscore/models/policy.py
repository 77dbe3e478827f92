"""
SovereignScore Runtime Policy

Frozen configuration objects consumed by the engines. Every threshold,
weight and cutoff the pipeline uses is a named attribute here, so a
result can always be traced to the exact policy that produced it.

Defaults equal the bundled `uemoa_default.yaml` policy pack.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .attestation import (
    DEFAULT_ATTESTATION_TYPES,
    DEFAULT_PARTNER_TRUST,
    AttestationType,
    PartnerTrustLevel,
)
from .enums import DataQuality, PartnerType
from .fields import DEFAULT_FIELD_REGISTRY, FieldRegistry
from .screening import PEPCategory


# =============================================================================
# Fusion
# =============================================================================

@dataclass(frozen=True)
class FusionConfig:
    """
    Data fusion policy.

    Attributes:
        quality_high: Minimum overall confidence for HIGH quality
        quality_medium: Minimum for MEDIUM
        quality_low: Minimum for LOW (below is INSUFFICIENT)
        min_verification_rate: Warn below this verification rate (%)
        min_confidence: Warn below this overall confidence
    """
    quality_high: float = 85.0
    quality_medium: float = 60.0
    quality_low: float = 30.0
    min_verification_rate: float = 30.0
    min_confidence: float = 60.0

    def __post_init__(self) -> None:
        if not 0 <= self.quality_low <= self.quality_medium <= self.quality_high <= 100:
            raise ValueError("Data quality thresholds must satisfy 0 <= low <= medium <= high <= 100")

    def bucket(self, confidence: float) -> DataQuality:
        if confidence >= self.quality_high:
            return DataQuality.HIGH
        if confidence >= self.quality_medium:
            return DataQuality.MEDIUM
        if confidence >= self.quality_low:
            return DataQuality.LOW
        return DataQuality.INSUFFICIENT


# =============================================================================
# Regional Context
# =============================================================================

# UEMOA 2023 averages
DEFAULT_REGIONAL_BASELINE: dict[str, float] = {
    "gdp_per_capita": 1224.0,
    "inflation_rate": 5.6,
    "unemployment_rate": 4.4,
    "poverty_rate": 45.5,
    "financial_inclusion_rate": 36.75,
    "mobile_money_penetration": 35.25,
    "banking_penetration": 13.9,
}

# Score points per unit of deviation from baseline
DEFAULT_REGIONAL_WEIGHTS: dict[str, float] = {
    "gdp_per_capita": 0.002,
    "inflation_rate": -0.5,
    "unemployment_rate": -0.3,
    "poverty_rate": -0.1,
    "financial_inclusion_rate": 0.05,
    "mobile_money_penetration": 0.02,
    "banking_penetration": 0.05,
}


@dataclass(frozen=True)
class RegionalConfig:
    """
    Regional context policy.

    Attributes:
        ttl_seconds: Age after which a cached snapshot is stale
        fetch_timeout_seconds: Feed timeout
        max_adjustment: risk_adjustment is clamped to [-max, +max]
        data_year: Default indicator year
        baseline: Regional baseline per indicator
        weights: Points per unit deviation per indicator
    """
    ttl_seconds: int = 30 * 24 * 3600
    fetch_timeout_seconds: float = 5.0
    max_adjustment: float = 10.0
    data_year: int = 2023
    baseline: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_REGIONAL_BASELINE))
    weights: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_REGIONAL_WEIGHTS))

    def __post_init__(self) -> None:
        if not 0 < self.max_adjustment <= 10:
            raise ValueError("max_adjustment must be in (0, 10]")
        unknown = set(self.weights) - set(self.baseline)
        if unknown:
            raise ValueError(f"Weighted indicators without a baseline: {sorted(unknown)}")


# =============================================================================
# Features
# =============================================================================

FEATURE_NAMES: tuple[str, ...] = (
    "income_stability",
    "income_plausibility",
    "expense_health",
    "mobile_money_activity",
    "credit_discipline",
    "attestation_coverage",
    "verification_rate",
    "data_confidence",
    "regional_risk",
    "verification_recency",
    "evidence_age",
)


@dataclass(frozen=True)
class FeatureConfig:
    """
    Feature engineering policy.

    Attributes:
        missing_defaults: Value used when a feature's inputs are absent
        momo_daily_low: Lower bound of the healthy mobile-money velocity (tx/day)
        momo_daily_high: Upper bound of the healthy velocity
        recency_horizon_days: Newest verification older than this scores 0
        evidence_age_horizon_days: Mean verification age at which evidence_age scores 0
    """
    missing_defaults: dict[str, float] = field(default_factory=lambda: {
        "income_stability": 0.0,
        "income_plausibility": 0.5,
        "expense_health": 0.5,
        "mobile_money_activity": 0.0,
        "credit_discipline": 0.5,
        "verification_recency": 0.0,
        "evidence_age": 0.0,
    })
    momo_daily_low: float = 0.5
    momo_daily_high: float = 5.0
    recency_horizon_days: int = 365
    evidence_age_horizon_days: int = 730

    def __post_init__(self) -> None:
        for name, value in self.missing_defaults.items():
            if name not in FEATURE_NAMES:
                raise ValueError(f"Unknown feature '{name}' in missing_defaults")
            if not 0 <= value <= 1:
                raise ValueError(f"Default for '{name}' must be in [0, 1]")
        if not 0 < self.momo_daily_low < self.momo_daily_high:
            raise ValueError("momo_daily_low must be positive and below momo_daily_high")

    def default(self, name: str) -> float:
        return self.missing_defaults.get(name, 0.0)


# =============================================================================
# Scoring
# =============================================================================

DEFAULT_FEATURE_WEIGHTS: dict[str, float] = {
    "income_stability": 0.18,
    "income_plausibility": 0.06,
    "expense_health": 0.08,
    "mobile_money_activity": 0.12,
    "credit_discipline": 0.14,
    "attestation_coverage": 0.10,
    "verification_rate": 0.10,
    "data_confidence": 0.10,
    "regional_risk": 0.04,
    "verification_recency": 0.05,
    "evidence_age": 0.03,
}

DEFAULT_BANDS: tuple[tuple[str, float], ...] = (
    ("excellent", 80.0),
    ("good", 60.0),
    ("fair", 40.0),
    ("poor", 0.0),
)


@dataclass(frozen=True)
class ScoringConfig:
    """
    Scoring model policy.

    Attributes:
        model_version: Identifier recorded on every result
        weights: Named, non-negative feature weights (normalized on use)
        bands: (band, minimum score) pairs, highest first, last minimum 0
        baseline: Score of an all-neutral (0.5) feature vector
    """
    model_version: str = "sovereign-linear-1"
    weights: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_FEATURE_WEIGHTS))
    bands: tuple[tuple[str, float], ...] = DEFAULT_BANDS
    baseline: float = 50.0

    def __post_init__(self) -> None:
        unknown = set(self.weights) - set(FEATURE_NAMES)
        if unknown:
            raise ValueError(f"Weights for unknown features: {sorted(unknown)}")
        if any(w < 0 for w in self.weights.values()) or sum(self.weights.values()) <= 0:
            raise ValueError("Feature weights must be non-negative with a positive sum")
        minimums = [minimum for _, minimum in self.bands]
        if not minimums or minimums != sorted(minimums, reverse=True) or minimums[-1] != 0:
            raise ValueError("Band cutoffs must be descending and end at 0")

    def normalized_weights(self) -> dict[str, float]:
        """Weights for every feature, scaled to sum to 1."""
        total = sum(self.weights.values())
        return {name: self.weights.get(name, 0.0) / total for name in FEATURE_NAMES}

    def band_for(self, score: float) -> str:
        for name, minimum in self.bands:
            if score >= minimum:
                return name
        return self.bands[-1][0]


# =============================================================================
# AML Screening
# =============================================================================

DEFAULT_TITLES: tuple[str, ...] = (
    "el hadj", "el hadji", "hadj", "hadji", "mr", "mme", "mlle", "dr",
    "pr", "prof", "maitre", "cheikh", "imam", "pasteur", "pere", "soeur", "frere",
)

DEFAULT_PARTICLES: tuple[str, ...] = (
    "de", "du", "des", "le", "la", "les", "el", "al", "ben", "ibn", "bint", "ould", "dit",
)

DEFAULT_NAME_VARIANTS: dict[str, str] = {
    "oumar": "omar",
    "mamadou": "mamadu",
    "amadou": "amadu",
    "abdoulaye": "abdulaye",
    "moussa": "musa",
    "issa": "isa",
    "seydou": "seidou",
    "ibrahima": "ibrahim",
    "ousmane": "usman",
    "saidou": "saidu",
    "diallo": "dialo",
    "traore": "traor",
    "coulibaly": "kulibali",
    "kone": "kon",
    "cisse": "cis",
    "toure": "tur",
    "camara": "kamara",
    "diarra": "diara",
    "keita": "keyta",
    "bah": "ba",
}

DEFAULT_PEP_CATEGORIES: tuple[PEPCategory, ...] = (
    PEPCategory("HEAD_STATE", "Head of state or government",
                ("president de la republique", "premier ministre", "chef de l etat", "vice president"), 50),
    PEPCategory("CENTRAL_BANK", "Central bank senior official",
                ("gouverneur", "bceao", "banque centrale"), 45),
    PEPCategory("MINISTER", "Minister",
                ("ministre", "secretaire d etat", "minister"), 40),
    PEPCategory("MILITARY", "Senior military officer",
                ("general", "colonel", "chef d etat major", "amiral"), 40),
    PEPCategory("PARLIAMENT", "Member of parliament",
                ("depute", "senateur", "assemblee nationale", "parlementaire"), 35),
    PEPCategory("JUDICIARY", "Senior judicial official",
                ("juge", "magistrat", "procureur", "cour supreme", "conseil constitutionnel"), 35),
    PEPCategory("SOE_DIRECTOR", "State-owned enterprise director",
                ("directeur general", "pdg", "administrateur general"), 35),
    PEPCategory("DIPLOMAT", "Ambassador or senior diplomat",
                ("ambassadeur", "consul", "charge d affaires"), 30),
    PEPCategory("PARTY_LEADER", "Political party leader",
                ("president du parti", "secretaire general du parti", "chef de parti"), 30),
    PEPCategory("INTL_ORG", "International organisation senior official",
                ("uemoa", "cedeao", "union africaine", "nations unies", "banque mondiale", "fmi"), 25),
)


@dataclass(frozen=True)
class AMLConfig:
    """
    Screening policy.

    Similarity space [0, 1] is partitioned as CLEAR [0, low),
    REVIEW [low, high) and HIT [high, 1].

    Attributes:
        low_threshold: Minimum similarity for a candidate (REVIEW)
        high_threshold: Minimum similarity for a HIT
        prefix_weight: Jaro-Winkler prefix scaling factor
        titles: Honorifics stripped before matching (normalized)
        particles: Name particles dropped before matching
        name_variants: Spelling folds applied to both sides
        pep_categories: Occupation keyword categories
        pep_occupation_review: Force REVIEW when a PEP occupation is detected
        audit_salt: Salt of the anonymized name hash
        fetch_timeout_seconds: Sanctions list fetch timeout
    """
    low_threshold: float = 0.85
    high_threshold: float = 0.95
    prefix_weight: float = 0.1
    titles: tuple[str, ...] = DEFAULT_TITLES
    particles: tuple[str, ...] = DEFAULT_PARTICLES
    name_variants: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_NAME_VARIANTS))
    pep_categories: tuple[PEPCategory, ...] = DEFAULT_PEP_CATEGORIES
    pep_occupation_review: bool = True
    audit_salt: str = ""
    fetch_timeout_seconds: float = 10.0

    def __post_init__(self) -> None:
        if not 0 < self.low_threshold < self.high_threshold <= 1:
            raise ValueError("AML thresholds must satisfy 0 < low < high <= 1")
        if not 0 <= self.prefix_weight <= 0.25:
            raise ValueError("prefix_weight must be in [0, 0.25]")


# =============================================================================
# Policy
# =============================================================================

@dataclass(frozen=True)
class ScoringPolicy:
    """
    Complete runtime policy.

    Attributes:
        id: Policy pack id
        version: Policy pack version
        fields: Field registry
        fusion: Fusion policy
        attestation_types: Attestation catalogue by id
        partner_trust: Trust levels by partner type
        regional: Regional context policy
        features: Feature policy
        scoring: Scoring model policy
        aml: Screening policy
        policy_hash: Hash of the source pack (None for built-in defaults)
    """
    id: str = "builtin-default"
    version: str = "1.0.0"
    fields: FieldRegistry = DEFAULT_FIELD_REGISTRY
    fusion: FusionConfig = field(default_factory=FusionConfig)
    attestation_types: dict[str, AttestationType] = field(
        default_factory=lambda: dict(DEFAULT_ATTESTATION_TYPES)
    )
    partner_trust: dict[PartnerType, PartnerTrustLevel] = field(
        default_factory=lambda: dict(DEFAULT_PARTNER_TRUST)
    )
    regional: RegionalConfig = field(default_factory=RegionalConfig)
    features: FeatureConfig = field(default_factory=FeatureConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    aml: AMLConfig = field(default_factory=AMLConfig)
    policy_hash: Optional[str] = None
