"""
SovereignScore Policy Pack Schemas

Pydantic models for validating policy pack YAML/JSON files.

A policy pack carries every tunable of the pipeline: the field registry,
data-quality cutoffs, the attestation catalogue, partner trust levels,
regional baseline and weights, feature defaults, scoring weights and
bands, and the AML screening policy. Omitted sections fall back to the
built-in defaults, which equal the bundled `uemoa_default.yaml`.

Schema versioning:
- schema_version field tracks breaking changes
- Loaders should check version compatibility
"""
from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# =============================================================================
# Schema Version
# =============================================================================

SCHEMA_VERSION = "1.0.0"


# =============================================================================
# Enums as Literals (for YAML validation)
# =============================================================================

FieldKindValue = Literal[
    "text", "name", "identifier", "country", "date",
    "phone", "money", "number", "ratio", "boolean"
]

PartnerTypeValue = Literal["mfi", "cooperative", "tontine_leader", "employer", "bank"]


# =============================================================================
# Section Schemas
# =============================================================================

class FieldSchema(BaseModel):
    """Schema for a field registry entry."""
    name: str = Field(..., min_length=1, description="Field name (e.g., 'monthly_income')")
    kind: FieldKindValue = Field(..., description="Value kind selecting the normalizer")
    importance: float = Field(1.0, gt=0, description="Weight in the overall confidence")
    tolerance: float = Field(0.0, ge=0, description="Allowed disagreement before conflict")


class FusionSchema(BaseModel):
    """Schema for data fusion policy."""
    quality_high: float = Field(85.0, ge=0, le=100)
    quality_medium: float = Field(60.0, ge=0, le=100)
    quality_low: float = Field(30.0, ge=0, le=100)
    min_verification_rate: float = Field(30.0, ge=0, le=100)
    min_confidence: float = Field(60.0, ge=0, le=100)

    @model_validator(mode="after")
    def validate_ordering(self) -> "FusionSchema":
        if not self.quality_low <= self.quality_medium <= self.quality_high:
            raise ValueError("Data quality thresholds must satisfy low <= medium <= high")
        return self


class AttestationTypeSchema(BaseModel):
    """Schema for an attestation catalogue entry."""
    id: str = Field(..., min_length=1)
    name: str
    description: str = ""
    required_fields: list[str] = Field(..., min_length=1)
    confidence_boost: float = Field(..., ge=0, le=100)
    validity_days: int = Field(..., gt=0)


class PartnerSchema(BaseModel):
    """Schema for a partner trust level."""
    partner_type: PartnerTypeValue
    base_trust: float = Field(..., ge=0, le=100)
    attestation_weight: float = Field(1.0, gt=0)


class RegionalSchema(BaseModel):
    """Schema for regional context policy."""
    ttl_seconds: int = Field(30 * 24 * 3600, gt=0)
    fetch_timeout_seconds: float = Field(5.0, gt=0)
    max_adjustment: float = Field(10.0, gt=0, le=10)
    data_year: int = Field(2023, ge=1990)
    baseline: Optional[dict[str, float]] = None
    weights: Optional[dict[str, float]] = None


class FeaturesSchema(BaseModel):
    """Schema for feature engineering policy."""
    missing_defaults: Optional[dict[str, float]] = None
    momo_daily_low: float = Field(0.5, gt=0)
    momo_daily_high: float = Field(5.0, gt=0)
    recency_horizon_days: int = Field(365, gt=0)
    evidence_age_horizon_days: int = Field(730, gt=0)


class BandSchema(BaseModel):
    """Schema for a score band cutoff."""
    name: str = Field(..., min_length=1)
    min_score: float = Field(..., ge=0, le=100)


class ScoringSchema(BaseModel):
    """Schema for scoring model policy."""
    model_config = ConfigDict(protected_namespaces=())

    model_version: str = "sovereign-linear-1"
    weights: Optional[dict[str, float]] = None
    bands: Optional[list[BandSchema]] = None
    baseline: float = Field(50.0, ge=0, le=100)

    @field_validator("weights")
    @classmethod
    def validate_weights(cls, v: Optional[dict[str, float]]) -> Optional[dict[str, float]]:
        if v is not None and any(w < 0 for w in v.values()):
            raise ValueError("Feature weights must be non-negative")
        return v


class PEPCategorySchema(BaseModel):
    """Schema for a PEP occupation category."""
    code: str = Field(..., min_length=1)
    label: str
    keywords: list[str] = Field(..., min_length=1)
    risk_weight: int = Field(..., ge=0)


class AMLSchema(BaseModel):
    """Schema for screening policy."""
    low_threshold: float = Field(0.85, gt=0, le=1)
    high_threshold: float = Field(0.95, gt=0, le=1)
    prefix_weight: float = Field(0.1, ge=0, le=0.25)
    titles: Optional[list[str]] = None
    particles: Optional[list[str]] = None
    name_variants: Optional[dict[str, str]] = None
    pep_categories: Optional[list[PEPCategorySchema]] = None
    pep_occupation_review: bool = True
    fetch_timeout_seconds: float = Field(10.0, gt=0)

    @model_validator(mode="after")
    def validate_thresholds(self) -> "AMLSchema":
        if self.low_threshold >= self.high_threshold:
            raise ValueError("low_threshold must be below high_threshold")
        return self


# =============================================================================
# Top-Level Policy Pack Schema
# =============================================================================

class PolicyPackSchema(BaseModel):
    """
    Root schema for a policy pack file.

    Example:
        schema_version: "1.0.0"
        id: uemoa-default
        version: "1.0.0"
        name: UEMOA default scoring policy
        scoring:
          weights:
            income_stability: 0.18
            ...
    """
    schema_version: str = Field(SCHEMA_VERSION, description="Pack schema version")
    id: str = Field(..., min_length=1, description="Policy pack id")
    version: str = Field(..., description="Policy pack version")
    name: str = Field("", description="Display name")
    description: Optional[str] = None

    fields: list[FieldSchema] = Field(default_factory=list)
    fusion: FusionSchema = Field(default_factory=FusionSchema)
    attestation_types: list[AttestationTypeSchema] = Field(default_factory=list)
    partners: list[PartnerSchema] = Field(default_factory=list)
    regional: RegionalSchema = Field(default_factory=RegionalSchema)
    features: FeaturesSchema = Field(default_factory=FeaturesSchema)
    scoring: ScoringSchema = Field(default_factory=ScoringSchema)
    aml: AMLSchema = Field(default_factory=AMLSchema)


# =============================================================================
# Validation Helpers
# =============================================================================

def validate_policy_pack(data: dict[str, Any]) -> PolicyPackSchema:
    """
    Validate a policy pack dictionary.

    Raises:
        pydantic.ValidationError: If validation fails
    """
    return PolicyPackSchema.model_validate(data)


def check_schema_version(data: dict[str, Any]) -> bool:
    """True when the pack's major schema version matches ours."""
    pack_version = str(data.get("schema_version", SCHEMA_VERSION))
    return pack_version.split(".")[0] == SCHEMA_VERSION.split(".")[0]
