"""
SovereignScore Policy Pack Loader

Loads and validates policy packs from YAML or JSON files.

Converts Pydantic schema models to the frozen runtime policy
(ScoringPolicy) and records the pack's content hash on it.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import ValidationError

from ..canon import content_hash
from ..config import DEFAULT_PACK_PATH
from ..exceptions import PolicyLoadError, PolicyValidationError, PolicyVersionMismatch
from ..models import (
    DEFAULT_ATTESTATION_TYPES,
    DEFAULT_FIELD_REGISTRY,
    DEFAULT_PARTNER_TRUST,
    AMLConfig,
    AttestationType,
    FeatureConfig,
    FieldKind,
    FieldRegistry,
    FieldSpec,
    FusionConfig,
    PartnerTrustLevel,
    PartnerType,
    PEPCategory,
    RegionalConfig,
    ScoringConfig,
    ScoringPolicy,
)
from .schema import (
    SCHEMA_VERSION,
    AMLSchema,
    AttestationTypeSchema,
    FeaturesSchema,
    FieldSchema,
    PartnerSchema,
    PolicyPackSchema,
    RegionalSchema,
    ScoringSchema,
    check_schema_version,
    validate_policy_pack,
)


# =============================================================================
# Reference Integrity Validation
# =============================================================================

def validate_reference_integrity(schema: PolicyPackSchema, registry: FieldRegistry, path: str = "") -> None:
    """
    Validate internal references are consistent.

    Catches:
    - Duplicate field names, attestation type ids or partner types
    - Attestation types requiring undeclared fields

    Raises:
        ValueError: If reference integrity errors are found
    """
    errors = []

    seen_fields: set[str] = set()
    for f in schema.fields:
        if f.name in seen_fields:
            errors.append(f"Duplicate field: '{f.name}'")
        seen_fields.add(f.name)

    seen_types: set[str] = set()
    for att_type in schema.attestation_types:
        if att_type.id in seen_types:
            errors.append(f"Duplicate attestation type: '{att_type.id}'")
        seen_types.add(att_type.id)
        for name in att_type.required_fields:
            if name not in registry:
                errors.append(
                    f"Attestation type '{att_type.id}' requires undeclared field '{name}'"
                )

    seen_partners: set[str] = set()
    for partner in schema.partners:
        if partner.partner_type in seen_partners:
            errors.append(f"Duplicate partner type: '{partner.partner_type}'")
        seen_partners.add(partner.partner_type)

    if errors:
        path_str = f" in {path}" if path else ""
        raise ValueError(
            f"Reference integrity errors{path_str}:\n" +
            "\n".join(f"  - {e}" for e in errors)
        )


# =============================================================================
# Schema to Model Converters
# =============================================================================

def _convert_field(schema: FieldSchema) -> FieldSpec:
    """Convert FieldSchema to FieldSpec."""
    return FieldSpec(
        name=schema.name,
        kind=FieldKind(schema.kind),
        importance=schema.importance,
        tolerance=schema.tolerance,
    )


def _convert_attestation_type(schema: AttestationTypeSchema) -> AttestationType:
    """Convert AttestationTypeSchema to AttestationType."""
    return AttestationType(
        id=schema.id,
        name=schema.name,
        description=schema.description,
        required_fields=tuple(schema.required_fields),
        confidence_boost=schema.confidence_boost,
        validity_days=schema.validity_days,
    )


def _convert_partner(schema: PartnerSchema) -> PartnerTrustLevel:
    """Convert PartnerSchema to PartnerTrustLevel."""
    return PartnerTrustLevel(
        partner_type=PartnerType(schema.partner_type),
        base_trust=schema.base_trust,
        attestation_weight=schema.attestation_weight,
    )


def _convert_regional(schema: RegionalSchema) -> RegionalConfig:
    """Convert RegionalSchema to RegionalConfig."""
    defaults = RegionalConfig()
    return RegionalConfig(
        ttl_seconds=schema.ttl_seconds,
        fetch_timeout_seconds=schema.fetch_timeout_seconds,
        max_adjustment=schema.max_adjustment,
        data_year=schema.data_year,
        baseline=dict(schema.baseline) if schema.baseline is not None else defaults.baseline,
        weights=dict(schema.weights) if schema.weights is not None else defaults.weights,
    )


def _convert_features(schema: FeaturesSchema) -> FeatureConfig:
    """Convert FeaturesSchema to FeatureConfig."""
    defaults = FeatureConfig()
    return FeatureConfig(
        missing_defaults=(
            dict(schema.missing_defaults) if schema.missing_defaults is not None
            else defaults.missing_defaults
        ),
        momo_daily_low=schema.momo_daily_low,
        momo_daily_high=schema.momo_daily_high,
        recency_horizon_days=schema.recency_horizon_days,
        evidence_age_horizon_days=schema.evidence_age_horizon_days,
    )


def _convert_scoring(schema: ScoringSchema) -> ScoringConfig:
    """Convert ScoringSchema to ScoringConfig."""
    defaults = ScoringConfig()
    return ScoringConfig(
        model_version=schema.model_version,
        weights=dict(schema.weights) if schema.weights is not None else defaults.weights,
        bands=(
            tuple((band.name, band.min_score) for band in schema.bands)
            if schema.bands is not None else defaults.bands
        ),
        baseline=schema.baseline,
    )


def _convert_aml(schema: AMLSchema) -> AMLConfig:
    """Convert AMLSchema to AMLConfig."""
    defaults = AMLConfig()
    return AMLConfig(
        low_threshold=schema.low_threshold,
        high_threshold=schema.high_threshold,
        prefix_weight=schema.prefix_weight,
        titles=tuple(schema.titles) if schema.titles is not None else defaults.titles,
        particles=tuple(schema.particles) if schema.particles is not None else defaults.particles,
        name_variants=(
            dict(schema.name_variants) if schema.name_variants is not None
            else defaults.name_variants
        ),
        pep_categories=(
            tuple(
                PEPCategory(c.code, c.label, tuple(c.keywords), c.risk_weight)
                for c in schema.pep_categories
            )
            if schema.pep_categories is not None else defaults.pep_categories
        ),
        pep_occupation_review=schema.pep_occupation_review,
        fetch_timeout_seconds=schema.fetch_timeout_seconds,
    )


def _convert_registry(schema: PolicyPackSchema) -> FieldRegistry:
    if not schema.fields:
        return DEFAULT_FIELD_REGISTRY
    return FieldRegistry(_convert_field(f) for f in schema.fields)


def _convert_policy_pack(schema: PolicyPackSchema, registry: FieldRegistry, policy_hash: str) -> ScoringPolicy:
    """Convert PolicyPackSchema to ScoringPolicy."""
    attestation_types = (
        {t.id: _convert_attestation_type(t) for t in schema.attestation_types}
        if schema.attestation_types else dict(DEFAULT_ATTESTATION_TYPES)
    )
    partner_trust = (
        {PartnerType(p.partner_type): _convert_partner(p) for p in schema.partners}
        if schema.partners else dict(DEFAULT_PARTNER_TRUST)
    )
    return ScoringPolicy(
        id=schema.id,
        version=schema.version,
        fields=registry,
        fusion=FusionConfig(**schema.fusion.model_dump()),
        attestation_types=attestation_types,
        partner_trust=partner_trust,
        regional=_convert_regional(schema.regional),
        features=_convert_features(schema.features),
        scoring=_convert_scoring(schema.scoring),
        aml=_convert_aml(schema.aml),
        policy_hash=policy_hash,
    )


# =============================================================================
# Policy Pack Loader
# =============================================================================

class PolicyPackLoader:
    """
    Loads policy packs from YAML or JSON files.

    Usage:
        loader = PolicyPackLoader()
        policy = loader.load("path/to/pack.yaml")
    """

    def __init__(self, strict_version: bool = True):
        """
        Initialize the loader.

        Args:
            strict_version: If True, reject packs with incompatible schema versions
        """
        self.strict_version = strict_version
        self._policies: dict[str, ScoringPolicy] = {}

    def load(self, path: Union[str, Path]) -> ScoringPolicy:
        """
        Load a policy pack from a file.

        Args:
            path: Path to YAML or JSON file

        Returns:
            Loaded ScoringPolicy

        Raises:
            PolicyLoadError: If file cannot be read
            PolicyValidationError: If validation fails
            PolicyVersionMismatch: If schema version incompatible
        """
        path = Path(path)

        try:
            data = self._load_file(path)
        except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
            raise PolicyLoadError(
                message=f"Failed to load policy pack: {e}",
                details={"path": str(path), "error": str(e)},
            ) from e
        if not isinstance(data, dict):
            raise PolicyLoadError(
                message="Policy pack must be a mapping at the top level",
                details={"path": str(path)},
            )

        return self.load_data(data, str(path))

    def load_data(self, data: dict[str, Any], source: str = "") -> ScoringPolicy:
        """
        Validate and convert an already parsed pack.

        Raises:
            PolicyValidationError: If validation fails
            PolicyVersionMismatch: If schema version incompatible
        """
        if self.strict_version and not check_schema_version(data):
            pack_version = data.get("schema_version", "unknown")
            raise PolicyVersionMismatch(
                message=f"Schema version mismatch: pack has {pack_version}, expected {SCHEMA_VERSION}",
                details={
                    "pack_version": pack_version,
                    "expected_version": SCHEMA_VERSION,
                },
            )

        try:
            schema = validate_policy_pack(data)
        except ValidationError as e:
            raise PolicyValidationError(
                message=f"Policy pack validation failed: {e.error_count()} errors",
                details={"errors": e.errors(), "path": source},
            ) from e

        registry = _convert_registry(schema)
        try:
            validate_reference_integrity(schema, registry, source)
            policy = _convert_policy_pack(schema, registry, content_hash(data))
        except ValueError as e:
            raise PolicyValidationError(
                message="Reference integrity validation failed",
                details={"errors": str(e), "path": source},
            ) from e

        self._policies[policy.id] = policy
        return policy

    def _load_file(self, path: Path) -> Any:
        """Load data from YAML or JSON file."""
        with open(path, "r", encoding="utf-8") as f:
            if path.suffix.lower() in {".yaml", ".yml"}:
                return yaml.safe_load(f)
            elif path.suffix.lower() == ".json":
                return json.load(f)
            else:
                content = f.read()
                try:
                    return yaml.safe_load(content)
                except yaml.YAMLError:
                    return json.loads(content)

    def get_policy(self, policy_id: str) -> Optional[ScoringPolicy]:
        """Get a cached policy by ID."""
        return self._policies.get(policy_id)


def load_policy(path: Union[str, Path, None] = None) -> ScoringPolicy:
    """Load a policy pack (the bundled default when path is None)."""
    return PolicyPackLoader().load(path or DEFAULT_PACK_PATH)
