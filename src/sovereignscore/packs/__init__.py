"""
SovereignScore Policy Packs

Schema validation and loading for policy packs.

Policy packs are YAML or JSON files carrying every tunable of the
pipeline: field registry, fusion cutoffs, attestation catalogue, partner
trust, regional baseline, feature defaults, scoring weights and bands,
and the screening policy.

Usage:
    from sovereignscore.packs import load_policy, PolicyPackLoader

    # Bundled UEMOA default
    policy = load_policy()

    # Custom pack
    loader = PolicyPackLoader()
    policy = loader.load("path/to/pack.yaml")
"""
from __future__ import annotations

from .loader import (
    PolicyPackLoader,
    load_policy,
    validate_reference_integrity,
)
from .schema import (
    SCHEMA_VERSION,
    AMLSchema,
    AttestationTypeSchema,
    BandSchema,
    FeaturesSchema,
    FieldSchema,
    FusionSchema,
    PartnerSchema,
    PEPCategorySchema,
    PolicyPackSchema,
    RegionalSchema,
    ScoringSchema,
    check_schema_version,
    validate_policy_pack,
)

__all__ = [
    # Version
    "SCHEMA_VERSION",
    # Loader
    "PolicyPackLoader",
    "load_policy",
    # Validation
    "validate_policy_pack",
    "validate_reference_integrity",
    "check_schema_version",
    # Schemas
    "PolicyPackSchema",
    "FieldSchema",
    "FusionSchema",
    "AttestationTypeSchema",
    "PartnerSchema",
    "RegionalSchema",
    "FeaturesSchema",
    "BandSchema",
    "ScoringSchema",
    "PEPCategorySchema",
    "AMLSchema",
]
