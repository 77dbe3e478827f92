"""
Pytest configuration and fixtures for SovereignScore tests.

Factories live in tests.helpers; this module wires them into fixtures.
"""
import pytest

from sovereignscore.engine import (
    AMLScreeningEngine,
    DataFusionLedger,
    DocumentExtractor,
    FeatureEngineer,
    RegionalContextProvider,
    ScoringEngine,
    ScoringPipeline,
    StaticRegionalFeed,
    StaticSanctionsSource,
)
from sovereignscore.models import ScoringPolicy

from tests.helpers import (
    AS_OF,
    MFI_INCOME_TYPE,
    PARTNER_KEYS,
    default_snapshot,
    make_context,
    make_identity,
    make_profile,
    make_validator,
)


@pytest.fixture
def as_of():
    return AS_OF


@pytest.fixture
def validator():
    """Attestation validator with the partner test keys."""
    return make_validator()


@pytest.fixture
def ledger(validator):
    return DataFusionLedger(validator=validator)


@pytest.fixture
def extractor():
    return DocumentExtractor()


@pytest.fixture
def feature_engineer():
    return FeatureEngineer()


@pytest.fixture
def scoring_engine():
    return ScoringEngine()


@pytest.fixture
def aml_engine():
    return AMLScreeningEngine()


@pytest.fixture
def sanctions_snapshot():
    return default_snapshot()


@pytest.fixture
def context():
    """Neutral-adjustment context."""
    return make_context()


@pytest.fixture
def identity():
    return make_identity()


@pytest.fixture
def profile():
    return make_profile()


@pytest.fixture
def regional_provider():
    """Provider over the bundled 2023 indicator seed."""
    return RegionalContextProvider(StaticRegionalFeed())


@pytest.fixture
def policy():
    """Built-in policy extended with the single-field MFI income type."""
    base = ScoringPolicy()
    return ScoringPolicy(
        attestation_types={**base.attestation_types, MFI_INCOME_TYPE.id: MFI_INCOME_TYPE},
    )


@pytest.fixture
def pipeline(policy, sanctions_snapshot):
    return ScoringPipeline(
        policy,
        keys=PARTNER_KEYS,
        regional_feed=StaticRegionalFeed(),
        sanctions_source=StaticSanctionsSource(sanctions_snapshot),
    )
