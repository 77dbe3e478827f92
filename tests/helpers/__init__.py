"""
Test helpers for SovereignScore.

Factories for evidence, identities, attestations and list snapshots,
plus collaborator doubles (failing / slow feeds and sanctions sources).
"""
from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Sequence

from sovereignscore.engine import AttestationValidator
from sovereignscore.exceptions import RegionalFetchError, SanctionsFetchError
from sovereignscore.models import (
    Attestation,
    AttestationType,
    DataSourceInfo,
    EconomicContext,
    ListSource,
    PartnerType,
    RegionalIndicator,
    SanctionEntry,
    SanctionsListSnapshot,
    SourceType,
    SubjectIdentity,
    VerificationStatus,
)

AS_OF = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

SUBJECT_ID = "sub-001"

PARTNER_KEYS: dict[str, bytes] = {
    "mfi-001": b"mfi-001-secret",
    "emp-001": b"emp-001-secret",
    "coop-001": b"coop-001-secret",
}

# Single-field MFI income attestation with a 15 point boost
MFI_INCOME_TYPE = AttestationType(
    id="mfi_income",
    name="MFI income confirmation",
    description="Microfinance institution confirms monthly income",
    required_fields=("monthly_income",),
    confidence_boost=15,
    validity_days=90,
)


# =============================================================================
# Evidence
# =============================================================================

def make_entry(
    field: str,
    raw_value: Any,
    source_id: Optional[str] = None,
    source_type: SourceType = SourceType.USER_INPUT,
    status: VerificationStatus = VerificationStatus.DECLARED,
    confidence: float = 50.0,
    verified_at: Optional[datetime] = None,
    source_name: str = "Applicant declaration",
) -> DataSourceInfo:
    """Create a DataSourceInfo with sensible defaults."""
    return DataSourceInfo(
        source_id=source_id or f"{source_type.value}:{field}",
        source_name=source_name,
        source_type=source_type,
        status=status,
        confidence=confidence,
        field=field,
        raw_value=raw_value,
        verified_at=verified_at,
    )


def make_profile(verified_at: datetime = AS_OF - timedelta(days=10)) -> list[DataSourceInfo]:
    """A small, consistent evidence set for a salaried applicant."""
    return [
        make_entry("full_name", "Awa Koné", "cni:full_name", SourceType.OCR,
                   VerificationStatus.VERIFIED, 90, verified_at),
        make_entry("birth_date", "15/03/1990", "cni:birth_date", SourceType.OCR,
                   VerificationStatus.VERIFIED, 88, verified_at),
        make_entry("monthly_income", "350 000 FCFA", "api:monthly_income", SourceType.API,
                   VerificationStatus.VERIFIED, 92, verified_at),
        make_entry("monthly_expenses", "120 000 FCFA", "decl:monthly_expenses"),
        make_entry("employment_since", "2019-01-01", "decl:employment_since"),
        make_entry("momo_transactions_30d", 60, "momo:tx", SourceType.OCR,
                   VerificationStatus.PARTIALLY_VERIFIED, 75, verified_at),
        make_entry("repayment_rate", "95%", "mfi:repayment", SourceType.PARTNER_ATTESTATION,
                   VerificationStatus.VERIFIED, 85, verified_at),
    ]


# =============================================================================
# Identity & Lists
# =============================================================================

def make_identity(
    full_name: str = "Awa Koné",
    date_of_birth: Optional[str] = "1990-03-15",
    national_id: Optional[str] = None,
    occupation: Optional[str] = None,
    employer: Optional[str] = None,
) -> SubjectIdentity:
    return SubjectIdentity(
        full_name=full_name,
        date_of_birth=date_of_birth,
        national_id=national_id,
        occupation=occupation,
        employer=employer,
    )


def make_sanction(
    entry_id: str,
    name: str,
    list_source: ListSource = ListSource.UN_CONSOLIDATED,
    aliases: Sequence[str] = (),
    national_id: Optional[str] = None,
    date_of_birth: Optional[str] = None,
) -> SanctionEntry:
    return SanctionEntry(
        entry_id=entry_id,
        name=name,
        list_source=list_source,
        aliases=tuple(aliases),
        national_id=national_id,
        date_of_birth=date_of_birth,
    )


def make_snapshot(*entries: SanctionEntry, version: str = "2024-05-30") -> SanctionsListSnapshot:
    return SanctionsListSnapshot(version=version, entries=tuple(entries))


def default_snapshot() -> SanctionsListSnapshot:
    """List with one sanctioned individual and one PEP listing."""
    return make_snapshot(
        make_sanction("UN-QDi.001", "Mamadou Diallo", aliases=("Mamadou Dialo",),
                      date_of_birth="1975-04-12"),
        make_sanction("PEP-CI-042", "Koffi Yao Bernard", ListSource.PEP),
    )


# =============================================================================
# Attestations
# =============================================================================

def make_validator(
    keys: Optional[dict[str, bytes]] = None,
    extra_types: Sequence[AttestationType] = (MFI_INCOME_TYPE,),
) -> AttestationValidator:
    """Validator over the default catalogue plus extra_types."""
    validator = AttestationValidator(PARTNER_KEYS if keys is None else keys)
    for att_type in extra_types:
        validator.attestation_types[att_type.id] = att_type
    return validator


def make_attestation(
    validator: AttestationValidator,
    attested_data: dict[str, Any],
    attestation_type: str = "mfi_income",
    created_at: datetime = AS_OF - timedelta(days=5),
    partner_id: str = "mfi-001",
    partner_type: PartnerType = PartnerType.MFI,
    beneficiary_id: str = SUBJECT_ID,
    attestation_id: Optional[str] = None,
) -> Attestation:
    """Signed attestation issued through the validator."""
    return validator.issue(
        attestation_type=attestation_type,
        partner_id=partner_id,
        partner_name=f"Partner {partner_id}",
        partner_type=partner_type,
        beneficiary_id=beneficiary_id,
        beneficiary_name="Awa Koné",
        attested_data=attested_data,
        created_at=created_at,
        attestation_id=attestation_id,
    )


# =============================================================================
# Regional
# =============================================================================

def make_context(risk_adjustment: float = 0.0, gdp_per_capita: float = 2579.0) -> EconomicContext:
    """Côte d'Ivoire-like context with a chosen adjustment."""
    return EconomicContext(
        country="CI",
        gdp_per_capita=gdp_per_capita,
        inflation_rate=4.2,
        unemployment_rate=3.0,
        poverty_rate=39.5,
        financial_inclusion_rate=51.0,
        mobile_money_penetration=48.0,
        banking_penetration=22.0,
        risk_adjustment=risk_adjustment,
        data_year=2023,
        snapshot_version="CI-2023-test",
    )


def make_indicators(country: str = "CI", year: int = 2023, **values: float) -> tuple[RegionalIndicator, ...]:
    return tuple(
        RegionalIndicator(country=country, indicator=name, value=value, year=year, source="test")
        for name, value in values.items()
    )


# =============================================================================
# Collaborator Doubles
# =============================================================================

class FailingRegionalFeed:
    """Regional feed that always fails."""

    def __init__(self) -> None:
        self.calls = 0

    async def fetch(self, country: str, year: int):
        self.calls += 1
        raise RegionalFetchError(message="feed down", details={"reason": "unavailable"})


class SlowRegionalFeed:
    """Regional feed that never answers within any sane timeout."""

    async def fetch(self, country: str, year: int):
        await asyncio.sleep(30)
        return ()


class CountingRegionalFeed:
    """Regional feed serving fixed indicators and counting calls."""

    def __init__(self, indicators: Sequence[RegionalIndicator]):
        self.indicators = tuple(indicators)
        self.calls = 0

    async def fetch(self, country: str, year: int):
        self.calls += 1
        return self.indicators


class FailingSanctionsSource:
    """Sanctions source that always fails."""

    async def fetch(self) -> SanctionsListSnapshot:
        raise SanctionsFetchError(message="list endpoint unreachable")


class SlowSanctionsSource:
    """Sanctions source that never answers within any sane timeout."""

    async def fetch(self) -> SanctionsListSnapshot:
        await asyncio.sleep(30)
        return make_snapshot()
