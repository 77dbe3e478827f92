"""
SovereignScore Attestation Models

Partner-issued attestations vouching for a beneficiary's data.

Key components:
- AttestationType: Static catalogue entry (required fields, boost, validity)
- PartnerTrustLevel: Trust reference data per partner type
- Attestation: A signed claim; changes only through one-way revocation
- AttestationCheck: Outcome of validating an attestation at an as_of time
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Optional

from ..exceptions import AttestationRevokedError
from .enums import PartnerType


# =============================================================================
# Reference Data
# =============================================================================

@dataclass(frozen=True)
class AttestationType:
    """
    An attestation type from the static catalogue.

    Attributes:
        id: Type identifier (e.g., "income_verification")
        name: Display name
        description: What the partner vouches for
        required_fields: Registry fields the attestation must carry
        confidence_boost: Confidence points added to covered entries
        validity_days: Lifetime from creation
    """
    id: str
    name: str
    description: str
    required_fields: tuple[str, ...]
    confidence_boost: float
    validity_days: int


@dataclass(frozen=True)
class PartnerTrustLevel:
    """
    Trust reference for a partner type.

    Attributes:
        partner_type: Institution type
        base_trust: Confidence given to a field known only from this partner
        attestation_weight: Relative weight of this partner's attestations
    """
    partner_type: PartnerType
    base_trust: float
    attestation_weight: float


DEFAULT_ATTESTATION_TYPES: dict[str, AttestationType] = {
    t.id: t for t in (
        AttestationType(
            id="tontine_membership",
            name="Tontine membership",
            description="Regular member of a tontine with contribution discipline",
            required_fields=("tontine_name", "membership_since", "contribution_amount", "discipline_rate"),
            confidence_boost=15,
            validity_days=90,
        ),
        AttestationType(
            id="cooperative_membership",
            name="Cooperative membership",
            description="Member of an agricultural or artisan cooperative",
            required_fields=("cooperative_name", "membership_number", "member_since"),
            confidence_boost=12,
            validity_days=180,
        ),
        AttestationType(
            id="income_verification",
            name="Income verification",
            description="Employer confirms employment and income",
            required_fields=("employer_name", "monthly_income", "employment_type", "employment_since"),
            confidence_boost=25,
            validity_days=60,
        ),
        AttestationType(
            id="business_activity",
            name="Business activity",
            description="Partner confirms an ongoing commercial activity",
            required_fields=("business_name", "activity_type", "monthly_revenue_estimate", "relationship_duration"),
            confidence_boost=18,
            validity_days=90,
        ),
        AttestationType(
            id="loan_history",
            name="Loan history",
            description="Microfinance institution reports repayment history",
            required_fields=("mfi_name", "loan_count", "total_borrowed", "repayment_rate", "last_loan_date"),
            confidence_boost=30,
            validity_days=180,
        ),
        AttestationType(
            id="savings_account",
            name="Savings account",
            description="Institution confirms a savings account and its balance",
            required_fields=("institution_name", "account_age_months", "average_balance"),
            confidence_boost=15,
            validity_days=60,
        ),
        AttestationType(
            id="address_verification",
            name="Address verification",
            description="Partner confirms the beneficiary's residence",
            required_fields=("address", "city", "residence_duration_months"),
            confidence_boost=10,
            validity_days=365,
        ),
    )
}

DEFAULT_PARTNER_TRUST: dict[PartnerType, PartnerTrustLevel] = {
    PartnerType.BANK: PartnerTrustLevel(PartnerType.BANK, 95, 1.2),
    PartnerType.MFI: PartnerTrustLevel(PartnerType.MFI, 85, 1.0),
    PartnerType.EMPLOYER: PartnerTrustLevel(PartnerType.EMPLOYER, 75, 0.9),
    PartnerType.COOPERATIVE: PartnerTrustLevel(PartnerType.COOPERATIVE, 70, 0.8),
    PartnerType.TONTINE_LEADER: PartnerTrustLevel(PartnerType.TONTINE_LEADER, 60, 0.7),
}


# =============================================================================
# Attestation
# =============================================================================

@dataclass(frozen=True)
class Attestation:
    """
    A signed partner attestation.

    Attributes:
        id: Unique identifier
        type: AttestationType id
        partner_id: Issuing partner
        partner_name: Issuing partner display name
        partner_type: Institution type of the partner
        beneficiary_id: Subject the attestation is about
        beneficiary_name: Subject display name
        attested_data: field -> raw value vouched for
        signature_hash: Hex keyed hash of the signing payload
        created_at: Issue time
        expires_at: End of validity (inclusive)
        is_valid: Issuer-side validity flag
        revoked_at: Revocation time, once revoked
        revocation_reason: Why it was revoked
    """
    id: str
    type: str
    partner_id: str
    partner_name: str
    partner_type: PartnerType
    beneficiary_id: str
    beneficiary_name: str
    attested_data: dict[str, Any]
    signature_hash: str
    created_at: datetime
    expires_at: datetime
    is_valid: bool = True
    revoked_at: Optional[datetime] = None
    revocation_reason: Optional[str] = None

    @property
    def is_revoked(self) -> bool:
        return self.revoked_at is not None

    def signing_payload(self) -> dict[str, Any]:
        """The exact content covered by signature_hash."""
        return {
            "attested_data": self.attested_data,
            "beneficiary_id": self.beneficiary_id,
            "partner_id": self.partner_id,
        }

    def revoke(self, at: datetime, reason: str) -> "Attestation":
        """
        Revoked copy of this attestation. Revocation is terminal.

        Raises:
            AttestationRevokedError: If already revoked
        """
        if self.is_revoked:
            raise AttestationRevokedError(
                message=f"Attestation {self.id} was already revoked",
                attestation_id=self.id,
                details={"revoked_at": self.revoked_at.isoformat()},
            )
        return replace(self, revoked_at=at, revocation_reason=reason)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "partner_id": self.partner_id,
            "partner_name": self.partner_name,
            "partner_type": self.partner_type.value,
            "beneficiary_id": self.beneficiary_id,
            "beneficiary_name": self.beneficiary_name,
            "attested_data": self.attested_data,
            "signature_hash": self.signature_hash,
            "created_at": self.created_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
            "is_valid": self.is_valid,
            "revoked_at": self.revoked_at.isoformat() if self.revoked_at else None,
            "revocation_reason": self.revocation_reason,
        }


@dataclass(frozen=True)
class AttestationCheck:
    """
    Result of validating one attestation.

    Attributes:
        attestation_id: Attestation checked
        valid: Usable for boosts at the checked as_of
        reasons: Why it is not valid (empty when valid)
        covered_fields: Required fields present in attested_data
        missing_fields: Required fields absent from attested_data
        boost: Confidence boost granted (0 when invalid)
    """
    attestation_id: str
    valid: bool
    reasons: tuple[str, ...] = ()
    covered_fields: tuple[str, ...] = ()
    missing_fields: tuple[str, ...] = ()
    boost: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "attestation_id": self.attestation_id,
            "valid": self.valid,
            "reasons": list(self.reasons),
            "covered_fields": list(self.covered_fields),
            "missing_fields": list(self.missing_fields),
            "boost": self.boost,
        }
