"""
SovereignScore Attestation Validator

Verifies partner attestations and determines the confidence boosts they
grant.

Validity predicate at a given as_of:
- signature_hash equals HMAC-SHA256 over the canonical JSON of
  (attested_data, partner_id, beneficiary_id), keyed per partner
- revoked_at is unset
- created_at <= as_of <= expires_at

Keys belong to the caller: the validator only receives a
partner_id -> key lookup.

A signature mismatch is not fatal for a scoring pass: the attestation is
reported invalid and the fields it covers keep their non-boosted
confidence.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, Mapping, Optional, Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, hmac

from ..canon import canonical_json_bytes, content_hash_short
from ..exceptions import InputError, SignatureMismatchError, ValidationError
from ..models.attestation import (
    DEFAULT_ATTESTATION_TYPES,
    DEFAULT_PARTNER_TRUST,
    Attestation,
    AttestationCheck,
    AttestationType,
    PartnerTrustLevel,
)
from ..models.enums import PartnerType

logger = logging.getLogger(__name__)

KeyLookup = Callable[[str], Optional[bytes]]


@dataclass(frozen=True)
class FieldBoost:
    """
    Boost granted to one field by its strongest valid attestation.

    Attributes:
        field: Registry field covered
        attestation_id: Granting attestation
        partner_id: Issuing partner
        partner_type: Issuing partner type
        boost: Confidence points to add
        attested_value: Value vouched for (raw)
        attested_at: Attestation creation time
        base_trust: Partner trust, used when the field has no other evidence
    """
    field: str
    attestation_id: str
    partner_id: str
    partner_type: PartnerType
    boost: float
    attested_value: Any
    attested_at: datetime
    base_trust: float


def _present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


class AttestationValidator:
    """
    Validates attestations and computes eligible boosts.

    Usage:
        validator = AttestationValidator({"mfi-001": b"secret"})
        check = validator.check(attestation, as_of)
        boosts = validator.eligible_boosts(attestations, as_of, subject_id)
    """

    def __init__(
        self,
        keys: Union[Mapping[str, bytes], KeyLookup],
        attestation_types: Optional[Mapping[str, AttestationType]] = None,
        partner_trust: Optional[Mapping[PartnerType, PartnerTrustLevel]] = None,
    ):
        self._key_lookup: KeyLookup = keys.get if isinstance(keys, Mapping) else keys
        self.attestation_types = dict(attestation_types or DEFAULT_ATTESTATION_TYPES)
        self.partner_trust = dict(partner_trust or DEFAULT_PARTNER_TRUST)

    # =========================================================================
    # Signatures
    # =========================================================================

    def _key_for(self, partner_id: str) -> bytes:
        key = self._key_lookup(partner_id)
        if not key:
            raise SignatureMismatchError(
                message=f"No verification key for partner {partner_id}",
                details={"partner_id": partner_id},
            )
        return key

    def compute_signature(
        self,
        attested_data: Mapping[str, Any],
        partner_id: str,
        beneficiary_id: str,
    ) -> str:
        """Hex HMAC-SHA256 of the canonical signing payload."""
        payload = {
            "attested_data": dict(attested_data),
            "beneficiary_id": beneficiary_id,
            "partner_id": partner_id,
        }
        h = hmac.HMAC(self._key_for(partner_id), hashes.SHA256())
        h.update(canonical_json_bytes(payload))
        return h.finalize().hex()

    def verify_signature(self, attestation: Attestation) -> None:
        """
        Verify an attestation's signature.

        Raises:
            SignatureMismatchError: If the signature does not match or
                no key is known for the partner
        """
        h = hmac.HMAC(self._key_for(attestation.partner_id), hashes.SHA256())
        h.update(canonical_json_bytes(attestation.signing_payload()))
        try:
            h.verify(bytes.fromhex(attestation.signature_hash))
        except (InvalidSignature, ValueError) as e:
            raise SignatureMismatchError(
                message=f"Signature mismatch for attestation {attestation.id}",
                attestation_id=attestation.id,
                details={"partner_id": attestation.partner_id},
            ) from e

    # =========================================================================
    # Issue
    # =========================================================================

    def issue(
        self,
        attestation_type: str,
        partner_id: str,
        partner_name: str,
        partner_type: PartnerType,
        beneficiary_id: str,
        beneficiary_name: str,
        attested_data: Mapping[str, Any],
        created_at: datetime,
        attestation_id: Optional[str] = None,
    ) -> Attestation:
        """
        Build a signed attestation valid for its type's validity window.

        Raises:
            InputError: If the type is unknown
        """
        att_type = self.attestation_types.get(attestation_type)
        if att_type is None:
            raise InputError(
                message=f"Unknown attestation type '{attestation_type}'",
                details={"type": attestation_type},
            )
        data = dict(attested_data)
        signature = self.compute_signature(data, partner_id, beneficiary_id)
        return Attestation(
            id=attestation_id or f"att_{content_hash_short([signature, created_at], 16)}",
            type=attestation_type,
            partner_id=partner_id,
            partner_name=partner_name,
            partner_type=partner_type,
            beneficiary_id=beneficiary_id,
            beneficiary_name=beneficiary_name,
            attested_data=data,
            signature_hash=signature,
            created_at=created_at,
            expires_at=created_at + timedelta(days=att_type.validity_days),
        )

    # =========================================================================
    # Validation
    # =========================================================================

    def missing_fields(self, attestation: Attestation) -> tuple[str, ...]:
        """Required fields of the attestation's type absent from its data."""
        att_type = self.attestation_types.get(attestation.type)
        if att_type is None:
            return ()
        return tuple(
            name for name in att_type.required_fields
            if not _present(attestation.attested_data.get(name))
        )

    def check(
        self,
        attestation: Attestation,
        as_of: datetime,
        beneficiary_id: Optional[str] = None,
    ) -> AttestationCheck:
        """
        Evaluate the validity predicate at as_of.

        Never raises for an invalid attestation; the reasons are reported.
        """
        reasons: list[str] = []
        att_type = self.attestation_types.get(attestation.type)
        if att_type is None:
            reasons.append(f"unknown attestation type '{attestation.type}'")
        if not attestation.is_valid:
            reasons.append("marked invalid by issuer")
        if beneficiary_id is not None and attestation.beneficiary_id != beneficiary_id:
            reasons.append("beneficiary does not match subject")
        if attestation.is_revoked:
            reasons.append(f"revoked: {attestation.revocation_reason or 'no reason given'}")
        if as_of > attestation.expires_at:
            reasons.append("expired")
        if as_of < attestation.created_at:
            reasons.append("not yet issued at as_of")
        try:
            self.verify_signature(attestation)
        except ValidationError as e:
            logger.warning("Attestation %s rejected: %s", attestation.id, e)
            reasons.append(e.message)

        missing = self.missing_fields(attestation)
        covered: tuple[str, ...] = ()
        if att_type is not None:
            covered = tuple(name for name in att_type.required_fields if name not in missing)

        valid = not reasons
        return AttestationCheck(
            attestation_id=attestation.id,
            valid=valid,
            reasons=tuple(reasons),
            covered_fields=covered if valid else (),
            missing_fields=missing,
            boost=att_type.confidence_boost if (valid and att_type) else 0.0,
        )

    def eligible_boosts(
        self,
        attestations: Iterable[Attestation],
        as_of: datetime,
        beneficiary_id: Optional[str] = None,
    ) -> dict[str, FieldBoost]:
        """
        Strongest valid boost per covered field.

        When several valid attestations cover a field, only the largest
        boost counts (ties go to the lowest attestation id).
        """
        boosts: dict[str, FieldBoost] = {}
        for attestation in sorted(attestations, key=lambda a: a.id):
            result = self.check(attestation, as_of, beneficiary_id)
            if not result.valid:
                continue
            trust = self.partner_trust.get(attestation.partner_type)
            for name in result.covered_fields:
                current = boosts.get(name)
                if current is not None and current.boost >= result.boost:
                    continue
                boosts[name] = FieldBoost(
                    field=name,
                    attestation_id=attestation.id,
                    partner_id=attestation.partner_id,
                    partner_type=attestation.partner_type,
                    boost=result.boost,
                    attested_value=attestation.attested_data[name],
                    attested_at=attestation.created_at,
                    base_trust=trust.base_trust if trust else 50.0,
                )
        return boosts
