"""
Attestation Validator Tests

Tests cover:
- Keyed signature verification
- Validity window and revocation
- Required field coverage
- Strongest-boost selection per field
"""
from __future__ import annotations

from dataclasses import replace
from datetime import timedelta

import pytest

from sovereignscore.engine import AttestationValidator
from sovereignscore.exceptions import InputError, SignatureMismatchError
from sovereignscore.models import PartnerType

from tests.helpers import AS_OF, PARTNER_KEYS, SUBJECT_ID, make_attestation, make_validator


INCOME = {"monthly_income": 350000}

EMPLOYER_INCOME = {
    "employer_name": "SIFCA",
    "monthly_income": 350000,
    "employment_type": "cdi",
    "employment_since": "2019-01-01",
}


# =============================================================================
# Signatures
# =============================================================================

class TestSignatures:
    """HMAC-SHA256 over the canonical payload."""

    def test_issued_attestation_verifies(self, validator) -> None:
        attestation = make_attestation(validator, INCOME)
        validator.verify_signature(attestation)
        assert len(attestation.signature_hash) == 64

    def test_signature_ignores_key_order(self, validator) -> None:
        a = validator.compute_signature({"a": 1, "b": 2}, "mfi-001", SUBJECT_ID)
        b = validator.compute_signature({"b": 2, "a": 1}, "mfi-001", SUBJECT_ID)
        assert a == b

    def test_tampered_data_rejected(self, validator) -> None:
        """Changing the attested value breaks the signature."""
        attestation = make_attestation(validator, INCOME)
        tampered = replace(attestation, attested_data={"monthly_income": 900000})
        with pytest.raises(SignatureMismatchError) as exc_info:
            validator.verify_signature(tampered)
        assert exc_info.value.attestation_id == attestation.id

    def test_other_partner_key_rejected(self, validator) -> None:
        """A signature made with another partner's key does not verify."""
        attestation = make_attestation(validator, INCOME)
        impostor = AttestationValidator({"mfi-001": PARTNER_KEYS["emp-001"]})
        with pytest.raises(SignatureMismatchError):
            impostor.verify_signature(attestation)

    def test_unknown_partner_key(self, validator) -> None:
        attestation = make_attestation(validator, INCOME)
        stranger = make_validator(keys={})
        check = stranger.check(attestation, AS_OF)
        assert not check.valid
        assert "No verification key for partner mfi-001" in check.reasons

    def test_key_lookup_callable(self) -> None:
        """Keys may come from a callable instead of a mapping."""
        validator = make_validator(keys=None)
        attestation = make_attestation(validator, INCOME)
        lookup_validator = AttestationValidator(PARTNER_KEYS.get)
        lookup_validator.attestation_types.update(validator.attestation_types)
        assert lookup_validator.check(attestation, AS_OF).valid

    def test_unknown_type_cannot_be_issued(self, validator) -> None:
        with pytest.raises(InputError):
            make_attestation(validator, INCOME, attestation_type="lottery_winnings")


# =============================================================================
# Validity
# =============================================================================

class TestValidity:
    """Validity predicate at as_of."""

    def test_valid_attestation(self, validator) -> None:
        check = validator.check(make_attestation(validator, INCOME), AS_OF)
        assert check.valid
        assert check.reasons == ()
        assert check.covered_fields == ("monthly_income",)
        assert check.boost == 15

    def test_expired(self, validator) -> None:
        """mfi_income lapses 90 days after creation."""
        attestation = make_attestation(validator, INCOME, created_at=AS_OF - timedelta(days=91))
        check = validator.check(attestation, AS_OF)
        assert not check.valid
        assert "expired" in check.reasons
        assert check.boost == 0.0
        assert check.covered_fields == ()

    def test_expiry_is_inclusive(self, validator) -> None:
        attestation = make_attestation(validator, INCOME, created_at=AS_OF - timedelta(days=90))
        assert validator.check(attestation, AS_OF).valid

    def test_not_yet_issued(self, validator) -> None:
        attestation = make_attestation(validator, INCOME, created_at=AS_OF + timedelta(days=1))
        check = validator.check(attestation, AS_OF)
        assert "not yet issued at as_of" in check.reasons

    def test_revoked(self, validator) -> None:
        attestation = make_attestation(validator, INCOME).revoke(AS_OF - timedelta(days=1), "fraud")
        check = validator.check(attestation, AS_OF)
        assert not check.valid
        assert "revoked: fraud" in check.reasons

    def test_beneficiary_mismatch(self, validator) -> None:
        attestation = make_attestation(validator, INCOME, beneficiary_id="sub-999")
        check = validator.check(attestation, AS_OF, beneficiary_id=SUBJECT_ID)
        assert "beneficiary does not match subject" in check.reasons

    def test_issuer_invalidated(self, validator) -> None:
        attestation = replace(make_attestation(validator, INCOME), is_valid=False)
        assert "marked invalid by issuer" in validator.check(attestation, AS_OF).reasons

    def test_missing_required_fields_reported(self, validator) -> None:
        """Only the fields actually attested are covered."""
        attestation = make_attestation(
            validator,
            {"monthly_income": 350000, "employer_name": "SIFCA"},
            attestation_type="income_verification",
            partner_id="emp-001",
            partner_type=PartnerType.EMPLOYER,
        )
        check = validator.check(attestation, AS_OF)
        assert check.valid
        assert check.covered_fields == ("employer_name", "monthly_income")
        assert check.missing_fields == ("employment_type", "employment_since")


# =============================================================================
# Boosts
# =============================================================================

class TestEligibleBoosts:
    """One boost per field: the largest valid one."""

    def test_largest_boost_wins(self, validator) -> None:
        mfi = make_attestation(validator, INCOME, attestation_id="att-a")
        employer = make_attestation(
            validator,
            EMPLOYER_INCOME,
            attestation_type="income_verification",
            partner_id="emp-001",
            partner_type=PartnerType.EMPLOYER,
            attestation_id="att-b",
        )
        boosts = validator.eligible_boosts([mfi, employer], AS_OF, SUBJECT_ID)
        assert boosts["monthly_income"].boost == 25
        assert boosts["monthly_income"].attestation_id == "att-b"
        assert boosts["monthly_income"].base_trust == 75
        assert set(boosts) == set(EMPLOYER_INCOME)

    def test_tie_goes_to_lowest_id(self, validator) -> None:
        first = make_attestation(validator, INCOME, attestation_id="att-2")
        second = make_attestation(validator, INCOME, attestation_id="att-1")
        boosts = validator.eligible_boosts([first, second], AS_OF)
        assert boosts["monthly_income"].attestation_id == "att-1"

    def test_invalid_attestations_grant_nothing(self, validator) -> None:
        expired = make_attestation(validator, INCOME, created_at=AS_OF - timedelta(days=200))
        revoked = make_attestation(validator, INCOME, attestation_id="att-r").revoke(AS_OF, "closed")
        assert validator.eligible_boosts([expired, revoked], AS_OF) == {}

    def test_boosts_do_not_stack(self, validator) -> None:
        """Two identical attestations still give a single 15 point boost."""
        a = make_attestation(validator, INCOME, attestation_id="att-1")
        b = make_attestation(validator, INCOME, attestation_id="att-2")
        boosts = validator.eligible_boosts([a, b], AS_OF)
        assert len(boosts) == 1
        assert boosts["monthly_income"].boost == 15
