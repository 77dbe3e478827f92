"""
Data Fusion Ledger Tests

Tests cover:
- Winner selection and conflict annotation
- Aggregate counts, confidence and verification rate
- Determinism (idempotence, order independence)
- Attestation boosts and synthesized partner entries
- Evidence from document extraction
"""
from __future__ import annotations

from dataclasses import replace
from datetime import timedelta

import pytest

from sovereignscore.engine import DataFusionLedger, DocumentExtractor, sources_from_extraction
from sovereignscore.exceptions import InputError, UnknownFieldError
from sovereignscore.models import DataQuality, DocumentType, SourceType, VerificationStatus

from tests.helpers import AS_OF, SUBJECT_ID, make_attestation, make_entry, make_validator


def income(raw, source_id, source_type=SourceType.USER_INPUT,
           status=VerificationStatus.DECLARED, confidence=50.0, verified_at=None):
    return make_entry("monthly_income", raw, source_id, source_type, status, confidence, verified_at)


# =============================================================================
# Winner Selection
# =============================================================================

class TestWinnerSelection:
    """Per-field precedence and conflicts."""

    def test_verified_beats_declared(self, ledger) -> None:
        """A verified 90 wins over a declared 40; the loser is annotated, not dropped."""
        entries = [
            income("350 000 FCFA", "api:salary", SourceType.API, VerificationStatus.VERIFIED, 90, AS_OF),
            income("200 000", "decl:salary", confidence=40),
        ]
        summary = ledger.aggregate(entries, subject_id=SUBJECT_ID)

        assert summary.resolved_fields == {"monthly_income": "api:salary"}
        assert summary.value_of("monthly_income") == 350000
        assert len(summary.sources) == 2
        loser = summary.sources[1]
        assert loser.source_id == "decl:salary"
        assert len(loser.discrepancy_notes) == 1
        assert loser.discrepancy_notes[0].startswith("conflicts with api:salary (verified)")
        assert "conflicting values for 'monthly_income': kept api:salary (verified)" in summary.warnings

    def test_agreeing_values_are_not_conflicts(self, ledger) -> None:
        """Values within the 10% income tolerance are not annotated."""
        entries = [
            income("350 000", "api:salary", SourceType.API, VerificationStatus.VERIFIED, 92),
            income("340 000", "decl:salary"),
        ]
        summary = ledger.aggregate(entries)
        assert all(not s.discrepancy_notes for s in summary.sources)
        assert not any(w.startswith("conflicting values") for w in summary.warnings)

    def test_confidence_breaks_status_tie(self, ledger) -> None:
        entries = [
            income("350 000", "ocr:a", SourceType.OCR, VerificationStatus.PARTIALLY_VERIFIED, 65),
            income("350 000", "ocr:b", SourceType.OCR, VerificationStatus.PARTIALLY_VERIFIED, 75),
        ]
        assert ledger.aggregate(entries).resolved_fields["monthly_income"] == "ocr:b"

    def test_recency_breaks_confidence_tie(self, ledger) -> None:
        entries = [
            income("350 000", "ocr:old", SourceType.OCR, VerificationStatus.VERIFIED, 80,
                   AS_OF - timedelta(days=30)),
            income("350 000", "ocr:new", SourceType.OCR, VerificationStatus.VERIFIED, 80,
                   AS_OF - timedelta(days=1)),
        ]
        assert ledger.aggregate(entries).resolved_fields["monthly_income"] == "ocr:new"

    def test_source_id_breaks_full_tie(self, ledger) -> None:
        entries = [income("350 000", "z-source"), income("350 000", "a-source")]
        assert ledger.aggregate(entries).resolved_fields["monthly_income"] == "a-source"


# =============================================================================
# Aggregates
# =============================================================================

class TestAggregates:
    """Counts, weighted confidence and warnings."""

    def test_profile_summary(self, ledger, profile) -> None:
        """Four of seven winning entries are verified."""
        summary = ledger.aggregate(profile, subject_id=SUBJECT_ID)

        assert summary.total_fields == 7
        assert summary.verified_count == 4
        assert summary.declared_count == 2
        assert summary.partially_verified_count == 1
        assert summary.unverified_count == 0
        assert summary.verification_rate == pytest.approx(400 / 7)
        # (3*90 + 2*88 + 3*92 + 2*50 + 1*50 + 2*75 + 2*85) / 15
        assert summary.overall_confidence == 79.47
        assert summary.data_quality == DataQuality.MEDIUM
        assert summary.warnings == ()

    def test_no_evidence(self, ledger) -> None:
        summary = ledger.aggregate([])
        assert summary.total_fields == 0
        assert summary.verification_rate == 0.0
        assert summary.data_quality == DataQuality.INSUFFICIENT
        assert summary.warnings == ("no data sources supplied",)

    def test_mostly_declared_warnings(self, ledger) -> None:
        entries = [
            make_entry("full_name", "Awa Koné"),
            make_entry("monthly_income", "350 000"),
            make_entry("monthly_expenses", "100 000"),
        ]
        summary = ledger.aggregate(entries)
        assert "only 0.0% of fields are verified" in summary.warnings
        assert "overall confidence 50.00 is below 60" in summary.warnings
        assert summary.data_quality == DataQuality.LOW

    def test_unknown_field_rejected(self, ledger) -> None:
        with pytest.raises(UnknownFieldError):
            ledger.aggregate([make_entry("favourite_colour", "blue")])

    def test_unreadable_value_rejected(self, ledger) -> None:
        with pytest.raises(InputError):
            ledger.aggregate([make_entry("monthly_income", "beaucoup")])


# =============================================================================
# Determinism
# =============================================================================

class TestDeterminism:
    """Aggregation is a pure function of the evidence set."""

    def test_idempotent(self, ledger, profile) -> None:
        first = ledger.aggregate(profile, as_of=AS_OF, subject_id=SUBJECT_ID)
        second = ledger.aggregate(profile, as_of=AS_OF, subject_id=SUBJECT_ID)
        assert first.canonical() == second.canonical()
        assert first.digest() == second.digest()

    def test_order_independent(self, ledger, profile) -> None:
        forward = ledger.aggregate(profile)
        backward = ledger.aggregate(list(reversed(profile)))
        assert forward.canonical() == backward.canonical()

    def test_exact_duplicates_collapse(self, ledger, profile) -> None:
        """Replaying the same entry changes nothing."""
        assert ledger.aggregate(profile + profile[:2]).canonical() == ledger.aggregate(profile).canonical()

    def test_conflicting_duplicate_rejected(self, ledger) -> None:
        entries = [income("350 000", "decl:salary"), income("400 000", "decl:salary")]
        with pytest.raises(InputError):
            ledger.aggregate(entries)


# =============================================================================
# Attestation Boosts
# =============================================================================

class TestBoosts:
    """Attestations raise agreeing entries."""

    def test_mfi_boost_on_declared_income(self, ledger, validator) -> None:
        """Declared 50 plus a 15 point MFI boost gives partially verified 65."""
        attestation = make_attestation(validator, {"monthly_income": 350000})
        summary = ledger.aggregate(
            [income("350 000 FCFA", "decl:salary")], [attestation], AS_OF, SUBJECT_ID,
        )
        winner = summary.winner("monthly_income")
        assert winner.confidence == 65.0
        assert winner.status == VerificationStatus.PARTIALLY_VERIFIED
        assert winner.verification_method == f"attestation:{attestation.id}"
        assert winner.verified_by == "mfi-001"
        assert winner.verified_at == attestation.created_at

    def test_boost_capped_at_100(self, ledger, validator) -> None:
        attestation = make_attestation(validator, {"monthly_income": 350000})
        entry = income("350 000", "api:salary", SourceType.API, VerificationStatus.VERIFIED, 95, AS_OF)
        winner = ledger.aggregate([entry], [attestation], AS_OF, SUBJECT_ID).winner("monthly_income")
        assert winner.confidence == 100.0
        assert winner.status == VerificationStatus.VERIFIED

    def test_disagreeing_entry_not_boosted(self, ledger, validator) -> None:
        attestation = make_attestation(validator, {"monthly_income": 350000})
        summary = ledger.aggregate([income("200 000", "decl:salary")], [attestation], AS_OF, SUBJECT_ID)
        assert summary.winner("monthly_income").confidence == 50.0
        assert f"attestation {attestation.id} disagrees with all evidence for 'monthly_income'" in summary.warnings

    def test_attestation_only_field_is_synthesized(self, ledger, validator) -> None:
        """A covered field with no evidence gets an entry at the partner's base trust."""
        attestation = make_attestation(validator, {"monthly_income": 350000})
        summary = ledger.aggregate([], [attestation], AS_OF, SUBJECT_ID)
        winner = summary.winner("monthly_income")
        assert winner.source_id == f"{attestation.id}:monthly_income"
        assert winner.source_type == SourceType.PARTNER_ATTESTATION
        assert winner.confidence == 85
        assert winner.status == VerificationStatus.VERIFIED
        assert summary.value_of("monthly_income") == 350000

    def test_expired_attestation_ignored(self, ledger, validator) -> None:
        attestation = make_attestation(
            validator, {"monthly_income": 350000}, created_at=AS_OF - timedelta(days=120),
        )
        summary = ledger.aggregate([income("350 000", "decl:salary")], [attestation], AS_OF, SUBJECT_ID)
        assert summary.winner("monthly_income").confidence == 50.0

    def test_revoked_attestation_ignored(self, ledger, validator) -> None:
        attestation = make_attestation(validator, {"monthly_income": 350000}).revoke(AS_OF, "closed")
        summary = ledger.aggregate([income("350 000", "decl:salary")], [attestation], AS_OF, SUBJECT_ID)
        assert summary.winner("monthly_income").status == VerificationStatus.DECLARED

    def test_other_beneficiary_ignored(self, ledger, validator) -> None:
        attestation = make_attestation(validator, {"monthly_income": 350000}, beneficiary_id="sub-999")
        summary = ledger.aggregate([income("350 000", "decl:salary")], [attestation], AS_OF, SUBJECT_ID)
        assert summary.winner("monthly_income").confidence == 50.0

    def test_stored_entry_untouched(self, ledger, validator) -> None:
        """Boosting produces copies; the caller's entry is unchanged."""
        entry = income("350 000", "decl:salary")
        ledger.aggregate([entry], [make_attestation(validator, {"monthly_income": 350000})], AS_OF, SUBJECT_ID)
        assert entry.confidence == 50.0
        assert entry.normalized_value is None

    def test_attestations_need_validator(self) -> None:
        attestation = make_attestation(make_validator(), {"monthly_income": 350000})
        with pytest.raises(InputError):
            DataFusionLedger().aggregate([], [attestation], AS_OF)


# =============================================================================
# Corrections
# =============================================================================

class TestCorrections:
    """A compensating entry replaces the one it supersedes."""

    def test_superseded_entry_left_out(self, ledger) -> None:
        original = income("900 000", "decl:income:1")
        correction = replace(income("350 000", "decl:income:2"), supersedes="decl:income:1")
        summary = ledger.aggregate([original, correction], subject_id=SUBJECT_ID)

        assert summary.resolved_fields == {"monthly_income": "decl:income:2"}
        assert [s.source_id for s in summary.sources] == ["decl:income:2"]
        assert summary.value_of("monthly_income") == 350000
        assert not any("conflicting" in w for w in summary.warnings)

    def test_order_independent(self, ledger) -> None:
        original = income("900 000", "decl:income:1")
        correction = replace(income("350 000", "decl:income:2"), supersedes="decl:income:1")
        assert ledger.aggregate([correction, original]) == ledger.aggregate([original, correction])


# =============================================================================
# Extraction Evidence
# =============================================================================

class TestExtractionEvidence:
    """OCR results become evidence entries."""

    def test_identity_card_entries(self, ledger) -> None:
        text = (
            "CARTE NATIONALE D'IDENTITE\n"
            "NOM ET PRENOMS: KONE AWA\n"
            "NE(E) LE: 15/03/1990\n"
            "CNI N° CI0012345678\n"
        )
        result = DocumentExtractor().extract(text, DocumentType.IDENTITY, as_of=AS_OF.date())
        entries = sources_from_extraction(result, "doc-1", AS_OF)

        by_field = {e.field: e for e in entries}
        assert by_field["full_name"].source_id == "doc-1:full_name"
        assert by_field["full_name"].status == VerificationStatus.VERIFIED
        assert by_field["document_number"].status == VerificationStatus.VERIFIED
        summary = ledger.aggregate(entries)
        assert summary.value_of("full_name") == "kone awa"
        assert summary.value_of("birth_date") == "1990-03-15"
