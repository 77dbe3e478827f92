"""
In-Memory Store Tests

Tests cover:
- Append-only evidence history with idempotent replay
- Attestation storage and one-way revocation
- Write-once audit log
"""
from __future__ import annotations

import asyncio

import pytest

from sovereignscore.engine import (
    AttestationStore,
    AuditLog,
    EvidenceStore,
    InMemoryAttestationStore,
    InMemoryAuditLog,
    InMemoryEvidenceStore,
)
from sovereignscore.exceptions import (
    AttestationRevokedError,
    InputError,
    InternalInvariantError,
    ValidationError,
)

from tests.helpers import AS_OF, SUBJECT_ID, make_attestation, make_entry


def test_protocols_satisfied() -> None:
    assert isinstance(InMemoryEvidenceStore(), EvidenceStore)
    assert isinstance(InMemoryAttestationStore(), AttestationStore)
    assert isinstance(InMemoryAuditLog(), AuditLog)


# =============================================================================
# Evidence
# =============================================================================

class TestEvidenceStore:
    """Per-subject history only ever grows."""

    def test_append_and_history(self, profile) -> None:
        store = InMemoryEvidenceStore()
        asyncio.run(store.append(SUBJECT_ID, profile))
        history = asyncio.run(store.history(SUBJECT_ID))
        assert history == tuple(profile)
        assert asyncio.run(store.history("sub-unknown")) == ()

    def test_replay_is_noop(self, profile) -> None:
        store = InMemoryEvidenceStore()
        asyncio.run(store.append(SUBJECT_ID, profile))
        asyncio.run(store.append(SUBJECT_ID, profile[:3]))
        assert len(asyncio.run(store.history(SUBJECT_ID))) == len(profile)

    def test_new_entries_appended_in_order(self) -> None:
        store = InMemoryEvidenceStore()
        asyncio.run(store.append(SUBJECT_ID, [make_entry("monthly_income", "350 000", "a")]))
        asyncio.run(store.append(SUBJECT_ID, [make_entry("monthly_expenses", "90 000", "b")]))
        assert [e.source_id for e in asyncio.run(store.history(SUBJECT_ID))] == ["a", "b"]

    def test_rewrite_rejected(self) -> None:
        """A source_id cannot be reused for different content."""
        store = InMemoryEvidenceStore()
        asyncio.run(store.append(SUBJECT_ID, [make_entry("monthly_income", "350 000", "a")]))
        with pytest.raises(InputError):
            asyncio.run(store.append(SUBJECT_ID, [make_entry("monthly_income", "400 000", "a")]))
        assert len(asyncio.run(store.history(SUBJECT_ID))) == 1

    def test_subjects_isolated(self) -> None:
        store = InMemoryEvidenceStore()
        asyncio.run(store.append("sub-a", [make_entry("monthly_income", "350 000", "a")]))
        asyncio.run(store.append("sub-b", [make_entry("monthly_income", "400 000", "a")]))
        assert len(asyncio.run(store.history("sub-a"))) == 1
        assert len(asyncio.run(store.history("sub-b"))) == 1


# =============================================================================
# Attestations
# =============================================================================

class TestAttestationStore:
    """Attestations by id and beneficiary."""

    def test_for_beneficiary_sorted(self, validator) -> None:
        b = make_attestation(validator, {"monthly_income": 1}, attestation_id="att-b")
        a = make_attestation(validator, {"monthly_income": 1}, attestation_id="att-a")
        other = make_attestation(validator, {"monthly_income": 1}, attestation_id="att-c",
                                 beneficiary_id="sub-999")
        store = InMemoryAttestationStore([b, a, other])
        assert [x.id for x in asyncio.run(store.for_beneficiary(SUBJECT_ID))] == ["att-a", "att-b"]

    def test_revoke(self, validator) -> None:
        attestation = make_attestation(validator, {"monthly_income": 1}, attestation_id="att-a")
        store = InMemoryAttestationStore([attestation])
        revoked = asyncio.run(store.revoke("att-a", AS_OF, "loan closed"))
        assert revoked.is_revoked
        assert revoked.revocation_reason == "loan closed"
        assert asyncio.run(store.get("att-a")) == revoked

    def test_revoke_twice(self, validator) -> None:
        store = InMemoryAttestationStore([make_attestation(validator, {"monthly_income": 1}, attestation_id="att-a")])
        asyncio.run(store.revoke("att-a", AS_OF, "first"))
        with pytest.raises(AttestationRevokedError):
            asyncio.run(store.revoke("att-a", AS_OF, "second"))

    def test_revoke_unknown(self) -> None:
        with pytest.raises(InputError):
            asyncio.run(InMemoryAttestationStore().revoke("att-x", AS_OF, "n/a"))

    def test_revocation_cannot_be_undone(self, validator) -> None:
        """Putting the unrevoked original back is refused."""
        attestation = make_attestation(validator, {"monthly_income": 1}, attestation_id="att-a")
        store = InMemoryAttestationStore([attestation])
        asyncio.run(store.revoke("att-a", AS_OF, "fraud"))
        with pytest.raises(ValidationError):
            asyncio.run(store.put(attestation))
        assert asyncio.run(store.get("att-a")).is_revoked


# =============================================================================
# Audit Log
# =============================================================================

class TestAuditLog:
    """Records are written once per audit_ref."""

    def test_append_and_get(self) -> None:
        log = InMemoryAuditLog()
        asyncio.run(log.append("aud_1", {"status": "scored"}))
        assert asyncio.run(log.get("aud_1")) == {"status": "scored"}
        assert asyncio.run(log.get("aud_2")) is None
        assert len(log) == 1

    def test_identical_rewrite_is_noop(self) -> None:
        log = InMemoryAuditLog()
        asyncio.run(log.append("aud_1", {"status": "scored", "score": 61.2}))
        asyncio.run(log.append("aud_1", {"score": 61.2, "status": "scored"}))
        assert len(log) == 1

    def test_different_rewrite_rejected(self) -> None:
        log = InMemoryAuditLog()
        asyncio.run(log.append("aud_1", {"status": "scored"}))
        with pytest.raises(InternalInvariantError):
            asyncio.run(log.append("aud_1", {"status": "blocked"}))
