"""
SovereignScore Persistence Collaborators

Protocols for the storage the pipeline needs (key lookup and append
only) and in-memory implementations used by the CLI and tests.

- EvidenceStore: subject_id -> append-only DataSourceInfo history
- AttestationStore: attestations by id, with one-way revocation
- AuditLog: audit_ref -> anonymized screening record and explanation
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Optional, Protocol, runtime_checkable

from ..canon import canonical_json
from ..exceptions import InputError, InternalInvariantError, ValidationError
from ..models.attestation import Attestation
from ..models.evidence import DataSourceInfo


# =============================================================================
# Protocols
# =============================================================================

@runtime_checkable
class EvidenceStore(Protocol):
    """Append-only evidence history per subject."""

    async def append(self, subject_id: str, entries: Iterable[DataSourceInfo]) -> None:
        ...

    async def history(self, subject_id: str) -> tuple[DataSourceInfo, ...]:
        ...


@runtime_checkable
class AttestationStore(Protocol):
    """Attestations keyed by id."""

    async def put(self, attestation: Attestation) -> None:
        ...

    async def get(self, attestation_id: str) -> Optional[Attestation]:
        ...

    async def for_beneficiary(self, beneficiary_id: str) -> tuple[Attestation, ...]:
        ...

    async def revoke(self, attestation_id: str, at: datetime, reason: str) -> Attestation:
        ...


@runtime_checkable
class AuditLog(Protocol):
    """Audit records keyed by audit_ref."""

    async def append(self, audit_ref: str, record: dict[str, Any]) -> None:
        ...

    async def get(self, audit_ref: str) -> Optional[dict[str, Any]]:
        ...


# =============================================================================
# In-memory implementations
# =============================================================================

class InMemoryEvidenceStore:
    """
    Evidence history held in memory.

    Re-appending an identical entry is a no-op; a different entry under
    an existing source_id is rejected.
    """

    def __init__(self) -> None:
        self._history: dict[str, tuple[DataSourceInfo, ...]] = {}

    async def append(self, subject_id: str, entries: Iterable[DataSourceInfo]) -> None:
        current = self._history.get(subject_id, ())
        by_id = {entry.source_id: entry for entry in current}
        added: list[DataSourceInfo] = []
        for entry in entries:
            existing = by_id.get(entry.source_id)
            if existing is None:
                by_id[entry.source_id] = entry
                added.append(entry)
            elif canonical_json(existing.to_dict()) != canonical_json(entry.to_dict()):
                raise InputError(
                    message=f"Evidence '{entry.source_id}' already recorded with different content",
                    details={"source_id": entry.source_id},
                    subject_id=subject_id,
                )
        if added:
            self._history[subject_id] = current + tuple(added)

    async def history(self, subject_id: str) -> tuple[DataSourceInfo, ...]:
        return self._history.get(subject_id, ())


class InMemoryAttestationStore:
    """Attestations held in memory."""

    def __init__(self, attestations: Iterable[Attestation] = ()):
        self._by_id: dict[str, Attestation] = {a.id: a for a in attestations}

    async def put(self, attestation: Attestation) -> None:
        existing = self._by_id.get(attestation.id)
        if existing is not None and existing.is_revoked and not attestation.is_revoked:
            raise ValidationError(
                message=f"Attestation {attestation.id} is revoked and cannot be replaced",
                attestation_id=attestation.id,
            )
        self._by_id[attestation.id] = attestation

    async def get(self, attestation_id: str) -> Optional[Attestation]:
        return self._by_id.get(attestation_id)

    async def for_beneficiary(self, beneficiary_id: str) -> tuple[Attestation, ...]:
        return tuple(sorted(
            (a for a in self._by_id.values() if a.beneficiary_id == beneficiary_id),
            key=lambda a: a.id,
        ))

    async def revoke(self, attestation_id: str, at: datetime, reason: str) -> Attestation:
        """
        Revoke an attestation.

        Raises:
            InputError: If the attestation is unknown
            AttestationRevokedError: If it was already revoked
        """
        attestation = self._by_id.get(attestation_id)
        if attestation is None:
            raise InputError(
                message=f"Unknown attestation '{attestation_id}'",
                details={"attestation_id": attestation_id},
            )
        revoked = attestation.revoke(at, reason)
        self._by_id[attestation_id] = revoked
        return revoked


class InMemoryAuditLog:
    """Audit records held in memory. Records are write-once."""

    def __init__(self) -> None:
        self._records: dict[str, dict[str, Any]] = {}

    async def append(self, audit_ref: str, record: dict[str, Any]) -> None:
        existing = self._records.get(audit_ref)
        if existing is not None:
            if canonical_json(existing) != canonical_json(record):
                raise InternalInvariantError(
                    message=f"Audit record {audit_ref} already written with different content",
                    details={"audit_ref": audit_ref},
                )
            return
        self._records[audit_ref] = record

    async def get(self, audit_ref: str) -> Optional[dict[str, Any]]:
        return self._records.get(audit_ref)

    def __len__(self) -> int:
        return len(self._records)
