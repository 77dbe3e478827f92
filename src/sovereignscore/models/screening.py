"""
SovereignScore Screening Models

Sanctions/PEP list snapshots, subject identity and screening outcomes.

The anonymized audit record never carries the subject's plaintext name,
only a salted one-way hash of the normalized name.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from .enums import AMLDecision, ListSource, MatchType


# =============================================================================
# Lists
# =============================================================================

@dataclass(frozen=True)
class SanctionEntry:
    """
    One sanctions or PEP list entry.

    Attributes:
        entry_id: Publisher reference
        name: Primary listed name
        list_source: Publishing list
        aliases: Alternate spellings / names
        national_id: National identity number, if published
        date_of_birth: ISO date, if published
        nationality: ISO country code, if published
        program: Sanctions programme or PEP function
    """
    entry_id: str
    name: str
    list_source: ListSource
    aliases: tuple[str, ...] = ()
    national_id: Optional[str] = None
    date_of_birth: Optional[str] = None
    nationality: Optional[str] = None
    program: Optional[str] = None


@dataclass(frozen=True)
class SanctionsListSnapshot:
    """
    Versioned, immutable list snapshot. Replaced wholesale on refresh.

    Attributes:
        version: Publisher version / content hash
        entries: List entries
        published_at: Publication time
    """
    version: str
    entries: tuple[SanctionEntry, ...]
    published_at: Optional[datetime] = None

    def __len__(self) -> int:
        return len(self.entries)


# =============================================================================
# Subject
# =============================================================================

@dataclass(frozen=True)
class SubjectIdentity:
    """
    Identity attributes used for screening.

    Attributes:
        full_name: Name as declared
        date_of_birth: ISO date, if known
        national_id: National identity number, if known
        nationality: ISO country code, if known
        occupation: Declared occupation (PEP detection)
        employer: Declared employer (PEP detection)
    """
    full_name: str
    date_of_birth: Optional[str] = None
    national_id: Optional[str] = None
    nationality: Optional[str] = None
    occupation: Optional[str] = None
    employer: Optional[str] = None


# =============================================================================
# Outcomes
# =============================================================================

@dataclass(frozen=True)
class PEPCategory:
    """
    Politically exposed function category.

    Attributes:
        code: Category code (e.g., "MINISTER")
        label: Display label
        keywords: Occupation/employer keywords (normalized)
        risk_weight: Relative risk weight
    """
    code: str
    label: str
    keywords: tuple[str, ...]
    risk_weight: int


@dataclass(frozen=True)
class ScreeningMatch:
    """
    A candidate list entry at or above the low threshold.

    Attributes:
        entry_id: Matched list entry
        list_source: Publishing list
        matched_name: Listed name or alias that matched
        match_type: Attribute that matched
        similarity: Similarity in [0, 1]
        decision: Decision band of this similarity
    """
    entry_id: str
    list_source: ListSource
    matched_name: str
    match_type: MatchType
    similarity: float
    decision: AMLDecision

    def to_dict(self) -> dict[str, Any]:
        return {
            "entry_id": self.entry_id,
            "list_source": self.list_source.value,
            "matched_name": self.matched_name,
            "match_type": self.match_type.value,
            "similarity": self.similarity,
            "decision": self.decision.value,
        }


@dataclass(frozen=True)
class AMLAuditRecord:
    """
    Anonymized screening record for long-term retention.

    Attributes:
        name_hash: Salted SHA-256 of the normalized name
        decision: Screening decision
        list_version: Version of the list screened against (None if unavailable)
        match_count: Number of candidates emitted
        top_similarity: Highest similarity found
        matched_entry_ids: List entry references (publisher ids only)
        pep_category: PEP category detected from occupation, if any
        low_threshold: Threshold in force
        high_threshold: Threshold in force
        screened_at: as_of of the screening
        reasons: Decision reasons
    """
    name_hash: str
    decision: AMLDecision
    list_version: Optional[str]
    match_count: int
    top_similarity: float
    matched_entry_ids: tuple[str, ...]
    pep_category: Optional[str]
    low_threshold: float
    high_threshold: float
    screened_at: datetime
    reasons: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "name_hash": self.name_hash,
            "decision": self.decision.value,
            "list_version": self.list_version,
            "match_count": self.match_count,
            "top_similarity": self.top_similarity,
            "matched_entry_ids": list(self.matched_entry_ids),
            "pep_category": self.pep_category,
            "low_threshold": self.low_threshold,
            "high_threshold": self.high_threshold,
            "screened_at": self.screened_at.isoformat(),
            "reasons": list(self.reasons),
        }


@dataclass(frozen=True)
class ScreeningResult:
    """
    Outcome of screening one subject.

    Attributes:
        decision: CLEAR, REVIEW or HIT
        matches: Candidates, highest similarity first
        pep: PEP category detected from occupation, if any
        audit_record: Anonymized retention record
    """
    decision: AMLDecision
    matches: tuple[ScreeningMatch, ...]
    pep: Optional[PEPCategory]
    audit_record: AMLAuditRecord

    @property
    def reasons(self) -> tuple[str, ...]:
        return self.audit_record.reasons

    def to_dict(self) -> dict[str, Any]:
        return {
            "decision": self.decision.value,
            "matches": [m.to_dict() for m in self.matches],
            "pep": self.pep.code if self.pep else None,
            "audit_record": self.audit_record.to_dict(),
        }
