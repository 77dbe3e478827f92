"""
SovereignScore Evidence Models

Models for per-field evidence and its fused summary.

Key components:
- ExtractedField: One field pulled out of OCR text (ephemeral)
- DocumentExtractionResult: Output of a single extraction call
- DataSourceInfo: One append-only piece of evidence for a subject field
- VerifiedDataSummary: Pure aggregation over a subject's evidence set
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Mapping, Optional

from ..canon import canonical_json, content_hash
from ..exceptions import InvalidFieldValueError
from .enums import DataQuality, DocumentType, SourceType, VerificationStatus
from .fields import FieldValue


# =============================================================================
# OCR Extraction
# =============================================================================

@dataclass(frozen=True)
class ExtractedField:
    """
    A field extracted from OCR text.

    Attributes:
        field: Registry field name
        value: Parsed value (ISO date, {"amount", "currency"} mapping, text)
        confidence: Extraction confidence [0, 100]
        source_text: The OCR text fragment the value came from
        valid: Whether the value passed its heuristic checks
    """
    field: str
    value: Any
    confidence: float
    source_text: str
    valid: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "field": self.field,
            "value": self.value,
            "confidence": self.confidence,
            "source_text": self.source_text,
            "valid": self.valid,
        }


@dataclass(frozen=True)
class DocumentExtractionResult:
    """
    Structured result of one extraction call.

    Attributes:
        document_type: Type used for extraction (detected if not supplied)
        fields: Extracted fields in rule order
        overall_confidence: Importance-weighted mean of field confidences
        validation_warnings: Problems encountered (never raised)
        cross_validation_passed: All mandatory fields present and valid
    """
    document_type: Optional[DocumentType]
    fields: tuple[ExtractedField, ...]
    overall_confidence: float
    validation_warnings: tuple[str, ...] = ()
    cross_validation_passed: bool = False

    def get(self, name: str) -> Optional[ExtractedField]:
        for extracted in self.fields:
            if extracted.field == name:
                return extracted
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "document_type": self.document_type.value if self.document_type else None,
            "fields": [f.to_dict() for f in self.fields],
            "overall_confidence": self.overall_confidence,
            "validation_warnings": list(self.validation_warnings),
            "cross_validation_passed": self.cross_validation_passed,
        }


# =============================================================================
# Evidence Entries
# =============================================================================

@dataclass(frozen=True)
class DataSourceInfo:
    """
    One piece of evidence for a subject's field.

    Entries are append-only: boosts and discrepancy notes produce new
    copies during aggregation, the stored entry is never changed. A
    correction is a new entry naming the one it supersedes.

    Attributes:
        source_id: Unique identifier of this entry
        source_name: Human-readable origin (e.g., "Ecobank statement")
        source_type: Kind of origin
        status: Verification tier
        confidence: Confidence in the value [0, 100]
        field: Registry field name this entry is evidence for
        raw_value: Value as received
        normalized_value: Canonical tagged value (filled by the ledger)
        verification_method: How the value was checked, if at all
        verified_at: When it was checked
        verified_by: Who or what checked it
        discrepancy_notes: Conflicts recorded against other entries
        supersedes: source_id of an earlier entry this one corrects
    """
    source_id: str
    source_name: str
    source_type: SourceType
    status: VerificationStatus
    confidence: float
    field: str
    raw_value: Any
    normalized_value: Optional[FieldValue] = None
    verification_method: Optional[str] = None
    verified_at: Optional[datetime] = None
    verified_by: Optional[str] = None
    discrepancy_notes: tuple[str, ...] = ()
    supersedes: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.source_id:
            raise InvalidFieldValueError(
                message="DataSourceInfo requires a source_id",
                details={"field": self.field},
            )
        if not isinstance(self.confidence, (int, float)) or not 0 <= self.confidence <= 100:
            raise InvalidFieldValueError(
                message=f"Confidence {self.confidence!r} outside [0, 100]",
                details={"source_id": self.source_id, "field": self.field},
            )
        if self.supersedes == self.source_id:
            raise InvalidFieldValueError(
                message=f"Evidence {self.source_id} cannot supersede itself",
                details={"source_id": self.source_id, "field": self.field},
            )

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_id": self.source_id,
            "source_name": self.source_name,
            "source_type": self.source_type.value,
            "status": self.status.value,
            "confidence": self.confidence,
            "field": self.field,
            "raw_value": self.raw_value,
            "normalized_value": self.normalized_value.to_dict() if self.normalized_value else None,
            "verification_method": self.verification_method,
            "verified_at": self.verified_at.isoformat() if self.verified_at else None,
            "verified_by": self.verified_by,
            "discrepancy_notes": list(self.discrepancy_notes),
            "supersedes": self.supersedes,
        }


def determine_verification_status(
    source_type: SourceType,
    confidence: float,
    cross_validated: bool = False,
) -> VerificationStatus:
    """
    Initial verification tier of a new evidence entry.

    - api >= 90: verified
    - ocr cross-validated >= 70: verified
    - document/ocr >= 60: partially verified
    - partner attestation >= 80: verified
    - public registry >= 75: verified
    - anything < 50: unverified
    - user input and everything else: declared
    """
    if confidence < 50:
        return VerificationStatus.UNVERIFIED
    if source_type == SourceType.USER_INPUT:
        return VerificationStatus.DECLARED
    if source_type == SourceType.API and confidence >= 90:
        return VerificationStatus.VERIFIED
    if source_type == SourceType.OCR and cross_validated and confidence >= 70:
        return VerificationStatus.VERIFIED
    if source_type in (SourceType.OCR, SourceType.DOCUMENT) and confidence >= 60:
        return VerificationStatus.PARTIALLY_VERIFIED
    if source_type == SourceType.PARTNER_ATTESTATION and confidence >= 80:
        return VerificationStatus.VERIFIED
    if source_type == SourceType.PUBLIC_REGISTRY and confidence >= 75:
        return VerificationStatus.VERIFIED
    return VerificationStatus.DECLARED


# =============================================================================
# Fused Summary
# =============================================================================

@dataclass(frozen=True)
class VerifiedDataSummary:
    """
    Aggregate view of a subject's evidence.

    Attributes:
        total_fields: Number of distinct fields with evidence
        verified_count: Fields whose winning entry is verified
        declared_count: Fields whose winning entry is declared
        partially_verified_count: Fields whose winning entry is partially verified
        unverified_count: Fields whose winning entry is unverified
        overall_confidence: Importance-weighted mean of winning confidences
        data_quality: Quality bucket for overall_confidence
        verification_rate: verified_count / total_fields * 100
        sources: Every entry (boosted / annotated), grouped by field, winner first
        warnings: Quality and conflict warnings
        resolved_fields: Read-only field -> source_id of the winning entry
    """
    total_fields: int
    verified_count: int
    declared_count: int
    partially_verified_count: int
    unverified_count: int
    overall_confidence: float
    data_quality: DataQuality
    verification_rate: float
    sources: tuple[DataSourceInfo, ...] = ()
    warnings: tuple[str, ...] = ()
    resolved_fields: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "resolved_fields", MappingProxyType(dict(self.resolved_fields)))

    def winner(self, field_name: str) -> Optional[DataSourceInfo]:
        """Winning entry for a field, if the field has evidence."""
        source_id = self.resolved_fields.get(field_name)
        if source_id is None:
            return None
        for entry in self.sources:
            if entry.source_id == source_id:
                return entry
        return None

    def winners(self) -> list[DataSourceInfo]:
        """Winning entries in field-name order."""
        by_id = {entry.source_id: entry for entry in self.sources}
        return [by_id[self.resolved_fields[name]] for name in sorted(self.resolved_fields)]

    def value_of(self, field_name: str) -> Any:
        """Normalized value of the winning entry, or None."""
        entry = self.winner(field_name)
        if entry is None or entry.normalized_value is None:
            return None
        return entry.normalized_value.value

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_fields": self.total_fields,
            "verified_count": self.verified_count,
            "declared_count": self.declared_count,
            "partially_verified_count": self.partially_verified_count,
            "unverified_count": self.unverified_count,
            "overall_confidence": self.overall_confidence,
            "data_quality": self.data_quality.value,
            "verification_rate": self.verification_rate,
            "sources": [s.to_dict() for s in self.sources],
            "warnings": list(self.warnings),
            "resolved_fields": dict(sorted(self.resolved_fields.items())),
        }

    def canonical(self) -> str:
        """Canonical JSON form, byte-identical for identical summaries."""
        return canonical_json(self.to_dict())

    def digest(self) -> str:
        return content_hash(self.to_dict())
