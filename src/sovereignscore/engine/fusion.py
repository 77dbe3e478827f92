"""
SovereignScore Data Fusion Ledger

Aggregates a subject's field evidence into a VerifiedDataSummary.

Aggregation is a pure function of (evidence set, attestations, as_of):
every call recomputes from scratch, so re-aggregating an unchanged
evidence set yields a byte-identical summary and the result does not
depend on the order in which entries arrived.

Per field:
1. Normalize every entry's raw_value through the field registry.
2. Apply the strongest valid attestation boost to entries agreeing with
   the attested value (confidence + boost, capped at 100; status up one
   tier).
3. Order entries by precedence: status (verified > partially_verified >
   declared > unverified), then confidence, then most recent verified_at,
   then source_id. The first entry wins.
4. Entries disagreeing with the winner beyond the field's tolerance are
   kept and annotated in discrepancy_notes.

Entries named by another entry's `supersedes` are left out entirely.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Iterable, Optional, Sequence

from ..canon import canonical_json, subject_ref
from ..exceptions import InputError, InvalidFieldValueError, ensure_bounds
from ..models.attestation import Attestation
from ..models.enums import SourceType, VerificationStatus
from ..models.evidence import (
    DataSourceInfo,
    DocumentExtractionResult,
    VerifiedDataSummary,
    determine_verification_status,
)
from ..models.fields import DEFAULT_FIELD_REGISTRY, FieldRegistry
from ..models.policy import FusionConfig
from .attestation_validator import AttestationValidator, FieldBoost
from .normalizers import normalize_value, values_agree

logger = logging.getLogger(__name__)


# =============================================================================
# Extraction Evidence
# =============================================================================

def sources_from_extraction(
    result: DocumentExtractionResult,
    document_id: str,
    extracted_at: datetime,
    source_name: Optional[str] = None,
) -> list[DataSourceInfo]:
    """Evidence entries for every field of an extraction result."""
    name = source_name or f"OCR {result.document_type.value if result.document_type else 'document'}"
    entries = []
    for extracted in result.fields:
        entries.append(DataSourceInfo(
            source_id=f"{document_id}:{extracted.field}",
            source_name=name,
            source_type=SourceType.OCR,
            status=determine_verification_status(
                SourceType.OCR,
                extracted.confidence,
                cross_validated=result.cross_validation_passed and extracted.valid,
            ),
            confidence=extracted.confidence,
            field=extracted.field,
            raw_value=extracted.value,
            verification_method="ocr_rules",
            verified_at=extracted_at,
            verified_by="document_extractor",
        ))
    return entries


def _precedence_key(entry: DataSourceInfo) -> tuple:
    verified_ts = entry.verified_at.timestamp() if entry.verified_at else 0.0
    return (
        -entry.status.rank,
        -entry.confidence,
        0 if entry.verified_at else 1,
        -verified_ts,
        entry.source_id,
    )


# =============================================================================
# Ledger
# =============================================================================

class DataFusionLedger:
    """
    Fuses per-field evidence into a verified summary.

    Usage:
        ledger = DataFusionLedger(validator=AttestationValidator(keys))
        summary = ledger.aggregate(entries, attestations, as_of, subject_id="sub-1")
    """

    def __init__(
        self,
        registry: FieldRegistry = DEFAULT_FIELD_REGISTRY,
        config: Optional[FusionConfig] = None,
        validator: Optional[AttestationValidator] = None,
    ):
        self.registry = registry
        self.config = config or FusionConfig()
        self.validator = validator

    def normalize_entry(self, entry: DataSourceInfo, country: str = "CI") -> DataSourceInfo:
        """
        Entry with normalized_value filled from raw_value.

        Raises:
            UnknownFieldError: If the field is not declared
            InvalidFieldValueError: If raw_value cannot be normalized
        """
        spec = self.registry.get(entry.field)
        normalized = normalize_value(spec, entry.raw_value, country)
        if entry.normalized_value == normalized:
            return entry
        return replace(entry, normalized_value=normalized)

    def aggregate(
        self,
        entries: Iterable[DataSourceInfo],
        attestations: Sequence[Attestation] = (),
        as_of: Optional[datetime] = None,
        subject_id: Optional[str] = None,
        country: str = "CI",
    ) -> VerifiedDataSummary:
        """
        Recompute the summary from the full evidence set.

        Args:
            entries: Every evidence entry for the subject
            attestations: Attestations to consider for boosts
            as_of: Reference time for attestation validity
            subject_id: Subject (attestations for others are ignored)
            country: Subject country (phone normalization)

        Raises:
            InputError: On undeclared fields, unparsable values or
                conflicting entries sharing a source_id
        """
        entries = list(entries)
        superseded = {e.supersedes for e in entries if e.supersedes}
        normalized = self._dedupe(
            [self.normalize_entry(e, country) for e in entries if e.source_id not in superseded],
            subject_id,
        )

        boosts: dict[str, FieldBoost] = {}
        if attestations:
            if self.validator is None or as_of is None:
                raise InputError(
                    message="Attestations require a validator and an as_of time",
                    subject_id=subject_id,
                )
            boosts = self.validator.eligible_boosts(attestations, as_of, subject_id)

        warnings: list[str] = []
        by_field: dict[str, list[DataSourceInfo]] = {}
        for entry in normalized:
            by_field.setdefault(entry.field, []).append(entry)
        for name, boost in boosts.items():
            by_field[name] = self._apply_boost(name, by_field.get(name, []), boost, country, warnings)
            if not by_field[name]:
                del by_field[name]

        sources: list[DataSourceInfo] = []
        resolved: dict[str, str] = {}
        weighted = 0.0
        importance_total = 0.0
        counts = {status: 0 for status in VerificationStatus}
        conflict_warnings: list[str] = []

        for name in sorted(by_field):
            spec = self.registry.get(name)
            ranked = sorted(by_field[name], key=_precedence_key)
            winner = ranked[0]
            resolved[name] = winner.source_id
            counts[winner.status] += 1
            weighted += spec.importance * winner.confidence
            importance_total += spec.importance

            sources.append(winner)
            conflicted = False
            for other in ranked[1:]:
                if values_agree(spec, winner.normalized_value, other.normalized_value):
                    sources.append(other)
                    continue
                conflicted = True
                note = (
                    f"conflicts with {winner.source_id} ({winner.status.value}): "
                    f"{other.normalized_value.value!r} vs {winner.normalized_value.value!r}"
                )
                sources.append(replace(other, discrepancy_notes=other.discrepancy_notes + (note,)))
            if conflicted:
                conflict_warnings.append(
                    f"conflicting values for '{name}': kept {winner.source_id} ({winner.status.value})"
                )

        total = len(resolved)
        overall = round(weighted / importance_total, 2) if importance_total else 0.0
        rate = counts[VerificationStatus.VERIFIED] / total * 100 if total else 0.0
        ensure_bounds("overall_confidence", overall, 0, 100, subject_id)
        ensure_bounds("verification_rate", rate, 0, 100, subject_id)

        warnings.extend(conflict_warnings)
        warnings.extend(self._quality_warnings(total, counts, overall, rate))

        summary = VerifiedDataSummary(
            total_fields=total,
            verified_count=counts[VerificationStatus.VERIFIED],
            declared_count=counts[VerificationStatus.DECLARED],
            partially_verified_count=counts[VerificationStatus.PARTIALLY_VERIFIED],
            unverified_count=counts[VerificationStatus.UNVERIFIED],
            overall_confidence=overall,
            data_quality=self.config.bucket(overall),
            verification_rate=rate,
            sources=tuple(sources),
            warnings=tuple(warnings),
            resolved_fields=resolved,
        )
        logger.debug(
            "Fused %d fields (confidence %.2f, quality %s)",
            total, overall, summary.data_quality.value,
            extra={"subject_ref": subject_ref(subject_id)} if subject_id else None,
        )
        return summary

    # -------------------------------------------------------------------------

    def _dedupe(
        self,
        entries: list[DataSourceInfo],
        subject_id: Optional[str],
    ) -> list[DataSourceInfo]:
        seen: dict[str, DataSourceInfo] = {}
        for entry in entries:
            existing = seen.get(entry.source_id)
            if existing is None:
                seen[entry.source_id] = entry
            elif canonical_json(existing.to_dict()) != canonical_json(entry.to_dict()):
                raise InputError(
                    message=f"Conflicting evidence entries share source_id '{entry.source_id}'",
                    details={"source_id": entry.source_id},
                    subject_id=subject_id,
                )
        return list(seen.values())

    def _apply_boost(
        self,
        name: str,
        entries: list[DataSourceInfo],
        boost: FieldBoost,
        country: str,
        warnings: list[str],
    ) -> list[DataSourceInfo]:
        spec = self.registry.find(name)
        if spec is None:
            warnings.append(f"attestation {boost.attestation_id} covers undeclared field '{name}'")
            return entries
        try:
            attested = normalize_value(spec, boost.attested_value, country)
        except InvalidFieldValueError:
            warnings.append(f"attestation {boost.attestation_id} carries an unreadable '{name}'")
            return entries

        method = f"attestation:{boost.attestation_id}"
        boosted: list[DataSourceInfo] = []
        agreeing = 0
        for entry in entries:
            if not values_agree(spec, entry.normalized_value, attested):
                boosted.append(entry)
                continue
            agreeing += 1
            verified_at = entry.verified_at
            if verified_at is None or boost.attested_at > verified_at:
                verified_at = boost.attested_at
            boosted.append(replace(
                entry,
                confidence=min(100.0, entry.confidence + boost.boost),
                status=entry.status.upgraded(),
                verification_method=method,
                verified_at=verified_at,
                verified_by=boost.partner_id,
            ))

        if not entries:
            boosted.append(DataSourceInfo(
                source_id=f"{boost.attestation_id}:{name}",
                source_name=f"Attestation by {boost.partner_id}",
                source_type=SourceType.PARTNER_ATTESTATION,
                status=determine_verification_status(SourceType.PARTNER_ATTESTATION, boost.base_trust),
                confidence=boost.base_trust,
                field=name,
                raw_value=boost.attested_value,
                normalized_value=attested,
                verification_method=method,
                verified_at=boost.attested_at,
                verified_by=boost.partner_id,
            ))
        elif agreeing == 0:
            warnings.append(
                f"attestation {boost.attestation_id} disagrees with all evidence for '{name}'"
            )
        return boosted

    def _quality_warnings(
        self,
        total: int,
        counts: dict[VerificationStatus, int],
        overall: float,
        rate: float,
    ) -> list[str]:
        if total == 0:
            return ["no data sources supplied"]
        warnings = []
        verified = counts[VerificationStatus.VERIFIED]
        if rate < self.config.min_verification_rate:
            warnings.append(f"only {rate:.1f}% of fields are verified")
        if counts[VerificationStatus.DECLARED] > verified * 2:
            warnings.append("declared fields outnumber verified fields more than two to one")
        if overall < self.config.min_confidence:
            warnings.append(f"overall confidence {overall:.2f} is below {self.config.min_confidence:g}")
        return warnings
