"""
SovereignScore Scoring Pipeline

Score(subject_id, sources, attestations, country, as_of) -> ScoreResult.

Per request:
1. Concurrently: extract submitted documents, resolve the regional
   context, fetch the sanctions list and screen the subject.
2. Normalize new evidence, rejecting the request before anything is
   stored if a submitted value is unreadable. Append it to the subject's
   history and fuse the full history (with attestations) into a
   VerifiedDataSummary.
3. Score, gated on the screening outcome. The screening coroutine is
   always joined before ScoringEngine runs, so no score exists before
   the compliance decision does.
4. Append the anonymized screening record and the explanation to the
   audit log under the result's audit_ref.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Mapping, Optional, Union

from ..canon import subject_ref
from ..exceptions import InputError
from ..models.attestation import Attestation
from ..models.enums import ScoreStatus
from ..models.evidence import DataSourceInfo
from ..models.policy import ScoringPolicy
from ..models.request import DocumentInput, ScoreRequest
from ..models.score import ScoreResult
from .aml_screening import AMLScreeningEngine, SanctionsSource
from .attestation_validator import AttestationValidator, KeyLookup
from .document_extractor import DocumentExtractor
from .features import FeatureEngineer
from .fusion import DataFusionLedger, sources_from_extraction
from .regional_context import RegionalContextProvider, RegionalFeed, StaticRegionalFeed
from .scoring import ScoringEngine
from .stores import (
    AttestationStore,
    AuditLog,
    EvidenceStore,
    InMemoryAttestationStore,
    InMemoryAuditLog,
    InMemoryEvidenceStore,
)

logger = logging.getLogger(__name__)


class ScoringPipeline:
    """
    End-to-end scoring with compliance gating.

    Usage:
        pipeline = ScoringPipeline(policy, keys={"mfi-001": b"..."},
                                   sanctions_source=FileSanctionsSource("list.yaml"))
        result = await pipeline.score(request)
    """

    def __init__(
        self,
        policy: Optional[ScoringPolicy] = None,
        keys: Union[Mapping[str, bytes], KeyLookup, None] = None,
        regional_feed: Optional[RegionalFeed] = None,
        sanctions_source: Optional[SanctionsSource] = None,
        evidence_store: Optional[EvidenceStore] = None,
        attestation_store: Optional[AttestationStore] = None,
        audit_log: Optional[AuditLog] = None,
    ):
        self.policy = policy or ScoringPolicy()
        self.validator = AttestationValidator(
            keys if keys is not None else {},
            self.policy.attestation_types,
            self.policy.partner_trust,
        )
        self.extractor = DocumentExtractor(registry=self.policy.fields)
        self.ledger = DataFusionLedger(self.policy.fields, self.policy.fusion, self.validator)
        self.regional = RegionalContextProvider(regional_feed or StaticRegionalFeed(), self.policy.regional)
        self.scoring = ScoringEngine(self.policy.scoring, FeatureEngineer(self.policy.features))
        self.aml = AMLScreeningEngine(self.policy.aml)
        self.sanctions_source = sanctions_source
        self.evidence_store = evidence_store or InMemoryEvidenceStore()
        self.attestation_store = attestation_store or InMemoryAttestationStore()
        self.audit_log = audit_log or InMemoryAuditLog()

    async def _extract(self, request: ScoreRequest, document: DocumentInput) -> tuple[list[DataSourceInfo], list[str]]:
        """Evidence from one document; values that cannot be normalized are dropped with a warning."""
        result = await asyncio.to_thread(
            self.extractor.extract, document.text, document.document_type, request.as_of.date()
        )
        warnings = [f"{document.document_id}: {w}" for w in result.validation_warnings]
        entries: list[DataSourceInfo] = []
        for entry in sources_from_extraction(result, document.document_id, document.extracted_at or request.as_of):
            try:
                entries.append(self.ledger.normalize_entry(entry, request.country))
            except InputError as e:
                warnings.append(f"{document.document_id}: {entry.field} dropped: {e.message}")
        return entries, warnings

    async def _attestations(self, request: ScoreRequest) -> tuple[Attestation, ...]:
        """Presented attestations merged with stored ones; a stored revocation always wins."""
        for attestation in request.attestations:
            if await self.attestation_store.get(attestation.id) is None:
                await self.attestation_store.put(attestation)
        return await self.attestation_store.for_beneficiary(request.subject_id)

    async def score(self, request: ScoreRequest) -> ScoreResult:
        """
        Score one request.

        Raises:
            InputError: On malformed evidence or identity
            InternalInvariantError: If a computed value leaves its range
        """
        started = time.perf_counter()
        extra: dict[str, Any] = {"subject_ref": subject_ref(request.subject_id), "country": request.country}
        new_entries = [self.ledger.normalize_entry(e, request.country) for e in request.sources]

        *extractions, resolution, screening = await asyncio.gather(
            *(self._extract(request, doc) for doc in request.documents),
            self.regional.get_context(request.country, request.as_of),
            self.aml.screen_with_source(request.identity, self.sanctions_source, request.as_of),
        )

        warnings: list[str] = list(resolution.warnings)
        for entries, doc_warnings in extractions:
            new_entries.extend(entries)
            warnings.extend(doc_warnings)

        await self.evidence_store.append(request.subject_id, new_entries)
        history = await self.evidence_store.history(request.subject_id)
        attestations = await self._attestations(request)
        summary = self.ledger.aggregate(
            history,
            attestations,
            as_of=request.as_of,
            subject_id=request.subject_id,
            country=request.country,
        )

        result = self.scoring.score(
            summary,
            resolution.context,
            screening.decision,
            request.as_of,
            subject_id=request.subject_id,
            policy_hash=self.policy.policy_hash,
            warnings=warnings,
            aml_record=screening.audit_record,
        )

        await self.audit_log.append(result.audit_ref, {
            "audit_ref": result.audit_ref,
            "subject_ref": extra["subject_ref"],
            "status": result.status.value,
            "as_of": request.as_of.isoformat(),
            "model_version": result.model_version,
            "policy_hash": result.policy_hash,
            "summary_digest": summary.digest(),
            "regional_snapshot": resolution.context.snapshot_version,
            "aml_record": screening.audit_record.to_dict(),
            "explanation": result.explanation.to_dict() if result.explanation else None,
        })

        duration_ms = round((time.perf_counter() - started) * 1000, 1)
        log = logger.info if result.status == ScoreStatus.SCORED else logger.warning
        log(
            "Request finished with %s", result.status.value,
            extra={**extra, "audit_ref": result.audit_ref, "status": result.status.value,
                   "decision": screening.decision.value, "duration_ms": duration_ms},
        )
        return result
