"""
SovereignScore Request Models

Validated input of one scoring request.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .attestation import Attestation
from .enums import DocumentType
from .evidence import DataSourceInfo
from .screening import SubjectIdentity


@dataclass(frozen=True)
class DocumentInput:
    """
    OCR text of one document submitted with a request.

    Attributes:
        document_id: Caller's document reference
        text: OCR output
        document_type: Declared type (auto-detected when None)
        extracted_at: Time attached to the resulting evidence (defaults to as_of)
    """
    document_id: str
    text: str
    document_type: Optional[DocumentType] = None
    extracted_at: Optional[datetime] = None


@dataclass(frozen=True)
class ScoreRequest:
    """
    Score(subject_id, sources, attestations, country, as_of).

    Attributes:
        subject_id: Subject being scored
        country: ISO 3166-1 alpha-2 code of the subject's country
        as_of: Reference time for every expiry and elapsed-time decision
        identity: Identity screened against sanctions/PEP lists
        sources: New evidence entries (appended to the subject's history)
        attestations: Attestations presented with the request
        documents: OCR documents to extract into evidence
    """
    subject_id: str
    country: str
    as_of: datetime
    identity: SubjectIdentity
    sources: tuple[DataSourceInfo, ...] = ()
    attestations: tuple[Attestation, ...] = ()
    documents: tuple[DocumentInput, ...] = ()
