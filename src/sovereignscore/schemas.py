"""
SovereignScore Input Schemas

Pydantic models validating scoring requests and sanctions list files
(JSON or YAML), plus converters to the frozen domain models.

Timestamps without a timezone are read as UTC.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from .exceptions import InputError
from .models import (
    Attestation,
    DataSourceInfo,
    DocumentInput,
    DocumentType,
    ListSource,
    PartnerType,
    SanctionEntry,
    SanctionsListSnapshot,
    ScoreRequest,
    SourceType,
    SubjectIdentity,
    VerificationStatus,
    determine_verification_status,
)

SourceTypeValue = Literal[
    "document", "api", "user_input", "ocr", "partner_attestation", "public_registry"
]

StatusValue = Literal["verified", "partially_verified", "declared", "unverified"]

PartnerTypeValue = Literal["mfi", "cooperative", "tontine_leader", "employer", "bank"]

DocumentTypeValue = Literal["identity", "bank_statement", "utility_bill", "mobile_money_statement"]

ListSourceValue = Literal[
    "UN_CONSOLIDATED", "OFAC_SDN", "EU_SANCTIONS", "UEMOA_GEL", "BCEAO", "LOCAL", "PEP"
]


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# =============================================================================
# Request Schemas
# =============================================================================

class EvidenceSchema(BaseModel):
    """One evidence entry. Status defaults from source type and confidence."""
    source_id: str = Field(..., min_length=1)
    source_name: str = Field(..., min_length=1)
    source_type: SourceTypeValue
    status: Optional[StatusValue] = None
    confidence: float = Field(..., ge=0, le=100)
    field: str = Field(..., min_length=1)
    raw_value: Any
    verification_method: Optional[str] = None
    verified_at: Optional[datetime] = None
    verified_by: Optional[str] = None
    supersedes: Optional[str] = None

    @field_validator("verified_at")
    @classmethod
    def validate_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v)


class AttestationSchema(BaseModel):
    """A signed partner attestation as submitted."""
    id: str = Field(..., min_length=1)
    type: str
    partner_id: str
    partner_name: str
    partner_type: PartnerTypeValue
    beneficiary_id: str
    beneficiary_name: str
    attested_data: dict[str, Any]
    signature_hash: str
    created_at: datetime
    expires_at: datetime
    is_valid: bool = True
    revoked_at: Optional[datetime] = None
    revocation_reason: Optional[str] = None

    @field_validator("created_at", "expires_at", "revoked_at")
    @classmethod
    def validate_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v)


class DocumentSchema(BaseModel):
    """OCR text of one document."""
    document_id: str = Field(..., min_length=1)
    text: str
    document_type: Optional[DocumentTypeValue] = None
    extracted_at: Optional[datetime] = None

    @field_validator("extracted_at")
    @classmethod
    def validate_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v)


class IdentitySchema(BaseModel):
    """Identity screened against sanctions/PEP lists."""
    full_name: str = Field(..., min_length=1)
    date_of_birth: Optional[str] = None
    national_id: Optional[str] = None
    nationality: Optional[str] = None
    occupation: Optional[str] = None
    employer: Optional[str] = None


class ScoreRequestSchema(BaseModel):
    """Score(subject_id, sources, attestations, country, as_of)."""
    subject_id: str = Field(..., min_length=1)
    country: str = Field(..., min_length=2, max_length=2)
    as_of: datetime
    identity: IdentitySchema
    sources: list[EvidenceSchema] = Field(default_factory=list)
    attestations: list[AttestationSchema] = Field(default_factory=list)
    documents: list[DocumentSchema] = Field(default_factory=list)

    @field_validator("as_of")
    @classmethod
    def validate_timezone(cls, v: datetime) -> datetime:
        return _as_utc(v)

    @field_validator("country")
    @classmethod
    def validate_country(cls, v: str) -> str:
        if not v.isalpha():
            raise ValueError(f"Country must be an ISO 3166-1 alpha-2 code, got '{v}'")
        return v.upper()


# =============================================================================
# Sanctions File Schemas
# =============================================================================

class SanctionEntrySchema(BaseModel):
    """One sanctions/PEP list entry."""
    entry_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    list_source: ListSourceValue
    aliases: list[str] = Field(default_factory=list)
    national_id: Optional[str] = None
    date_of_birth: Optional[str] = None
    nationality: Optional[str] = None
    program: Optional[str] = None


class SanctionsFileSchema(BaseModel):
    """Versioned sanctions/PEP list snapshot file."""
    version: str = Field(..., min_length=1)
    published_at: Optional[datetime] = None
    entries: list[SanctionEntrySchema] = Field(default_factory=list)

    @field_validator("published_at")
    @classmethod
    def validate_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v)


# =============================================================================
# Converters
# =============================================================================

def _convert_evidence(schema: EvidenceSchema) -> DataSourceInfo:
    source_type = SourceType(schema.source_type)
    status = (
        VerificationStatus(schema.status) if schema.status
        else determine_verification_status(source_type, schema.confidence)
    )
    return DataSourceInfo(
        source_id=schema.source_id,
        source_name=schema.source_name,
        source_type=source_type,
        status=status,
        confidence=schema.confidence,
        field=schema.field,
        raw_value=schema.raw_value,
        verification_method=schema.verification_method,
        verified_at=schema.verified_at,
        verified_by=schema.verified_by,
        supersedes=schema.supersedes,
    )


def _convert_attestation(schema: AttestationSchema) -> Attestation:
    return Attestation(
        id=schema.id,
        type=schema.type,
        partner_id=schema.partner_id,
        partner_name=schema.partner_name,
        partner_type=PartnerType(schema.partner_type),
        beneficiary_id=schema.beneficiary_id,
        beneficiary_name=schema.beneficiary_name,
        attested_data=dict(schema.attested_data),
        signature_hash=schema.signature_hash,
        created_at=schema.created_at,
        expires_at=schema.expires_at,
        is_valid=schema.is_valid,
        revoked_at=schema.revoked_at,
        revocation_reason=schema.revocation_reason,
    )


def _convert_document(schema: DocumentSchema) -> DocumentInput:
    return DocumentInput(
        document_id=schema.document_id,
        text=schema.text,
        document_type=DocumentType(schema.document_type) if schema.document_type else None,
        extracted_at=schema.extracted_at,
    )


def _convert_sanction_entry(schema: SanctionEntrySchema) -> SanctionEntry:
    return SanctionEntry(
        entry_id=schema.entry_id,
        name=schema.name,
        list_source=ListSource(schema.list_source),
        aliases=tuple(schema.aliases),
        national_id=schema.national_id,
        date_of_birth=schema.date_of_birth,
        nationality=schema.nationality,
        program=schema.program,
    )


def parse_score_request(data: dict[str, Any]) -> ScoreRequest:
    """
    Validate a raw request and convert it to a ScoreRequest.

    Raises:
        InputError: If the request does not match the schema
    """
    try:
        schema = ScoreRequestSchema.model_validate(data)
    except PydanticValidationError as e:
        raise InputError(
            message=f"Score request validation failed: {e.error_count()} errors",
            details={"errors": e.errors()},
            subject_id=data.get("subject_id") if isinstance(data, dict) else None,
        ) from e

    return ScoreRequest(
        subject_id=schema.subject_id,
        country=schema.country,
        as_of=schema.as_of,
        identity=SubjectIdentity(**schema.identity.model_dump()),
        sources=tuple(_convert_evidence(s) for s in schema.sources),
        attestations=tuple(_convert_attestation(a) for a in schema.attestations),
        documents=tuple(_convert_document(d) for d in schema.documents),
    )


def parse_sanctions_file(data: dict[str, Any]) -> SanctionsListSnapshot:
    """
    Validate a sanctions list file and convert it to a snapshot.

    Raises:
        pydantic.ValidationError: If the file does not match the schema
    """
    schema = SanctionsFileSchema.model_validate(data)
    return SanctionsListSnapshot(
        version=schema.version,
        entries=tuple(_convert_sanction_entry(e) for e in schema.entries),
        published_at=schema.published_at,
    )
