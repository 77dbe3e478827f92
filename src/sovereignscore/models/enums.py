"""
SovereignScore Enumerations

All enumeration types used throughout the pipeline.

All enums inherit from (str, Enum) for JSON serialization compatibility.
"""
from __future__ import annotations

from enum import Enum


# =============================================================================
# Evidence Sources
# =============================================================================

class SourceType(str, Enum):
    """Origin of a piece of field evidence."""
    DOCUMENT = "document"
    API = "api"
    USER_INPUT = "user_input"
    OCR = "ocr"
    PARTNER_ATTESTATION = "partner_attestation"
    PUBLIC_REGISTRY = "public_registry"


class VerificationStatus(str, Enum):
    """
    Verification tier of an evidence entry.

    Totally ordered: unverified < declared < partially_verified < verified.
    `upgraded()` is the only way to move up the ladder, one tier at a time.
    """
    UNVERIFIED = "unverified"
    DECLARED = "declared"
    PARTIALLY_VERIFIED = "partially_verified"
    VERIFIED = "verified"

    @property
    def rank(self) -> int:
        return _STATUS_ORDER.index(self)

    def upgraded(self) -> "VerificationStatus":
        """Next tier up; VERIFIED stays VERIFIED."""
        return _STATUS_ORDER[min(self.rank + 1, len(_STATUS_ORDER) - 1)]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, VerificationStatus):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, VerificationStatus):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, VerificationStatus):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, VerificationStatus):
            return NotImplemented
        return self.rank >= other.rank


_STATUS_ORDER = (
    VerificationStatus.UNVERIFIED,
    VerificationStatus.DECLARED,
    VerificationStatus.PARTIALLY_VERIFIED,
    VerificationStatus.VERIFIED,
)


class DataQuality(str, Enum):
    """Data quality bucket over aggregate confidence."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INSUFFICIENT = "insufficient"


# =============================================================================
# Field Kinds
# =============================================================================

class FieldKind(str, Enum):
    """Declared value kind of a registry field; selects its normalizer."""
    TEXT = "text"
    NAME = "name"
    IDENTIFIER = "identifier"
    COUNTRY = "country"
    DATE = "date"
    PHONE = "phone"
    MONEY = "money"
    NUMBER = "number"
    RATIO = "ratio"
    BOOLEAN = "boolean"


# =============================================================================
# Documents
# =============================================================================

class DocumentType(str, Enum):
    """OCR document families with their own extraction rule sets."""
    IDENTITY = "identity"
    BANK_STATEMENT = "bank_statement"
    UTILITY_BILL = "utility_bill"
    MOBILE_MONEY_STATEMENT = "mobile_money_statement"


# =============================================================================
# Partners
# =============================================================================

class PartnerType(str, Enum):
    """Institution types allowed to issue attestations."""
    MFI = "mfi"
    COOPERATIVE = "cooperative"
    TONTINE_LEADER = "tontine_leader"
    EMPLOYER = "employer"
    BANK = "bank"


# =============================================================================
# Compliance & Scoring
# =============================================================================

class AMLDecision(str, Enum):
    """Compliance screening outcome."""
    CLEAR = "CLEAR"
    REVIEW = "REVIEW"
    HIT = "HIT"


class ListSource(str, Enum):
    """Sanctions/PEP list publishers."""
    UN_CONSOLIDATED = "UN_CONSOLIDATED"
    OFAC_SDN = "OFAC_SDN"
    EU_SANCTIONS = "EU_SANCTIONS"
    UEMOA_GEL = "UEMOA_GEL"
    BCEAO = "BCEAO"
    LOCAL = "LOCAL"
    PEP = "PEP"


class MatchType(str, Enum):
    """Which identity attribute produced a screening match."""
    NAME = "name"
    ALIAS = "alias"
    NATIONAL_ID = "national_id"


class ScoreStatus(str, Enum):
    """Status of an issued ScoreResult."""
    SCORED = "SCORED"
    BLOCKED = "BLOCKED"
    REVIEW = "REVIEW"
