"""
SovereignScore Exception Hierarchy

Domain-specific exceptions for the scoring and verification pipeline.
All exceptions include error codes for tracking and logging.

Exception codes follow the pattern: SS_<CATEGORY>_<SPECIFIC>

Compliance outcomes (HIT / REVIEW) are NOT exceptions: they are carried
on the ScoreResult status.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

logger = logging.getLogger(__name__)


@dataclass
class SovereignScoreError(Exception):
    """
    Base exception for all SovereignScore errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code (SS_*)
        details: Additional context about the error
        subject_id: Associated subject ID if applicable
    """
    message: str
    code: str = "SS_INTERNAL_ERROR"
    details: dict[str, Any] = field(default_factory=dict)
    subject_id: Optional[str] = None

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        parts = [f"[{self.code}] {self.message}"]
        if self.subject_id:
            parts.append(f"(subject: {self.subject_id})")
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Serialize exception for logging/CLI output."""
        result: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        if self.subject_id:
            result["subject_id"] = self.subject_id
        return result


# =============================================================================
# Input Errors
# =============================================================================

@dataclass
class InputError(SovereignScoreError):
    """Malformed request or missing mandatory field. Never retried."""
    code: str = "SS_INPUT_ERROR"


@dataclass
class MissingFieldError(InputError):
    """A mandatory request field is absent."""
    code: str = "SS_INPUT_MISSING_FIELD"


@dataclass
class InvalidFieldValueError(InputError):
    """A field value cannot be normalized for its declared kind."""
    code: str = "SS_INPUT_INVALID_VALUE"


@dataclass
class UnknownFieldError(InputError):
    """Field name is not declared in the field registry."""
    code: str = "SS_INPUT_UNKNOWN_FIELD"


# =============================================================================
# External Fetch Errors
# =============================================================================

@dataclass
class ExternalFetchError(SovereignScoreError):
    """A collaborator feed was unavailable or timed out."""
    code: str = "SS_EXTERNAL_FETCH_ERROR"


@dataclass
class RegionalFetchError(ExternalFetchError):
    """Regional indicator feed failed."""
    code: str = "SS_EXTERNAL_REGIONAL_FETCH"


@dataclass
class SanctionsFetchError(ExternalFetchError):
    """Sanctions/PEP list feed failed."""
    code: str = "SS_EXTERNAL_SANCTIONS_FETCH"


# =============================================================================
# Attestation Validation Errors
# =============================================================================

@dataclass
class ValidationError(SovereignScoreError):
    """Attestation failed validation. Non-fatal inside a scoring pass."""
    code: str = "SS_ATTESTATION_VALIDATION_ERROR"
    attestation_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.attestation_id:
            result["attestation_id"] = self.attestation_id
        return result


@dataclass
class SignatureMismatchError(ValidationError):
    """Attestation signature does not match the keyed hash of its payload."""
    code: str = "SS_ATTESTATION_SIGNATURE_MISMATCH"


@dataclass
class AttestationRevokedError(ValidationError):
    """Attestation is revoked; revocation cannot be repeated or undone."""
    code: str = "SS_ATTESTATION_REVOKED"


# =============================================================================
# Internal Invariant Errors
# =============================================================================

@dataclass
class InternalInvariantError(SovereignScoreError):
    """A computed value left its permitted range. Fatal for the request."""
    code: str = "SS_INTERNAL_INVARIANT"


def ensure_bounds(
    name: str,
    value: float,
    low: float,
    high: float,
    subject_id: Optional[str] = None,
) -> float:
    """
    Check that a computed value lies within [low, high].

    Out-of-range values are never clamped here: the violation is logged
    and the request is aborted.

    Raises:
        InternalInvariantError: If value is outside the range
    """
    if value != value or value < low or value > high:
        logger.error(
            "Invariant violation: %s=%r outside [%s, %s]",
            name, value, low, high,
        )
        raise InternalInvariantError(
            message=f"{name}={value!r} outside [{low}, {high}]",
            details={"name": name, "value": value, "low": low, "high": high},
            subject_id=subject_id,
        )
    return value


# =============================================================================
# Policy Pack Errors
# =============================================================================

@dataclass
class PolicyLoadError(SovereignScoreError):
    """Failed to load policy pack from file."""
    code: str = "SS_POLICY_LOAD_ERROR"


@dataclass
class PolicyValidationError(SovereignScoreError):
    """Policy pack schema validation failed."""
    code: str = "SS_POLICY_VALIDATION_ERROR"


@dataclass
class PolicyVersionMismatch(SovereignScoreError):
    """Policy pack schema version is incompatible."""
    code: str = "SS_POLICY_VERSION_MISMATCH"
