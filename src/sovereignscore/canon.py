"""
Canonical JSON Serialization

Sorted keys, no whitespace, UTF-8. Used for attestation payload signing,
audit references, policy pack hashes, evidence replay checks and the
anonymized AML audit record.
"""
from __future__ import annotations

import hashlib
import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any


def _default_serializer(obj: Any) -> Any:
    """Datetimes as ISO 8601 (millisecond, Z when aware), Decimals as strings, Enums by value."""
    if isinstance(obj, datetime):
        text = obj.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3]
        return text + "Z" if obj.tzinfo is not None else text
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def canonical_json(obj: Any) -> str:
    """
    Serialize object to canonical JSON string.

    Example:
        >>> canonical_json({"b": 1, "a": 2})
        '{"a":2,"b":1}'
    """
    return json.dumps(
        obj,
        sort_keys=True,
        separators=(",", ":"),
        default=_default_serializer,
        ensure_ascii=False,
    )


def canonical_json_bytes(obj: Any) -> bytes:
    return canonical_json(obj).encode("utf-8")


def content_hash(obj: Any) -> str:
    """Hex SHA-256 of the canonical JSON form."""
    return hashlib.sha256(canonical_json_bytes(obj)).hexdigest()


def content_hash_short(obj: Any, length: int = 12) -> str:
    return content_hash(obj)[:length]


def text_hash(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def subject_ref(subject_id: str) -> str:
    """Short, non-reversible subject reference for log lines."""
    return text_hash(f"subject:{subject_id}")[:12]
