"""
SovereignScore Field Normalizers

Maps raw evidence values to canonical, kind-tagged FieldValues:
- date -> ISO-8601 (YYYY-MM-DD)
- phone -> E.164 (+225...)
- money -> integer minor units of the currency (XOF has none)
- number -> Decimal
- ratio -> Decimal in [0, 1]
- text/name/identifier/country -> folded strings

Dispatch is exhaustive over FieldKind: adding a kind without a
normalizer fails at import time.
"""
from __future__ import annotations

import re
import unicodedata
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Callable, Optional

from ..exceptions import InvalidFieldValueError
from ..models.enums import FieldKind
from ..models.fields import FieldSpec, FieldValue


# =============================================================================
# Reference Data
# =============================================================================

UEMOA_DIALING_CODES: dict[str, str] = {
    "CI": "225",
    "SN": "221",
    "ML": "223",
    "BF": "226",
    "TG": "228",
    "BJ": "229",
    "NE": "227",
    "GW": "245",
}

COUNTRY_ALIASES: dict[str, str] = {
    "cote d'ivoire": "CI",
    "cote divoire": "CI",
    "ivory coast": "CI",
    "senegal": "SN",
    "mali": "ML",
    "burkina faso": "BF",
    "burkina": "BF",
    "togo": "TG",
    "benin": "BJ",
    "niger": "NE",
    "guinee-bissau": "GW",
    "guinee bissau": "GW",
    "guinea-bissau": "GW",
}

# ISO 4217 minor-unit exponents
CURRENCY_EXPONENTS: dict[str, int] = {
    "XOF": 0,
    "XAF": 0,
    "GNF": 0,
    "EUR": 2,
    "USD": 2,
    "GHS": 2,
    "NGN": 2,
}

_CURRENCY_TOKENS: tuple[tuple[str, str], ...] = (
    ("F CFA", "XOF"),
    ("FCFA", "XOF"),
    ("XOF", "XOF"),
    ("CFA", "XOF"),
    ("XAF", "XAF"),
    ("EUR", "EUR"),
    ("€", "EUR"),
    ("USD", "USD"),
    ("$", "USD"),
)

DEFAULT_CURRENCY = "XOF"

MONTHS: dict[str, int] = {
    "janvier": 1, "fevrier": 2, "mars": 3, "avril": 4, "mai": 5, "juin": 6,
    "juillet": 7, "aout": 8, "septembre": 9, "octobre": 10, "novembre": 11, "decembre": 12,
    "january": 1, "february": 2, "march": 3, "april": 4, "may": 5, "june": 6,
    "july": 7, "august": 8, "september": 9, "october": 10, "november": 11, "december": 12,
    "jan": 1, "fev": 2, "feb": 2, "mar": 3, "avr": 4, "apr": 4, "jun": 6, "jul": 7,
    "aou": 8, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}

_TRUE = {"true", "yes", "oui", "1", "y", "o", "vrai"}
_FALSE = {"false", "no", "non", "0", "n", "faux"}


# =============================================================================
# Text Helpers
# =============================================================================

def strip_accents(text: str) -> str:
    """Remove diacritics (é -> e, ç -> c)."""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def collapse_whitespace(text: str) -> str:
    return " ".join(text.split())


def _invalid(spec: FieldSpec, raw: Any, reason: str) -> InvalidFieldValueError:
    return InvalidFieldValueError(
        message=f"Cannot normalize {spec.name}={raw!r} as {spec.kind.value}: {reason}",
        details={"field": spec.name, "kind": spec.kind.value, "reason": reason},
    )


# =============================================================================
# Kind Normalizers
# =============================================================================

_DATE_PATTERNS: tuple[tuple[re.Pattern, tuple[str, str, str]], ...] = (
    (re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})"), ("y", "m", "d")),
    (re.compile(r"^(\d{1,2})[/.\-](\d{1,2})[/.\-](\d{4})$"), ("d", "m", "y")),
    (re.compile(r"^(\d{4})/(\d{1,2})/(\d{1,2})$"), ("y", "m", "d")),
)


def parse_date(raw: Any) -> Optional[date]:
    """
    Parse a date in any accepted form, or return None.

    Accepts date/datetime objects, ISO strings, DD/MM/YYYY (also with
    '-' or '.'), and "12 janvier 2020" style month names.
    """
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if not isinstance(raw, str):
        return None
    text = collapse_whitespace(raw.strip())
    for pattern, order in _DATE_PATTERNS:
        match = pattern.match(text)
        if match:
            parts = dict(zip(order, (int(g) for g in match.groups())))
            try:
                return date(parts["y"], parts["m"], parts["d"])
            except ValueError:
                return None
    words = strip_accents(text).lower().replace(",", " ").split()
    if len(words) == 3 and words[0].isdigit() and words[2].isdigit():
        month = MONTHS.get(words[1].rstrip("."))
        if month:
            try:
                return date(int(words[2]), month, int(words[0]))
            except ValueError:
                return None
    return None


def _normalize_date(spec: FieldSpec, raw: Any, country: str) -> FieldValue:
    parsed = parse_date(raw)
    if parsed is None:
        raise _invalid(spec, raw, "unrecognized date format")
    return FieldValue(FieldKind.DATE, parsed.isoformat())


def _normalize_phone(spec: FieldSpec, raw: Any, country: str) -> FieldValue:
    text = str(raw).strip()
    international = text.startswith("+") or text.startswith("00")
    digits = re.sub(r"\D", "", text)
    if text.startswith("00"):
        digits = digits[2:]
    if not international:
        code = UEMOA_DIALING_CODES.get(country.upper())
        if code is None:
            raise _invalid(spec, raw, f"no dialing code for country {country!r}")
        # Local numbers that already carry the code (e.g. "225 07 ...")
        if not (digits.startswith(code) and len(digits) > 10):
            digits = code + digits
    if not 8 <= len(digits) <= 15:
        raise _invalid(spec, raw, "phone number length out of range")
    return FieldValue(FieldKind.PHONE, "+" + digits)


def parse_amount(raw: Any) -> tuple[Decimal, str]:
    """
    Parse a monetary amount into (major units, currency).

    Handles "150 000 FCFA", "1.500.000", "1 500,50 EUR", "1,500.50" and
    {"amount": ..., "currency": ...} mappings.

    Raises:
        ValueError: If no amount can be read
    """
    currency = DEFAULT_CURRENCY
    if isinstance(raw, dict):
        currency = str(raw.get("currency") or DEFAULT_CURRENCY).upper()
        raw = raw.get("amount")
    if isinstance(raw, bool) or raw is None:
        raise ValueError("not an amount")
    if isinstance(raw, (int, float, Decimal)):
        amount = Decimal(str(raw)) if isinstance(raw, float) else Decimal(raw)
        if not amount.is_finite():
            raise ValueError("not a finite amount")
        return amount, currency

    text = str(raw).strip()
    upper = text.upper()
    for token, code in _CURRENCY_TOKENS:
        if token in upper:
            currency = code
            upper = upper.replace(token, " ")
            break
    negative = upper.strip().startswith("-")
    body = re.sub(r"[^\d.,]", "", upper)
    if not body or not re.search(r"\d", body):
        raise ValueError("no digits")

    exponent = CURRENCY_EXPONENTS.get(currency, 2)
    if "," in body and "." in body:
        decimal_sep = "," if body.rfind(",") > body.rfind(".") else "."
        thousands_sep = "." if decimal_sep == "," else ","
        body = body.replace(thousands_sep, "").replace(decimal_sep, ".")
    elif "," in body or "." in body:
        sep = "," if "," in body else "."
        head, _, tail = body.rpartition(sep)
        if body.count(sep) > 1 or (len(tail) == 3 and exponent == 0):
            body = body.replace(sep, "")
        else:
            body = head.replace(sep, "") + "." + tail
    try:
        amount = Decimal(body)
    except InvalidOperation as e:
        raise ValueError(str(e)) from e
    return (-amount if negative else amount), currency


def _normalize_money(spec: FieldSpec, raw: Any, country: str) -> FieldValue:
    try:
        amount, currency = parse_amount(raw)
    except ValueError as e:
        raise _invalid(spec, raw, f"unreadable amount ({e})")
    exponent = CURRENCY_EXPONENTS.get(currency)
    if exponent is None:
        raise _invalid(spec, raw, f"unsupported currency {currency}")
    minor = (amount * (Decimal(10) ** exponent)).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return FieldValue(FieldKind.MONEY, int(minor), unit=currency)


def _to_decimal(spec: FieldSpec, raw: Any) -> Decimal:
    if isinstance(raw, bool):
        raise _invalid(spec, raw, "boolean is not a number")
    if isinstance(raw, (int, float, Decimal)):
        value = Decimal(str(raw)) if isinstance(raw, float) else Decimal(raw)
    else:
        text = re.sub(r"[\s\u00a0\u202f%]", "", str(raw))
        if text.count(",") == 1 and "." not in text:
            text = text.replace(",", ".")
        try:
            value = Decimal(text)
        except InvalidOperation:
            raise _invalid(spec, raw, "not a number")
    if not value.is_finite():
        raise _invalid(spec, raw, "not a finite number")
    return value


def _normalize_number(spec: FieldSpec, raw: Any, country: str) -> FieldValue:
    return FieldValue(FieldKind.NUMBER, _to_decimal(spec, raw))


def _normalize_ratio(spec: FieldSpec, raw: Any, country: str) -> FieldValue:
    value = _to_decimal(spec, raw)
    if (isinstance(raw, str) and "%" in raw) or value > 1:
        value = value / 100
    if not Decimal(0) <= value <= Decimal(1):
        raise _invalid(spec, raw, "ratio outside [0, 1]")
    return FieldValue(FieldKind.RATIO, value.quantize(Decimal("0.0001")))


def _normalize_boolean(spec: FieldSpec, raw: Any, country: str) -> FieldValue:
    if isinstance(raw, bool):
        return FieldValue(FieldKind.BOOLEAN, raw)
    text = strip_accents(str(raw)).strip().lower()
    if text in _TRUE:
        return FieldValue(FieldKind.BOOLEAN, True)
    if text in _FALSE:
        return FieldValue(FieldKind.BOOLEAN, False)
    raise _invalid(spec, raw, "not a boolean")


def _normalize_text(spec: FieldSpec, raw: Any, country: str) -> FieldValue:
    text = collapse_whitespace(unicodedata.normalize("NFKC", str(raw))).casefold()
    if not text:
        raise _invalid(spec, raw, "empty text")
    return FieldValue(FieldKind.TEXT, text)


def _normalize_name(spec: FieldSpec, raw: Any, country: str) -> FieldValue:
    text = strip_accents(str(raw)).replace("-", " ").replace("'", " ")
    text = collapse_whitespace(text).casefold()
    if not text:
        raise _invalid(spec, raw, "empty name")
    return FieldValue(FieldKind.NAME, text)


def _normalize_identifier(spec: FieldSpec, raw: Any, country: str) -> FieldValue:
    text = re.sub(r"[\s\-./]", "", str(raw)).upper()
    if not text:
        raise _invalid(spec, raw, "empty identifier")
    return FieldValue(FieldKind.IDENTIFIER, text)


def _normalize_country(spec: FieldSpec, raw: Any, country: str) -> FieldValue:
    text = collapse_whitespace(strip_accents(str(raw))).strip()
    if len(text) == 2 and text.isalpha():
        return FieldValue(FieldKind.COUNTRY, text.upper())
    code = COUNTRY_ALIASES.get(text.lower())
    if code is None:
        raise _invalid(spec, raw, "unknown country")
    return FieldValue(FieldKind.COUNTRY, code)


_NORMALIZERS: dict[FieldKind, Callable[[FieldSpec, Any, str], FieldValue]] = {
    FieldKind.DATE: _normalize_date,
    FieldKind.PHONE: _normalize_phone,
    FieldKind.MONEY: _normalize_money,
    FieldKind.NUMBER: _normalize_number,
    FieldKind.RATIO: _normalize_ratio,
    FieldKind.BOOLEAN: _normalize_boolean,
    FieldKind.TEXT: _normalize_text,
    FieldKind.NAME: _normalize_name,
    FieldKind.IDENTIFIER: _normalize_identifier,
    FieldKind.COUNTRY: _normalize_country,
}

_missing = set(FieldKind) - set(_NORMALIZERS)
if _missing:
    raise RuntimeError(f"No normalizer for field kinds: {sorted(k.value for k in _missing)}")


# =============================================================================
# Public API
# =============================================================================

def normalize_value(spec: FieldSpec, raw: Any, country: str = "CI") -> FieldValue:
    """
    Normalize a raw value for its declared field.

    Args:
        spec: Field declaration
        raw: Value as received
        country: Subject country (default dialing code for phones)

    Raises:
        InvalidFieldValueError: If the value cannot be normalized
    """
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raise _invalid(spec, raw, "empty value")
    return _NORMALIZERS[spec.kind](spec, raw, country)


def values_agree(spec: FieldSpec, a: FieldValue, b: FieldValue) -> bool:
    """
    Whether two normalized values agree within the field's tolerance.

    Money and number use a relative tolerance, ratio an absolute one,
    every other kind requires equality.
    """
    if a.kind != b.kind or a.unit != b.unit:
        return False
    if spec.kind in (FieldKind.MONEY, FieldKind.NUMBER):
        left, right = Decimal(a.value), Decimal(b.value)
        scale = max(abs(left), abs(right))
        if scale == 0:
            return True
        return abs(left - right) <= Decimal(str(spec.tolerance)) * scale
    if spec.kind == FieldKind.RATIO:
        return abs(Decimal(a.value) - Decimal(b.value)) <= Decimal(str(spec.tolerance))
    return a.value == b.value
