"""
SovereignScore Document Extractor

Turns OCR text plus a document type into confidence-scored fields.

Each document type has an ordered rule set. A rule is a pattern plus a
parser and heuristic checks (checksum, date range, amount floor). Several
rules may target the same field: the first rule that matches and parses
wins for that field. A value that fails a check is kept at half the rule
confidence and fails cross-validation.

Extraction never raises: empty, malformed or unrecognized input yields a
low-confidence result with warnings.
"""
from __future__ import annotations

import logging
import re
import unicodedata
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Optional, Union

from ..models.enums import DocumentType
from ..models.evidence import DocumentExtractionResult, ExtractedField
from ..models.fields import DEFAULT_FIELD_REGISTRY, FieldRegistry
from .normalizers import UEMOA_DIALING_CODES, collapse_whitespace, parse_amount, parse_date, strip_accents

logger = logging.getLogger(__name__)

Check = Callable[[str, Any, Optional[date]], Optional[str]]

FAILED_CHECK_PENALTY = 0.5


# =============================================================================
# Parsers
# =============================================================================

def _parse_name(raw: str) -> str:
    name = collapse_whitespace(raw).strip(" -'").upper()
    if sum(ch.isalpha() for ch in name) < 2:
        raise ValueError("name too short")
    return name


def _parse_upper(raw: str) -> str:
    text = collapse_whitespace(raw).upper()
    if not text:
        raise ValueError("empty")
    return text


def _parse_date(raw: str) -> str:
    parsed = parse_date(raw)
    if parsed is None:
        raise ValueError(f"unrecognized date {raw!r}")
    return parsed.isoformat()


def _parse_amount(raw: str) -> dict[str, Any]:
    amount, currency = parse_amount(raw.strip(" .,"))
    major = int(amount) if amount == amount.to_integral_value() else float(amount)
    return {"amount": major, "currency": currency}


def _parse_int(raw: str) -> int:
    return int(re.sub(r"\D", "", raw))


def _parse_phone(raw: str) -> str:
    digits = re.sub(r"[^\d+]", "", raw)
    if len(digits.lstrip("+")) < 8:
        raise ValueError("phone too short")
    return digits


_COUNTRY_KEYS = {
    "cotedivoire": "CI",
    "senegal": "SN",
    "mali": "ML",
    "burkinafaso": "BF",
    "togo": "TG",
    "benin": "BJ",
    "niger": "NE",
    "guineebissau": "GW",
}


def _parse_country(raw: str) -> str:
    key = re.sub(r"[^a-z]", "", strip_accents(raw).lower())
    if key not in _COUNTRY_KEYS:
        raise ValueError(f"unknown country {raw!r}")
    return _COUNTRY_KEYS[key]


def _parse_momo_operator(raw: str) -> str:
    key = re.sub(r"\s+", "", raw.upper())
    for prefix, name in (
        ("ORANGE", "Orange Money"),
        ("MTN", "MTN MoMo"),
        ("MOOV", "Moov Money"),
        ("WAVE", "Wave"),
        ("AIRTEL", "Airtel Money"),
        ("FREE", "Free Money"),
    ):
        if key.startswith(prefix):
            return name
    raise ValueError(f"unknown operator {raw!r}")


# =============================================================================
# Checks
# =============================================================================

_MRZ_WEIGHTS = (7, 3, 1)


def mrz_check_digit(data: str) -> int:
    """ICAO 9303 check digit (weights 7-3-1, '<' counts as 0)."""
    total = 0
    for i, ch in enumerate(data):
        if ch.isdigit():
            value = int(ch)
        elif ch.isalpha():
            value = ord(ch.upper()) - ord("A") + 10
        else:
            value = 0
        total += value * _MRZ_WEIGHTS[i % 3]
    return total % 10


def _check_mrz_number(raw: str, value: Any, as_of: Optional[date]) -> Optional[str]:
    if mrz_check_digit(raw[:9]) != int(raw[9]):
        return "MRZ document number check digit mismatch"
    return None


def _check_plausible_birth_date(raw: str, value: Any, as_of: Optional[date]) -> Optional[str]:
    born = date.fromisoformat(value)
    if born.year < 1900:
        return "birth date before 1900"
    if as_of is not None:
        age = as_of.year - born.year - ((as_of.month, as_of.day) < (born.month, born.day))
        if not 18 <= age <= 110:
            return f"implausible age {age}"
    return None


def _check_not_expired(raw: str, value: Any, as_of: Optional[date]) -> Optional[str]:
    expiry = date.fromisoformat(value)
    if expiry.year > 2100:
        return "expiry date out of range"
    if as_of is not None and expiry < as_of:
        return "document expired"
    return None


def _check_date_range(raw: str, value: Any, as_of: Optional[date]) -> Optional[str]:
    parsed = date.fromisoformat(value)
    if not 1990 <= parsed.year <= 2100:
        return "date out of range"
    if as_of is not None and parsed > as_of:
        return "date is in the future"
    return None


def _check_positive(raw: str, value: Any, as_of: Optional[date]) -> Optional[str]:
    if value["amount"] <= 0:
        return "amount must be positive"
    return None


def _check_salary_floor(raw: str, value: Any, as_of: Optional[date]) -> Optional[str]:
    if value["currency"] == "XOF" and value["amount"] <= 50000:
        return "salary below plausibility floor"
    return None


def _check_phone_prefix(raw: str, value: Any, as_of: Optional[date]) -> Optional[str]:
    if value.startswith("+") and not any(value[1:].startswith(c) for c in UEMOA_DIALING_CODES.values()):
        return "phone number outside the UEMOA numbering plan"
    return None


# =============================================================================
# Rules
# =============================================================================

@dataclass(frozen=True)
class ExtractionRule:
    """
    One field extraction rule.

    Attributes:
        field: Registry field produced
        pattern: Regex; its groups joined by a space form the raw value
        confidence: Confidence when the rule matches and passes its checks
        parser: raw string -> value (raises ValueError to skip the rule)
        checks: Heuristic checks returning a failure message or None
    """
    field: str
    pattern: re.Pattern
    confidence: float
    parser: Callable[[str], Any] = _parse_upper
    checks: tuple[Check, ...] = ()


@dataclass(frozen=True)
class RuleSet:
    """Ordered rules and mandatory fields of one document type."""
    document_type: DocumentType
    rules: tuple[ExtractionRule, ...]
    mandatory_fields: tuple[str, ...]
    keywords: tuple[str, ...]


def _rx(pattern: str) -> re.Pattern:
    return re.compile(pattern, re.IGNORECASE)


_NAME = r"([A-ZÀ-ÿ' \-]+)"
_DATE = r"(\d{2}[/.\-]\d{2}[/.\-]\d{4})"
_AMOUNT = r"(-?\d[\d  .,]*(?:[  ]*(?:F\s?CFA\b|XOF\b|XAF\b|EUR\b|USD\b|€))?)"

IDENTITY_RULES = RuleSet(
    document_type=DocumentType.IDENTITY,
    rules=(
        ExtractionRule("full_name", _rx(r"(?:NOMS?\s+ET\s+PR[ÉE]NOMS?|FULL\s*NAME)\s*:\s*" + _NAME), 85, _parse_name),
        ExtractionRule("full_name", _rx(r"\bNOM\s*:\s*" + _NAME + r"\n\s*PR[ÉE]NOMS?\s*:\s*" + _NAME), 80, _parse_name),
        ExtractionRule("full_name", _rx(r"(?:SURNAME)\s*:\s*" + _NAME + r"\n\s*GIVEN\s*NAMES?\s*:\s*" + _NAME), 80, _parse_name),
        ExtractionRule(
            "birth_date",
            _rx(r"(?:N[ÉE]\(?E?\)?\s+LE|DATE\s+DE\s+NAISSANCE|DATE\s+OF\s+BIRTH|BIRTH\s*DATE)\s*:?\s*" + _DATE),
            85, _parse_date, (_check_plausible_birth_date,),
        ),
        ExtractionRule(
            "document_number",
            re.compile(r"\b([A-Z0-9<]{9}\d)[A-Z<]{3}\d{7}[MF<]\d{7}"),
            95, lambda raw: raw[:9].replace("<", ""), (_check_mrz_number,),
        ),
        ExtractionRule(
            "document_number",
            _rx(r"(?:CNI\s*N[°O]?|DOCUMENT\s*N[°O]?|PASSEPORT\s*N[°O]?|NUM[ÉE]RO|N[°O])\s*:?\s*([A-Z0-9][A-Z0-9\-/]{5,19})"),
            75, lambda raw: raw.upper(),
        ),
        ExtractionRule(
            "expiry_date",
            _rx(r"(?:DATE\s+D'?EXPIRATION|EXPIRE\s+LE|VALABLE\s+JUSQU'?\s*AU|VALID\s+UNTIL|EXPIRY\s+DATE)\s*:?\s*" + _DATE),
            80, _parse_date, (_check_not_expired,),
        ),
        ExtractionRule(
            "issuing_country",
            _rx(r"\b(C[ÔO]TE\s*D['’]?\s*IVOIRE|S[ÉE]N[ÉE]GAL|MALI|BURKINA\s*FASO|TOGO|B[ÉE]NIN|NIGER|GUIN[ÉE]E[\s\-]BISSAU)\b"),
            90, _parse_country,
        ),
    ),
    mandatory_fields=("full_name", "birth_date", "document_number"),
    keywords=("CARTE NATIONALE", "IDENTITE", "PASSEPORT", "PASSPORT", "PERMIS DE CONDUIRE",
              "CARTE DE SEJOUR", "NE LE", "DATE DE NAISSANCE", "P<"),
)

BANK_STATEMENT_RULES = RuleSet(
    document_type=DocumentType.BANK_STATEMENT,
    rules=(
        ExtractionRule(
            "bank_name",
            _rx(r"\b(SGBCI|SGCI|SOCI[ÉE]T[ÉE]\s+G[ÉE]N[ÉE]RALE|ECOBANK|BICICI|NSIA\s+BANQUE|BANK\s+OF\s+AFRICA|BOA|"
                r"CORIS\s+BANK|ORABANK|BNI|CBAO|BHCI|UBA|BANQUE\s+ATLANTIQUE|VERSUS\s+BANK|BSIC|BRS|BDU)\b"),
            90,
        ),
        ExtractionRule("account_holder", _rx(r"(?:TITULAIRE|ACCOUNT\s+HOLDER|CLIENT)\s*:\s*" + _NAME), 75, _parse_name),
        ExtractionRule("period_start", _rx(r"P[ÉE]RIODE\s+DU\s*:?\s*" + _DATE), 80, _parse_date, (_check_date_range,)),
        ExtractionRule(
            "period_end", _rx(r"P[ÉE]RIODE\s+DU\s*:?\s*\d{2}[/.\-]\d{2}[/.\-]\d{4}\s+AU\s+" + _DATE),
            80, _parse_date, (_check_date_range,),
        ),
        ExtractionRule(
            "opening_balance",
            _rx(r"SOLDE\s+(?:INITIAL|D[ÉE]BUT|ANT[ÉE]RIEUR|D'OUVERTURE)\s*:?\s*" + _AMOUNT), 85, _parse_amount,
        ),
        ExtractionRule(
            "closing_balance",
            _rx(r"SOLDE\s+(?:FINAL|FIN|NOUVEAU|ACTUEL|DE\s+CL[ÔO]TURE)\s*:?\s*" + _AMOUNT), 85, _parse_amount,
        ),
        ExtractionRule(
            "total_credits",
            _rx(r"TOTAL\s+(?:CR[ÉE]DITS?|ENTR[ÉE]ES?|VERSEMENTS?)\s*:?\s*" + _AMOUNT), 80, _parse_amount,
        ),
        ExtractionRule(
            "total_debits",
            _rx(r"TOTAL\s+(?:D[ÉE]BITS?|SORTIES?|RETRAITS?)\s*:?\s*" + _AMOUNT), 80, _parse_amount,
        ),
        ExtractionRule(
            "salary_amount",
            _rx(r"(?:VIREMENT\s+)?SALAIRE[^\n\d]*?" + _AMOUNT), 70, _parse_amount, (_check_salary_floor,),
        ),
    ),
    mandatory_fields=("bank_name", "closing_balance"),
    keywords=("RELEVE", "RELEVÉ", "SOLDE", "BANQUE", "IBAN", "EXTRAIT DE COMPTE", "TOTAL DEBIT", "TOTAL CREDIT"),
)

UTILITY_BILL_RULES = RuleSet(
    document_type=DocumentType.UTILITY_BILL,
    rules=(
        ExtractionRule(
            "utility_provider",
            _rx(r"\b(CIE|SODECI|SENELEC|SDE|SEN'EAU|EDM|SOMAGEP|SONABEL|ONEA|CEET|TDE|SBEE|SONEB|NIGELEC|SEEN|EAGB)\b"),
            90,
        ),
        ExtractionRule(
            "customer_id",
            _rx(r"(?:R[ÉE]F[ÉE]RENCE\s+CLIENT|N[°O]\s*CLIENT|CODE\s+CLIENT|CONTRAT\s+N[°O]?)\s*:?\s*([A-Z0-9][A-Z0-9\-/]{3,19})"),
            80, lambda raw: raw.upper(),
        ),
        ExtractionRule("full_name", _rx(r"(?:ABONN[ÉE]|NOM\s+DU\s+CLIENT|NOM)\s*:\s*" + _NAME), 70, _parse_name),
        ExtractionRule("address", _rx(r"(?:ADRESSE|LOCALISATION)\s*:\s*([^\n]{4,80})"), 70),
        ExtractionRule(
            "amount_due",
            _rx(r"(?:MONTANT\s+(?:[ÀA]\s+PAYER|D[ÛU]|TOTAL)|NET\s+[ÀA]\s+PAYER|TOTAL\s+TTC)\s*:?\s*" + _AMOUNT),
            85, _parse_amount, (_check_positive,),
        ),
        ExtractionRule(
            "due_date",
            _rx(r"(?:DATE\s+LIMITE(?:\s+DE\s+PAIEMENT)?|[ÉE]CH[ÉE]ANCE|[ÀA]\s+PAYER\s+AVANT\s+LE)\s*:?\s*" + _DATE),
            80, _parse_date,
        ),
    ),
    mandatory_fields=("utility_provider", "amount_due"),
    keywords=("FACTURE", "CONSOMMATION", "KWH", "ABONNE", "ABONNÉ", "COMPTEUR", "CIE", "SODECI", "SENELEC"),
)

MOBILE_MONEY_RULES = RuleSet(
    document_type=DocumentType.MOBILE_MONEY_STATEMENT,
    rules=(
        ExtractionRule(
            "momo_operator",
            _rx(r"\b(ORANGE\s*MONEY|MTN\s*MO(?:MO|BILE\s*MONEY)|MOOV\s*MONEY|WAVE|AIRTEL\s*MONEY|FREE\s*MONEY)\b"),
            90, _parse_momo_operator,
        ),
        ExtractionRule(
            "phone_number",
            _rx(r"(?:T[ÉE]L[ÉE]PHONE|NUM[ÉE]RO|MSISDN|COMPTE)\s*:?\s*(\+?\d[\d \-]{6,16}\d)"),
            85, _parse_phone, (_check_phone_prefix,),
        ),
        ExtractionRule("full_name", _rx(r"(?:TITULAIRE|NOM)\s*:\s*" + _NAME), 65, _parse_name),
        ExtractionRule(
            "momo_balance", _rx(r"SOLDE(?:\s+ACTUEL|\s+DISPONIBLE)?\s*:\s*" + _AMOUNT), 80, _parse_amount,
        ),
        ExtractionRule(
            "momo_transactions_30d",
            _rx(r"(?:NOMBRE\s+(?:DE\s+)?)?TRANSACTIONS\s*(?:\(\s*30\s*J(?:OURS)?\s*\))?\s*:\s*(\d{1,5})\b"),
            75, _parse_int,
        ),
        ExtractionRule(
            "momo_volume_30d",
            _rx(r"(?:VOLUME|MONTANT\s+TOTAL)\s*(?:\(\s*30\s*J(?:OURS)?\s*\))?\s*:\s*" + _AMOUNT),
            75, _parse_amount,
        ),
    ),
    mandatory_fields=("momo_operator", "phone_number"),
    keywords=("ORANGE MONEY", "MTN MOMO", "MOBILE MONEY", "MOOV MONEY", "WAVE", "AIRTEL MONEY",
              "TRANSFERT", "DEPOT", "RETRAIT", "MSISDN"),
)

DEFAULT_RULE_SETS: dict[DocumentType, RuleSet] = {
    rs.document_type: rs
    for rs in (IDENTITY_RULES, BANK_STATEMENT_RULES, UTILITY_BILL_RULES, MOBILE_MONEY_RULES)
}


# =============================================================================
# Document-level Checks
# =============================================================================

BALANCE_TOLERANCE = 0.02


def check_balance_reconciliation(values: dict[str, Any]) -> Optional[str]:
    """opening + credits - debits must match closing within 2%."""
    needed = ("opening_balance", "total_credits", "total_debits", "closing_balance")
    if not all(name in values for name in needed):
        return None
    currencies = {values[name]["currency"] for name in needed}
    if len(currencies) > 1:
        return f"balance mismatch: mixed currencies {', '.join(sorted(currencies))}"
    opening, credits, debits, closing = (values[name]["amount"] for name in needed)
    expected = opening + credits - debits
    if abs(expected - closing) > BALANCE_TOLERANCE * max(abs(closing), 1):
        return f"balance mismatch: opening + credits - debits = {expected}, closing = {closing}"
    return None


_DOCUMENT_CHECKS: dict[DocumentType, tuple[Callable[[dict[str, Any]], Optional[str]], ...]] = {
    DocumentType.BANK_STATEMENT: (check_balance_reconciliation,),
}


# =============================================================================
# Extractor
# =============================================================================

class DocumentExtractor:
    """
    Rule-based field extractor for OCR text.

    Usage:
        extractor = DocumentExtractor()
        result = extractor.extract(ocr_text, DocumentType.BANK_STATEMENT, as_of=date(2024, 6, 1))
    """

    def __init__(
        self,
        rule_sets: Optional[dict[DocumentType, RuleSet]] = None,
        registry: FieldRegistry = DEFAULT_FIELD_REGISTRY,
    ):
        self.rule_sets = rule_sets or DEFAULT_RULE_SETS
        self.registry = registry

    def detect_document_type(self, text: str) -> Optional[DocumentType]:
        """Most keyword hits wins; None when nothing matches."""
        folded = strip_accents(text).upper()
        best: Optional[DocumentType] = None
        best_hits = 0
        for doc_type, rule_set in self.rule_sets.items():
            hits = sum(1 for kw in rule_set.keywords if strip_accents(kw).upper() in folded)
            if hits > best_hits:
                best, best_hits = doc_type, hits
        return best

    def extract(
        self,
        text: Any,
        document_type: Union[DocumentType, str, None] = None,
        as_of: Optional[date] = None,
    ) -> DocumentExtractionResult:
        """
        Extract fields from OCR text.

        Args:
            text: OCR text
            document_type: Type of document; detected from keywords if omitted
            as_of: Reference date for expiry/age checks (skipped if None)

        Returns:
            DocumentExtractionResult (never raises)
        """
        warnings: list[str] = []
        if not isinstance(text, str) or not text.strip():
            return self._empty(None, ["empty or non-text OCR input"])
        text = unicodedata.normalize("NFKC", text)

        doc_type = self._resolve_type(text, document_type, warnings)
        if doc_type is None:
            warnings.append("document type could not be determined")
            return self._empty(None, warnings)
        rule_set = self.rule_sets[doc_type]

        fields: list[ExtractedField] = []
        seen: set[str] = set()
        for rule in rule_set.rules:
            if rule.field in seen:
                continue
            extracted = self._apply_rule(rule, text, as_of, warnings)
            if extracted is not None:
                fields.append(extracted)
                seen.add(rule.field)

        values = {f.field: f.value for f in fields if f.valid}
        document_ok = True
        for check in _DOCUMENT_CHECKS.get(doc_type, ()):
            failure = check(values)
            if failure:
                warnings.append(failure)
                document_ok = False

        missing = [name for name in rule_set.mandatory_fields if name not in seen]
        for name in missing:
            warnings.append(f"mandatory field '{name}' not found")
        invalid_mandatory = [
            f.field for f in fields if f.field in rule_set.mandatory_fields and not f.valid
        ]

        if not fields:
            warnings.append("no fields extracted")
        result = DocumentExtractionResult(
            document_type=doc_type,
            fields=tuple(fields),
            overall_confidence=self._overall_confidence(fields),
            validation_warnings=tuple(warnings),
            cross_validation_passed=bool(fields) and not missing and not invalid_mandatory and document_ok,
        )
        logger.debug(
            "Extracted %d fields from %s (confidence %.2f, cross-validated=%s)",
            len(fields), doc_type.value, result.overall_confidence, result.cross_validation_passed,
        )
        return result

    # -------------------------------------------------------------------------

    def _resolve_type(
        self,
        text: str,
        document_type: Union[DocumentType, str, None],
        warnings: list[str],
    ) -> Optional[DocumentType]:
        if isinstance(document_type, DocumentType):
            return document_type
        if isinstance(document_type, str):
            try:
                return DocumentType(document_type.lower())
            except ValueError:
                warnings.append(f"unknown document type '{document_type}', detecting from content")
        detected = self.detect_document_type(text)
        if detected is not None:
            warnings.append(f"document type detected as '{detected.value}'")
        return detected

    def _apply_rule(
        self,
        rule: ExtractionRule,
        text: str,
        as_of: Optional[date],
        warnings: list[str],
    ) -> Optional[ExtractedField]:
        match = rule.pattern.search(text)
        if match is None:
            return None
        raw = " ".join(g for g in match.groups() if g).strip()
        try:
            value = rule.parser(raw)
        except (ValueError, IndexError):
            return None

        failures = [msg for msg in (check(raw, value, as_of) for check in rule.checks) if msg]
        for msg in failures:
            warnings.append(f"{rule.field}: {msg}")
        confidence = rule.confidence * (FAILED_CHECK_PENALTY if failures else 1.0)
        return ExtractedField(
            field=rule.field,
            value=value,
            confidence=round(confidence, 2),
            source_text=match.group(0).strip(),
            valid=not failures,
        )

    def _overall_confidence(self, fields: list[ExtractedField]) -> float:
        if not fields:
            return 0.0
        weighted = 0.0
        total = 0.0
        for extracted in fields:
            spec = self.registry.find(extracted.field)
            importance = spec.importance if spec else 1.0
            weighted += extracted.confidence * importance
            total += importance
        return round(weighted / total, 2)

    def _empty(self, doc_type: Optional[DocumentType], warnings: list[str]) -> DocumentExtractionResult:
        logger.info("Extraction produced no fields: %s", "; ".join(warnings))
        return DocumentExtractionResult(
            document_type=doc_type,
            fields=(),
            overall_confidence=0.0,
            validation_warnings=tuple(warnings),
            cross_validation_passed=False,
        )
