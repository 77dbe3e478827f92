"""
Document Extractor Tests

Tests cover:
- Identity, bank statement and mobile money rule sets
- MRZ check digits and heuristic checks
- Document type detection
- Never-raise behaviour on bad input
"""
from datetime import date

import pytest

from sovereignscore.engine import mrz_check_digit
from sovereignscore.models import DocumentType

AS_OF = date(2024, 6, 1)

IDENTITY_TEXT = """REPUBLIQUE DE COTE D'IVOIRE
CARTE NATIONALE D'IDENTITE
NOM ET PRENOMS: KONE AWA
NE(E) LE: 15/03/1990
CNI N° CI0012345678
DATE D'EXPIRATION: 20/10/2030
"""

BANK_TEXT = """ECOBANK COTE D'IVOIRE
RELEVE DE COMPTE
TITULAIRE: KONE AWA
PERIODE DU 01/05/2024 AU 31/05/2024
SOLDE INITIAL: 100 000
TOTAL CREDITS: 350 000
TOTAL DEBITS: 200 000
SOLDE FINAL: {closing}
VIREMENT SALAIRE MAI 350 000
"""

MOMO_TEXT = """ORANGE MONEY - RELEVE DE COMPTE
NUMERO: 07 07 12 34 56
TITULAIRE: KONE AWA
SOLDE ACTUEL: 45 000 FCFA
NOMBRE DE TRANSACTIONS (30 JOURS): 84
VOLUME (30 JOURS): 310 000 FCFA
"""

MRZ_LINE = "L898902C3{digit}UTO7408122F1204159ZE184226B<<<<<10"


def values(result):
    return {f.field: f.value for f in result.fields}


def xof(amount):
    return {"amount": amount, "currency": "XOF"}


# =============================================================================
# Identity
# =============================================================================

class TestIdentityExtraction:
    """National ID card extraction."""

    def test_fields_extracted(self, extractor):
        """All identity fields are read and parsed."""
        result = extractor.extract(IDENTITY_TEXT, DocumentType.IDENTITY, as_of=AS_OF)
        assert values(result) == {
            "full_name": "KONE AWA",
            "birth_date": "1990-03-15",
            "document_number": "CI0012345678",
            "expiry_date": "2030-10-20",
            "issuing_country": "CI",
        }
        assert result.cross_validation_passed
        assert result.validation_warnings == ()

    def test_overall_confidence_is_importance_weighted(self, extractor):
        """Overall confidence weights each field by registry importance."""
        result = extractor.extract(IDENTITY_TEXT, "identity", as_of=AS_OF)
        # (85*3 + 85*2 + 75*2 + 80*1 + 90*1) / 9
        assert result.overall_confidence == pytest.approx(82.78)

    def test_expired_document_flagged(self, extractor):
        """An expired card keeps the value at half confidence."""
        text = IDENTITY_TEXT.replace("20/10/2030", "20/10/2020")
        result = extractor.extract(text, DocumentType.IDENTITY, as_of=AS_OF)
        expiry = result.get("expiry_date")
        assert not expiry.valid
        assert expiry.confidence == 40.0
        assert "expiry_date: document expired" in result.validation_warnings

    def test_missing_mandatory_field(self, extractor):
        """A missing birth date fails cross-validation."""
        text = IDENTITY_TEXT.replace("NE(E) LE: 15/03/1990\n", "")
        result = extractor.extract(text, DocumentType.IDENTITY, as_of=AS_OF)
        assert not result.cross_validation_passed
        assert "mandatory field 'birth_date' not found" in result.validation_warnings


class TestMRZ:
    """ICAO 9303 machine readable zone."""

    def test_check_digit(self):
        """Reference specimen number L898902C3 has check digit 6."""
        assert mrz_check_digit("L898902C3") == 6

    def test_valid_mrz_number(self, extractor):
        """A correct MRZ line gives the document number at high confidence."""
        text = "PASSEPORT\nNOM ET PRENOMS: ERIKSSON ANNA\n" + MRZ_LINE.format(digit=6)
        result = extractor.extract(text, DocumentType.IDENTITY, as_of=AS_OF)
        number = result.get("document_number")
        assert number.value == "L898902C3"
        assert number.confidence == 95
        assert number.valid

    def test_tampered_mrz_number(self, extractor):
        """A wrong check digit halves the confidence."""
        text = "PASSEPORT\n" + MRZ_LINE.format(digit=5)
        result = extractor.extract(text, DocumentType.IDENTITY, as_of=AS_OF)
        number = result.get("document_number")
        assert not number.valid
        assert number.confidence == 47.5
        assert "document_number: MRZ document number check digit mismatch" in result.validation_warnings


# =============================================================================
# Bank statements
# =============================================================================

class TestBankStatementExtraction:
    """Bank statement extraction and balance reconciliation."""

    def test_fields_extracted(self, extractor):
        result = extractor.extract(BANK_TEXT.format(closing="250 000"), DocumentType.BANK_STATEMENT, as_of=AS_OF)
        extracted = values(result)
        assert extracted["bank_name"] == "ECOBANK"
        assert extracted["account_holder"] == "KONE AWA"
        assert extracted["period_start"] == "2024-05-01"
        assert extracted["period_end"] == "2024-05-31"
        assert extracted["opening_balance"] == xof(100000)
        assert extracted["closing_balance"] == xof(250000)
        assert extracted["salary_amount"] == xof(350000)
        assert result.cross_validation_passed

    def test_balance_mismatch(self, extractor):
        """opening + credits - debits must reconcile with closing."""
        result = extractor.extract(BANK_TEXT.format(closing="400 000"), DocumentType.BANK_STATEMENT, as_of=AS_OF)
        assert not result.cross_validation_passed
        assert any(w.startswith("balance mismatch") for w in result.validation_warnings)

    def test_currency_kept(self, extractor):
        """Amounts keep their decimals and currency."""
        text = BANK_TEXT.format(closing="250 000").replace("SOLDE INITIAL: 100 000", "SOLDE INITIAL: 1 500,50 EUR")
        result = extractor.extract(text, DocumentType.BANK_STATEMENT, as_of=AS_OF)
        assert values(result)["opening_balance"] == {"amount": 1500.5, "currency": "EUR"}
        assert "balance mismatch: mixed currencies EUR, XOF" in result.validation_warnings
        assert not result.cross_validation_passed


# =============================================================================
# Mobile money
# =============================================================================

class TestMobileMoneyExtraction:
    """Mobile money statement extraction."""

    def test_fields_extracted(self, extractor):
        result = extractor.extract(MOMO_TEXT, DocumentType.MOBILE_MONEY_STATEMENT, as_of=AS_OF)
        extracted = values(result)
        assert extracted["momo_operator"] == "Orange Money"
        assert extracted["phone_number"] == "0707123456"
        assert extracted["momo_balance"] == xof(45000)
        assert extracted["momo_transactions_30d"] == 84
        assert extracted["momo_volume_30d"] == xof(310000)
        assert result.cross_validation_passed


# =============================================================================
# Robustness
# =============================================================================

class TestRobustness:
    """Extraction never raises."""

    @pytest.mark.parametrize("text", ["", "   ", None, 42])
    def test_empty_or_non_text(self, extractor, text):
        """Unusable input yields an empty, zero-confidence result."""
        result = extractor.extract(text, DocumentType.IDENTITY)
        assert result.fields == ()
        assert result.overall_confidence == 0.0
        assert "empty or non-text OCR input" in result.validation_warnings

    def test_type_detection(self, extractor):
        """Identity keywords select the identity rule set."""
        result = extractor.extract(IDENTITY_TEXT, as_of=AS_OF)
        assert result.document_type == DocumentType.IDENTITY
        assert "document type detected as 'identity'" in result.validation_warnings

    def test_unrecognized_text(self, extractor):
        """Text without any keyword is reported, not raised."""
        result = extractor.extract("lorem ipsum dolor sit amet")
        assert result.document_type is None
        assert "document type could not be determined" in result.validation_warnings

    def test_unknown_declared_type_falls_back_to_detection(self, extractor):
        result = extractor.extract(IDENTITY_TEXT, "passport_card", as_of=AS_OF)
        assert result.document_type == DocumentType.IDENTITY
        assert "unknown document type 'passport_card', detecting from content" in result.validation_warnings
