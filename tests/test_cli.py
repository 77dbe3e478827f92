"""
CLI Tests

Tests cover:
- Exit codes per command outcome
- JSON output on stdout
- Input and pack errors
"""
from __future__ import annotations

import json

import pytest

from sovereignscore.cli import ExitCode, main
from sovereignscore.config import DEFAULT_PACK_PATH

SANCTIONS_YAML = """
version: "2024-05-30"
entries:
  - entry_id: UN-QDi.001
    name: Mamadou Diallo
    list_source: UN_CONSOLIDATED
    date_of_birth: "1975-04-12"
"""

IDENTITY_TEXT = """REPUBLIQUE DE COTE D'IVOIRE
CARTE NATIONALE D'IDENTITE
NOM ET PRENOMS: KONE AWA
NE(E) LE: 15/03/1990
CNI N° CI0012345678
"""


def request_data(full_name: str = "Awa Koné", country: str = "CI") -> dict:
    verified_at = "2024-05-22T12:00:00Z"
    return {
        "subject_id": "sub-001",
        "country": country,
        "as_of": "2024-06-01T12:00:00Z",
        "identity": {"full_name": full_name, "date_of_birth": "1990-03-15"},
        "sources": [
            {"source_id": "cni:full_name", "source_name": "CNI", "source_type": "ocr",
             "status": "verified", "confidence": 90, "field": "full_name",
             "raw_value": "Awa Koné", "verified_at": verified_at},
            {"source_id": "api:monthly_income", "source_name": "Payroll API", "source_type": "api",
             "confidence": 92, "field": "monthly_income", "raw_value": "350 000 FCFA",
             "verified_at": verified_at},
            {"source_id": "decl:monthly_expenses", "source_name": "Applicant declaration",
             "source_type": "user_input", "confidence": 50, "field": "monthly_expenses",
             "raw_value": "120 000"},
        ],
    }


@pytest.fixture
def sanctions_file(tmp_path):
    path = tmp_path / "sanctions.yaml"
    path.write_text(SANCTIONS_YAML, encoding="utf-8")
    return str(path)


@pytest.fixture
def request_file(tmp_path):
    def write(data: dict) -> str:
        path = tmp_path / "request.json"
        path.write_text(json.dumps(data), encoding="utf-8")
        return str(path)
    return write


def stdout_json(capsys) -> dict:
    return json.loads(capsys.readouterr().out)


# =============================================================================
# score
# =============================================================================

class TestScoreCommand:
    """sovscore score"""

    def test_scored(self, capsys, sanctions_file, request_file) -> None:
        code = main(["score", "--request", request_file(request_data()), "--sanctions", sanctions_file])
        assert code == ExitCode.PASS
        output = stdout_json(capsys)
        assert output["status"] == "SCORED"
        assert 0 <= output["score"] <= 100

    def test_blocked(self, capsys, sanctions_file, request_file) -> None:
        data = request_data("Mamadou Diallo")
        data["identity"]["date_of_birth"] = "1975-04-12"
        code = main(["score", "--request", request_file(data), "--sanctions", sanctions_file])
        assert code == ExitCode.BLOCK
        output = stdout_json(capsys)
        assert output["status"] == "BLOCKED"
        assert output["score"] is None

    def test_without_sanctions_list_reviews(self, capsys, request_file) -> None:
        assert main(["score", "--request", request_file(request_data())]) == ExitCode.REVIEW_REQUIRED
        assert stdout_json(capsys)["status"] == "REVIEW"

    def test_invalid_request(self, request_file, sanctions_file) -> None:
        path = request_file(request_data(country="C1"))
        assert main(["score", "--request", path, "--sanctions", sanctions_file]) == ExitCode.INPUT_INVALID

    def test_missing_request_file(self, tmp_path) -> None:
        assert main(["score", "--request", str(tmp_path / "absent.json")]) == ExitCode.INPUT_INVALID

    def test_bad_pack(self, tmp_path, request_file) -> None:
        pack = tmp_path / "pack.yaml"
        pack.write_text("schema_version: '9.0.0'\nid: x\nversion: '1'\n", encoding="utf-8")
        code = main(["score", "--request", request_file(request_data()), "--pack", str(pack)])
        assert code == ExitCode.PACK_ERROR


# =============================================================================
# screen
# =============================================================================

class TestScreenCommand:
    """sovscore screen"""

    def test_hit(self, capsys, sanctions_file) -> None:
        code = main(["screen", "--name", "Mamadou Diallo", "--dob", "1975-04-12", "--sanctions", sanctions_file])
        assert code == ExitCode.BLOCK
        output = stdout_json(capsys)
        assert output["decision"] == "HIT"
        assert output["matches"][0]["entry_id"] == "UN-QDi.001"

    def test_clear(self, capsys, sanctions_file) -> None:
        assert main(["screen", "--name", "Awa Koné", "--sanctions", sanctions_file]) == ExitCode.PASS
        assert stdout_json(capsys)["decision"] == "CLEAR"

    def test_pep_occupation(self, sanctions_file) -> None:
        code = main([
            "screen", "--name", "Awa Koné", "--occupation", "Député", "--sanctions", sanctions_file,
        ])
        assert code == ExitCode.REVIEW_REQUIRED

    def test_unreadable_list(self, tmp_path) -> None:
        code = main(["screen", "--name", "Awa Koné", "--sanctions", str(tmp_path / "absent.yaml")])
        assert code == ExitCode.INPUT_INVALID


# =============================================================================
# extract / validate-pack
# =============================================================================

class TestExtractCommand:
    """sovscore extract"""

    def test_identity_card(self, capsys, tmp_path) -> None:
        path = tmp_path / "cni.txt"
        path.write_text(IDENTITY_TEXT, encoding="utf-8")
        assert main(["extract", "--text", str(path), "--type", "identity"]) == ExitCode.PASS
        output = stdout_json(capsys)
        assert output["document_type"] == "identity"
        assert {f["field"] for f in output["fields"]} >= {"full_name", "birth_date", "document_number"}

    def test_empty_text(self, tmp_path) -> None:
        path = tmp_path / "blank.txt"
        path.write_text("   \n", encoding="utf-8")
        assert main(["extract", "--text", str(path)]) == ExitCode.INPUT_INVALID


class TestValidatePackCommand:
    """sovscore validate-pack"""

    def test_bundled_pack(self, capsys) -> None:
        assert main(["validate-pack", "--pack", str(DEFAULT_PACK_PATH)]) == ExitCode.PASS
        output = stdout_json(capsys)
        assert output["valid"] is True
        assert output["id"] == "uemoa-default"

    def test_invalid_pack(self, tmp_path) -> None:
        pack = tmp_path / "pack.yaml"
        pack.write_text("schema_version: '1.0.0'\nversion: '1'\n", encoding="utf-8")
        assert main(["validate-pack", "--pack", str(pack)]) == ExitCode.PACK_ERROR


def test_no_command() -> None:
    assert main([]) == 1
