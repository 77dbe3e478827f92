"""
SovereignScore CLI

Command-line runner for the scoring pipeline.

Usage:
    sovscore score --request request.json --sanctions sanctions.yaml [--keys keys.yaml]
    sovscore screen --name "Mamadou Diallo" --sanctions sanctions.yaml
    sovscore extract --text releve.txt --type bank_statement
    sovscore validate-pack --pack uemoa_default.yaml

Exit Codes:
    0   PASS            - Scored / clear / valid
    2   REVIEW_REQUIRED - Manual compliance review required
    4   BLOCK           - Sanctions hit, result withheld
    10  INPUT_INVALID   - Invalid input file or arguments
    11  PACK_ERROR      - Policy pack validation/loading failed
    20  INTERNAL_ERROR  - Unexpected internal error

All results are written to stdout as JSON; logs go to stderr.
"""
from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Sequence

import yaml

from . import __version__
from .config import Settings
from .engine.aml_screening import AMLScreeningEngine, FileSanctionsSource, load_sanctions_file
from .engine.document_extractor import DocumentExtractor
from .engine.pipeline import ScoringPipeline
from .engine.regional_context import StaticRegionalFeed
from .exceptions import (
    ExternalFetchError,
    InputError,
    PolicyLoadError,
    PolicyValidationError,
    PolicyVersionMismatch,
    SovereignScoreError,
)
from .log import configure_logging
from .models import AMLDecision, ScoreStatus, ScoringPolicy, SubjectIdentity
from .packs import PolicyPackLoader
from .schemas import parse_score_request

logger = logging.getLogger(__name__)


# =============================================================================
# Exit Codes
# =============================================================================

class ExitCode:
    """Deterministic exit codes for pipeline integration."""
    PASS = 0              # Scored / clear
    REVIEW_REQUIRED = 2   # Manual compliance review
    BLOCK = 4             # Sanctions hit
    INPUT_INVALID = 10    # Invalid input files
    PACK_ERROR = 11       # Pack validation/loading failed
    INTERNAL_ERROR = 20   # Unexpected error


_STATUS_EXIT = {
    ScoreStatus.SCORED: ExitCode.PASS,
    ScoreStatus.REVIEW: ExitCode.REVIEW_REQUIRED,
    ScoreStatus.BLOCKED: ExitCode.BLOCK,
}

_DECISION_EXIT = {
    AMLDecision.CLEAR: ExitCode.PASS,
    AMLDecision.REVIEW: ExitCode.REVIEW_REQUIRED,
    AMLDecision.HIT: ExitCode.BLOCK,
}


# =============================================================================
# Output
# =============================================================================

def json_dumps(obj: Any, indent: int = 2) -> str:
    """Serialize to JSON; datetimes and enums fall back to str."""
    return json.dumps(obj, indent=indent, sort_keys=True, ensure_ascii=False, default=str)


def print_json(obj: Any) -> None:
    print(json_dumps(obj))


def print_error(error: Any) -> None:
    payload = error.to_dict() if isinstance(error, SovereignScoreError) else {"message": str(error)}
    print(json_dumps({"error": payload}), file=sys.stderr)


# =============================================================================
# Loading
# =============================================================================

def _read_data(path: Path) -> Any:
    """Read a JSON or YAML document."""
    with open(path, "r", encoding="utf-8") as f:
        if path.suffix.lower() == ".json":
            return json.load(f)
        return yaml.safe_load(f)


def _load_policy(pack: Optional[str], settings: Settings) -> ScoringPolicy:
    policy = PolicyPackLoader().load(pack or settings.policy_pack)
    if settings.audit_salt:
        policy = dataclasses.replace(policy, aml=dataclasses.replace(policy.aml, audit_salt=settings.audit_salt))
    return policy


def _load_keys(path: Optional[str]) -> dict[str, bytes]:
    """Partner verification keys: a mapping of partner_id to secret."""
    if not path:
        return {}
    data = _read_data(Path(path))
    if not isinstance(data, dict):
        raise InputError(
            message="Keys file must map partner ids to secrets",
            details={"path": path},
        )
    return {str(partner_id): str(secret).encode("utf-8") for partner_id, secret in data.items()}


# =============================================================================
# Commands
# =============================================================================

def cmd_score(args: argparse.Namespace, settings: Settings) -> int:
    """Score one request file."""
    try:
        policy = _load_policy(args.pack, settings)
    except (PolicyLoadError, PolicyValidationError, PolicyVersionMismatch) as e:
        print_error(e)
        return ExitCode.PACK_ERROR

    try:
        request = parse_score_request(_read_data(Path(args.request)))
        keys = _load_keys(args.keys)
        feed = StaticRegionalFeed.from_file(args.indicators) if args.indicators else StaticRegionalFeed()
    except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
        print_error(e)
        return ExitCode.INPUT_INVALID
    except (InputError, ExternalFetchError) as e:
        print_error(e)
        return ExitCode.INPUT_INVALID

    pipeline = ScoringPipeline(
        policy,
        keys=keys,
        regional_feed=feed,
        sanctions_source=FileSanctionsSource(args.sanctions) if args.sanctions else None,
    )
    try:
        result = asyncio.run(pipeline.score(request))
    except InputError as e:
        print_error(e)
        return ExitCode.INPUT_INVALID

    print_json(result.to_dict())
    return _STATUS_EXIT[result.status]


def cmd_screen(args: argparse.Namespace, settings: Settings) -> int:
    """Screen one identity against a sanctions list file."""
    try:
        policy = _load_policy(args.pack, settings)
    except (PolicyLoadError, PolicyValidationError, PolicyVersionMismatch) as e:
        print_error(e)
        return ExitCode.PACK_ERROR

    try:
        snapshot = load_sanctions_file(args.sanctions)
    except ExternalFetchError as e:
        print_error(e)
        return ExitCode.INPUT_INVALID

    identity = SubjectIdentity(
        full_name=args.name,
        date_of_birth=args.dob,
        national_id=args.national_id,
        occupation=args.occupation,
        employer=args.employer,
    )
    try:
        result = AMLScreeningEngine(policy.aml).screen(identity, snapshot, datetime.now(timezone.utc))
    except InputError as e:
        print_error(e)
        return ExitCode.INPUT_INVALID

    print_json(result.to_dict())
    return _DECISION_EXIT[result.decision]


def cmd_extract(args: argparse.Namespace, settings: Settings) -> int:
    """Extract fields from an OCR text file."""
    try:
        text = Path(args.text).read_text(encoding="utf-8")
    except OSError as e:
        print_error(e)
        return ExitCode.INPUT_INVALID

    as_of = datetime.now(timezone.utc).date()
    result = DocumentExtractor().extract(text, args.type, as_of=as_of)
    print_json(result.to_dict())
    return ExitCode.PASS if result.fields else ExitCode.INPUT_INVALID


def cmd_validate_pack(args: argparse.Namespace, settings: Settings) -> int:
    """Validate a policy pack file."""
    try:
        policy = PolicyPackLoader().load(args.pack)
    except (PolicyLoadError, PolicyValidationError, PolicyVersionMismatch) as e:
        print_error(e)
        return ExitCode.PACK_ERROR

    print_json({
        "valid": True,
        "id": policy.id,
        "version": policy.version,
        "policy_hash": policy.policy_hash,
        "fields": len(policy.fields),
        "attestation_types": sorted(policy.attestation_types),
        "model_version": policy.scoring.model_version,
    })
    return ExitCode.PASS


# =============================================================================
# Main
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sovscore",
        description="SovereignScore - sovereign scoring and verification pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit Codes:
  0   PASS            Scored / clear / valid
  2   REVIEW_REQUIRED Manual compliance review
  4   BLOCK           Sanctions hit
  10  INPUT_INVALID   Invalid input files
  11  PACK_ERROR      Pack validation failed
  20  INTERNAL_ERROR  Unexpected error
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    score_parser = subparsers.add_parser("score", help="Score a request file")
    score_parser.add_argument("--request", "-r", required=True, help="Score request JSON/YAML file")
    score_parser.add_argument("--pack", "-p", help="Policy pack file (default: bundled UEMOA pack)")
    score_parser.add_argument("--sanctions", "-s", help="Sanctions list JSON/YAML file")
    score_parser.add_argument("--indicators", "-i", help="Regional indicator seed file")
    score_parser.add_argument("--keys", "-k", help="Partner verification keys JSON/YAML file")
    score_parser.set_defaults(func=cmd_score)

    screen_parser = subparsers.add_parser("screen", help="Screen a name against a sanctions list")
    screen_parser.add_argument("--name", "-n", required=True, help="Full name")
    screen_parser.add_argument("--sanctions", "-s", required=True, help="Sanctions list JSON/YAML file")
    screen_parser.add_argument("--dob", help="Date of birth (YYYY-MM-DD)")
    screen_parser.add_argument("--national-id", help="National identity number")
    screen_parser.add_argument("--occupation", help="Declared occupation")
    screen_parser.add_argument("--employer", help="Declared employer")
    screen_parser.add_argument("--pack", "-p", help="Policy pack file")
    screen_parser.set_defaults(func=cmd_screen)

    extract_parser = subparsers.add_parser("extract", help="Extract fields from OCR text")
    extract_parser.add_argument("--text", "-t", required=True, help="OCR text file")
    extract_parser.add_argument(
        "--type",
        choices=["identity", "bank_statement", "utility_bill", "mobile_money_statement"],
        help="Document type (detected when omitted)",
    )
    extract_parser.set_defaults(func=cmd_extract)

    pack_parser = subparsers.add_parser("validate-pack", help="Validate a policy pack file")
    pack_parser.add_argument("--pack", "-p", required=True, help="Policy pack YAML/JSON file")
    pack_parser.set_defaults(func=cmd_validate_pack)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    settings = Settings.from_env()
    configure_logging(settings.log_level, json_format=settings.log_format == "json")

    try:
        return args.func(args, settings)
    except SovereignScoreError as e:
        logger.error("Command %s failed: %s", args.command, e)
        print_error(e)
        return ExitCode.INTERNAL_ERROR


if __name__ == "__main__":
    sys.exit(main())
