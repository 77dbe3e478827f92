"""
Environment settings.

Policy (weights, thresholds, cutoffs) lives in policy packs; this module
only covers process-level settings read from the environment.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

DEFAULT_PACK_PATH = Path(__file__).parent / "packs" / "data" / "uemoa_default.yaml"


@dataclass(frozen=True)
class Settings:
    """
    Process settings.

    Attributes:
        log_level: Logging level name (SOVSCORE_LOG_LEVEL)
        log_format: "json" or "text" (SOVSCORE_LOG_FORMAT)
        policy_pack: Policy pack path (SOVSCORE_POLICY_PACK)
        audit_salt: Salt mixed into anonymized AML hashes (SOVSCORE_AUDIT_SALT)
    """
    log_level: str = "INFO"
    log_format: str = "json"
    policy_pack: Path = DEFAULT_PACK_PATH
    audit_salt: str = ""

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        log_format = env.get("SOVSCORE_LOG_FORMAT", "json").lower()
        if log_format not in ("json", "text"):
            log_format = "json"
        pack = env.get("SOVSCORE_POLICY_PACK")
        return cls(
            log_level=env.get("SOVSCORE_LOG_LEVEL", "INFO").upper(),
            log_format=log_format,
            policy_pack=Path(pack) if pack else DEFAULT_PACK_PATH,
            audit_salt=env.get("SOVSCORE_AUDIT_SALT", ""),
        )
