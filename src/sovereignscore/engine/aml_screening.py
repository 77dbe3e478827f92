"""
SovereignScore AML/PEP Screening Engine

Fuzzy-matches a subject's identity against a versioned sanctions/PEP
list snapshot and yields a compliance decision.

Name normalization (applied to both sides):
- diacritics stripped, case-folded, punctuation and hyphens to spaces
- leading honorifics removed (el hadj, dr, mme, ...)
- particles dropped (ben, ould, dit, ...)
- regional spelling variants folded (coulibaly -> kulibali, ...)

Similarity is Jaro-Winkler (rapidfuzz) over greedily aligned tokens, so
"Diallo Mamadou" and "Mamadou Diallo" compare as equal, with a small
penalty when one name carries extra given names. An exact national-id
match scores 1.0.

Decision policy over similarity s in [0, 1]:
    s >= high_threshold          -> HIT
    low_threshold <= s < high    -> REVIEW
    s < low_threshold            -> CLEAR

Fail-closed: when the list snapshot cannot be obtained the decision is
REVIEW. The audit record keeps only a salted hash of the normalized name.
"""
from __future__ import annotations

import asyncio
import json
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Optional, Protocol, Sequence, Union, runtime_checkable

import yaml
from pydantic import ValidationError as PydanticValidationError
from rapidfuzz.distance import JaroWinkler

from ..canon import text_hash
from ..exceptions import ExternalFetchError, MissingFieldError, SanctionsFetchError, ensure_bounds
from ..models.enums import AMLDecision, ListSource, MatchType
from ..models.policy import AMLConfig
from ..models.screening import (
    AMLAuditRecord,
    PEPCategory,
    SanctionEntry,
    SanctionsListSnapshot,
    ScreeningMatch,
    ScreeningResult,
    SubjectIdentity,
)
from ..schemas import parse_sanctions_file
from .normalizers import collapse_whitespace, strip_accents

logger = logging.getLogger(__name__)

_NON_LETTERS = re.compile(r"[^a-z0-9]+")

_DECISION_ORDER = (AMLDecision.CLEAR, AMLDecision.REVIEW, AMLDecision.HIT)


def _fold(text: str) -> str:
    return collapse_whitespace(_NON_LETTERS.sub(" ", strip_accents(text).casefold()))


def _strictest(decisions: Sequence[AMLDecision]) -> AMLDecision:
    return max(decisions, key=_DECISION_ORDER.index, default=AMLDecision.CLEAR)


# =============================================================================
# List Sources
# =============================================================================

@runtime_checkable
class SanctionsSource(Protocol):
    """Compliance-data collaborator serving the current list snapshot."""

    async def fetch(self) -> SanctionsListSnapshot:
        ...


def load_sanctions_file(path: Union[str, Path]) -> SanctionsListSnapshot:
    """
    Load a sanctions/PEP snapshot from a YAML or JSON file.

    Raises:
        SanctionsFetchError: If the file cannot be read or validated
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            if path.suffix.lower() == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
        raise SanctionsFetchError(
            message=f"Cannot read sanctions list {path}: {e}",
            details={"path": str(path)},
        ) from e
    try:
        return parse_sanctions_file(data)
    except PydanticValidationError as e:
        raise SanctionsFetchError(
            message=f"Sanctions list {path} failed validation: {e.error_count()} errors",
            details={"path": str(path), "errors": e.errors()},
        ) from e


class StaticSanctionsSource:
    """Serves a snapshot already in memory."""

    def __init__(self, snapshot: SanctionsListSnapshot):
        self.snapshot = snapshot

    async def fetch(self) -> SanctionsListSnapshot:
        return self.snapshot


class FileSanctionsSource:
    """Reads the snapshot from a YAML/JSON file on every fetch."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    async def fetch(self) -> SanctionsListSnapshot:
        return await asyncio.to_thread(load_sanctions_file, self.path)


# =============================================================================
# Engine
# =============================================================================

class AMLScreeningEngine:
    """
    Screens identities against sanctions/PEP list snapshots.

    Usage:
        engine = AMLScreeningEngine()
        result = engine.screen(identity, snapshot, as_of)
        result = await engine.screen_with_source(identity, source, as_of)
    """

    def __init__(self, config: Optional[AMLConfig] = None):
        self.config = config or AMLConfig()
        self._titles = sorted((_fold(t) for t in self.config.titles), key=len, reverse=True)
        self._particles = frozenset(_fold(p) for p in self.config.particles)
        self._variants = {_fold(k): _fold(v) for k, v in self.config.name_variants.items()}

    # =========================================================================
    # Normalization & similarity
    # =========================================================================

    def normalize_name(self, name: str) -> tuple[str, ...]:
        """Comparable tokens of a personal name."""
        text = _fold(name)
        stripped = True
        while stripped:
            stripped = False
            for title in self._titles:
                if text.startswith(title + " "):
                    text = text[len(title) + 1:]
                    stripped = True
                    break
        tokens = text.split()
        kept = [t for t in tokens if t not in self._particles] or tokens
        return tuple(self._variants.get(t, t) for t in kept)

    def _token_similarity(self, a: str, b: str) -> float:
        return JaroWinkler.normalized_similarity(a, b, prefix_weight=self.config.prefix_weight)

    def _aligned_similarity(self, short: Sequence[str], long: Sequence[str]) -> float:
        remaining = list(long)
        total = 0.0
        weight = 0
        for token in short:
            index, best = max(
                ((i, self._token_similarity(token, other)) for i, other in enumerate(remaining)),
                key=lambda pair: (pair[1], -pair[0]),
            )
            pair_weight = len(token) + len(remaining[index])
            total += best * pair_weight
            weight += pair_weight
            remaining.pop(index)
        return total / weight

    def token_similarity(self, a: Sequence[str], b: Sequence[str]) -> float:
        """
        Similarity of two normalized token sequences. Symmetric in a and b.

        Each token of the shorter name is paired with its best unused
        counterpart in the longer one; pair scores are averaged by the
        combined length of both tokens and scaled by how much of the
        longer name was covered. Equal-length names are aligned from both
        sides and the better alignment kept. Names differing only by
        spacing ("abdoulaziz" / "abdoul aziz") are also compared as
        joined strings.
        """
        if not a or not b:
            return 0.0
        if len(a) == len(b):
            score = max(self._aligned_similarity(a, b), self._aligned_similarity(b, a))
        else:
            short, long = (a, b) if len(a) < len(b) else (b, a)
            coverage = len(short) / len(long)
            score = self._aligned_similarity(short, long) * (0.8 + 0.2 * coverage)
            score = max(score, self._token_similarity("".join(sorted(a)), "".join(sorted(b))),
                        self._token_similarity("".join(a), "".join(b)))
        return score

    def similarity(self, name_a: str, name_b: str) -> float:
        """Similarity in [0, 1] of two raw names, rounded to 4 places."""
        score = round(self.token_similarity(self.normalize_name(name_a), self.normalize_name(name_b)), 4)
        return ensure_bounds("similarity", score, 0.0, 1.0)

    def decision_for(self, similarity: float) -> AMLDecision:
        if similarity >= self.config.high_threshold:
            return AMLDecision.HIT
        if similarity >= self.config.low_threshold:
            return AMLDecision.REVIEW
        return AMLDecision.CLEAR

    # =========================================================================
    # Matching
    # =========================================================================

    def _match_entry(
        self,
        tokens: tuple[str, ...],
        identity: SubjectIdentity,
        entry: SanctionEntry,
    ) -> Optional[ScreeningMatch]:
        best_score = 0.0
        best_name = entry.name
        best_type = MatchType.NAME

        if identity.national_id and entry.national_id:
            if _fold(identity.national_id).replace(" ", "") == _fold(entry.national_id).replace(" ", ""):
                best_score, best_type = 1.0, MatchType.NATIONAL_ID

        candidates = [(entry.name, MatchType.NAME)] + [(alias, MatchType.ALIAS) for alias in entry.aliases]
        for name, match_type in candidates:
            if best_score >= 1.0:
                break
            score = round(self.token_similarity(tokens, self.normalize_name(name)), 4)
            if score > best_score:
                best_score, best_name, best_type = score, name, match_type

        if best_score < self.config.low_threshold:
            return None

        decision = self.decision_for(best_score)
        if decision == AMLDecision.HIT:
            # PEP listings and contradicting birth dates call for review, not a block
            if entry.list_source == ListSource.PEP:
                decision = AMLDecision.REVIEW
            elif (best_type != MatchType.NATIONAL_ID and identity.date_of_birth and entry.date_of_birth
                    and identity.date_of_birth[:4] != entry.date_of_birth[:4]):
                decision = AMLDecision.REVIEW

        return ScreeningMatch(
            entry_id=entry.entry_id,
            list_source=entry.list_source,
            matched_name=best_name,
            match_type=best_type,
            similarity=ensure_bounds("similarity", best_score, 0.0, 1.0),
            decision=decision,
        )

    def detect_pep(self, identity: SubjectIdentity) -> Optional[PEPCategory]:
        """
        PEP category detected from occupation or employer keywords.

        The longest matching keyword decides ("directeur general" beats
        "general"); ties go to the higher risk weight.
        """
        text = " " + _fold(" ".join(filter(None, (identity.occupation, identity.employer)))) + " "
        if not text.strip():
            return None
        matched: list[tuple[int, PEPCategory]] = [
            (len(_fold(keyword)), category)
            for category in self.config.pep_categories
            for keyword in category.keywords
            if f" {_fold(keyword)} " in text
        ]
        if not matched:
            return None
        return min(matched, key=lambda m: (-m[0], -m[1].risk_weight, m[1].code))[1]

    def name_hash(self, tokens: Sequence[str]) -> str:
        """Salted one-way hash of a normalized name."""
        return text_hash(f"{self.config.audit_salt}|{' '.join(tokens)}")

    # =========================================================================
    # Screening
    # =========================================================================

    def screen(
        self,
        identity: SubjectIdentity,
        snapshot: Optional[SanctionsListSnapshot],
        as_of: datetime,
        unavailable_reason: Optional[str] = None,
    ) -> ScreeningResult:
        """
        Screen one identity.

        A None snapshot means the list could not be obtained; the outcome
        is then REVIEW.

        Raises:
            MissingFieldError: If the name has no comparable tokens
        """
        tokens = self.normalize_name(identity.full_name or "")
        if not tokens:
            raise MissingFieldError(
                message="Subject identity has no usable full_name",
                details={"field": "full_name"},
            )

        reasons: list[str] = []
        matches: list[ScreeningMatch] = []
        if snapshot is None:
            reasons.append(f"sanctions list unavailable: {unavailable_reason or 'no snapshot'}")
            decisions = [AMLDecision.REVIEW]
        else:
            for entry in snapshot.entries:
                match = self._match_entry(tokens, identity, entry)
                if match is not None:
                    matches.append(match)
            matches.sort(key=lambda m: (-m.similarity, m.entry_id))
            decisions = [m.decision for m in matches]
            for match in matches:
                reasons.append(
                    f"{match.decision.value.lower()}: {match.list_source.value} {match.entry_id} "
                    f"({match.match_type.value}, similarity {match.similarity:.4f})"
                )

        pep = self.detect_pep(identity)
        if pep is not None:
            reasons.append(f"PEP occupation detected: {pep.code}")
            if self.config.pep_occupation_review:
                decisions.append(AMLDecision.REVIEW)

        decision = _strictest(decisions)
        record = AMLAuditRecord(
            name_hash=self.name_hash(tokens),
            decision=decision,
            list_version=snapshot.version if snapshot else None,
            match_count=len(matches),
            top_similarity=matches[0].similarity if matches else 0.0,
            matched_entry_ids=tuple(m.entry_id for m in matches),
            pep_category=pep.code if pep else None,
            low_threshold=self.config.low_threshold,
            high_threshold=self.config.high_threshold,
            screened_at=as_of,
            reasons=tuple(reasons),
        )
        logger.info(
            "Screening decision %s (%d candidates)", decision.value, len(matches),
            extra={"decision": decision.value, "list_version": record.list_version},
        )
        return ScreeningResult(
            decision=decision,
            matches=tuple(matches),
            pep=pep,
            audit_record=record,
        )

    async def screen_with_source(
        self,
        identity: SubjectIdentity,
        source: Optional[SanctionsSource],
        as_of: datetime,
    ) -> ScreeningResult:
        """Fetch the current snapshot and screen; fetch failure yields REVIEW."""
        snapshot: Optional[SanctionsListSnapshot] = None
        reason: Optional[str] = None
        if source is None:
            reason = "no sanctions source configured"
        else:
            try:
                snapshot = await asyncio.wait_for(source.fetch(), timeout=self.config.fetch_timeout_seconds)
            except asyncio.TimeoutError:
                reason = "fetch timed out"
                logger.warning("Sanctions list fetch failed, failing closed: %s", reason)
            except ExternalFetchError as e:
                reason = e.message
                logger.warning("Sanctions list fetch failed, failing closed: %s", reason)
            except Exception as e:
                reason = f"{type(e).__name__}: {e}"
                logger.warning("Sanctions list fetch failed, failing closed: %s", reason, exc_info=True)
        return self.screen(identity, snapshot, as_of, unavailable_reason=reason)
