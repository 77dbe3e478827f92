"""
SovereignScore Regional Context Provider

Supplies per-country economic context and the bounded regional risk
adjustment derived from it.

Indicator sets are cached as immutable RegionalSnapshot objects keyed by
(country, data_year). A refresh builds a new snapshot map and swaps it in
wholesale; readers never observe a partially updated cache.

Failure policy (fail-open):
- feed failure with a cached snapshot: serve the snapshot, flagged stale
- feed failure without one: neutral context, risk_adjustment 0
Both cases attach a warning; neither raises to the caller.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional, Protocol, Sequence, Union, runtime_checkable

import yaml

from ..canon import content_hash_short
from ..exceptions import ExternalFetchError, RegionalFetchError, ensure_bounds
from ..models.regional import (
    INDICATOR_NAMES,
    ContextResolution,
    EconomicContext,
    IncomePlausibility,
    RegionalIndicator,
    RegionalSnapshot,
)
from ..models.policy import RegionalConfig

logger = logging.getLogger(__name__)

DEFAULT_INDICATORS_PATH = Path(__file__).resolve().parent.parent / "packs" / "data" / "regional_indicators_2023.yaml"

# Annual USD -> monthly XOF
USD_TO_XOF = 600


# =============================================================================
# Feeds
# =============================================================================

@runtime_checkable
class RegionalFeed(Protocol):
    """Open-data collaborator returning the indicators of one country and year."""

    async def fetch(self, country: str, year: int) -> Sequence[RegionalIndicator]:
        ...


def load_indicator_seed(
    path: Optional[Union[str, Path]] = None,
) -> dict[tuple[str, int], tuple[RegionalIndicator, ...]]:
    """
    Load an indicator seed file.

    Raises:
        RegionalFetchError: If the file is missing or malformed
    """
    path = Path(path) if path else DEFAULT_INDICATORS_PATH
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        year = int(data["data_year"])
        sources = data.get("indicator_sources", {})
        result: dict[tuple[str, int], tuple[RegionalIndicator, ...]] = {}
        for country, entry in data["countries"].items():
            indicators = []
            for name, value in entry["indicators"].items():
                source = sources.get(name, "unknown")
                if source == "national":
                    source = entry.get("statistics_office", "national")
                indicators.append(RegionalIndicator(
                    country=country,
                    indicator=name,
                    value=float(value),
                    year=year,
                    source=source,
                ))
            result[(country, year)] = tuple(indicators)
        return result
    except (OSError, yaml.YAMLError, KeyError, TypeError, ValueError, AttributeError) as e:
        raise RegionalFetchError(
            message=f"Cannot load indicator seed {path}: {e}",
            details={"path": str(path)},
        ) from e


class StaticRegionalFeed:
    """Feed serving a fixed indicator table (the bundled 2023 seed by default)."""

    def __init__(self, table: Optional[Mapping[tuple[str, int], Sequence[RegionalIndicator]]] = None):
        self._table = dict(table) if table is not None else load_indicator_seed()

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "StaticRegionalFeed":
        return cls(load_indicator_seed(path))

    async def fetch(self, country: str, year: int) -> Sequence[RegionalIndicator]:
        indicators = self._table.get((country.upper(), year))
        if indicators is None:
            raise RegionalFetchError(
                message=f"No indicators for {country} {year}",
                details={"country": country, "year": year},
            )
        return indicators


# =============================================================================
# Computation
# =============================================================================

def build_snapshot(
    country: str,
    year: int,
    indicators: Sequence[RegionalIndicator],
    fetched_at: datetime,
) -> RegionalSnapshot:
    """Immutable snapshot of the known indicators for (country, year)."""
    kept = tuple(sorted(
        (i for i in indicators
         if i.indicator in INDICATOR_NAMES and i.country.upper() == country and i.year == year),
        key=lambda i: i.indicator,
    ))
    version = content_hash_short(
        [[i.indicator, i.value, i.source, i.confidence] for i in kept], 16
    )
    return RegionalSnapshot(
        country=country,
        data_year=year,
        indicators=kept,
        version=f"{country}-{year}-{version}",
        fetched_at=fetched_at,
    )


def compute_risk_adjustment(values: Mapping[str, float], config: RegionalConfig) -> float:
    """
    Weighted deviation from the regional baseline, clamped to
    [-max_adjustment, +max_adjustment].

    Indicators without a value contribute nothing.
    """
    total = 0.0
    for name, weight in sorted(config.weights.items()):
        value = values.get(name)
        if value is None:
            continue
        total += weight * (value - config.baseline[name])
    bound = config.max_adjustment
    adjustment = round(max(-bound, min(bound, total)), 2)
    return ensure_bounds("risk_adjustment", adjustment, -10, 10)


def average_monthly_income(context: EconomicContext) -> int:
    """Country average monthly income in XOF."""
    return round(context.gdp_per_capita * USD_TO_XOF / 12)


def validate_income(monthly_income: float, context: EconomicContext) -> IncomePlausibility:
    """Compare a monthly income (XOF) with the country average."""
    average = average_monthly_income(context)
    ratio = monthly_income / average if average > 0 else 0.0
    if ratio < 0.2:
        return IncomePlausibility(True, ratio, 0.6, "income far below the national average")
    if ratio < 0.5:
        return IncomePlausibility(True, ratio, 0.8, "income below the national average")
    if ratio <= 2:
        return IncomePlausibility(True, ratio, 0.95, "income consistent with the national context")
    if ratio <= 5:
        return IncomePlausibility(True, ratio, 0.85, "income above average, verification recommended")
    return IncomePlausibility(False, ratio, 0.5, "income exceptionally high, verification required")


# =============================================================================
# Provider
# =============================================================================

class RegionalContextProvider:
    """
    Cached, versioned regional context.

    Usage:
        provider = RegionalContextProvider(StaticRegionalFeed())
        resolution = await provider.get_context("CI", as_of)
    """

    def __init__(
        self,
        feed: RegionalFeed,
        config: Optional[RegionalConfig] = None,
        snapshots: Optional[Mapping[tuple[str, int], RegionalSnapshot]] = None,
    ):
        self.feed = feed
        self.config = config or RegionalConfig()
        self._snapshots: Mapping[tuple[str, int], RegionalSnapshot] = MappingProxyType(dict(snapshots or {}))

    @property
    def snapshots(self) -> Mapping[tuple[str, int], RegionalSnapshot]:
        """Current read-only snapshot map."""
        return self._snapshots

    def is_stale(self, snapshot: RegionalSnapshot, as_of: datetime) -> bool:
        return as_of - snapshot.fetched_at > timedelta(seconds=self.config.ttl_seconds)

    async def refresh(self, country: str, as_of: datetime, year: Optional[int] = None) -> RegionalSnapshot:
        """
        Fetch a fresh snapshot and swap it into the cache.

        Raises:
            RegionalFetchError: On feed failure or timeout
        """
        country = country.upper()
        year = year or self.config.data_year
        try:
            indicators = await asyncio.wait_for(
                self.feed.fetch(country, year),
                timeout=self.config.fetch_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise RegionalFetchError(
                message=f"Regional feed timed out for {country} {year}",
                details={"country": country, "year": year, "reason": "timeout"},
            ) from e
        except ExternalFetchError:
            raise
        except OSError as e:
            raise RegionalFetchError(
                message=f"Regional feed unavailable for {country} {year}: {e}",
                details={"country": country, "year": year},
            ) from e

        snapshot = build_snapshot(country, year, indicators, as_of)
        if not snapshot.indicators:
            raise RegionalFetchError(
                message=f"Regional feed returned no usable indicators for {country} {year}",
                details={"country": country, "year": year},
            )
        updated = dict(self._snapshots)
        updated[(country, year)] = snapshot
        self._snapshots = MappingProxyType(updated)
        logger.info(
            "Refreshed regional snapshot %s", snapshot.version,
            extra={"country": country},
        )
        return snapshot

    async def get_context(
        self,
        country: str,
        as_of: datetime,
        year: Optional[int] = None,
    ) -> ContextResolution:
        """
        Economic context for a country at as_of.

        Never raises on feed failure: stale or neutral context is served
        with a warning instead.
        """
        country = country.upper()
        year = year or self.config.data_year
        cached = self._snapshots.get((country, year))
        if cached is not None and not self.is_stale(cached, as_of):
            return ContextResolution(context=self.context_from_snapshot(cached))

        try:
            snapshot = await self.refresh(country, as_of, year)
        except ExternalFetchError as e:
            reason = e.details.get("reason", "unavailable")
            if cached is not None:
                logger.warning(
                    "Regional feed failed (%s), serving stale snapshot %s", reason, cached.version,
                    extra={"country": country},
                )
                return ContextResolution(
                    context=self.context_from_snapshot(cached),
                    stale=True,
                    warnings=(
                        f"regional data for {country} is stale: feed {reason}, "
                        f"using snapshot fetched {cached.fetched_at.isoformat()}",
                    ),
                )
            logger.warning(
                "Regional feed failed (%s), using neutral context", reason,
                extra={"country": country},
            )
            return ContextResolution(
                context=self.neutral_context(country, year),
                stale=True,
                warnings=(
                    f"regional data for {country} unavailable: feed {reason}, "
                    "risk adjustment defaults to 0",
                ),
            )
        return ContextResolution(context=self.context_from_snapshot(snapshot))

    def context_from_snapshot(self, snapshot: RegionalSnapshot) -> EconomicContext:
        values = {name: snapshot.value(name) for name in INDICATOR_NAMES}
        filled = {
            name: value if value is not None else self.config.baseline.get(name, 0.0)
            for name, value in values.items()
        }
        return EconomicContext(
            country=snapshot.country,
            risk_adjustment=compute_risk_adjustment(
                {k: v for k, v in values.items() if v is not None}, self.config
            ),
            data_year=snapshot.data_year,
            sources=snapshot.sources,
            snapshot_version=snapshot.version,
            **filled,
        )

    def neutral_context(self, country: str, year: int) -> EconomicContext:
        """Regional baseline values with a zero adjustment."""
        baseline = self.config.baseline
        return EconomicContext(
            country=country,
            risk_adjustment=0.0,
            data_year=year,
            **{name: baseline.get(name, 0.0) for name in INDICATOR_NAMES},
        )
