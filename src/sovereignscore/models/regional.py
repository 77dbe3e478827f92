"""
SovereignScore Regional Models

Macroeconomic indicators and the economic context derived from them.

Snapshots are immutable: a refresh builds a new snapshot and replaces
the old one wholesale.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

INDICATOR_NAMES: tuple[str, ...] = (
    "gdp_per_capita",
    "inflation_rate",
    "unemployment_rate",
    "poverty_rate",
    "financial_inclusion_rate",
    "mobile_money_penetration",
    "banking_penetration",
)


@dataclass(frozen=True)
class RegionalIndicator:
    """
    One macroeconomic indicator value.

    Attributes:
        country: ISO 3166-1 alpha-2 code
        indicator: One of INDICATOR_NAMES
        value: Indicator value (USD for GDP per capita, percent otherwise)
        year: Data year
        source: Publisher (e.g., "World Bank", "BCEAO")
        confidence: Publisher confidence [0, 100]
    """
    country: str
    indicator: str
    value: float
    year: int
    source: str
    confidence: float = 100.0


@dataclass(frozen=True)
class RegionalSnapshot:
    """
    Immutable indicator set for one (country, data_year).

    Attributes:
        country: ISO 3166-1 alpha-2 code
        data_year: Year of the indicators
        indicators: Indicator values
        version: Content hash of the indicators
        fetched_at: When the feed returned this set
    """
    country: str
    data_year: int
    indicators: tuple[RegionalIndicator, ...]
    version: str
    fetched_at: datetime

    def value(self, indicator: str) -> Optional[float]:
        for item in self.indicators:
            if item.indicator == indicator:
                return item.value
        return None

    @property
    def sources(self) -> tuple[str, ...]:
        return tuple(sorted({item.source for item in self.indicators}))


@dataclass(frozen=True)
class EconomicContext:
    """
    Economic context of a subject's country.

    Attributes:
        country: ISO 3166-1 alpha-2 code
        gdp_per_capita: USD
        inflation_rate: Percent
        unemployment_rate: Percent
        poverty_rate: Percent
        financial_inclusion_rate: Percent
        mobile_money_penetration: Percent
        banking_penetration: Percent
        risk_adjustment: Bounded score correction [-10, 10]
        data_year: Year of the indicators
        sources: Indicator publishers
        snapshot_version: Version of the snapshot used (None when neutral)
    """
    country: str
    gdp_per_capita: float
    inflation_rate: float
    unemployment_rate: float
    poverty_rate: float
    financial_inclusion_rate: float
    mobile_money_penetration: float
    banking_penetration: float
    risk_adjustment: float
    data_year: int
    sources: tuple[str, ...] = ()
    snapshot_version: Optional[str] = None

    @property
    def is_neutral(self) -> bool:
        return self.snapshot_version is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "country": self.country,
            "gdp_per_capita": self.gdp_per_capita,
            "inflation_rate": self.inflation_rate,
            "unemployment_rate": self.unemployment_rate,
            "poverty_rate": self.poverty_rate,
            "financial_inclusion_rate": self.financial_inclusion_rate,
            "mobile_money_penetration": self.mobile_money_penetration,
            "banking_penetration": self.banking_penetration,
            "risk_adjustment": self.risk_adjustment,
            "data_year": self.data_year,
            "sources": list(self.sources),
            "snapshot_version": self.snapshot_version,
        }


@dataclass(frozen=True)
class ContextResolution:
    """
    Economic context plus how it was obtained.

    Attributes:
        context: The context to score with
        stale: Served from an expired snapshot or the neutral fallback
        warnings: Staleness / fallback warnings for the caller
    """
    context: EconomicContext
    stale: bool = False
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class IncomePlausibility:
    """
    Declared income compared with the country's average income.

    Attributes:
        plausible: Income is within the expected range
        ratio: Declared income / country average
        confidence: Plausibility confidence [0, 1]
        message: Human-readable verdict
    """
    plausible: bool
    ratio: float
    confidence: float
    message: str
