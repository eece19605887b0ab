"""Deterministic campaign and daily metric generation.

Each (scenario, seed, platform, day) gets its own ``random.Random`` seeded from
a SHA-256 digest of those four values, so a day's numbers never depend on
which other platforms or days were generated, or in what order.
"""

from __future__ import annotations

import hashlib
import random
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from app.shared.seeder.config import PLATFORM_PROFILES, Platform, Trend
from app.shared.seeder.provenance import ProvenanceTagger

if TYPE_CHECKING:
    from app.shared.seeder.config import ScenarioDescriptor

DEFAULT_DATE_ANCHOR = date(2025, 1, 1)
NOISE_BAND = 0.10
SPIKE_PROBABILITY = 0.05
SPIKE_MULTIPLIER = 5.0
GROWTH_RATE = 0.015
DECLINE_RATE = 0.012
DECLINE_FLOOR = 0.4

CENTS = Decimal("0.01")
RATE_PLACES = Decimal("0.000001")
RATIO_PLACES = Decimal("0.0001")


@dataclass(frozen=True)
class DailyMetrics:
    """One day of generated performance for a platform.

    Attributes:
        day_index: 1-based day within the run.
        date: Calendar date of the day.
        impressions: Impressions served.
        clicks: Clicks (never above impressions).
        cost: Spend in currency units.
        conversions: Conversions (never above clicks).
        revenue: Attributed revenue.
        ctr: clicks / impressions.
        cpc: cost / clicks.
        cvr: conversions / clicks.
        roas: revenue / cost.
    """

    day_index: int
    date: date
    impressions: int
    clicks: int
    cost: Decimal
    conversions: int
    revenue: Decimal
    ctr: Decimal
    cpc: Decimal
    cvr: Decimal
    roas: Decimal


@dataclass(frozen=True)
class GeneratedCampaign:
    """Campaign generated for one platform."""

    platform: Platform
    name: str
    external_id: str


def day_rng(scenario_id: str, seed: int, platform: Platform, day_index: int) -> random.Random:
    """Independent RNG for one generation cell.

    Args:
        scenario_id: Scenario id.
        seed: Run seed.
        platform: Platform being generated.
        day_index: 1-based day index.

    Returns:
        Random instance seeded from the SHA-256 digest of the four inputs.
    """
    material = f"{scenario_id}|{seed}|{platform.value}|{day_index}".encode()
    digest = hashlib.sha256(material).digest()
    return random.Random(int.from_bytes(digest[:8], "big"))


def trend_multiplier(trend: Trend, day_index: int, spike_draw: float) -> float:
    """Volume multiplier for a trend on a given day.

    Args:
        trend: Scenario trend.
        day_index: 1-based day index.
        spike_draw: Uniform [0, 1) draw; only SPIKE reads it.

    Returns:
        Multiplier applied to base impressions.
    """
    elapsed = day_index - 1
    if trend == Trend.GROWTH:
        return 1.0 + GROWTH_RATE * elapsed
    if trend == Trend.DECLINE:
        return max(DECLINE_FLOOR, 1.0 - DECLINE_RATE * elapsed)
    if trend == Trend.SPIKE:
        return SPIKE_MULTIPLIER if spike_draw < SPIKE_PROBABILITY else 1.0
    return 1.0


def _money(value: float) -> Decimal:
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def _ratio(numerator: Decimal, denominator: Decimal, places: Decimal) -> Decimal:
    if denominator == 0:
        return Decimal(0).quantize(places)
    return (numerator / denominator).quantize(places, rounding=ROUND_HALF_UP)


class MetricsGenerator:
    """Generator for campaigns and daily metrics shaped by platform profiles."""

    def __init__(self, default_date_anchor: date = DEFAULT_DATE_ANCHOR) -> None:
        """Initialize the generator.

        Args:
            default_date_anchor: Date of day 1 when the scenario sets none.
        """
        self.default_date_anchor = default_date_anchor

    def date_for(self, scenario: ScenarioDescriptor, day_index: int) -> date:
        anchor = scenario.date_anchor if isinstance(scenario.date_anchor, date) else None
        return (anchor or self.default_date_anchor) + timedelta(days=day_index - 1)

    def generate(
        self,
        scenario: ScenarioDescriptor,
        seed: int,
        platform: Platform,
        day_index: int,
    ) -> DailyMetrics:
        """Generate one day of metrics.

        Args:
            scenario: Validated scenario.
            seed: Run seed.
            platform: Platform to generate for.
            day_index: 1-based day index.

        Returns:
            Metrics with clicks <= impressions and conversions <= clicks.
        """
        profile = PLATFORM_PROFILES[platform]
        rng = day_rng(scenario.scenario_id, seed, platform, day_index)
        current_date = self.date_for(scenario, day_index)

        # Fixed draw order; every draw happens whatever the trend.
        spike_draw = rng.random()
        noise = rng.uniform(1.0 - NOISE_BAND, 1.0 + NOISE_BAND)
        ctr = rng.uniform(*profile.ctr_range)
        cpc = rng.uniform(*profile.cpc_range)
        cvr = rng.uniform(*profile.cvr_range)
        aov = rng.uniform(*profile.aov_range)

        volume = scenario.base_impressions * profile.impression_multiplier
        volume *= trend_multiplier(Trend(scenario.trend), day_index, spike_draw)
        if current_date.weekday() >= 5:
            volume *= profile.weekend_factor
        volume *= noise

        impressions = max(1, round(volume))
        clicks = min(impressions, round(impressions * ctr))
        conversions = min(clicks, round(clicks * cvr))
        cost = _money(clicks * cpc)
        revenue = _money(conversions * aov)

        return DailyMetrics(
            day_index=day_index,
            date=current_date,
            impressions=impressions,
            clicks=clicks,
            cost=cost,
            conversions=conversions,
            revenue=revenue,
            ctr=_ratio(Decimal(clicks), Decimal(impressions), RATE_PLACES),
            cpc=_ratio(cost, Decimal(clicks), RATIO_PLACES),
            cvr=_ratio(Decimal(conversions), Decimal(clicks), RATE_PLACES),
            roas=_ratio(revenue, cost, RATIO_PLACES),
        )

    def generate_series(
        self,
        scenario: ScenarioDescriptor,
        seed: int,
        platform: Platform,
        days: int,
    ) -> list[DailyMetrics]:
        """Generate exactly one row per day 1..days."""
        return [self.generate(scenario, seed, platform, day) for day in range(1, days + 1)]

    def generate_campaign(
        self,
        scenario: ScenarioDescriptor,
        seed: int,
        platform: Platform,
    ) -> GeneratedCampaign:
        """Generate the single campaign a run creates per platform."""
        tagger = ProvenanceTagger(scenario.scenario_id, seed)
        label = PLATFORM_PROFILES[platform].label
        return GeneratedCampaign(
            platform=platform,
            name=f"{scenario.name} - {label} ({seed})",
            external_id=tagger.external_id(platform, 0),
        )
