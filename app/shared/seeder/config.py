"""Domain types for the unified scenario seeder."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum

SCENARIO_SCHEMA_VERSION = "1.0.0"
DEFAULT_BASE_IMPRESSIONS = 10_000
MAX_BASE_IMPRESSIONS = 1_000_000
MIN_DAYS = 1
MAX_DAYS = 365
# Upper bound keeps seeds at ten digits, so ids built from them can never
# resemble a millisecond timestamp.
MAX_SEED = 2_147_483_647


class Trend(str, Enum):
    """Trend classification shaping a scenario's daily volume."""

    STABLE = "STABLE"
    GROWTH = "GROWTH"
    DECLINE = "DECLINE"
    SPIKE = "SPIKE"


class Platform(str, Enum):
    """Seedable advertising platforms."""

    GOOGLE_ADS = "google_ads"
    FACEBOOK = "facebook"
    TIKTOK = "tiktok"
    LINE_ADS = "line_ads"
    SHOPEE = "shopee"
    LAZADA = "lazada"


class ExecutionMode(str, Enum):
    """How a run sources its data.

    GENERATED writes generator output only. HYBRID also checks the generated
    batches against the scenario's golden fixture during verification.
    FIXTURE loads and verifies the golden fixture without generating or
    writing anything.
    """

    GENERATED = "GENERATED"
    FIXTURE = "FIXTURE"
    HYBRID = "HYBRID"

    @property
    def uses_fixture(self) -> bool:
        return self is not ExecutionMode.GENERATED


@dataclass(frozen=True)
class PlatformProfile:
    """Performance profile used to shape generated metrics.

    Attributes:
        label: Human-readable platform name.
        ctr_range: Click-through rate range (min, max).
        cpc_range: Cost per click range (min, max).
        cvr_range: Conversion rate range (min, max).
        aov_range: Average order value range (min, max).
        impression_multiplier: Scale applied to scenario base impressions.
        weekend_factor: Volume multiplier on Saturdays and Sundays.
    """

    label: str
    ctr_range: tuple[float, float]
    cpc_range: tuple[float, float]
    cvr_range: tuple[float, float]
    aov_range: tuple[float, float]
    impression_multiplier: float = 1.0
    weekend_factor: float = 1.0


PLATFORM_PROFILES: dict[Platform, PlatformProfile] = {
    Platform.GOOGLE_ADS: PlatformProfile(
        label="Google Ads",
        ctr_range=(0.015, 0.045),
        cpc_range=(0.5, 3.5),
        cvr_range=(0.02, 0.08),
        aov_range=(50.0, 200.0),
        impression_multiplier=1.0,
        weekend_factor=0.7,
    ),
    Platform.FACEBOOK: PlatformProfile(
        label="Facebook",
        ctr_range=(0.008, 0.025),
        cpc_range=(0.3, 2.0),
        cvr_range=(0.015, 0.06),
        aov_range=(40.0, 150.0),
        impression_multiplier=2.5,
        weekend_factor=1.2,
    ),
    Platform.TIKTOK: PlatformProfile(
        label="TikTok",
        ctr_range=(0.005, 0.03),
        cpc_range=(0.2, 1.5),
        cvr_range=(0.01, 0.04),
        aov_range=(30.0, 100.0),
        impression_multiplier=3.0,
        weekend_factor=1.3,
    ),
    Platform.LINE_ADS: PlatformProfile(
        label="LINE Ads",
        ctr_range=(0.01, 0.03),
        cpc_range=(1.0, 5.0),
        cvr_range=(0.03, 0.10),
        aov_range=(100.0, 500.0),
        impression_multiplier=0.8,
        weekend_factor=0.9,
    ),
    Platform.SHOPEE: PlatformProfile(
        label="Shopee Ads",
        ctr_range=(0.02, 0.06),
        cpc_range=(0.5, 3.0),
        cvr_range=(0.05, 0.15),
        aov_range=(50.0, 300.0),
        impression_multiplier=1.2,
        weekend_factor=1.5,
    ),
    Platform.LAZADA: PlatformProfile(
        label="Lazada Ads",
        ctr_range=(0.02, 0.05),
        cpc_range=(0.5, 2.5),
        cvr_range=(0.04, 0.12),
        aov_range=(50.0, 250.0),
        impression_multiplier=1.1,
        weekend_factor=1.4,
    ),
}


@dataclass(frozen=True)
class ScenarioDescriptor:
    """Read-only scenario definition.

    Loaders fill fields as found in the source file; ``validate_scenario``
    checks them and returns a copy with ``trend`` and ``date_anchor`` typed.

    Attributes:
        schema_version: Scenario file schema version.
        scenario_id: Scenario identifier (file stem).
        name: Display name.
        trend: Volume trend classification.
        base_impressions: Daily impressions before platform and trend shaping.
        days: Default day count when the request gives none.
        date_anchor: Calendar date of day 1.
        description: Free-form description.
        aliases: Alternative ids the loader resolves to this scenario.
    """

    schema_version: str
    scenario_id: str
    name: str
    trend: Trend | str
    base_impressions: int = DEFAULT_BASE_IMPRESSIONS
    days: int | None = None
    date_anchor: date | str | None = None
    description: str = ""
    aliases: tuple[str, ...] = ()


@dataclass(frozen=True)
class ScenarioOption:
    """Listing entry for a loadable scenario."""

    scenario_id: str
    name: str
    trend: str
    description: str = ""
    aliases: tuple[str, ...] = ()


@dataclass
class SeedRequest:
    """Parameters of one seeding run.

    Attributes:
        tenant_id: Tenant to seed.
        scenario_id: Scenario id or alias.
        seed: Deterministic seed (0..MAX_SEED).
        days: Day count; falls back to the scenario, then to settings.
        dry_run: Generate and verify in memory without touching the store.
        allow_real_tenant: Seed even when the tenant holds real data.
        platforms: Comma-separated platform list; blank means all.
        mode: Execution mode.
    """

    tenant_id: str
    scenario_id: str
    seed: int
    days: int | None = None
    dry_run: bool = False
    allow_real_tenant: bool = False
    platforms: str | None = None
    mode: ExecutionMode = ExecutionMode.GENERATED

    def as_args(self) -> dict[str, object]:
        """Invocation arguments as recorded in the manifest."""
        return {
            "tenant": self.tenant_id,
            "scenario": self.scenario_id,
            "seed": self.seed,
            "days": self.days,
            "platforms": self.platforms,
            "mode": self.mode.value,
            "dry_run": self.dry_run,
            "allow_real_tenant": self.allow_real_tenant,
        }

