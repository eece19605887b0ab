"""Deterministic data generators."""

from app.shared.seeder.generators.metrics import (
    DailyMetrics,
    GeneratedCampaign,
    MetricsGenerator,
    day_rng,
    trend_multiplier,
)

__all__ = [
    "DailyMetrics",
    "GeneratedCampaign",
    "MetricsGenerator",
    "day_rng",
    "trend_multiplier",
]
