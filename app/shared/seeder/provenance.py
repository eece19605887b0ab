"""Provenance tagging for seeded rows.

Every seeded row carries ``is_mock_data = True`` and a ``source`` tag that
starts with the run prefix ``toolkit:unified:<scenario>:<seed>``. Re-running
the same request purges exactly the rows tagged with that prefix.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from app.shared.seeder.config import Platform

SOURCE_NAMESPACE = "toolkit:unified"
EXTERNAL_ID_NAMESPACE = "unified"


def _platform_value(platform: Platform | str) -> str:
    return platform.value if isinstance(platform, Platform) else platform


@dataclass(frozen=True)
class ProvenanceTagger:
    """Builds source tags and external ids for one (scenario, seed) run."""

    scenario_id: str
    seed: int

    @property
    def source_prefix(self) -> str:
        """Run prefix shared by every row of this run."""
        return f"{SOURCE_NAMESPACE}:{self.scenario_id}:{self.seed}"

    @property
    def external_id_prefix(self) -> str:
        """Prefix shared by every campaign external id of this run."""
        return f"{EXTERNAL_ID_NAMESPACE}-{self.scenario_id}-{self.seed}-"

    def campaign_source(self, platform: Platform | str) -> str:
        return f"{self.source_prefix}:{_platform_value(platform)}"

    def metric_source(self, platform: Platform | str, day_index: int) -> str:
        return f"{self.source_prefix}:{_platform_value(platform)}:{day_index}"

    def external_id(self, platform: Platform | str, index: int = 0) -> str:
        """Deterministic campaign external id; never contains a timestamp."""
        return f"{self.external_id_prefix}{_platform_value(platform)}-{index}"

    def tag_campaign(self, row: dict[str, Any], platform: Platform | str) -> dict[str, Any]:
        """Return a copy of a campaign row with provenance fields set."""
        return {**row, "is_mock_data": True, "source": self.campaign_source(platform)}

    def tag_metric(
        self, row: dict[str, Any], platform: Platform | str, day_index: int
    ) -> dict[str, Any]:
        """Return a copy of a metric row with provenance fields set."""
        return {**row, "is_mock_data": True, "source": self.metric_source(platform, day_index)}

    def owns(self, source: str | None) -> bool:
        """Whether a source tag belongs to this run."""
        if source is None:
            return False
        return source == self.source_prefix or source.startswith(f"{self.source_prefix}:")


def source_prefix(scenario_id: str, seed: int) -> str:
    """Run prefix for a (scenario, seed) pair."""
    return ProvenanceTagger(scenario_id, seed).source_prefix
