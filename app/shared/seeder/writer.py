"""Idempotent writer: purge the run's previous rows, then insert fresh ones.

Re-running a request replaces exactly the rows tagged with its run prefix.
The metric purge happens once per run; each platform then gets its own
transaction (campaign purge, campaign insert, metric insert), so a failure
rolls back only that platform.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from app.core.logging import get_logger
from app.shared.seeder.errors import WriteError
from app.shared.seeder.store import CampaignScope, MetricScope

if TYPE_CHECKING:
    from app.shared.seeder.config import Platform, ScenarioDescriptor
    from app.shared.seeder.generators.metrics import MetricsGenerator
    from app.shared.seeder.provenance import ProvenanceTagger
    from app.shared.seeder.store import DataStore

logger = get_logger(__name__)


@dataclass
class PlatformBatch:
    """Tagged rows for one platform, ready to persist.

    Attributes:
        platform: Platform the rows belong to.
        campaign: Campaign row without an id.
        metrics: Metric rows without ``campaign_id``.
    """

    platform: Platform
    campaign: dict[str, Any]
    metrics: list[dict[str, Any]]


@dataclass
class WriteReport:
    """What the writer did."""

    purged_metrics: int = 0
    purged_campaigns: int = 0
    committed: list[str] = field(default_factory=list)
    applied_rows: dict[str, int] = field(default_factory=dict)


def build_batches(
    generator: MetricsGenerator,
    tagger: ProvenanceTagger,
    scenario: ScenarioDescriptor,
    tenant_id: str,
    platforms: list[Platform],
    days: int,
) -> list[PlatformBatch]:
    """Generate and tag one batch per platform, in sorted platform order.

    Args:
        generator: Metrics generator.
        tagger: Provenance tagger of the run.
        scenario: Validated scenario.
        tenant_id: Tenant being seeded.
        platforms: Platforms to generate.
        days: Days per platform.

    Returns:
        Batches sorted by platform value.
    """
    batches: list[PlatformBatch] = []
    for platform in sorted(platforms, key=lambda p: p.value):
        generated = generator.generate_campaign(scenario, tagger.seed, platform)
        campaign = tagger.tag_campaign(
            {
                "tenant_id": tenant_id,
                "platform": platform.value,
                "name": generated.name,
                "status": "ACTIVE",
                "external_id": generated.external_id,
            },
            platform,
        )
        metrics = [
            tagger.tag_metric(
                {
                    "tenant_id": tenant_id,
                    "platform": platform.value,
                    "date": day.date,
                    "impressions": day.impressions,
                    "clicks": day.clicks,
                    "spend": day.cost,
                    "conversions": day.conversions,
                    "revenue": day.revenue,
                    "ctr": day.ctr,
                    "cpc": day.cpc,
                    "cvr": day.cvr,
                    "roas": day.roas,
                },
                platform,
                day.day_index,
            )
            for day in generator.generate_series(scenario, tagger.seed, platform, days)
        ]
        batches.append(PlatformBatch(platform=platform, campaign=campaign, metrics=metrics))
    return batches


class IdempotentWriter:
    """Persists platform batches with run-scoped purges."""

    def __init__(self, store: DataStore) -> None:
        self.store = store

    async def write(
        self,
        tenant_id: str,
        tagger: ProvenanceTagger,
        batches: list[PlatformBatch],
    ) -> WriteReport:
        """Purge and rewrite the run's rows.

        Args:
            tenant_id: Tenant being seeded.
            tagger: Provenance tagger of the run.
            batches: Batches from ``build_batches``.

        Returns:
            Report of purged and applied rows.

        Raises:
            WriteError: PURGE_FAILED when the metric purge fails, or
                PARTIAL_WRITE when a platform fails; platforms committed
                before the failure stay committed.
        """
        report = WriteReport()
        platforms = tuple(batch.platform.value for batch in batches)

        try:
            async with self.store.transaction():
                report.purged_metrics = await self.store.delete_metrics(
                    MetricScope(
                        tenant_id=tenant_id,
                        source_prefix=tagger.source_prefix,
                        platforms=platforms,
                    )
                )
        except Exception as e:
            raise WriteError(
                f"Metric purge failed before any platform was written: {e}",
                code="PURGE_FAILED",
                details={"committed": [], "failed": None, "applied_rows": {}},
            ) from e

        logger.info(
            "seeder.writer.metrics_purged",
            tenant_id=tenant_id,
            source_prefix=tagger.source_prefix,
            deleted=report.purged_metrics,
        )

        for batch in batches:
            platform = batch.platform.value
            try:
                async with self.store.transaction():
                    report.purged_campaigns += await self.store.delete_campaigns(
                        CampaignScope(
                            tenant_id=tenant_id,
                            platform=platform,
                            external_id_prefix=f"{tagger.external_id_prefix}{platform}-",
                        )
                    )
                    campaign_id = await self.store.create_campaign(batch.campaign)
                    applied = await self.store.create_metrics(
                        [{**row, "campaign_id": campaign_id} for row in batch.metrics]
                    )
            except Exception as e:
                logger.error(
                    "seeder.writer.platform_failed",
                    tenant_id=tenant_id,
                    platform=platform,
                    committed=report.committed,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                committed = ", ".join(report.committed) or "none"
                raise WriteError(
                    f"Write failed for {platform}: {e}. Committed before failure: {committed}",
                    code="PARTIAL_WRITE",
                    details={
                        "committed": list(report.committed),
                        "failed": platform,
                        "applied_rows": dict(report.applied_rows),
                    },
                ) from e

            report.committed.append(platform)
            report.applied_rows[platform] = applied
            logger.info(
                "seeder.writer.platform_committed",
                tenant_id=tenant_id,
                platform=platform,
                campaign_id=campaign_id,
                metric_rows=applied,
            )

        return report
