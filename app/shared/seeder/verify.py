"""Post-write verification of seeded rows.

Checks the store schema exposes the provenance columns, then re-reads the
run's rows and confirms counts and tags per platform. Dry runs check the
in-memory batches with the same rules. Nothing is rolled back on failure.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from app.core.logging import get_logger
from app.shared.models import PROVENANCE_COLUMNS
from app.shared.seeder.errors import FixtureError, VerificationError
from app.shared.seeder.fixtures import build_shape, canonical_json, compute_shape_checksum

if TYPE_CHECKING:
    from app.shared.seeder.config import Platform
    from app.shared.seeder.fixtures import GoldenFixture
    from app.shared.seeder.provenance import ProvenanceTagger
    from app.shared.seeder.store import DataStore
    from app.shared.seeder.writer import PlatformBatch

logger = get_logger(__name__)

REQUIRED_COLUMNS = frozenset(PROVENANCE_COLUMNS)
VERIFIED_TABLES = ("campaign", "metric")
MAX_REPORTED_ISSUES = 10


@dataclass
class VerifyReport:
    """Counts checked during verification."""

    campaigns: int = 0
    metric_rows: int = 0
    per_platform: dict[str, int] = field(default_factory=dict)
    fixture_checksum: str | None = None


def check_rows(
    campaigns: list[dict[str, Any]],
    metrics: list[dict[str, Any]],
    platforms: list[Platform],
    days: int,
    tagger: ProvenanceTagger,
) -> tuple[VerifyReport, list[str]]:
    """Check run rows against expected counts and provenance.

    Rows of platforms outside ``platforms`` are ignored; they belong to earlier
    runs with the same prefix and a different platform selection.

    Args:
        campaigns: Campaign rows with ``platform``, ``is_mock_data``, ``source``.
        metrics: Metric rows with the same keys.
        platforms: Platforms the run seeded.
        days: Expected metric rows per platform.
        tagger: Provenance tagger of the run.

    Returns:
        Report of counted rows and the issues found.
    """
    wanted = {p.value for p in platforms}
    campaigns = [row for row in campaigns if row["platform"] in wanted]
    metrics = [row for row in metrics if row["platform"] in wanted]

    issues: list[str] = []
    campaign_counts = Counter(row["platform"] for row in campaigns)
    metric_counts = Counter(row["platform"] for row in metrics)

    for platform in sorted(wanted):
        if campaign_counts[platform] != 1:
            issues.append(f"{platform}: expected 1 campaign, found {campaign_counts[platform]}")
        if metric_counts[platform] != days:
            issues.append(
                f"{platform}: expected {days} metric rows, found {metric_counts[platform]}"
            )

    for table, rows in (("campaign", campaigns), ("metric", metrics)):
        for row in rows:
            if row.get("is_mock_data") is not True:
                issues.append(f"{table} row for {row['platform']} is not flagged is_mock_data")
            if not tagger.owns(row.get("source")):
                issues.append(f"{table} row source '{row.get('source')}' lacks run prefix")

    report = VerifyReport(
        campaigns=len(campaigns),
        metric_rows=len(metrics),
        per_platform=dict(sorted(metric_counts.items())),
    )
    return report, issues


def _raise_if_issues(issues: list[str], code: str) -> None:
    if not issues:
        return
    shown = issues[:MAX_REPORTED_ISSUES]
    more = len(issues) - len(shown)
    suffix = f" (+{more} more)" if more else ""
    raise VerificationError(
        f"Verification failed: {'; '.join(shown)}{suffix}",
        code=code,
        details={"issues": issues},
    )


async def check_schema(store: DataStore, code: str = "SCHEMA_MISMATCH") -> None:
    """Require the provenance columns on every seeded table.

    Raises:
        VerificationError: With ``code`` when a table lacks any of them.
    """
    issues: list[str] = []
    for table in VERIFIED_TABLES:
        columns = await store.list_columns(table)
        missing = sorted(REQUIRED_COLUMNS - columns)
        if missing:
            issues.append(f"{table} is missing columns: {', '.join(missing)}")
    _raise_if_issues(issues, code)


async def verify_store(
    store: DataStore,
    tenant_id: str,
    tagger: ProvenanceTagger,
    platforms: list[Platform],
    days: int,
) -> VerifyReport:
    """Verify persisted rows of a run.

    Raises:
        VerificationError: SCHEMA_MISMATCH or VERIFICATION_FAILED.
    """
    await check_schema(store)

    campaigns = await store.find_campaigns(tenant_id, tagger.source_prefix)
    metrics = await store.find_metrics(tenant_id, tagger.source_prefix)
    report, issues = check_rows(campaigns, metrics, platforms, days, tagger)
    _raise_if_issues(issues, "VERIFICATION_FAILED")

    logger.info(
        "seeder.verify.store_passed",
        tenant_id=tenant_id,
        campaigns=report.campaigns,
        metric_rows=report.metric_rows,
    )
    return report


def verify_batches(
    batches: list[PlatformBatch],
    tagger: ProvenanceTagger,
    days: int,
) -> VerifyReport:
    """Verify in-memory batches of a dry run.

    Raises:
        VerificationError: VERIFICATION_FAILED.
    """
    campaigns = [batch.campaign for batch in batches]
    metrics = [row for batch in batches for row in batch.metrics]
    report, issues = check_rows(campaigns, metrics, [b.platform for b in batches], days, tagger)
    _raise_if_issues(issues, "VERIFICATION_FAILED")
    return report


def verify_against_fixture(report: VerifyReport, fixture: GoldenFixture) -> str:
    """Compare the generated shape with a golden fixture.

    Args:
        report: Verification report of the run.
        fixture: Golden fixture loaded for the run.

    Returns:
        Checksum of the generated shape.

    Raises:
        FixtureError: FIXTURE_SHAPE_MISMATCH or CHECKSUM_MISMATCH.
    """
    shape = build_shape(report.per_platform)
    if canonical_json(shape) != canonical_json(fixture.shape):
        raise FixtureError(
            "Generated shape does not match the golden fixture",
            code="FIXTURE_SHAPE_MISMATCH",
            details={"generated": shape, "expected": fixture.shape},
        )

    checksum = compute_shape_checksum(shape)
    if checksum != fixture.checksum:
        raise FixtureError(
            f"Checksum mismatch: expected {fixture.checksum}, got {checksum}",
            code="CHECKSUM_MISMATCH",
        )
    return checksum


def verify_fixture(fixture: GoldenFixture) -> VerifyReport:
    """Re-check a golden fixture on its own, for runs that write nothing.

    Raises:
        FixtureError: CHECKSUM_MISMATCH.
    """
    checksum = compute_shape_checksum(fixture.shape)
    if checksum != fixture.checksum:
        raise FixtureError(
            f"Checksum mismatch: stored {fixture.checksum}, computed {checksum}",
            code="CHECKSUM_MISMATCH",
        )
    per_platform = {
        platform: counts.get("metricRows", 0)
        for platform, counts in fixture.shape.get("perPlatform", {}).items()
    }
    return VerifyReport(
        campaigns=fixture.shape.get("totalCampaigns", 0),
        metric_rows=fixture.shape.get("totalMetricRows", 0),
        per_platform=per_platform,
        fixture_checksum=checksum,
    )
