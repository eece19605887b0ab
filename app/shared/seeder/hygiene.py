"""Tenant hygiene gate: never seed over a tenant's real data by accident."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from app.core.logging import get_logger
from app.shared.seeder.errors import HygieneError
from app.shared.seeder.platforms import parse_platforms

if TYPE_CHECKING:
    from app.shared.seeder.config import Platform, SeedRequest
    from app.shared.seeder.store import DataStore, RealRecord

logger = get_logger(__name__)


@dataclass
class HygieneResult:
    """Outcome of a passed hygiene check.

    Attributes:
        platforms: Resolved platforms to seed, sorted.
        real_record: Real row found when the override let the run continue.
        warnings: Warnings to surface in the manifest.
    """

    platforms: list[Platform]
    real_record: RealRecord | None = None
    warnings: list[str] = field(default_factory=list)


async def check_tenant_hygiene(store: DataStore, request: SeedRequest) -> HygieneResult:
    """Resolve platforms and make sure the tenant holds only mock data.

    Read-only, so dry runs go through it as well.

    Args:
        store: Data store to query.
        request: Seed request.

    Returns:
        Resolved platforms and any override warnings.

    Raises:
        InvalidPlatformError: If the platform list does not resolve.
        HygieneError: If real data exists and ``allow_real_tenant`` is off.
    """
    platforms = parse_platforms(request.platforms)

    real_record = await store.find_first_real_record(request.tenant_id)
    if real_record is None:
        return HygieneResult(platforms=platforms)

    if not request.allow_real_tenant:
        raise HygieneError(
            f"Tenant '{request.tenant_id}' has real (non-mock) data "
            f"({real_record.table} #{real_record.id}). "
            "Pass allow_real_tenant to seed anyway.",
            details={"table": real_record.table, "record_id": real_record.id},
        )

    logger.warning(
        "seeder.hygiene.override_active",
        tenant_id=request.tenant_id,
        table=real_record.table,
        record_id=real_record.id,
    )
    return HygieneResult(
        platforms=platforms,
        real_record=real_record,
        warnings=[
            f"allow_real_tenant override: tenant '{request.tenant_id}' has real data "
            f"({real_record.table} #{real_record.id}); seeded rows sit alongside it"
        ],
    )
