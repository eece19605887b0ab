"""Data store boundary for the seeder.

The pipeline only talks to ``DataStore``; ``SqlAlchemyDataStore`` implements
it over a single ``AsyncSession`` against the marketing tables.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass
from typing import Any, Protocol

from sqlalchemy import delete, insert, inspect, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.features.marketing.models import Campaign, Metric

logger = get_logger(__name__)


@dataclass(frozen=True)
class MetricScope:
    """Run-scoped metric purge predicate.

    Matches mock rows of the tenant whose source equals the run prefix or
    starts with ``<prefix>:``, restricted to the given platforms.
    """

    tenant_id: str
    source_prefix: str
    platforms: tuple[str, ...]


@dataclass(frozen=True)
class CampaignScope:
    """Single-platform campaign purge predicate."""

    tenant_id: str
    platform: str
    external_id_prefix: str


@dataclass(frozen=True)
class RealRecord:
    """A tenant row that is not seeded data."""

    table: str
    id: int


class DataStore(Protocol):
    """Persistence operations the seeder needs."""

    async def find_first_real_record(self, tenant_id: str) -> RealRecord | None:
        """First campaign or metric of the tenant with is_mock_data false or null."""
        ...

    def transaction(self) -> AbstractAsyncContextManager[None]:
        """Unit of work committed on exit and rolled back on error."""
        ...

    async def delete_metrics(self, scope: MetricScope) -> int: ...

    async def delete_campaigns(self, scope: CampaignScope) -> int: ...

    async def create_campaign(self, row: dict[str, Any]) -> int:
        """Insert a campaign and return its id."""
        ...

    async def create_metrics(self, rows: list[dict[str, Any]]) -> int: ...

    async def find_campaigns(self, tenant_id: str, source_prefix: str) -> list[dict[str, Any]]: ...

    async def find_metrics(self, tenant_id: str, source_prefix: str) -> list[dict[str, Any]]: ...

    async def list_columns(self, table: str) -> set[str]: ...


def _source_matches(column: Any, source_prefix: str) -> Any:
    return or_(column == source_prefix, column.startswith(f"{source_prefix}:", autoescape=True))


class SqlAlchemyDataStore:
    """DataStore over an async SQLAlchemy session."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the store.

        Args:
            session: Session owned by the caller.
        """
        self.session = session

    async def find_first_real_record(self, tenant_id: str) -> RealRecord | None:
        for model, table in ((Campaign, "campaign"), (Metric, "metric")):
            stmt = (
                select(model.id)
                .where(
                    model.tenant_id == tenant_id,
                    or_(model.is_mock_data.is_(False), model.is_mock_data.is_(None)),
                )
                .limit(1)
            )
            record_id = (await self.session.execute(stmt)).scalar_one_or_none()
            if record_id is not None:
                return RealRecord(table=table, id=record_id)
        return None

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        try:
            yield
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

    async def delete_metrics(self, scope: MetricScope) -> int:
        stmt = delete(Metric).where(
            Metric.tenant_id == scope.tenant_id,
            Metric.is_mock_data.is_(True),
            _source_matches(Metric.source, scope.source_prefix),
            Metric.platform.in_(scope.platforms),
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    async def delete_campaigns(self, scope: CampaignScope) -> int:
        stmt = delete(Campaign).where(
            Campaign.tenant_id == scope.tenant_id,
            Campaign.platform == scope.platform,
            Campaign.is_mock_data.is_(True),
            Campaign.external_id.startswith(scope.external_id_prefix, autoescape=True),
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    async def create_campaign(self, row: dict[str, Any]) -> int:
        campaign = Campaign(**row)
        self.session.add(campaign)
        await self.session.flush()
        return campaign.id

    async def create_metrics(self, rows: list[dict[str, Any]]) -> int:
        if not rows:
            return 0
        await self.session.execute(insert(Metric), rows)
        return len(rows)

    async def find_campaigns(self, tenant_id: str, source_prefix: str) -> list[dict[str, Any]]:
        stmt = select(
            Campaign.id,
            Campaign.platform,
            Campaign.external_id,
            Campaign.is_mock_data,
            Campaign.source,
        ).where(Campaign.tenant_id == tenant_id, _source_matches(Campaign.source, source_prefix))
        result = await self.session.execute(stmt)
        return [dict(row._mapping) for row in result]

    async def find_metrics(self, tenant_id: str, source_prefix: str) -> list[dict[str, Any]]:
        stmt = select(
            Metric.id,
            Metric.campaign_id,
            Metric.platform,
            Metric.date,
            Metric.is_mock_data,
            Metric.source,
        ).where(Metric.tenant_id == tenant_id, _source_matches(Metric.source, source_prefix))
        result = await self.session.execute(stmt)
        return [dict(row._mapping) for row in result]

    async def list_columns(self, table: str) -> set[str]:
        def _columns(sync_session: Any) -> set[str]:
            inspector = inspect(sync_session.connection())
            return {column["name"] for column in inspector.get_columns(table)}

        columns: set[str] = await self.session.run_sync(_columns)
        logger.debug("seeder.store.columns_listed", table=table, count=len(columns))
        return columns
