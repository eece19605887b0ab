"""Liveness and readiness endpoints."""

from typing import Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["health"])

# Tables the seeder writes to; readiness is degraded when any is missing.
SEEDER_TABLES = ("campaign", "metric")


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: Literal["ok", "degraded", "unhealthy"]
    database: Literal["connected", "disconnected"] | None = None
    missing_tables: list[str] | None = None


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Liveness check."""
    return HealthResponse(status="ok")


@router.get("/health/ready", response_model=HealthResponse)
async def readiness_check(
    db: AsyncSession = Depends(get_db),
) -> HealthResponse:
    """Readiness check: database reachable and seeder tables migrated.

    Args:
        db: Database session dependency.

    Returns:
        Health status with database state and any missing tables.
    """
    try:
        await db.execute(text("SELECT 1"))
        result = await db.execute(
            text(
                "SELECT table_name FROM information_schema.tables "
                "WHERE table_schema = current_schema()"
            )
        )
        existing = {row[0] for row in result}
    except SQLAlchemyError as e:
        logger.error(
            "health.database_disconnected",
            error=str(e),
            error_type=type(e).__name__,
        )
        return HealthResponse(status="unhealthy", database="disconnected")

    missing = [table for table in SEEDER_TABLES if table not in existing]
    if missing:
        logger.warning("health.seeder_tables_missing", missing=missing)
        return HealthResponse(status="degraded", database="connected", missing_tables=missing)

    return HealthResponse(status="ok", database="connected")
