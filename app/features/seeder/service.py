"""Service layer for seeder operations."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.logging import get_logger
from app.features.seeder import schemas
from app.shared.seeder import (
    FileFixtureProvider,
    FileScenarioLoader,
    SqlAlchemyDataStore,
    UnifiedSeedPipeline,
)

logger = get_logger(__name__)


def _scenario_loader() -> FileScenarioLoader:
    return FileScenarioLoader(get_settings().seeder_scenario_dir or None)


def build_pipeline(db: AsyncSession) -> UnifiedSeedPipeline:
    """Build a pipeline over the request's database session.

    Args:
        db: Database session.

    Returns:
        Pipeline using the configured scenario and fixture directories.
    """
    settings = get_settings()
    return UnifiedSeedPipeline(
        store=SqlAlchemyDataStore(db),
        scenario_loader=_scenario_loader(),
        fixture_provider=FileFixtureProvider(settings.seeder_fixture_dir or None),
        settings=settings,
    )


async def list_scenarios() -> list[schemas.ScenarioInfo]:
    """List every loadable scenario.

    Returns:
        Scenarios sorted by id.
    """
    options = await _scenario_loader().list_scenarios()
    return [
        schemas.ScenarioInfo(
            scenario_id=option.scenario_id,
            name=option.name,
            trend=option.trend,
            description=option.description,
            aliases=list(option.aliases),
        )
        for option in options
    ]


async def run_unified_scenario(
    db: AsyncSession,
    params: schemas.SeedUnifiedParams,
) -> schemas.SeedRunResponse:
    """Run the unified seeding pipeline.

    Args:
        db: Database session.
        params: Run parameters.

    Returns:
        Run status, exit code and manifest.
    """
    result = await build_pipeline(db).run(params.to_request())

    logger.info(
        "seeder.unified.completed",
        tenant_id=params.tenant_id,
        scenario_id=params.scenario_id,
        run_id=result.manifest.run_id,
        status=result.status.value,
        exit_code=result.exit_code,
    )

    return schemas.SeedRunResponse(
        status=result.status.value,
        exit_code=result.exit_code,
        manifest=result.manifest.to_dict(),
    )
