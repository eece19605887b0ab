"""FastAPI routes for seeder operations.

Exposes the unified scenario seeding pipeline over HTTP. The response always
carries the run manifest; the HTTP status mirrors the run status.
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.logging import get_logger
from app.features.seeder import schemas, service

router = APIRouter(prefix="/seeder", tags=["seeder"])
logger = get_logger(__name__)

RUN_STATUS_HTTP = {
    "SUCCESS": status.HTTP_200_OK,
    "BLOCKED": status.HTTP_409_CONFLICT,
    "FAILED": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


@router.get(
    "/scenarios",
    response_model=list[schemas.ScenarioInfo],
    summary="List scenarios",
    description="Returns every scenario definition the loader can parse.",
)
async def list_scenarios() -> list[schemas.ScenarioInfo]:
    """List loadable scenarios with their trend and aliases."""
    return await service.list_scenarios()


@router.post(
    "/unified-scenario",
    response_model=schemas.SeedRunResponse,
    summary="Seed a unified scenario",
    description="Seed deterministic campaigns and daily metrics for a tenant.",
    responses={
        status.HTTP_409_CONFLICT: {
            "model": schemas.SeedRunResponse,
            "description": "Run blocked by the tenant hygiene gate or invalid input",
        },
        status.HTTP_500_INTERNAL_SERVER_ERROR: {
            "model": schemas.SeedRunResponse,
            "description": "Run failed; the manifest names the failing step",
        },
    },
)
async def seed_unified_scenario(
    params: schemas.SeedUnifiedParams,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> schemas.SeedRunResponse:
    """Run the seeding pipeline for one tenant, scenario and seed.

    The run is idempotent: repeating a request replaces exactly the rows the
    previous run with the same scenario and seed wrote.

    Args:
        params: Run parameters.
        response: Outgoing response, whose status mirrors the run status.

    Returns:
        SeedRunResponse with status, exit code and manifest.
    """
    result = await service.run_unified_scenario(db, params)
    response.status_code = RUN_STATUS_HTTP[result.status]
    if result.status != "SUCCESS":
        logger.warning(
            "seeder.unified.not_successful",
            tenant_id=params.tenant_id,
            status=result.status,
            exit_code=result.exit_code,
        )
    return result
