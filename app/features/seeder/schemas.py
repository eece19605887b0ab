"""Pydantic schemas for the seeder feature."""

from typing import Any

from pydantic import BaseModel, Field

from app.shared.seeder.config import MAX_DAYS, MAX_SEED, MIN_DAYS, ExecutionMode, SeedRequest


class ScenarioInfo(BaseModel):
    """A loadable scenario definition."""

    scenario_id: str = Field(description="Scenario id (file stem)")
    name: str = Field(description="Display name")
    trend: str = Field(description="Volume trend: STABLE, GROWTH, DECLINE or SPIKE")
    description: str = Field(default="", description="Human-readable description")
    aliases: list[str] = Field(default_factory=list, description="Alternative ids")


class SeedUnifiedParams(BaseModel):
    """Parameters for a unified scenario seeding run."""

    tenant_id: str = Field(min_length=1, description="Tenant to seed")
    scenario_id: str = Field(
        default="baseline",
        min_length=1,
        description="Scenario id or alias",
    )
    seed: int = Field(
        default=12345,
        ge=0,
        le=MAX_SEED,
        description="Seed for reproducible output",
    )
    days: int | None = Field(
        default=None,
        ge=MIN_DAYS,
        le=MAX_DAYS,
        description="Days per platform; defaults to the scenario's day count",
    )
    platforms: str | None = Field(
        default=None,
        description="Comma-separated platforms or aliases; empty seeds every platform",
    )
    mode: ExecutionMode = Field(
        default=ExecutionMode.GENERATED,
        description="GENERATED; FIXTURE to only check the golden fixture; HYBRID to compare",
    )
    dry_run: bool = Field(
        default=False,
        description="Generate and verify without writing",
    )
    allow_real_tenant: bool = Field(
        default=False,
        description="Seed even if the tenant holds real data",
    )

    def to_request(self) -> SeedRequest:
        """Convert to the pipeline's request type."""
        return SeedRequest(
            tenant_id=self.tenant_id,
            scenario_id=self.scenario_id,
            seed=self.seed,
            days=self.days,
            dry_run=self.dry_run,
            allow_real_tenant=self.allow_real_tenant,
            platforms=self.platforms,
            mode=self.mode,
        )


class SeedRunResponse(BaseModel):
    """Outcome of a seeding run with its full manifest."""

    status: str = Field(description="SUCCESS, BLOCKED or FAILED")
    exit_code: int = Field(description="0, 1, 2 or 78")
    manifest: dict[str, Any] = Field(description="Run manifest")
