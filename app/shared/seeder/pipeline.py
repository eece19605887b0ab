"""Unified scenario seeding pipeline.

Runs SAFETY_CHECK, LOAD_SCENARIO, VALIDATE_SCENARIO, VALIDATE_INPUT, EXECUTE
and VERIFY in that order and always returns a finalized manifest. A failing
step stops the run; its error is recorded on the step instead of propagating.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date
from typing import TYPE_CHECKING, Any

from app.core.config import Settings, get_settings
from app.core.logging import bind_run_id, get_logger
from app.shared.seeder.config import MAX_DAYS, MAX_SEED, MIN_DAYS, ExecutionMode, SeedRequest
from app.shared.seeder.errors import (
    EXIT_BLOCKED,
    EXIT_FAILURE,
    FixtureError,
    InvalidInputError,
    SeederError,
    WriteError,
)
from app.shared.seeder.generators.metrics import MetricsGenerator
from app.shared.seeder.hygiene import check_tenant_hygiene
from app.shared.seeder.manifest import (
    ManifestBuilder,
    RunStatus,
    SeedRunResult,
    StepError,
    StepHandle,
    StepName,
    StepStatus,
)
from app.shared.seeder.provenance import ProvenanceTagger
from app.shared.seeder.safety import evaluate_safety_gates, require_safe_environment
from app.shared.seeder.scenarios import validate_scenario
from app.shared.seeder.verify import (
    check_schema,
    verify_against_fixture,
    verify_batches,
    verify_fixture,
    verify_store,
)
from app.shared.seeder.writer import IdempotentWriter, build_batches

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from app.shared.seeder.config import Platform, ScenarioDescriptor
    from app.shared.seeder.fixtures import FixtureProvider, GoldenFixture
    from app.shared.seeder.scenarios import ScenarioLoader
    from app.shared.seeder.store import DataStore
    from app.shared.seeder.writer import PlatformBatch


class _StepScope:
    """Mutable state of the step currently running."""

    def __init__(self, handle: StepHandle) -> None:
        self.handle = handle
        self.summary = ""
        self.metrics: dict[str, Any] | None = None
        self.failure: tuple[RunStatus, int] | None = None


def resolve_days(request: SeedRequest, scenario: ScenarioDescriptor, settings: Settings) -> int:
    """Day count of a run: request, then scenario, then settings default.

    Raises:
        InvalidInputError: If the resolved value is outside 1..365.
    """
    if request.days is not None:
        days = request.days
    elif scenario.days is not None:
        days = scenario.days
    else:
        days = settings.seeder_default_days
    if not MIN_DAYS <= days <= MAX_DAYS:
        raise InvalidInputError(f"days must be between {MIN_DAYS} and {MAX_DAYS}, got {days}")
    return days


def check_request(request: SeedRequest) -> None:
    """Validate tenant and seed of a request.

    Raises:
        InvalidInputError: On an empty tenant or a seed outside 0..MAX_SEED.
    """
    if not request.tenant_id or not request.tenant_id.strip():
        raise InvalidInputError("tenant_id is required")
    if not 0 <= request.seed <= MAX_SEED:
        raise InvalidInputError(f"seed must be between 0 and {MAX_SEED}, got {request.seed}")


class UnifiedSeedPipeline:
    """Seeds deterministic campaigns and metrics for a tenant and scenario."""

    def __init__(
        self,
        store: DataStore,
        scenario_loader: ScenarioLoader,
        fixture_provider: FixtureProvider | None = None,
        settings: Settings | None = None,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            store: Data store for hygiene reads, writes and verification.
            scenario_loader: Resolves scenario ids.
            fixture_provider: Golden fixture source, required for FIXTURE and HYBRID runs.
            settings: Settings; defaults to the cached application settings.
            logger: Logger; defaults to this module's structlog logger.
        """
        self.store = store
        self.scenario_loader = scenario_loader
        self.fixture_provider = fixture_provider
        self.settings = settings or get_settings()
        self.logger = logger or get_logger(__name__)
        self.generator = MetricsGenerator(date.fromisoformat(self.settings.seeder_date_anchor))
        self.writer = IdempotentWriter(store)

    @asynccontextmanager
    async def _step(self, builder: ManifestBuilder, name: StepName) -> AsyncIterator[_StepScope]:
        scope = _StepScope(builder.start_step(name))
        try:
            yield scope
        except Exception as e:
            if isinstance(e, SeederError):
                code, message, recoverable = e.code, e.message, e.is_recoverable
                exit_code = e.exit_code
            else:
                code, message, recoverable = "UNEXPECTED_ERROR", f"{type(e).__name__}: {e}", False
                exit_code = EXIT_FAILURE

            if name == StepName.VALIDATE_INPUT:
                scope.failure = (RunStatus.BLOCKED, EXIT_BLOCKED)
            else:
                scope.failure = (RunStatus.FAILED, exit_code)

            scope.handle.close(
                StepStatus.FAILED,
                summary=message,
                error=StepError(code=code, message=message, is_recoverable=recoverable),
                metrics=scope.metrics,
            )
            self.logger.error(
                "seeder.step.failed",
                step=name.value,
                error_code=code,
                error=message,
                error_type=type(e).__name__,
                exc_info=not isinstance(e, SeederError),
            )
        else:
            scope.handle.close(StepStatus.SUCCESS, summary=scope.summary, metrics=scope.metrics)
            self.logger.info("seeder.step.completed", step=name.value, summary=scope.summary)

    def _finish(self, builder: ManifestBuilder, status: RunStatus, exit_code: int) -> SeedRunResult:
        manifest = builder.finalize(status, exit_code)
        log = self.logger.info if status == RunStatus.SUCCESS else self.logger.warning
        log(
            "seeder.pipeline.finished",
            status=status.value,
            exit_code=exit_code,
            steps=[s.name.value for s in manifest.steps],
            duration_ms=manifest.duration_ms,
        )
        return SeedRunResult(status=status, exit_code=exit_code, manifest=manifest)

    async def run(self, request: SeedRequest) -> SeedRunResult:
        """Run the pipeline.

        Args:
            request: Seed request.

        Returns:
            Status, exit code and the finalized manifest. Never raises for
            step failures.
        """
        builder = ManifestBuilder(
            tenant_id=request.tenant_id,
            args=request.as_args(),
            dry_run=request.dry_run,
        )
        with bind_run_id(builder.run_id):
            self.logger.info(
                "seeder.pipeline.started",
                tenant_id=request.tenant_id,
                scenario_id=request.scenario_id,
                seed=request.seed,
                dry_run=request.dry_run,
                mode=request.mode.value,
            )
            return await self._run(builder, request)

    async def _run(self, builder: ManifestBuilder, request: SeedRequest) -> SeedRunResult:
        async with self._step(builder, StepName.SAFETY_CHECK) as step:
            report = evaluate_safety_gates(self.settings)
            builder.set_safety(report.as_dict())
            require_safe_environment(report)
            step.summary = (
                f"Safety gates passed (TOOLKIT_ENV={report.toolkit_env}, host {report.db_host})"
            )
        if step.failure:
            return self._finish(builder, *step.failure)

        fixture: GoldenFixture | None = None
        async with self._step(builder, StepName.LOAD_SCENARIO) as step:
            scenario = await self.scenario_loader.load(request.scenario_id)
            step.summary = f"Loaded scenario '{scenario.scenario_id}'"
            if request.mode.uses_fixture:
                if self.fixture_provider is None:
                    raise FixtureError(
                        f"{request.mode.value} mode needs a fixture provider",
                        code="FIXTURE_PROVIDER_MISSING",
                    )
                fixture = await self.fixture_provider.load_fixture(
                    scenario.scenario_id, request.seed
                )
                step.summary += f" with golden fixture {fixture.checksum}"
        if step.failure:
            return self._finish(builder, *step.failure)

        async with self._step(builder, StepName.VALIDATE_SCENARIO) as step:
            scenario = validate_scenario(scenario)
            step.summary = (
                f"Scenario '{scenario.scenario_id}' valid: trend {scenario.trend.value}, "
                f"{scenario.base_impressions} base impressions"
            )
        if step.failure:
            return self._finish(builder, *step.failure)

        async with self._step(builder, StepName.VALIDATE_INPUT) as step:
            check_request(request)
            days = resolve_days(request, scenario, self.settings)
            hygiene = await check_tenant_hygiene(self.store, request)
            await check_schema(self.store, code="SCHEMA_PARITY_VIOLATION")
            platforms = hygiene.platforms
            for warning in hygiene.warnings:
                builder.add_warning(warning)
            step.summary = (
                f"Tenant '{request.tenant_id}' ready: {len(platforms)} platform(s), {days} day(s)"
            )
            step.metrics = {
                "platforms": [p.value for p in platforms],
                "days": days,
                "real_data_override": hygiene.real_record is not None,
            }
        if step.failure:
            return self._finish(builder, *step.failure)

        tagger = ProvenanceTagger(scenario.scenario_id, request.seed)
        builder.set_result("scenario_id", scenario.scenario_id)
        builder.set_result("source_prefix", tagger.source_prefix)
        builder.set_result("mode", request.mode.value)
        builder.set_result("days", days)
        builder.set_result("platforms", [p.value for p in platforms])

        batches: list[PlatformBatch] = []
        async with self._step(builder, StepName.EXECUTE) as step:
            if request.mode == ExecutionMode.FIXTURE:
                builder.set_result("planned_rows", {})
                builder.set_result("applied_rows", {})
                step.summary = (
                    f"Golden fixture {fixture.checksum} loaded; generation and writes bypassed"
                )
                step.metrics = {
                    "records_planned": 0,
                    "records_applied": 0,
                    "entities_touched": [],
                }
            else:
                batches = await self._generate_and_write(
                    builder, step, request, tagger, scenario, platforms, days
                )
        if step.failure:
            return self._finish(builder, *step.failure)

        async with self._step(builder, StepName.VERIFY) as step:
            if request.mode == ExecutionMode.FIXTURE:
                verified = verify_fixture(fixture)
                source = "fixture"
            elif request.dry_run:
                verified = verify_batches(batches, tagger, days)
                source = "memory"
            else:
                verified = await verify_store(
                    self.store, request.tenant_id, tagger, platforms, days
                )
                source = "store"
            step.summary = (
                f"Verified {verified.campaigns} campaign(s) "
                f"and {verified.metric_rows} metric row(s)"
            )
            if request.mode == ExecutionMode.FIXTURE:
                builder.set_result("fixture_checksum", verified.fixture_checksum)
                step.summary += " in golden fixture"
            elif fixture is not None:
                checksum = verify_against_fixture(verified, fixture)
                builder.set_result("fixture_checksum", checksum)
                step.summary += "; shape matches golden fixture"
            step.metrics = {
                "campaigns": verified.campaigns,
                "metric_rows": verified.metric_rows,
                "source": source,
            }
        if step.failure:
            return self._finish(builder, *step.failure)

        return self._finish(builder, RunStatus.SUCCESS, 0)

    async def _generate_and_write(
        self,
        builder: ManifestBuilder,
        step: _StepScope,
        request: SeedRequest,
        tagger: ProvenanceTagger,
        scenario: ScenarioDescriptor,
        platforms: list[Platform],
        days: int,
    ) -> list[PlatformBatch]:
        batches = build_batches(
            self.generator, tagger, scenario, request.tenant_id, platforms, days
        )
        planned = {batch.platform.value: len(batch.metrics) for batch in batches}
        builder.set_result("planned_rows", planned)
        total_planned = sum(planned.values())

        if request.dry_run:
            builder.set_result("applied_rows", {})
            step.summary = (
                f"Dry run: planned {total_planned} metric row(s) for {', '.join(planned)}"
            )
            step.metrics = {
                "records_planned": total_planned,
                "records_applied": 0,
                "entities_touched": ["campaign", "metric"],
            }
            return batches

        try:
            write_report = await self.writer.write(request.tenant_id, tagger, batches)
        except WriteError as e:
            applied = e.details.get("applied_rows", {})
            builder.set_result("applied_rows", applied)
            builder.set_result("committed_platforms", e.details.get("committed", []))
            builder.set_result("failed_platform", e.details.get("failed"))
            step.metrics = {
                "records_planned": total_planned,
                "records_applied": sum(applied.values()),
                "entities_touched": ["campaign", "metric"],
            }
            raise
        builder.set_result("applied_rows", write_report.applied_rows)
        builder.set_result("committed_platforms", write_report.committed)
        step.summary = (
            f"Seeded {len(write_report.committed)} platform(s): "
            f"{', '.join(write_report.committed)}"
        )
        step.metrics = {
            "records_planned": total_planned,
            "records_applied": sum(write_report.applied_rows.values()),
            "metrics_purged": write_report.purged_metrics,
            "campaigns_purged": write_report.purged_campaigns,
            "entities_touched": ["campaign", "metric"],
        }
        return batches
