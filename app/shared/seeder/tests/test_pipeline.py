"""Contract tests for the unified seeding pipeline."""

import re
from unittest.mock import AsyncMock

import pytest

from app.core.logging import run_id_ctx
from app.shared.seeder.config import ExecutionMode
from app.shared.seeder.manifest import ExitCode, RunStatus, StepName, StepStatus
from app.shared.seeder.scenarios import FileScenarioLoader
from app.shared.seeder.store import RealRecord

ALL_STEPS = [
    "SAFETY_CHECK",
    "LOAD_SCENARIO",
    "VALIDATE_SCENARIO",
    "VALIDATE_INPUT",
    "EXECUTE",
    "VERIFY",
]


def step_names(result):
    return [step.name.value for step in result.manifest.steps]


def metric_payloads(store, platform=None):
    rows = [row for batch in store.calls_named("create_metrics") for row in batch]
    if platform is not None:
        rows = [row for row in rows if row["platform"] == platform]
    return rows


class TestHygieneGate:
    """Tests for the VALIDATE_INPUT hygiene gate."""

    @pytest.mark.asyncio
    async def test_real_data_blocks_with_exit_78(self, store, make_pipeline, make_request):
        """Real tenant data without override blocks the run."""
        store.real_record = RealRecord(table="metric", id=1)

        result = await make_pipeline(store).run(make_request(seed=123, platforms=None))

        assert result.status == RunStatus.BLOCKED
        assert result.exit_code == ExitCode.BLOCKED == 78
        step = result.manifest.step(StepName.VALIDATE_INPUT)
        assert step.status == StepStatus.FAILED
        assert step.error.code == "HYGIENE_VIOLATION"
        assert step_names(result) == ALL_STEPS[:4]
        assert store.calls_named("delete_metrics") == []
        assert store.calls_named("create_campaign") == []

    @pytest.mark.asyncio
    async def test_override_seeds_and_warns(self, store, make_pipeline, make_request):
        """allow_real_tenant lets the run proceed with a manifest warning."""
        store.real_record = RealRecord(table="campaign", id=7)

        result = await make_pipeline(store).run(make_request(allow_real_tenant=True))

        assert result.status == RunStatus.SUCCESS
        assert any("allow_real_tenant" in w for w in result.manifest.warnings)

    @pytest.mark.asyncio
    async def test_hygiene_runs_in_dry_run(self, store, make_pipeline, make_request):
        """Dry runs still refuse tenants holding real data."""
        store.real_record = RealRecord(table="metric", id=3)

        result = await make_pipeline(store).run(make_request(dry_run=True))

        assert result.exit_code == 78
        assert store.calls_named("find_first_real_record") == ["t1"]

    @pytest.mark.asyncio
    async def test_invalid_platform_blocks(self, store, make_pipeline, make_request):
        """Unknown platform tokens fail VALIDATE_INPUT as BLOCKED."""
        result = await make_pipeline(store).run(make_request(platforms="google,myspace"))

        assert result.status == RunStatus.BLOCKED
        assert result.exit_code == 78
        error = result.manifest.step(StepName.VALIDATE_INPUT).error
        assert "non-seedable" in error.message
        assert "Allowed seedable platforms" in error.message

    @pytest.mark.asyncio
    async def test_out_of_range_seed_blocks(self, store, make_pipeline, make_request):
        """Seeds above the ten-digit bound are rejected before any write."""
        result = await make_pipeline(store).run(make_request(seed=9_999_999_999))

        assert result.exit_code == 78
        assert result.manifest.step(StepName.VALIDATE_INPUT).error.code == "INVALID_INPUT"


class TestDeterminism:
    """Tests for deterministic, subset-stable output."""

    @pytest.mark.asyncio
    async def test_same_seed_same_payloads(self, store, make_pipeline, make_request):
        """Identical requests produce identical create_metrics payloads."""
        first, second = store, type(store)()
        await make_pipeline(first).run(make_request(seed=999))
        await make_pipeline(second).run(make_request(seed=999))

        assert metric_payloads(first) == metric_payloads(second)
        assert first.calls_named("create_campaign") == second.calls_named("create_campaign")

    @pytest.mark.asyncio
    async def test_platform_subset_does_not_change_output(
        self, store, make_pipeline, make_request
    ):
        """Adding a platform leaves the other platform's rows untouched."""
        google_only, both = store, type(store)()
        await make_pipeline(google_only).run(make_request(seed=555, platforms="google"))
        await make_pipeline(both).run(make_request(seed=555, platforms="google,facebook"))

        assert metric_payloads(google_only, "google_ads") == metric_payloads(both, "google_ads")
        assert metric_payloads(both, "facebook")

    @pytest.mark.asyncio
    async def test_different_seeds_differ(self, store, make_pipeline, make_request):
        """Different seeds generate different numbers."""
        a, b = store, type(store)()
        await make_pipeline(a).run(make_request(seed=1, days=7))
        await make_pipeline(b).run(make_request(seed=2, days=7))

        assert [r["impressions"] for r in metric_payloads(a)] != [
            r["impressions"] for r in metric_payloads(b)
        ]


class TestIdempotentWrites:
    """Tests for run-scoped purges."""

    @pytest.mark.asyncio
    async def test_single_metric_purge_scoped_to_run(self, store, make_pipeline, make_request):
        """Exactly one metric purge per run, scoped by the run prefix."""
        await make_pipeline(store).run(make_request(seed=321, platforms="google,facebook"))

        purges = store.calls_named("delete_metrics")
        assert len(purges) == 1
        assert purges[0].tenant_id == "t1"
        assert purges[0].source_prefix == "toolkit:unified:baseline:321"
        assert purges[0].platforms == ("facebook", "google_ads")

    @pytest.mark.asyncio
    async def test_campaign_purge_per_platform(self, store, make_pipeline, make_request):
        """Each platform gets one campaign purge scoped to that platform only."""
        await make_pipeline(store).run(make_request(seed=321, platforms="google,facebook"))

        scopes = store.calls_named("delete_campaigns")
        assert [s.platform for s in scopes] == ["facebook", "google_ads"]
        for scope in scopes:
            assert scope.external_id_prefix == f"unified-baseline-321-{scope.platform}-"

    @pytest.mark.asyncio
    async def test_rerun_replaces_rows(self, store, make_pipeline, make_request):
        """Running twice leaves exactly one run's worth of rows."""
        pipeline = make_pipeline(store)
        request = make_request(seed=42, days=5, platforms="google,tiktok")

        await pipeline.run(request)
        result = await pipeline.run(request)

        assert result.status == RunStatus.SUCCESS
        assert len(store.campaigns) == 2
        assert len(store.metrics) == 10

    @pytest.mark.asyncio
    async def test_one_day_yields_one_row_per_platform(self, store, make_pipeline, make_request):
        """days=1 writes one metric row per platform."""
        result = await make_pipeline(store).run(make_request(days=1, platforms=None))

        assert result.manifest.results["applied_rows"] == {
            "facebook": 1,
            "google_ads": 1,
            "lazada": 1,
            "line_ads": 1,
            "shopee": 1,
            "tiktok": 1,
        }

    @pytest.mark.asyncio
    async def test_partial_failure_keeps_committed_platforms(
        self, store, make_pipeline, make_request
    ):
        """A failing platform rolls back alone; earlier platforms stay."""
        store.fail_on_platform = "google_ads"

        result = await make_pipeline(store).run(make_request(platforms="google,facebook"))

        assert result.status == RunStatus.FAILED
        assert result.exit_code == 1
        step = result.manifest.step(StepName.EXECUTE)
        assert step.status == StepStatus.FAILED
        assert step.error.code == "PARTIAL_WRITE"
        assert "google_ads" in step.summary
        assert "facebook" in step.summary
        assert result.manifest.results["committed_platforms"] == ["facebook"]
        assert {row["platform"] for row in store.campaigns} == {"facebook"}
        assert result.manifest.step(StepName.VERIFY) is None

    @pytest.mark.asyncio
    async def test_purge_failure_writes_nothing(self, store, make_pipeline, make_request):
        """A failed metric purge stops before any platform is written."""
        store.fail_on_purge = True

        result = await make_pipeline(store).run(make_request())

        assert result.exit_code == 1
        assert result.manifest.step(StepName.EXECUTE).error.code == "PURGE_FAILED"
        assert store.calls_named("create_campaign") == []


class TestProvenance:
    """Tests for provenance tags on written rows."""

    @pytest.mark.asyncio
    async def test_rows_carry_mock_flag_and_prefix(self, store, make_pipeline, make_request):
        """Every campaign and metric carries is_mock_data and the run prefix."""
        await make_pipeline(store).run(make_request(seed=111, days=3, platforms="google,line"))

        prefix = "toolkit:unified:baseline:111"
        for row in store.campaigns + store.metrics:
            assert row["is_mock_data"] is True
            assert row["source"].startswith(prefix)

        assert store.metrics[0]["source"] == f"{prefix}:google_ads:1"
        assert {c["source"] for c in store.campaigns} == {
            f"{prefix}:google_ads",
            f"{prefix}:line_ads",
        }

    @pytest.mark.asyncio
    async def test_external_ids_are_not_timestamps(self, store, make_pipeline, make_request):
        """External ids are deterministic and contain no 13-digit run."""
        await make_pipeline(store).run(make_request(seed=999))

        external_id = store.campaigns[0]["external_id"]
        assert external_id == "unified-baseline-999-google_ads-0"
        assert not re.search(r"\d{13}", external_id)


class TestManifestShape:
    """Tests for the returned manifest."""

    @pytest.mark.asyncio
    async def test_success_manifest_has_all_steps_in_order(
        self, store, make_pipeline, make_request
    ):
        """A successful run lists all six steps in pipeline order."""
        result = await make_pipeline(store).run(make_request())

        assert result.status == RunStatus.SUCCESS
        assert result.exit_code == 0
        assert step_names(result) == ALL_STEPS
        assert all(step.status == StepStatus.SUCCESS for step in result.manifest.steps)
        assert result.manifest.invocation.command_name == "seed-unified-scenario"
        assert result.manifest.invocation.command_classification.value == "WRITE"
        assert result.manifest.safety["gates"][0]["passed"] is True

    @pytest.mark.asyncio
    async def test_run_id_context_reset_after_run(self, store, make_pipeline, make_request):
        """The run id is only bound to the logging context during the run."""
        await make_pipeline(store).run(make_request())

        assert run_id_ctx.get() is None

    @pytest.mark.asyncio
    async def test_dry_run_writes_nothing(self, store, make_pipeline, make_request):
        """Dry runs generate and verify in memory only."""
        result = await make_pipeline(store).run(make_request(dry_run=True, days=4))

        assert result.status == RunStatus.SUCCESS
        assert step_names(result) == ALL_STEPS
        assert store.calls_named("delete_metrics") == []
        assert store.calls_named("create_metrics") == []
        assert result.manifest.results["planned_rows"] == {"google_ads": 4}
        assert result.manifest.step(StepName.VERIFY).metrics["source"] == "memory"

    @pytest.mark.asyncio
    async def test_days_default_to_scenario(self, store, make_pipeline, make_request):
        """Without request days the scenario's day count applies."""
        result = await make_pipeline(store).run(make_request(scenario_id="spike", days=None))

        assert result.manifest.results["days"] == 14
        assert len(store.metrics) == 14


class TestFailures:
    """Tests for failing steps."""

    @pytest.mark.asyncio
    async def test_safety_gate_failure(self, store, make_pipeline, make_request, seeder_settings):
        """A missing TOOLKIT_ENV stops the run at SAFETY_CHECK."""
        settings = seeder_settings.model_copy(update={"toolkit_env": None})

        result = await make_pipeline(store, settings=settings).run(make_request())

        assert result.status == RunStatus.FAILED
        assert result.exit_code == 1
        assert step_names(result) == ["SAFETY_CHECK"]
        assert result.manifest.step(StepName.SAFETY_CHECK).error.code == "SAFETY_BLOCK"
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_managed_database_host_blocked(
        self, store, make_pipeline, make_request, seeder_settings
    ):
        """Managed cloud databases fail the DATABASE_URL gate."""
        settings = seeder_settings.model_copy(
            update={"database_url": "postgresql://u:p@db.abc.supabase.co:5432/postgres"}
        )

        result = await make_pipeline(store, settings=settings).run(make_request())

        assert result.exit_code == 1
        assert result.manifest.safety["db_classification"] == "BLOCKED"

    @pytest.mark.asyncio
    async def test_unknown_scenario_fails_load(self, store, make_pipeline, make_request):
        """Unknown scenarios fail LOAD_SCENARIO with exit 2."""
        result = await make_pipeline(store).run(make_request(scenario_id="nope"))

        assert result.status == RunStatus.FAILED
        assert result.exit_code == 2
        assert step_names(result) == ["SAFETY_CHECK", "LOAD_SCENARIO"]
        assert result.manifest.step(StepName.LOAD_SCENARIO).error.code == "SCENARIO_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_undecodable_scenario_file_fails_load(
        self, store, make_pipeline, make_request, tmp_path
    ):
        """A scenario file that is not UTF-8 is a scenario error, exit 2."""
        (tmp_path / "bad.yaml").write_bytes(b"name: \xff\xfe broken\n")

        result = await make_pipeline(store, loader=FileScenarioLoader(tmp_path)).run(
            make_request(scenario_id="bad")
        )

        assert result.status == RunStatus.FAILED
        assert result.exit_code == 2
        assert result.manifest.step(StepName.LOAD_SCENARIO).error.code == "PARSE_ERROR"
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_invalid_scenario_fails_validation(self, store, make_pipeline, make_request):
        """Malformed descriptors fail VALIDATE_SCENARIO, not LOAD_SCENARIO."""
        from app.shared.seeder.config import ScenarioDescriptor

        loader = AsyncMock()
        loader.load.return_value = ScenarioDescriptor(
            schema_version="2.0.0", scenario_id="broken", name="Broken", trend="SIDEWAYS"
        )

        result = await make_pipeline(store, loader=loader).run(make_request())

        assert result.exit_code == 2
        step = result.manifest.step(StepName.VALIDATE_SCENARIO)
        assert step.status == StepStatus.FAILED
        assert "schemaVersion" in step.error.message
        assert "SIDEWAYS" in step.error.message

    @pytest.mark.asyncio
    async def test_unexpected_error_is_captured(self, store, make_pipeline, make_request):
        """Exceptions from collaborators become FAILED steps, not crashes."""
        loader = AsyncMock()
        loader.load.side_effect = RuntimeError("disk on fire")

        result = await make_pipeline(store, loader=loader).run(make_request())

        assert result.exit_code == 1
        error = result.manifest.step(StepName.LOAD_SCENARIO).error
        assert error.code == "UNEXPECTED_ERROR"
        assert "disk on fire" in error.message

    @pytest.mark.asyncio
    async def test_schema_mismatch_blocks_before_writes(self, store, make_pipeline, make_request):
        """Missing provenance columns block VALIDATE_INPUT before anything is purged."""
        store.columns["metric"] = store.columns["metric"] - {"source"}

        result = await make_pipeline(store).run(make_request())

        assert result.status == RunStatus.BLOCKED
        assert result.exit_code == ExitCode.BLOCKED
        assert step_names(result) == ALL_STEPS[:4]
        step = result.manifest.step(StepName.VALIDATE_INPUT)
        assert step.error.code == "SCHEMA_PARITY_VIOLATION"
        assert "metric is missing columns: source" in step.error.message
        assert store.calls_named("delete_metrics") == []
        assert store.calls_named("create_campaign") == []

    @pytest.mark.asyncio
    async def test_schema_checked_on_both_tables_before_execute(
        self, store, make_pipeline, make_request
    ):
        """Both seeded tables are inspected before the first purge."""
        await make_pipeline(store).run(make_request())

        names = [name for name, _ in store.calls]
        assert store.calls_named("list_columns")[:2] == ["campaign", "metric"]
        assert names.index("list_columns") < names.index("delete_metrics")


class TestHybridMode:
    """Tests for golden fixture comparison."""

    @pytest.mark.asyncio
    async def test_matching_fixture_succeeds(self, store, make_pipeline, make_request):
        """Generated shape matches the bundled baseline fixture."""
        result = await make_pipeline(store).run(
            make_request(seed=12345, days=None, platforms=None, mode=ExecutionMode.HYBRID)
        )

        assert result.status == RunStatus.SUCCESS
        assert result.manifest.results["fixture_checksum"].startswith("sha256:")

    @pytest.mark.asyncio
    async def test_shape_mismatch_fails_verify(self, store, make_pipeline, make_request):
        """A platform subset does not match the all-platform fixture."""
        result = await make_pipeline(store).run(
            make_request(seed=12345, days=None, platforms="google", mode=ExecutionMode.HYBRID)
        )

        assert result.exit_code == 2
        assert result.manifest.step(StepName.VERIFY).error.code == "FIXTURE_SHAPE_MISMATCH"

    @pytest.mark.asyncio
    async def test_missing_fixture_fails_before_writes(self, store, make_pipeline, make_request):
        """Without a fixture the run stops at LOAD_SCENARIO."""
        result = await make_pipeline(store).run(make_request(seed=1, mode=ExecutionMode.HYBRID))

        assert result.exit_code == 2
        assert result.manifest.step(StepName.LOAD_SCENARIO).error.code == "FIXTURE_NOT_FOUND"
        assert store.calls == []


class TestFixtureMode:
    """Tests for runs that only inspect the golden fixture."""

    @pytest.mark.asyncio
    async def test_reports_fixture_without_writes(self, store, make_pipeline, make_request):
        """FIXTURE runs succeed with zero records and never generate or write."""
        result = await make_pipeline(store).run(
            make_request(seed=12345, days=None, platforms=None, mode=ExecutionMode.FIXTURE)
        )

        assert result.status == RunStatus.SUCCESS
        assert result.exit_code == 0
        assert step_names(result) == ALL_STEPS
        assert {name for name, _ in store.calls} <= {"find_first_real_record", "list_columns"}
        assert store.campaigns == []
        assert store.metrics == []

        execute = result.manifest.step(StepName.EXECUTE)
        assert execute.status == StepStatus.SUCCESS
        assert execute.metrics["records_applied"] == 0
        assert "bypassed" in execute.summary

        verify = result.manifest.step(StepName.VERIFY)
        assert verify.metrics["source"] == "fixture"
        assert verify.metrics["metric_rows"] == 180
        assert result.manifest.results["fixture_checksum"].startswith("sha256:")
        assert result.manifest.results["applied_rows"] == {}

    @pytest.mark.asyncio
    async def test_missing_fixture_fails_load(self, store, make_pipeline, make_request):
        """Without a fixture for the seed, FIXTURE runs stop at LOAD_SCENARIO."""
        result = await make_pipeline(store).run(make_request(seed=7, mode=ExecutionMode.FIXTURE))

        assert result.exit_code == 2
        assert result.manifest.step(StepName.LOAD_SCENARIO).error.code == "FIXTURE_NOT_FOUND"
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_hygiene_still_applies(self, store, make_pipeline, make_request):
        """Real tenant data blocks FIXTURE runs like any other mode."""
        store.real_record = RealRecord(table="campaign", id=3)

        result = await make_pipeline(store).run(
            make_request(seed=12345, days=None, platforms=None, mode=ExecutionMode.FIXTURE)
        )

        assert result.exit_code == ExitCode.BLOCKED
