"""Unit tests for seeder schemas."""

import pytest
from pydantic import ValidationError

from app.features.seeder.schemas import ScenarioInfo, SeedRunResponse, SeedUnifiedParams
from app.shared.seeder.config import ExecutionMode


class TestSeedUnifiedParams:
    """Tests for SeedUnifiedParams."""

    def test_defaults(self):
        params = SeedUnifiedParams(tenant_id="t1")

        assert params.scenario_id == "baseline"
        assert params.seed == 12345
        assert params.days is None
        assert params.platforms is None
        assert params.mode == ExecutionMode.GENERATED
        assert params.dry_run is False
        assert params.allow_real_tenant is False

    def test_to_request(self):
        params = SeedUnifiedParams(
            tenant_id="t1",
            scenario_id="spike",
            seed=3,
            days=5,
            platforms="tiktok",
            mode="HYBRID",
            dry_run=True,
            allow_real_tenant=True,
        )

        request = params.to_request()

        assert request.tenant_id == "t1"
        assert request.scenario_id == "spike"
        assert request.days == 5
        assert request.platforms == "tiktok"
        assert request.mode is ExecutionMode.HYBRID
        assert request.dry_run is True
        assert request.allow_real_tenant is True

    def test_fixture_mode(self):
        params = SeedUnifiedParams(tenant_id="t1", mode="FIXTURE")

        assert params.to_request().mode is ExecutionMode.FIXTURE
        assert params.to_request().mode.uses_fixture

    @pytest.mark.parametrize(
        "overrides",
        [
            {"tenant_id": ""},
            {"seed": -5},
            {"seed": 2_147_483_648},
            {"days": 0},
            {"days": 400},
            {"mode": "LIVE"},
        ],
    )
    def test_rejects_out_of_range(self, overrides):
        with pytest.raises(ValidationError):
            SeedUnifiedParams(**{"tenant_id": "t1", **overrides})


class TestResponseSchemas:
    """Tests for response schemas."""

    def test_run_response(self):
        response = SeedRunResponse(status="BLOCKED", exit_code=78, manifest={"steps": []})
        assert response.model_dump() == {
            "status": "BLOCKED",
            "exit_code": 78,
            "manifest": {"steps": []},
        }

    def test_scenario_info_defaults(self):
        info = ScenarioInfo(scenario_id="baseline", name="Baseline", trend="STABLE")
        assert info.aliases == []
        assert info.description == ""
