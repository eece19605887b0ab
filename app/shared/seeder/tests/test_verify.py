"""Tests for post-write verification."""

import pytest

from app.shared.seeder.config import Platform
from app.shared.seeder.errors import FixtureError, VerificationError
from app.shared.seeder.fixtures import GoldenFixture, build_shape, compute_shape_checksum
from app.shared.seeder.provenance import ProvenanceTagger
from app.shared.seeder.verify import (
    VerifyReport,
    check_rows,
    check_schema,
    verify_against_fixture,
    verify_fixture,
    verify_store,
)

TAGGER = ProvenanceTagger("baseline", 5)


def campaign(platform, **overrides):
    row = {
        "tenant_id": "t1",
        "platform": platform,
        "is_mock_data": True,
        "source": TAGGER.campaign_source(platform),
    }
    row.update(overrides)
    return row


def metric(platform, day, **overrides):
    row = {
        "tenant_id": "t1",
        "platform": platform,
        "is_mock_data": True,
        "source": TAGGER.metric_source(platform, day),
        "campaign_id": 1,
    }
    row.update(overrides)
    return row


class TestCheckRows:
    """Tests for check_rows."""

    def test_clean_rows(self):
        report, issues = check_rows(
            [campaign("shopee")],
            [metric("shopee", 1), metric("shopee", 2)],
            [Platform.SHOPEE],
            2,
            TAGGER,
        )
        assert issues == []
        assert report.per_platform == {"shopee": 2}

    def test_count_mismatch(self):
        _, issues = check_rows([], [metric("shopee", 1)], [Platform.SHOPEE], 2, TAGGER)
        assert "shopee: expected 1 campaign, found 0" in issues
        assert "shopee: expected 2 metric rows, found 1" in issues

    def test_bad_provenance(self):
        _, issues = check_rows(
            [campaign("shopee", is_mock_data=None)],
            [metric("shopee", 1, source="manual")],
            [Platform.SHOPEE],
            1,
            TAGGER,
        )
        assert len(issues) == 2

    def test_other_platforms_ignored(self):
        _, issues = check_rows(
            [campaign("shopee"), campaign("lazada")],
            [metric("shopee", 1), metric("lazada", 1), metric("lazada", 2)],
            [Platform.SHOPEE],
            1,
            TAGGER,
        )
        assert issues == []


class TestVerifyStore:
    """Tests for verify_store."""

    @pytest.mark.asyncio
    async def test_missing_columns(self, store):
        store.columns["campaign"] = {"id", "tenant_id"}

        with pytest.raises(VerificationError) as exc_info:
            await verify_store(store, "t1", TAGGER, [Platform.SHOPEE], 1)

        assert exc_info.value.code == "SCHEMA_MISMATCH"
        assert "is_mock_data" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_issue_list_capped(self, store):
        store.metrics = [metric("shopee", 1, is_mock_data=False) for _ in range(20)]

        with pytest.raises(VerificationError) as exc_info:
            await verify_store(store, "t1", TAGGER, [Platform.SHOPEE], 1)

        assert exc_info.value.code == "VERIFICATION_FAILED"
        assert "more)" in exc_info.value.message
        assert len(exc_info.value.details["issues"]) == 22

    @pytest.mark.asyncio
    async def test_passes(self, store):
        store.campaigns = [campaign("shopee")]
        store.metrics = [metric("shopee", 1)]

        report = await verify_store(store, "t1", TAGGER, [Platform.SHOPEE], 1)

        assert report.campaigns == 1
        assert report.metric_rows == 1


class TestCheckSchema:
    """Tests for the provenance column check."""

    @pytest.mark.asyncio
    async def test_passes_with_full_schema(self, store):
        await check_schema(store)
        assert store.calls_named("list_columns") == ["campaign", "metric"]

    @pytest.mark.asyncio
    async def test_custom_code(self, store):
        store.columns["metric"] = store.columns["metric"] - {"is_mock_data"}

        with pytest.raises(VerificationError) as exc_info:
            await check_schema(store, code="SCHEMA_PARITY_VIOLATION")

        assert exc_info.value.code == "SCHEMA_PARITY_VIOLATION"
        assert "metric is missing columns: is_mock_data" in exc_info.value.message


class TestVerifyAgainstFixture:
    """Tests for golden fixture comparison."""

    def make_fixture(self, counts):
        shape = build_shape(counts)
        return GoldenFixture(
            schema_version="1.0.0",
            scenario_id="baseline",
            seed=5,
            shape=shape,
            checksum=compute_shape_checksum(shape),
        )

    def test_match_returns_checksum(self):
        fixture = self.make_fixture({"shopee": 2})
        report = VerifyReport(campaigns=1, metric_rows=2, per_platform={"shopee": 2})
        assert verify_against_fixture(report, fixture) == fixture.checksum

    def test_shape_mismatch(self):
        fixture = self.make_fixture({"shopee": 3})
        report = VerifyReport(campaigns=1, metric_rows=2, per_platform={"shopee": 2})
        with pytest.raises(FixtureError) as exc_info:
            verify_against_fixture(report, fixture)
        assert exc_info.value.code == "FIXTURE_SHAPE_MISMATCH"
        assert exc_info.value.exit_code == 2

    def test_fixture_alone_reports_its_shape(self):
        fixture = self.make_fixture({"shopee": 2, "tiktok": 3})

        report = verify_fixture(fixture)

        assert report.campaigns == 2
        assert report.metric_rows == 5
        assert report.per_platform == {"shopee": 2, "tiktok": 3}
        assert report.fixture_checksum == fixture.checksum

    def test_fixture_alone_rejects_tampered_checksum(self):
        fixture = self.make_fixture({"shopee": 2})
        tampered = GoldenFixture(
            schema_version=fixture.schema_version,
            scenario_id=fixture.scenario_id,
            seed=fixture.seed,
            shape=fixture.shape,
            checksum="sha256:" + "0" * 64,
        )

        with pytest.raises(FixtureError) as exc_info:
            verify_fixture(tampered)

        assert exc_info.value.code == "CHECKSUM_MISMATCH"
