"""Tests for marketing ORM models."""

from app.features.marketing.models import Campaign, Metric
from app.shared.models import PROVENANCE_COLUMNS as SHARED_PROVENANCE_COLUMNS

PROVENANCE_COLUMNS = {"tenant_id", "platform", "is_mock_data", "source"}


class TestCampaignModel:
    """Tests for Campaign model."""

    def test_campaign_tablename(self):
        """Campaign model should have correct table name."""
        assert Campaign.__tablename__ == "campaign"

    def test_campaign_has_provenance_columns(self):
        """Campaign exposes the columns the seeder relies on."""
        columns = {c.name for c in Campaign.__table__.columns}
        assert PROVENANCE_COLUMNS | {"external_id", "name", "status"} <= columns

    def test_campaign_is_mock_data_nullable(self):
        """Legacy rows may carry a NULL mock flag."""
        assert Campaign.__table__.columns["is_mock_data"].nullable is True

    def test_campaign_external_id_unique_per_tenant_platform(self):
        """External ids are unique within tenant and platform."""
        constraint_names = {c.name for c in Campaign.__table__.constraints}
        assert "uq_campaign_tenant_platform_external" in constraint_names


class TestMetricModel:
    """Tests for Metric model."""

    def test_metric_tablename(self):
        """Metric model should have correct table name."""
        assert Metric.__tablename__ == "metric"

    def test_metric_has_required_columns(self):
        """Metric carries funnel values and provenance."""
        columns = {c.name for c in Metric.__table__.columns}
        required = PROVENANCE_COLUMNS | {
            "campaign_id",
            "date",
            "impressions",
            "clicks",
            "spend",
            "conversions",
            "revenue",
            "ctr",
            "cpc",
            "cvr",
            "roas",
        }
        assert required <= columns

    def test_metric_campaign_fk_cascades(self):
        """Deleting a campaign removes its metrics."""
        fk = next(iter(Metric.__table__.columns["campaign_id"].foreign_keys))
        assert fk.column.table.name == "campaign"
        assert fk.ondelete == "CASCADE"

    def test_metric_funnel_constraints(self):
        """Funnel integrity is enforced in the database too."""
        names = {c.name for c in Metric.__table__.constraints}
        assert "ck_metric_clicks_le_impressions" in names
        assert "ck_metric_conversions_le_clicks" in names


class TestProvenanceMixin:
    """Both seeded tables share the provenance columns."""

    def test_shared_provenance_columns_match_mixin(self):
        for model in (Campaign, Metric):
            columns = {c.name for c in model.__table__.columns}
            assert set(SHARED_PROVENANCE_COLUMNS) <= columns

    def test_tenant_id_indexed_on_both_tables(self):
        for model in (Campaign, Metric):
            indexed = {col.name for index in model.__table__.indexes for col in index.columns}
            assert "tenant_id" in indexed
