"""create_marketing_tables

Revision ID: f3a1c9d2e7b4
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "f3a1c9d2e7b4"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Apply migration - create campaign and metric tables."""
    # Create campaign table
    op.create_table(
        "campaign",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("platform", sa.String(length=30), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="ACTIVE"),
        sa.Column("external_id", sa.String(length=200), nullable=False),
        # Provenance
        sa.Column("is_mock_data", sa.Boolean(), nullable=True, server_default=sa.false()),
        sa.Column("source", sa.String(length=255), nullable=True),
        # Timestamps (from TimestampMixin)
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        # Constraints
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "tenant_id", "platform", "external_id", name="uq_campaign_tenant_platform_external"
        ),
        sa.CheckConstraint(
            "status IN ('ACTIVE', 'PAUSED', 'ARCHIVED')",
            name="ck_campaign_valid_status",
        ),
    )

    # Create indexes for campaign
    op.create_index(op.f("ix_campaign_tenant_id"), "campaign", ["tenant_id"], unique=False)
    op.create_index("ix_campaign_tenant_source", "campaign", ["tenant_id", "source"], unique=False)

    # Create metric table
    op.create_table(
        "metric",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("campaign_id", sa.Integer(), nullable=False),
        sa.Column("platform", sa.String(length=30), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        # Funnel counts
        sa.Column("impressions", sa.Integer(), nullable=False),
        sa.Column("clicks", sa.Integer(), nullable=False),
        sa.Column("conversions", sa.Integer(), nullable=False),
        # Money
        sa.Column("spend", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("revenue", sa.Numeric(precision=14, scale=2), nullable=False),
        # Derived ratios
        sa.Column("ctr", sa.Numeric(precision=8, scale=6), nullable=False),
        sa.Column("cpc", sa.Numeric(precision=10, scale=4), nullable=False),
        sa.Column("cvr", sa.Numeric(precision=8, scale=6), nullable=False),
        sa.Column("roas", sa.Numeric(precision=10, scale=4), nullable=False),
        # Provenance
        sa.Column("is_mock_data", sa.Boolean(), nullable=True, server_default=sa.false()),
        sa.Column("source", sa.String(length=255), nullable=True),
        # Timestamps (from TimestampMixin)
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        # Constraints
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["campaign_id"], ["campaign.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("campaign_id", "date", name="uq_metric_campaign_date"),
        sa.CheckConstraint("clicks <= impressions", name="ck_metric_clicks_le_impressions"),
        sa.CheckConstraint("conversions <= clicks", name="ck_metric_conversions_le_clicks"),
        sa.CheckConstraint("impressions >= 0", name="ck_metric_impressions_non_negative"),
    )

    # Create indexes for metric
    op.create_index(op.f("ix_metric_tenant_id"), "metric", ["tenant_id"], unique=False)
    op.create_index(op.f("ix_metric_campaign_id"), "metric", ["campaign_id"], unique=False)
    op.create_index("ix_metric_tenant_source", "metric", ["tenant_id", "source"], unique=False)


def downgrade() -> None:
    """Revert migration - drop metric and campaign tables."""
    # Drop metric table and indexes
    op.drop_index("ix_metric_tenant_source", table_name="metric")
    op.drop_index(op.f("ix_metric_campaign_id"), table_name="metric")
    op.drop_index(op.f("ix_metric_tenant_id"), table_name="metric")
    op.drop_table("metric")

    # Drop campaign table and indexes
    op.drop_index("ix_campaign_tenant_source", table_name="campaign")
    op.drop_index(op.f("ix_campaign_tenant_id"), table_name="campaign")
    op.drop_table("campaign")
