"""Marketing analytics ORM models.

Campaign is the per-platform parent record; Metric holds one row per campaign
per day. Both carry ``is_mock_data`` and ``source`` so synthetic rows can be
told apart from a tenant's real data and purged by provenance.

Grain: Metric uniquely keyed by (campaign_id, date).
"""

import datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.shared.models import ProvenanceMixin, TimestampMixin


class Campaign(ProvenanceMixin, TimestampMixin, Base):
    """Advertising campaign on a single platform.

    Attributes:
        id: Primary key.
        tenant_id: Owning tenant.
        platform: Ad platform identifier (e.g. "google_ads").
        name: Campaign display name.
        status: Campaign lifecycle status.
        external_id: Platform-side identifier.
        is_mock_data: True for seeded rows.
        source: Provenance tag of the writer.
    """

    __tablename__ = "campaign"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(200))
    status: Mapped[str] = mapped_column(String(20), default="ACTIVE")
    external_id: Mapped[str] = mapped_column(String(200))

    metrics: Mapped[list["Metric"]] = relationship(
        back_populates="campaign", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "platform", "external_id", name="uq_campaign_tenant_platform_external"
        ),
        Index("ix_campaign_tenant_source", "tenant_id", "source"),
        CheckConstraint(
            "status IN ('ACTIVE', 'PAUSED', 'ARCHIVED')", name="ck_campaign_valid_status"
        ),
    )


class Metric(ProvenanceMixin, TimestampMixin, Base):
    """Daily performance metrics for one campaign.

    Attributes:
        id: Primary key.
        tenant_id: Owning tenant.
        campaign_id: Foreign key to campaign.
        platform: Ad platform identifier.
        date: Metric date.
        impressions: Ad impressions.
        clicks: Ad clicks.
        spend: Cost for the day.
        conversions: Attributed conversions.
        revenue: Attributed revenue.
        ctr: Click-through rate.
        cpc: Cost per click.
        cvr: Conversion rate.
        roas: Return on ad spend.
        is_mock_data: True for seeded rows.
        source: Provenance tag of the writer.
    """

    __tablename__ = "metric"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    campaign_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("campaign.id", ondelete="CASCADE"), index=True
    )
    date: Mapped[datetime.date] = mapped_column(Date)
    impressions: Mapped[int] = mapped_column(Integer)
    clicks: Mapped[int] = mapped_column(Integer)
    spend: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    conversions: Mapped[int] = mapped_column(Integer)
    revenue: Mapped[Decimal] = mapped_column(Numeric(14, 2))
    ctr: Mapped[Decimal] = mapped_column(Numeric(8, 6))
    cpc: Mapped[Decimal] = mapped_column(Numeric(10, 4))
    cvr: Mapped[Decimal] = mapped_column(Numeric(8, 6))
    roas: Mapped[Decimal] = mapped_column(Numeric(10, 4))

    campaign: Mapped["Campaign"] = relationship(back_populates="metrics")

    __table_args__ = (
        UniqueConstraint("campaign_id", "date", name="uq_metric_campaign_date"),
        Index("ix_metric_tenant_source", "tenant_id", "source"),
        CheckConstraint("clicks <= impressions", name="ck_metric_clicks_le_impressions"),
        CheckConstraint("conversions <= clicks", name="ck_metric_conversions_le_clicks"),
        CheckConstraint("impressions >= 0", name="ck_metric_impressions_non_negative"),
    )
