"""Shared SQLAlchemy model mixins."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

# Column names every seeded table must expose; checked by the verify step.
PROVENANCE_COLUMNS = ("is_mock_data", "source", "tenant_id", "platform")


class TimestampMixin:
    """created_at / updated_at maintained by the database."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class ProvenanceMixin:
    """Tenant scoping plus the mock-data flag and writer tag.

    ``is_mock_data`` is nullable: rows written before the flag existed read
    as NULL and are treated as real data.
    """

    tenant_id: Mapped[str] = mapped_column(String(64), index=True)
    platform: Mapped[str] = mapped_column(String(30))
    is_mock_data: Mapped[bool | None] = mapped_column(Boolean, nullable=True, default=False)
    source: Mapped[str | None] = mapped_column(String(255), nullable=True)
