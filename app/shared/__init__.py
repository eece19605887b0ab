"""Shared building blocks used across features."""

from app.shared.models import PROVENANCE_COLUMNS, ProvenanceMixin, TimestampMixin

__all__ = ["PROVENANCE_COLUMNS", "ProvenanceMixin", "TimestampMixin"]
