"""Marketing analytics tables populated by the seeder."""

from app.features.marketing.models import Campaign, Metric

__all__ = ["Campaign", "Metric"]
