"""
db/models/campaign_metric.py

Append-only metric facts recorded against a campaign.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Float, ForeignKey, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, utc_now

if TYPE_CHECKING:
    from db.models.campaign import Campaign


class MetricType:
    IMPRESSIONS = "impressions"
    CLICKS = "clicks"
    REGISTRATIONS = "registrations"
    COST_PER_REGISTRATION = "cost_per_registration"
    CTR = "ctr"
    CONVERSION_RATE = "conversion_rate"


class CampaignMetric(Base):
    """
    One fact per (campaign, metric type, date) emission.

    Rows are never updated or deduplicated; re-importing a file appends a
    second copy of every fact.
    """

    __tablename__ = "campaign_metrics"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    campaign_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("campaigns.id", ondelete="CASCADE"),
        nullable=False,
    )
    metric_type: Mapped[str] = mapped_column(String(64), nullable=False)
    value: Mapped[float] = mapped_column(Float, nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        server_default=func.now(),
    )

    campaign: Mapped["Campaign"] = relationship("Campaign", back_populates="metrics")

    __table_args__ = (
        Index("ix_campaign_metrics_campaign_id", "campaign_id"),
        Index("ix_campaign_metrics_campaign_type_date", "campaign_id", "metric_type", "date"),
    )

    def __repr__(self) -> str:
        return (
            f"<CampaignMetric id={self.id} campaign_id={self.campaign_id} "
            f"metric_type={self.metric_type!r} value={self.value}>"
        )
