"""
db/models/campaign.py

Campaign model: one marketing campaign on one channel, owned by one user.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import DateTime, Float, Index, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin

if TYPE_CHECKING:
    from db.models.campaign_metric import CampaignMetric

CAMPAIGN_IDENTITY_CONSTRAINT = "uq_campaigns_user_name_channel"


class CampaignChannel:
    LINKEDIN = "linkedin"
    FACEBOOK = "facebook"
    GOOGLE = "google"
    EMAIL = "email"
    ORGANIC = "organic"
    OTHER = "other"


class CampaignStatus:
    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


# Running totals accumulated by spreadsheet imports.
CAMPAIGN_TOTAL_FIELDS: tuple[str, ...] = (
    "impressions",
    "clicks",
    "registrations",
    "attendees",
    "spend",
)


class Campaign(Base, TimestampMixin):
    """
    A campaign is identified by ``(user_id, name, channel)``: the same campaign
    name run on two channels is two campaigns.

    impressions / clicks / registrations / attendees / spend are running totals.
    Imports only ever add to them.
    """

    __tablename__ = "campaigns"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    channel: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=CampaignChannel.OTHER,
        comment="linkedin, facebook, google, email, organic, other",
    )
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=CampaignStatus.ACTIVE,
    )
    budget: Mapped[float | None] = mapped_column(Float, nullable=True)
    spend: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    impressions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    clicks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    registrations: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    attendees: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    conversion_rate: Mapped[float | None] = mapped_column(Float, nullable=True)
    quality_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    metadata_json: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata",
        JSONB,
        nullable=True,
        comment="Provenance, e.g. importing spreadsheet and originating utm_source",
    )

    metrics: Mapped[list["CampaignMetric"]] = relationship(
        "CampaignMetric",
        back_populates="campaign",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint("user_id", "name", "channel", name=CAMPAIGN_IDENTITY_CONSTRAINT),
        Index("ix_campaigns_user_id", "user_id"),
        Index("ix_campaigns_user_channel", "user_id", "channel"),
    )

    def __repr__(self) -> str:
        return (
            f"<Campaign id={self.id} name={self.name!r} "
            f"channel={self.channel!r} user_id={self.user_id}>"
        )
