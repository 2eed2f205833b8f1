"""
db/models/event.py

Event model (webinars, conferences, ...) scoped to one user.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin

EVENT_IDENTITY_CONSTRAINT = "uq_events_user_name"


class EventType:
    WEBINAR = "webinar"
    CONFERENCE = "conference"
    WORKSHOP = "workshop"
    TRADE_SHOW = "trade_show"


class EventStatus:
    UPCOMING = "upcoming"
    LIVE = "live"
    COMPLETED = "completed"


class Event(Base, TimestampMixin):
    """
    Identity is the exact, case-sensitive name within a user's scope.

    Registration and attendance counters are not fed by spreadsheet imports.
    """

    __tablename__ = "events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False, default=EventType.WEBINAR)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=EventStatus.UPCOMING)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    target_registrations: Mapped[int | None] = mapped_column(Integer, nullable=True)
    actual_registrations: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    attendance_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    engagement_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "name", name=EVENT_IDENTITY_CONSTRAINT),
        Index("ix_events_user_id", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<Event id={self.id} name={self.name!r} user_id={self.user_id}>"
