"""
SQLAlchemy-backed storage implementation for marketing data.

Every method runs in its own short transaction. Campaign and event creation
use ``INSERT .. ON CONFLICT DO NOTHING`` on the identity constraints, and
running totals are bumped with ``SET x = x + :delta``, so concurrent imports
never create duplicates or lose increments.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from sqlalchemy import Update, delete, select, update
from sqlalchemy.dialects.postgresql import Insert, insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.storage.base import Storage
from app.storage.errors import StorageError
from db.models import Campaign, CampaignMetric, Event, SpreadsheetImport
from db.models.campaign import CAMPAIGN_IDENTITY_CONSTRAINT, CAMPAIGN_TOTAL_FIELDS
from db.models.event import EVENT_IDENTITY_CONSTRAINT

logger = logging.getLogger(__name__)


class SQLAlchemyStorage(Storage):
    """
    Persist marketing data through short-lived SQLAlchemy sessions.
    """

    def __init__(self, *, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("Storage operation failed operation=%s error=%s", operation, exc)
            raise StorageError(f"{operation} failed.") from exc
        finally:
            session.close()

    # ------------------------------------------------------------------
    # Campaigns
    # ------------------------------------------------------------------

    def get_campaigns(self, user_id: int) -> list[Campaign]:
        with self._transaction("get_campaigns") as session:
            stmt = select(Campaign).where(Campaign.user_id == user_id).order_by(Campaign.id)
            return list(session.scalars(stmt))

    def get_campaign(self, campaign_id: int) -> Campaign | None:
        with self._transaction("get_campaign") as session:
            return session.get(Campaign, campaign_id)

    def get_or_create_campaign(
        self,
        *,
        user_id: int,
        name: str,
        channel: str,
        defaults: Mapping[str, Any],
    ) -> tuple[Campaign, bool]:
        with self._transaction("get_or_create_campaign") as session:
            stmt = campaign_upsert(user_id=user_id, name=name, channel=channel, defaults=defaults)
            inserted_id = session.execute(stmt).scalar_one_or_none()
            campaign = session.scalars(
                select(Campaign).where(
                    Campaign.user_id == user_id,
                    Campaign.name == name,
                    Campaign.channel == channel,
                )
            ).one()
            return campaign, inserted_id is not None

    def update_campaign(self, campaign_id: int, changes: Mapping[str, Any]) -> Campaign | None:
        with self._transaction("update_campaign") as session:
            campaign = session.get(Campaign, campaign_id)
            if campaign is None:
                return None
            _apply_changes(campaign, changes)
            session.flush()
            return campaign

    def increment_campaign_totals(
        self,
        campaign_id: int,
        deltas: Mapping[str, int | float],
    ) -> Campaign | None:
        unknown = set(deltas) - set(CAMPAIGN_TOTAL_FIELDS)
        if unknown:
            raise StorageError(f"Not a campaign total: {', '.join(sorted(unknown))}.")

        with self._transaction("increment_campaign_totals") as session:
            if deltas:
                session.execute(campaign_totals_increment(campaign_id, deltas))
            return session.get(Campaign, campaign_id)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def get_events(self, user_id: int) -> list[Event]:
        with self._transaction("get_events") as session:
            stmt = select(Event).where(Event.user_id == user_id).order_by(Event.id)
            return list(session.scalars(stmt))

    def get_or_create_event(
        self,
        *,
        user_id: int,
        name: str,
        defaults: Mapping[str, Any],
    ) -> tuple[Event, bool]:
        with self._transaction("get_or_create_event") as session:
            stmt = event_upsert(user_id=user_id, name=name, defaults=defaults)
            inserted_id = session.execute(stmt).scalar_one_or_none()
            event = session.scalars(
                select(Event).where(Event.user_id == user_id, Event.name == name)
            ).one()
            return event, inserted_id is not None

    # ------------------------------------------------------------------
    # Metric facts
    # ------------------------------------------------------------------

    def create_campaign_metric(
        self,
        *,
        campaign_id: int,
        metric_type: str,
        value: float,
        date: datetime,
    ) -> CampaignMetric:
        with self._transaction("create_campaign_metric") as session:
            metric = CampaignMetric(
                campaign_id=campaign_id,
                metric_type=metric_type,
                value=value,
                date=date,
            )
            session.add(metric)
            session.flush()
            return metric

    def get_campaign_metrics(self, campaign_id: int) -> list[CampaignMetric]:
        with self._transaction("get_campaign_metrics") as session:
            stmt = (
                select(CampaignMetric)
                .where(CampaignMetric.campaign_id == campaign_id)
                .order_by(CampaignMetric.id)
            )
            return list(session.scalars(stmt))

    # ------------------------------------------------------------------
    # Spreadsheet imports
    # ------------------------------------------------------------------

    def create_spreadsheet_import(self, values: Mapping[str, Any]) -> SpreadsheetImport:
        with self._transaction("create_spreadsheet_import") as session:
            record = SpreadsheetImport(**values)
            session.add(record)
            session.flush()
            return record

    def get_spreadsheet_import(self, import_id: int) -> SpreadsheetImport | None:
        with self._transaction("get_spreadsheet_import") as session:
            return session.get(SpreadsheetImport, import_id)

    def get_spreadsheet_imports(self, user_id: int) -> list[SpreadsheetImport]:
        with self._transaction("get_spreadsheet_imports") as session:
            stmt = (
                select(SpreadsheetImport)
                .where(SpreadsheetImport.user_id == user_id)
                .order_by(SpreadsheetImport.created_at.desc(), SpreadsheetImport.id.desc())
            )
            return list(session.scalars(stmt))

    def update_spreadsheet_import(
        self,
        import_id: int,
        changes: Mapping[str, Any],
    ) -> SpreadsheetImport | None:
        with self._transaction("update_spreadsheet_import") as session:
            record = session.get(SpreadsheetImport, import_id)
            if record is None:
                return None
            _apply_changes(record, changes)
            session.flush()
            return record

    def transition_spreadsheet_import(
        self,
        import_id: int,
        *,
        from_status: str,
        to_status: str,
    ) -> bool:
        with self._transaction("transition_spreadsheet_import") as session:
            stmt = import_status_transition(import_id, from_status=from_status, to_status=to_status)
            return session.execute(stmt).rowcount == 1

    def delete_spreadsheet_import(self, import_id: int) -> bool:
        with self._transaction("delete_spreadsheet_import") as session:
            stmt = (
                delete(SpreadsheetImport)
                .where(SpreadsheetImport.id == import_id)
                .execution_options(synchronize_session=False)
            )
            return session.execute(stmt).rowcount > 0


# ---------------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------------


def campaign_upsert(
    *,
    user_id: int,
    name: str,
    channel: str,
    defaults: Mapping[str, Any],
) -> Insert:
    """
    ``INSERT .. ON CONFLICT ON CONSTRAINT <identity> DO NOTHING RETURNING id``.

    Returns no row when the campaign already exists.
    """

    return (
        insert(Campaign)
        .values(
            _insert_values(
                Campaign,
                {**defaults, "user_id": user_id, "name": name, "channel": channel},
            )
        )
        .on_conflict_do_nothing(constraint=CAMPAIGN_IDENTITY_CONSTRAINT)
        .returning(Campaign.id)
    )


def event_upsert(*, user_id: int, name: str, defaults: Mapping[str, Any]) -> Insert:
    return (
        insert(Event)
        .values(_insert_values(Event, {**defaults, "user_id": user_id, "name": name}))
        .on_conflict_do_nothing(constraint=EVENT_IDENTITY_CONSTRAINT)
        .returning(Event.id)
    )


def campaign_totals_increment(campaign_id: int, deltas: Mapping[str, int | float]) -> Update:
    """
    ``UPDATE campaigns SET x = x + :delta`` so concurrent imports never lose increments.
    """

    return (
        update(Campaign)
        .where(Campaign.id == campaign_id)
        .values(
            {
                getattr(Campaign, field_name): getattr(Campaign, field_name) + delta
                for field_name, delta in deltas.items()
            }
        )
        .execution_options(synchronize_session=False)
    )


def import_status_transition(import_id: int, *, from_status: str, to_status: str) -> Update:
    # Compare-and-set: matches no row unless the import is still in from_status.
    return (
        update(SpreadsheetImport)
        .where(
            SpreadsheetImport.id == import_id,
            SpreadsheetImport.status == from_status,
        )
        .values(status=to_status)
        .execution_options(synchronize_session=False)
    )


def _insert_values(model: type, values: Mapping[str, Any]) -> dict[Any, Any]:
    # Keyed by mapped attribute: attribute and column names differ (metadata_json / metadata).
    return {getattr(model, key): value for key, value in values.items()}


def _apply_changes(instance: Any, changes: Mapping[str, Any]) -> None:
    for key, value in changes.items():
        if key == "id" or not hasattr(type(instance), key):
            raise StorageError(f"Unknown or read-only field {key!r} for {type(instance).__name__}.")
        setattr(instance, key, value)
