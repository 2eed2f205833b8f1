"""
In-process storage backend.

Keeps transient ORM instances in dictionaries guarded by one lock. Used for
local development and tests; nothing survives a restart.
"""

from __future__ import annotations

import itertools
import threading
from collections.abc import Mapping
from datetime import datetime
from typing import Any, TypeVar

from sqlalchemy import inspect as sa_inspect

from app.storage.base import Storage
from app.storage.errors import StorageError
from db.base import utc_now
from db.models import Campaign, CampaignMetric, Event, SpreadsheetImport
from db.models.campaign import CAMPAIGN_TOTAL_FIELDS

ModelT = TypeVar("ModelT")


def _apply_column_defaults(instance: Any) -> None:
    """
    Fill unset attributes from the model's Python-side column defaults.

    Column defaults normally fire at flush; these instances are never flushed.
    """

    for attribute in sa_inspect(type(instance)).column_attrs:
        if getattr(instance, attribute.key) is not None:
            continue
        default = attribute.columns[0].default
        if default is None:
            continue
        if default.is_scalar:
            setattr(instance, attribute.key, default.arg)
        elif default.is_callable:
            setattr(instance, attribute.key, default.arg(None))


class MemoryStorage(Storage):
    """
    Thread-safe dictionary storage with the same semantics as the database backend.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._campaigns: dict[int, Campaign] = {}
        self._events: dict[int, Event] = {}
        self._metrics: dict[int, CampaignMetric] = {}
        self._imports: dict[int, SpreadsheetImport] = {}
        self._ids: dict[str, itertools.count] = {}

    def _new(self, model: type[ModelT], values: Mapping[str, Any]) -> ModelT:
        instance = model(**values)
        counter = self._ids.setdefault(model.__tablename__, itertools.count(1))
        instance.id = next(counter)
        _apply_column_defaults(instance)
        return instance

    @staticmethod
    def _apply_changes(instance: Any, changes: Mapping[str, Any]) -> None:
        for key, value in changes.items():
            if key == "id" or not hasattr(type(instance), key):
                raise StorageError(f"Unknown or read-only field {key!r} for {type(instance).__name__}.")
            setattr(instance, key, value)
        if hasattr(instance, "updated_at"):
            instance.updated_at = utc_now()

    # ------------------------------------------------------------------
    # Campaigns
    # ------------------------------------------------------------------

    def get_campaigns(self, user_id: int) -> list[Campaign]:
        with self._lock:
            return [campaign for campaign in self._campaigns.values() if campaign.user_id == user_id]

    def get_campaign(self, campaign_id: int) -> Campaign | None:
        with self._lock:
            return self._campaigns.get(campaign_id)

    def get_or_create_campaign(
        self,
        *,
        user_id: int,
        name: str,
        channel: str,
        defaults: Mapping[str, Any],
    ) -> tuple[Campaign, bool]:
        with self._lock:
            for campaign in self._campaigns.values():
                if campaign.user_id == user_id and campaign.name == name and campaign.channel == channel:
                    return campaign, False

            campaign = self._new(
                Campaign,
                {**defaults, "user_id": user_id, "name": name, "channel": channel},
            )
            self._campaigns[campaign.id] = campaign
            return campaign, True

    def update_campaign(self, campaign_id: int, changes: Mapping[str, Any]) -> Campaign | None:
        with self._lock:
            campaign = self._campaigns.get(campaign_id)
            if campaign is None:
                return None
            self._apply_changes(campaign, changes)
            return campaign

    def increment_campaign_totals(
        self,
        campaign_id: int,
        deltas: Mapping[str, int | float],
    ) -> Campaign | None:
        unknown = set(deltas) - set(CAMPAIGN_TOTAL_FIELDS)
        if unknown:
            raise StorageError(f"Not a campaign total: {', '.join(sorted(unknown))}.")

        with self._lock:
            campaign = self._campaigns.get(campaign_id)
            if campaign is None:
                return None
            for field_name, delta in deltas.items():
                setattr(campaign, field_name, (getattr(campaign, field_name) or 0) + delta)
            campaign.updated_at = utc_now()
            return campaign

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def get_events(self, user_id: int) -> list[Event]:
        with self._lock:
            return [event for event in self._events.values() if event.user_id == user_id]

    def get_or_create_event(
        self,
        *,
        user_id: int,
        name: str,
        defaults: Mapping[str, Any],
    ) -> tuple[Event, bool]:
        with self._lock:
            for event in self._events.values():
                if event.user_id == user_id and event.name == name:
                    return event, False

            event = self._new(Event, {**defaults, "user_id": user_id, "name": name})
            self._events[event.id] = event
            return event, True

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
        with self._lock:
            if campaign_id not in self._campaigns:
                raise StorageError(f"Campaign {campaign_id} does not exist.")
            metric = self._new(
                CampaignMetric,
                {
                    "campaign_id": campaign_id,
                    "metric_type": metric_type,
                    "value": value,
                    "date": date,
                },
            )
            self._metrics[metric.id] = metric
            return metric

    def get_campaign_metrics(self, campaign_id: int) -> list[CampaignMetric]:
        with self._lock:
            return [metric for metric in self._metrics.values() if metric.campaign_id == campaign_id]

    # ------------------------------------------------------------------
    # Spreadsheet imports
    # ------------------------------------------------------------------

    def create_spreadsheet_import(self, values: Mapping[str, Any]) -> SpreadsheetImport:
        with self._lock:
            record = self._new(SpreadsheetImport, values)
            self._imports[record.id] = record
            return record

    def get_spreadsheet_import(self, import_id: int) -> SpreadsheetImport | None:
        with self._lock:
            return self._imports.get(import_id)

    def get_spreadsheet_imports(self, user_id: int) -> list[SpreadsheetImport]:
        with self._lock:
            records = [record for record in self._imports.values() if record.user_id == user_id]
        return sorted(records, key=lambda record: (record.created_at, record.id), reverse=True)

    def update_spreadsheet_import(
        self,
        import_id: int,
        changes: Mapping[str, Any],
    ) -> SpreadsheetImport | None:
        with self._lock:
            record = self._imports.get(import_id)
            if record is None:
                return None
            self._apply_changes(record, changes)
            return record

    def transition_spreadsheet_import(
        self,
        import_id: int,
        *,
        from_status: str,
        to_status: str,
    ) -> bool:
        with self._lock:
            record = self._imports.get(import_id)
            if record is None or record.status != from_status:
                return False
            record.status = to_status
            record.updated_at = utc_now()
            return True

    def delete_spreadsheet_import(self, import_id: int) -> bool:
        with self._lock:
            return self._imports.pop(import_id, None) is not None
