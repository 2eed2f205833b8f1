"""
Storage layer interface for marketing data.

Records are the ORM model instances from ``db.models``. Backends return them
detached: callers may read attributes freely but must write through the
storage methods.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from db.models import Campaign, CampaignMetric, Event, SpreadsheetImport


class Storage(ABC):
    """
    Storage abstraction used by the spreadsheet ingestion pipeline.

    ``get_campaign``, ``update_campaign`` and ``get_events`` are not used by
    the pipeline; they are here for the campaign/event CRUD collaborator that
    shares this interface.

    Backend failures are raised as ``StorageError``.
    """

    # ------------------------------------------------------------------
    # Campaigns
    # ------------------------------------------------------------------

    @abstractmethod
    def get_campaigns(self, user_id: int) -> list[Campaign]:
        """
        Return the user's campaigns, oldest first.
        """

    @abstractmethod
    def get_campaign(self, campaign_id: int) -> Campaign | None:
        ...

    @abstractmethod
    def get_or_create_campaign(
        self,
        *,
        user_id: int,
        name: str,
        channel: str,
        defaults: Mapping[str, Any],
    ) -> tuple[Campaign, bool]:
        """
        Atomically return the campaign for ``(user_id, name, channel)``,
        creating it from *defaults* when absent.

        The flag is True when this call created the row.
        """

    @abstractmethod
    def update_campaign(self, campaign_id: int, changes: Mapping[str, Any]) -> Campaign | None:
        ...

    @abstractmethod
    def increment_campaign_totals(
        self,
        campaign_id: int,
        deltas: Mapping[str, int | float],
    ) -> Campaign | None:
        """
        Add *deltas* to the campaign's running totals in one atomic update.
        """

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    @abstractmethod
    def get_events(self, user_id: int) -> list[Event]:
        ...

    @abstractmethod
    def get_or_create_event(
        self,
        *,
        user_id: int,
        name: str,
        defaults: Mapping[str, Any],
    ) -> tuple[Event, bool]:
        """
        Atomically return the event named *name* for the user, creating it
        from *defaults* when absent.
        """

    # ------------------------------------------------------------------
    # Metric facts
    # ------------------------------------------------------------------

    @abstractmethod
    def create_campaign_metric(
        self,
        *,
        campaign_id: int,
        metric_type: str,
        value: float,
        date: datetime,
    ) -> CampaignMetric:
        ...

    @abstractmethod
    def get_campaign_metrics(self, campaign_id: int) -> list[CampaignMetric]:
        ...

    # ------------------------------------------------------------------
    # Spreadsheet imports
    # ------------------------------------------------------------------

    @abstractmethod
    def create_spreadsheet_import(self, values: Mapping[str, Any]) -> SpreadsheetImport:
        ...

    @abstractmethod
    def get_spreadsheet_import(self, import_id: int) -> SpreadsheetImport | None:
        ...

    @abstractmethod
    def get_spreadsheet_imports(self, user_id: int) -> list[SpreadsheetImport]:
        """
        Return the user's imports, newest first.
        """

    @abstractmethod
    def update_spreadsheet_import(
        self,
        import_id: int,
        changes: Mapping[str, Any],
    ) -> SpreadsheetImport | None:
        ...

    @abstractmethod
    def transition_spreadsheet_import(
        self,
        import_id: int,
        *,
        from_status: str,
        to_status: str,
    ) -> bool:
        """
        Move an import from *from_status* to *to_status* only if it is
        currently in *from_status*. Returns False when another caller won.
        """

    @abstractmethod
    def delete_spreadsheet_import(self, import_id: int) -> bool:
        ...
