"""
app/services/reconciliation_service.py

Turns validated spreadsheet rows into campaigns, events and metric facts.

For one confirmed import:

    1. Campaigns: one per distinct (campaign_name, channel) pair, found or
       created atomically; channel is derived from utm_source.
    2. Events: one per distinct event_name, found or created atomically.
    3. Metrics: every row with a campaign adds its numbers to the
       campaign's running totals and appends one metric fact per present
       metric.

Running totals and the metric fact log are both maintained. Nothing derives
one from the other, so they can drift if a fact write fails after the totals
were incremented.

A storage failure for one campaign, event or row is logged and skipped; the
remaining entities are still processed.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from functools import lru_cache
from typing import Any

from app.schemas.marketing_data import MarketingDataRow
from app.storage import Storage, StorageError, get_storage
from db.base import utc_now
from db.models import CampaignChannel, CampaignStatus, EventStatus, EventType, MetricType

logger = logging.getLogger(__name__)

DEFAULT_EVENT_DURATION = timedelta(hours=2)
IMPORT_METADATA_SOURCE = "spreadsheet_import"


def channel_for_source(utm_source: str | None) -> str:
    """
    Derive a campaign channel from free-text UTM source.

    >>> channel_for_source("Google Ads")
    'google'
    """

    if not utm_source:
        return CampaignChannel.OTHER

    source = utm_source.lower()
    if "linkedin" in source:
        return CampaignChannel.LINKEDIN
    if "facebook" in source or "fb" in source:
        return CampaignChannel.FACEBOOK
    if "google" in source:
        return CampaignChannel.GOOGLE
    if "email" in source:
        return CampaignChannel.EMAIL
    if source in {"direct", "organic"}:
        return CampaignChannel.ORGANIC
    return CampaignChannel.OTHER


def registrations_value(row: MarketingDataRow) -> int | None:
    """
    Registrations and conversions share one bucket; registrations win when both are present.
    """

    return row.registrations if row.registrations is not None else row.conversions


def campaign_deltas(row: MarketingDataRow) -> dict[str, int | float]:
    """
    Running-total increments contributed by one row, keyed by campaign column.
    """

    candidates: dict[str, int | float | None] = {
        "impressions": row.impressions,
        "clicks": row.clicks,
        "registrations": registrations_value(row),
        "attendees": row.attendees,
        "spend": row.cost,
    }
    return {name: value for name, value in candidates.items() if value is not None}


def metric_facts(row: MarketingDataRow) -> list[tuple[str, float]]:
    """
    Metric facts emitted for one row, in emission order.

    Attendees are recorded under the registrations metric type. Cost only
    feeds the campaign's spend total.
    """

    facts: list[tuple[str, float]] = []
    if row.impressions is not None:
        facts.append((MetricType.IMPRESSIONS, float(row.impressions)))
    if row.clicks is not None:
        facts.append((MetricType.CLICKS, float(row.clicks)))
    registrations = registrations_value(row)
    if registrations is not None:
        facts.append((MetricType.REGISTRATIONS, float(registrations)))
    if row.attendees is not None:
        facts.append((MetricType.REGISTRATIONS, float(row.attendees)))
    return facts


@dataclass
class ReconciliationSummary:
    campaigns_created: int = 0
    campaigns_matched: int = 0
    events_created: int = 0
    events_matched: int = 0
    metrics_created: int = 0
    write_failures: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


class ReconciliationService:
    """
    Creates or updates Campaign / Event records from validated rows.
    """

    def __init__(self, *, storage: Storage) -> None:
        self._storage = storage

    def reconcile(
        self,
        *,
        user_id: int,
        import_id: int,
        filename: str,
        rows: Sequence[MarketingDataRow],
        now: datetime | None = None,
    ) -> ReconciliationSummary:
        now = now or utc_now()
        summary = ReconciliationSummary()

        campaign_ids = self._reconcile_campaigns(
            user_id=user_id,
            import_id=import_id,
            rows=rows,
            now=now,
            summary=summary,
        )
        self._reconcile_events(
            user_id=user_id,
            filename=filename,
            rows=rows,
            now=now,
            summary=summary,
        )
        self._record_metrics(rows=rows, campaign_ids=campaign_ids, now=now, summary=summary)

        logger.info(
            "Reconciliation finished import_id=%s campaigns_created=%s campaigns_matched=%s "
            "events_created=%s events_matched=%s metrics_created=%s write_failures=%s",
            import_id,
            summary.campaigns_created,
            summary.campaigns_matched,
            summary.events_created,
            summary.events_matched,
            summary.metrics_created,
            summary.write_failures,
        )
        return summary

    # ------------------------------------------------------------------
    # Campaigns
    # ------------------------------------------------------------------

    def _reconcile_campaigns(
        self,
        *,
        user_id: int,
        import_id: int,
        rows: Sequence[MarketingDataRow],
        now: datetime,
        summary: ReconciliationSummary,
    ) -> dict[tuple[str, str], int]:
        # (name, channel) -> first utm_source seen for that pair
        identities: dict[tuple[str, str], str | None] = {}
        for row in rows:
            if not row.campaign_name:
                continue
            key = (row.campaign_name, channel_for_source(row.utm_source))
            identities.setdefault(key, row.utm_source)

        campaign_ids: dict[tuple[str, str], int] = {}
        for (name, channel), utm_source in identities.items():
            try:
                campaign, created = self._storage.get_or_create_campaign(
                    user_id=user_id,
                    name=name,
                    channel=channel,
                    defaults=self._campaign_defaults(import_id=import_id, utm_source=utm_source, now=now),
                )
            except StorageError as exc:
                summary.write_failures += 1
                logger.warning(
                    "Campaign reconciliation failed name=%r channel=%s import_id=%s: %s",
                    name,
                    channel,
                    import_id,
                    exc,
                )
                continue

            campaign_ids[(name, channel)] = campaign.id
            if created:
                summary.campaigns_created += 1
                logger.info(
                    "Created campaign id=%s name=%r channel=%s import_id=%s",
                    campaign.id,
                    name,
                    channel,
                    import_id,
                )
            else:
                summary.campaigns_matched += 1
        return campaign_ids

    @staticmethod
    def _campaign_defaults(*, import_id: int, utm_source: str | None, now: datetime) -> dict[str, Any]:
        return {
            "status": CampaignStatus.ACTIVE,
            "budget": None,
            "spend": 0.0,
            "impressions": 0,
            "clicks": 0,
            "registrations": 0,
            "attendees": 0,
            "conversion_rate": None,
            "quality_score": None,
            "start_date": now,
            "end_date": None,
            "metadata_json": {
                "source": IMPORT_METADATA_SOURCE,
                "import_id": import_id,
                "utm_source": utm_source,
            },
        }

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def _reconcile_events(
        self,
        *,
        user_id: int,
        filename: str,
        rows: Sequence[MarketingDataRow],
        now: datetime,
        summary: ReconciliationSummary,
    ) -> None:
        first_rows: dict[str, MarketingDataRow] = {}
        for row in rows:
            if row.event_name:
                first_rows.setdefault(row.event_name, row)

        for name, row in first_rows.items():
            start = row.event_date or row.registration_date or now
            try:
                event, created = self._storage.get_or_create_event(
                    user_id=user_id,
                    name=name,
                    defaults={
                        "type": EventType.WEBINAR,
                        "status": EventStatus.COMPLETED,
                        "start_date": start,
                        "end_date": start + DEFAULT_EVENT_DURATION,
                        "target_registrations": None,
                        "actual_registrations": 0,
                        "attendance_count": 0,
                        "engagement_score": None,
                        "description": f"Imported from spreadsheet {filename}",
                    },
                )
            except StorageError as exc:
                summary.write_failures += 1
                logger.warning("Event reconciliation failed name=%r: %s", name, exc)
                continue

            if created:
                summary.events_created += 1
                logger.info("Created event id=%s name=%r", event.id, name)
            else:
                summary.events_matched += 1

    # ------------------------------------------------------------------
    # Totals and metric facts
    # ------------------------------------------------------------------

    def _record_metrics(
        self,
        *,
        rows: Sequence[MarketingDataRow],
        campaign_ids: dict[tuple[str, str], int],
        now: datetime,
        summary: ReconciliationSummary,
    ) -> None:
        for row in rows:
            if not row.campaign_name:
                continue
            campaign_id = campaign_ids.get((row.campaign_name, channel_for_source(row.utm_source)))
            if campaign_id is None:
                continue

            deltas = campaign_deltas(row)
            if not deltas:
                continue

            metric_date = row.registration_date or now
            try:
                self._storage.increment_campaign_totals(campaign_id, deltas)
                for metric_type, value in metric_facts(row):
                    self._storage.create_campaign_metric(
                        campaign_id=campaign_id,
                        metric_type=metric_type,
                        value=value,
                        date=metric_date,
                    )
                    summary.metrics_created += 1
            except StorageError as exc:
                summary.write_failures += 1
                logger.error(
                    "Metric recording failed campaign_id=%s; totals and facts may disagree: %s",
                    campaign_id,
                    exc,
                )


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_reconciliation_service() -> ReconciliationService:
    return ReconciliationService(storage=get_storage())
