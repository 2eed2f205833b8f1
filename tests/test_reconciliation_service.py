"""
tests/test_reconciliation_service.py

Pytest unit tests for ReconciliationService against MemoryStorage.

Coverage
--------
- utm_source → channel derivation
- Campaign identity (name, channel) and accumulation across imports
- Metric facts, including attendees and the conversions fallback
- Event creation and default duration
- Per-entity storage failures do not abort the batch
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from app.schemas.marketing_data import MarketingDataRow
from app.services.reconciliation_service import (
    DEFAULT_EVENT_DURATION,
    ReconciliationService,
    campaign_deltas,
    channel_for_source,
    metric_facts,
)
from app.storage import MemoryStorage, StorageError

USER_ID = 7
NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture()
def service(storage: MemoryStorage) -> ReconciliationService:
    return ReconciliationService(storage=storage)


def _reconcile(service: ReconciliationService, *rows: MarketingDataRow, import_id: int = 1):
    return service.reconcile(
        user_id=USER_ID,
        import_id=import_id,
        filename="leads.csv",
        rows=list(rows),
        now=NOW,
    )


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


class TestChannelForSource:
    @pytest.mark.parametrize(
        "source, channel",
        [
            ("LinkedIn", "linkedin"),
            ("linkedin_ads", "linkedin"),
            ("Facebook", "facebook"),
            ("fb", "facebook"),
            ("Google Ads", "google"),
            ("google-cpc", "google"),
            ("Email Newsletter", "email"),
            ("direct", "organic"),
            ("Organic", "organic"),
            ("organic search", "other"),
            ("twitter", "other"),
            ("", "other"),
            (None, "other"),
        ],
    )
    def test_channel_rules(self, source: str | None, channel: str) -> None:
        assert channel_for_source(source) == channel


class TestRowContributions:
    def test_facts_skip_missing_values_but_keep_zeros(self) -> None:
        row = MarketingDataRow(campaign_name="Launch", impressions=0, clicks=12)
        assert metric_facts(row) == [("impressions", 0.0), ("clicks", 12.0)]

    def test_attendees_are_recorded_as_registrations(self) -> None:
        row = MarketingDataRow(campaign_name="Launch", registrations=3, attendees=2)
        assert metric_facts(row) == [("registrations", 3.0), ("registrations", 2.0)]

    def test_conversions_fill_in_for_missing_registrations(self) -> None:
        row = MarketingDataRow(campaign_name="Launch", conversions=9)
        assert metric_facts(row) == [("registrations", 9.0)]
        assert campaign_deltas(row) == {"registrations": 9}

    def test_registrations_take_precedence_over_conversions(self) -> None:
        row = MarketingDataRow(campaign_name="Launch", registrations=4, conversions=9)
        assert campaign_deltas(row) == {"registrations": 4}

    def test_cost_only_feeds_spend(self) -> None:
        row = MarketingDataRow(campaign_name="Launch", cost=250.0)
        assert metric_facts(row) == []
        assert campaign_deltas(row) == {"spend": 250.0}


# ---------------------------------------------------------------------------
# Campaigns
# ---------------------------------------------------------------------------


class TestCampaignReconciliation:
    def test_creates_campaign_with_totals_and_facts(
        self, service: ReconciliationService, storage: MemoryStorage
    ) -> None:
        summary = _reconcile(
            service,
            MarketingDataRow(campaign_name="Launch", utm_source="google", clicks=100, registrations=10),
        )

        campaigns = storage.get_campaigns(USER_ID)
        assert len(campaigns) == 1
        campaign = campaigns[0]
        assert (campaign.name, campaign.channel, campaign.status) == ("Launch", "google", "active")
        assert (campaign.clicks, campaign.registrations, campaign.impressions) == (100, 10, 0)
        assert campaign.spend == 0.0
        assert campaign.metadata_json["utm_source"] == "google"

        facts = sorted(
            (metric.metric_type, metric.value) for metric in storage.get_campaign_metrics(campaign.id)
        )
        assert facts == [("clicks", 100.0), ("registrations", 10.0)]
        assert summary.campaigns_created == 1
        assert summary.metrics_created == 2

    def test_same_campaign_accumulates_across_imports(
        self, service: ReconciliationService, storage: MemoryStorage
    ) -> None:
        _reconcile(
            service,
            MarketingDataRow(campaign_name="Spring Launch", utm_source="google", registrations=5),
            import_id=1,
        )
        summary = _reconcile(
            service,
            MarketingDataRow(campaign_name="Spring Launch", utm_source="Google Ads", registrations=3),
            import_id=2,
        )

        campaigns = storage.get_campaigns(USER_ID)
        assert len(campaigns) == 1
        assert campaigns[0].registrations == 8
        assert summary.campaigns_created == 0
        assert summary.campaigns_matched == 1

    def test_same_name_on_two_channels_is_two_campaigns(
        self, service: ReconciliationService, storage: MemoryStorage
    ) -> None:
        _reconcile(
            service,
            MarketingDataRow(campaign_name="Launch", utm_source="linkedin", clicks=1),
            MarketingDataRow(campaign_name="Launch", utm_source="facebook", clicks=2),
        )

        channels = sorted(campaign.channel for campaign in storage.get_campaigns(USER_ID))
        assert channels == ["facebook", "linkedin"]

    def test_rows_of_one_campaign_are_summed(
        self, service: ReconciliationService, storage: MemoryStorage
    ) -> None:
        _reconcile(
            service,
            MarketingDataRow(campaign_name="Launch", clicks=4, cost=10.5),
            MarketingDataRow(campaign_name="Launch", clicks=6, cost=4.5, attendees=3),
        )

        campaign = storage.get_campaigns(USER_ID)[0]
        assert campaign.channel == "other"
        assert campaign.clicks == 10
        assert campaign.spend == pytest.approx(15.0)
        assert campaign.attendees == 3

    def test_rows_without_campaign_name_touch_no_campaign(
        self, service: ReconciliationService, storage: MemoryStorage
    ) -> None:
        summary = _reconcile(service, MarketingDataRow(email="a@acme.io", clicks=3))
        assert storage.get_campaigns(USER_ID) == []
        assert summary.metrics_created == 0

    def test_metric_date_prefers_registration_date(
        self, service: ReconciliationService, storage: MemoryStorage
    ) -> None:
        registered = datetime(2024, 3, 15, tzinfo=timezone.utc)
        _reconcile(
            service,
            MarketingDataRow(campaign_name="Launch", clicks=1, registration_date=registered),
            MarketingDataRow(campaign_name="Launch", clicks=2),
        )

        campaign = storage.get_campaigns(USER_ID)[0]
        dates = sorted(metric.date for metric in storage.get_campaign_metrics(campaign.id))
        assert dates == [registered, NOW]

    def test_campaigns_are_scoped_to_the_user(
        self, service: ReconciliationService, storage: MemoryStorage
    ) -> None:
        _reconcile(service, MarketingDataRow(campaign_name="Launch", clicks=1))
        service.reconcile(
            user_id=USER_ID + 1,
            import_id=2,
            filename="other.csv",
            rows=[MarketingDataRow(campaign_name="Launch", clicks=1)],
            now=NOW,
        )

        assert len(storage.get_campaigns(USER_ID)) == 1
        assert len(storage.get_campaigns(USER_ID + 1)) == 1


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


class TestEventReconciliation:
    def test_creates_one_event_per_name(
        self, service: ReconciliationService, storage: MemoryStorage
    ) -> None:
        event_date = datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)
        summary = _reconcile(
            service,
            MarketingDataRow(event_name="Webinar A", event_date=event_date),
            MarketingDataRow(event_name="Webinar A"),
            MarketingDataRow(event_name="Webinar B"),
        )

        events = {event.name: event for event in storage.get_events(USER_ID)}
        assert set(events) == {"Webinar A", "Webinar B"}
        assert events["Webinar A"].start_date == event_date
        assert events["Webinar A"].end_date == event_date + DEFAULT_EVENT_DURATION
        assert events["Webinar B"].start_date == NOW
        assert events["Webinar B"].end_date - events["Webinar B"].start_date == timedelta(hours=2)
        assert (events["Webinar A"].type, events["Webinar A"].status) == ("webinar", "completed")
        assert "leads.csv" in events["Webinar A"].description
        assert summary.events_created == 2

    def test_existing_event_is_matched(self, service: ReconciliationService, storage: MemoryStorage) -> None:
        _reconcile(service, MarketingDataRow(event_name="Webinar A"))
        summary = _reconcile(service, MarketingDataRow(event_name="Webinar A"), import_id=2)

        assert len(storage.get_events(USER_ID)) == 1
        assert summary.events_matched == 1


# ---------------------------------------------------------------------------
# Failure isolation
# ---------------------------------------------------------------------------


class _FlakyStorage(MemoryStorage):
    def get_or_create_campaign(self, *, user_id, name, channel, defaults):
        if name == "Broken":
            raise StorageError("write failed")
        return super().get_or_create_campaign(
            user_id=user_id, name=name, channel=channel, defaults=defaults
        )


class TestFailureIsolation:
    def test_failed_campaign_does_not_stop_the_others(self) -> None:
        storage = _FlakyStorage()
        service = ReconciliationService(storage=storage)

        summary = _reconcile(
            service,
            MarketingDataRow(campaign_name="Broken", clicks=1),
            MarketingDataRow(campaign_name="Healthy", clicks=2),
        )

        assert [campaign.name for campaign in storage.get_campaigns(USER_ID)] == ["Healthy"]
        assert summary.write_failures == 1
        assert summary.campaigns_created == 1
        assert summary.metrics_created == 1
