"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.campaign import Campaign, CampaignChannel, CampaignStatus
from db.models.campaign_metric import CampaignMetric, MetricType
from db.models.event import Event, EventStatus, EventType
from db.models.spreadsheet_import import ImportStatus, SpreadsheetImport

__all__ = [
    "Campaign",
    "CampaignChannel",
    "CampaignMetric",
    "CampaignStatus",
    "Event",
    "EventStatus",
    "EventType",
    "ImportStatus",
    "MetricType",
    "SpreadsheetImport",
]
