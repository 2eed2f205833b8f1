"""
app/services/export_service.py

Tabular exports that are opened in spreadsheet tools.

Two datasets:

    import errors: the stored row-level validation errors of one import
    campaigns:     the user's campaigns with their running totals

Every string cell goes through ``sanitize_cell`` so a value such as
``=HYPERLINK(...)`` typed into an uploaded sheet comes back out as text.

No transformation logic lives in the router.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any

from app.domain.spreadsheet import RowValidationError
from app.storage import Storage, get_storage
from app.validators.spreadsheet_validator import sanitize_cell

IMPORT_ERROR_FIELDS: tuple[str, ...] = ("row", "column", "message", "value")

CAMPAIGN_FIELDS: tuple[str, ...] = (
    "id",
    "name",
    "channel",
    "status",
    "impressions",
    "clicks",
    "registrations",
    "attendees",
    "spend",
    "start_date",
    "end_date",
    "created_at",
)


@dataclass
class ExportResult:
    """
    Flat tabular data ready for CSV serialisation.

    rows hold sanitized scalars; fields is the ordered column list.
    """

    rows: list[dict[str, Any]] = field(default_factory=list)
    fields: list[str] = field(default_factory=list)


def _iso(dt: datetime | None) -> str | None:
    """Return UTC ISO-8601 string or None."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()


def _sanitize_row(row: dict[str, Any]) -> dict[str, Any]:
    return {key: sanitize_cell(value) for key, value in row.items()}


class ExportService:
    """
    Builds sanitized export datasets. Read-only.
    """

    def __init__(self, *, storage: Storage) -> None:
        self._storage = storage

    def export_import_errors(self, errors: Sequence[RowValidationError]) -> ExportResult:
        rows = [
            _sanitize_row(
                {
                    "row": error.row,
                    "column": error.column,
                    "message": error.message,
                    "value": error.value,
                }
            )
            for error in errors
        ]
        return ExportResult(rows=rows, fields=list(IMPORT_ERROR_FIELDS))

    def export_campaigns(self, *, user_id: int) -> ExportResult:
        rows = [
            _sanitize_row(
                {
                    "id": campaign.id,
                    "name": campaign.name,
                    "channel": campaign.channel,
                    "status": campaign.status,
                    "impressions": campaign.impressions,
                    "clicks": campaign.clicks,
                    "registrations": campaign.registrations,
                    "attendees": campaign.attendees,
                    "spend": campaign.spend,
                    "start_date": _iso(campaign.start_date),
                    "end_date": _iso(campaign.end_date),
                    "created_at": _iso(campaign.created_at),
                }
            )
            for campaign in self._storage.get_campaigns(user_id)
        ]
        return ExportResult(rows=rows, fields=list(CAMPAIGN_FIELDS))


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_export_service() -> ExportService:
    return ExportService(storage=get_storage())
