"""
app/api/routers/export_router.py

CSV export endpoints.

GET /api/spreadsheets/imports/{import_id}/errors/export
GET /api/campaigns/export

Every string cell is already sanitized against formula injection by
ExportService; the router only handles HTTP plumbing.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Iterator

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse

from app.api.dependencies import get_current_user
from app.auth import AuthenticatedUser
from app.services.export_service import ExportResult, ExportService, get_export_service
from app.services.spreadsheet_ingestion_service import (
    ImportNotFoundError,
    SpreadsheetIngestionService,
    get_spreadsheet_ingestion_service,
)

router = APIRouter(tags=["export"])


# ---------------------------------------------------------------------------
# Serialisation helpers (no business logic)
# ---------------------------------------------------------------------------


def _to_csv_streaming(result: ExportResult, filename: str) -> StreamingResponse:
    """Stream *result* as a UTF-8 CSV file download."""

    def _generate() -> Iterator[str]:
        buf = io.StringIO()
        writer = csv.DictWriter(
            buf,
            fieldnames=result.fields,
            extrasaction="ignore",
            restval="",
            lineterminator="\r\n",
        )
        writer.writeheader()
        yield buf.getvalue()

        for row in result.rows:
            buf.seek(0)
            buf.truncate(0)
            writer.writerow({k: ("" if v is None else v) for k, v in row.items()})
            yield buf.getvalue()

    return StreamingResponse(
        content=_generate(),
        media_type="text/csv; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "X-Row-Count": str(len(result.rows)),
        },
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("/api/spreadsheets/imports/{import_id}/errors/export")
def export_import_errors(
    import_id: int,
    user: AuthenticatedUser = Depends(get_current_user),
    ingestion_service: SpreadsheetIngestionService = Depends(get_spreadsheet_ingestion_service),
    export_service: ExportService = Depends(get_export_service),
) -> StreamingResponse:
    """
    Download the row-level validation errors of one import as CSV.
    """

    try:
        errors = ingestion_service.get_validation_errors(import_id=import_id, user_id=user.id)
    except ImportNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    result = export_service.export_import_errors(errors)
    return _to_csv_streaming(result, f"import_{import_id}_errors.csv")


@router.get("/api/campaigns/export")
def export_campaigns(
    user: AuthenticatedUser = Depends(get_current_user),
    export_service: ExportService = Depends(get_export_service),
) -> StreamingResponse:
    """
    Download the user's campaigns and their running totals as CSV.
    """

    result = export_service.export_campaigns(user_id=user.id)
    return _to_csv_streaming(result, "campaigns_export.csv")
