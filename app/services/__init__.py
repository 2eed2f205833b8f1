"""
app/services package marker.
"""

from app.services.export_service import ExportResult, ExportService, get_export_service
from app.services.reconciliation_service import (
    ReconciliationService,
    ReconciliationSummary,
    channel_for_source,
    get_reconciliation_service,
)
from app.services.spreadsheet_ingestion_service import (
    EmptyImportError,
    FileTooLargeError,
    ImportNotFoundError,
    ImportStateError,
    SpreadsheetIngestionService,
    get_spreadsheet_ingestion_service,
)

__all__ = [
    "EmptyImportError",
    "ExportResult",
    "ExportService",
    "FileTooLargeError",
    "ImportNotFoundError",
    "ImportStateError",
    "ReconciliationService",
    "ReconciliationSummary",
    "SpreadsheetIngestionService",
    "channel_for_source",
    "get_export_service",
    "get_reconciliation_service",
    "get_spreadsheet_ingestion_service",
]
