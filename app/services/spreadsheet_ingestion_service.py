"""
app/services/spreadsheet_ingestion_service.py

Service layer for the two-step spreadsheet import workflow.

    upload   parse the file, suggest column mappings, store an import record
             in ``mapping_required`` with every parsed row.
    confirm  validate the stored rows against the user's mappings, reconcile
             valid rows into campaigns / events / metrics and close the
             import as ``completed`` (no errors) or ``failed``.

An import can be confirmed once. Row validation errors are reported in the
result and stored on the import; they never abort the batch.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping, Sequence
from datetime import date, datetime, time
from decimal import Decimal
from functools import lru_cache
from typing import Any

from app.config import get_spreadsheet_ingestion_settings
from app.domain.spreadsheet import (
    ColumnMapping,
    ConfirmResult,
    RowValidationError,
    UploadResult,
    ValidationResult,
)
from app.mappers.column_detector import ColumnDetector
from app.parsers.spreadsheet_parser import SpreadsheetParser
from app.services.reconciliation_service import ReconciliationService, get_reconciliation_service
from app.storage import Storage, get_storage
from app.validators.mapping_validator import MappingValidator
from app.validators.spreadsheet_validator import SpreadsheetValidator
from db.base import utc_now
from db.models import ImportStatus, SpreadsheetImport

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class FileTooLargeError(ValueError):
    """
    Raised when an upload exceeds the configured size limit.
    """


class ImportNotFoundError(LookupError):
    """
    Raised when an import does not exist or belongs to another user.
    """


class ImportStateError(RuntimeError):
    """
    Raised when an import is not in a state that allows the requested action.
    """


class EmptyImportError(ValueError):
    """
    Raised when confirming an import that has no data rows.
    """


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class SpreadsheetIngestionService:
    """
    Coordinates parsing, column detection, validation and reconciliation.
    """

    def __init__(
        self,
        *,
        storage: Storage,
        max_upload_bytes: int,
        preview_rows: int,
        log_validation_errors: bool,
        parser: SpreadsheetParser | None = None,
        detector: ColumnDetector | None = None,
        validator: SpreadsheetValidator | None = None,
        mapping_validator: MappingValidator | None = None,
        reconciler: ReconciliationService | None = None,
    ) -> None:
        self._storage = storage
        self._max_upload_bytes = max(1, max_upload_bytes)
        self._preview_rows = max(0, preview_rows)
        self._log_validation_errors = log_validation_errors
        self._parser = parser or SpreadsheetParser()
        self._detector = detector or ColumnDetector()
        self._validator = validator or SpreadsheetValidator()
        self._mapping_validator = mapping_validator or MappingValidator()
        self._reconciler = reconciler or ReconciliationService(storage=storage)

    @property
    def max_upload_bytes(self) -> int:
        return self._max_upload_bytes

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

    def upload(self, *, user_id: int, filename: str, content: bytes) -> UploadResult:
        """
        Parse an uploaded file and store it as an import awaiting mapping confirmation.

        Raises FileTooLargeError before parsing and ParseError when the file
        cannot be read; neither leaves an import record behind.
        """

        if len(content) > self._max_upload_bytes:
            raise FileTooLargeError("File too large")

        logger.info("Spreadsheet upload received filename=%r size=%s user_id=%s", filename, len(content), user_id)

        table = self._parser.parse(filename, content)
        suggestions = self._detector.detect_mappings(table.headers)
        logger.info(
            "Detected column mappings filename=%r mapped=%s of %s",
            filename,
            len(suggestions),
            len(table.headers),
        )

        rows = [_json_safe_row(row) for row in table.rows]
        preview = rows[: self._preview_rows]
        record = self._storage.create_spreadsheet_import(
            {
                "user_id": user_id,
                "filename": filename,
                "file_size": len(content),
                "row_count": table.row_count,
                "status": ImportStatus.MAPPING_REQUIRED,
                "headers": list(table.headers),
                "suggested_mappings": [mapping.to_dict() for mapping in suggestions],
                "preview_data": preview,
                "parsed_rows": rows,
            }
        )
        logger.info("Created spreadsheet import import_id=%s rows=%s", record.id, table.row_count)

        return UploadResult(
            import_id=record.id,
            status=record.status,
            filename=filename,
            row_count=table.row_count,
            columns=list(table.headers),
            preview_rows=preview,
            suggested_mappings=suggestions,
        )

    # ------------------------------------------------------------------
    # Confirm
    # ------------------------------------------------------------------

    def confirm(
        self,
        *,
        import_id: int,
        user_id: int,
        mappings: Sequence[ColumnMapping],
    ) -> ConfirmResult:
        """
        Validate every stored row with *mappings* and reconcile the valid ones.

        Raises ImportNotFoundError, ImportStateError (already confirmed or in
        progress), EmptyImportError and SchemaMappingError.
        """

        record = self.get_import(import_id=import_id, user_id=user_id)
        if record.status != ImportStatus.MAPPING_REQUIRED:
            raise ImportStateError(
                f"Import {import_id} cannot be confirmed in status '{record.status}'."
            )

        rows = record.parsed_rows or []
        if not rows:
            raise EmptyImportError("No data to import")

        self._mapping_validator.validate(mappings=mappings, source_headers=record.headers or [])

        claimed = self._storage.transition_spreadsheet_import(
            import_id,
            from_status=ImportStatus.MAPPING_REQUIRED,
            to_status=ImportStatus.VALIDATING,
        )
        if not claimed:
            raise ImportStateError(f"Import {import_id} is already being confirmed.")

        try:
            result = self._validator.validate(rows, mappings)
            self._log_validation(import_id, result)

            reconciliation = None
            if result.valid:
                reconciliation = self._reconciler.reconcile(
                    user_id=user_id,
                    import_id=import_id,
                    filename=record.filename,
                    rows=result.valid,
                ).to_dict()
        except Exception as exc:  # noqa: BLE001
            self._storage.update_spreadsheet_import(
                import_id,
                {
                    "status": ImportStatus.FAILED,
                    "error_summary": f"Import processing failed: {exc}",
                    "processed_at": utc_now(),
                },
            )
            logger.exception("Spreadsheet import processing failed import_id=%s", import_id)
            raise

        status = ImportStatus.COMPLETED if result.error_count == 0 else ImportStatus.FAILED
        self._storage.update_spreadsheet_import(
            import_id,
            {
                "status": status,
                "column_mappings": [mapping.to_dict() for mapping in mappings],
                "valid_row_count": result.valid_count,
                "validation_errors": [error.to_dict() for error in result.errors],
                "error_summary": (
                    f"{result.invalid_row_count} rows had validation errors"
                    if result.error_count
                    else None
                ),
                "processed_at": utc_now(),
            },
        )
        logger.info(
            "Spreadsheet import confirmed import_id=%s status=%s valid_rows=%s error_rows=%s",
            import_id,
            status,
            result.valid_count,
            result.invalid_row_count,
        )

        return ConfirmResult(
            status=status,
            import_id=import_id,
            valid_rows=result.valid_count,
            error_rows=result.invalid_row_count,
            error_count=result.error_count,
            errors=list(result.errors),
            reconciliation=reconciliation,
        )

    def _log_validation(self, import_id: int, result: ValidationResult) -> None:
        logger.info(
            "Validated spreadsheet import import_id=%s valid=%s invalid_rows=%s errors=%s",
            import_id,
            result.valid_count,
            result.invalid_row_count,
            result.error_count,
        )
        if not self._log_validation_errors:
            return
        for error in result.errors:
            logger.warning(
                "Spreadsheet validation error import_id=%s row=%s column=%s message=%s value=%r",
                import_id,
                error.row,
                error.column,
                error.message,
                error.value,
            )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_imports(self, *, user_id: int) -> list[SpreadsheetImport]:
        return self._storage.get_spreadsheet_imports(user_id)

    def get_import(self, *, import_id: int, user_id: int) -> SpreadsheetImport:
        """
        Return the user's import; other users' imports look like missing ones.
        """

        record = self._storage.get_spreadsheet_import(import_id)
        if record is None or record.user_id != user_id:
            raise ImportNotFoundError("Import not found")
        return record

    def get_validation_errors(self, *, import_id: int, user_id: int) -> list[RowValidationError]:
        record = self.get_import(import_id=import_id, user_id=user_id)
        return [
            RowValidationError(
                row=int(entry["row"]),
                message=str(entry.get("message") or ""),
                column=entry.get("column"),
                value=entry.get("value"),
            )
            for entry in record.validation_errors or []
        ]

    def delete_import(self, *, import_id: int, user_id: int) -> None:
        """
        Delete the import record only; campaigns, events and metrics it produced stay.
        """

        self.get_import(import_id=import_id, user_id=user_id)
        self._storage.delete_spreadsheet_import(import_id)
        logger.info("Deleted spreadsheet import import_id=%s user_id=%s", import_id, user_id)


def _json_safe(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, Decimal):
        return _json_safe(float(value))
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value)


def _json_safe_row(row: Mapping[str, Any]) -> dict[str, Any]:
    return {key: _json_safe(value) for key, value in row.items()}


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_spreadsheet_ingestion_service() -> SpreadsheetIngestionService:
    """
    Build and cache the ingestion service with env-driven settings.
    """
    settings = get_spreadsheet_ingestion_settings()
    return SpreadsheetIngestionService(
        storage=get_storage(),
        max_upload_bytes=settings.max_upload_bytes,
        preview_rows=settings.preview_rows,
        log_validation_errors=settings.log_validation_errors,
        reconciler=get_reconciliation_service(),
    )
