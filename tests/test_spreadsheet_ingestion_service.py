"""
tests/test_spreadsheet_ingestion_service.py

Pytest tests for the upload → confirm workflow of SpreadsheetIngestionService.

Everything runs against MemoryStorage; no database, no HTTP.
"""

from __future__ import annotations

import io
from datetime import datetime

import openpyxl
import pytest

from app.domain.spreadsheet import ColumnMapping
from app.parsers.spreadsheet_parser import ParseError
from app.services.spreadsheet_ingestion_service import (
    EmptyImportError,
    FileTooLargeError,
    ImportNotFoundError,
    ImportStateError,
    SpreadsheetIngestionService,
)
from app.storage import MemoryStorage
from app.validators.mapping_validator import SchemaMappingError

OWNER = 1
STRANGER = 2


@pytest.fixture()
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture()
def service(storage: MemoryStorage) -> SpreadsheetIngestionService:
    return SpreadsheetIngestionService(
        storage=storage,
        max_upload_bytes=64 * 1024,
        preview_rows=5,
        log_validation_errors=True,
    )


def _csv(*lines: str) -> bytes:
    return ("\n".join(lines) + "\n").encode("utf-8")


def _mapping(source: str, target: str, transform: str | None = None) -> ColumnMapping:
    return ColumnMapping(source_column=source, target_field=target, confidence=100, transform=transform)


LAUNCH_CSV = _csv(
    "campaign_name,utm_source,clicks,registrations",
    "Launch,google,100,10",
)


# ---------------------------------------------------------------------------
# Upload
# ---------------------------------------------------------------------------


class TestUpload:
    def test_upload_stores_import_awaiting_mapping(
        self, service: SpreadsheetIngestionService, storage: MemoryStorage
    ) -> None:
        result = service.upload(user_id=OWNER, filename="launch.csv", content=LAUNCH_CSV)

        assert result.status == "mapping_required"
        assert result.row_count == 1
        assert result.columns == ["campaign_name", "utm_source", "clicks", "registrations"]
        assert [(m.source_column, m.target_field, m.confidence) for m in result.suggested_mappings] == [
            ("campaign_name", "campaign_name", 95),
            ("utm_source", "utm_source", 95),
            ("clicks", "clicks", 95),
            ("registrations", "registrations", 95),
        ]

        record = storage.get_spreadsheet_import(result.import_id)
        assert record is not None
        assert record.user_id == OWNER
        assert record.file_size == len(LAUNCH_CSV)
        assert record.parsed_rows == [
            {"campaign_name": "Launch", "utm_source": "google", "clicks": 100, "registrations": 10}
        ]

    def test_preview_is_limited_but_all_rows_are_kept(
        self, service: SpreadsheetIngestionService, storage: MemoryStorage
    ) -> None:
        content = _csv("campaign_name,clicks", *[f"C{i},{i}" for i in range(8)])
        result = service.upload(user_id=OWNER, filename="many.csv", content=content)

        assert len(result.preview_rows) == 5
        assert result.row_count == 8
        assert len(storage.get_spreadsheet_import(result.import_id).parsed_rows) == 8

    def test_too_large_upload_leaves_no_record(
        self, service: SpreadsheetIngestionService, storage: MemoryStorage
    ) -> None:
        with pytest.raises(FileTooLargeError):
            service.upload(user_id=OWNER, filename="big.csv", content=b"x" * (64 * 1024 + 1))
        assert storage.get_spreadsheet_imports(OWNER) == []

    def test_unparseable_upload_leaves_no_record(
        self, service: SpreadsheetIngestionService, storage: MemoryStorage
    ) -> None:
        with pytest.raises(ParseError):
            service.upload(user_id=OWNER, filename="broken.xlsx", content=b"garbage")
        assert storage.get_spreadsheet_imports(OWNER) == []

    def test_workbook_dates_are_stored_as_iso_strings(
        self, service: SpreadsheetIngestionService, storage: MemoryStorage
    ) -> None:
        workbook = openpyxl.Workbook()
        workbook.active.append(["Email", "Registration Date"])
        workbook.active.append(["a@acme.io", datetime(2024, 3, 15, 9, 30)])
        buffer = io.BytesIO()
        workbook.save(buffer)

        result = service.upload(user_id=OWNER, filename="leads.xlsx", content=buffer.getvalue())
        record = storage.get_spreadsheet_import(result.import_id)

        assert record.parsed_rows[0]["Registration Date"] == "2024-03-15T09:30:00"

        confirmed = service.confirm(
            import_id=result.import_id,
            user_id=OWNER,
            mappings=[
                _mapping("Email", "email"),
                _mapping("Registration Date", "registration_date", "parse_date"),
            ],
        )
        assert confirmed.status == "completed"
        assert confirmed.valid_rows == 1


# ---------------------------------------------------------------------------
# Confirm
# ---------------------------------------------------------------------------


class TestConfirm:
    def test_confirm_with_suggestions_completes_and_reconciles(
        self, service: SpreadsheetIngestionService, storage: MemoryStorage
    ) -> None:
        upload = service.upload(user_id=OWNER, filename="launch.csv", content=LAUNCH_CSV)
        result = service.confirm(
            import_id=upload.import_id,
            user_id=OWNER,
            mappings=upload.suggested_mappings,
        )

        assert result.status == "completed"
        assert (result.valid_rows, result.error_rows, result.error_count) == (1, 0, 0)
        assert result.reconciliation["campaigns_created"] == 1

        campaign = storage.get_campaigns(OWNER)[0]
        assert (campaign.name, campaign.channel, campaign.clicks, campaign.registrations) == (
            "Launch",
            "google",
            100,
            10,
        )

        record = storage.get_spreadsheet_import(upload.import_id)
        assert record.status == "completed"
        assert record.valid_row_count == 1
        assert record.error_summary is None
        assert record.processed_at is not None
        assert record.column_mappings[0]["source_column"] == "campaign_name"

    def test_row_errors_mark_import_failed_but_import_valid_rows(
        self, service: SpreadsheetIngestionService, storage: MemoryStorage
    ) -> None:
        content = _csv(
            "email,campaign_name,clicks",
            "a@acme.io,Launch,5",
            "not-an-email,Launch,-1",
            "c@acme.io,Launch,7",
        )
        upload = service.upload(user_id=OWNER, filename="mixed.csv", content=content)
        result = service.confirm(
            import_id=upload.import_id,
            user_id=OWNER,
            mappings=upload.suggested_mappings,
        )

        assert result.status == "failed"
        assert result.valid_rows == 2
        assert result.error_rows == 1
        assert result.error_count == 2
        assert {error.row for error in result.errors} == {3}
        assert storage.get_campaigns(OWNER)[0].clicks == 12

        record = storage.get_spreadsheet_import(upload.import_id)
        assert record.status == "failed"
        assert record.error_summary == "1 rows had validation errors"
        assert len(record.validation_errors) == 2

    def test_every_row_is_validated_not_just_the_preview(
        self, service: SpreadsheetIngestionService
    ) -> None:
        lines = [f"C{i},{i}" for i in range(6)] + ["C6,oops"]
        upload = service.upload(user_id=OWNER, filename="long.csv", content=_csv("campaign_name,clicks", *lines))

        result = service.confirm(
            import_id=upload.import_id,
            user_id=OWNER,
            mappings=upload.suggested_mappings,
        )

        assert result.valid_rows == 6
        assert [error.row for error in result.errors] == [8]

    def test_second_confirm_is_rejected(self, service: SpreadsheetIngestionService, storage: MemoryStorage) -> None:
        upload = service.upload(user_id=OWNER, filename="launch.csv", content=LAUNCH_CSV)
        service.confirm(import_id=upload.import_id, user_id=OWNER, mappings=upload.suggested_mappings)

        with pytest.raises(ImportStateError):
            service.confirm(import_id=upload.import_id, user_id=OWNER, mappings=upload.suggested_mappings)
        assert storage.get_campaigns(OWNER)[0].clicks == 100

    def test_confirm_in_progress_is_rejected(
        self, service: SpreadsheetIngestionService, storage: MemoryStorage
    ) -> None:
        upload = service.upload(user_id=OWNER, filename="launch.csv", content=LAUNCH_CSV)
        storage.transition_spreadsheet_import(
            upload.import_id, from_status="mapping_required", to_status="validating"
        )

        with pytest.raises(ImportStateError):
            service.confirm(import_id=upload.import_id, user_id=OWNER, mappings=upload.suggested_mappings)

    def test_other_users_import_is_not_found(self, service: SpreadsheetIngestionService) -> None:
        upload = service.upload(user_id=OWNER, filename="launch.csv", content=LAUNCH_CSV)

        with pytest.raises(ImportNotFoundError):
            service.confirm(import_id=upload.import_id, user_id=STRANGER, mappings=upload.suggested_mappings)
        with pytest.raises(ImportNotFoundError):
            service.get_import(import_id=upload.import_id, user_id=STRANGER)

    def test_missing_import_is_not_found(self, service: SpreadsheetIngestionService) -> None:
        with pytest.raises(ImportNotFoundError, match="Import not found"):
            service.confirm(import_id=999, user_id=OWNER, mappings=[_mapping("a", "email")])

    def test_import_without_rows_cannot_be_confirmed(self, service: SpreadsheetIngestionService) -> None:
        upload = service.upload(user_id=OWNER, filename="empty.csv", content=_csv("email,clicks"))
        assert upload.row_count == 0

        with pytest.raises(EmptyImportError, match="No data to import"):
            service.confirm(import_id=upload.import_id, user_id=OWNER, mappings=[_mapping("email", "email")])

    def test_invalid_mappings_keep_import_confirmable(
        self, service: SpreadsheetIngestionService, storage: MemoryStorage
    ) -> None:
        upload = service.upload(user_id=OWNER, filename="launch.csv", content=LAUNCH_CSV)

        with pytest.raises(SchemaMappingError) as excinfo:
            service.confirm(
                import_id=upload.import_id,
                user_id=OWNER,
                mappings=[_mapping("budget", "cost")],
            )
        assert excinfo.value.errors[0].code == "unknown_source_column"
        assert storage.get_spreadsheet_import(upload.import_id).status == "mapping_required"

        result = service.confirm(import_id=upload.import_id, user_id=OWNER, mappings=upload.suggested_mappings)
        assert result.status == "completed"

    def test_unexpected_failure_marks_import_failed(self, storage: MemoryStorage) -> None:
        class _BrokenReconciler:
            def reconcile(self, **kwargs):
                raise RuntimeError("boom")

        service = SpreadsheetIngestionService(
            storage=storage,
            max_upload_bytes=1024,
            preview_rows=5,
            log_validation_errors=False,
            reconciler=_BrokenReconciler(),
        )
        upload = service.upload(user_id=OWNER, filename="launch.csv", content=LAUNCH_CSV)

        with pytest.raises(RuntimeError, match="boom"):
            service.confirm(import_id=upload.import_id, user_id=OWNER, mappings=upload.suggested_mappings)

        record = storage.get_spreadsheet_import(upload.import_id)
        assert record.status == "failed"
        assert "boom" in record.error_summary


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


class TestQueries:
    def test_list_imports_is_scoped_and_newest_first(self, service: SpreadsheetIngestionService) -> None:
        first = service.upload(user_id=OWNER, filename="a.csv", content=LAUNCH_CSV)
        second = service.upload(user_id=OWNER, filename="b.csv", content=LAUNCH_CSV)
        service.upload(user_id=STRANGER, filename="c.csv", content=LAUNCH_CSV)

        ids = [record.id for record in service.list_imports(user_id=OWNER)]
        assert ids == [second.import_id, first.import_id]

    def test_validation_errors_round_trip_from_storage(self, service: SpreadsheetIngestionService) -> None:
        upload = service.upload(
            user_id=OWNER,
            filename="bad.csv",
            content=_csv("campaign_name,clicks", "=HYPERLINK(1),=1+1"),
        )
        service.confirm(import_id=upload.import_id, user_id=OWNER, mappings=upload.suggested_mappings)

        errors = service.get_validation_errors(import_id=upload.import_id, user_id=OWNER)
        assert [(error.row, error.column, error.value) for error in errors] == [(2, "clicks", "=1+1")]

    def test_delete_removes_import_but_keeps_campaigns(
        self, service: SpreadsheetIngestionService, storage: MemoryStorage
    ) -> None:
        upload = service.upload(user_id=OWNER, filename="launch.csv", content=LAUNCH_CSV)
        service.confirm(import_id=upload.import_id, user_id=OWNER, mappings=upload.suggested_mappings)

        service.delete_import(import_id=upload.import_id, user_id=OWNER)

        assert storage.get_spreadsheet_import(upload.import_id) is None
        assert len(storage.get_campaigns(OWNER)) == 1
        with pytest.raises(ImportNotFoundError):
            service.delete_import(import_id=upload.import_id, user_id=OWNER)

    def test_delete_by_stranger_is_not_found(self, service: SpreadsheetIngestionService, storage: MemoryStorage) -> None:
        upload = service.upload(user_id=OWNER, filename="launch.csv", content=LAUNCH_CSV)

        with pytest.raises(ImportNotFoundError):
            service.delete_import(import_id=upload.import_id, user_id=STRANGER)
        assert storage.get_spreadsheet_import(upload.import_id) is not None
