"""
app/api/routers/spreadsheet_ingestion.py

Spreadsheet ingestion HTTP endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, UploadFile, status

from app.api.dependencies import get_current_user, get_spreadsheet_upload, read_upload_content
from app.auth import AuthenticatedUser
from app.domain.spreadsheet import RowValidationError
from app.parsers.spreadsheet_parser import ParseError
from app.schemas.spreadsheet_ingestion import (
    ColumnMappingSchema,
    ConfirmMappingRequest,
    ConfirmMappingResponse,
    ImportDetailResponse,
    ImportListResponse,
    ImportStatusResponse,
    ImportSummaryResponse,
    ReconciliationSummaryResponse,
    UploadResponse,
    ValidationErrorResponse,
)
from app.services.spreadsheet_ingestion_service import (
    EmptyImportError,
    FileTooLargeError,
    ImportNotFoundError,
    ImportStateError,
    SpreadsheetIngestionService,
    get_spreadsheet_ingestion_service,
)
from app.storage import StorageError
from app.validators.mapping_validator import SchemaMappingError
from db.models import SpreadsheetImport

router = APIRouter(prefix="/api/spreadsheets", tags=["spreadsheets"])


def _not_found(exc: ImportNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


def _error_response(error: RowValidationError | dict) -> ValidationErrorResponse:
    if isinstance(error, dict):
        return ValidationErrorResponse(
            row=error["row"],
            message=error.get("message") or "",
            column=error.get("column"),
            value=error.get("value"),
        )
    return ValidationErrorResponse(
        row=error.row,
        message=error.message,
        column=error.column,
        value=error.value,
    )


def _summary_response(record: SpreadsheetImport) -> ImportSummaryResponse:
    return ImportSummaryResponse(
        import_id=record.id,
        filename=record.filename,
        file_size=record.file_size,
        status=record.status,
        row_count=record.row_count or 0,
        valid_row_count=record.valid_row_count,
        created_at=record.created_at,
        processed_at=record.processed_at,
    )


@router.post("/upload", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
def upload_spreadsheet(
    file: UploadFile = Depends(get_spreadsheet_upload),
    user: AuthenticatedUser = Depends(get_current_user),
    ingestion_service: SpreadsheetIngestionService = Depends(get_spreadsheet_ingestion_service),
) -> UploadResponse:
    """
    Parse an uploaded spreadsheet and propose column mappings.
    """

    try:
        content = read_upload_content(file, ingestion_service.max_upload_bytes)
        result = ingestion_service.upload(
            user_id=user.id,
            filename=file.filename or "",
            content=content,
        )
    except FileTooLargeError as exc:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=str(exc),
        ) from exc
    except ParseError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except StorageError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to store the import.",
        ) from exc
    finally:
        file.file.close()

    return UploadResponse(
        import_id=result.import_id,
        status=result.status,
        filename=result.filename,
        row_count=result.row_count,
        columns=result.columns,
        preview_rows=result.preview_rows,
        suggested_mappings=[
            ColumnMappingSchema.model_validate(mapping.to_dict())
            for mapping in result.suggested_mappings
        ],
    )


@router.post("/imports/{import_id}/confirm", response_model=ConfirmMappingResponse)
def confirm_mappings(
    import_id: int,
    payload: ConfirmMappingRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    ingestion_service: SpreadsheetIngestionService = Depends(get_spreadsheet_ingestion_service),
) -> ConfirmMappingResponse:
    """
    Apply the confirmed mappings: validate every row and import the valid ones.
    """

    try:
        result = ingestion_service.confirm(
            import_id=import_id,
            user_id=user.id,
            mappings=[mapping.to_domain() for mapping in payload.mappings],
        )
    except ImportNotFoundError as exc:
        raise _not_found(exc) from exc
    except ImportStateError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except EmptyImportError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except SchemaMappingError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=exc.to_dict(),
        ) from exc
    except StorageError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to confirm import.",
        ) from exc

    return ConfirmMappingResponse(
        status=result.status,
        import_id=result.import_id,
        valid_rows=result.valid_rows,
        error_rows=result.error_rows,
        error_count=result.error_count,
        errors=[_error_response(error) for error in result.errors],
        reconciliation=(
            ReconciliationSummaryResponse(**result.reconciliation)
            if result.reconciliation is not None
            else None
        ),
    )


@router.get("/imports", response_model=ImportListResponse)
def list_imports(
    user: AuthenticatedUser = Depends(get_current_user),
    ingestion_service: SpreadsheetIngestionService = Depends(get_spreadsheet_ingestion_service),
) -> ImportListResponse:
    records = ingestion_service.list_imports(user_id=user.id)
    return ImportListResponse(imports=[_summary_response(record) for record in records])


@router.get("/imports/{import_id}", response_model=ImportDetailResponse)
def get_import(
    import_id: int,
    user: AuthenticatedUser = Depends(get_current_user),
    ingestion_service: SpreadsheetIngestionService = Depends(get_spreadsheet_ingestion_service),
) -> ImportDetailResponse:
    try:
        record = ingestion_service.get_import(import_id=import_id, user_id=user.id)
    except ImportNotFoundError as exc:
        raise _not_found(exc) from exc

    summary = _summary_response(record)
    return ImportDetailResponse(
        **summary.model_dump(),
        columns=record.headers or [],
        preview_rows=record.preview_data or [],
        suggested_mappings=[
            ColumnMappingSchema.model_validate(mapping) for mapping in record.suggested_mappings or []
        ],
        column_mappings=[
            ColumnMappingSchema.model_validate(mapping) for mapping in record.column_mappings or []
        ],
        validation_errors=[_error_response(error) for error in record.validation_errors or []],
        error_summary=record.error_summary,
        updated_at=record.updated_at,
    )


@router.get("/imports/{import_id}/status", response_model=ImportStatusResponse)
def get_import_status(
    import_id: int,
    user: AuthenticatedUser = Depends(get_current_user),
    ingestion_service: SpreadsheetIngestionService = Depends(get_spreadsheet_ingestion_service),
) -> ImportStatusResponse:
    try:
        record = ingestion_service.get_import(import_id=import_id, user_id=user.id)
    except ImportNotFoundError as exc:
        raise _not_found(exc) from exc

    return ImportStatusResponse(
        import_id=record.id,
        status=record.status,
        row_count=record.row_count or 0,
        valid_row_count=record.valid_row_count,
        error_summary=record.error_summary,
        validation_errors=[_error_response(error) for error in record.validation_errors or []],
        processed_at=record.processed_at,
    )


@router.delete("/imports/{import_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_import(
    import_id: int,
    user: AuthenticatedUser = Depends(get_current_user),
    ingestion_service: SpreadsheetIngestionService = Depends(get_spreadsheet_ingestion_service),
) -> Response:
    try:
        ingestion_service.delete_import(import_id=import_id, user_id=user.id)
    except ImportNotFoundError as exc:
        raise _not_found(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
