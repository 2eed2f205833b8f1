"""
app/schemas/spreadsheet_ingestion.py

Request and response schemas for spreadsheet ingestion endpoints.

Responses are snake_case. Request bodies also accept the camelCase keys sent
by the browser client.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from app.domain.spreadsheet import ColumnMapping


class ColumnMappingSchema(BaseModel):
    """
    One source column → target field assignment.
    """

    model_config = ConfigDict(populate_by_name=True)

    source_column: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("source_column", "sourceColumn"),
    )
    target_field: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("target_field", "targetField"),
    )
    confidence: float = Field(default=100, ge=0, le=100)
    transform: str | None = None

    def to_domain(self) -> ColumnMapping:
        return ColumnMapping(
            source_column=self.source_column,
            target_field=self.target_field,
            confidence=self.confidence,
            transform=self.transform,
        )


class ConfirmMappingRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    mappings: list[ColumnMappingSchema] = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("mappings", "column_mappings", "columnMappings"),
    )


class ValidationErrorResponse(BaseModel):
    """
    API response model for one row-level validation error.
    """

    row: int = Field(..., ge=1)
    message: str
    column: str | None = None
    value: str | None = None


class UploadResponse(BaseModel):
    import_id: int
    status: str
    filename: str
    row_count: int = Field(..., ge=0)
    columns: list[str] = Field(default_factory=list)
    preview_rows: list[dict[str, Any]] = Field(default_factory=list)
    suggested_mappings: list[ColumnMappingSchema] = Field(default_factory=list)


class ReconciliationSummaryResponse(BaseModel):
    campaigns_created: int = 0
    campaigns_matched: int = 0
    events_created: int = 0
    events_matched: int = 0
    metrics_created: int = 0
    write_failures: int = 0


class ConfirmMappingResponse(BaseModel):
    """
    API response model for a confirmed import, successful or not.
    """

    status: str
    import_id: int
    valid_rows: int = Field(..., ge=0)
    error_rows: int = Field(..., ge=0)
    error_count: int = Field(..., ge=0)
    errors: list[ValidationErrorResponse] = Field(default_factory=list)
    reconciliation: ReconciliationSummaryResponse | None = None


class ImportSummaryResponse(BaseModel):
    import_id: int
    filename: str
    file_size: int
    status: str
    row_count: int
    valid_row_count: int | None = None
    created_at: datetime | None = None
    processed_at: datetime | None = None


class ImportStatusResponse(BaseModel):
    import_id: int
    status: str
    row_count: int
    valid_row_count: int | None = None
    error_summary: str | None = None
    validation_errors: list[ValidationErrorResponse] = Field(default_factory=list)
    processed_at: datetime | None = None


class ImportDetailResponse(ImportSummaryResponse):
    columns: list[str] = Field(default_factory=list)
    preview_rows: list[dict[str, Any]] = Field(default_factory=list)
    suggested_mappings: list[ColumnMappingSchema] = Field(default_factory=list)
    column_mappings: list[ColumnMappingSchema] = Field(default_factory=list)
    validation_errors: list[ValidationErrorResponse] = Field(default_factory=list)
    error_summary: str | None = None
    updated_at: datetime | None = None


class ImportListResponse(BaseModel):
    imports: list[ImportSummaryResponse] = Field(default_factory=list)
