"""
app/schemas package marker.
"""

from app.schemas.marketing_data import MarketingDataRow
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

__all__ = [
    "ColumnMappingSchema",
    "ConfirmMappingRequest",
    "ConfirmMappingResponse",
    "ImportDetailResponse",
    "ImportListResponse",
    "ImportStatusResponse",
    "ImportSummaryResponse",
    "MarketingDataRow",
    "ReconciliationSummaryResponse",
    "UploadResponse",
    "ValidationErrorResponse",
]
