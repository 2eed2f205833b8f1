"""
app/domain package marker.
"""

from app.domain.spreadsheet import (
    SKIP_TARGET,
    TARGET_FIELDS,
    TRANSFORMS,
    ColumnMapping,
    ConfirmResult,
    ParsedTable,
    RowValidationError,
    Transform,
    UploadResult,
    ValidationResult,
)

__all__ = [
    "ColumnMapping",
    "ConfirmResult",
    "ParsedTable",
    "RowValidationError",
    "SKIP_TARGET",
    "TARGET_FIELDS",
    "TRANSFORMS",
    "Transform",
    "UploadResult",
    "ValidationResult",
]
