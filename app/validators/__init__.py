"""
app/validators package marker.
"""

from app.validators.mapping_validator import MappingErrorDetail, MappingValidator, SchemaMappingError
from app.validators.spreadsheet_validator import SpreadsheetValidator, sanitize_cell

__all__ = [
    "MappingErrorDetail",
    "MappingValidator",
    "SchemaMappingError",
    "SpreadsheetValidator",
    "sanitize_cell",
]
