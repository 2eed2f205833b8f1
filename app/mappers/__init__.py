"""
app/mappers package marker.
"""

from app.mappers.column_detector import (
    DEFAULT_FIELD_KEYWORDS,
    DEFAULT_FIELD_PATTERNS,
    EXACT_MATCH_CONFIDENCE,
    ColumnDetector,
    normalize_header,
    similarity,
)

__all__ = [
    "ColumnDetector",
    "DEFAULT_FIELD_KEYWORDS",
    "DEFAULT_FIELD_PATTERNS",
    "EXACT_MATCH_CONFIDENCE",
    "normalize_header",
    "similarity",
]
