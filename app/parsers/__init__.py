"""
app/parsers package marker.
"""

from app.parsers.spreadsheet_parser import SUPPORTED_EXTENSIONS, ParseError, SpreadsheetParser
from app.parsers.transforms import apply_transform, parse_date, parse_number

__all__ = [
    "ParseError",
    "SUPPORTED_EXTENSIONS",
    "SpreadsheetParser",
    "apply_transform",
    "parse_date",
    "parse_number",
]
