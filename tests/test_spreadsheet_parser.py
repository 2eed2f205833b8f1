"""
tests/test_spreadsheet_parser.py

Pytest unit tests for SpreadsheetParser.

Workbooks are built in memory with openpyxl; no files on disk.
"""

from __future__ import annotations

import io
from datetime import datetime

import openpyxl
import pytest

from app.parsers.spreadsheet_parser import ParseError, SpreadsheetParser, file_extension


# ---------------------------------------------------------------------------
# Fixtures / helpers
# ---------------------------------------------------------------------------


@pytest.fixture()
def parser() -> SpreadsheetParser:
    return SpreadsheetParser()


def _xlsx_bytes(*rows: list) -> bytes:
    workbook = openpyxl.Workbook()
    sheet = workbook.active
    for row in rows:
        sheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


# ---------------------------------------------------------------------------
# Extension dispatch
# ---------------------------------------------------------------------------


class TestExtensions:
    @pytest.mark.parametrize(
        "filename, expected",
        [
            ("leads.csv", ".csv"),
            ("Q3 Report.XLSX", ".xlsx"),
            ("legacy.xls", ".xls"),
            ("notes", ""),
        ],
    )
    def test_file_extension(self, filename: str, expected: str) -> None:
        assert file_extension(filename) == expected

    def test_unsupported_extension_raises(self, parser: SpreadsheetParser) -> None:
        with pytest.raises(ParseError, match="Unsupported file type"):
            parser.parse("leads.txt", b"email\na@acme.io\n")


# ---------------------------------------------------------------------------
# CSV
# ---------------------------------------------------------------------------


class TestCsv:
    def test_types_cells_and_keeps_header_order(self, parser: SpreadsheetParser) -> None:
        content = b"email,clicks,cost,active,notes\r\na@acme.io,10,12.5,TRUE,hello\r\n"
        table = parser.parse("leads.csv", content)

        assert table.headers == ["email", "clicks", "cost", "active", "notes"]
        assert table.row_count == 1
        assert table.rows[0] == {
            "email": "a@acme.io",
            "clicks": 10,
            "cost": 12.5,
            "active": True,
            "notes": "hello",
        }

    def test_currency_text_stays_text(self, parser: SpreadsheetParser) -> None:
        table = parser.parse("spend.csv", b"cost\n\"$1,000\"\n")
        assert table.rows[0]["cost"] == "$1,000"

    def test_skips_blank_lines(self, parser: SpreadsheetParser) -> None:
        content = b"email,clicks\na@acme.io,1\n,\n\nb@acme.io,2\n"
        table = parser.parse("leads.csv", content)

        assert table.row_count == 2
        assert [row["email"] for row in table.rows] == ["a@acme.io", "b@acme.io"]

    def test_duplicate_and_blank_headers_are_made_unique(self, parser: SpreadsheetParser) -> None:
        table = parser.parse("leads.csv", b"email,email,\na@acme.io,b@acme.io,x\n")

        assert table.headers == ["email", "email_1", "column_3"]
        assert table.rows[0] == {"email": "a@acme.io", "email_1": "b@acme.io", "column_3": "x"}

    def test_strips_byte_order_mark(self, parser: SpreadsheetParser) -> None:
        table = parser.parse("leads.csv", b"\xef\xbb\xbfemail\na@acme.io\n")
        assert table.headers == ["email"]

    def test_short_rows_fill_missing_cells_with_none(self, parser: SpreadsheetParser) -> None:
        table = parser.parse("leads.csv", b"email,clicks,cost\na@acme.io\n")
        assert table.rows[0] == {"email": "a@acme.io", "clicks": None, "cost": None}

    def test_header_only_file_has_no_rows(self, parser: SpreadsheetParser) -> None:
        table = parser.parse("leads.csv", b"email,clicks\n")
        assert table.headers == ["email", "clicks"]
        assert table.rows == []
        assert table.row_count == 0

    def test_empty_file_raises(self, parser: SpreadsheetParser) -> None:
        with pytest.raises(ParseError):
            parser.parse("leads.csv", b"")

    def test_non_utf8_raises(self, parser: SpreadsheetParser) -> None:
        with pytest.raises(ParseError, match="UTF-8"):
            parser.parse("leads.csv", "email\ncafé@acme.io\n".encode("latin-1"))

    def test_parsing_is_deterministic(self, parser: SpreadsheetParser) -> None:
        content = b"campaign,clicks\nLaunch,10\nRetarget,4\n"
        assert parser.parse("a.csv", content) == parser.parse("a.csv", content)


# ---------------------------------------------------------------------------
# Workbooks
# ---------------------------------------------------------------------------


class TestWorkbooks:
    def test_xlsx_keeps_cell_types(self, parser: SpreadsheetParser) -> None:
        content = _xlsx_bytes(
            ["Email", "Clicks", "Cost", "Registration Date"],
            ["a@acme.io", 10, 12.5, datetime(2024, 3, 15, 9, 30)],
        )
        table = parser.parse("leads.xlsx", content)

        assert table.headers == ["Email", "Clicks", "Cost", "Registration Date"]
        assert table.rows == [
            {
                "Email": "a@acme.io",
                "Clicks": 10,
                "Cost": 12.5,
                "Registration Date": datetime(2024, 3, 15, 9, 30),
            }
        ]

    def test_xlsx_skips_empty_rows_and_blank_cells(self, parser: SpreadsheetParser) -> None:
        content = _xlsx_bytes(
            ["Email", "Clicks"],
            [None, None],
            ["b@acme.io", "   "],
        )
        table = parser.parse("leads.xlsx", content)

        assert table.row_count == 1
        assert table.rows[0] == {"Email": "b@acme.io", "Clicks": None}

    def test_xlsx_header_only_sheet_has_no_rows(self, parser: SpreadsheetParser) -> None:
        table = parser.parse("leads.xlsx", _xlsx_bytes(["Email", "Clicks"]))
        assert table.headers == ["Email", "Clicks"]
        assert table.row_count == 0

    def test_xlsx_empty_sheet_raises(self, parser: SpreadsheetParser) -> None:
        with pytest.raises(ParseError):
            parser.parse("leads.xlsx", _xlsx_bytes())

    def test_invalid_xlsx_bytes_raise(self, parser: SpreadsheetParser) -> None:
        with pytest.raises(ParseError, match="Excel parsing failed"):
            parser.parse("leads.xlsx", b"not a workbook")

    def test_invalid_xls_bytes_raise(self, parser: SpreadsheetParser) -> None:
        with pytest.raises(ParseError, match="Excel parsing failed"):
            parser.parse("legacy.xls", b"not a workbook either")
