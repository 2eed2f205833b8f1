"""
app/parsers/spreadsheet_parser.py

Format-agnostic spreadsheet parsing.

Turns the raw bytes of an uploaded ``.csv``, ``.xlsx`` or ``.xls`` file into a
:class:`ParsedTable`: ordered, unique headers plus one mapping per data row.

* CSV cells are typed opportunistically (numbers, booleans, empty → None).
* Workbook cells keep the type the workbook stored (text, number, datetime);
  only the first sheet is read.

Parsing is a pure transform; it never touches storage.
"""

from __future__ import annotations

import csv
import io
import logging
import re
from collections.abc import Iterable, Sequence
from pathlib import PurePath
from typing import Any

import openpyxl
import xlrd

from app.domain.spreadsheet import ParsedTable

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS: tuple[str, ...] = (".csv", ".xlsx", ".xls")

_INT_PATTERN = re.compile(r"^[-+]?\d+$")
_FLOAT_PATTERN = re.compile(r"^[-+]?(\d+\.\d*|\.\d+|\d+)([eE][-+]?\d+)?$")


class ParseError(ValueError):
    """
    Raised when an uploaded file cannot be turned into a table.
    """


def file_extension(filename: str) -> str:
    """
    Return the lowercased extension of *filename*, including the dot.
    """

    return PurePath(filename.strip()).suffix.lower()


class SpreadsheetParser:
    """
    Parses delimited text and workbook files into a uniform table.
    """

    def parse(self, filename: str, content: bytes) -> ParsedTable:
        """
        Dispatch on the file extension and parse *content*.

        Raises ParseError for unsupported extensions, empty workbooks and
        any codec failure.
        """

        extension = file_extension(filename)
        if extension == ".csv":
            table = self.parse_csv(content)
        elif extension == ".xlsx":
            table = self.parse_xlsx(content)
        elif extension == ".xls":
            table = self.parse_xls(content)
        else:
            raise ParseError(
                f"Unsupported file type: {extension or 'none'}. "
                f"Allowed: {', '.join(SUPPORTED_EXTENSIONS)}."
            )

        logger.info(
            "Parsed spreadsheet filename=%r rows=%s columns=%s",
            filename,
            table.row_count,
            len(table.headers),
        )
        return table

    # ------------------------------------------------------------------
    # Delimited text
    # ------------------------------------------------------------------

    def parse_csv(self, content: bytes) -> ParsedTable:
        try:
            text = content.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise ParseError("CSV must be UTF-8 encoded.") from exc

        try:
            records = list(csv.reader(io.StringIO(text, newline="")))
        except csv.Error as exc:
            raise ParseError(f"Invalid CSV format: {exc}") from exc

        if not records or all(_is_blank(cell) for cell in records[0]):
            raise ParseError("CSV header row is missing.")

        headers = _unique_headers(cell.strip() for cell in records[0])
        rows: list[dict[str, Any]] = []
        for record in records[1:]:
            if all(_is_blank(cell) for cell in record):
                continue
            rows.append(
                {
                    header: _coerce_csv_value(record[index]) if index < len(record) else None
                    for index, header in enumerate(headers)
                }
            )

        return ParsedTable(headers=headers, rows=rows, row_count=len(rows))

    # ------------------------------------------------------------------
    # Workbooks
    # ------------------------------------------------------------------

    def parse_xlsx(self, content: bytes) -> ParsedTable:
        try:
            workbook = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
        except Exception as exc:  # noqa: BLE001
            raise ParseError(f"Excel parsing failed: {exc}") from exc

        try:
            if not workbook.worksheets:
                raise ParseError("Excel file has no sheets.")
            sheet = workbook.worksheets[0]
            try:
                raw_rows = [list(row) for row in sheet.iter_rows(values_only=True)]
            except Exception as exc:  # noqa: BLE001
                raise ParseError(f"Excel parsing failed: {exc}") from exc
        finally:
            workbook.close()

        return self._table_from_grid(raw_rows)

    def parse_xls(self, content: bytes) -> ParsedTable:
        try:
            book = xlrd.open_workbook(file_contents=content)
        except Exception as exc:  # noqa: BLE001
            raise ParseError(f"Excel parsing failed: {exc}") from exc

        if book.nsheets == 0:
            raise ParseError("Excel file has no sheets.")

        sheet = book.sheet_by_index(0)
        try:
            raw_rows = [
                [_xls_cell_value(cell, book.datemode) for cell in sheet.row(index)]
                for index in range(sheet.nrows)
            ]
        except Exception as exc:  # noqa: BLE001
            raise ParseError(f"Excel parsing failed: {exc}") from exc

        return self._table_from_grid(raw_rows)

    @staticmethod
    def _table_from_grid(raw_rows: Sequence[Sequence[Any]]) -> ParsedTable:
        grid = [row for row in raw_rows if not all(_is_blank(cell) for cell in row)]
        if not grid:
            raise ParseError("Excel sheet is empty.")

        header_cells = grid[0]
        columns = [
            (index, str(cell).strip())
            for index, cell in enumerate(header_cells)
            if not _is_blank(cell)
        ]
        if not columns:
            raise ParseError("Excel sheet has no header row.")

        headers = _unique_headers(name for _, name in columns)
        rows: list[dict[str, Any]] = []
        for raw in grid[1:]:
            rows.append(
                {
                    header: _workbook_value(raw[index]) if index < len(raw) else None
                    for header, (index, _) in zip(headers, columns)
                }
            )

        return ParsedTable(headers=headers, rows=rows, row_count=len(rows))


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and value.strip() == ""


def _unique_headers(names: Iterable[str]) -> list[str]:
    """
    Name blank headers by position and suffix repeated ones: a, a_1, a_2.
    """

    headers: list[str] = []
    seen: set[str] = set()
    for position, name in enumerate(names, start=1):
        base = name or f"column_{position}"
        candidate = base
        suffix = 0
        while candidate in seen:
            suffix += 1
            candidate = f"{base}_{suffix}"
        seen.add(candidate)
        headers.append(candidate)
    return headers


def _coerce_csv_value(raw: str) -> Any:
    value = raw.strip()
    if value == "":
        return None

    lowered = value.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False

    if _INT_PATTERN.match(value):
        return int(value)
    if _FLOAT_PATTERN.match(value):
        return float(value)
    return raw


def _workbook_value(value: Any) -> Any:
    if isinstance(value, str) and value.strip() == "":
        return None
    return value


def _xls_cell_value(cell: xlrd.sheet.Cell, datemode: int) -> Any:
    if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK, xlrd.XL_CELL_ERROR):
        return None
    if cell.ctype == xlrd.XL_CELL_DATE:
        return xlrd.xldate.xldate_as_datetime(cell.value, datemode)
    if cell.ctype == xlrd.XL_CELL_BOOLEAN:
        return bool(cell.value)
    if cell.ctype == xlrd.XL_CELL_NUMBER and float(cell.value).is_integer():
        return int(cell.value)
    return cell.value
