"""
app/validators/spreadsheet_validator.py

Row-level validation for confirmed spreadsheet imports.

Each row is mapped through the confirmed column mappings, transformed, and
checked against MarketingDataRow. Failures become RowValidationError entries;
a bad row never stops the rows after it.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import ValidationError

from app.domain.spreadsheet import (
    SKIP_TARGET,
    ColumnMapping,
    RowValidationError,
    Transform,
    ValidationResult,
)
from app.schemas.marketing_data import MarketingDataRow
from app.parsers.transforms import apply_transform

FORMULA_PREFIXES: tuple[str, ...] = ("=", "+", "-", "@")
FORMULA_ESCAPE = "'"

# Header line is row 1, so data row index 0 is spreadsheet row 2.
ROW_NUMBER_OFFSET = 2

_PARSING_TRANSFORMS = {
    Transform.PARSE_DATE: "Could not parse date.",
    Transform.PARSE_NUMBER: "Could not parse number.",
}


def sanitize_cell(value: Any) -> Any:
    """
    Neutralize spreadsheet formula injection in one cell value.

    Strings starting with ``= + - @`` get a leading apostrophe; everything
    else, including already escaped strings, is returned unchanged.
    """

    if isinstance(value, str) and value.startswith(FORMULA_PREFIXES):
        return f"{FORMULA_ESCAPE}{value}"
    return value


class SpreadsheetValidator:
    """
    Validates mapped spreadsheet rows into MarketingDataRow records.
    """

    def validate(
        self,
        rows: Sequence[Mapping[str, Any]],
        mappings: Sequence[ColumnMapping],
    ) -> ValidationResult:
        active = [mapping for mapping in mappings if mapping.target_field != SKIP_TARGET]

        valid: list[MarketingDataRow] = []
        errors: list[RowValidationError] = []
        invalid_rows = 0

        for index, row in enumerate(rows):
            row_number = index + ROW_NUMBER_OFFSET
            record, row_errors = self.validate_row(row, active, row_number=row_number)
            if record is not None:
                valid.append(record)
            else:
                invalid_rows += 1
                errors.extend(row_errors)

        return ValidationResult(valid=valid, errors=errors, invalid_row_count=invalid_rows)

    def validate_row(
        self,
        row: Mapping[str, Any],
        mappings: Sequence[ColumnMapping],
        *,
        row_number: int,
    ) -> tuple[MarketingDataRow | None, list[RowValidationError]]:
        """
        Validate one row; returns either a record or at least one error.
        """

        candidate, errors = self._build_candidate(row, mappings, row_number=row_number)

        try:
            record = MarketingDataRow.model_validate(candidate)
        except ValidationError as exc:
            errors.extend(self._decompose(exc, candidate, row_number=row_number))
            record = None

        if errors:
            return None, errors
        return record, []

    def _build_candidate(
        self,
        row: Mapping[str, Any],
        mappings: Sequence[ColumnMapping],
        *,
        row_number: int,
    ) -> tuple[dict[str, Any], list[RowValidationError]]:
        candidate: dict[str, Any] = {}
        errors: list[RowValidationError] = []

        for mapping in mappings:
            raw = row.get(mapping.source_column)
            if self._is_blank(raw):
                continue

            value = apply_transform(raw, mapping.transform)
            if value is None and mapping.transform in _PARSING_TRANSFORMS:
                errors.append(
                    RowValidationError(
                        row=row_number,
                        column=mapping.target_field,
                        message=_PARSING_TRANSFORMS[mapping.transform],
                        value=self._stringify_value(raw),
                    )
                )
                continue

            # Several columns may feed one field; the last mapping wins.
            candidate[mapping.target_field] = value

        return candidate, errors

    def _decompose(
        self,
        exc: ValidationError,
        candidate: Mapping[str, Any],
        *,
        row_number: int,
    ) -> list[RowValidationError]:
        by_field: dict[str, list[str]] = {}
        general: list[str] = []

        for detail in exc.errors():
            location = detail.get("loc") or ()
            message = str(detail.get("msg") or "Invalid value.")
            if location:
                by_field.setdefault(str(location[0]), []).append(message)
            else:
                general.append(message)

        errors = [
            RowValidationError(
                row=row_number,
                column=field_name,
                message=", ".join(messages),
                value=self._stringify_value(candidate.get(field_name)),
            )
            for field_name, messages in by_field.items()
        ]
        if general:
            errors.append(RowValidationError(row=row_number, message=", ".join(general)))
        return errors

    @staticmethod
    def _is_blank(value: Any) -> bool:
        if value is None:
            return True
        return isinstance(value, str) and value.strip() == ""

    @staticmethod
    def _stringify_value(value: Any) -> str | None:
        if value is None:
            return None
        if hasattr(value, "isoformat"):
            return value.isoformat()
        return str(value)
