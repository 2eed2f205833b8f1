"""
app/domain/spreadsheet.py

Domain models used by the spreadsheet ingestion flow.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from app.schemas.marketing_data import MarketingDataRow

# Canonical target fields, in detection order.
TARGET_FIELDS: tuple[str, ...] = (
    "email",
    "campaign_name",
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "registration_date",
    "event_name",
    "event_date",
    "cost",
    "impressions",
    "clicks",
    "conversions",
    "registrations",
    "attendees",
    "attendee_name",
    "company",
)

SKIP_TARGET = "skip"


class Transform:
    LOWERCASE = "lowercase"
    UPPERCASE = "uppercase"
    TRIM = "trim"
    PARSE_DATE = "parse_date"
    PARSE_NUMBER = "parse_number"


TRANSFORMS: tuple[str, ...] = (
    Transform.LOWERCASE,
    Transform.UPPERCASE,
    Transform.TRIM,
    Transform.PARSE_DATE,
    Transform.PARSE_NUMBER,
)


@dataclass(frozen=True)
class ParsedTable:
    """
    Uniform tabular view of an uploaded file.

    headers are unique and in source column order; every row maps each header
    to its loosely typed cell value.
    """

    headers: list[str]
    rows: list[dict[str, Any]]
    row_count: int


@dataclass(frozen=True)
class ColumnMapping:
    """
    One source column assigned to a canonical target field (or "skip").
    """

    source_column: str
    target_field: str
    confidence: float
    transform: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class RowValidationError:
    """
    One row-level validation error.

    row is the spreadsheet line number: data row index + 2, the header being line 1.
    """

    row: int
    message: str
    column: str | None = None
    value: Any = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ValidationResult:
    valid: list[MarketingDataRow] = field(default_factory=list)
    errors: list[RowValidationError] = field(default_factory=list)
    invalid_row_count: int = 0

    @property
    def valid_count(self) -> int:
        return len(self.valid)

    @property
    def error_count(self) -> int:
        return len(self.errors)


@dataclass(frozen=True)
class UploadResult:
    """
    Outcome of an upload: the stored import plus everything the user needs
    to review the proposed mappings.
    """

    import_id: int
    status: str
    filename: str
    row_count: int
    columns: list[str]
    preview_rows: list[dict[str, Any]]
    suggested_mappings: list[ColumnMapping]


@dataclass(frozen=True)
class ConfirmResult:
    """
    Outcome of a confirmed mapping. error_rows counts failing rows;
    error_count counts individual error entries.
    """

    status: str
    import_id: int
    valid_rows: int
    error_rows: int
    error_count: int
    errors: list[RowValidationError]
    reconciliation: dict[str, int] | None = None
