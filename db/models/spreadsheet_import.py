"""
db/models/spreadsheet_import.py

Spreadsheet import record: tracks one uploaded file from parsing through
mapping confirmation.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class ImportStatus:
    """Import lifecycle: mapping_required → validating → completed | failed."""

    MAPPING_REQUIRED = "mapping_required"
    VALIDATING = "validating"
    COMPLETED = "completed"
    FAILED = "failed"


class SpreadsheetImport(Base, TimestampMixin):
    """
    headers / parsed_rows hold the parsed table as JSON-safe values so that
    confirmation can validate every row without the original file.
    """

    __tablename__ = "spreadsheet_imports"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    filename: Mapped[str] = mapped_column(String(512), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    row_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    valid_row_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=ImportStatus.MAPPING_REQUIRED,
    )
    headers: Mapped[list[str] | None] = mapped_column(JSONB, nullable=True)
    column_mappings: Mapped[list[dict[str, Any]] | None] = mapped_column(
        JSONB,
        nullable=True,
        comment="Mappings confirmed by the user",
    )
    suggested_mappings: Mapped[list[dict[str, Any]] | None] = mapped_column(
        JSONB,
        nullable=True,
        comment="Mappings proposed by column detection at upload time",
    )
    preview_data: Mapped[list[dict[str, Any]] | None] = mapped_column(JSONB, nullable=True)
    parsed_rows: Mapped[list[dict[str, Any]] | None] = mapped_column(JSONB, nullable=True)
    validation_errors: Mapped[list[dict[str, Any]] | None] = mapped_column(JSONB, nullable=True)
    error_summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_spreadsheet_imports_user_id", "user_id"),
        Index("ix_spreadsheet_imports_status", "status"),
        Index("ix_spreadsheet_imports_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<SpreadsheetImport id={self.id} filename={self.filename!r} "
            f"user_id={self.user_id} status={self.status!r}>"
        )
