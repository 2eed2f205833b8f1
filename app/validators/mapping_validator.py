"""
app/validators/mapping_validator.py

Validation for user-confirmed column mappings.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from app.domain.spreadsheet import SKIP_TARGET, TARGET_FIELDS, TRANSFORMS, ColumnMapping


@dataclass(frozen=True)
class MappingErrorDetail:
    """
    Structured mapping error detail.
    """

    code: str
    message: str
    target_field: str | None = None
    source_column: str | None = None
    context: dict[str, Any] | None = None


class SchemaMappingError(ValueError):
    """
    Raised when a confirmed mapping set cannot be applied to an import.
    """

    def __init__(self, *, message: str, errors: Sequence[MappingErrorDetail]) -> None:
        super().__init__(message)
        self.message = message
        self.errors = tuple(errors)

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "errors": [
                {
                    "code": error.code,
                    "message": error.message,
                    "target_field": error.target_field,
                    "source_column": error.source_column,
                    "context": error.context,
                }
                for error in self.errors
            ],
        }


class MappingValidator:
    """
    Validates confirmed source-column → target-field mappings against an import's headers.
    """

    def __init__(
        self,
        *,
        target_fields: Sequence[str] = TARGET_FIELDS,
        transforms: Sequence[str] = TRANSFORMS,
    ) -> None:
        self._target_set = set(target_fields) | {SKIP_TARGET}
        self._transform_set = set(transforms)

    def validate(
        self,
        *,
        mappings: Sequence[ColumnMapping],
        source_headers: Sequence[str],
    ) -> None:
        """
        Validate mappings and raise SchemaMappingError listing every problem.
        """

        errors: list[MappingErrorDetail] = []
        headers_set = set(source_headers)
        seen_columns: set[str] = set()

        for mapping in mappings:
            if mapping.source_column not in headers_set:
                errors.append(
                    MappingErrorDetail(
                        code="unknown_source_column",
                        message="Mapped source column does not exist in the spreadsheet headers.",
                        target_field=mapping.target_field,
                        source_column=mapping.source_column,
                        context={"source_headers": list(source_headers)},
                    )
                )
            if mapping.source_column in seen_columns:
                errors.append(
                    MappingErrorDetail(
                        code="duplicate_source_column",
                        message="Source column is mapped more than once.",
                        target_field=mapping.target_field,
                        source_column=mapping.source_column,
                    )
                )
            seen_columns.add(mapping.source_column)

            if mapping.target_field not in self._target_set:
                errors.append(
                    MappingErrorDetail(
                        code="invalid_target_field",
                        message="Unknown target field in mapping.",
                        target_field=mapping.target_field,
                        source_column=mapping.source_column,
                    )
                )
            if mapping.transform is not None and mapping.transform not in self._transform_set:
                errors.append(
                    MappingErrorDetail(
                        code="invalid_transform",
                        message="Unknown transform in mapping.",
                        target_field=mapping.target_field,
                        source_column=mapping.source_column,
                        context={"transform": mapping.transform},
                    )
                )

        if errors:
            codes = ", ".join(sorted({error.code for error in errors}))
            raise SchemaMappingError(
                message=f"Column mapping validation failed: {codes}.",
                errors=errors,
            )
