"""
app/schemas/marketing_data.py

Validated shape of one imported marketing row.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from app.parsers.transforms import parse_date


class MarketingDataRow(BaseModel):
    """
    One spreadsheet row after column mapping and type coercion.

    Every field is optional; which ones are present decides what the row
    contributes during reconciliation.
    """

    model_config = ConfigDict(
        extra="ignore",
        str_strip_whitespace=True,
        coerce_numbers_to_str=True,
    )

    email: EmailStr | None = None
    campaign_name: str | None = None
    utm_source: str | None = None
    utm_medium: str | None = None
    utm_campaign: str | None = None
    registration_date: datetime | None = None
    event_name: str | None = None
    event_date: datetime | None = None
    cost: float | None = Field(default=None, ge=0, allow_inf_nan=False)
    impressions: int | None = Field(default=None, ge=0)
    clicks: int | None = Field(default=None, ge=0)
    conversions: int | None = Field(default=None, ge=0)
    registrations: int | None = Field(default=None, ge=0)
    attendees: int | None = Field(default=None, ge=0)
    attendee_name: str | None = None
    company: str | None = None

    @field_validator(
        "campaign_name",
        "utm_source",
        "utm_medium",
        "utm_campaign",
        "event_name",
        "attendee_name",
        "company",
        mode="before",
    )
    @classmethod
    def _text_from_bool(cls, value: Any) -> Any:
        # CSV parsing types "true"/"false" cells as booleans.
        if isinstance(value, bool):
            return str(value).lower()
        return value

    @field_validator(
        "cost",
        "impressions",
        "clicks",
        "conversions",
        "registrations",
        "attendees",
        mode="before",
    )
    @classmethod
    def _reject_bool_number(cls, value: Any) -> Any:
        # Lax mode would read True/False as 1/0.
        if isinstance(value, bool):
            raise ValueError("Input should be a number, not a boolean")
        return value

    @field_validator("email", mode="after")
    @classmethod
    def _lowercase_email(cls, value: str | None) -> str | None:
        return value.lower() if value is not None else None

    @field_validator("registration_date", "event_date", mode="before")
    @classmethod
    def _coerce_date(cls, value: Any) -> datetime | None:
        if value is None:
            return None
        parsed = parse_date(value)
        if parsed is None:
            raise ValueError("Invalid date")
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed
