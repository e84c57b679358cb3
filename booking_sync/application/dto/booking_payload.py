from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from booking_sync.application.exceptions import ValidationFailure

EMAIL_PATTERN = re.compile(r"^[\w.+-]+@[\w-]+(\.[\w-]+)*\.\w{2,}$")


class CreateBookingPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    package_ids: list[str] = Field(alias="packageIds", min_length=1)
    client_name: str = Field(alias="clientName", min_length=2)
    client_email: str = Field(alias="clientEmail")
    client_phone: str = Field(alias="clientPhone", min_length=5)
    booking_date: datetime = Field(alias="bookingDate")
    guests: int = Field(ge=1)
    special_requests: str | None = Field(default=None, alias="specialRequests")

    @field_validator("client_email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        if not EMAIL_PATTERN.match(value):
            raise ValueError("Please add a valid email")
        return value

    @field_validator("booking_date", mode="before")
    @classmethod
    def _accept_plain_date(cls, value: Any) -> Any:
        if isinstance(value, date) and not isinstance(value, datetime):
            return datetime.combine(value, datetime.min.time())
        return value

    @field_validator("booking_date")
    @classmethod
    def _not_in_past(cls, value: datetime) -> datetime:
        today = datetime.now(value.tzinfo).date() if value.tzinfo else date.today()
        if value.date() < today:
            raise ValueError("Booking date cannot be in the past")
        return value

    @field_validator("package_ids")
    @classmethod
    def _non_blank_ids(cls, value: list[str]) -> list[str]:
        ids = [v.strip() for v in value if v and v.strip()]
        if not ids:
            raise ValueError("At least one package is required")
        return ids

    def to_wire(self) -> dict[str, Any]:
        data = self.model_dump(by_alias=True, mode="json")
        if not data.get("specialRequests"):
            data["specialRequests"] = ""
        return data


def validate_create_payload(data: CreateBookingPayload | dict[str, Any]) -> CreateBookingPayload:
    if isinstance(data, CreateBookingPayload):
        return data
    try:
        return CreateBookingPayload.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        loc = ".".join(str(part) for part in first.get("loc", ()))
        raise ValidationFailure(f"Invalid booking payload: {loc}: {first.get('msg')}", field=loc or None) from e
