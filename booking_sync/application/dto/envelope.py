from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from booking_sync.application.exceptions import TransportFailure
from booking_sync.domain.entities.booking import Booking, BookingStatus, ClientIdentity, PackageSelection


class PackageDTO(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    title: str
    price: float = Field(ge=0)
    duration_days: int = Field(default=0, alias="durationDays", ge=0)


class BookingRecordDTO(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(alias="_id", min_length=1)
    user_id: str | None = Field(default=None, alias="userId")
    status: BookingStatus
    archived: bool = False
    archived_reason: str | None = Field(default=None, alias="archivedReason")
    archived_at: datetime | None = Field(default=None, alias="archivedAt")
    client_name: str = Field(alias="clientName")
    client_email: str = Field(alias="clientEmail")
    client_phone: str = Field(alias="clientPhone")
    packages: list[PackageDTO] = Field(min_length=1)
    guests: int = Field(ge=1)
    booking_date: datetime = Field(alias="bookingDate")
    total_amount: float = Field(alias="totalAmount", ge=0)
    admin_notes: str | None = Field(default="", alias="adminNotes")
    special_requests: str | None = Field(default="", alias="specialRequests")
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")
    status_updated_at: datetime | None = Field(default=None, alias="statusUpdatedAt")

    def to_entity(self) -> Booking:
        return Booking(
            id=self.id,
            status=self.status,
            client=ClientIdentity(name=self.client_name, email=self.client_email, phone=self.client_phone),
            packages=tuple(
                PackageSelection(package_id=p.id, title=p.title, price=p.price, duration_days=p.duration_days)
                for p in self.packages
            ),
            guests=self.guests,
            booking_date=self.booking_date,
            total_amount=self.total_amount,
            created_at=self.created_at,
            updated_at=self.updated_at,
            archived=self.archived,
            archived_reason=self.archived_reason,
            archived_at=self.archived_at,
            owner_id=self.user_id,
            admin_notes=self.admin_notes or "",
            special_requests=self.special_requests or "",
            status_updated_at=self.status_updated_at,
        )

    @classmethod
    def from_entity(cls, booking: Booking) -> "BookingRecordDTO":
        return cls(
            id=booking.id,
            user_id=booking.owner_id,
            status=booking.status,
            archived=booking.archived,
            archived_reason=booking.archived_reason,
            archived_at=booking.archived_at,
            client_name=booking.client.name,
            client_email=booking.client.email,
            client_phone=booking.client.phone,
            packages=[
                PackageDTO(id=p.package_id, title=p.title, price=p.price, duration_days=p.duration_days)
                for p in booking.packages
            ],
            guests=booking.guests,
            booking_date=booking.booking_date,
            total_amount=booking.total_amount,
            admin_notes=booking.admin_notes,
            special_requests=booking.special_requests,
            created_at=booking.created_at,
            updated_at=booking.updated_at,
            status_updated_at=booking.status_updated_at,
        )


class ResponseEnvelope(BaseModel):
    success: bool
    data: Any = None
    message: str | None = None


def parse_envelope(payload: Any) -> ResponseEnvelope:
    """Validate the `{success, data, message}` envelope. Anything else is a TransportFailure."""
    try:
        envelope = ResponseEnvelope.model_validate(payload)
    except ValidationError as e:
        raise TransportFailure("malformed_response", raw_message=str(e)) from e
    if not envelope.success:
        raise TransportFailure("rejected", raw_message=envelope.message or "Request was not successful")
    return envelope


def parse_record(data: Any) -> Booking:
    if not isinstance(data, dict):
        raise TransportFailure("malformed_response", raw_message="Expected a booking object in 'data'")
    try:
        return BookingRecordDTO.model_validate(data).to_entity()
    except ValidationError as e:
        raise TransportFailure("malformed_response", raw_message=str(e)) from e


def parse_records(data: Any) -> list[Booking]:
    if not isinstance(data, list):
        raise TransportFailure("malformed_response", raw_message="Expected a list of bookings in 'data'")
    return [parse_record(item) for item in data]
