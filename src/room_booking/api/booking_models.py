"""Pydantic models for the bookings HTTP API."""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from room_booking.domain.bookings import Booking, BookingRequest, BookingStatus


class CreateBookingPayload(BaseModel):
    """Request body for POST /api/bookings."""

    start_date: date = Field(alias="startDate")
    end_date: date = Field(alias="endDate")
    correlation_id: str | None = Field(default=None, alias="correlationId")

    @field_validator("start_date", "end_date")
    @classmethod
    def _not_in_past(cls, value: date) -> date:
        if value < date.today():
            raise ValueError("date must be today or in the future")
        return value

    def to_request(self) -> BookingRequest:
        """Convert the payload into a domain request."""
        return BookingRequest(
            start_date=self.start_date,
            end_date=self.end_date,
            correlation_id=self.correlation_id,
        )


class BookingResponse(BaseModel):
    """Booking representation returned to clients."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    user_id: int = Field(alias="userId")
    room_id: int | None = Field(alias="roomId")
    start_date: date = Field(alias="startDate")
    end_date: date = Field(alias="endDate")
    status: BookingStatus
    created_at: datetime | None = Field(alias="createdAt")
    correlation_id: str = Field(alias="correlationId")

    @classmethod
    def from_booking(cls, booking: Booking) -> "BookingResponse":
        """Build a response from a persisted booking."""
        if booking.id is None:
            raise ValueError("Booking has not been persisted")
        return cls(
            id=booking.id,
            user_id=booking.user_id,
            room_id=booking.room_id,
            start_date=booking.start_date,
            end_date=booking.end_date,
            status=booking.status,
            created_at=booking.created_at,
            correlation_id=booking.correlation_id,
        )
