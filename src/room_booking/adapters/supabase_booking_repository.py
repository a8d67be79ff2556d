"""Supabase-backed booking repository."""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import TypeVar

import httpx
from postgrest.exceptions import APIError
from supabase import Client

from room_booking.domain.bookings import Booking, BookingStatus
from room_booking.domain.errors import (
    DuplicateCorrelationIdError,
    StoreUnavailableError,
)
from room_booking.services.bookings import BookingRepository

T = TypeVar("T")

_COLUMNS = (
    "id, user_id, room_id, start_date, end_date, status, created_at, correlation_id"
)
_UNIQUE_VIOLATION = "23505"


@dataclass
class SupabaseBookingRepository(BookingRepository):
    """Supabase implementation for booking persistence.

    Relies on a unique index on ``bookings.correlation_id``.
    """

    client: Client

    def find_by_correlation_id(self, correlation_id: str) -> Booking | None:
        """Return the booking for a correlation id, if present."""
        response = self._execute(
            lambda: self.client.table("bookings")
            .select(_COLUMNS)
            .eq("correlation_id", correlation_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _row_to_booking(response.data[0])

    def find_by_id(self, booking_id: int) -> Booking | None:
        """Return a booking by id, if present."""
        response = self._execute(
            lambda: self.client.table("bookings")
            .select(_COLUMNS)
            .eq("id", booking_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _row_to_booking(response.data[0])

    def save(self, booking: Booking) -> Booking:
        """Insert a new booking or update the status of an existing one."""
        if booking.id is None:
            return self._insert(booking)
        response = self._execute(
            lambda: self.client.table("bookings")
            .update({"status": booking.status.value, "room_id": booking.room_id})
            .eq("id", booking.id)
            .execute()
        )
        if not response.data:
            raise StoreUnavailableError(f"Failed to update booking {booking.id}")
        return _row_to_booking(response.data[0])

    def _insert(self, booking: Booking) -> Booking:
        payload = {
            "user_id": booking.user_id,
            "room_id": booking.room_id,
            "start_date": booking.start_date.isoformat(),
            "end_date": booking.end_date.isoformat(),
            "status": booking.status.value,
            "created_at": datetime.now(tz=UTC).isoformat(),
            "correlation_id": booking.correlation_id,
        }
        try:
            response = self._execute(
                lambda: self.client.table("bookings").insert(payload).execute()
            )
        except StoreUnavailableError as exc:
            if _is_unique_violation(exc.__cause__):
                raise DuplicateCorrelationIdError(booking.correlation_id) from exc
            raise
        if not response.data:
            raise StoreUnavailableError("Failed to create booking")
        return _row_to_booking(response.data[0])

    def _execute(self, query: Callable[[], T]) -> T:
        """Run a query, mapping client failures to ``StoreUnavailableError``."""
        try:
            return query()
        except (APIError, httpx.HTTPError) as exc:
            raise StoreUnavailableError(f"Booking store failure: {exc}") from exc


def _is_unique_violation(exc: BaseException | None) -> bool:
    return isinstance(exc, APIError) and exc.code == _UNIQUE_VIOLATION


def _row_to_booking(row: dict[str, object]) -> Booking:
    """Map a bookings row to the domain model."""
    room_id = row.get("room_id")
    created_at = row.get("created_at")
    return Booking(
        id=int(row["id"]),
        user_id=int(row["user_id"]),
        room_id=int(room_id) if room_id is not None else None,
        start_date=date.fromisoformat(str(row["start_date"])),
        end_date=date.fromisoformat(str(row["end_date"])),
        status=BookingStatus(row["status"]),
        created_at=datetime.fromisoformat(str(created_at)) if created_at else None,
        correlation_id=str(row["correlation_id"]),
    )
