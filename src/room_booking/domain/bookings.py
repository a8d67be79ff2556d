"""Domain models for room bookings."""

from dataclasses import dataclass, replace
from datetime import date, datetime
from enum import Enum

from room_booking.domain.errors import InvalidTransitionError


class BookingStatus(str, Enum):
    """Persisted booking states."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


_ALLOWED_TRANSITIONS: dict[BookingStatus, set[BookingStatus]] = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: set(),
    BookingStatus.CANCELLED: set(),
}


@dataclass(frozen=True)
class BookingRequest:
    """Caller input for a new booking."""

    start_date: date
    end_date: date
    correlation_id: str | None = None


@dataclass(frozen=True)
class Booking:
    """Represents a booking record.

    ``id`` and ``created_at`` are ``None`` until the store persists the
    booking for the first time.
    """

    user_id: int
    room_id: int | None
    start_date: date
    end_date: date
    status: BookingStatus
    correlation_id: str
    id: int | None = None
    created_at: datetime | None = None

    def with_status(self, status: BookingStatus) -> "Booking":
        """Return a copy moved forward to ``status``."""
        if status not in _ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"Cannot move booking {self.id} from {self.status.value} "
                f"to {status.value}"
            )
        return replace(self, status=status)
