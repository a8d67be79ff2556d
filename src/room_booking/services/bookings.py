"""Booking saga: allocate, confirm, compensate."""

import logging
from dataclasses import dataclass
from typing import Protocol
from uuid import uuid4

from room_booking.adapters.allocation_client import AllocationClient
from room_booking.domain.bookings import Booking, BookingRequest, BookingStatus
from room_booking.domain.errors import (
    AllocationError,
    DuplicateCorrelationIdError,
    StoreUnavailableError,
)
from room_booking.services.circuit_breaker import CircuitBreaker
from room_booking.services.retry import RetryPolicy

_logger = logging.getLogger(__name__)


class BookingRepository(Protocol):
    """Persistence interface for bookings."""

    def find_by_correlation_id(self, correlation_id: str) -> Booking | None:
        """Return the booking for a correlation id, if present."""

    def find_by_id(self, booking_id: int) -> Booking | None:
        """Return a booking by id, if present."""

    def save(self, booking: Booking) -> Booking:
        """Insert a new booking or update an existing one and return it.

        Raises ``DuplicateCorrelationIdError`` when an insert collides with an
        existing correlation id and ``StoreUnavailableError`` on other
        persistence failures.
        """


@dataclass
class BookingService:
    """Orchestrates the booking saga against the allocation service.

    Allocation and confirmation go through the shared circuit breaker and the
    retry policy. Remote failures end in a CANCELLED booking; only store
    failures reach the caller.
    """

    repository: BookingRepository
    allocation_client: AllocationClient
    circuit_breaker: CircuitBreaker
    retry_policy: RetryPolicy

    async def create_booking(self, request: BookingRequest, user_id: int) -> Booking:
        """Create a booking, or return the one already made for this request."""
        correlation_id = _resolve_correlation_id(request.correlation_id)
        existing = self.repository.find_by_correlation_id(correlation_id)
        if existing is not None:
            _logger.info(
                "[%s] Duplicate request, returning booking %s (%s)",
                correlation_id,
                existing.id,
                existing.status.value,
            )
            return existing

        _logger.info(
            "[%s] Starting booking for user %s from %s to %s",
            correlation_id,
            user_id,
            request.start_date,
            request.end_date,
        )
        room_id = await self._allocate(correlation_id)
        if room_id is None:
            booking, _ = self._insert(
                _new_booking(request, user_id, correlation_id, None, cancelled=True)
            )
            _logger.info("[%s] Booking CANCELLED, no room allocated", correlation_id)
            return booking

        try:
            booking, inserted = self._insert(
                _new_booking(request, user_id, correlation_id, room_id)
            )
        except StoreUnavailableError:
            _logger.error(
                "[%s] Could not persist PENDING booking, releasing room %s",
                correlation_id,
                room_id,
            )
            await self._compensate(room_id, correlation_id)
            raise
        if not inserted:
            await self._compensate(room_id, correlation_id)
            return booking
        _logger.info("[%s] Booking %s PENDING", correlation_id, booking.id)

        if await self._confirm(room_id, correlation_id):
            confirmed = self.repository.save(
                booking.with_status(BookingStatus.CONFIRMED)
            )
            _logger.info("[%s] Booking %s CONFIRMED", correlation_id, confirmed.id)
            return confirmed

        _logger.error(
            "[%s] Confirmation failed for room %s. Triggering compensation...",
            correlation_id,
            room_id,
        )
        await self._compensate(room_id, correlation_id)
        cancelled = self.repository.save(booking.with_status(BookingStatus.CANCELLED))
        _logger.info("[%s] Booking %s CANCELLED", correlation_id, cancelled.id)
        return cancelled

    def get_booking(self, booking_id: int) -> Booking | None:
        """Return a booking by id, if present."""
        return self.repository.find_by_id(booking_id)

    async def _allocate(self, correlation_id: str) -> int | None:
        """Return an allocated room id, or None on any allocation failure."""
        try:
            room_id = await self.retry_policy.run(
                lambda: self.circuit_breaker.call(self.allocation_client.allocate),
                action="allocate",
                label=correlation_id,
            )
        except AllocationError as exc:
            _logger.error("[%s] Allocation unavailable: %s", correlation_id, exc)
            return None
        if room_id is None:
            _logger.info("[%s] No rooms available", correlation_id)
        else:
            _logger.info("[%s] Allocated room %s", correlation_id, room_id)
        return room_id

    async def _confirm(self, room_id: int, correlation_id: str) -> bool:
        """Return True when the allocation service confirms the room."""
        try:
            confirmed = await self.retry_policy.run(
                lambda: self.circuit_breaker.call(
                    lambda: self.allocation_client.confirm(room_id)
                ),
                action=f"confirm room {room_id}",
                label=correlation_id,
            )
        except AllocationError as exc:
            _logger.error("[%s] Confirmation unavailable: %s", correlation_id, exc)
            return False
        if not confirmed:
            _logger.warning("[%s] Room %s was not confirmed", correlation_id, room_id)
        return confirmed

    async def _compensate(self, room_id: int, correlation_id: str) -> None:
        """Release a held room once; failures are only logged."""
        try:
            released = await self.allocation_client.release(room_id)
        except AllocationError as exc:
            _logger.error("[%s] Compensation failed: %s", correlation_id, exc)
            return
        if released:
            _logger.info(
                "[%s] Compensation: room %s released", correlation_id, room_id
            )
        else:
            _logger.error(
                "[%s] Compensation failed: release of room %s refused",
                correlation_id,
                room_id,
            )

    def _insert(self, booking: Booking) -> tuple[Booking, bool]:
        """Insert the first record for a correlation id.

        Returns the stored booking and whether this call created it. On a
        uniqueness conflict the concurrently inserted booking is returned.
        """
        try:
            return self.repository.save(booking), True
        except DuplicateCorrelationIdError:
            winner = self.repository.find_by_correlation_id(booking.correlation_id)
            if winner is None:
                raise StoreUnavailableError(
                    f"Booking {booking.correlation_id} conflicted but was not found"
                ) from None
            _logger.warning(
                "[%s] Concurrent request won the insert, returning booking %s",
                booking.correlation_id,
                winner.id,
            )
            return winner, False


def _new_booking(
    request: BookingRequest,
    user_id: int,
    correlation_id: str,
    room_id: int | None,
    *,
    cancelled: bool = False,
) -> Booking:
    """Build an unsaved booking for the request."""
    return Booking(
        user_id=user_id,
        room_id=room_id,
        start_date=request.start_date,
        end_date=request.end_date,
        status=BookingStatus.CANCELLED if cancelled else BookingStatus.PENDING,
        correlation_id=correlation_id,
    )


def _resolve_correlation_id(raw: str | None) -> str:
    """Use the caller's correlation id, or generate one."""
    if raw and raw.strip():
        return raw
    return str(uuid4())
