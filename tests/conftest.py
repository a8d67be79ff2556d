"""Shared test fixtures."""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime, timedelta
from typing import Any

import pytest

from room_booking.adapters.allocation_client import AllocationClient
from room_booking.config import Settings
from room_booking.containers import AppContainer
from room_booking.domain.bookings import Booking, BookingRequest
from room_booking.domain.errors import (
    DuplicateCorrelationIdError,
    RemoteUnavailableError,
    StoreUnavailableError,
)
from room_booking.services.bookings import BookingRepository, BookingService
from room_booking.services.circuit_breaker import CircuitBreaker
from room_booking.services.retry import RetryPolicy

# Outcome scripted for a fake remote call: a value to return, or an
# exception instance to raise.
Outcome = object


@dataclass
class InMemoryBookingRepository(BookingRepository):
    """In-memory booking repository with a unique correlation id index."""

    bookings: dict[int, Booking] = field(default_factory=dict)
    saves: list[Booking] = field(default_factory=list)
    fail_saves: bool = False
    before_insert: Callable[[Booking], None] | None = None
    _next_id: int = 1

    def find_by_correlation_id(self, correlation_id: str) -> Booking | None:
        for booking in self.bookings.values():
            if booking.correlation_id == correlation_id:
                return booking
        return None

    def find_by_id(self, booking_id: int) -> Booking | None:
        return self.bookings.get(booking_id)

    def save(self, booking: Booking) -> Booking:
        if self.fail_saves:
            raise StoreUnavailableError("store is down")
        self.saves.append(booking)
        if booking.id is not None:
            self.bookings[booking.id] = booking
            return booking
        if self.before_insert is not None:
            hook, self.before_insert = self.before_insert, None
            hook(booking)
        if self.find_by_correlation_id(booking.correlation_id) is not None:
            raise DuplicateCorrelationIdError(booking.correlation_id)
        stored = replace(booking, id=self._next_id, created_at=datetime.now(tz=UTC))
        self._next_id += 1
        self.bookings[stored.id] = stored
        return stored


@dataclass
class ScriptedAllocationClient(AllocationClient):
    """Fake allocation client that replays scripted outcomes."""

    allocate_outcomes: list[Outcome] = field(default_factory=list)
    confirm_outcomes: list[Outcome] = field(default_factory=list)
    release_outcomes: list[Outcome] = field(default_factory=list)
    allocate_calls: int = 0
    confirm_calls: list[int] = field(default_factory=list)
    release_calls: list[int] = field(default_factory=list)

    async def allocate(self) -> int | None:
        self.allocate_calls += 1
        return _next_outcome(self.allocate_outcomes, default=None)

    async def confirm(self, room_id: int) -> bool:
        self.confirm_calls.append(room_id)
        return _next_outcome(self.confirm_outcomes, default=True)

    async def release(self, room_id: int) -> bool:
        self.release_calls.append(room_id)
        return _next_outcome(self.release_outcomes, default=True)

    @property
    def total_calls(self) -> int:
        return self.allocate_calls + len(self.confirm_calls) + len(self.release_calls)


def _next_outcome(outcomes: list[Outcome], default: Outcome) -> Any:
    outcome = outcomes.pop(0) if outcomes else default
    if isinstance(outcome, BaseException):
        raise outcome
    return outcome


def unavailable(message: str = "connection refused") -> RemoteUnavailableError:
    return RemoteUnavailableError(message)


@dataclass
class BlockingConfirmClient(ScriptedAllocationClient):
    """Allocation client whose confirm call never completes."""

    async def confirm(self, room_id: int) -> bool:
        self.confirm_calls.append(room_id)
        await asyncio.Event().wait()
        return True


@dataclass
class GatedConfirmClient(ScriptedAllocationClient):
    """Allocation client whose confirm calls wait until the gate opens."""

    gate: asyncio.Event = field(default_factory=asyncio.Event)

    async def confirm(self, room_id: int) -> bool:
        self.confirm_calls.append(room_id)
        await self.gate.wait()
        return True


@dataclass
class RecordingSleeper:
    """Awaitable sleep replacement that records requested delays."""

    delays: list[float] = field(default_factory=list)

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@dataclass
class FakeClock:
    """Manually advanced monotonic clock."""

    now: float = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def booking_request(correlation_id: str | None = None) -> BookingRequest:
    start = date.today() + timedelta(days=1)
    return BookingRequest(
        start_date=start,
        end_date=start + timedelta(days=2),
        correlation_id=correlation_id,
    )


def build_service(
    repository: InMemoryBookingRepository | None = None,
    client: ScriptedAllocationClient | None = None,
    breaker: CircuitBreaker | None = None,
    sleeper: RecordingSleeper | None = None,
) -> BookingService:
    return BookingService(
        repository=repository or InMemoryBookingRepository(),
        allocation_client=client or ScriptedAllocationClient(),
        circuit_breaker=breaker
        or CircuitBreaker(name="test", window_size=20, minimum_calls=20),
        retry_policy=RetryPolicy(sleep=sleeper or RecordingSleeper()),
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key=(
            "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9."
            "eyJyb2xlIjoic2VydmljZV9yb2xlIn0."
            "c2lnbmF0dXJl"
        ),
        admin_token="admin-token",
        allocation_service_url="https://allocation.test",
    )


@pytest.fixture
def booking_repository() -> InMemoryBookingRepository:
    return InMemoryBookingRepository()


@pytest.fixture
def allocation_client() -> ScriptedAllocationClient:
    return ScriptedAllocationClient()


@pytest.fixture
def container(
    settings: Settings,
    booking_repository: InMemoryBookingRepository,
    allocation_client: ScriptedAllocationClient,
) -> AppContainer:
    circuit_breaker = CircuitBreaker(name="allocation-service", minimum_calls=3)
    booking_service = BookingService(
        repository=booking_repository,
        allocation_client=allocation_client,
        circuit_breaker=circuit_breaker,
        retry_policy=RetryPolicy(sleep=RecordingSleeper()),
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        allocation_client=allocation_client,
        circuit_breaker=circuit_breaker,
        booking_service=booking_service,
        close_resources=close_resources,
    )
