"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from room_booking.adapters.allocation_client import (
    AllocationClient,
    HttpxAllocationClient,
)
from room_booking.adapters.supabase_booking_repository import (
    SupabaseBookingRepository,
)
from room_booking.config import Settings
from room_booking.services.bookings import BookingService
from room_booking.services.circuit_breaker import CircuitBreaker
from room_booking.services.retry import RetryPolicy

ALLOCATION_BREAKER_NAME = "allocation-service"


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    allocation_client: AllocationClient
    circuit_breaker: CircuitBreaker
    booking_service: BookingService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    _check_booking_deadline(resolved_settings)
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    booking_repository = SupabaseBookingRepository(supabase_client)
    allocation_client = HttpxAllocationClient.create(
        base_url=resolved_settings.allocation_service_url,
        token=resolved_settings.allocation_service_token,
        timeout_seconds=resolved_settings.allocation_timeout_seconds,
    )
    circuit_breaker = build_circuit_breaker(resolved_settings)
    booking_service = BookingService(
        repository=booking_repository,
        allocation_client=allocation_client,
        circuit_breaker=circuit_breaker,
        retry_policy=build_retry_policy(resolved_settings),
    )

    async def close_resources() -> None:
        await allocation_client.close()

    return AppContainer(
        settings=resolved_settings,
        allocation_client=allocation_client,
        circuit_breaker=circuit_breaker,
        booking_service=booking_service,
        close_resources=close_resources,
    )


def build_circuit_breaker(settings: Settings) -> CircuitBreaker:
    """Create the breaker guarding the allocation service."""
    return CircuitBreaker(
        name=ALLOCATION_BREAKER_NAME,
        failure_rate_threshold=settings.breaker_failure_rate_threshold,
        window_size=settings.breaker_window_size,
        minimum_calls=settings.breaker_minimum_calls,
        cooldown_seconds=settings.breaker_cooldown_seconds,
    )


def build_retry_policy(settings: Settings) -> RetryPolicy:
    """Create the retry policy for allocation service calls."""
    return RetryPolicy(
        max_attempts=settings.retry_max_attempts,
        base_delay_seconds=settings.retry_base_delay_seconds,
    )


def saga_budget_seconds(settings: Settings) -> float:
    """Return the worst-case time a saga spends on allocation service calls.

    Covers allocate and confirm with every retry timing out, plus the single
    compensating release.
    """
    retry_policy = build_retry_policy(settings)
    per_step = (
        retry_policy.max_attempts * settings.allocation_timeout_seconds
        + sum(retry_policy.delays())
    )
    return 2 * per_step + settings.allocation_timeout_seconds


def _check_booking_deadline(settings: Settings) -> None:
    budget = saga_budget_seconds(settings)
    if settings.booking_timeout_seconds <= budget:
        raise ValueError(
            f"booking_timeout_seconds ({settings.booking_timeout_seconds}) must "
            f"exceed the allocation retry budget of {budget}s"
        )
