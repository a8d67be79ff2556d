"""Tests for container wiring."""

import asyncio

import pytest

from room_booking.containers import build_container, saga_budget_seconds
from room_booking.services.circuit_breaker import CircuitState


def test_build_container_creates_services(settings) -> None:
    container = build_container(settings)

    assert container.booking_service is not None
    assert container.booking_service.circuit_breaker is container.circuit_breaker
    assert container.circuit_breaker.state is CircuitState.CLOSED
    assert container.booking_service.retry_policy.max_attempts == 3
    asyncio.run(container.close_resources())


def test_default_deadline_covers_allocation_retry_budget(settings) -> None:
    assert saga_budget_seconds(settings) == 41.0
    assert settings.booking_timeout_seconds > saga_budget_seconds(settings)


def test_deadline_shorter_than_retry_budget_is_rejected(settings) -> None:
    short = settings.model_copy(update={"booking_timeout_seconds": 30.0})

    with pytest.raises(ValueError, match="booking_timeout_seconds"):
        build_container(short)
