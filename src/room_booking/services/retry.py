"""Bounded exponential backoff for remote calls."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

from room_booking.domain.errors import RemoteUnavailableError

T = TypeVar("T")

_logger = logging.getLogger(__name__)


@dataclass
class RetryPolicy:
    """Retry a single remote call on ``RemoteUnavailableError``.

    Delays double after each failed attempt, starting at
    ``base_delay_seconds``. Results are returned as-is, so a clean negative
    answer such as "no rooms" is never retried. ``CircuitOpenError`` is not a
    ``RemoteUnavailableError`` and passes straight through.

    Cancelling the awaiting task interrupts both the in-flight call and the
    backoff sleep; the ``CancelledError`` propagates untouched.
    """

    max_attempts: int = 3
    base_delay_seconds: float = 1.0
    multiplier: float = 2.0
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay_seconds < 0:
            raise ValueError("base_delay_seconds must not be negative")

    def delays(self) -> list[float]:
        """Return the sleep schedule between consecutive attempts."""
        return [
            self.base_delay_seconds * self.multiplier**attempt
            for attempt in range(self.max_attempts - 1)
        ]

    async def run(
        self, func: Callable[[], Awaitable[T]], *, action: str, label: str = "-"
    ) -> T:
        """Call ``func`` until it succeeds or attempts are exhausted."""
        delays = self.delays()
        attempt = 0
        while True:
            attempt += 1
            try:
                return await func()
            except RemoteUnavailableError as exc:
                _logger.warning(
                    "[%s] %s failed (attempt %s/%s): %s",
                    label,
                    action,
                    attempt,
                    self.max_attempts,
                    exc,
                )
                if attempt >= self.max_attempts:
                    raise
                await self.sleep(delays[attempt - 1])
