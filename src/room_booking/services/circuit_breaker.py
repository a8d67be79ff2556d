"""Circuit breaker guarding the allocation service."""

import logging
import threading
import time
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TypeVar

from room_booking.domain.errors import CircuitOpenError, RemoteUnavailableError

T = TypeVar("T")

_logger = logging.getLogger(__name__)


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


@dataclass(frozen=True)
class CircuitSnapshot:
    """Point-in-time view of a breaker for diagnostics."""

    name: str
    state: CircuitState
    failure_rate: float
    recorded_calls: int
    window_size: int
    seconds_until_half_open: float | None


@dataclass
class CircuitBreaker:
    """Count-based sliding-window circuit breaker.

    Only ``RemoteUnavailableError`` is recorded as a failure. The breaker
    opens once the window holds at least ``minimum_calls`` outcomes and the
    failure rate is at or above ``failure_rate_threshold``, so the default
    0.5 opens on 5 failures out of 10. The lock is held for permission
    checks and state transitions only, never while the wrapped call is
    awaited.
    """

    name: str
    failure_rate_threshold: float = 0.5
    window_size: int = 10
    minimum_calls: int = 5
    cooldown_seconds: float = 30.0
    clock: Callable[[], float] = field(default=time.monotonic)
    _state: CircuitState = field(default=CircuitState.CLOSED, init=False)
    _outcomes: deque[bool] = field(default_factory=deque, init=False)
    _opened_at: float | None = field(default=None, init=False)
    _trial_in_flight: bool = field(default=False, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False)

    def __post_init__(self) -> None:
        if not 0.0 < self.failure_rate_threshold <= 1.0:
            raise ValueError("failure_rate_threshold must be in (0, 1]")
        if self.window_size < 1:
            raise ValueError("window_size must be at least 1")
        if not 1 <= self.minimum_calls <= self.window_size:
            raise ValueError("minimum_calls must be between 1 and window_size")
        self._outcomes = deque(maxlen=self.window_size)

    @property
    def state(self) -> CircuitState:
        """Return the current state, applying an elapsed cooldown."""
        with self._lock:
            self._maybe_half_open()
            return self._state

    async def call(self, func: Callable[[], Awaitable[T]]) -> T:
        """Run ``func`` if the breaker admits it."""
        is_trial = self._acquire_permission()
        try:
            result = await func()
        except RemoteUnavailableError:
            self._record(success=False, is_trial=is_trial)
            raise
        except BaseException:
            # Cancellation and programming errors are not recorded.
            self._release_trial(is_trial)
            raise
        self._record(success=True, is_trial=is_trial)
        return result

    def snapshot(self) -> CircuitSnapshot:
        """Return a diagnostic snapshot of the breaker."""
        with self._lock:
            self._maybe_half_open()
            remaining = None
            if self._state is CircuitState.OPEN and self._opened_at is not None:
                elapsed = self.clock() - self._opened_at
                remaining = max(0.0, self.cooldown_seconds - elapsed)
            return CircuitSnapshot(
                name=self.name,
                state=self._state,
                failure_rate=self._failure_rate(),
                recorded_calls=len(self._outcomes),
                window_size=self.window_size,
                seconds_until_half_open=remaining,
            )

    def reset(self) -> None:
        """Force the breaker closed and forget recorded outcomes."""
        with self._lock:
            self._transition(CircuitState.CLOSED)

    def _acquire_permission(self) -> bool:
        """Admit a call or raise ``CircuitOpenError``; return trial flag."""
        with self._lock:
            self._maybe_half_open()
            if self._state is CircuitState.CLOSED:
                return False
            if self._state is CircuitState.HALF_OPEN and not self._trial_in_flight:
                self._trial_in_flight = True
                return True
        raise CircuitOpenError(self.name)

    def _record(self, *, success: bool, is_trial: bool) -> None:
        with self._lock:
            if is_trial:
                self._trial_in_flight = False
                if self._state is CircuitState.HALF_OPEN:
                    self._transition(
                        CircuitState.CLOSED if success else CircuitState.OPEN
                    )
                return
            if self._state is not CircuitState.CLOSED:
                # Call admitted before another caller tripped the breaker.
                return
            self._outcomes.append(success)
            if (
                len(self._outcomes) >= self.minimum_calls
                and self._failure_rate() >= self.failure_rate_threshold
            ):
                self._transition(CircuitState.OPEN)

    def _release_trial(self, is_trial: bool) -> None:
        if not is_trial:
            return
        with self._lock:
            self._trial_in_flight = False

    def _maybe_half_open(self) -> None:
        if self._state is not CircuitState.OPEN or self._opened_at is None:
            return
        if self.clock() - self._opened_at >= self.cooldown_seconds:
            self._transition(CircuitState.HALF_OPEN)

    def _failure_rate(self) -> float:
        if not self._outcomes:
            return 0.0
        failures = sum(1 for outcome in self._outcomes if not outcome)
        return failures / len(self._outcomes)

    def _transition(self, target: CircuitState) -> None:
        """Move to ``target``; caller must hold the lock."""
        previous = self._state
        self._state = target
        self._trial_in_flight = False
        if target is CircuitState.OPEN:
            self._opened_at = self.clock()
            _logger.warning(
                "Circuit %s OPEN (was %s, failure rate %.2f)",
                self.name,
                previous.value,
                self._failure_rate(),
            )
            self._outcomes.clear()
        elif target is CircuitState.CLOSED:
            self._opened_at = None
            self._outcomes.clear()
            if previous is not CircuitState.CLOSED:
                _logger.info("Circuit %s CLOSED (was %s)", self.name, previous.value)
        else:
            _logger.info("Circuit %s HALF_OPEN, admitting a trial call", self.name)
