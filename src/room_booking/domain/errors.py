"""Error taxonomy for the booking saga."""


class BookingError(Exception):
    """Base class for booking errors."""


class AllocationError(BookingError):
    """Base class for failures talking to the allocation service."""


class RemoteUnavailableError(AllocationError):
    """The allocation service could not be reached or answered with 5xx."""


class CircuitOpenError(AllocationError):
    """The circuit breaker rejected the call without touching the network."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Circuit '{name}' is open")
        self.name = name


class StoreError(BookingError):
    """Base class for booking store failures."""


class StoreUnavailableError(StoreError):
    """The booking store could not persist or read a record."""


class DuplicateCorrelationIdError(StoreError):
    """A booking with the same correlation id was inserted concurrently."""

    def __init__(self, correlation_id: str) -> None:
        super().__init__(f"Booking already exists for correlation id {correlation_id}")
        self.correlation_id = correlation_id


class InvalidTransitionError(BookingError):
    """A booking status change would move the saga backwards."""
