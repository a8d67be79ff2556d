"""Room allocation service API client."""

import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from room_booking.domain.errors import RemoteUnavailableError

_NO_INVENTORY_STATUSES = {204, 404}

_logger = logging.getLogger(__name__)


class AllocationClient(Protocol):
    """Interface for the remote room allocation service."""

    async def allocate(self) -> int | None:
        """Request any available room; return its id or None if none is free."""

    async def confirm(self, room_id: int) -> bool:
        """Finalize the hold on a room; return False if the service refuses."""

    async def release(self, room_id: int) -> bool:
        """Release a held room; return False if the service refuses."""


@dataclass
class HttpxAllocationClient(AllocationClient):
    """HTTPX-backed allocation client.

    Transport errors, timeouts and 5xx responses raise
    ``RemoteUnavailableError``. Other non-2xx answers are clean refusals.
    """

    base_url: str
    http_client: httpx.AsyncClient
    token: str | None = None
    timeout_seconds: float = 5.0

    @classmethod
    def create(
        cls, base_url: str, token: str | None = None, timeout_seconds: float = 5.0
    ) -> "HttpxAllocationClient":
        """Create an allocation client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(),
            token=token,
            timeout_seconds=timeout_seconds,
        )

    async def allocate(self) -> int | None:
        """Ask the service for an arbitrary free room."""
        response = await self._request("GET", "/api/rooms/allocate")
        if response.status_code in _NO_INVENTORY_STATUSES or not response.content:
            return None
        if not response.is_success:
            _logger.warning(
                "Allocation refused with status %s: %s",
                response.status_code,
                response.text,
            )
            return None
        try:
            payload = response.json()
            if isinstance(payload, dict):
                payload = payload.get("roomId")
            if payload is None:
                return None
            return int(payload)
        except (ValueError, TypeError) as exc:
            raise RemoteUnavailableError(
                f"GET /api/rooms/allocate returned an invalid body: {response.text!r}"
            ) from exc

    async def confirm(self, room_id: int) -> bool:
        """Confirm availability of an allocated room."""
        response = await self._request(
            "POST", f"/api/rooms/{room_id}/confirm-availability"
        )
        return response.is_success

    async def release(self, room_id: int) -> bool:
        """Release a previously allocated room."""
        response = await self._request("POST", f"/api/rooms/{room_id}/release")
        return response.is_success

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _request(self, method: str, path: str) -> httpx.Response:
        """Send a request, mapping outages to ``RemoteUnavailableError``."""
        headers: dict[str, str] = {}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        try:
            response = await self.http_client.request(
                method,
                f"{self.base_url}{path}",
                headers=headers,
                timeout=self.timeout_seconds,
            )
        except httpx.HTTPError as exc:
            raise RemoteUnavailableError(
                f"{method} {path} failed: {type(exc).__name__}: {exc}"
            ) from exc
        if response.is_server_error:
            raise RemoteUnavailableError(
                f"{method} {path} returned {response.status_code}"
            )
        return response

