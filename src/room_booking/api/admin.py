"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

if TYPE_CHECKING:
    from room_booking.containers import AppContainer
    from room_booking.services.circuit_breaker import CircuitSnapshot

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/circuit-breaker", dependencies=[Depends(require_admin)])
async def circuit_breaker_state(request: Request) -> dict[str, object]:
    """Return the allocation service breaker state."""
    container: AppContainer = request.app.state.container
    return _snapshot_payload(container.circuit_breaker.snapshot())


@router.post("/circuit-breaker/reset", dependencies=[Depends(require_admin)])
async def reset_circuit_breaker(request: Request) -> dict[str, object]:
    """Force the allocation service breaker closed."""
    container: AppContainer = request.app.state.container
    container.circuit_breaker.reset()
    return _snapshot_payload(container.circuit_breaker.snapshot())


def _snapshot_payload(snapshot: CircuitSnapshot) -> dict[str, object]:
    return {
        "name": snapshot.name,
        "state": snapshot.state.value,
        "failure_rate": snapshot.failure_rate,
        "recorded_calls": snapshot.recorded_calls,
        "window_size": snapshot.window_size,
        "seconds_until_half_open": snapshot.seconds_until_half_open,
    }
