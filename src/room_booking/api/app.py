"""FastAPI application factory."""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Header, HTTPException, Request, status
from fastapi.responses import JSONResponse

from room_booking.api.admin import router as admin_router
from room_booking.api.booking_models import BookingResponse, CreateBookingPayload
from room_booking.app_logging import configure_logging
from room_booking.containers import AppContainer
from room_booking.domain.errors import StoreUnavailableError


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(title="Room Booking Service", lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    @app.exception_handler(StoreUnavailableError)
    async def store_unavailable(
        request: Request, exc: StoreUnavailableError
    ) -> JSONResponse:
        logger.error("Booking store unavailable: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": "Booking store unavailable"},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/api/bookings", response_model=BookingResponse)
    async def create_booking(
        payload: CreateBookingPayload,
        request: Request,
        x_user_id: int = Header(),
    ) -> BookingResponse:
        """Create a booking or replay the result of an earlier identical request."""
        state_container: AppContainer = request.app.state.container
        timeout = state_container.settings.booking_timeout_seconds
        try:
            async with asyncio.timeout(timeout):
                booking = await state_container.booking_service.create_booking(
                    payload.to_request(), x_user_id
                )
        except TimeoutError:
            logger.error(
                "[%s] Booking timed out after %ss",
                payload.correlation_id or "-",
                timeout,
            )
            raise HTTPException(
                status_code=status.HTTP_504_GATEWAY_TIMEOUT,
                detail="Booking did not complete in time",
            ) from None
        return BookingResponse.from_booking(booking)

    @app.get("/api/bookings/{booking_id}", response_model=BookingResponse)
    async def get_booking(booking_id: int, request: Request) -> BookingResponse:
        """Return a booking by id."""
        state_container: AppContainer = request.app.state.container
        booking = state_container.booking_service.get_booking(booking_id)
        if booking is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return BookingResponse.from_booking(booking)

    return app
