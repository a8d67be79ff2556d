"""ASGI entrypoint for the room booking API."""

from room_booking.api.app import create_app
from room_booking.containers import build_container

app = create_app(build_container())
