"""Route group exports."""

from . import admin, auth, geocode, health, tracking

__all__ = ["admin", "tracking", "auth", "geocode", "health"]
