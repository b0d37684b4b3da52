"""Shared request dependencies."""

from __future__ import annotations

import secrets
from datetime import datetime, timezone

from fastapi import Header, HTTPException, Query, status

from ..config import settings
from ..persistence.shipments import ShipmentStore, get_shipment_store
from ..services.routing.service import DirectionsProvider


def get_store() -> ShipmentStore:
    return get_shipment_store()


def get_clock() -> datetime:
    return datetime.now(timezone.utc)


def get_directions() -> DirectionsProvider | None:
    """Directions provider for route generation; None lets the service build the default client."""
    return None


def require_admin(
    x_admin_key: str | None = Header(default=None),
    admin_key: str | None = Query(default=None, alias="adminKey"),
) -> None:
    """Shared-secret gate for the admin console endpoints."""
    provided = x_admin_key or admin_key
    expected = settings.admin_key
    if not expected or not provided or not secrets.compare_digest(provided, expected):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
