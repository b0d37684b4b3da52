"""Address search passthrough for the admin form."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query, status

from ...errors import UpstreamUnavailable
from ...services.routing.directions_client import DirectionsClient

logger = logging.getLogger(__name__)

router = APIRouter(tags=["geocode"])


@router.get("/geocode", status_code=status.HTTP_200_OK)
def geocode(address: str | None = Query(default=None, description="Free-text address")) -> dict:
    if not address or not address.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing address parameter")
    try:
        client = DirectionsClient()
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc
    try:
        return client.geocode(address)
    except UpstreamUnavailable as exc:
        logger.warning(f"Geocoding failed for {address!r}: {exc}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Geocoding failed") from exc
