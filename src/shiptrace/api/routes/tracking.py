"""Public tracking lookup endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...errors import RecordNotFound
from ...persistence.shipments import ShipmentStore
from ...schemas.shipments import PublicTrackingResponse
from ...services.export.geojson import route_feature_collection
from ...services.shipments.public import find_public_record, public_tracking_view
from ..deps import get_store

router = APIRouter(prefix="/public", tags=["tracking"])


@router.get("/track", response_model=PublicTrackingResponse, status_code=status.HTTP_200_OK)
def track(
    tracking_id: str | None = Query(default=None, alias="trackingId"),
    record_id: str | None = Query(default=None, alias="id"),
    expose_private: str | None = Query(default=None, alias="exposePrivate"),
    store: ShipmentStore = Depends(get_store),
) -> PublicTrackingResponse:
    identifier = (tracking_id or record_id or "").strip()
    if not identifier:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="trackingId required")
    try:
        view = public_tracking_view(store, identifier, expose_private=expose_private == "1")
        return PublicTrackingResponse(**view)
    except RecordNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found") from exc
    except Exception as exc:
        logging.exception(f"Public tracking lookup failed for {identifier}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch tracking",
        ) from exc


@router.get("/track/{tracking_id}/map", status_code=status.HTTP_200_OK)
def track_map(tracking_id: str, store: ShipmentStore = Depends(get_store)) -> dict:
    """Route and current position as GeoJSON for the tracking page map."""
    try:
        return route_feature_collection(find_public_record(store, tracking_id))
    except RecordNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found") from exc
