"""Admin console endpoints for shipment records."""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...errors import (
    AlreadyAtFinalCheckpoint,
    DuplicateTrackingId,
    InvalidMutation,
    RecordNotFound,
    ShipmentError,
    UpstreamUnavailable,
)
from ...persistence.shipments import ShipmentStore
from ...schemas.shipments import (
    DeleteResultResponse,
    LocationUpdateRequest,
    PatchResultResponse,
    ShipmentCreateRequest,
    ShipmentListResponse,
    ShipmentPatchRequest,
    TrackingPatchRequest,
)
from ...services.routing.service import DirectionsProvider
from ...services.shipments import service as shipments
from ..deps import get_clock, get_directions, get_store, require_admin

router = APIRouter(prefix="/admin/records", tags=["admin"], dependencies=[Depends(require_admin)])


def _to_http(exc: ShipmentError) -> HTTPException:
    if isinstance(exc, RecordNotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Record not found")
    if isinstance(exc, DuplicateTrackingId):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, (AlreadyAtFinalCheckpoint, InvalidMutation)):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, UpstreamUnavailable):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


def _server_error(action: str, exc: Exception) -> HTTPException:
    logging.exception(f"Error during {action}: {exc}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"{action.capitalize()} failed: {exc}",
    )


@router.get("", response_model=ShipmentListResponse, status_code=status.HTTP_200_OK)
def list_records(
    page: int = Query(default=1, ge=1, description="1-based page index"),
    limit: int = Query(default=100, ge=1, le=1000, description="Records per page"),
    store: ShipmentStore = Depends(get_store),
) -> ShipmentListResponse:
    try:
        return ShipmentListResponse(**shipments.list_shipments(store, page=page, limit=limit))
    except Exception as exc:
        raise _server_error("list", exc) from exc


@router.post("", status_code=status.HTTP_201_CREATED)
def create_record(
    payload: ShipmentCreateRequest,
    store: ShipmentStore = Depends(get_store),
    now: datetime = Depends(get_clock),
    directions: DirectionsProvider | None = Depends(get_directions),
) -> dict:
    try:
        return shipments.create_shipment(store, payload, now=now, directions=directions)
    except ShipmentError as exc:
        raise _to_http(exc) from exc
    except Exception as exc:
        raise _server_error("create", exc) from exc


@router.patch("", response_model=PatchResultResponse, status_code=status.HTTP_200_OK)
def patch_by_tracking_id(
    payload: TrackingPatchRequest,
    store: ShipmentStore = Depends(get_store),
    now: datetime = Depends(get_clock),
) -> PatchResultResponse:
    """Update a record addressed by tracking id (exact or case-insensitive) in the body."""
    try:
        updated = shipments.update_shipment(store, payload.trackingId.strip(), payload.updates, now=now)
        return PatchResultResponse(message="Record updated successfully", updatedRecord=updated)
    except ShipmentError as exc:
        raise _to_http(exc) from exc
    except Exception as exc:
        raise _server_error("update", exc) from exc


@router.get("/{record_id}", status_code=status.HTTP_200_OK)
def get_record(record_id: str, store: ShipmentStore = Depends(get_store)) -> dict:
    try:
        return shipments.get_shipment(store, record_id)
    except ShipmentError as exc:
        raise _to_http(exc) from exc


@router.patch("/{record_id}", status_code=status.HTTP_200_OK)
def patch_record(
    record_id: str,
    payload: ShipmentPatchRequest,
    store: ShipmentStore = Depends(get_store),
    now: datetime = Depends(get_clock),
) -> dict:
    try:
        return shipments.update_shipment(store, record_id, payload, now=now)
    except ShipmentError as exc:
        raise _to_http(exc) from exc
    except Exception as exc:
        raise _server_error("update", exc) from exc


@router.delete("/{record_id}", response_model=DeleteResultResponse, status_code=status.HTTP_200_OK)
def delete_record(record_id: str, store: ShipmentStore = Depends(get_store)) -> DeleteResultResponse:
    try:
        deleted = shipments.delete_shipment(store, record_id)
        return DeleteResultResponse(message="Record deleted", deleted=deleted)
    except ShipmentError as exc:
        raise _to_http(exc) from exc
    except Exception as exc:
        raise _server_error("delete", exc) from exc


@router.post("/{record_id}/next", status_code=status.HTTP_200_OK)
def advance_record(
    record_id: str,
    store: ShipmentStore = Depends(get_store),
    now: datetime = Depends(get_clock),
) -> dict:
    """Move the shipment to its next route checkpoint."""
    try:
        return shipments.advance_shipment(store, record_id, now=now)
    except ShipmentError as exc:
        raise _to_http(exc) from exc
    except Exception as exc:
        raise _server_error("advance", exc) from exc


@router.post("/{record_id}/location", status_code=status.HTTP_200_OK)
def update_location(
    record_id: str,
    payload: LocationUpdateRequest,
    store: ShipmentStore = Depends(get_store),
    now: datetime = Depends(get_clock),
) -> dict:
    try:
        return shipments.set_location(store, record_id, payload, now=now)
    except ShipmentError as exc:
        raise _to_http(exc) from exc
    except Exception as exc:
        raise _server_error("location update", exc) from exc


@router.post("/{record_id}/route", status_code=status.HTTP_200_OK)
def regenerate_record_route(
    record_id: str,
    store: ShipmentStore = Depends(get_store),
    now: datetime = Depends(get_clock),
    directions: DirectionsProvider | None = Depends(get_directions),
) -> dict:
    """Rebuild the route from the stored origin and destination coordinates."""
    try:
        return shipments.regenerate_route(store, record_id, now=now, directions=directions)
    except ShipmentError as exc:
        raise _to_http(exc) from exc
    except Exception as exc:
        raise _server_error("route regeneration", exc) from exc
