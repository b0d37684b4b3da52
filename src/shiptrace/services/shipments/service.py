"""Shipment orchestration: request payloads in, persisted documents out.

Each write fetches the stored document, builds a ``MutationIntent`` from the request,
runs the progress engine, and persists the engine's fields together with any plain
field edits in a single ``find_one_and_update``.
"""

from __future__ import annotations

import logging
import secrets
import string
from datetime import datetime, timezone
from typing import Any

from ...errors import DuplicateTrackingId, InvalidMutation, RecordNotFound, UpstreamUnavailable
from ...models.domain import STATUS_PENDING, GeoPoint, ShipmentRecord
from ...persistence.shipments import ShipmentStore
from ...schemas.shipments import (
    LocationUpdateRequest,
    ShipmentCreateRequest,
    ShipmentPatchRequest,
)
from ..progress.engine import MutationIntent, advance_status_hint, apply_mutation
from ..routing.service import DirectionsProvider, generate_route

logger = logging.getLogger(__name__)

TRACKING_ID_ALPHABET = string.ascii_uppercase + string.digits
TRACKING_ID_LENGTH = 12
MAX_PAGE_SIZE = 1000

# Fields copied verbatim from a patch; derived fields go through the engine.
PLAIN_PATCH_FIELDS = (
    "serviceType",
    "shipmentDetails",
    "productDescription",
    "quantity",
    "weightKg",
    "description",
    "shipmentDate",
    "expectedDeliveryDate",
    "image",
    "imageUrl",
    "origin",
    "destination",
    "route",
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_tracking_id() -> str:
    return "".join(secrets.choice(TRACKING_ID_ALPHABET) for _ in range(TRACKING_ID_LENGTH))


def _clean(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip() or None
    return value


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _point_from_flat(lat: float | None, lng: float | None) -> dict | None:
    point = GeoPoint.from_lat_lng(lat, lng) if lat is not None and lng is not None else None
    return point.to_dict() if point else None


def _build_origin(payload: ShipmentCreateRequest) -> dict | None:
    if payload.origin is not None:
        return payload.origin.model_dump(mode="json")
    flat_fields = (payload.originName, payload.originAddressFull, payload.originCity, payload.originLat)
    if all(value is None or value == "" for value in flat_fields):
        return None
    return {
        "name": _clean(payload.originName),
        "address": {
            "full": _clean(payload.originAddressFull),
            "city": _clean(payload.originCity),
            "state": _clean(payload.originState),
            "zip": _clean(payload.originZip),
        },
        "location": _point_from_flat(payload.originLat, payload.originLng),
    }


def _build_destination(payload: ShipmentCreateRequest) -> dict | None:
    if payload.destination is not None:
        destination = payload.destination.model_dump(mode="json", exclude={"city"})
        if _clean(payload.destination.city) and not _address_city(destination):
            destination["address"] = {**(destination.get("address") or {}), "city": payload.destination.city.strip()}
        return destination
    flat_fields = (
        payload.receiverName,
        payload.receiverEmail,
        payload.customerName,
        payload.destAddressFull,
        payload.destCity,
        payload.destLat,
    )
    if all(value is None or value == "" for value in flat_fields):
        return None
    return {
        "receiverName": _clean(payload.receiverName) or _clean(payload.customerName),
        "receiverEmail": _clean(payload.receiverEmail) or _clean(payload.customerEmail),
        "address": {
            "full": _clean(payload.destAddressFull),
            "city": _clean(payload.destCity),
            "state": _clean(payload.destState),
            "zip": _clean(payload.destZip),
        },
        "location": _point_from_flat(payload.destLat, payload.destLng),
        "expectedDeliveryDate": _iso(payload.destExpectedDeliveryDate) or _iso(payload.expectedDeliveryDate),
    }


def _address_city(part: dict | None) -> str | None:
    if not isinstance(part, dict):
        return None
    address = part.get("address") if isinstance(part.get("address"), dict) else {}
    return _clean(address.get("city")) or _clean(part.get("city"))


def _part_location(part: dict | None) -> GeoPoint | None:
    if not isinstance(part, dict):
        return None
    return GeoPoint.from_value(part.get("location"))


def _merge_part(existing: Any, edit: dict) -> dict:
    """Overlay a partial origin/destination edit; ``address`` merges one level deeper."""
    merged = dict(existing) if isinstance(existing, dict) else {}
    for key, value in edit.items():
        if key == "city":
            continue
        if key == "address" and isinstance(value, dict) and isinstance(merged.get("address"), dict):
            merged["address"] = {**merged["address"], **value}
        else:
            merged[key] = value
    return merged


def _engine_patch(before: ShipmentRecord, after: ShipmentRecord, document: dict) -> dict:
    """Document patch for the engine-owned fields, appending any new history entries."""
    patch = after.progress_fields()
    appended = after.location_history[len(before.location_history):]
    if appended:
        existing = document.get("locationHistory")
        patch["locationHistory"] = list(existing if isinstance(existing, list) else []) + [
            entry.to_dict() for entry in appended
        ]
    return patch


def _load(store: ShipmentStore, identifier: str) -> dict:
    document = store.find_one(identifier)
    if document is None:
        raise RecordNotFound(identifier)
    return document


def _persist(store: ShipmentStore, document: dict, patch: dict) -> dict:
    updated = store.find_one_and_update(document["id"], patch)
    if updated is None:
        raise RecordNotFound(document.get("trackingId") or document["id"])
    return updated


def create_shipment(
    store: ShipmentStore,
    payload: ShipmentCreateRequest,
    *,
    now: datetime | None = None,
    directions: DirectionsProvider | None = None,
) -> dict:
    now = now or _utcnow()
    timestamp = now.isoformat()

    tracking_id = (payload.trackingId or "").strip() or generate_tracking_id()
    # Record ids and tracking ids in any letter case all count as taken.
    if store.find_one(tracking_id) is not None:
        raise DuplicateTrackingId(tracking_id)

    origin = _build_origin(payload)
    destination = _build_destination(payload)
    address = payload.address.model_dump() if payload.address else None

    origin_label = _address_city(origin) or _clean(payload.originWarehouse) or "Origin"
    dest_label = _address_city(destination) or _clean(payload.destCity) or "Destination"

    if payload.route:
        route = [checkpoint.model_dump(mode="json", exclude_none=True) for checkpoint in payload.route]
    else:
        route = [
            checkpoint.to_dict()
            for checkpoint in generate_route(
                _part_location(origin),
                _part_location(destination),
                origin_label,
                dest_label,
                client=directions,
            )
        ]

    expected_delivery = _iso(payload.expectedDeliveryDate) or (destination or {}).get("expectedDeliveryDate")
    document: dict[str, Any] = {
        "trackingId": tracking_id,
        "serviceType": _clean(payload.serviceType) or "standard",
        "shipmentDetails": _clean(payload.shipmentDetails) or "",
        "productDescription": _clean(payload.productDescription) or _clean(payload.product),
        "product": _clean(payload.product),
        "quantity": payload.quantity if payload.quantity is not None else 1,
        "weightKg": payload.weightKg,
        "description": _clean(payload.description),
        "origin": origin,
        "destination": destination,
        "address": address,
        "originWarehouse": _clean(payload.originWarehouse) or _address_city(origin),
        "route": route,
        "currentIndex": 0,
        "currentLocation": None,
        "progressPct": 0,
        "shipmentDate": _iso(payload.shipmentDate),
        "expectedDeliveryDate": expected_delivery,
        "status": STATUS_PENDING,
        "locationHistory": [entry.model_dump(mode="json") for entry in payload.locationHistory or []],
        "imageUrl": _clean(payload.imageUrl) or _clean(payload.image),
        "image": _clean(payload.image) or _clean(payload.imageUrl),
        "createdAt": timestamp,
        "updatedAt": timestamp,
        "lastUpdated": timestamp,
        "updatedBy": _clean(payload.updatedBy),
    }

    record = ShipmentRecord.from_document(document)
    intent = MutationIntent(
        explicit_index=payload.currentIndex,
        status_hint=_clean(payload.status) or _clean(payload.initialStatus) or STATUS_PENDING,
        new_destination_location=payload.currentLocation.model_dump() if payload.currentLocation else None,
        history_note="Initial location recorded" if payload.currentLocation else None,
    )
    created = apply_mutation(record, intent, now=now)
    document.update(_engine_patch(record, created, document))

    stored = store.insert_one(document)
    logger.info(f"Created shipment {tracking_id} with {len(route)} checkpoints")
    return stored


def list_shipments(store: ShipmentStore, page: int = 1, limit: int = 100) -> dict:
    page = max(1, int(page))
    limit = min(MAX_PAGE_SIZE, max(1, int(limit)))
    skip = (page - 1) * limit
    items = store.find(skip=skip, limit=limit)
    return {"items": items, "total": store.count_documents(), "page": page, "limit": limit}


def get_shipment(store: ShipmentStore, identifier: str) -> dict:
    return _load(store, identifier)


def update_shipment(
    store: ShipmentStore,
    identifier: str,
    payload: ShipmentPatchRequest,
    *,
    now: datetime | None = None,
) -> dict:
    """Apply an admin edit. Shared by the by-id and by-trackingId PATCH endpoints."""
    now = now or _utcnow()
    changes = payload.model_dump(mode="json", exclude_unset=True)
    if not changes:
        raise InvalidMutation("No valid fields to update")

    document = _load(store, identifier)
    field_edits = {key: changes[key] for key in PLAIN_PATCH_FIELDS if key in changes}
    for part in ("origin", "destination"):
        if isinstance(field_edits.get(part), dict):
            field_edits[part] = _merge_part(document.get(part), field_edits[part])
    destination_patch = changes.get("destination")

    record = ShipmentRecord.from_document({**document, **field_edits})

    destination_city = _address_city(destination_patch)
    destination_location = _part_location(destination_patch)
    current_location = GeoPoint.from_value(changes.get("currentLocation"))
    history_note = None
    if destination_location is None and current_location is not None:
        history_note = "Admin updated current location"

    intent = MutationIntent(
        explicit_index=changes.get("currentIndex"),
        destination_city_hint=destination_city,
        status_hint=changes.get("status"),
        explicit_progress_pct=changes.get("progressPct"),
        new_destination_location=(destination_location or current_location),
        new_destination_city_for_history=destination_city,
        history_note=history_note,
    )
    updated = apply_mutation(record, intent, now=now)

    patch = {**field_edits, **_engine_patch(record, updated, document)}
    logger.info(f"Updating shipment {record.tracking_id}: {sorted(changes)}")
    return _persist(store, document, patch)


def advance_shipment(store: ShipmentStore, identifier: str, *, now: datetime | None = None) -> dict:
    """Move the shipment to its next checkpoint.

    Raises:
        AlreadyAtFinalCheckpoint: the shipment is at its last checkpoint.
    """
    now = now or _utcnow()
    document = _load(store, identifier)
    record = ShipmentRecord.from_document(document)
    intent = MutationIntent(advance_one=True, status_hint=advance_status_hint(record))
    advanced = apply_mutation(record, intent, now=now)
    logger.info(f"Advanced shipment {record.tracking_id} to checkpoint {advanced.current_index}")
    return _persist(store, document, _engine_patch(record, advanced, document))


def set_location(
    store: ShipmentStore,
    identifier: str,
    payload: LocationUpdateRequest,
    *,
    now: datetime | None = None,
) -> dict:
    now = now or _utcnow()
    point = None
    if payload.lat is not None and payload.lng is not None:
        point = GeoPoint.from_lat_lng(payload.lat, payload.lng)
    city = _clean(payload.city)
    if point is None and not city:
        raise InvalidMutation("Provide lat/lng or city")

    document = _load(store, identifier)
    record = ShipmentRecord.from_document(document)
    intent = MutationIntent(
        destination_city_hint=city,
        new_destination_location=point.to_dict() if point else None,
        new_destination_city_for_history=city,
        history_note=_clean(payload.note) or "Manual update",
    )
    moved = apply_mutation(record, intent, now=now)
    return _persist(store, document, _engine_patch(record, moved, document))


def regenerate_route(
    store: ShipmentStore,
    identifier: str,
    *,
    now: datetime | None = None,
    directions: DirectionsProvider | None = None,
) -> dict:
    """Replace the route with a freshly generated one from the stored origin and destination."""
    now = now or _utcnow()
    document = _load(store, identifier)
    origin = document.get("origin") if isinstance(document.get("origin"), dict) else None
    destination = document.get("destination") if isinstance(document.get("destination"), dict) else None

    checkpoints = generate_route(
        _part_location(origin),
        _part_location(destination),
        _address_city(origin) or document.get("originWarehouse"),
        _address_city(destination) or _address_city(document.get("address")),
        client=directions,
    )
    if not checkpoints:
        raise UpstreamUnavailable("Could not generate a route for this shipment")

    route = [checkpoint.to_dict() for checkpoint in checkpoints]
    record = ShipmentRecord.from_document({**document, "route": route})
    refreshed = apply_mutation(record, MutationIntent(), now=now)
    patch = {"route": route, **_engine_patch(record, refreshed, document)}
    return _persist(store, document, patch)


def delete_shipment(store: ShipmentStore, identifier: str) -> dict:
    deleted = store.find_one_and_delete(identifier)
    if deleted is None:
        raise RecordNotFound(identifier)
    logger.info(f"Deleted shipment {deleted.get('trackingId')}")
    return deleted
