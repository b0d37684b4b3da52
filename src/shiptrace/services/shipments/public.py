"""Public (unauthenticated) projection of a shipment record."""

from __future__ import annotations

from typing import Any

from ...config import settings
from ...errors import RecordNotFound
from ...models.domain import STATUS_PENDING, GeoPoint, normalize_status
from ...persistence.shipments import ShipmentStore
from ..progress.engine import clamp_index


def _address(*sources: Any) -> dict:
    """First non-empty value per address field across the given address mappings."""
    fields = ("full", "city", "state", "zip")
    result = {}
    for key in fields:
        result[key] = next(
            (source.get(key) for source in sources if isinstance(source, dict) and source.get(key)),
            None,
        )
    return result


def _point(value: Any) -> dict | None:
    point = GeoPoint.from_value(value)
    return point.to_dict() if point else None


def find_public_record(store: ShipmentStore, tracking_id: str) -> dict:
    """Exact tracking-id lookup; record ids and other spellings are not accepted publicly."""
    document = store.find_one(tracking_id)
    if document is None or document.get("trackingId") != tracking_id:
        raise RecordNotFound(tracking_id)
    return document


def public_tracking_view(store: ShipmentStore, tracking_id: str, *, expose_private: bool = False) -> dict:
    record = find_public_record(store, tracking_id)

    route = [
        {
            "city": checkpoint.get("city"),
            "zip": checkpoint.get("zip"),
            "location": _point(checkpoint.get("location")),
            "eta": checkpoint.get("eta"),
        }
        for checkpoint in record.get("route") or []
        if isinstance(checkpoint, dict)
    ]
    current_index = record.get("currentIndex") if isinstance(record.get("currentIndex"), int) else 0
    current_index = clamp_index(current_index, len(route))
    current_location = _point(record.get("currentLocation"))
    if current_location is None and route:
        current_location = route[current_index]["location"]

    history = [entry for entry in record.get("locationHistory") or [] if isinstance(entry, dict)]
    history = history[-settings.public_history_limit:]

    origin = record.get("origin") if isinstance(record.get("origin"), dict) else None
    destination = record.get("destination") if isinstance(record.get("destination"), dict) else {}
    legacy_address = record.get("address") if isinstance(record.get("address"), dict) else {}

    expected_delivery = destination.get("expectedDeliveryDate") or record.get("expectedDeliveryDate")
    receiver_email = destination.get("receiverEmail") or record.get("customerEmail")

    return {
        "trackingId": record["trackingId"],
        "serviceType": record.get("serviceType"),
        "shipmentDetails": record.get("shipmentDetails"),
        "shipmentDate": record.get("shipmentDate") or record.get("shippedAt"),
        "expectedDeliveryDate": expected_delivery,
        "productDescription": record.get("productDescription") or record.get("product"),
        "quantity": record.get("quantity") if record.get("quantity") is not None else 1,
        "weightKg": record.get("weightKg"),
        "description": record.get("description"),
        "origin": (
            {
                "name": origin.get("name"),
                "address": _address(origin.get("address")),
                "location": _point(origin.get("location")),
            }
            if origin
            else None
        ),
        "originWarehouse": record.get("originWarehouse"),
        "destination": {
            "receiverName": destination.get("receiverName") or record.get("customerName"),
            "receiverEmail": receiver_email if expose_private else None,
            "address": _address(destination.get("address"), legacy_address),
            "location": _point(destination.get("location")),
            "expectedDeliveryDate": expected_delivery,
        },
        "route": route,
        "currentIndex": current_index,
        "currentLocation": current_location,
        "progressPct": int(record.get("progressPct") or 0),
        "status": normalize_status(record.get("status")) or STATUS_PENDING,
        "locationHistory": [
            {"timestamp": entry.get("timestamp"), "city": entry.get("city"), "note": entry.get("note")}
            for entry in history
        ],
        "lastUpdated": record.get("lastUpdated") or record.get("updatedAt") or record.get("createdAt"),
        "createdAt": record.get("createdAt"),
        "imageUrl": record.get("imageUrl"),
    }
