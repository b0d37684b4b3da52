"""Domain models for shipment records and their routes."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Optional

SHIPMENT_STATUSES: tuple[str, ...] = (
    "Pending",
    "On Hold",
    "Shipped",
    "Out for Delivery",
    "Delivered",
    "Exception",
)
_STATUS_LOOKUP = {status.lower(): status for status in SHIPMENT_STATUSES}

STATUS_PENDING = "Pending"
STATUS_SHIPPED = "Shipped"
STATUS_DELIVERED = "Delivered"


def normalize_status(value: Any) -> Optional[str]:
    """Return the canonical spelling of a known status, or the trimmed free text."""
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    return _STATUS_LOOKUP.get(text.lower(), text)


def _finite(value: Any) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


@dataclass(slots=True)
class GeoPoint:
    """A GeoJSON point. Coordinates are always stored as [longitude, latitude]."""

    longitude: float
    latitude: float

    @classmethod
    def from_value(cls, value: Any) -> Optional["GeoPoint"]:
        """Parse a ``{"type": "Point", "coordinates": [lon, lat]}`` mapping.

        Returns None for anything that is not a well-formed point with finite coordinates.
        """
        if isinstance(value, GeoPoint):
            return value
        if not isinstance(value, dict) or value.get("type") != "Point":
            return None
        coordinates = value.get("coordinates")
        if not isinstance(coordinates, (list, tuple)) or len(coordinates) < 2:
            return None
        lon, lat = _finite(coordinates[0]), _finite(coordinates[1])
        if lon is None or lat is None:
            return None
        return cls(longitude=lon, latitude=lat)

    @classmethod
    def from_lat_lng(cls, lat: Any, lng: Any) -> Optional["GeoPoint"]:
        lat_value, lng_value = _finite(lat), _finite(lng)
        if lat_value is None or lng_value is None:
            return None
        return cls(longitude=lng_value, latitude=lat_value)

    def to_dict(self) -> dict:
        return {"type": "Point", "coordinates": [self.longitude, self.latitude]}


@dataclass(slots=True)
class Checkpoint:
    city: str
    location: Optional[GeoPoint] = None
    eta: Optional[str] = None
    zip: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "Checkpoint":
        return cls(
            city=str(data.get("city") or ""),
            location=GeoPoint.from_value(data.get("location")),
            eta=data.get("eta"),
            zip=data.get("zip"),
        )

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {
            "city": self.city,
            "location": self.location.to_dict() if self.location else None,
        }
        if self.eta is not None:
            payload["eta"] = self.eta
        if self.zip is not None:
            payload["zip"] = self.zip
        return payload


@dataclass(slots=True)
class HistoryEntry:
    timestamp: str
    city: Optional[str]
    location: Optional[GeoPoint]
    note: Optional[str]
    by: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "HistoryEntry":
        return cls(
            timestamp=str(data.get("timestamp") or ""),
            city=data.get("city"),
            location=GeoPoint.from_value(data.get("location")),
            note=data.get("note"),
            by=data.get("by"),
        )

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "city": self.city,
            "location": self.location.to_dict() if self.location else None,
            "note": self.note,
            "by": self.by,
        }


@dataclass(slots=True)
class ShipmentRecord:
    """The slice of a persisted shipment document that route progress depends on."""

    tracking_id: str
    route: list[Checkpoint] = field(default_factory=list)
    current_index: int = 0
    current_location: Optional[GeoPoint] = None
    status: str = STATUS_PENDING
    progress_pct: int = 0
    location_history: list[HistoryEntry] = field(default_factory=list)
    origin_location: Optional[GeoPoint] = None
    shipment_date: Optional[str] = None
    updated_at: Optional[str] = None
    last_updated: Optional[str] = None

    @property
    def last_index(self) -> int:
        return max(0, len(self.route) - 1)

    @classmethod
    def from_document(cls, document: dict) -> "ShipmentRecord":
        route_items = document.get("route")
        route = [
            Checkpoint.from_dict(item)
            for item in (route_items if isinstance(route_items, list) else [])
            if isinstance(item, dict)
        ]
        index = _finite(document.get("currentIndex"))
        progress = _finite(document.get("progressPct"))
        history_items = document.get("locationHistory")
        origin = document.get("origin") if isinstance(document.get("origin"), dict) else {}
        record = cls(
            tracking_id=str(document.get("trackingId") or ""),
            route=route,
            current_index=int(index) if index is not None else 0,
            current_location=GeoPoint.from_value(document.get("currentLocation")),
            status=normalize_status(document.get("status")) or STATUS_PENDING,
            progress_pct=int(progress) if progress is not None else 0,
            location_history=[
                HistoryEntry.from_dict(item)
                for item in (history_items if isinstance(history_items, list) else [])
                if isinstance(item, dict)
            ],
            origin_location=GeoPoint.from_value(origin.get("location")),
            shipment_date=document.get("shipmentDate"),
            updated_at=document.get("updatedAt"),
            last_updated=document.get("lastUpdated"),
        )
        record.current_index = min(max(record.current_index, 0), record.last_index)
        return record

    def progress_fields(self) -> dict:
        """Document fields owned by the progress engine, excluding location history."""
        return {
            "currentIndex": self.current_index,
            "currentLocation": self.current_location.to_dict() if self.current_location else None,
            "status": self.status,
            "progressPct": self.progress_pct,
            "shipmentDate": self.shipment_date,
            "updatedAt": self.updated_at,
            "lastUpdated": self.last_updated,
        }
