"""GeoJSON export of a shipment route for map overlays."""

from __future__ import annotations

from typing import Any, Dict, List

from shapely.geometry import LineString, Point, mapping

from ...models.domain import ShipmentRecord
from ..geospatial import haversine_km


def _route_distance_km(points: List[Point]) -> float:
    total = 0.0
    for start, end in zip(points, points[1:]):
        total += haversine_km(start.y, start.x, end.y, end.x)
    return round(total, 3)


def route_feature_collection(document: Dict[str, Any]) -> Dict[str, Any]:
    """Convert a shipment document to a GeoJSON FeatureCollection.

    Features:
        - one Point per checkpoint that has a location (index, city, passed flag)
        - a LineString through those checkpoints when there are at least two
        - the current location, tagged ``role: "current"``

    Coordinates stay in [lon, lat] order as stored.
    """
    record = ShipmentRecord.from_document(document)
    features: List[Dict[str, Any]] = []
    checkpoint_points: List[Point] = []

    for index, checkpoint in enumerate(record.route):
        if checkpoint.location is None:
            continue
        point = Point(checkpoint.location.longitude, checkpoint.location.latitude)
        checkpoint_points.append(point)
        features.append(
            {
                "type": "Feature",
                "geometry": mapping(point),
                "properties": {
                    "role": "checkpoint",
                    "index": index,
                    "city": checkpoint.city,
                    "passed": index <= record.current_index,
                    "current": index == record.current_index,
                },
            }
        )

    if len(checkpoint_points) >= 2:
        line = LineString(checkpoint_points)
        features.insert(
            0,
            {
                "type": "Feature",
                "geometry": mapping(line),
                "properties": {
                    "role": "route",
                    "trackingId": record.tracking_id,
                    "distance_km": _route_distance_km(checkpoint_points),
                },
            },
        )

    if record.current_location is not None:
        current = Point(record.current_location.longitude, record.current_location.latitude)
        features.append(
            {
                "type": "Feature",
                "geometry": mapping(current),
                "properties": {"role": "current", "status": record.status},
            }
        )

    return {
        "type": "FeatureCollection",
        "features": features,
        "properties": {
            "trackingId": record.tracking_id,
            "currentIndex": record.current_index,
            "progressPct": record.progress_pct,
        },
    }
