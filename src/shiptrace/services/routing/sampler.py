"""Reduce a dense driving path to a handful of labeled checkpoints."""

from __future__ import annotations

import logging
from typing import Sequence

from ...models.domain import Checkpoint, GeoPoint
from ..geospatial import approx_meters, is_lon_lat_pair
from .directions_client import decode_polyline

logger = logging.getLogger(__name__)

DEFAULT_TARGET_POINTS = 8
DEFAULT_MIN_SPACING_METERS = 80.0
# Destination closer than this to the last interior stop is treated as the same point.
DUPLICATE_ENDPOINT_METERS = 1.0


def _coerce_path(path: Sequence[Sequence[float]] | str | None) -> list[tuple[float, float]] | None:
    """Return the path as (lon, lat) floats, or None if any part of it is malformed."""
    if path is None:
        return []
    if isinstance(path, str):
        try:
            return decode_polyline(path)
        except IndexError:
            logger.warning("Encoded polyline is truncated; no route sampled")
            return None
    if not isinstance(path, Sequence):
        return None
    points: list[tuple[float, float]] = []
    for point in path:
        if not is_lon_lat_pair(point):
            return None
        points.append((float(point[0]), float(point[1])))
    return points


def sample_route(
    path: Sequence[Sequence[float]] | str | None,
    origin_label: str | None,
    dest_label: str | None,
    target_points: int = DEFAULT_TARGET_POINTS,
    min_spacing_meters: float = DEFAULT_MIN_SPACING_METERS,
) -> list[Checkpoint]:
    """Sample a path into ordered checkpoints anchored at its first and last points.

    Args:
        path: Sequence of [lon, lat] pairs, or a Google encoded polyline (1e5 precision)
        origin_label: Label for the first checkpoint ("Origin" when blank)
        dest_label: Label for the final checkpoint ("Destination" when blank)
        target_points: Upper bound on interior stops; also sets the walk stride
        min_spacing_meters: Minimum distance between consecutive kept points

    Returns:
        Checkpoints ``[origin, Stop 1..n, destination]``. Empty when the path is
        empty or malformed; callers treat that as "no route available".

    When the destination lies within ``DUPLICATE_ENDPOINT_METERS`` of the last
    interior stop, no separate destination checkpoint is added. That stop is
    relabeled with ``dest_label`` instead of keeping its ``Stop n`` name, so the
    route always ends on the destination label.
    """
    points = _coerce_path(path)
    if not points:
        if points is None:
            logger.warning("Malformed route path; returning an empty route")
        return []

    target = max(1, int(target_points))
    origin_name = (origin_label or "").strip() or "Origin"
    dest_name = (dest_label or "").strip() or "Destination"

    total = len(points)
    step = max(1, total // target)

    kept: list[tuple[float, float]] = [points[0]]
    last_kept = points[0]
    for index in range(step, total - 1, step):
        if len(kept) - 1 >= target:
            break
        candidate = points[index]
        if approx_meters(last_kept[0], last_kept[1], candidate[0], candidate[1]) >= min_spacing_meters:
            kept.append(candidate)
            last_kept = candidate

    destination_kept = False
    if total > 1:
        final = points[-1]
        near_last_stop = (
            len(kept) > 1
            and approx_meters(last_kept[0], last_kept[1], final[0], final[1]) < DUPLICATE_ENDPOINT_METERS
        )
        if not near_last_stop:
            kept.append(final)
        # Otherwise the last interior stop already sits on the destination and takes its label.
        destination_kept = True

    checkpoints: list[Checkpoint] = []
    for position, (lon, lat) in enumerate(kept):
        if position == 0:
            label = origin_name
        elif destination_kept and position == len(kept) - 1:
            label = dest_name
        else:
            label = f"Stop {position}"
        checkpoints.append(Checkpoint(city=label, location=GeoPoint(longitude=lon, latitude=lat)))
    return checkpoints
