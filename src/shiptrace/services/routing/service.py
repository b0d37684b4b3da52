"""Route generation: directions lookup followed by checkpoint sampling."""

from __future__ import annotations

import logging
import math
from typing import Protocol

from ...config import settings
from ...errors import UpstreamUnavailable
from ...models.domain import Checkpoint, GeoPoint
from .directions_client import DirectionsClient, extract_path
from .sampler import sample_route

logger = logging.getLogger(__name__)


class DirectionsProvider(Protocol):
    def directions(self, origin: tuple[float, float], destination: tuple[float, float]) -> dict: ...


def _is_usable(point: GeoPoint | None) -> bool:
    return (
        point is not None
        and math.isfinite(point.longitude)
        and math.isfinite(point.latitude)
    )


def generate_route(
    origin: GeoPoint | None,
    destination: GeoPoint | None,
    origin_label: str | None,
    dest_label: str | None,
    client: DirectionsProvider | None = None,
) -> list[Checkpoint]:
    """Build route checkpoints between two points.

    Never raises: missing coordinates, an unconfigured provider, upstream failures
    and unusable payloads all produce an empty route so record creation can proceed.
    """
    if not _is_usable(origin) or not _is_usable(destination):
        logger.warning("Route generation skipped: origin or destination coordinates missing")
        return []

    if client is None:
        # One attempt only; a slow provider must not hold up record creation.
        try:
            client = DirectionsClient(max_retries=0)
        except ValueError as e:
            logger.warning(f"Route generation skipped: {e}")
            return []

    try:
        payload = client.directions(
            (origin.longitude, origin.latitude),
            (destination.longitude, destination.latitude),
        )
    except UpstreamUnavailable as e:
        logger.warning(f"Directions provider unavailable, using empty route: {e}")
        return []

    path = extract_path(payload)
    if not path:
        logger.warning("Directions response contained no route geometry")
        return []

    checkpoints = sample_route(
        path,
        origin_label,
        dest_label,
        target_points=settings.route_target_points,
        min_spacing_meters=settings.route_min_spacing_meters,
    )
    logger.info(f"Generated route with {len(checkpoints)} checkpoints from {origin_label!r} to {dest_label!r}")
    return checkpoints
