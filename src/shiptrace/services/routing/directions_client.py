"""HTTP client for the OpenRouteService directions and geocoding APIs."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

import httpx

from ...config import settings
from ...errors import UpstreamUnavailable

logger = logging.getLogger(__name__)

# Status codes worth another attempt; anything else in 4xx is a request problem.
RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


class DirectionsClient:
    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        profile: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
    ) -> None:
        self.api_key = api_key or settings.ors_api_key
        if not self.api_key:
            raise ValueError("Directions provider API key is not configured.")
        self.base_url = (base_url or settings.ors_base_url).rstrip("/")
        self.profile = profile or settings.ors_profile
        self.timeout = timeout if timeout is not None else settings.ors_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.ors_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.ors_backoff_seconds

    def _get_client(self) -> httpx.Client:
        return httpx.Client(
            timeout=httpx.Timeout(self.timeout, connect=min(self.timeout, 5.0)),
            headers={
                "Authorization": self.api_key,
                "Accept": "application/json, application/geo+json",
            },
        )

    def _request_with_retries(self, description: str, send: Callable[[httpx.Client], httpx.Response]) -> dict:
        client = self._get_client()
        try:
            attempt = 0
            while True:
                try:
                    response = send(client)
                    response.raise_for_status()
                    return response.json()
                except httpx.HTTPStatusError as e:
                    status_code = e.response.status_code
                    attempt += 1
                    if status_code not in RETRYABLE_STATUS_CODES or attempt > self.max_retries:
                        body = e.response.text[:500]
                        raise UpstreamUnavailable(
                            f"{description} failed with status {status_code}: {body}"
                        ) from e
                    time.sleep(self.backoff_seconds * attempt)
                except httpx.TimeoutException as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        logger.warning(f"{description} timed out after {self.max_retries} retries: {e}")
                        raise UpstreamUnavailable(f"{description} timed out") from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"{description} timeout, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries})")
                    time.sleep(wait_time)
                except (httpx.NetworkError, OSError) as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise UpstreamUnavailable(
                            f"Failed to connect to directions provider at {self.base_url}: {e}"
                        ) from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"{description} network error, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries}): {e}")
                    time.sleep(wait_time)
                except ValueError as e:
                    # response.json() on a non-JSON body
                    raise UpstreamUnavailable(f"{description} returned an unreadable body") from e
        finally:
            client.close()

    def directions(self, origin: tuple[float, float], destination: tuple[float, float]) -> dict:
        """Request a driving route between two points.

        Args:
            origin: (lon, lat) of the start point
            destination: (lon, lat) of the end point

        Returns:
            Provider payload; the geometry is read with ``extract_path``.
        """
        url = f"{self.base_url}/v2/directions/{self.profile}"
        body = {
            "coordinates": [
                [float(origin[0]), float(origin[1])],
                [float(destination[0]), float(destination[1])],
            ],
        }
        return self._request_with_retries(
            "Directions request",
            lambda client: client.post(url, json=body),
        )

    def geocode(self, text: str) -> dict:
        """Free-text address search. The provider payload is returned unchanged."""
        if not text or not text.strip():
            raise ValueError("Address text is required for geocoding.")
        url = f"{self.base_url}/geocode/search"
        params = {"api_key": self.api_key, "text": text.strip()}
        return self._request_with_retries(
            "Geocode request",
            lambda client: client.get(url, params=params),
        )


def extract_path(payload: Any) -> list[list[float]] | str:
    """Pull the route geometry out of a directions payload.

    Handles both the JSON response (``routes[0].geometry`` as an encoded polyline
    or a GeoJSON object) and the GeoJSON response (``features[0].geometry``).
    Returns an empty list when no geometry is present.
    """
    if not isinstance(payload, dict):
        return []

    routes = payload.get("routes")
    if isinstance(routes, list) and routes and isinstance(routes[0], dict):
        geometry = routes[0].get("geometry")
        if isinstance(geometry, str) and geometry:
            return geometry
        if isinstance(geometry, dict) and isinstance(geometry.get("coordinates"), list):
            return geometry["coordinates"]
        return []

    features = payload.get("features")
    if isinstance(features, list) and features and isinstance(features[0], dict):
        geometry = features[0].get("geometry") or {}
        coordinates = geometry.get("coordinates") if isinstance(geometry, dict) else None
        if isinstance(coordinates, list):
            return coordinates

    return []


def decode_polyline(polyline: str) -> list[tuple[float, float]]:
    """Decode Google polyline string to list of (lon, lat) coordinates.

    Precision is 1e5, the polyline default. Pairs are returned longitude first to
    match GeoJSON paths.
    """
    coordinates = []
    index = 0
    lat = 0
    lon = 0

    while index < len(polyline):
        # Decode latitude
        shift = 0
        result = 0
        while True:
            b = ord(polyline[index]) - 63
            index += 1
            result |= (b & 0x1f) << shift
            shift += 5
            if b < 0x20:
                break
        dlat = ~(result >> 1) if (result & 1) else (result >> 1)
        lat += dlat

        # Decode longitude
        shift = 0
        result = 0
        while True:
            b = ord(polyline[index]) - 63
            index += 1
            result |= (b & 0x1f) << shift
            shift += 5
            if b < 0x20:
                break
        dlon = ~(result >> 1) if (result & 1) else (result >> 1)
        lon += dlon

        coordinates.append((lon / 1e5, lat / 1e5))

    return coordinates


def check_health(client: DirectionsClient | None = None) -> bool:
    """Check provider reachability with a minimal geocode search."""
    try:
        directions_client = client or DirectionsClient(max_retries=0)
        payload = directions_client.geocode("Berlin")
        return isinstance(payload, dict) and "features" in payload
    except (ValueError, UpstreamUnavailable):
        return False
