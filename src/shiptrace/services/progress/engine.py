"""Route progress engine.

Every write path (create, patch, advance, set-location, route regeneration) turns its
request into a ``MutationIntent`` and calls ``apply_mutation``. The function is pure:
it reads the current record and returns the next one, leaving persistence to the
caller.

Resolution order:

1. index: city hint, then advance-one, then explicit index (clamped to the route)
2. status: hint if given, else unchanged
3. "Delivered" forces the last index and 100%
4. progress: explicit override, else index ratio, else the previous value
5. current location: new point, route checkpoint, origin, else unchanged
6. shipment date: set on the first move to "Shipped"
7. history: one entry appended when the location or destination city changed
8. ``updatedAt``/``lastUpdated`` stamped with the mutation time
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Optional

from ...config import settings
from ...errors import AlreadyAtFinalCheckpoint
from ...models.domain import (
    STATUS_DELIVERED,
    STATUS_PENDING,
    STATUS_SHIPPED,
    Checkpoint,
    GeoPoint,
    HistoryEntry,
    ShipmentRecord,
    normalize_status,
)

logger = logging.getLogger(__name__)

NOTE_LOCATION_UPDATED = "Admin updated destination location"
NOTE_CITY_UPDATED = "Admin updated destination city"
NOTE_ARRIVED = "Arrived checkpoint"


@dataclass(slots=True)
class MutationIntent:
    """Sparse set of changes an action wants applied to a record's derived fields."""

    explicit_index: Any = None
    destination_city_hint: Optional[str] = None
    advance_one: bool = False
    status_hint: Optional[str] = None
    explicit_progress_pct: Any = None
    new_destination_location: Any = None
    new_destination_city_for_history: Optional[str] = None
    history_note: Optional[str] = None
    actor: str = "admin"


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp_index(index: int, route_length: int) -> int:
    return min(max(index, 0), max(0, route_length - 1))


def compute_progress_pct(index: int, route_length: int, fallback: int = 0) -> int:
    """Percentage of the route covered at ``index``; ``fallback`` for routes of 0 or 1 stops."""
    if route_length > 1:
        return round_half_up(index / (route_length - 1) * 100)
    return fallback


def find_checkpoint_by_city(route: list[Checkpoint], hint: str | None) -> int | None:
    """Index of the first checkpoint whose city starts with ``hint`` (case-insensitive)."""
    needle = (hint or "").strip().lower()
    if not needle:
        return None
    for position, checkpoint in enumerate(route):
        city = (checkpoint.city or "").lower()
        if city and city.startswith(needle):
            return position
    return None


def _finite_int(value: Any, field_name: str) -> int | None:
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring non-numeric {field_name}: {value!r}")
        return None
    if not math.isfinite(number):
        logger.warning(f"Ignoring non-finite {field_name}: {value!r}")
        return None
    return int(number)


def is_delivered(status: str | None) -> bool:
    return (status or "").strip().lower() == STATUS_DELIVERED.lower()


def advance_status_hint(record: ShipmentRecord) -> str | None:
    """Status implied by moving one checkpoint forward.

    Reaching the last checkpoint delivers the shipment; leaving the first one ships a
    pending shipment. Otherwise the status is left alone.
    """
    if record.current_index + 1 >= record.last_index and record.route:
        return STATUS_DELIVERED
    if record.status.lower() == STATUS_PENDING.lower():
        return STATUS_SHIPPED
    return None


def _resolve_index(current: ShipmentRecord, intent: MutationIntent) -> int:
    route_length = len(current.route)
    index = clamp_index(current.current_index, route_length)

    city_match = find_checkpoint_by_city(current.route, intent.destination_city_hint)
    if city_match is not None:
        index = city_match

    explicit = _finite_int(intent.explicit_index, "currentIndex")
    city_given = bool((intent.destination_city_hint or "").strip())

    if intent.advance_one and explicit is None and not city_given:
        if index >= current.last_index:
            raise AlreadyAtFinalCheckpoint(current.tracking_id)
        index = clamp_index(index + 1, route_length)

    if explicit is not None:
        clamped = clamp_index(explicit, route_length)
        if clamped != explicit:
            logger.warning(f"Clamped currentIndex {explicit} to {clamped} for {current.tracking_id}")
        index = clamped

    return index


def _resolve_progress(current: ShipmentRecord, intent: MutationIntent, index: int) -> int:
    derived = compute_progress_pct(index, len(current.route), fallback=current.progress_pct)
    override = _finite_int(intent.explicit_progress_pct, "progressPct")
    if override is None:
        return derived

    override = min(max(override, 0), 100)
    if len(current.route) > 1 and abs(override - derived) > settings.progress_override_tolerance_pct:
        logger.warning(
            f"progressPct override {override} for {current.tracking_id} diverges from "
            f"checkpoint progress {derived}"
        )
    return override


def apply_mutation(current: ShipmentRecord, intent: MutationIntent, *, now: datetime) -> ShipmentRecord:
    """Return the next state of ``current`` after applying ``intent``.

    Raises:
        AlreadyAtFinalCheckpoint: ``advance_one`` was requested at the last checkpoint.
    """
    timestamp = now.isoformat()
    route = current.route

    index = _resolve_index(current, intent)
    status = normalize_status(intent.status_hint) or current.status

    if is_delivered(status):
        status = STATUS_DELIVERED
        if route:
            index = len(route) - 1
        progress = 100
    else:
        progress = _resolve_progress(current, intent, index)

    new_point = GeoPoint.from_value(intent.new_destination_location)
    if intent.new_destination_location is not None and new_point is None:
        logger.warning(f"Ignoring malformed location for {current.tracking_id}: {intent.new_destination_location!r}")

    if new_point is not None:
        location = new_point
    elif route and route[index].location is not None:
        location = route[index].location
    elif current.origin_location is not None:
        location = current.origin_location
    else:
        location = current.current_location

    shipment_date = current.shipment_date
    if status.lower() == STATUS_SHIPPED.lower() and not shipment_date:
        shipment_date = timestamp

    history = list(current.location_history)
    history_city = (intent.new_destination_city_for_history or "").strip() or None
    if new_point is not None or history_city or intent.advance_one:
        if intent.advance_one and history_city is None and route:
            history_city = route[index].city
        if intent.history_note:
            note = intent.history_note
        elif new_point is not None:
            note = NOTE_LOCATION_UPDATED
        elif history_city and not intent.advance_one:
            note = NOTE_CITY_UPDATED
        else:
            note = NOTE_ARRIVED
        history.append(
            HistoryEntry(
                timestamp=timestamp,
                city=history_city,
                location=location,
                note=note,
                by=intent.actor,
            )
        )

    return replace(
        current,
        current_index=index,
        current_location=location,
        status=status,
        progress_pct=progress,
        location_history=history,
        shipment_date=shipment_date,
        updated_at=timestamp,
        last_updated=timestamp,
    )
