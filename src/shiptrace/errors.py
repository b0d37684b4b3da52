"""Domain errors raised by the shipment services."""

from __future__ import annotations


class ShipmentError(Exception):
    """Base class for shipment tracking errors."""


class AlreadyAtFinalCheckpoint(ShipmentError):
    """An advance was requested for a record already at its last checkpoint."""

    def __init__(self, tracking_id: str | None = None) -> None:
        self.tracking_id = tracking_id
        super().__init__("Already at final checkpoint")


class RecordNotFound(ShipmentError):
    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(f"Record not found: {identifier}")


class DuplicateTrackingId(ShipmentError):
    def __init__(self, tracking_id: str) -> None:
        self.tracking_id = tracking_id
        super().__init__(f"Tracking id '{tracking_id}' already exists")


class InvalidMutation(ShipmentError, ValueError):
    """The request carried nothing the services can apply."""


class UpstreamUnavailable(ShipmentError):
    """The directions or geocoding provider could not be reached."""
