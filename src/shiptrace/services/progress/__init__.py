"""Shipment progress engine."""

from .engine import MutationIntent, apply_mutation

__all__ = ["MutationIntent", "apply_mutation"]
