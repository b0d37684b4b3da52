"""Export services."""

from .geojson import route_feature_collection

__all__ = ["route_feature_collection"]
