"""Shipment tracking service: route sampling, progress engine and tracking API."""
