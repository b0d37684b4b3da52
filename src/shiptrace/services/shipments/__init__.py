"""Shipment record operations."""
