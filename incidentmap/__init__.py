"""Incident map: an in-memory incident registry with map-anchored pins."""

__version__ = "0.1.0"
