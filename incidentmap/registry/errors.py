"""Errors raised by the incident registry."""

from __future__ import annotations


class RegistryError(Exception):
    """Base class for recoverable registry failures."""


class ValidationError(RegistryError):
    """Raised when input is rejected (coordinate out of range, blank title)."""


class NotFoundError(RegistryError):
    """Raised when an incident id is unknown to the registry."""

    def __init__(self, incident_id: str):
        self.incident_id = incident_id
        super().__init__(f"incident not found: {incident_id}")
