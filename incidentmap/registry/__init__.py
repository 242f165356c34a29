"""In-memory incident registry."""

from incidentmap.registry.errors import NotFoundError, RegistryError, ValidationError
from incidentmap.registry.models import Coordinate, Incident
from incidentmap.registry.events import IncidentAdded, IncidentRemoved, IncidentUpdated
from incidentmap.registry.store import IncidentRegistry

__all__ = [
    "Coordinate",
    "Incident",
    "IncidentAdded",
    "IncidentRegistry",
    "IncidentRemoved",
    "IncidentUpdated",
    "NotFoundError",
    "RegistryError",
    "ValidationError",
]
