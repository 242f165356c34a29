"""Map marker layer kept in sync with the incident registry."""

import logging
import threading
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from incidentmap.projection import from_lon_lat
from incidentmap.registry.events import (
    IncidentAdded,
    IncidentEvent,
    IncidentRemoved,
)
from incidentmap.registry.models import Incident
from incidentmap.registry.store import IncidentRegistry

logger = logging.getLogger(__name__)

LAYER_NAME = "Incidencias"


class PinStyle(BaseModel):
    """Visual style of an incident pin."""

    symbol_scale: float = Field(default=0.8, description="Symbol size relative to default")
    fill: str = Field(default="#FF0000", description="Fill color")
    outline: str = Field(default="#FFFFFF", description="Outline color")
    outline_width: float = Field(default=2.0, description="Outline width in pixels")


class Marker(BaseModel):
    """A pin placed on the map surface for one incident."""

    incident_id: str
    x: float = Field(description="Web Mercator x (metres)")
    y: float = Field(description="Web Mercator y (metres)")
    style: PinStyle = Field(default_factory=PinStyle)


class MarkerLayer:
    """Mirrors the registry as map markers.

    Subscribes on construction. Updates leave markers untouched since an
    incident's location never changes.
    """

    def __init__(
        self,
        registry: IncidentRegistry,
        name: str = LAYER_NAME,
        style: Optional[PinStyle] = None,
    ):
        self.registry = registry
        self.name = name
        self.style = style or PinStyle()

        self._lock = threading.Lock()
        self._markers: Dict[str, Marker] = {}

        # Subscribe before the first rebuild so no add can fall between the two.
        self._unsubscribe = registry.subscribe(self._on_event)
        self.refresh()

    def _marker_for(self, incident: Incident) -> Marker:
        x, y = from_lon_lat(incident.location.longitude, incident.location.latitude)
        return Marker(incident_id=incident.id, x=x, y=y, style=self.style.model_copy())

    def _on_event(self, event: IncidentEvent) -> None:
        if isinstance(event, IncidentAdded):
            marker = self._marker_for(event.incident)
            with self._lock:
                self._markers[marker.incident_id] = marker
            logger.debug(f"Layer {self.name}: placed marker for {marker.incident_id}")
        elif isinstance(event, IncidentRemoved):
            with self._lock:
                self._markers.pop(event.incident.id, None)
            logger.debug(f"Layer {self.name}: removed marker for {event.incident.id}")

    def refresh(self) -> None:
        """Rebuild all markers from the registry."""
        # Events delivered meanwhile wait on the layer lock and apply on top of the rebuild.
        with self._lock:
            self._markers = {i.id: self._marker_for(i) for i in self.registry.list()}

    def markers(self) -> List[Marker]:
        """Snapshot of markers in insertion order."""
        with self._lock:
            return list(self._markers.values())

    def close(self) -> None:
        self._unsubscribe()

    def __len__(self) -> int:
        with self._lock:
            return len(self._markers)
