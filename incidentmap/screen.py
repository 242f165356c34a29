"""Presentation state for the incident map screen.

The screen has two modes: browsing, and waiting for the tap that places a new
pin. Handlers take the current ``ScreenState`` and return the next one instead
of flipping a shared flag, so any UI toolkit can drive them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from incidentmap.projection import in_world_bounds, to_lon_lat
from incidentmap.registry.errors import RegistryError
from incidentmap.registry.models import Coordinate, Incident
from incidentmap.registry.store import IncidentRegistry

logger = logging.getLogger(__name__)


class UIMode(str, Enum):
    """Interaction modes of the map screen."""
    BROWSE = "browse"
    PLACING_PIN = "placing_pin"


@dataclass(frozen=True)
class ScreenState:
    mode: UIMode = UIMode.BROWSE
    message: str = ""


def begin_placing(state: ScreenState) -> ScreenState:
    """'Agregar incidencia' pressed: the next map tap drops a pin."""
    return replace(state, mode=UIMode.PLACING_PIN, message="")


def cancel_placing(state: ScreenState) -> ScreenState:
    return replace(state, mode=UIMode.BROWSE, message="")


def handle_map_tap(
    state: ScreenState,
    registry: IncidentRegistry,
    x: float,
    y: float,
) -> Tuple[ScreenState, Optional[Incident]]:
    """Handle a tap at projected world position (x, y).

    Returns:
        (next state, created incident or None)
    """
    if state.mode != UIMode.PLACING_PIN:
        return state, None

    if not in_world_bounds(x, y):
        logger.warning(f"Ignoring tap outside the map: ({x}, {y})")
        return replace(state, message=f"position outside the map: ({x}, {y})"), None

    lon, lat = to_lon_lat(x, y)
    try:
        incident = registry.add(Coordinate(latitude=lat, longitude=lon))
    except RegistryError as e:
        return replace(state, message=str(e)), None

    return ScreenState(mode=UIMode.BROWSE), incident


def handle_rename(
    state: ScreenState,
    registry: IncidentRegistry,
    incident_id: str,
    new_title: Optional[str],
) -> Tuple[ScreenState, Optional[Incident]]:
    """Apply the 'Editar incidencia' prompt result.

    A cancelled prompt (None) changes nothing.
    """
    if new_title is None:
        return replace(state, message=""), None
    try:
        incident = registry.rename(incident_id, new_title)
    except RegistryError as e:
        return replace(state, message=str(e)), None
    return replace(state, message=""), incident


def coordinate_label(location: Coordinate) -> str:
    return f"Lat: {location.latitude:.4f}, Lon: {location.longitude:.4f}"


def list_rows(incidents: Iterable[Incident]) -> List[Dict[str, str]]:
    """Rows for the incident list view (id, title, coordinates)."""
    return [
        {"id": i.id, "title": i.title, "coordinates": coordinate_label(i.location)}
        for i in incidents
    ]
