from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Literal, Union

from incidentmap.registry.models import Incident

# Payloads handed to registry observers and forwarded as JSON to websocket clients.

EventType = Literal["incident_added", "incident_updated", "incident_removed"]


@dataclass
class IncidentAdded:
    incident: Incident
    type: Literal["incident_added"] = "incident_added"


@dataclass
class IncidentUpdated:
    incident: Incident
    previous_title: str = ""
    type: Literal["incident_updated"] = "incident_updated"


@dataclass
class IncidentRemoved:
    incident: Incident
    type: Literal["incident_removed"] = "incident_removed"


IncidentEvent = Union[IncidentAdded, IncidentUpdated, IncidentRemoved]
Observer = Callable[[IncidentEvent], None]


def asdict(event: Any) -> Dict[str, Any]:
    """
    Convert known event dataclasses to a JSON-ready dict.
    Incidents are dumped in pydantic's json mode so timestamps become strings.
    """
    if isinstance(event, (IncidentAdded, IncidentUpdated, IncidentRemoved)):
        out = dict(event.__dict__)
        out["incident"] = event.incident.model_dump(mode="json")
        return out
    if isinstance(event, dict):
        return event
    return {"type": "error_event", "message": "Unknown event type", "detail": {"repr": repr(event)}}
