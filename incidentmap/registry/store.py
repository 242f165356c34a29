"""In-memory incident registry with synchronous change notifications."""

import logging
import threading
from collections import deque
from datetime import date
from typing import Callable, Deque, Dict, List, Optional, Tuple, Union

from incidentmap.registry.errors import NotFoundError, ValidationError
from incidentmap.registry.events import (
    IncidentAdded,
    IncidentEvent,
    IncidentRemoved,
    IncidentUpdated,
    Observer,
)
from incidentmap.registry.models import Coordinate, Incident

logger = logging.getLogger(__name__)

DEFAULT_TITLE_PREFIX = "Incidencia"

CoordinateLike = Union[Coordinate, Tuple[float, float]]


def _as_coordinate(location: CoordinateLike) -> Coordinate:
    if isinstance(location, Coordinate):
        return location
    try:
        lat, lon = location
        return Coordinate(latitude=float(lat), longitude=float(lon))
    except (TypeError, ValueError) as e:
        raise ValidationError(f"invalid coordinate: {location!r}") from e


class IncidentRegistry:
    """Single source of truth for incidents and their map anchors.

    Mutations run under one lock that also guards the sequence counter, so
    number assignment and insertion are atomic. Each mutation queues its event
    under that lock; observers are notified after the lock is released, in
    subscription order, and every observer sees events in mutation order.
    """

    def __init__(self, title_prefix: str = DEFAULT_TITLE_PREFIX):
        """Initialize an empty registry.

        Args:
            title_prefix: Prefix for auto-generated titles ("<prefix> #<n>")
        """
        self.title_prefix = title_prefix

        self._lock = threading.RLock()
        self._incidents: List[Incident] = []
        self._by_id: Dict[str, Incident] = {}
        self._sequence = 0

        self._observers: List[Observer] = []
        self._pending: Deque[IncidentEvent] = deque()
        self._dispatching = False

    # ---------------------------------------------------------------------
    # Observers
    # ---------------------------------------------------------------------

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register an observer called with every change event.

        Args:
            observer: Callable receiving IncidentAdded/IncidentUpdated/IncidentRemoved

        Returns:
            A function that unsubscribes the observer
        """
        with self._lock:
            self._observers.append(observer)
        return lambda: self.unsubscribe(observer)

    def unsubscribe(self, observer: Observer) -> bool:
        """Remove an observer. Returns False if it was not subscribed."""
        with self._lock:
            try:
                self._observers.remove(observer)
            except ValueError:
                return False
        return True

    def _enqueue(self, event: IncidentEvent) -> None:
        # Caller holds self._lock, so queue order is mutation order.
        self._pending.append(event)

    def _drain(self) -> None:
        """Deliver queued events, one dispatcher at a time.

        A mutation made while another delivery is in progress (an observer
        mutating the registry, or a second thread) only queues its event; the
        active dispatcher delivers it after the current event has reached
        every observer.
        """
        with self._lock:
            if self._dispatching:
                return
            self._dispatching = True

        try:
            while True:
                with self._lock:
                    if not self._pending:
                        self._dispatching = False
                        return
                    event = self._pending.popleft()
                    observers = list(self._observers)

                for observer in observers:
                    try:
                        observer(event)
                    except Exception:
                        logger.exception(f"Observer {observer!r} failed on {event.type}")
        except BaseException:
            with self._lock:
                self._dispatching = False
            raise

    # ---------------------------------------------------------------------
    # Mutations
    # ---------------------------------------------------------------------

    def add(self, location: CoordinateLike) -> Incident:
        """Create an incident pinned at location.

        Args:
            location: Coordinate or (latitude, longitude) pair

        Returns:
            Copy of the new incident

        Raises:
            ValidationError: If the coordinate is out of range
        """
        coord = _as_coordinate(location).validate_range()

        with self._lock:
            self._sequence += 1
            incident = Incident(
                sequence=self._sequence,
                title=f"{self.title_prefix} #{self._sequence}",
                location=coord,
            )
            self._incidents.append(incident)
            self._by_id[incident.id] = incident
            snapshot = incident.model_copy(deep=True)
            self._enqueue(IncidentAdded(incident=snapshot.model_copy(deep=True)))

        logger.info(
            f"Created incident {snapshot.id} '{snapshot.title}' at "
            f"({coord.latitude:.4f}, {coord.longitude:.4f})"
        )
        self._drain()
        return snapshot

    def rename(self, incident_id: str, new_title: str) -> Incident:
        """Change an incident's title in place.

        Args:
            incident_id: Incident ID
            new_title: New title; surrounding whitespace is stripped

        Returns:
            Copy of the updated incident

        Raises:
            ValidationError: If new_title is empty or whitespace-only
            NotFoundError: If the incident does not exist
        """
        title = (new_title or "").strip()
        if not title:
            logger.warning(f"Rejected blank title for incident {incident_id}")
            raise ValidationError("title must not be empty")

        with self._lock:
            incident = self._by_id.get(incident_id)
            if incident is None:
                raise NotFoundError(incident_id)
            previous = incident.title
            incident.title = title
            snapshot = incident.model_copy(deep=True)
            self._enqueue(IncidentUpdated(incident=snapshot.model_copy(deep=True), previous_title=previous))

        logger.info(f"Renamed incident {incident_id}: '{previous}' -> '{title}'")
        self._drain()
        return snapshot

    def remove(self, incident_id: str) -> Incident:
        """Delete an incident.

        Raises:
            NotFoundError: If the incident does not exist
        """
        with self._lock:
            incident = self._by_id.pop(incident_id, None)
            if incident is None:
                raise NotFoundError(incident_id)
            self._incidents.remove(incident)
            snapshot = incident.model_copy(deep=True)
            self._enqueue(IncidentRemoved(incident=snapshot.model_copy(deep=True)))

        logger.info(f"Removed incident {incident_id} '{snapshot.title}'")
        self._drain()
        return snapshot

    # ---------------------------------------------------------------------
    # Reads
    # ---------------------------------------------------------------------

    def get(self, incident_id: str) -> Incident:
        with self._lock:
            incident = self._by_id.get(incident_id)
            if incident is None:
                raise NotFoundError(incident_id)
            return incident.model_copy(deep=True)

    def list(self) -> List[Incident]:
        """Snapshot of all incidents in insertion order."""
        with self._lock:
            return [i.model_copy(deep=True) for i in self._incidents]

    def filter(self, name: str = "", on_date: Optional[date] = None) -> List[Incident]:
        """Incidents whose title contains name (case-insensitive).

        Args:
            name: Substring to look for; empty matches every title
            on_date: When given, keep only incidents created on that (UTC) date

        Returns:
            Matching incidents in insertion order
        """
        needle = (name or "").casefold()
        out = []
        for incident in self.list():
            if needle and needle not in incident.title.casefold():
                continue
            if on_date is not None and incident.created_at.date() != on_date:
                continue
            out.append(incident)
        return out

    def __len__(self) -> int:
        with self._lock:
            return len(self._incidents)

    def __contains__(self, incident_id: object) -> bool:
        with self._lock:
            return incident_id in self._by_id
