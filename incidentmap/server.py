# incidentmap/server.py
from __future__ import annotations

import asyncio
import json
import logging
from datetime import date
from typing import Any, Dict, List, Optional, Set

from fastapi import FastAPI, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .markers import MarkerLayer
from .projection import from_lon_lat
from .registry import IncidentRegistry, NotFoundError, ValidationError
from .registry.events import IncidentEvent, asdict
from .registry.models import Coordinate
from .screen import ScreenState, UIMode, coordinate_label, handle_map_tap
from .settings import AppSettings, get_settings
from .tiles import check_tile_server, lon_lat_to_tile, tile_url

logger = logging.getLogger(__name__)

VERSION = "incidentmap-0.1.0"


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------

class IncidentCreate(BaseModel):
    lat: float
    lon: float


class MapTap(BaseModel):
    x: float
    y: float


class IncidentRename(BaseModel):
    title: str


# ---------------------------------------------------------------------------
# Websocket fan-out
# ---------------------------------------------------------------------------

class ConnectionManager:
    def __init__(self):
        self.active_connections: List[WebSocket] = []
        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self._pending: Set[asyncio.Future] = set()

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self.loop = asyncio.get_running_loop()
        self.active_connections.append(websocket)

    def disconnect(self, websocket: WebSocket):
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)

    async def broadcast(self, message: str):
        for connection in list(self.active_connections):
            try:
                await connection.send_text(message)
            except Exception:
                logger.warning("Dropping websocket client after failed send")
                self.disconnect(connection)

    def publish(self, event: IncidentEvent) -> None:
        """
        Registry observer. Called synchronously by the registry, possibly from
        a worker thread, so the send is scheduled on the websocket loop.
        """
        loop = self.loop
        if not self.active_connections or loop is None or loop.is_closed():
            return
        message = json.dumps(asdict(event))
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            task = loop.create_task(self.broadcast(message))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
        else:
            asyncio.run_coroutine_threadsafe(self.broadcast(message), loop)


def _incident_json(incident) -> Dict[str, Any]:
    d = incident.model_dump(mode="json")
    d["coordinates"] = coordinate_label(incident.location)
    return d


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"ok": False, "error": message}, status_code=status_code)


def create_app(
    settings: Optional[AppSettings] = None,
    registry: Optional[IncidentRegistry] = None,
) -> FastAPI:
    """
    Build the HTTP/websocket surface around one registry.
    Everything lives on app.state so tests can build isolated apps.
    """
    settings = settings or get_settings()
    registry = registry or IncidentRegistry(title_prefix=settings.title_prefix)

    app = FastAPI(title=settings.title)
    app.state.settings = settings
    app.state.registry = registry
    app.state.markers = MarkerLayer(registry)
    app.state.ws_manager = ConnectionManager()
    registry.subscribe(app.state.ws_manager.publish)

    @app.exception_handler(ValidationError)
    async def _on_validation_error(request: Request, exc: ValidationError) -> JSONResponse:
        return _error(400, str(exc))

    @app.exception_handler(NotFoundError)
    async def _on_not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        return _error(404, str(exc))

    # -----------------------------------------------------------------------
    # Health + map configuration
    # -----------------------------------------------------------------------

    @app.get("/health")
    async def health_check(tiles: bool = False) -> Dict[str, Any]:
        out: Dict[str, Any] = {"status": "ok", "version": VERSION, "incidents": len(registry)}
        if tiles:
            x, y = lon_lat_to_tile(settings.home_lon, settings.home_lat, settings.home_zoom)
            url = tile_url(settings.home_zoom, x, y, settings.tile_url_template)
            check = await check_tile_server(url, timeout_s=settings.tile_check_timeout_s)
            out["tiles"] = check.__dict__
            if not check.ok:
                out["status"] = "degraded"
        return out

    @app.get("/api/map")
    async def api_map() -> Dict[str, Any]:
        x, y = from_lon_lat(settings.home_lon, settings.home_lat)
        layer = app.state.markers
        return {
            "home": {"lon": settings.home_lon, "lat": settings.home_lat, "x": x, "y": y},
            "zoom": settings.home_zoom,
            "tile_url_template": settings.tile_url_template,
            "layer": layer.name,
            "pin_style": layer.style.model_dump(),
        }

    @app.get("/api/markers")
    async def api_markers() -> List[Dict[str, Any]]:
        return [m.model_dump() for m in app.state.markers.markers()]

    # -----------------------------------------------------------------------
    # Incidents
    # -----------------------------------------------------------------------

    @app.get("/api/incidents")
    async def api_incidents(
        q: str = "",
        on_date: Optional[date] = Query(default=None, alias="date"),
    ) -> List[Dict[str, Any]]:
        if q or on_date is not None:
            incidents = registry.filter(q, on_date)
        else:
            incidents = registry.list()
        return [_incident_json(i) for i in incidents]

    @app.post("/api/incidents", status_code=201)
    async def api_incident_create(body: IncidentCreate) -> Dict[str, Any]:
        incident = registry.add(Coordinate(latitude=body.lat, longitude=body.lon))
        return _incident_json(incident)

    @app.post("/api/map/tap", status_code=201)
    async def api_map_tap(body: MapTap) -> Any:
        # The HTTP client already chose to place a pin, so the tap is handled in placing mode.
        state, incident = handle_map_tap(ScreenState(mode=UIMode.PLACING_PIN), registry, body.x, body.y)
        if incident is None:
            return _error(400, state.message)
        return _incident_json(incident)

    @app.get("/api/incidents/{incident_id}")
    async def api_incident_get(incident_id: str) -> Dict[str, Any]:
        return _incident_json(registry.get(incident_id))

    @app.patch("/api/incidents/{incident_id}")
    async def api_incident_rename(incident_id: str, body: IncidentRename) -> Dict[str, Any]:
        return _incident_json(registry.rename(incident_id, body.title))

    @app.delete("/api/incidents/{incident_id}")
    async def api_incident_delete(incident_id: str) -> Dict[str, Any]:
        incident = registry.remove(incident_id)
        return {"ok": True, "removed": incident.id}

    # -----------------------------------------------------------------------
    # Live updates
    # -----------------------------------------------------------------------

    @app.websocket("/ws/incidents")
    async def ws_incidents(websocket: WebSocket):
        manager: ConnectionManager = app.state.ws_manager
        await manager.connect(websocket)
        try:
            await websocket.send_text(json.dumps({
                "type": "snapshot",
                "incidents": [_incident_json(i) for i in registry.list()],
            }))
            while True:
                # Keep alive; clients do not send commands over this socket
                await websocket.receive_text()
        except WebSocketDisconnect:
            manager.disconnect(websocket)

    return app


app = create_app()
