from incidentmap.projection import HOME_LAT, HOME_LON, from_lon_lat
from incidentmap.tiles import TileCheck


def _create(client, lat=HOME_LAT, lon=HOME_LON):
    r = client.post("/api/incidents", json={"lat": lat, "lon": lon})
    assert r.status_code == 201, r.text
    return r.json()


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"
    assert r.json()["incidents"] == 0


def test_health_with_tile_probe(client, monkeypatch):
    async def fake_check(url, timeout_s=5.0):
        return TileCheck(url=url, ok=False, error="HTTP 503", status_code=503)

    monkeypatch.setattr("incidentmap.server.check_tile_server", fake_check)
    body = client.get("/health", params={"tiles": True}).json()

    assert body["status"] == "degraded"
    assert body["tiles"]["status_code"] == 503
    assert body["tiles"]["url"].startswith("https://tile.openstreetmap.org/12/")


def test_map_config(client):
    body = client.get("/api/map").json()
    assert body["home"]["lon"] == HOME_LON
    assert body["layer"] == "Incidencias"
    assert body["pin_style"]["outline_width"] == 2.0


def test_create_and_list(client):
    created = _create(client)
    assert created["title"] == "Incidencia #1"
    assert created["coordinates"] == "Lat: -34.6037, Lon: -58.3816"

    listed = client.get("/api/incidents").json()
    assert [i["id"] for i in listed] == [created["id"]]
    assert listed[0]["location"] == {"latitude": HOME_LAT, "longitude": HOME_LON}


def test_create_out_of_range(client):
    r = client.post("/api/incidents", json={"lat": 95.0, "lon": 0.0})
    assert r.status_code == 400
    assert r.json()["ok"] is False
    assert "latitude" in r.json()["error"]


def test_create_malformed_body(client):
    r = client.post("/api/incidents", json={"lat": "north"})
    assert r.status_code == 422


def test_map_tap_creates_incident(client):
    x, y = from_lon_lat(HOME_LON, HOME_LAT)
    r = client.post("/api/map/tap", json={"x": x, "y": y})
    assert r.status_code == 201
    assert r.json()["coordinates"] == "Lat: -34.6037, Lon: -58.3816"

    markers = client.get("/api/markers").json()
    assert len(markers) == 1
    assert markers[0]["incident_id"] == r.json()["id"]


def test_map_tap_outside_world(client):
    r = client.post("/api/map/tap", json={"x": 1e9, "y": 0.0})
    assert r.status_code == 400
    assert "outside the map" in r.json()["error"]


def test_rename(client):
    created = _create(client)
    r = client.patch(f"/api/incidents/{created['id']}", json={"title": "Water leak"})
    assert r.status_code == 200
    assert r.json()["title"] == "Water leak"
    assert r.json()["location"] == created["location"]

    r = client.patch(f"/api/incidents/{created['id']}", json={"title": "   "})
    assert r.status_code == 400
    assert client.get(f"/api/incidents/{created['id']}").json()["title"] == "Water leak"

    r = client.patch("/api/incidents/unknown", json={"title": "x"})
    assert r.status_code == 404


def test_delete_twice(client):
    created = _create(client)
    assert client.delete(f"/api/incidents/{created['id']}").status_code == 200
    r = client.delete(f"/api/incidents/{created['id']}")
    assert r.status_code == 404
    assert r.json() == {"ok": False, "error": f"incident not found: {created['id']}"}
    assert client.get("/api/markers").json() == []


def test_filter(client):
    first = _create(client)
    second = _create(client, 0.0, 0.0)
    client.patch(f"/api/incidents/{second['id']}", json={"title": "Foo"})

    r = client.get("/api/incidents", params={"q": "inciden"})
    assert [i["id"] for i in r.json()] == [first["id"]]

    day = first["created_at"][:10]
    r = client.get("/api/incidents", params={"date": day})
    assert len(r.json()) == 2
    r = client.get("/api/incidents", params={"date": "1999-01-01"})
    assert r.json() == []


def test_websocket_snapshot_and_events(client):
    existing = _create(client)
    with client.websocket_connect("/ws/incidents") as ws:
        snapshot = ws.receive_json()
        assert snapshot["type"] == "snapshot"
        assert [i["id"] for i in snapshot["incidents"]] == [existing["id"]]

        created = _create(client, 1.0, 1.0)
        event = ws.receive_json()
        assert event["type"] == "incident_added"
        assert event["incident"]["id"] == created["id"]

        client.patch(f"/api/incidents/{created['id']}", json={"title": "Renamed"})
        event = ws.receive_json()
        assert event["type"] == "incident_updated"
        assert event["previous_title"] == "Incidencia #2"
        assert event["incident"]["title"] == "Renamed"
