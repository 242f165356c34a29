import pytest

from incidentmap.projection import HALF_CIRCUMFERENCE_M, HOME_LAT, HOME_LON, from_lon_lat
from incidentmap.registry import Coordinate
from incidentmap.screen import (
    ScreenState,
    UIMode,
    begin_placing,
    cancel_placing,
    coordinate_label,
    handle_map_tap,
    handle_rename,
    list_rows,
)


def test_tap_while_browsing_creates_nothing(registry):
    state = ScreenState()
    x, y = from_lon_lat(HOME_LON, HOME_LAT)

    next_state, incident = handle_map_tap(state, registry, x, y)
    assert incident is None
    assert next_state == state
    assert len(registry) == 0


def test_tap_while_placing_creates_one_and_returns_to_browse(registry):
    state = begin_placing(ScreenState())
    assert state.mode == UIMode.PLACING_PIN

    x, y = from_lon_lat(HOME_LON, HOME_LAT)
    state, incident = handle_map_tap(state, registry, x, y)

    assert state.mode == UIMode.BROWSE
    assert incident.title == "Incidencia #1"
    assert incident.location.latitude == pytest.approx(HOME_LAT, abs=1e-6)
    assert incident.location.longitude == pytest.approx(HOME_LON, abs=1e-6)

    # a second tap without pressing the button again is ignored
    state, again = handle_map_tap(state, registry, x, y)
    assert again is None
    assert len(registry) == 1


def test_tap_outside_world_keeps_placing(registry):
    state = begin_placing(ScreenState())
    state, incident = handle_map_tap(state, registry, HALF_CIRCUMFERENCE_M * 3, 0.0)

    assert incident is None
    assert state.mode == UIMode.PLACING_PIN
    assert "outside the map" in state.message
    assert len(registry) == 0


def test_cancel_placing():
    state = cancel_placing(begin_placing(ScreenState()))
    assert state.mode == UIMode.BROWSE


def test_rename_dialog(registry):
    incident = registry.add((0.0, 0.0))

    state, updated = handle_rename(ScreenState(), registry, incident.id, "Broken light")
    assert updated.title == "Broken light"
    assert state.message == ""


def test_rename_dialog_blank_and_cancel(registry):
    incident = registry.add((0.0, 0.0))

    state, updated = handle_rename(ScreenState(), registry, incident.id, "   ")
    assert updated is None
    assert state.message == "title must not be empty"

    state, updated = handle_rename(state, registry, incident.id, None)
    assert updated is None
    assert state.message == ""
    assert registry.get(incident.id).title == "Incidencia #1"


def test_rename_dialog_unknown_id(registry):
    state, updated = handle_rename(ScreenState(), registry, "gone", "x")
    assert updated is None
    assert "gone" in state.message


def test_list_rows(registry):
    registry.add((HOME_LAT, HOME_LON))
    rows = list_rows(registry.list())

    assert rows[0]["title"] == "Incidencia #1"
    assert rows[0]["coordinates"] == "Lat: -34.6037, Lon: -58.3816"


def test_coordinate_label_rounds():
    assert coordinate_label(Coordinate(latitude=1.23456, longitude=-0.00004)) == "Lat: 1.2346, Lon: -0.0000"
