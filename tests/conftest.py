import pytest
from fastapi.testclient import TestClient

from incidentmap.registry import IncidentRegistry
from incidentmap.server import create_app
from incidentmap.settings import AppSettings

BUENOS_AIRES = (-34.6037, -58.3816)


@pytest.fixture()
def registry():
    return IncidentRegistry()


@pytest.fixture()
def settings():
    # Explicit values so a developer's .env or INCIDENTMAP_* vars cannot leak in
    return AppSettings(title="Incident Map (test)", tile_check_timeout_s=1.0)


@pytest.fixture()
def app(settings, registry):
    return create_app(settings=settings, registry=registry)


@pytest.fixture()
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def events(registry):
    received = []
    registry.subscribe(received.append)
    return received
