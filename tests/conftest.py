import pytest
from fastapi.testclient import TestClient

from relay.app import create_app
from relay.config import Config
from relay.handlers import connect
from relay.state import RelayState


class TestConfig(Config):
    LOG_LEVEL = "DEBUG"
    LOG_FILE = None
    CORS_ORIGINS = ["*"]


class FakeTransport:
    """Records every payload handed to it."""

    __test__ = False

    def __init__(self):
        self.sent = []
        self.open = True

    @property
    def is_open(self):
        return self.open

    def send(self, payload):
        self.sent.append(payload)

    def types(self):
        return [p["type"] for p in self.sent]

    def of_type(self, msg_type):
        return [p for p in self.sent if p["type"] == msg_type]

    def last(self, msg_type):
        matches = self.of_type(msg_type)
        return matches[-1] if matches else None

    def clear(self):
        self.sent.clear()


class BrokenTransport(FakeTransport):
    def send(self, payload):
        raise ConnectionResetError("peer went away")


@pytest.fixture()
def state():
    return RelayState()


@pytest.fixture()
def new_client(state):
    """Connect a fake client; returns ``(connection, transport)``."""

    def _connect(transport=None):
        transport = transport or FakeTransport()
        connection = connect(state, transport)
        return connection, transport

    return _connect


@pytest.fixture()
def relay_app():
    return create_app(TestConfig)


@pytest.fixture()
def client(relay_app):
    with TestClient(relay_app) as test_client:
        yield test_client
