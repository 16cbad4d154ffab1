"""Test fixtures — a fresh app (and so a fresh registry) per test.

Learn: Every app built by create_app() owns its own Relay, so tests
never share subscribers. Core tests use fake send handles instead of
real sockets: the registry and dispatcher only ever see the SendHandle
interface.
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from filterrelay.config import Settings
from filterrelay.core.dispatch import DispatchCoordinator
from filterrelay.core.lifecycle import ConnectionHandler
from filterrelay.core.registry import SubscriberRegistry
from filterrelay.main import create_app


@pytest.fixture()
def registry():
    return SubscriberRegistry(scope_key="service")


@pytest.fixture()
def flat_registry():
    return SubscriberRegistry(scope_key=None)


@pytest.fixture()
def dispatcher(registry):
    return DispatchCoordinator(registry)


@pytest.fixture()
def connections(registry):
    return ConnectionHandler(registry)


@pytest.fixture()
def settings():
    return Settings(environment="test")


@pytest.fixture()
def app(settings):
    return create_app(settings)


@pytest.fixture()
def relay(app):
    return app.state.relay


@pytest_asyncio.fixture()
async def client(app):
    """HTTP client bound to the app in-process."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
