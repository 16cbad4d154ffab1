"""Relay bundle — the registry plus the two components that use it.

Learn: One Relay per application instance, built by create_app() and
stored on app.state. Routes reach it through get_relay() instead of a
module-level global, so every test app gets its own isolated registry.
"""

from dataclasses import dataclass

from starlette.requests import HTTPConnection

from filterrelay.config import Settings
from filterrelay.core.dispatch import DispatchCoordinator
from filterrelay.core.lifecycle import ConnectionHandler
from filterrelay.core.registry import SubscriberRegistry


@dataclass
class Relay:
    registry: SubscriberRegistry
    dispatcher: DispatchCoordinator
    connections: ConnectionHandler

    @classmethod
    def from_settings(cls, settings: Settings) -> "Relay":
        registry = SubscriberRegistry(
            scope_key=settings.scope_key if settings.partitioned else None
        )
        return cls(
            registry=registry,
            dispatcher=DispatchCoordinator(registry),
            connections=ConnectionHandler(registry),
        )


def get_relay(conn: HTTPConnection) -> Relay:
    """FastAPI dependency. Works for both HTTP requests and WebSockets."""
    return conn.app.state.relay
