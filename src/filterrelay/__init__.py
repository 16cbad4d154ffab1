"""filterrelay — filter-addressed publish/subscribe relay.

Clients hold a WebSocket open and declare an attribute filter; publishers
POST an event tagged with attributes, and the relay fans it out to every
connected client whose filter the event satisfies.
"""

__version__ = "0.1.0"
