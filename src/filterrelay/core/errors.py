"""Relay error taxonomy.

Learn: Only DuplicateId indicates a bug. The rest are normal traffic:
InvalidFilter is a rejected request, UnknownSubscriber and SendFailure
are races with a disconnect that callers absorb and move on from.
"""


class RelayError(Exception):
    """Base class for all relay core errors."""


class InvalidFilter(RelayError, ValueError):
    """A caller-supplied filter is not a well-formed attribute map."""


class UnknownSubscriber(RelayError, KeyError):
    """A lifecycle operation referenced an id that is no longer registered."""

    def __init__(self, subscriber_id: str):
        super().__init__(subscriber_id)
        self.subscriber_id = subscriber_id

    def __str__(self) -> str:
        return f"unknown subscriber: {self.subscriber_id}"


class DuplicateId(RelayError):
    """Id generation handed out an id that is already registered."""

    def __init__(self, subscriber_id: str):
        super().__init__(f"subscriber id already registered: {subscriber_id}")
        self.subscriber_id = subscriber_id


class SendFailure(RelayError):
    """Delivery to one connection failed (usually: it closed mid-flight)."""
