"""Scope index — groups subscribers into named partitions ("services").

Learn: A scope is created the first time a subscriber joins it and deleted
the moment its last subscriber leaves, so the index never holds an empty
scope. A publish targets exactly one scope.

Not synchronized on its own: SubscriberRegistry owns one and only touches
it while holding the registry lock.
"""

from collections.abc import Iterator


class ScopeIndex:
    """Scope name → ordered set of subscriber ids."""

    def __init__(self) -> None:
        self._scopes: dict[str, dict[str, None]] = {}

    def scope(self, name: str) -> dict[str, None]:
        """Return the member set for a scope, creating it lazily."""
        members = self._scopes.get(name)
        if members is None:
            members = self._scopes[name] = {}
        return members

    def join(self, name: str, subscriber_id: str) -> None:
        self.scope(name)[subscriber_id] = None

    def leave(self, name: str, subscriber_id: str) -> bool:
        """Drop a member. Returns True when the scope was deleted as a result."""
        members = self._scopes.get(name)
        if members is None:
            return False
        members.pop(subscriber_id, None)
        if not members:
            del self._scopes[name]
            return True
        return False

    def members(self, name: str) -> tuple[str, ...]:
        """Member ids of a scope; empty for an unknown scope (no lazy creation)."""
        return tuple(self._scopes.get(name, ()))

    def counts(self) -> dict[str, int]:
        return {name: len(members) for name, members in self._scopes.items()}

    def __contains__(self, name: object) -> bool:
        return name in self._scopes

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._scopes))

    def __len__(self) -> int:
        return len(self._scopes)
