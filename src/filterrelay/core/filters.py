"""Filters and the matching rule.

Learn: A filter is a flat attribute map. Subscribers use one to say what
they care about; publishers use one (the "criteria") to tag an event.
An event reaches a subscriber when every criteria key is present in the
subscriber's filter with an equal value: an equality conjunction, nothing
more. Extra keys on the subscriber side are ignored, so empty criteria
reach everyone in scope.

Equality is kind-sensitive: text "1" never equals the number 1, and a
bool never aliases 1/0 the way it does in plain Python `==`.
"""

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Optional, Union

from filterrelay.core.errors import InvalidFilter

FilterValue = Union[str, int, float]
Filter = Mapping[str, FilterValue]

EMPTY_FILTER: Filter = MappingProxyType({})


def _kind(value: Any) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, str):
        return "text"
    if isinstance(value, (int, float)):
        return "number"
    return type(value).__name__


def freeze(attributes: Mapping[str, Any]) -> Filter:
    """Return a read-only copy, detached from the caller's dict."""
    return MappingProxyType(dict(attributes))


def validate_filter(candidate: Any, *, reserved_key: Optional[str] = None) -> Filter:
    """Check a caller-supplied filter and return a frozen copy.

    Raises InvalidFilter when the candidate is not an object, when a key
    is not a non-empty string, when a value is not text or a number, or
    when it tries to set the reserved scope key itself.
    """
    if not isinstance(candidate, Mapping):
        raise InvalidFilter("filter must be an object")

    for key, value in candidate.items():
        if not isinstance(key, str) or not key:
            raise InvalidFilter("filter keys must be non-empty strings")
        if reserved_key is not None and key == reserved_key:
            raise InvalidFilter(f"'{reserved_key}' is reserved and cannot be set in a filter")
        if _kind(value) not in ("text", "number"):
            raise InvalidFilter(
                f"filter value for '{key}' must be a string or a number"
            )
    return freeze(candidate)


def matches(subscriber_filter: Filter, criteria: Filter) -> bool:
    """True iff every criteria key is in the subscriber filter with an equal value."""
    for key, expected in criteria.items():
        if key not in subscriber_filter:
            return False
        actual = subscriber_filter[key]
        if _kind(actual) != _kind(expected) or actual != expected:
            return False
    return True
