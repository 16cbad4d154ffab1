"""Message type constants.

Learn: Centralizing message types as constants prevents typos and
makes it easy to discover every message the relay speaks.
"""

# ─── Client → server ─────────────────────────────────────

REGISTER_FILTERS = "register_filters"
UPDATE_FILTERS = "update_filters"
GET_FILTERS = "get_filters"
PING = "ping"

# ─── Server → client ─────────────────────────────────────

CONNECTED = "connected"
FILTERS_REGISTERED = "filters_registered"
FILTERS_UPDATED = "filters_updated"
CURRENT_FILTERS = "current_filters"
PONG = "pong"
ERROR = "error"

# Default type for published events when the publisher names none
NOTIFICATION = "notification"
