"""Wire messages — type constants and the server→client envelope."""
