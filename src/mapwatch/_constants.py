"""Internal constants shared across the package."""

MAP_URL = "http://api.chatwars.me/webview/map"
USER_AGENT = "mapwatch/0.1"

#: Glyph marking a map cell as flagged.
FLAG_GLYPH = "⚔️"

# ------------------------------------------------------------------
# Map page selectors
# ------------------------------------------------------------------

CELL_SELECTOR = ".map-cell"
LEFT_TEXT_SELECTOR = ".bottom-left-text"
RIGHT_TEXT_SELECTOR = ".bottom-right-text"
TOP_TEXT_SELECTOR = ".top-right-text"

# ------------------------------------------------------------------
# Wire text
# ------------------------------------------------------------------

WELCOME_TEXT = "Connected to the notification service!"
RATE_LIMIT_TEXT = "Rate limit exceeded. Try again later."
HTTP_RATE_LIMIT_TEXT = "Too many requests, please try again later."
UNAUTHORIZED_REASON = "Unauthorized"
SHUTDOWN_REASON = "Server shutdown"


def activation_text(location_key: str) -> str:
    """Render the notification pushed for a newly flagged location."""
    return f"New {FLAG_GLYPH} detected at location: {location_key}"


# ------------------------------------------------------------------
# WebSocket close codes (RFC 6455)
# ------------------------------------------------------------------

CLOSE_GOING_AWAY = 1001
CLOSE_POLICY_VIOLATION = 1008

# ------------------------------------------------------------------
# Defaults
# ------------------------------------------------------------------

DEFAULT_POLL_INTERVAL = 60.0
DEFAULT_RATE_LIMIT_WINDOW = 15 * 60.0
DEFAULT_RATE_LIMIT_MAX = 100
