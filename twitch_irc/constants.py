"""
Configuration constants for the Twitch IRC client

This module contains all configurable constants used throughout the client.
Each constant can be overridden by setting an environment variable with the same name.
"""

import os


def _get_env_int(name: str, default: int) -> int:
    """Retrieve an integer value from an environment variable.

    Attempts to parse the environment variable as an integer. If the variable
    is not set or cannot be parsed, prints a warning and returns the default value.

    Args:
        name: The name of the environment variable to read.
        default: The default integer value to return if parsing fails.

    Returns:
        The parsed integer value from the environment, or the default if unavailable.
    """
    value = os.getenv(name)
    if value is not None:
        try:
            return int(value)
        except ValueError:
            print(
                f"Warning: Invalid integer value for {name}='{value}', using default {default}"
            )
    return default


def _get_env_float(name: str, default: float) -> float:
    """Retrieve a float value from an environment variable.

    Args:
        name: The name of the environment variable to read.
        default: The default float value to return if parsing fails.

    Returns:
        The parsed float value from the environment, or the default if unavailable.
    """
    value = os.getenv(name)
    if value is not None:
        try:
            return float(value)
        except ValueError:
            print(
                f"Warning: Invalid float value for {name}='{value}', using default {default}"
            )
    return default


# Chat endpoint
TWITCH_IRC_WS_URL = os.getenv(
    "TWITCH_IRC_WS_URL", "wss://irc-ws.chat.twitch.tv:443"
)  # TMI over WebSocket
TWITCH_IRC_SERVER_NAME = os.getenv(
    "TWITCH_IRC_SERVER_NAME", "tmi.twitch.tv"
)  # Prefix used by the server on its own lines

# Capabilities requested before authenticating, in order
IRC_CAPABILITIES = (
    "twitch.tv/membership",
    "twitch.tv/tags",
    "twitch.tv/commands",
)

# Protocol tokens
IRC_PING_TOKEN = "PING"
IRC_CHANNEL_PREFIX = "#"
IRC_TRAILING_PREFIX = ":"
IRC_OAUTH_PREFIX = "oauth:"
IRC_WELCOME_TEMPLATE = ":{server} 001 {username} :Welcome, GLHF!"
IRC_LINE_TERMINATOR = "\r\n"

# Whispers are sent as a chat command through a system channel
WHISPER_TARGET_CHANNEL = os.getenv("WHISPER_TARGET_CHANNEL", "jtv")
WHISPER_COMMAND = "/w"

# Transport
TRANSPORT_CONNECT_TIMEOUT_SECONDS = _get_env_float(
    "TRANSPORT_CONNECT_TIMEOUT_SECONDS", 15.0
)  # Upper bound on the websocket opening handshake
TRANSPORT_CLOSE_TIMEOUT_SECONDS = _get_env_float(
    "TRANSPORT_CLOSE_TIMEOUT_SECONDS", 5.0
)  # Upper bound on the websocket closing handshake

# Helix channel directory
TWITCH_HELIX_BASE_URL = os.getenv(
    "TWITCH_HELIX_BASE_URL", "https://api.twitch.tv/helix"
)
HTTP_REQUEST_TIMEOUT_SECONDS = _get_env_int(
    "HTTP_REQUEST_TIMEOUT_SECONDS", 30
)  # Default HTTP request timeout
CHANNEL_LOOKUP_MAX_ATTEMPTS = _get_env_int(
    "CHANNEL_LOOKUP_MAX_ATTEMPTS", 3
)  # Attempts for a channel lookup hitting transient network errors
RETRY_MAX_BACKOFF_SECONDS = _get_env_int(
    "RETRY_MAX_BACKOFF_SECONDS", 60
)  # Maximum backoff time in seconds

# Error aggregation
ERROR_ALERT_RATE_PER_HOUR = _get_env_float(
    "ERROR_ALERT_RATE_PER_HOUR", 10.0
)  # Error rate above which a critical alert is logged

# Configuration file
DEFAULT_CONFIG_FILE = os.getenv("TWITCH_IRC_CONF_FILE", "twitch_irc.conf")
