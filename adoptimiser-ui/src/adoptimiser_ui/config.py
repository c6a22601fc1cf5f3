"""
Configuration module for the Ad Optimiser chat client.

Centralizes all environment variable reads and configuration constants.

Mock Mode (ADOPTIMISER_MOCK_MODE=true):
- Skips the websocket connection to the orchestrator
- Lets the page render against an offline session for layout work
"""

import os

from adoptimiser_contracts import DEFAULT_SANDBOX_FILE_PATH, DEFAULT_SANDBOX_TEMPLATE


def _int_env(var_name: str, default: int) -> int:
    """
    Safely reads an integer value from an environment variable.

    If the environment variable is not set or cannot be parsed as an integer,
    the default value is returned.
    """
    value = os.environ.get(var_name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _float_env(var_name: str, default: float | None) -> float | None:
    """Reads a float from the environment; unset, blank or invalid yields the default."""
    value = os.environ.get(var_name, "").strip()
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _bool_env(var_name: str, default: bool = False) -> bool:
    """
    Safely reads a boolean value from an environment variable.

    Returns True for "true", "1", "yes", "on" (case insensitive).
    """
    value = os.environ.get(var_name, "").lower().strip()
    if not value:
        return default
    return value in ("true", "1", "yes", "on")


# Mock mode - render without connecting to the orchestrator
MOCK_MODE = _bool_env("ADOPTIMISER_MOCK_MODE", False)

# Orchestrator socket
WS_URL = os.environ.get("ADOPTIMISER_WS_URL", "ws://localhost:8082")

# Query and sandbox backends
GATEWAY_URL = os.environ.get("ADOPTIMISER_GATEWAY_URL", "http://localhost:3000")
QUERY_ENDPOINT = os.environ.get("ADOPTIMISER_QUERY_ENDPOINT", "/api/neo4j")
SANDBOX_ENDPOINT = os.environ.get("ADOPTIMISER_SANDBOX_ENDPOINT", "/api/sandbox/graph")
# No client-side timeout unless configured; the sandbox backend bounds its own runtime.
HTTP_TIMEOUT_SECONDS = _float_env("ADOPTIMISER_HTTP_TIMEOUT", None)

# Background jobs
JOB_WORKERS = _int_env("ADOPTIMISER_JOB_WORKERS", 4)

# Sandbox fragment defaults applied to <code> payloads
SANDBOX_TEMPLATE = os.environ.get("ADOPTIMISER_SANDBOX_TEMPLATE", DEFAULT_SANDBOX_TEMPLATE)
SANDBOX_FILE_PATH = os.environ.get("ADOPTIMISER_SANDBOX_FILE_PATH", DEFAULT_SANDBOX_FILE_PATH)

# UI Settings
UI_POLL_INTERVAL_MS = _int_env("UI_POLL_INTERVAL_MS", 1000)
UI_SHOW_WELCOME = _bool_env("UI_SHOW_WELCOME", True)

WELCOME_MESSAGE = (
    "## Ad Optimiser Agent\n\n"
    "Hi, I'm your Ad Optimiser. I'm here to help you analyze and optimize your "
    "marketing campaigns across platforms. How can I help you?"
)
