"""Configuration helpers for aicli.

Expose `get_settings` as the canonical accessor for environment-driven
configuration. Modules should avoid loading `.env` directly and instead
import from this package to retrieve typed snapshots.
"""

from .settings import (
    MODEL_SERVER_ENV,
    MODELS_MOUNT,
    READY_MARKER,
    WORKSPACE_MOUNT,
    AicliSettings,
    get_settings,
)


__all__ = [
    "AicliSettings",
    "MODEL_SERVER_ENV",
    "MODELS_MOUNT",
    "READY_MARKER",
    "WORKSPACE_MOUNT",
    "get_settings",
]
