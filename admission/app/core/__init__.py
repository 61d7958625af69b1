"""Core utilities for the admission engine."""

from admission.app.core.config import Settings, settings
from admission.app.core.logging import get_logger, setup_logging

__all__ = [
    "Settings",
    "settings",
    "get_logger",
    "setup_logging",
]
