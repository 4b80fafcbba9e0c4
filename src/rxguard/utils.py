"""Small helpers shared across modules"""

import logging
import os


logger = logging.getLogger(__name__)


def get_int_env(name: str, default: int | None = None) -> int | None:
    """Read an integer from the environment.

    Returns ``default`` when the variable is unset, empty or not a valid integer.
    """
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f'Invalid integer in {name}={raw!r}, using default {default}')
        return default


def truncate(text: str, limit: int = 80) -> str:
    """Shorten text for log messages."""
    if len(text) <= limit:
        return text
    return text[: limit - 3] + '...'
