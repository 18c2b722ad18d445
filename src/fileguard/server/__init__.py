"""Server-capability detection.

* **detect_server_profile** -- maps a ``SERVER_SOFTWARE`` string to a
  :class:`~fileguard.core.types.ServerProfile`.
"""
from __future__ import annotations

from fileguard.server.detector import (
    DEFAULT_PROFILE,
    SERVER_TOKENS,
    detect_server_profile,
)

__all__ = [
    "DEFAULT_PROFILE",
    "SERVER_TOKENS",
    "detect_server_profile",
]
