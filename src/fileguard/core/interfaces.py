"""FileGuard host interfaces and in-memory implementations.

This module defines the *structural* interfaces (``typing.Protocol``) for
the host services FileGuard consumes, plus lightweight implementations
suitable for testing, scripts and single-process deployments.

Every Protocol class is decorated with ``@runtime_checkable`` so that
``isinstance`` checks work at run-time in addition to static analysis.

In-memory implementations are **not** thread-safe and do not survive a
process restart.  Multi-process hosts should plug in their shared cache.
"""
from __future__ import annotations

import time
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from fileguard.core.types import UploadDir

# ===================================================================
# Protocol (interface) definitions
# ===================================================================

@runtime_checkable
class CacheStore(Protocol):
    """Key-value store with per-entry expiry (the host's transient cache)."""

    def get(self, key: str) -> Any | None:
        """Return the stored value, or ``None`` if absent or expired."""
        ...

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        """Store *value* under *key* for *ttl_seconds* seconds."""
        ...

    def delete(self, key: str) -> None:
        """Remove *key*.  Missing keys are ignored."""
        ...


@runtime_checkable
class UploadLocator(Protocol):
    """Resolves where a protected directory lives on disk and on the web."""

    def resolve_upload_base(self, prefix: str) -> tuple[Path, str]:
        """Return ``(base_path, base_url)`` for the directory named *prefix*."""
        ...

    def resolve_dated_subpath(self, now: datetime) -> str:
        """Return the dated sub-path (``"YYYY/MM"``) for *now*."""
        ...


TriggerRegistrar = Callable[[str, Callable[[], bool]], None]
"""``register(trigger_name, callback)`` -- the host's recurring scheduler."""

UploadFilter = Callable[[UploadDir], UploadDir]

UploadFilterRegistrar = Callable[[UploadFilter], None]
"""``register(callback)`` -- the host's upload-location filter chain."""


# ===================================================================
# In-memory implementations (testing / development)
# ===================================================================

class InMemoryCacheStore:
    """Dict-backed cache with expiry driven by an injectable clock.

    Parameters
    ----------
    clock:
        Zero-argument callable returning the current time in seconds.
        Defaults to :func:`time.monotonic`; tests pass a fake clock to
        step through expiry deterministically.
    """

    def __init__(self, clock: Callable[[], float] | None = None) -> None:
        self._clock = clock or time.monotonic
        self._entries: dict[str, tuple[Any, float]] = {}  # key -> (value, expires_at)

    def get(self, key: str) -> Any | None:
        """Return the value for *key*, evicting it first if expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        """Store *value*; a non-positive TTL stores nothing."""
        if ttl_seconds <= 0:
            self._entries.pop(key, None)
            return
        self._entries[key] = (value, self._clock() + ttl_seconds)

    def delete(self, key: str) -> None:
        """Remove *key* if present."""
        self._entries.pop(key, None)

    def ttl_remaining(self, key: str) -> float | None:
        """Seconds until *key* expires, or ``None`` (not part of the Protocol)."""
        if self.get(key) is None:
            return None
        return self._entries[key][1] - self._clock()


class StaticUploadLocator:
    """Upload locator rooted at a fixed directory and URL.

    ``StaticUploadLocator("/srv/www/uploads", "https://example.com/uploads")``
    places the directory for prefix ``"demo"`` at ``/srv/www/uploads/demo``,
    served from ``https://example.com/uploads/demo``.
    """

    def __init__(self, base_dir: str | Path, base_url: str) -> None:
        self._base_dir = Path(base_dir)
        self._base_url = base_url.rstrip("/")

    def resolve_upload_base(self, prefix: str) -> tuple[Path, str]:
        """Return ``(base_dir / prefix, base_url/prefix)``."""
        return self._base_dir / prefix, f"{self._base_url}/{prefix}"

    def resolve_dated_subpath(self, now: datetime) -> str:
        """Return ``"YYYY/MM"`` for *now*."""
        return now.strftime("%Y/%m")
