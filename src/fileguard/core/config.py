"""FileGuard configuration models.

Three validated models are consumed by the package:

* :class:`ProtectionConfig` -- what to protect (one per protected directory).
* :class:`FileGuardSettings` -- tunables shared by every subsystem (cache
  TTLs, probe timeout, staleness threshold, local-development policy).
* :class:`RequestContext` -- the request-scoped facts (server software,
  host name, debug flags) that a web host would otherwise expose as
  ambient globals.
"""
from __future__ import annotations

import os
import re
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_ALLOWED_EXTENSIONS: tuple[str, ...] = ("jpg", "jpeg", "png", "gif", "webp")

DEFAULT_LOCAL_HOST_MARKERS: tuple[str, ...] = (
    ".local",
    ".test",
    "localhost",
    "127.0.0.1",
    "::1",
    ".dev",
    ".staging",
)

_PREFIX_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]*$")
_EXTENSION_RE = re.compile(r"^[a-z0-9]+$")

_TRUTHY = frozenset({"1", "true", "yes", "on"})


class ProtectionConfig(BaseModel):
    """Immutable description of one protected directory.

    ``allowed_extensions`` is an ordered set: values are lower-cased, a
    leading dot is dropped and later duplicates are removed.  An empty
    tuple denies every file.
    """

    model_config = ConfigDict(frozen=True)

    prefix: str = Field(
        description=(
            "Directory name under the upload base; also namespaces cache "
            "keys and hook names."
        ),
    )
    allowed_extensions: tuple[str, ...] = Field(
        default=DEFAULT_ALLOWED_EXTENSIONS,
        description="File extensions exempted from the deny rule.",
    )
    use_dated_folders: bool = Field(
        default=True,
        description="Whether uploads nest under a YYYY/MM sub-path.",
    )

    @field_validator("prefix")
    @classmethod
    def _check_prefix(cls, value: str) -> str:
        if not _PREFIX_RE.match(value):
            raise ValueError(
                "prefix must be non-empty and contain only letters, digits, "
                "'-' and '_'"
            )
        return value

    @field_validator("allowed_extensions", mode="before")
    @classmethod
    def _normalize_extensions(cls, value: object) -> tuple[str, ...]:
        if isinstance(value, str):
            value = [value]
        seen: list[str] = []
        for raw in value:  # type: ignore[union-attr]
            ext = str(raw).strip().lstrip(".").lower()
            if not _EXTENSION_RE.match(ext):
                raise ValueError(f"invalid file extension: {raw!r}")
            if ext not in seen:
                seen.append(ext)
        return tuple(seen)


class FileGuardSettings(BaseModel):
    """Tunables shared by the artifact, verification and cache layers."""

    model_config = ConfigDict(frozen=True)

    protection_check_ttl: int = Field(
        default=24 * 60 * 60,
        ge=0,
        description="Seconds a successful artifact check is trusted.",
    )
    protected_ttl: int = Field(
        default=12 * 60 * 60,
        ge=0,
        description="Seconds a positive verification verdict is trusted.",
    )
    unprotected_ttl: int = Field(
        default=60 * 60,
        ge=0,
        description="Seconds a negative verification verdict is trusted.",
    )
    probe_timeout: float = Field(
        default=5.0,
        gt=0.0,
        le=60.0,
        description="HTTP probe timeout in seconds.",
    )
    min_rule_file_bytes: int = Field(
        default=100,
        ge=0,
        description=(
            "Rule files smaller than this are treated as truncated and "
            "regenerated."
        ),
    )
    skip_local_probe: bool = Field(
        default=True,
        description=(
            "Replace the HTTP probe by a presence check in local "
            "development environments."
        ),
    )
    local_host_markers: tuple[str, ...] = Field(
        default=DEFAULT_LOCAL_HOST_MARKERS,
        description="Host-name substrings that identify a local environment.",
    )


class RequestContext(BaseModel):
    """Request-scoped environment facts.

    Build one explicitly in tests, or use :meth:`from_environ` inside a
    CGI / WSGI style host that exports ``SERVER_SOFTWARE`` and
    ``HTTP_HOST``.
    """

    model_config = ConfigDict(frozen=True)

    server_software: str = ""
    http_host: str = ""
    local_dev: bool = False
    debug: bool = False
    debug_display: bool = False

    @classmethod
    def from_environ(cls, environ: Mapping[str, str] | None = None) -> RequestContext:
        """Build a context from ``os.environ`` (or the given mapping)."""
        env = os.environ if environ is None else environ

        def flag(name: str) -> bool:
            return env.get(name, "").strip().lower() in _TRUTHY

        return cls(
            server_software=env.get("SERVER_SOFTWARE", ""),
            http_host=env.get("HTTP_HOST", ""),
            local_dev=flag("FILEGUARD_LOCAL_DEV"),
            debug=flag("FILEGUARD_DEBUG"),
            debug_display=flag("FILEGUARD_DEBUG_DISPLAY"),
        )
