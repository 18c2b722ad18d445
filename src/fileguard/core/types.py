"""FileGuard shared domain types.

Enums use *string* values and the report objects are Pydantic models so
that everything returned by :class:`~fileguard.protector.Protector` can be
dumped to JSON for an admin screen or a log record.
"""
from __future__ import annotations

import enum
from pathlib import Path
from typing import Any, TypedDict

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Artifact names
# ---------------------------------------------------------------------------

RULE_FILE = ".htaccess"
INDEX_CODE_FILE = "index.php"
INDEX_MARKUP_FILE = "index.html"

INDEX_CODE_CONTENT = "<?php // Silence is golden."
INDEX_MARKUP_CONTENT = ""

ARTIFACT_FILES: tuple[str, ...] = (RULE_FILE, INDEX_CODE_FILE, INDEX_MARKUP_FILE)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class ServerProfile(enum.StrEnum):
    """Capability profile of the web server in front of the directory.

    * **apache** / **litespeed** -- honour a per-directory ``.htaccess``;
      protection is verified with a live HTTP probe.
    * **nginx** / **iis** -- ignore per-directory rule files; the rules are
      handed to the operator as text and verification is presence-only.
    """

    APACHE = "apache"
    LITESPEED = "litespeed"
    NGINX = "nginx"
    IIS = "iis"

    @property
    def writes_rule_file(self) -> bool:
        """Return ``True`` if this server reads the on-disk rule file."""
        return self in (ServerProfile.APACHE, ServerProfile.LITESPEED)


class RuleFormat(enum.StrEnum):
    """Target formats produced by :mod:`fileguard.rules`."""

    APACHE = "htaccess"
    NGINX = "nginx"
    IIS = "iis"


# ---------------------------------------------------------------------------
# Observed state
# ---------------------------------------------------------------------------

class ProtectionState(BaseModel):
    """Protection artifacts as currently found on disk.

    Reconstructed on demand; never persisted.
    """

    model_config = ConfigDict(frozen=True)

    has_index_guard: bool
    has_access_rule: bool
    is_stale: bool


class ProbeResult(BaseModel):
    """Outcome of one verification run, kept for introspection."""

    url: str | None = None
    status_code: int | None = None
    error: str | None = None
    probed: bool = Field(
        default=False,
        description="False when the verdict came from a presence check.",
    )
    protected: bool


# ---------------------------------------------------------------------------
# Operator-facing reports
# ---------------------------------------------------------------------------

class ServerInstructions(BaseModel):
    """Manual configuration guidance for the detected server."""

    type: ServerProfile
    title: str
    instructions: str
    code: str | None = None
    notes: str | None = None
    checklist: list[str] = Field(default_factory=list)


class ProtectionReport(BaseModel):
    """Result of :meth:`~fileguard.protector.Protector.test_protection`."""

    success: bool
    message: str
    is_local: bool = False
    server_type: ServerProfile | None = None


class ArtifactFlags(BaseModel):
    htaccess_exists: bool
    index_php_exists: bool
    index_html_exists: bool


class DebugInfo(BaseModel):
    """Everything needed to troubleshoot a protected directory."""

    server_type: ServerProfile
    server_software: str
    is_local_development: bool
    host: str
    upload_path: Path
    upload_url: str
    upload_path_exists: bool
    upload_path_writable: bool
    protection_files: ArtifactFlags
    is_protected: bool
    has_protection_files: bool
    needs_update: bool
    allowed_extensions: tuple[str, ...]
    use_dated_folders: bool
    cache: dict[str, Any] = Field(default_factory=dict)
    last_probe: ProbeResult | None = None
    htaccess_preview: str | None = None
    htaccess_size: int | None = None


class UploadDir(TypedDict):
    """Upload location mapping handed through the host's upload filter."""

    basedir: str
    baseurl: str
    subdir: str
    path: str
    url: str
