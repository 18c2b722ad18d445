"""FileGuard error-code hierarchy.

Hierarchy
---------
::

    FileGuardError
    +-- ArtifactError          (FG-E1xx)
    |   +-- NotWritable            FG-E100
    |   +-- PartialWriteFailure    FG-E101
    +-- VerificationError      (FG-E2xx)
    |   +-- ProbeNetworkFailure    FG-E200
    +-- StalenessError         (FG-E3xx)
        +-- StaleArtifact          FG-E300

Components raise these internally.  The public operations of
:class:`~fileguard.protector.Protector` catch them at the boundary and
turn them into boolean results, so none of them ever reaches a caller of
``protect`` / ``is_protected`` / ``unprotect``.

Usage
-----
::

    try:
        report.raise_for_failures()
    except ArtifactError as exc:
        logger.warning("protection incomplete: %s", exc.to_dict())
"""
from __future__ import annotations

from typing import Any

# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------

class FileGuardError(Exception):
    """Base exception for all FileGuard errors.

    Attributes
    ----------
    code : str
        FileGuard error code, e.g. ``"FG-E100"``.
    message : str
        Human-readable description.
    details : dict[str, Any]
        Machine-readable context specific to the error instance.
    resolution : str
        Suggested action for the operator.
    """

    code: str = "FG-E000"
    message: str = "Unknown FileGuard error"
    resolution: str = ""

    def __init__(
        self,
        message: str | None = None,
        *,
        details: dict[str, Any] | None = None,
        resolution: str | None = None,
    ) -> None:
        self.details: dict[str, Any] = details or {}
        if message is not None:
            self.message = message
        if resolution is not None:
            self.resolution = resolution
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialise the error for structured log records."""
        payload: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if self.details:
            payload["detail"] = self.details
        if self.resolution:
            payload["resolution"] = self.resolution
        return {"error": payload}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


# ===================================================================
# Category base classes
# ===================================================================

class ArtifactError(FileGuardError):
    """FG-E1xx -- Errors while materializing protection artifacts."""

    code = "FG-E1XX"


class VerificationError(FileGuardError):
    """FG-E2xx -- Errors while probing a directory from the outside."""

    code = "FG-E2XX"


class StalenessError(FileGuardError):
    """FG-E3xx -- Artifacts that exist but no longer match the current format."""

    code = "FG-E3XX"


# ===================================================================
# FG-E1xx  Artifact errors
# ===================================================================

class NotWritable(ArtifactError):
    """FG-E100 -- The target directory cannot be written to."""

    code = "FG-E100"
    message = "Protected directory is not writable"
    resolution = (
        "Grant the web server user write permission on the upload "
        "directory or one of its parents."
    )


class PartialWriteFailure(ArtifactError):
    """FG-E101 -- One or more artifact files could not be written.

    Artifacts written before the failure are kept; nothing is rolled back.
    """

    code = "FG-E101"
    message = "Some protection artifacts could not be written"
    resolution = "Check free disk space and the permissions of the listed files."


# ===================================================================
# FG-E2xx  Verification errors
# ===================================================================

class ProbeNetworkFailure(VerificationError):
    """FG-E200 -- The HTTP probe did not receive a response.

    Interpreted as a *protected* verdict by the verification engine.
    """

    code = "FG-E200"
    message = "Protection probe could not reach the canary URL"
    resolution = (
        "Make sure the site can resolve and reach its own public URL, "
        "or treat the result as inconclusive."
    )


# ===================================================================
# FG-E3xx  Staleness
# ===================================================================

class StaleArtifact(StalenessError):
    """FG-E300 -- The rule file predates the current rule format.

    Never surfaced: detection triggers a silent rewrite.
    """

    code = "FG-E300"
    message = "Rule file is stale and must be regenerated"
