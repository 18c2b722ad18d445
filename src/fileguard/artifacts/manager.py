"""Protection artifact management.

The :class:`ArtifactManager` owns the on-disk state of a protected
directory:

* ``index.php`` / ``index.html`` -- listing suppression.  Created once,
  never overwritten.
* ``.htaccess`` -- the server-native rule file (Apache / LiteSpeed only).
  Created if absent and rewritten when forced or stale.
* ``index.php`` in every ``<dir>/YYYY/MM`` sub-directory.  These inherit
  the parent rule file and only need listing suppression.

Writes are best effort: a failed write is recorded and the remaining
artifacts are still attempted.  Concurrent callers may race on the same
files; all content is deterministic so the last writer always leaves the
same bytes behind.
"""
from __future__ import annotations

import logging
import os
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from fileguard.core.errors import ArtifactError, NotWritable, PartialWriteFailure, StaleArtifact
from fileguard.core.types import (
    ARTIFACT_FILES,
    INDEX_CODE_CONTENT,
    INDEX_CODE_FILE,
    INDEX_MARKUP_CONTENT,
    INDEX_MARKUP_FILE,
    RULE_FILE,
    ProtectionState,
    ServerProfile,
)
from fileguard.rules.generator import CONDITIONAL_GUARD_TOKEN, RULES_MARKER

logger = logging.getLogger(__name__)

MIN_RULE_FILE_BYTES = 100

# Dated upload layout: <dir>/YYYY/MM
SUBDIRECTORY_PATTERN = "*/*"


def is_writable(path: str | Path) -> bool:
    """Return ``True`` if *path* can be written, or created and written.

    A missing path is judged by its nearest existing ancestor, the
    directory that ``mkdir(parents=True)`` would have to write into.
    """
    candidate = Path(path)
    while not candidate.exists():
        parent = candidate.parent
        if parent == candidate:
            return False
        candidate = parent
    return candidate.is_dir() and os.access(candidate, os.W_OK | os.X_OK)


@dataclass(slots=True)
class ArtifactReport:
    """What one :meth:`ArtifactManager.materialize` call did."""

    directory: Path
    written: list[Path] = field(default_factory=list)
    failed: dict[Path, str] = field(default_factory=dict)
    error: ArtifactError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and not self.failed

    def raise_for_failures(self) -> None:
        """Raise the recorded :class:`ArtifactError`, if any.

        Raises
        ------
        NotWritable
            If the directory could not be prepared.
        PartialWriteFailure
            If at least one artifact write failed.
        """
        if self.error is not None:
            raise self.error
        if self.failed:
            raise PartialWriteFailure(
                f"{len(self.failed)} artifact(s) could not be written in {self.directory}",
                details={"failed": {str(p): reason for p, reason in self.failed.items()}},
            )


class ArtifactManager:
    """Create, inspect and remove the protection artifacts of a directory.

    Parameters
    ----------
    rules_provider:
        Zero-argument callable returning the ``.htaccess`` text to write.
        :class:`~fileguard.protector.Protector` passes its hook-filtered
        rule generator.
    min_rule_file_bytes:
        Rule files smaller than this are considered truncated.
    """

    def __init__(
        self,
        rules_provider: Callable[[], str],
        *,
        min_rule_file_bytes: int = MIN_RULE_FILE_BYTES,
    ) -> None:
        self._rules_provider = rules_provider
        self._min_rule_file_bytes = min_rule_file_bytes

    # -- writability ---------------------------------------------------

    @staticmethod
    def is_writable(path: str | Path) -> bool:
        return is_writable(path)

    # -- materialization -----------------------------------------------

    def ensure(
        self,
        directory: str | Path,
        profile: ServerProfile,
        force_rule_rewrite: bool = False,
        *,
        include_subdirectories: bool = True,
    ) -> bool:
        """Make sure every artifact for *profile* exists in *directory*.

        Returns ``True`` only if nothing failed.  See :meth:`materialize`
        for the detailed report.
        """
        return self.materialize(
            directory,
            profile,
            force_rule_rewrite,
            include_subdirectories=include_subdirectories,
        ).ok

    def materialize(
        self,
        directory: str | Path,
        profile: ServerProfile,
        force_rule_rewrite: bool = False,
        *,
        include_subdirectories: bool = True,
    ) -> ArtifactReport:
        """Create missing artifacts and return what was done.

        Parameters
        ----------
        directory:
            The protected directory.  Created with its parents if missing.
        profile:
            Decides whether a rule file is part of the artifact set.
        force_rule_rewrite:
            Rewrite ``.htaccess`` even if it exists.  Index files are never
            overwritten.
        include_subdirectories:
            Also drop ``index.php`` into every ``<dir>/*/*`` directory.
        """
        directory = Path(directory)
        report = ArtifactReport(directory=directory)

        try:
            self._prepare_directory(directory)
        except NotWritable as exc:
            logger.warning("cannot protect %s: %s", directory, exc.message)
            report.error = exc
            return report

        for name, content in self._artifacts_for(profile):
            overwrite = force_rule_rewrite and name == RULE_FILE
            self._write(directory / name, content, overwrite=overwrite, report=report)

        if include_subdirectories:
            self._protect_subdirectories(directory, report)

        if report.failed:
            logger.warning(
                "partial protection of %s: %d write(s) failed",
                directory,
                len(report.failed),
            )
        elif report.written:
            logger.debug("wrote %s", ", ".join(str(p) for p in report.written))
        return report

    def _prepare_directory(self, directory: Path) -> None:
        if not is_writable(directory):
            raise NotWritable(details={"path": str(directory)})
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise NotWritable(
                f"Could not create {directory}: {exc.strerror or exc}",
                details={"path": str(directory)},
            ) from exc
        if not is_writable(directory):
            raise NotWritable(details={"path": str(directory)})

    def _artifacts_for(self, profile: ServerProfile) -> list[tuple[str, str]]:
        files = [
            (INDEX_CODE_FILE, INDEX_CODE_CONTENT),
            (INDEX_MARKUP_FILE, INDEX_MARKUP_CONTENT),
        ]
        if profile.writes_rule_file:
            files.append((RULE_FILE, self._rules_provider()))
        return files

    @staticmethod
    def _write(target: Path, content: str, *, overwrite: bool, report: ArtifactReport) -> None:
        if target.exists() and not overwrite:
            return
        try:
            target.write_text(content, encoding="utf-8")
        except OSError as exc:
            report.failed[target] = exc.strerror or str(exc)
        else:
            report.written.append(target)

    def _protect_subdirectories(self, directory: Path, report: ArtifactReport) -> None:
        for subdir in sorted(directory.glob(SUBDIRECTORY_PATTERN)):
            if any(part.startswith(".") for part in subdir.relative_to(directory).parts):
                continue
            if subdir.is_dir() and is_writable(subdir):
                self._write(
                    subdir / INDEX_CODE_FILE,
                    INDEX_CODE_CONTENT,
                    overwrite=False,
                    report=report,
                )

    # -- inspection ----------------------------------------------------

    def check_fresh(self, directory: str | Path, profile: ServerProfile) -> None:
        """Raise :class:`StaleArtifact` if the rule file must be regenerated.

        Servers that never read a rule file have nothing to go stale.
        """
        if not profile.writes_rule_file:
            return
        rule_file = Path(directory) / RULE_FILE
        details = {"path": str(rule_file)}
        try:
            raw = rule_file.read_bytes()
        except FileNotFoundError:
            raise StaleArtifact("Rule file is missing", details=details) from None
        except OSError as exc:
            raise StaleArtifact(
                f"Rule file is unreadable: {exc.strerror or exc}", details=details
            ) from exc

        if len(raw) < self._min_rule_file_bytes:
            raise StaleArtifact(
                f"Rule file is only {len(raw)} bytes",
                details={**details, "size": len(raw)},
            )
        content = raw.decode("utf-8", errors="replace")
        if RULES_MARKER not in content:
            raise StaleArtifact("Rule file was not written by FileGuard", details=details)
        if CONDITIONAL_GUARD_TOKEN not in content:
            raise StaleArtifact("Rule file lacks module guards", details=details)

    def needs_update(self, directory: str | Path, profile: ServerProfile) -> bool:
        """Return ``True`` if the rule file is missing, truncated or outdated."""
        try:
            self.check_fresh(directory, profile)
        except StaleArtifact as exc:
            logger.debug("stale artifacts in %s: %s", directory, exc.message)
            return True
        return False

    @staticmethod
    def has_index_guard(directory: str | Path) -> bool:
        directory = Path(directory)
        return (directory / INDEX_CODE_FILE).exists() or (directory / INDEX_MARKUP_FILE).exists()

    @staticmethod
    def has_access_rule(directory: str | Path) -> bool:
        """Return ``True`` if a FileGuard-authored rule file is present."""
        rule_file = Path(directory) / RULE_FILE
        try:
            content = rule_file.read_text(encoding="utf-8", errors="replace")
        except OSError:
            return False
        return RULES_MARKER in content

    def presence_check(self, directory: str | Path, profile: ServerProfile) -> bool:
        """Protection judged from the files alone, without a network probe.

        An index guard is always required; rule-file servers also need an
        authored rule file.
        """
        if not self.has_index_guard(directory):
            return False
        if profile.writes_rule_file:
            return self.has_access_rule(directory)
        return True

    def inspect(self, directory: str | Path, profile: ServerProfile) -> ProtectionState:
        """Reconstruct the :class:`ProtectionState` from disk."""
        return ProtectionState(
            has_index_guard=self.has_index_guard(directory),
            has_access_rule=self.has_access_rule(directory),
            is_stale=self.needs_update(directory, profile),
        )

    # -- removal -------------------------------------------------------

    def remove(self, directory: str | Path) -> bool:
        """Delete the top-level artifacts; ``False`` if any deletion failed."""
        directory = Path(directory)
        success = True
        for name in ARTIFACT_FILES:
            target = directory / name
            if not target.exists():
                continue
            try:
                target.unlink()
            except OSError as exc:
                logger.warning("could not remove %s: %s", target, exc.strerror or exc)
                success = False
            else:
                logger.info("removed %s", target)
        return success
