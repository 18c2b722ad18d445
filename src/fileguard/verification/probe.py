"""Empirical protection verification.

The :class:`VerificationEngine` does not trust configuration files: for
servers that honour ``.htaccess`` it writes a canary file into the
protected directory and tries to download it over HTTP.

Classification
--------------
* Any 2xx response -- the canary was served, the directory is **not**
  protected.
* Anything else (401, 403, 404, 5xx, 3xx, timeout, connection refused)
  -- **protected**.  A failed probe is never reported as a leak.

The canary is deleted in a ``finally`` block whatever the request does.
Each probe uses a fresh random file name, so concurrent probes of the
same directory never delete each other's canary.
"""
from __future__ import annotations

import logging
import secrets
import string
from pathlib import Path

import httpx

from fileguard.artifacts.manager import ArtifactManager
from fileguard.core.config import FileGuardSettings
from fileguard.core.errors import ProbeNetworkFailure
from fileguard.core.types import RULE_FILE, ProbeResult, ServerProfile

logger = logging.getLogger(__name__)

CANARY_CONTENT = "This file should not be accessible"
CANARY_TOKEN_LENGTH = 8

PROBE_HEADERS: dict[str, str] = {
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
}

_CANARY_ALPHABET = string.ascii_letters + string.digits


def canary_filename(prefix: str) -> str:
    """Return a single-use canary name such as ``demo-test-a8Zk3PqL.txt``."""
    token = "".join(secrets.choice(_CANARY_ALPHABET) for _ in range(CANARY_TOKEN_LENGTH))
    return f"{prefix}-test-{token}.txt"


def is_success_status(status_code: int) -> bool:
    return 200 <= status_code < 300


class VerificationEngine:
    """Decide whether a directory is reachable from the outside.

    Parameters
    ----------
    prefix:
        Namespaces the canary file names.
    artifacts:
        Used for presence checks on servers without a rule file.
    settings:
        Supplies the probe timeout.
    transport:
        Optional :class:`httpx.BaseTransport` (e.g. ``httpx.MockTransport``).
        The engine always builds its own :class:`httpx.Client` around it,
        with certificate verification off, redirects off and the
        configured timeout.
    """

    def __init__(
        self,
        prefix: str,
        artifacts: ArtifactManager,
        settings: FileGuardSettings | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._prefix = prefix
        self._artifacts = artifacts
        self._settings = settings or FileGuardSettings()
        self._transport = transport
        self.last_probe: ProbeResult | None = None

    def verify(
        self,
        directory: str | Path,
        directory_url: str,
        profile: ServerProfile,
    ) -> bool:
        """Return ``True`` if *directory* is protected for *profile*."""
        directory = Path(directory)

        if not profile.writes_rule_file:
            # nginx / IIS ignore anything we could write locally.
            return self._record(
                ProbeResult(protected=self._artifacts.presence_check(directory, profile))
            )

        if not (directory / RULE_FILE).is_file():
            return self._record(ProbeResult(protected=False, error="rule file missing"))

        return self._record(self.probe(directory, directory_url, profile))

    def probe(
        self,
        directory: Path,
        directory_url: str,
        profile: ServerProfile = ServerProfile.APACHE,
    ) -> ProbeResult:
        """Run the canary round trip against *directory_url*."""
        name = canary_filename(self._prefix)
        canary = directory / name
        url = f"{directory_url.rstrip('/')}/{name}"

        try:
            # A failed write may still have created the file.
            try:
                canary.write_text(CANARY_CONTENT, encoding="utf-8")
            except OSError as exc:
                logger.warning(
                    "could not write canary %s (%s), falling back to presence check",
                    canary,
                    exc.strerror or exc,
                )
                return ProbeResult(
                    url=url,
                    error=f"canary not written: {exc.strerror or exc}",
                    protected=self._artifacts.presence_check(directory, profile),
                )

            try:
                status = self._fetch_status(url)
            except ProbeNetworkFailure as exc:
                logger.warning("protection probe for %s failed: %s", self._prefix, exc.to_dict())
                return ProbeResult(
                    url=url,
                    error=exc.details.get("reason", exc.message),
                    probed=True,
                    protected=True,
                )
            protected = not is_success_status(status)
            logger.debug(
                "protection probe for %s: HTTP %d = %s",
                self._prefix,
                status,
                "protected" if protected else "NOT protected",
            )
            return ProbeResult(url=url, status_code=status, probed=True, protected=protected)
        finally:
            self._cleanup(canary)

    def _fetch_status(self, url: str) -> int:
        """GET *url* once and return the status code.

        Raises
        ------
        ProbeNetworkFailure
            If no response was received.
        """
        timeout = self._settings.probe_timeout
        try:
            with httpx.Client(
                transport=self._transport,
                verify=False,
                timeout=timeout,
                follow_redirects=False,
            ) as client:
                response = client.get(url, headers=PROBE_HEADERS)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise ProbeNetworkFailure(
                details={
                    "url": url,
                    "exception_type": type(exc).__name__,
                    "reason": str(exc) or type(exc).__name__,
                },
            ) from exc
        return response.status_code

    @staticmethod
    def _cleanup(canary: Path) -> None:
        try:
            canary.unlink(missing_ok=True)
        except OSError as exc:
            logger.error("could not delete canary %s: %s", canary, exc.strerror or exc)

    def _record(self, result: ProbeResult) -> bool:
        self.last_probe = result
        return result.protected
