"""Server-capability detection.

Classifies the web server from its advertised identification string (the
CGI ``SERVER_SOFTWARE`` value, e.g. ``"Apache/2.4.57 (Debian)"``).

Tokens are checked in priority order; the first hit wins.  A string with
no recognised token maps to :attr:`ServerProfile.APACHE`, the most common
deployment and the only fallback that still leaves a rule file on disk.
"""
from __future__ import annotations

import logging

from fileguard.core.types import ServerProfile

logger = logging.getLogger(__name__)

# Order matters: "nginx" before "iis", "microsoft-iis" before the bare "iis".
SERVER_TOKENS: tuple[tuple[str, ServerProfile], ...] = (
    ("nginx", ServerProfile.NGINX),
    ("microsoft-iis", ServerProfile.IIS),
    ("iis", ServerProfile.IIS),
    ("litespeed", ServerProfile.LITESPEED),
    ("apache", ServerProfile.APACHE),
)

DEFAULT_PROFILE = ServerProfile.APACHE


def detect_server_profile(server_software: str | None) -> ServerProfile:
    """Return the :class:`ServerProfile` advertised by *server_software*.

    Matching is a case-insensitive substring search.

    >>> detect_server_profile("nginx/1.25.3")
    <ServerProfile.NGINX: 'nginx'>
    >>> detect_server_profile("")
    <ServerProfile.APACHE: 'apache'>
    """
    lowered = (server_software or "").lower()
    for token, profile in SERVER_TOKENS:
        if token in lowered:
            return profile
    logger.debug(
        "unrecognised server software %r, defaulting to %s",
        server_software,
        DEFAULT_PROFILE,
    )
    return DEFAULT_PROFILE
