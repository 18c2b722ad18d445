"""Local-development detection.

Servers running on a developer machine or a staging box frequently cannot
fetch their own public URL, so a live probe there reports false alarms.
:func:`is_local_development` recognises such environments from the
request context.

An environment counts as local when any of these holds:

1. The HTTP host contains one of the local host markers.
2. The explicit local-development flag is set.
3. Debug mode *and* debug display are both on.  This signal alone is
   weaker, so its verdict is passed through ``debug_filter`` for the host
   to override.
"""
from __future__ import annotations

from collections.abc import Callable, Iterable

from fileguard.core.config import DEFAULT_LOCAL_HOST_MARKERS, RequestContext


def is_local_development(
    context: RequestContext,
    markers: Iterable[str] = DEFAULT_LOCAL_HOST_MARKERS,
    *,
    debug_filter: Callable[[bool], bool] | None = None,
) -> bool:
    """Return ``True`` if *context* describes a local or staging environment."""
    host = context.http_host
    if host and any(marker in host for marker in markers):
        return True

    if context.local_dev:
        return True

    if context.debug and context.debug_display:
        return bool(debug_filter(True)) if debug_filter is not None else True

    return False
