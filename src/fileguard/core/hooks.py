"""Filter hooks for post-processing FileGuard output.

A :class:`HookRegistry` holds named filter chains.  Each callback receives
the value produced by the previous one (plus any extra arguments) and
returns the replacement.  Callbacks run by ascending priority, then in
registration order.

:class:`~fileguard.protector.Protector` prefixes every hook name with its
own ``prefix``, so one registry can be shared by several protectors::

    hooks = HookRegistry()
    hooks.add_filter("media_htaccess_rules", lambda rules: rules + "Header set X-Robots-Tag none\\n")
"""
from __future__ import annotations

import itertools
import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_PRIORITY = 10

FilterCallback = Callable[..., Any]


class HookRegistry:
    """Named filter chains."""

    def __init__(self) -> None:
        # name -> list of (priority, sequence, callback)
        self._filters: dict[str, list[tuple[int, int, FilterCallback]]] = {}
        self._sequence = itertools.count()

    def add_filter(
        self,
        name: str,
        callback: FilterCallback,
        priority: int = DEFAULT_PRIORITY,
    ) -> None:
        """Register *callback* on the chain *name*."""
        chain = self._filters.setdefault(name, [])
        chain.append((priority, next(self._sequence), callback))
        chain.sort(key=lambda item: (item[0], item[1]))

    def remove_filter(self, name: str, callback: FilterCallback) -> bool:
        """Unregister every occurrence of *callback*; return ``True`` if any."""
        chain = self._filters.get(name)
        if not chain:
            return False
        kept = [item for item in chain if item[2] is not callback]
        removed = len(kept) != len(chain)
        if kept:
            self._filters[name] = kept
        else:
            del self._filters[name]
        return removed

    def has_filter(self, name: str) -> bool:
        return bool(self._filters.get(name))

    def apply_filters(self, name: str, value: Any, *args: Any) -> Any:
        """Run *value* through the chain *name* and return the result."""
        chain = self._filters.get(name, [])
        for _priority, _seq, callback in chain:
            value = callback(value, *args)
        if chain:
            logger.debug("applied %d filter(s) on %s", len(chain), name)
        return value
