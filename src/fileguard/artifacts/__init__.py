"""Protection artifact management.

* **ArtifactManager** -- creates, inspects and removes the index guards and
  the ``.htaccess`` rule file of a protected directory.
* **ArtifactReport** -- written / failed paths of one materialization.
* **is_writable** -- writability check used before any artifact is written.
"""
from __future__ import annotations

from fileguard.artifacts.manager import (
    MIN_RULE_FILE_BYTES,
    ArtifactManager,
    ArtifactReport,
    is_writable,
)

__all__ = [
    "MIN_RULE_FILE_BYTES",
    "ArtifactManager",
    "ArtifactReport",
    "is_writable",
]
