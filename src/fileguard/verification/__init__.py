"""Protection verification.

* **VerificationEngine** -- canary-file HTTP probe for Apache-class
  servers, presence check for the rest.
* **is_local_development** -- recognises environments where the probe
  would report false alarms.
* **canary_filename** / **is_success_status** -- probe helpers.
"""
from __future__ import annotations

from fileguard.verification.environment import is_local_development
from fileguard.verification.probe import (
    CANARY_CONTENT,
    PROBE_HEADERS,
    VerificationEngine,
    canary_filename,
    is_success_status,
)

__all__ = [
    "CANARY_CONTENT",
    "PROBE_HEADERS",
    "VerificationEngine",
    "canary_filename",
    "is_local_development",
    "is_success_status",
]
