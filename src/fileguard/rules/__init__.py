"""Access-rule generation.

* **generate_apache_rules** -- dual Apache 2.4 / 2.2 ``.htaccess`` text.
* **generate_nginx_rules** -- advisory nginx ``location`` block.
* **generate_iis_rules** -- advisory IIS ``web.config`` fragment.
* **RULES_MARKER** / **CONDITIONAL_GUARD_TOKEN** -- tokens the staleness
  check looks for in an existing rule file.
"""
from __future__ import annotations

from fileguard.rules.generator import (
    CONDITIONAL_GUARD_TOKEN,
    GENERATORS,
    RULES_MARKER,
    generate_apache_rules,
    generate_iis_rules,
    generate_nginx_rules,
    generate_rules,
    rules_header,
)

__all__ = [
    "CONDITIONAL_GUARD_TOKEN",
    "GENERATORS",
    "RULES_MARKER",
    "generate_apache_rules",
    "generate_iis_rules",
    "generate_nginx_rules",
    "generate_rules",
    "rules_header",
]
