"""Access-rule text generation.

Three pure functions build deny-by-default rules for a protected
directory, each taking the directory ``prefix`` and the ordered
allow-list of file extensions:

* :func:`generate_apache_rules` -- ``.htaccess`` content.  Written to
  disk by the artifact manager for Apache and LiteSpeed.
* :func:`generate_nginx_rules` -- a ``location`` block for the server
  configuration.  Advisory only.
* :func:`generate_iis_rules` -- a ``web.config`` fragment.  Advisory only.

Output is deterministic for identical inputs and always carries
:data:`RULES_MARKER`, which the staleness check looks for.  Extensions
are assumed to be normalised by
:class:`~fileguard.core.config.ProtectionConfig` (lower-case
alphanumerics), so they are safe to splice into a regex alternation.
"""
from __future__ import annotations

from collections.abc import Sequence

from fileguard.core.types import RuleFormat

RULES_MARKER = "FileGuard Protection Rules"

# Present in every Apache rule file since the dual 2.2 / 2.4 format.
CONDITIONAL_GUARD_TOKEN = "IfModule"


def rules_header(prefix: str) -> str:
    """Return the marker line text (without comment syntax)."""
    return f"{RULES_MARKER} - {prefix}"


def _alternation(extensions: Sequence[str]) -> str:
    return "|".join(extensions)


def generate_apache_rules(prefix: str, extensions: Sequence[str]) -> str:
    """Build ``.htaccess`` rules that work on both Apache 2.4 and 2.2.

    The ``mod_authz_core`` guard selects the 2.4 ``Require`` syntax; the
    negated guard carries the legacy ``Order`` / ``Deny`` syntax.
    """
    lines = [
        f"# {rules_header(prefix)}",
        "# Disable directory browsing",
        "Options -Indexes",
        "",
        "# Apache 2.4+",
        "<IfModule mod_authz_core.c>",
        "    Require all denied",
    ]
    if extensions:
        lines += [
            f"    <FilesMatch '\\.({_alternation(extensions)})$'>",
            "        Require all granted",
            "    </FilesMatch>",
        ]
    lines += [
        "</IfModule>",
        "",
        "# Apache 2.2 fallback",
        "<IfModule !mod_authz_core.c>",
        "    Order Deny,Allow",
        "    Deny from all",
    ]
    if extensions:
        lines += [
            f"    <FilesMatch '\\.({_alternation(extensions)})$'>",
            "        Order Allow,Deny",
            "        Allow from all",
            "    </FilesMatch>",
        ]
    lines.append("</IfModule>")
    return "\n".join(lines) + "\n"


def generate_nginx_rules(prefix: str, extensions: Sequence[str]) -> str:
    """Build an nginx ``location`` block scoped to ``/<prefix>/``."""
    lines = [
        f"# {rules_header(prefix)}",
        f"location ~ ^/{prefix}/ {{",
        "    deny all;",
    ]
    if extensions:
        lines += [
            f"    location ~ \\.({_alternation(extensions)})$ {{",
            "        allow all;",
            "    }",
        ]
    lines.append("}")
    return "\n".join(lines) + "\n"


def generate_iis_rules(prefix: str, extensions: Sequence[str]) -> str:
    """Build an IIS ``web.config`` fragment denying all users."""
    lines = [
        "<configuration>",
        f"  <!-- {rules_header(prefix)} -->",
        "  <system.webServer>",
        "    <authorization>",
        '      <deny users="*" />',
        "    </authorization>",
    ]
    if extensions:
        lines += [
            "    <security>",
            "      <requestFiltering>",
            '        <fileExtensions allowUnlisted="false">',
        ]
        lines += [
            f'          <add fileExtension=".{ext}" allowed="true" />'
            for ext in extensions
        ]
        lines += [
            "        </fileExtensions>",
            "      </requestFiltering>",
            "    </security>",
        ]
    lines += [
        "  </system.webServer>",
        "</configuration>",
    ]
    return "\n".join(lines)


GENERATORS = {
    RuleFormat.APACHE: generate_apache_rules,
    RuleFormat.NGINX: generate_nginx_rules,
    RuleFormat.IIS: generate_iis_rules,
}


def generate_rules(fmt: RuleFormat, prefix: str, extensions: Sequence[str]) -> str:
    """Dispatch to the generator for *fmt*."""
    return GENERATORS[RuleFormat(fmt)](prefix, extensions)
