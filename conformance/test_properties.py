"""FileGuard conformance tests.

Verifies the behavioural guarantees of the public surface: idempotent
protection, self-healing rule files, deterministic rule text, probe
classification, canary cleanup, the Apache default, cache clearing on
unprotect, and the end-to-end protect / verify scenario.
"""
from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import httpx
import pytest

from conftest import PREFIX, FakeClock, FakeWebServer
from fileguard.core.config import RequestContext
from fileguard.core.interfaces import InMemoryCacheStore
from fileguard.core.types import (
    INDEX_CODE_FILE,
    INDEX_MARKUP_FILE,
    RULE_FILE,
    ServerProfile,
)
from fileguard.protector import Protector
from fileguard.rules.generator import RULES_MARKER, generate_apache_rules

MakeProtector = Callable[..., Protector]


def _files(directory: Path) -> dict[str, int]:
    return {p.name: p.stat().st_mtime_ns for p in directory.iterdir() if p.is_file()}


def _canaries(directory: Path) -> list[Path]:
    return list(directory.glob(f"{PREFIX}-test-*.txt"))


# ===================================================================
# Idempotence
# ===================================================================

class TestIdempotence:
    """Repeated protect() calls without tampering write nothing new."""

    def test_MUST_write_only_on_first_call(
        self, make_protector: MakeProtector, upload_root: Path
    ) -> None:
        protector = make_protector()
        assert protector.protect() is True
        before = _files(upload_root / PREFIX)

        assert protector.protect() is True
        assert _files(upload_root / PREFIX) == before

    def test_MUST_not_overwrite_index_guards_on_force(
        self, make_protector: MakeProtector, upload_root: Path
    ) -> None:
        protector = make_protector()
        protector.protect()
        (upload_root / PREFIX / INDEX_CODE_FILE).write_text("<?php // custom")
        protector.protect(force=True)
        assert (upload_root / PREFIX / INDEX_CODE_FILE).read_text() == "<?php // custom"


# ===================================================================
# Self-healing
# ===================================================================

class TestSelfHealing:
    """A drifted rule file is rewritten even behind a cached success."""

    @pytest.mark.parametrize(
        "content",
        [
            "# tiny",
            "<IfModule mod_rewrite.c>\n" + "# someone else's rules\n" * 20,
        ],
        ids=["below-threshold", "missing-marker"],
    )
    def test_MUST_rewrite_stale_rule_file(
        self,
        make_protector: MakeProtector,
        upload_root: Path,
        cache: InMemoryCacheStore,
        content: str,
    ) -> None:
        protector = make_protector()
        protector.protect()
        assert cache.get(protector.protection_check_key) is True

        (upload_root / PREFIX / RULE_FILE).write_text(content)
        assert protector.needs_update() is True

        assert protector.protect() is True
        assert RULES_MARKER in (upload_root / PREFIX / RULE_FILE).read_text()
        assert protector.needs_update() is False

    def test_MUST_recreate_deleted_rule_file(
        self, make_protector: MakeProtector, upload_root: Path
    ) -> None:
        protector = make_protector()
        protector.protect()
        (upload_root / PREFIX / RULE_FILE).unlink()
        assert protector.protect() is True
        assert (upload_root / PREFIX / RULE_FILE).exists()


# ===================================================================
# Determinism
# ===================================================================

class TestDeterminism:
    def test_MUST_be_byte_identical(self) -> None:
        assert generate_apache_rules(PREFIX, ["jpg", "png"]) == generate_apache_rules(
            PREFIX, ["jpg", "png"]
        )

    def test_MUST_change_only_extension_block(self) -> None:
        first = generate_apache_rules(PREFIX, ["jpg", "png"]).splitlines()
        second = generate_apache_rules(PREFIX, ["jpg"]).splitlines()
        assert len(first) == len(second)
        for old, new in zip(first, second, strict=True):
            if old != new:
                assert "FilesMatch" in old and "FilesMatch" in new


# ===================================================================
# Probe classification and cleanup
# ===================================================================

class TestProbeClassification:
    """2xx means exposed; anything else means protected."""

    def test_MUST_report_exposed_on_200(
        self, make_protector: MakeProtector, web_server: FakeWebServer
    ) -> None:
        protector = make_protector()
        protector.protect()
        web_server.status = 200
        assert protector.is_protected(force=True) is False

    def test_MUST_report_protected_on_403(
        self, make_protector: MakeProtector, web_server: FakeWebServer
    ) -> None:
        protector = make_protector()
        protector.protect()
        web_server.status = 403
        assert protector.is_protected(force=True) is True

    def test_MUST_report_protected_on_timeout(
        self, make_protector: MakeProtector, web_server: FakeWebServer
    ) -> None:
        protector = make_protector()
        protector.protect()
        web_server.error = httpx.ReadTimeout
        assert protector.is_protected(force=True) is True

    def test_MUST_detect_server_ignoring_rule_file(
        self, make_protector: MakeProtector, web_server: FakeWebServer
    ) -> None:
        """A server that serves whatever is on disk exposes the canary."""
        protector = make_protector()
        protector.protect()
        assert protector.is_protected(force=True) is False
        assert web_server.requests[-1].url.path.startswith(f"/uploads/{PREFIX}/{PREFIX}-test-")


class TestCleanup:
    @pytest.mark.parametrize(
        ("status", "error"),
        [(200, None), (403, None), (None, httpx.ConnectError), (None, httpx.ConnectTimeout)],
    )
    def test_MUST_remove_canary(
        self,
        make_protector: MakeProtector,
        web_server: FakeWebServer,
        upload_root: Path,
        status: int | None,
        error: type[httpx.TransportError] | None,
    ) -> None:
        protector = make_protector()
        protector.protect()
        web_server.status = status
        web_server.error = error
        protector.is_protected(force=True)
        assert _canaries(upload_root / PREFIX) == []


# ===================================================================
# Server-profile default
# ===================================================================

class TestServerProfileDefault:
    @pytest.mark.parametrize("software", ["", "Caddy/2.7", "Jetty(9.4)"])
    def test_MUST_default_to_apache_and_write_rule_file(
        self, make_protector: MakeProtector, upload_root: Path, software: str
    ) -> None:
        protector = make_protector(RequestContext(server_software=software))
        assert protector.server_profile is ServerProfile.APACHE
        assert protector.protect() is True
        assert (upload_root / PREFIX / RULE_FILE).exists()

    def test_MUST_NOT_write_rule_file_for_nginx(
        self, make_protector: MakeProtector, upload_root: Path, web_server: FakeWebServer
    ) -> None:
        protector = make_protector(RequestContext(server_software="nginx/1.25"))
        assert protector.protect() is True
        assert not (upload_root / PREFIX / RULE_FILE).exists()
        assert protector.is_protected() is True
        assert web_server.requests == []


# ===================================================================
# Unprotect
# ===================================================================

class TestUnprotect:
    def test_MUST_clear_both_cache_entries(
        self,
        make_protector: MakeProtector,
        web_server: FakeWebServer,
        cache: InMemoryCacheStore,
    ) -> None:
        protector = make_protector()
        web_server.status = 403
        protector.protect()
        assert protector.is_protected() is True

        assert protector.unprotect() is True
        assert cache.get(protector.protection_check_key) is None
        assert cache.get(protector.uploads_protected_key) is None

    def test_MUST_recompute_after_unprotect(
        self,
        make_protector: MakeProtector,
        web_server: FakeWebServer,
    ) -> None:
        protector = make_protector()
        web_server.status = 403
        protector.protect()
        assert protector.is_protected() is True

        protector.unprotect()
        requests_before = len(web_server.requests)
        # Without a rule file there is nothing to probe.
        assert protector.is_protected(force=True) is False
        assert len(web_server.requests) == requests_before


# ===================================================================
# Cache lifetimes
# ===================================================================

class TestVerdictLifetime:
    def test_MUST_recheck_negative_verdict_sooner(
        self,
        make_protector: MakeProtector,
        web_server: FakeWebServer,
        clock: FakeClock,
    ) -> None:
        protector = make_protector()
        protector.protect()
        web_server.status = 200
        assert protector.is_protected() is False

        # The administrator fixes the server configuration.
        web_server.status = 403
        clock.advance(30 * 60)
        assert protector.is_protected() is False
        clock.advance(31 * 60)
        assert protector.is_protected() is True

    def test_MUST_keep_positive_verdict_for_twelve_hours(
        self,
        make_protector: MakeProtector,
        web_server: FakeWebServer,
        clock: FakeClock,
    ) -> None:
        protector = make_protector()
        protector.protect()
        web_server.status = 403
        assert protector.is_protected() is True
        probes = len(web_server.requests)

        clock.advance(11 * 3600)
        assert protector.is_protected() is True
        assert len(web_server.requests) == probes

        clock.advance(2 * 3600)
        protector.is_protected()
        assert len(web_server.requests) == probes + 1


# ===================================================================
# End-to-end
# ===================================================================

class TestEndToEnd:
    def test_MUST_protect_and_verify_demo_directory(
        self,
        make_protector: MakeProtector,
        web_server: FakeWebServer,
        upload_root: Path,
    ) -> None:
        (upload_root / PREFIX).mkdir()
        protector = make_protector(allowed_extensions=["jpg"], use_dated_folders=False)

        assert protector.protect() is True

        directory = upload_root / PREFIX
        assert set(_files(directory)) == {RULE_FILE, INDEX_CODE_FILE, INDEX_MARKUP_FILE}
        rules = (directory / RULE_FILE).read_text()
        assert f"{RULES_MARKER} - {PREFIX}" in rules
        assert "\\.(jpg)$" in rules
        assert "png" not in rules

        web_server.status = 403
        assert protector.is_protected(force=True) is True
        assert _canaries(directory) == []
