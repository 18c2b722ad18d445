#!/usr/bin/env python3
"""FileGuard quickstart -- protect an upload folder.

Demonstrates the core workflow of FileGuard:

1. Create a Protector for an ``invoices`` upload folder.
2. Write the protection artifacts.
3. Verify with a canary probe against a simulated web server.
4. Inspect the diagnostics and the manual server instructions.
5. Remove the protection again.

The HTTP layer is an :class:`httpx.MockTransport` that answers 403, the
way Apache does once the generated ``.htaccess`` is honoured.  Drop the
``transport`` argument to probe a real server.

Run:
    python examples/quickstart.py
"""
from __future__ import annotations

import logging
import tempfile
from pathlib import Path

import httpx

from fileguard import (
    HookRegistry,
    InMemoryCacheStore,
    ProtectionConfig,
    Protector,
    RequestContext,
    StaticUploadLocator,
)


def apache_honouring_rules(request: httpx.Request) -> httpx.Response:
    print(f"    probe -> GET {request.url.path}")
    return httpx.Response(403)


def main() -> None:
    logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    with tempfile.TemporaryDirectory() as tmp:
        uploads = Path(tmp) / "uploads"

        # -- Step 1: Create the protector ------------------------------------
        hooks = HookRegistry()
        hooks.add_filter(
            "invoices_htaccess_rules",
            lambda rules: rules + "\n# Managed by the billing team\n",
        )
        protector = Protector(
            ProtectionConfig(prefix="invoices", allowed_extensions=["pdf"]),
            StaticUploadLocator(uploads, "https://example.com/uploads"),
            InMemoryCacheStore(),
            context=RequestContext(server_software="Apache/2.4.57", http_host="example.com"),
            hooks=hooks,
            transport=httpx.MockTransport(apache_honouring_rules),
        )
        print(f"[1] Protector created for {protector.get_upload_path()}")
        print(f"    server profile: {protector.server_profile}")

        # -- Step 2: Write artifacts -----------------------------------------
        assert protector.protect()
        files = sorted(p.name for p in protector.get_upload_path().iterdir())
        print(f"[2] Artifacts written: {', '.join(files)}")
        assert protector.protect()
        print("    second protect() was a cache hit")

        # -- Step 3: Verify ---------------------------------------------------
        print("[3] Verifying with a canary probe")
        print(f"    protected: {protector.is_protected(force=True)}")

        # -- Step 4: Diagnostics ---------------------------------------------
        report = protector.test_protection()
        print(f"[4] test_protection: {report.message}")
        info = protector.get_debug_info()
        print(f"    last probe status: {info.last_probe.status_code if info.last_probe else None}")
        print(info.model_dump_json(indent=2, include={"server_type", "is_protected", "cache"}))

        instructions = protector.get_server_instructions()
        print(f"    {instructions.title}")
        for item in instructions.checklist:
            print(f"      - {item}")

        # -- Step 5: Remove ---------------------------------------------------
        assert protector.unprotect()
        print(f"[5] Unprotected; remaining files: {list(protector.get_upload_path().iterdir())}")


if __name__ == "__main__":
    main()
