"""FileGuard Protector -- the main orchestrator.

This module implements the :class:`Protector` class, the primary entry
point of the package.  It composes the server detector, the rule
generator, the artifact manager and the verification engine behind two
cache entries.

Pipeline
--------

1. **Detect** -- classify the web server once per instance.
2. **Ensure** -- write missing artifacts, regenerate a stale rule file.
3. **Verify** -- canary-file HTTP probe (Apache class) or presence check.
4. **Cache** -- ``<prefix>_protection_check`` for artifacts (24 h),
   ``<prefix>_uploads_protected`` for verdicts (12 h positive, 1 h
   negative).

None of the public operations raises; each returns a boolean or a report
model.  :meth:`Protector.get_debug_info` exposes the detail.

Usage
-----
::

    from fileguard import InMemoryCacheStore, ProtectionConfig, Protector, StaticUploadLocator

    protector = Protector(
        ProtectionConfig(prefix="invoices", allowed_extensions=["pdf"]),
        locator=StaticUploadLocator("/srv/www/uploads", "https://example.com/uploads"),
        cache=InMemoryCacheStore(),
    )
    protector.protect()
    if not protector.is_protected():
        print(protector.get_server_instructions().model_dump_json(indent=2))
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from fileguard.artifacts.manager import ArtifactManager
from fileguard.core.config import FileGuardSettings, ProtectionConfig, RequestContext
from fileguard.core.hooks import HookRegistry
from fileguard.core.types import (
    INDEX_CODE_FILE,
    INDEX_MARKUP_FILE,
    RULE_FILE,
    ArtifactFlags,
    DebugInfo,
    ProtectionReport,
    ProtectionState,
    ServerInstructions,
    ServerProfile,
    UploadDir,
)
from fileguard.rules.generator import (
    generate_apache_rules,
    generate_iis_rules,
    generate_nginx_rules,
)
from fileguard.server.detector import detect_server_profile
from fileguard.verification.environment import is_local_development
from fileguard.verification.probe import VerificationEngine

if TYPE_CHECKING:
    import httpx

    from fileguard.core.interfaces import (
        CacheStore,
        TriggerRegistrar,
        UploadFilterRegistrar,
        UploadLocator,
    )

logger = logging.getLogger(__name__)

HTACCESS_PREVIEW_CHARS = 200


class Protector:
    """Protects one upload directory from direct download.

    Parameters
    ----------
    config:
        What to protect.
    locator:
        Resolves the directory path and public URL from the prefix.
    cache:
        Host cache for the two verdict entries.
    context:
        Request-scoped facts (server software, host, debug flags).
        Defaults to :meth:`RequestContext.from_environ`.
    settings:
        TTLs, probe timeout and staleness threshold.
    hooks:
        Filter chains for post-processing rule text and local-development
        policy.  May be shared by several protectors.
    transport:
        Optional :class:`httpx.BaseTransport` for the verification probe.
        The probe client itself is always built without certificate
        verification or redirect following.
    clock:
        Returns "now" for the dated sub-path.  Defaults to UTC wall time.
    """

    def __init__(
        self,
        config: ProtectionConfig,
        locator: UploadLocator,
        cache: CacheStore,
        *,
        context: RequestContext | None = None,
        settings: FileGuardSettings | None = None,
        hooks: HookRegistry | None = None,
        transport: httpx.BaseTransport | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._config = config
        self._locator = locator
        self._cache = cache
        self._context = context if context is not None else RequestContext.from_environ()
        self._settings = settings or FileGuardSettings()
        self._hooks = hooks or HookRegistry()
        self._clock = clock or (lambda: datetime.now(UTC))
        self._server_profile: ServerProfile | None = None

        self._artifacts = ArtifactManager(
            self.get_htaccess_rules,
            min_rule_file_bytes=self._settings.min_rule_file_bytes,
        )
        self._verifier = VerificationEngine(
            config.prefix,
            self._artifacts,
            self._settings,
            transport=transport,
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def config(self) -> ProtectionConfig:
        return self._config

    @property
    def prefix(self) -> str:
        return self._config.prefix

    @property
    def hooks(self) -> HookRegistry:
        return self._hooks

    @property
    def artifacts(self) -> ArtifactManager:
        return self._artifacts

    @property
    def verifier(self) -> VerificationEngine:
        return self._verifier

    @property
    def protection_check_key(self) -> str:
        return f"{self.prefix}_protection_check"

    @property
    def uploads_protected_key(self) -> str:
        return f"{self.prefix}_uploads_protected"

    @property
    def server_profile(self) -> ServerProfile:
        """The detected server profile, computed once per instance."""
        if self._server_profile is None:
            self._server_profile = detect_server_profile(self._context.server_software)
            logger.debug(
                "%s: server %r detected as %s",
                self.prefix,
                self._context.server_software,
                self._server_profile,
            )
        return self._server_profile

    def _hook(self, name: str) -> str:
        return f"{self.prefix}_{name}"

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def get_upload_path(self, dated: bool = False) -> Path:
        """Filesystem path of the protected directory.

        With ``dated=True`` (and dated folders enabled) the current
        ``YYYY/MM`` sub-directory is appended.
        """
        path, _url = self._locator.resolve_upload_base(self.prefix)
        if dated and self._config.use_dated_folders:
            path = path / self._locator.resolve_dated_subpath(self._clock())
        return path

    def get_upload_url(self, dated: bool = False) -> str:
        """Public URL of the protected directory (see :meth:`get_upload_path`)."""
        _path, url = self._locator.resolve_upload_base(self.prefix)
        url = url.rstrip("/")
        if dated and self._config.use_dated_folders:
            url = f"{url}/{self._locator.resolve_dated_subpath(self._clock())}"
        return url

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    def get_htaccess_rules(self) -> str:
        rules = generate_apache_rules(self.prefix, self._config.allowed_extensions)
        return self._hooks.apply_filters(self._hook("htaccess_rules"), rules)

    def get_nginx_rules(self) -> str:
        rules = generate_nginx_rules(self.prefix, self._config.allowed_extensions)
        return self._hooks.apply_filters(self._hook("nginx_rules"), rules)

    def get_iis_rules(self) -> str:
        rules = generate_iis_rules(self.prefix, self._config.allowed_extensions)
        return self._hooks.apply_filters(self._hook("iis_rules"), rules)

    # ------------------------------------------------------------------
    # Protection
    # ------------------------------------------------------------------

    def needs_update(self) -> bool:
        """Return ``True`` if the rule file must be regenerated."""
        return self._artifacts.needs_update(self.get_upload_path(), self.server_profile)

    def protect(self, force: bool = False) -> bool:
        """Create all protection artifacts in the upload directory.

        Parameters
        ----------
        force:
            Skip the ``protection_check`` cache and rewrite the rule file.

        Returns
        -------
        bool
            ``True`` if every artifact is in place.
        """
        if not force:
            if self.needs_update():
                logger.info("%s: rule file is stale, regenerating", self.prefix)
                force = True
            elif self._cache.get(self.protection_check_key):
                logger.debug("%s: protection check cached", self.prefix)
                return True

        upload_path = self.get_upload_path()
        if not self._artifacts.is_writable(upload_path):
            logger.warning("%s: %s is not writable", self.prefix, upload_path)
            return False

        report = self._artifacts.materialize(
            upload_path,
            self.server_profile,
            force,
            include_subdirectories=self._config.use_dated_folders,
        )

        if report.written:
            # A verdict about the previous artifacts no longer applies.
            self._cache.delete(self.uploads_protected_key)

        if report.ok:
            self._cache.set(self.protection_check_key, True, self._settings.protection_check_ttl)
        return report.ok

    def has_protection_files(self) -> bool:
        """Presence check: index guard, plus an authored rule file on Apache."""
        return self._artifacts.presence_check(self.get_upload_path(), self.server_profile)

    def get_protection_state(self) -> ProtectionState:
        return self._artifacts.inspect(self.get_upload_path(), self.server_profile)

    def is_local_development(self) -> bool:
        """Return ``True`` if the request comes from a local / staging host."""
        return is_local_development(
            self._context,
            self._settings.local_host_markers,
            debug_filter=lambda value: self._hooks.apply_filters(
                self._hook("is_local_development"), value
            ),
        )

    def is_protected(self, force: bool = False) -> bool:
        """Check whether the upload directory is protected.

        Parameters
        ----------
        force:
            Ignore the cached verdict and verify again.
        """
        if self.is_local_development() and self._hooks.apply_filters(
            self._hook("skip_local_protection_test"), self._settings.skip_local_probe
        ):
            return self.has_protection_files()

        if not force:
            cached = self._cache.get(self.uploads_protected_key)
            if cached is not None:
                logger.debug("%s: cached verdict %s", self.prefix, cached)
                return bool(cached)

        protected = self._verifier.verify(
            self.get_upload_path(),
            self.get_upload_url(),
            self.server_profile,
        )
        ttl = self._settings.protected_ttl if protected else self._settings.unprotected_ttl
        self._cache.set(self.uploads_protected_key, 1 if protected else 0, ttl)
        return protected

    def unprotect(self) -> bool:
        """Delete all protection files and forget every cached verdict."""
        success = self._artifacts.remove(self.get_upload_path())
        self._cache.delete(self.protection_check_key)
        self._cache.delete(self.uploads_protected_key)
        return success

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def get_server_instructions(self) -> ServerInstructions:
        """Manual configuration steps for the detected server."""
        profile = self.server_profile
        upload_path = self.get_upload_path()

        if profile is ServerProfile.NGINX:
            return ServerInstructions(
                type=ServerProfile.NGINX,
                title="Nginx Configuration Required",
                instructions="Add the following rules to your Nginx configuration:",
                code=self.get_nginx_rules(),
                notes="After adding these rules, reload Nginx: nginx -s reload",
            )
        if profile is ServerProfile.IIS:
            return ServerInstructions(
                type=ServerProfile.IIS,
                title="IIS Configuration Required",
                instructions=f"Add the following to your web.config in {upload_path}:",
                code=self.get_iis_rules(),
                notes="Restart IIS after adding the configuration.",
            )
        return ServerInstructions(
            type=ServerProfile.APACHE,
            title="Apache Configuration Issue",
            instructions="The .htaccess file exists but may not be working. Check:",
            checklist=[
                "Apache mod_rewrite is enabled",
                "AllowOverride is set to All in Apache configuration",
                "File permissions allow reading .htaccess files",
                f".htaccess file exists at: {upload_path / RULE_FILE}",
            ],
        )

    def get_debug_info(self) -> DebugInfo:
        """Collect server, artifact, cache and probe details.

        Note that this calls :meth:`is_protected`, which may run a probe
        when no verdict is cached.
        """
        upload_path = self.get_upload_path()
        rule_file = upload_path / RULE_FILE

        preview: str | None = None
        size: int | None = None
        try:
            content = rule_file.read_text(encoding="utf-8", errors="replace")
        except OSError:
            pass
        else:
            size = len(content)
            preview = content[:HTACCESS_PREVIEW_CHARS]
            if size > HTACCESS_PREVIEW_CHARS:
                preview += "..."

        is_protected = self.is_protected()
        return DebugInfo(
            server_type=self.server_profile,
            server_software=self._context.server_software or "Unknown",
            is_local_development=self.is_local_development(),
            host=self._context.http_host or "Unknown",
            upload_path=upload_path,
            upload_url=self.get_upload_url(),
            upload_path_exists=upload_path.exists(),
            upload_path_writable=self._artifacts.is_writable(upload_path),
            protection_files=ArtifactFlags(
                htaccess_exists=rule_file.exists(),
                index_php_exists=(upload_path / INDEX_CODE_FILE).exists(),
                index_html_exists=(upload_path / INDEX_MARKUP_FILE).exists(),
            ),
            is_protected=is_protected,
            has_protection_files=self.has_protection_files(),
            needs_update=self.needs_update(),
            allowed_extensions=self._config.allowed_extensions,
            use_dated_folders=self._config.use_dated_folders,
            cache=self._cache_snapshot(),
            last_probe=self._verifier.last_probe,
            htaccess_preview=preview,
            htaccess_size=size,
        )

    def _cache_snapshot(self) -> dict[str, object]:
        snapshot: dict[str, object] = {}
        ttl_remaining = getattr(self._cache, "ttl_remaining", None)
        for key in (self.protection_check_key, self.uploads_protected_key):
            entry: dict[str, object] = {"value": self._cache.get(key)}
            if ttl_remaining is not None:
                entry["ttl_remaining"] = ttl_remaining(key)
            snapshot[key] = entry
        return snapshot

    def test_protection(self) -> ProtectionReport:
        """Force protection, then verify it, and explain the outcome."""
        if not self.protect(force=True):
            return ProtectionReport(
                success=False,
                message="Failed to create protection files. Check directory permissions.",
            )

        if self.is_local_development() and self.has_protection_files():
            return ProtectionReport(
                success=True,
                message=(
                    "Protection files created. Note: Direct access test may fail in "
                    "local development but will work on production servers."
                ),
                is_local=True,
            )

        if self.is_protected(force=True):
            return ProtectionReport(
                success=True,
                message="Files are successfully protected from direct access.",
            )

        profile = self.server_profile
        if profile is ServerProfile.NGINX:
            message = "Nginx detected. Manual configuration required."
        elif profile is ServerProfile.IIS:
            message = "IIS detected. Manual configuration required."
        else:
            message = (
                "Protection files created but direct access is still possible. "
                "Check server configuration."
            )
        return ProtectionReport(success=False, message=message, server_type=profile)

    # ------------------------------------------------------------------
    # Host wiring
    # ------------------------------------------------------------------

    def filter_upload_dir(self, upload: UploadDir) -> UploadDir:
        """Redirect an upload location into the protected directory."""
        subdir = f"/{self.prefix}"
        if self._config.use_dated_folders:
            subdir = f"{subdir}/{self._locator.resolve_dated_subpath(self._clock())}"

        routed: UploadDir = {
            **upload,
            "subdir": subdir,
            "path": f"{upload['basedir']}{subdir}",
            "url": f"{upload['baseurl']}{subdir}",
        }
        try:
            Path(routed["path"]).mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.warning(
                "%s: could not create %s: %s",
                self.prefix,
                routed["path"],
                exc.strerror or exc,
            )
        return routed

    def setup_upload_filter(
        self,
        register: UploadFilterRegistrar,
        condition: Callable[[], bool],
    ) -> None:
        """Route uploads into the protected directory while *condition* holds."""

        def route(upload: UploadDir) -> UploadDir:
            return self.filter_upload_dir(upload) if condition() else upload

        register(route)

    def schedule_protection(self, register: TriggerRegistrar, trigger: str = "admin_init") -> None:
        """Run :meth:`protect` on the host's recurring *trigger*."""
        register(trigger, self.protect)
