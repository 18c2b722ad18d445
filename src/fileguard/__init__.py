"""FileGuard -- directory access protection for upload folders.

Writes deny-by-default rules next to uploaded files, proves with a live
HTTP probe that the files really cannot be downloaded, and caches the
verdict for a bounded time.

Components
----------
1. Server-Capability Detection (:mod:`fileguard.server`)
2. Rule Generation (:mod:`fileguard.rules`)
3. Artifact Management (:mod:`fileguard.artifacts`)
4. Verification (:mod:`fileguard.verification`)
5. Orchestration and caching (:mod:`fileguard.protector`)
"""
from __future__ import annotations

__version__ = "1.0.0"

# ---------------------------------------------------------------------------
# Core -- config, errors, types, interfaces, hooks
# ---------------------------------------------------------------------------
# ---------------------------------------------------------------------------
# Artifacts
# ---------------------------------------------------------------------------
from fileguard.artifacts import ArtifactManager, ArtifactReport, is_writable
from fileguard.core.config import FileGuardSettings, ProtectionConfig, RequestContext
from fileguard.core.errors import (
    ArtifactError,
    FileGuardError,
    NotWritable,
    PartialWriteFailure,
    ProbeNetworkFailure,
    StaleArtifact,
    StalenessError,
    VerificationError,
)
from fileguard.core.hooks import HookRegistry
from fileguard.core.interfaces import (
    CacheStore,
    InMemoryCacheStore,
    StaticUploadLocator,
    TriggerRegistrar,
    UploadFilterRegistrar,
    UploadLocator,
)
from fileguard.core.types import (
    DebugInfo,
    ProbeResult,
    ProtectionReport,
    ProtectionState,
    RuleFormat,
    ServerInstructions,
    ServerProfile,
    UploadDir,
)

# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------
from fileguard.protector import Protector

# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------
from fileguard.rules import (
    RULES_MARKER,
    generate_apache_rules,
    generate_iis_rules,
    generate_nginx_rules,
    generate_rules,
)

# ---------------------------------------------------------------------------
# Server detection
# ---------------------------------------------------------------------------
from fileguard.server import detect_server_profile

# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------
from fileguard.verification import VerificationEngine, is_local_development

__all__ = [
    "RULES_MARKER",
    "ArtifactError",
    "ArtifactManager",
    "ArtifactReport",
    "CacheStore",
    "DebugInfo",
    "FileGuardError",
    "FileGuardSettings",
    "HookRegistry",
    "InMemoryCacheStore",
    "NotWritable",
    "PartialWriteFailure",
    "ProbeNetworkFailure",
    "ProbeResult",
    "ProtectionConfig",
    "ProtectionReport",
    "ProtectionState",
    "Protector",
    "RequestContext",
    "RuleFormat",
    "ServerInstructions",
    "ServerProfile",
    "StaleArtifact",
    "StalenessError",
    "StaticUploadLocator",
    "TriggerRegistrar",
    "UploadDir",
    "UploadFilterRegistrar",
    "UploadLocator",
    "VerificationEngine",
    "VerificationError",
    "__version__",
    "detect_server_profile",
    "generate_apache_rules",
    "generate_iis_rules",
    "generate_nginx_rules",
    "generate_rules",
    "is_local_development",
    "is_writable",
]
