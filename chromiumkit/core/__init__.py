"""
Core functionality for ChromiumKit.

This package contains the building blocks the provisioner is composed of:
platform model, path derivation, cache probing, download, filesystem and
locking utilities.
"""

from .exceptions import (
    ChromiumKitError,
    UnsupportedPlatformError,
    ConfigError,
    FilesystemError,
    ArchiveExtractionError,
    InsecureArchiveError,
)

from .platform import (
    PlatformTag,
    BuildLayout,
    BUILDS,
    detect_platform,
    parse_platform,
    clear_platform_cache,
)

from .paths import (
    build_id,
    folder_path,
    executable_path,
    archive_path,
)

from .probe import (
    ProbeResult,
    probe,
    exists,
)

from .locking import (
    LockManager,
    LockTimeout,
)

__all__ = [
    "ChromiumKitError",
    "UnsupportedPlatformError",
    "ConfigError",
    "FilesystemError",
    "ArchiveExtractionError",
    "InsecureArchiveError",
    "PlatformTag",
    "BuildLayout",
    "BUILDS",
    "detect_platform",
    "parse_platform",
    "clear_platform_cache",
    "build_id",
    "folder_path",
    "executable_path",
    "archive_path",
    "ProbeResult",
    "probe",
    "exists",
    "LockManager",
    "LockTimeout",
]
