"""
Centralized exception hierarchy for ChromiumKit.

Network errors are deliberately absent: failures raised by ``requests`` reach
the caller unchanged.
"""

from filelock import Timeout as LockTimeout


# ============================================================================
# Base Exceptions
# ============================================================================


class ChromiumKitError(Exception):
    """Base exception for all ChromiumKit errors."""

    pass


# ============================================================================
# Platform Exceptions
# ============================================================================


class UnsupportedPlatformError(ChromiumKitError):
    """Raised when no Chromium build exists for the requested platform."""

    def __init__(self, platform):
        self.platform = platform
        super().__init__(f"Unsupported platform: {platform}")


# ============================================================================
# Configuration Exceptions
# ============================================================================


class ConfigError(ChromiumKitError):
    """Configuration parsing or validation error."""

    pass


# ============================================================================
# Filesystem Exceptions
# ============================================================================


class FilesystemError(ChromiumKitError):
    """Base exception for filesystem operations."""

    pass


class ArchiveExtractionError(FilesystemError):
    """Failed to extract an archive."""

    pass


class InsecureArchiveError(ArchiveExtractionError):
    """Archive contains a member that would escape the extraction directory."""

    pass


__all__ = [
    "ChromiumKitError",
    "UnsupportedPlatformError",
    "ConfigError",
    "FilesystemError",
    "ArchiveExtractionError",
    "InsecureArchiveError",
    "LockTimeout",
]
