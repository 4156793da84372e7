"""
ChromiumKit - provision pinned Chromium snapshot builds.

Resolves a Chromium executable for a platform and revision, using a local
install folder, a shared per-user cache and the Chromium snapshot bucket in
that order.
"""

from chromiumkit.config import ProvisionerConfig, load_config
from chromiumkit.core.exceptions import ChromiumKitError, UnsupportedPlatformError
from chromiumkit.core.platform import PlatformTag
from chromiumkit.provisioner import ProvisionOptions, Provisioner, provision

__version__ = "0.1.0"

__all__ = [
    "ProvisionerConfig",
    "load_config",
    "ChromiumKitError",
    "UnsupportedPlatformError",
    "PlatformTag",
    "ProvisionOptions",
    "Provisioner",
    "provision",
]
