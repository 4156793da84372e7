"""
Platform model for ChromiumKit.

Chromium snapshots are published for a fixed set of platforms. This module
defines that set as a closed enum, maps every member to its download URL
template and executable layout, and detects the tag of the running host.

Usage:
    from chromiumkit.core.platform import detect_platform, parse_platform, BUILDS

    tag = detect_platform()          # PlatformTag.LINUX on a Linux host
    tag = parse_platform("win64")    # PlatformTag.WIN64
    BUILDS[tag].url_template         # '.../Win_x64/{revision}/chrome-win32.zip'
"""

import functools
import platform
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Union

from chromiumkit.core.exceptions import UnsupportedPlatformError

SNAPSHOT_BASE_URL = "https://storage.googleapis.com/chromium-browser-snapshots"


class PlatformTag(str, Enum):
    """Platforms that Chromium snapshot builds exist for."""

    LINUX = "linux"
    MAC = "mac"
    WIN32 = "win32"
    WIN64 = "win64"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class BuildLayout:
    """
    Where a platform's build is downloaded from and where its binary lives.

    Attributes:
        url_template: Download URL with a single ``{revision}`` slot
        executable_subpath: Binary location relative to the build folder
    """

    url_template: str
    executable_subpath: str


# Both Windows variants ship the same chrome-win32 folder layout.
BUILDS: Dict[PlatformTag, BuildLayout] = {
    PlatformTag.LINUX: BuildLayout(
        url_template=f"{SNAPSHOT_BASE_URL}/Linux_x64/{{revision}}/chrome-linux.zip",
        executable_subpath="chrome-linux/chrome",
    ),
    PlatformTag.MAC: BuildLayout(
        url_template=f"{SNAPSHOT_BASE_URL}/Mac/{{revision}}/chrome-mac.zip",
        executable_subpath="chrome-mac/Chromium.app/Contents/MacOS/Chromium",
    ),
    PlatformTag.WIN32: BuildLayout(
        url_template=f"{SNAPSHOT_BASE_URL}/Win/{{revision}}/chrome-win32.zip",
        executable_subpath="chrome-win32/chrome.exe",
    ),
    PlatformTag.WIN64: BuildLayout(
        url_template=f"{SNAPSHOT_BASE_URL}/Win_x64/{{revision}}/chrome-win32.zip",
        executable_subpath="chrome-win32/chrome.exe",
    ),
}


def default_url_templates() -> Dict[PlatformTag, str]:
    """Return a fresh copy of the built-in download URL templates."""
    return {tag: layout.url_template for tag, layout in BUILDS.items()}


def parse_platform(value: Union[str, PlatformTag]) -> PlatformTag:
    """
    Convert a platform string to a PlatformTag.

    Args:
        value: Platform name ('linux', 'mac', 'win32', 'win64') or tag

    Returns:
        Matching PlatformTag

    Raises:
        UnsupportedPlatformError: If value names no supported platform
    """
    if isinstance(value, PlatformTag):
        return value
    try:
        return PlatformTag(str(value).strip().lower())
    except ValueError:
        raise UnsupportedPlatformError(value) from None


@functools.lru_cache(maxsize=1)
def detect_platform() -> Optional[PlatformTag]:
    """
    Detect the platform tag of the running host.

    This function is cached - it only runs detection once per process.

    Returns:
        PlatformTag for the host, or None when the host OS has no builds

    Example:
        >>> detect_platform()
        <PlatformTag.LINUX: 'linux'>
    """
    system = platform.system().lower()

    if system == "darwin":
        return PlatformTag.MAC
    elif system == "linux":
        return PlatformTag.LINUX
    elif system == "windows":
        return PlatformTag.WIN64 if _is_64bit_machine() else PlatformTag.WIN32
    return None


def _is_64bit_machine() -> bool:
    """Check whether the host CPU is x86-64."""
    return platform.machine().lower() in ("x86_64", "amd64", "x64")


def clear_platform_cache():
    """
    Clear the platform detection cache.

    Useful for testing, when platform functions are patched.
    """
    detect_platform.cache_clear()


__all__ = [
    "SNAPSHOT_BASE_URL",
    "PlatformTag",
    "BuildLayout",
    "BUILDS",
    "default_url_templates",
    "parse_platform",
    "detect_platform",
    "clear_platform_cache",
]
