"""
Path derivation for Chromium builds.

Every build lives in its own folder named after its platform and revision,
under either the shared cache root or a local install root:

    <root>/chromium-<platform>-<revision>/<executable subpath>

These functions are pure; nothing here touches the filesystem.
"""

from pathlib import Path
from typing import Union

from chromiumkit.core.platform import BUILDS, PlatformTag


def build_id(platform: PlatformTag, revision: str) -> str:
    """
    Get the folder name identifying a build.

    Example:
        >>> build_id(PlatformTag.LINUX, "499413")
        'chromium-linux-499413'
    """
    return f"chromium-{platform}-{revision}"


def folder_path(root: Union[str, Path], platform: PlatformTag, revision: str) -> Path:
    """
    Get the folder holding a build under ``root``.

    Args:
        root: Cache root or local install root
        platform: Target platform
        revision: Chromium revision

    Returns:
        Path to the build folder
    """
    return Path(root) / build_id(platform, revision)


def executable_path(
    root: Union[str, Path], platform: PlatformTag, revision: str
) -> Path:
    """
    Get the browser executable of a build under ``root``.

    Example:
        >>> executable_path("/opt", PlatformTag.LINUX, "499413")
        PosixPath('/opt/chromium-linux-499413/chrome-linux/chrome')
    """
    subpath = BUILDS[platform].executable_subpath
    return folder_path(root, platform, revision).joinpath(*subpath.split("/"))


def archive_path(root: Union[str, Path], platform: PlatformTag, revision: str) -> Path:
    """Get the temporary download location, a ``.zip`` sibling of the build folder."""
    folder = folder_path(root, platform, revision)
    return folder.with_name(f"{folder.name}.zip")


__all__ = ["build_id", "folder_path", "executable_path", "archive_path"]
