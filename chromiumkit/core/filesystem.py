"""
Cross-platform file system utilities for ChromiumKit.

This module provides the file operations the provisioner is built on:
- Zip extraction with traversal checks, preserved permission bits and symlinks
- Recursive directory copy
- Executable permission fixing
- Safe deletion and idempotent directory creation
"""

import os
import shutil
import stat
import sys
import zipfile
from pathlib import Path
from typing import Optional, Union

from chromiumkit.core.exceptions import (
    ArchiveExtractionError,
    FilesystemError,
    InsecureArchiveError,
)

# Platform detection
IS_WINDOWS = os.name == "nt"
IS_UNIX = not IS_WINDOWS

EXECUTABLE_MODE = 0o755


# ============================================================================
# Path Utilities
# ============================================================================


def is_relative_to(path: Path, parent: Path) -> bool:
    """
    Check if ``path`` is located under ``parent``.

    Example:
        >>> is_relative_to(Path('/a/b/c'), Path('/a'))
        True
    """
    try:
        path.relative_to(parent)
        return True
    except ValueError:
        return False


def ensure_directory(path: Union[str, Path]) -> Path:
    """
    Ensure a directory exists (idempotent).

    Args:
        path: Directory path

    Returns:
        Path object for the directory
    """
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


# ============================================================================
# Archive Extraction
# ============================================================================


def _validate_archive_path(name: str, destination: Path) -> None:
    """
    Validate that an archive member path is safe to extract.

    Raises:
        InsecureArchiveError: If the member resolves outside ``destination``
    """
    member_path = (destination / name).resolve()

    if not is_relative_to(member_path, destination.resolve()):
        raise InsecureArchiveError(
            f"Archive member '{name}' attempts directory traversal. "
            "This is a security risk and extraction has been blocked."
        )


def extract_archive(archive_path: Union[str, Path], destination: Union[str, Path]) -> None:
    """
    Extract a zip archive into ``destination``.

    Chromium snapshots are zip files whose members carry Unix mode bits
    (helper binaries, the macOS framework symlinks). Those are restored on
    Unix hosts; ``zipfile`` alone would drop them.

    Args:
        archive_path: Path to the .zip file
        destination: Directory to extract into (created if missing)

    Raises:
        ArchiveExtractionError: If the archive is missing or corrupt
        InsecureArchiveError: If a member would escape ``destination``

    Example:
        >>> extract_archive('chromium-linux-499413.zip', 'chromium-linux-499413')
    """
    archive_path = Path(archive_path)
    destination = Path(destination)

    if not archive_path.exists():
        raise ArchiveExtractionError(f"Archive not found: {archive_path}")

    destination.mkdir(parents=True, exist_ok=True)

    try:
        with zipfile.ZipFile(archive_path, "r") as zf:
            members = zf.infolist()

            # Validate all paths first
            for member in members:
                _validate_archive_path(member.filename, destination)

            for member in members:
                _extract_member(zf, member, destination)
    except InsecureArchiveError:
        raise
    except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError) as e:
        raise ArchiveExtractionError(f"Failed to extract {archive_path}: {e}") from e


def _extract_member(zf: zipfile.ZipFile, member: zipfile.ZipInfo, destination: Path):
    """
    Extract one member, restoring symlinks and mode bits on Unix.

    Paths are checked again at extraction time: symlinks created by earlier
    members change where later members resolve to.
    """
    mode = member.external_attr >> 16

    if IS_UNIX and stat.S_ISLNK(mode):
        target = destination / member.filename
        link_text = zf.read(member).decode("utf-8")
        _validate_archive_path(str(Path(member.filename).parent), destination)
        _validate_link_target(member.filename, link_text, target, destination)

        target.parent.mkdir(parents=True, exist_ok=True)
        if target.is_dir() and not target.is_symlink():
            raise ArchiveExtractionError(
                f"Cannot create symlink '{member.filename}': "
                "a directory already exists at that path"
            )
        if target.is_symlink() or target.exists():
            target.unlink()
        os.symlink(link_text, target)
        return

    _validate_archive_path(member.filename, destination)
    extracted = Path(zf.extract(member, destination))

    if IS_UNIX and not member.is_dir() and stat.S_IMODE(mode):
        os.chmod(extracted, stat.S_IMODE(mode))


def _validate_link_target(name: str, link_text: str, link: Path, destination: Path) -> None:
    """
    Validate that a symlink member points inside ``destination``.

    Raises:
        InsecureArchiveError: If the target is absolute or resolves outside
    """
    if os.path.isabs(link_text) or not is_relative_to(
        (link.parent / link_text).resolve(), destination.resolve()
    ):
        raise InsecureArchiveError(
            f"Archive symlink '{name}' -> '{link_text}' points outside the "
            "destination. Extraction has been blocked."
        )


# ============================================================================
# Copy, Permissions, Deletion
# ============================================================================


def recursive_copy(source: Union[str, Path], destination: Union[str, Path]) -> None:
    """
    Recursively copy a directory tree into ``destination``.

    Existing files in ``destination`` are overwritten; symlinks are copied as
    symlinks.

    Raises:
        FileNotFoundError: If ``source`` does not exist
        NotADirectoryError: If ``source`` is not a directory
        shutil.Error: If one or more files could not be copied
    """
    source = Path(source)
    destination = Path(destination)

    if not source.exists():
        raise FileNotFoundError(f"Source does not exist: {source}")

    if not source.is_dir():
        raise NotADirectoryError(f"Source is not a directory: {source}")

    shutil.copytree(source, destination, symlinks=True, dirs_exist_ok=True)


def make_executable(path: Union[str, Path]) -> None:
    """Set ``path`` to mode 755 regardless of its current mode."""
    os.chmod(path, EXECUTABLE_MODE)


def safe_rmtree(
    path: Union[str, Path], require_prefix: Optional[Union[str, Path]] = None
) -> None:
    """
    Safely remove a directory tree with safeguards.

    Args:
        path: Directory to remove
        require_prefix: If specified, path must be under this directory

    Raises:
        ValueError: If path is not under require_prefix
        FilesystemError: If deletion fails

    Example:
        >>> safe_rmtree('~/.chromium-cache/chromium-linux-1', require_prefix='~/.chromium-cache')
    """
    path = Path(path).resolve()

    if require_prefix is not None:
        require_prefix = Path(require_prefix).resolve()
        if not is_relative_to(path, require_prefix):
            raise ValueError(
                f"Refusing to delete '{path}': not under required prefix '{require_prefix}'"
            )

    if not path.exists():
        return  # Already gone, nothing to do

    if not path.is_dir():
        raise FilesystemError(f"Path is not a directory: {path}")

    def handle_remove_readonly(func, failed_path, exc):
        """Retry once after making a read-only entry writable."""
        if not os.access(failed_path, os.W_OK):
            os.chmod(failed_path, stat.S_IWRITE | stat.S_IREAD | stat.S_IEXEC)
            func(failed_path)
        else:
            raise exc if isinstance(exc, BaseException) else exc[1]

    try:
        if sys.version_info >= (3, 12):
            shutil.rmtree(path, onexc=handle_remove_readonly)
        else:
            shutil.rmtree(path, onerror=handle_remove_readonly)
    except OSError as e:
        raise FilesystemError(f"Failed to remove directory '{path}': {e}") from e


__all__ = [
    "EXECUTABLE_MODE",
    "is_relative_to",
    "ensure_directory",
    "extract_archive",
    "recursive_copy",
    "make_executable",
    "safe_rmtree",
]
