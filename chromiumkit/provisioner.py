"""
Chromium provisioning: layered cache lookup, download and local install.

A provisioning call walks three layers and stops at the first hit:

1. Local install folder: the executable is already where the caller wants it
2. Shared cache (``~/.chromium-cache``): copy the build into the local folder
3. Network: download the snapshot zip into the shared cache, extract it,
   delete the zip, then copy the build into the local folder

Every copy into the local folder ends with the executable set to mode 755.
"""

import logging
import sys
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, TextIO, Union

import requests

from chromiumkit.config import ProvisionerConfig
from chromiumkit.core.download import download_file
from chromiumkit.core.exceptions import UnsupportedPlatformError
from chromiumkit.core.filesystem import (
    ensure_directory,
    extract_archive,
    make_executable,
    recursive_copy,
    safe_rmtree,
)
from chromiumkit.core.locking import LockManager
from chromiumkit.core.paths import archive_path, build_id, executable_path, folder_path
from chromiumkit.core.platform import PlatformTag, detect_platform, parse_platform
from chromiumkit.core.probe import exists

logger = logging.getLogger(__name__)


@dataclass
class ProvisionOptions:
    """Options of a single provisioning call."""

    platform: Optional[Union[str, PlatformTag]] = None
    """Target platform; defaults to the host platform"""

    revision: Optional[Union[str, int]] = None
    """Chromium revision; defaults to the configured default revision"""

    log: bool = False
    """Write start/done notices to the notice stream around a download"""


class Provisioner:
    """
    Makes a Chromium executable available in the local install folder.

    Example:
        >>> provisioner = Provisioner(ProvisionerConfig(install_root=Path("vendor")))
        >>> path = provisioner.provision(ProvisionOptions(platform="linux"))
        >>> print(path)
        /work/vendor/chromium-linux-499413/chrome-linux/chrome
    """

    def __init__(
        self,
        config: Optional[ProvisionerConfig] = None,
        lock_manager: Optional[LockManager] = None,
        session: Optional[requests.Session] = None,
        notice_stream: Optional[TextIO] = None,
    ):
        """
        Initialize provisioner.

        Args:
            config: Roots, URL templates and timeouts. If None, uses defaults.
            lock_manager: Optional lock manager. If None, locks live in
                <cache_root>/lock.
            session: Optional requests session used for downloads
            notice_stream: Where start/done notices go (default: sys.stderr)
        """
        self.config = config or ProvisionerConfig()
        self.lock_manager = lock_manager or LockManager(self.config.cache_root / "lock")
        self.session = session
        self.notice_stream = notice_stream

    # ------------------------------------------------------------------
    # Path helpers
    # ------------------------------------------------------------------

    def resolve_platform(
        self, platform: Optional[Union[str, PlatformTag]] = None
    ) -> PlatformTag:
        """
        Turn an optional platform value into a PlatformTag.

        Raises:
            UnsupportedPlatformError: If the value (or the host, when None)
                has no Chromium builds
        """
        if platform is None:
            detected = detect_platform()
            if detected is None:
                raise UnsupportedPlatformError(sys.platform)
            return detected
        return parse_platform(platform)

    def resolve_revision(self, revision: Optional[Union[str, int]] = None) -> str:
        if revision is None or str(revision) == "":
            return self.config.default_revision
        return str(revision)

    def executable_path(
        self, platform: PlatformTag, revision: str, shared: bool = False
    ) -> Path:
        """Get the executable path in the local folder (or the shared cache)."""
        root = self.config.cache_root if shared else self.config.install_root
        return executable_path(root, platform, revision)

    def folder_path(self, platform: PlatformTag, revision: str, shared: bool = False) -> Path:
        """Get the build folder in the local folder (or the shared cache)."""
        root = self.config.cache_root if shared else self.config.install_root
        return folder_path(root, platform, revision)

    # ------------------------------------------------------------------
    # Provisioning
    # ------------------------------------------------------------------

    def provision(self, options: Optional[ProvisionOptions] = None) -> Path:
        """
        Make sure the executable exists locally and return its path.

        Args:
            options: Platform, revision and notice settings

        Returns:
            Absolute path of the local executable

        Raises:
            UnsupportedPlatformError: If the platform has no builds; raised
                before any filesystem or network access
            requests.RequestException: If the download fails
            ArchiveExtractionError: If the downloaded archive can't be extracted
            OSError: If copying or chmod fails
        """
        options = options or ProvisionOptions()
        platform = self.resolve_platform(options.platform)
        revision = self.resolve_revision(options.revision)

        local_executable = self.executable_path(platform, revision)
        logger.debug(f"Local executable path {local_executable}")
        if exists(local_executable):
            return local_executable

        shared_executable = self.executable_path(platform, revision, shared=True)
        logger.debug(f"Shared executable path {shared_executable}")

        with self._build_lock(platform, revision):
            # Another caller may have finished while we waited for the lock
            if exists(local_executable):
                logger.debug("Local executable appeared while waiting for lock")
                return local_executable

            if exists(shared_executable):
                logger.debug("Copying shared cache to install folder")
                self.populate(platform, revision)
                return local_executable

            if options.log:
                self._notice(f"Downloading Chromium r{revision}...")
            self.fetch(platform, revision)
            self.populate(platform, revision)

        if options.log:
            self._notice("Done!\n")
        return local_executable

    def populate(self, platform: PlatformTag, revision: str) -> None:
        """
        Copy a build from the shared cache into the local install folder.

        Raises:
            FileNotFoundError: If the shared build folder does not exist
            OSError: If copying or setting permissions fails
        """
        source = self.folder_path(platform, revision, shared=True)
        destination = self.folder_path(platform, revision)

        ensure_directory(destination)
        logger.debug(f"Copying {source} to {destination}")
        recursive_copy(source, destination)
        make_executable(self.executable_path(platform, revision))

    def fetch(self, platform: PlatformTag, revision: str) -> None:
        """
        Download and extract a build into the shared cache.

        The archive is extracted into a staging folder that is renamed into
        place once extraction succeeded.

        Raises:
            UnsupportedPlatformError: If no URL template exists for platform
            requests.RequestException: If the download fails
            ArchiveExtractionError: If extraction fails
        """
        template = self.config.url_templates.get(platform)
        if not template:
            raise UnsupportedPlatformError(platform)
        url = template.replace("{revision}", revision)
        logger.debug(f"Download url {url}")

        cache_root = self.config.cache_root
        self._ensure_cache_root()

        folder = self.folder_path(platform, revision, shared=True)
        zip_path = archive_path(cache_root, platform, revision)
        staging = folder.with_name(f"{folder.name}.partial")

        download_file(
            url, zip_path, timeout=self.config.download_timeout, session=self.session
        )

        logger.debug(f"Extracting {zip_path}")
        if staging.exists():
            safe_rmtree(staging, require_prefix=cache_root)
        extract_archive(zip_path, staging)
        if folder.exists():
            safe_rmtree(folder, require_prefix=cache_root)
        staging.rename(folder)

        logger.debug("Cleaning up")
        self._remove_archive(zip_path)

    def clean(self, platform: PlatformTag, revision: str, shared: bool = False) -> bool:
        """
        Remove a build folder from the local install folder (or shared cache).

        Returns:
            True if a folder was removed, False if there was nothing to remove
        """
        root = self.config.cache_root if shared else self.config.install_root
        folder = folder_path(root, platform, revision)
        if not folder.exists():
            return False
        safe_rmtree(folder, require_prefix=root)
        logger.info(f"Removed {folder}")
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ensure_cache_root(self):
        """Create the cache root if possible; a failure is not fatal here."""
        try:
            self.config.cache_root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.debug(f"Could not create cache root {self.config.cache_root}: {e}")

    def _remove_archive(self, zip_path: Path):
        """Delete the downloaded archive; the build is usable either way."""
        try:
            zip_path.unlink()
        except OSError as e:
            logger.warning(f"Failed to remove archive {zip_path}: {e}")

    @contextmanager
    def _build_lock(self, platform: PlatformTag, revision: str):
        if not self.config.use_lock:
            yield
            return

        try:
            ensure_directory(self.lock_manager.lock_dir)
        except OSError as e:
            logger.warning(f"Cannot create lock directory, continuing unlocked: {e}")
            yield
            return

        with self.lock_manager.build_lock(
            build_id(platform, revision), timeout=self.config.lock_timeout
        ):
            yield

    def _notice(self, message: str):
        stream = self.notice_stream or sys.stderr
        stream.write(message)
        stream.flush()


# Convenience function for one-off provisioning
def provision(
    platform: Optional[Union[str, PlatformTag]] = None,
    revision: Optional[Union[str, int]] = None,
    log: bool = False,
    config: Optional[ProvisionerConfig] = None,
) -> Path:
    """
    Convenience function to provision Chromium.

    Creates a provisioner and performs one call. For repeated calls, create
    a Provisioner instance and reuse it.

    Example:
        >>> from chromiumkit import provision
        >>> provision(platform="linux", revision="499413", log=True)
        PosixPath('/work/.chromiumkit/chromium-linux-499413/chrome-linux/chrome')
    """
    provisioner = Provisioner(config)
    return provisioner.provision(
        ProvisionOptions(platform=platform, revision=revision, log=log)
    )


__all__ = ["ProvisionOptions", "Provisioner", "provision"]
