"""
Concurrent access control for ChromiumKit.

Two provisioning calls for the same build would otherwise both download,
both extract into the same shared folder and both copy into the same local
folder. A per-build file lock serializes that work across threads and
processes; the second caller re-checks the caches once it holds the lock.

Usage:
    from chromiumkit.core.locking import LockManager

    lock_manager = LockManager(Path.home() / ".chromium-cache" / "lock")
    with lock_manager.build_lock("chromium-linux-499413", timeout=600):
        # fetch and populate
        pass
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Optional, Union

from filelock import FileLock, Timeout as LockTimeout

logger = logging.getLogger(__name__)


class LockManager:
    """
    Hands out per-build file locks.

    The lock directory is created on first use so that constructing a
    manager has no filesystem side effects.

    Attributes:
        lock_dir: Directory where lock files are stored
    """

    def __init__(self, lock_dir: Union[str, Path]):
        self.lock_dir = Path(lock_dir)

    def lock_path(self, build_id: str) -> Path:
        """Get the lock file guarding ``build_id``."""
        safe_id = build_id.replace("/", "-").replace("\\", "-").replace(":", "-")
        return self.lock_dir / f"{safe_id}.lock"

    @contextmanager
    def build_lock(self, build_id: str, timeout: Optional[float] = 600):
        """
        Acquire the lock for one build (download, extraction and local copy).

        Args:
            build_id: Build folder name (e.g., 'chromium-linux-499413')
            timeout: Maximum wait in seconds, None to wait forever

        Yields:
            None

        Raises:
            LockTimeout: If the lock can't be acquired within timeout
        """
        self.lock_dir.mkdir(parents=True, exist_ok=True)
        lock_path = self.lock_path(build_id)
        lock = FileLock(lock_path, timeout=-1 if timeout is None else timeout)

        try:
            with lock:
                logger.debug(f"Acquired build lock: {lock_path}")
                yield
                logger.debug(f"Released build lock: {lock_path}")
        except LockTimeout as e:
            logger.error(
                f"Could not acquire lock for {build_id} after {timeout}s. "
                "Another process may be downloading this build."
            )
            raise LockTimeout(str(lock_path)) from e


__all__ = ["LockManager", "LockTimeout"]
