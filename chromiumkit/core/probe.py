"""
Side-effect free existence checks for cached builds.

A cache lookup never fails: any error raised while reading a path's metadata
is treated as a miss. ``probe`` keeps the distinction visible so callers and
tests can tell a genuine miss from a collapsed error.
"""

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Union

logger = logging.getLogger(__name__)


class ProbeResult(Enum):
    """Outcome of probing a path."""

    FOUND = "found"
    NOT_FOUND = "not-found"
    ERROR = "error"  # stat failed for another reason, treated as not found

    @property
    def exists(self) -> bool:
        return self is ProbeResult.FOUND


def probe(path: Union[str, Path]) -> ProbeResult:
    """
    Check whether ``path`` exists by reading its metadata.

    Args:
        path: Path to check

    Returns:
        FOUND if stat succeeds, NOT_FOUND if the path is missing,
        ERROR for any other stat failure (e.g. permission denied)
    """
    try:
        os.stat(path)
    except FileNotFoundError:
        return ProbeResult.NOT_FOUND
    except (OSError, ValueError) as e:
        logger.debug(f"Treating {path} as missing: {e}")
        return ProbeResult.ERROR
    return ProbeResult.FOUND


def exists(path: Union[str, Path]) -> bool:
    """Return True only when ``path`` could be stat'ed."""
    return probe(path).exists


__all__ = ["ProbeResult", "probe", "exists"]
