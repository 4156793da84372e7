"""
Path command implementation.

Prints where a build's executable lives without downloading anything.
"""

import logging

from chromiumkit.cli.utils import build_provisioner
from chromiumkit.core.probe import exists

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the path command.

    Args:
        args: Parsed command-line arguments

    Returns:
        0 if the executable exists, 1 otherwise
    """
    provisioner = build_provisioner(args)
    platform = provisioner.resolve_platform(args.platform)
    revision = provisioner.resolve_revision(args.revision)

    executable = provisioner.executable_path(platform, revision, shared=args.shared)
    print(executable)

    if not exists(executable):
        logger.info("Not installed")
        return 1
    return 0
