"""
Clean command implementation.

Removes a build from the install folder or the shared cache.
"""

import logging

from chromiumkit.cli.utils import build_provisioner

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the clean command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    provisioner = build_provisioner(args)
    platform = provisioner.resolve_platform(args.platform)
    revision = provisioner.resolve_revision(args.revision)
    folder = provisioner.folder_path(platform, revision, shared=args.shared)

    if args.dry_run:
        if folder.exists():
            print(f"Would remove {folder}")
        else:
            print(f"Nothing to remove at {folder}")
        return 0

    if not provisioner.clean(platform, revision, shared=args.shared):
        logger.info(f"Nothing to remove at {folder}")
    return 0
