"""
Provision command implementation.

Ensures a Chromium build is installed locally and prints its executable path.
"""

import logging

from chromiumkit.cli.utils import build_provisioner
from chromiumkit.provisioner import ProvisionOptions

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the provision command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    provisioner = build_provisioner(args)
    options = ProvisionOptions(
        platform=args.platform,
        revision=args.revision,
        log=not (args.no_log or args.quiet),
    )

    executable = provisioner.provision(options)
    print(executable)
    return 0
