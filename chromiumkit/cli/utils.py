"""
Shared utilities for CLI commands.
"""

import logging

from chromiumkit.config import ProvisionerConfig, config_from_env, load_config
from chromiumkit.provisioner import Provisioner

logger = logging.getLogger(__name__)


def build_config(args) -> ProvisionerConfig:
    """
    Build the provisioner configuration for a CLI invocation.

    ``--config`` wins over ``$CHROMIUMKIT_CONFIG``; ``--install-root`` and
    ``--cache-root`` override whatever the file says.

    Raises:
        ConfigError: If the configuration file is missing or invalid
    """
    if getattr(args, "config", None):
        config = load_config(args.config)
    else:
        config = config_from_env()

    return config.with_overrides(
        install_root=getattr(args, "install_root", None),
        cache_root=getattr(args, "cache_root", None),
    )


def build_provisioner(args) -> Provisioner:
    """Create a Provisioner for the parsed arguments."""
    config = build_config(args)
    logger.debug(
        f"Install root: {config.install_root}, cache root: {config.cache_root}"
    )
    return Provisioner(config)
