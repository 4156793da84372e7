"""YAML configuration for ChromiumKit.

Configuration is an explicit ``ProvisionerConfig`` handed to the provisioner,
so the cache root, install root and download URLs can be redirected (in tests
or by users) without touching the real home directory or network.

Example ``chromiumkit.yaml``::

    cache_root: ~/.chromium-cache
    install_root: .chromiumkit
    revision: "499413"
    download_timeout: 300
    url_templates:
      linux: https://mirror.example.com/Linux_x64/{revision}/chrome-linux.zip
"""

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, Optional

import yaml

from chromiumkit.core.exceptions import ConfigError, UnsupportedPlatformError
from chromiumkit.core.platform import PlatformTag, default_url_templates, parse_platform

logger = logging.getLogger(__name__)

DEFAULT_REVISION = "499413"
CONFIG_ENV_VAR = "CHROMIUMKIT_CONFIG"

_KNOWN_KEYS = {
    "cache_root",
    "install_root",
    "revision",
    "url_templates",
    "download_timeout",
    "lock_timeout",
    "use_lock",
}


def default_cache_root() -> Path:
    """Shared user-level cache: ``~/.chromium-cache``."""
    return Path.home() / ".chromium-cache"


def default_install_root() -> Path:
    """Project-local install folder: ``<cwd>/.chromiumkit``."""
    return Path.cwd() / ".chromiumkit"


@dataclass
class ProvisionerConfig:
    """Settings of a Provisioner."""

    cache_root: Path = field(default_factory=default_cache_root)
    install_root: Path = field(default_factory=default_install_root)
    default_revision: str = DEFAULT_REVISION
    url_templates: Dict[PlatformTag, str] = field(default_factory=default_url_templates)
    download_timeout: Optional[float] = None  # None waits indefinitely
    lock_timeout: Optional[float] = 600
    use_lock: bool = True

    def __post_init__(self):
        self.cache_root = Path(self.cache_root).expanduser().absolute()
        self.install_root = Path(self.install_root).expanduser().absolute()
        self.default_revision = str(self.default_revision)

    def with_overrides(self, **changes) -> "ProvisionerConfig":
        """Return a copy with the given non-None fields replaced."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


def load_config(config_path: Path, required: bool = True) -> ProvisionerConfig:
    """
    Load a ProvisionerConfig from a YAML file.

    Relative paths in the file are resolved against the file's directory.

    Args:
        config_path: Path to the YAML file
        required: If False, a missing file yields the default configuration

    Returns:
        Parsed configuration

    Raises:
        ConfigError: If the file is missing (and required) or invalid
    """
    config_path = Path(config_path)

    if not config_path.exists():
        if required:
            raise ConfigError(f"Configuration file not found: {config_path}")
        logger.debug(f"Config file not found (optional): {config_path}")
        return ProvisionerConfig()

    logger.debug(f"Loading configuration from {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}")

    return _parse_and_validate(data or {}, config_path.parent)


def config_from_env() -> ProvisionerConfig:
    """Load the file named by ``CHROMIUMKIT_CONFIG``, or the defaults."""
    config_file = os.environ.get(CONFIG_ENV_VAR)
    if not config_file:
        return ProvisionerConfig()
    return load_config(Path(config_file))


def _parse_and_validate(data: dict, base_dir: Path) -> ProvisionerConfig:
    """Parse and validate configuration data."""
    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a mapping")

    unknown = set(data) - _KNOWN_KEYS
    if unknown:
        raise ConfigError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

    kwargs = {}

    for key in ("cache_root", "install_root"):
        if key in data:
            kwargs[key] = _resolve_path(data[key], base_dir, key)

    if "revision" in data:
        if data["revision"] is None or str(data["revision"]).strip() == "":
            raise ConfigError("revision cannot be empty")
        kwargs["default_revision"] = str(data["revision"])

    for key in ("download_timeout", "lock_timeout"):
        if key in data:
            kwargs[key] = _parse_timeout(data[key], key)

    if "use_lock" in data:
        if not isinstance(data["use_lock"], bool):
            raise ConfigError("use_lock must be true or false")
        kwargs["use_lock"] = data["use_lock"]

    if "url_templates" in data:
        kwargs["url_templates"] = _parse_url_templates(data["url_templates"])

    return ProvisionerConfig(**kwargs)


def _resolve_path(value, base_dir: Path, key: str) -> Path:
    """Expand ``~`` and anchor relative paths at ``base_dir``."""
    if not isinstance(value, str) or not value:
        raise ConfigError(f"{key} must be a non-empty path")
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = base_dir / path
    return path


def _parse_timeout(value, key: str) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise ConfigError(f"{key} must be a non-negative number or null")
    return float(value)


def _parse_url_templates(data) -> Dict[PlatformTag, str]:
    """Overlay user templates on the built-in table."""
    if not isinstance(data, dict):
        raise ConfigError("url_templates must be a mapping of platform to URL")

    templates = default_url_templates()
    for name, template in data.items():
        try:
            tag = parse_platform(name)
        except UnsupportedPlatformError:
            raise ConfigError(
                f"url_templates: unknown platform '{name}' "
                f"(expected one of {[t.value for t in PlatformTag]})"
            )
        if not isinstance(template, str) or "{revision}" not in template:
            raise ConfigError(
                f"url_templates.{name} must be a string containing '{{revision}}'"
            )
        templates[tag] = template

    return templates


__all__ = [
    "DEFAULT_REVISION",
    "CONFIG_ENV_VAR",
    "ProvisionerConfig",
    "default_cache_root",
    "default_install_root",
    "load_config",
    "config_from_env",
]
