"""
Configuration loader — reads distbuild.yml into a DistConfig.

The file lives at the distribution root.  It is optional: a
distribution without one builds with the defaults, rooted at the
working directory (or ``$DISTBUILD_ROOT`` when set).
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml

from distbuild.core.errors import ConfigError
from distbuild.core.models.config import DistConfig

logger = logging.getLogger(__name__)

# Default config filename
CONFIG_FILE = "distbuild.yml"

# Environment variable naming the distribution root
ROOT_ENV_VAR = "DISTBUILD_ROOT"


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for distbuild.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to distbuild.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def load_config(path: Path | None = None) -> DistConfig:
    """Load and validate the distribution configuration.

    Args:
        path: Explicit path to distbuild.yml. If None, searches upward
            from ``$DISTBUILD_ROOT`` or the working directory.

    Returns:
        Validated DistConfig.  ``root`` defaults to the config file's
        directory; relative roots are resolved against it.

    Raises:
        ConfigError: If an explicit file is missing, or any file is invalid.
    """
    env_root = os.environ.get(ROOT_ENV_VAR)
    base = Path(env_root) if env_root else None

    if path is None:
        path = find_config_file(base)
        if path is None:
            root = (base or Path.cwd()).resolve()
            logger.debug("No %s found; using defaults rooted at %s", CONFIG_FILE, root)
            return DistConfig(root=root)
    elif not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading distribution config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    config_dir = path.parent.resolve()
    root = Path(data.get("root") or config_dir)
    if not root.is_absolute():
        root = (config_dir / root).resolve()
    data["root"] = root

    try:
        config = DistConfig.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid distribution configuration: {e}") from e

    logger.info("Loaded config for '%s' (root=%s)", config.name, config.root)
    return config
