"""Configuration file loading and CLI override merging.

Extracted from loaderkit.py to keep the entrypoint slim. Reads the ``resolve``
section of a YAML file and merges it under CLI flags. Never raises; bad input
is logged and ignored.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional

import yaml

from constants import Constants

logger = logging.getLogger(__name__)


def _string_list(key: str, value: Any) -> Optional[List[str]]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return list(value)
    logger.warning("Ignoring config key '%s': expected a string or list of strings", key)
    return None


def load_config(config_path: Optional[str]) -> Dict[str, Any]:
    """Load the ``resolve`` section of a YAML configuration file.

    Args:
        config_path: Path to the YAML file, or None.

    Returns:
        Dict with any of ``mode``, ``conditions``, ``extensions`` and ``parent``.
        Empty when the file is absent or unusable.
    """
    if not config_path:
        return {}

    if not os.path.isfile(config_path):
        logger.warning("Config file not found: %s", config_path)
        return {}

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Failed to load config %s: %s", config_path, e)
        return {}

    if not isinstance(data, dict):
        return {}
    section = data.get(Constants.CONFIG_SECTION)
    if not isinstance(section, dict):
        return {}

    config: Dict[str, Any] = {}
    mode = section.get("mode")
    if mode is not None:
        if isinstance(mode, str) and mode.lower() in Constants.SUPPORTED_MODES:
            config["mode"] = mode.lower()
        else:
            logger.warning("Ignoring unsupported mode in config: %r", mode)
    for key in ("conditions", "extensions"):
        if key in section:
            values = _string_list(key, section[key])
            if values is not None:
                config[key] = values
    parent = section.get("parent")
    if parent is not None:
        if isinstance(parent, str) and parent:
            config["parent"] = parent
        else:
            logger.warning("Ignoring config key 'parent': expected a string")
    return config


def apply_cli_overrides(args, config: Dict[str, Any]) -> Dict[str, Any]:
    """Merge CLI flags over file settings; CLI has highest precedence."""
    settings = dict(config)
    if getattr(args, "MODE", None):
        settings["mode"] = args.MODE
    if getattr(args, "CONDITIONS", None):
        settings["conditions"] = list(args.CONDITIONS)
    if getattr(args, "EXTENSIONS", None):
        settings["extensions"] = list(args.EXTENSIONS)
    if getattr(args, "PARENT", None):
        settings["parent"] = args.PARENT
    settings.setdefault("mode", Constants.SUPPORTED_MODES[0])
    return settings
