"""
Configuration for the wikimark server and CLI.

Settings live in a JSON file. Anything missing from the file falls back to
DEFAULT_CONFIG, and a missing or unreadable file means the defaults are used as-is.
"""

from pathlib import Path
from typing import Any, Dict, Optional, Union
import json
import logging
import os

from wikimark.core.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = 'WIKIMARK_CONFIG'
DEFAULT_CONFIG_FILE = 'config.json'

DEFAULT_CONFIG: Dict[str, Any] = {
    'documents_root': 'data/documents',
    'log_dir': 'logs',
    'debug': False,
    'host': '0.0.0.0',
    'port': 8000,
    'enable_experimental': False,
    'max_content_size': 20 * 1024 * 1024,  # 20 MB
}


def resolve_config_path(path: Optional[Union[str, Path]] = None) -> Path:
    if path:
        return Path(path)
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return Path.cwd() / DEFAULT_CONFIG_FILE


def load_config(path: Optional[Union[str, Path]] = None, strict: bool = False) -> Dict[str, Any]:
    """
    Load configuration merged over the defaults.

    With strict=True a missing or malformed file raises ConfigError instead
    of being logged and ignored.
    """
    config = dict(DEFAULT_CONFIG)
    config_file = resolve_config_path(path)

    if not config_file.exists():
        if strict:
            raise ConfigError(f"Config file not found: {config_file}")
        logger.debug(f"No config file at {config_file}, using defaults")
        return config

    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            loaded = json.load(f)
    except (OSError, ValueError) as e:
        if strict:
            raise ConfigError(f"Failed to load config {config_file}: {e}") from e
        logger.error(f"Failed to load config: {e}")
        return config

    if not isinstance(loaded, dict):
        if strict:
            raise ConfigError(f"Config root must be an object: {config_file}")
        logger.error(f"Ignoring config {config_file}: root is not an object")
        return config

    unknown = set(loaded) - set(DEFAULT_CONFIG)
    if unknown:
        logger.warning(f"Unknown config keys ignored: {sorted(unknown)}")
    config.update({k: v for k, v in loaded.items() if k in DEFAULT_CONFIG})
    logger.info(f"Configuration loaded from {config_file}")
    return config


def save_config(config: Dict[str, Any], path: Optional[Union[str, Path]] = None):
    config_file = resolve_config_path(path)
    try:
        with open(config_file, 'w', encoding='utf-8') as f:
            json.dump(config, f, indent=2)
        logger.info("Configuration saved successfully")
    except OSError as e:
        logger.error(f"Failed to save config: {e}")
        raise ConfigError(str(e)) from e
