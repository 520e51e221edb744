"""Configuration file loading and resolution."""

import logging
import os
from pathlib import Path

import yaml

from templater.config.schema import DEFAULT_CONFIG, DEFAULT_EDITOR, TemplaterConfig

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.yaml"
HOME_ENV_VAR = "TEMPLATER_HOME"


def get_templater_home() -> Path:
    """Get the templater home: $TEMPLATER_HOME or ~/.templater."""
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".templater"


def get_config_path() -> Path:
    """Get path to the config file: <home>/config.yaml."""
    return get_templater_home() / CONFIG_FILENAME


def load_yaml_config(path: Path) -> dict[str, object] | None:
    """Load a YAML config file, return None if not found, empty or invalid."""
    if not path.exists():
        return None
    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError:
        logger.warning("Ignoring malformed config file %s", path)
        return None
    if not isinstance(data, dict):
        return None
    result: dict[str, object] = data
    return result


def load_config(path: Path | None = None) -> TemplaterConfig:
    """Load configuration layered over the built-in defaults.

    Precedence (lowest to highest):
    1. Built-in defaults
    2. Config file (<home>/config.yaml)
    """
    config = DEFAULT_CONFIG
    data = load_yaml_config(path or get_config_path())
    if data:
        config = config.merge(TemplaterConfig.from_dict(data))
    return config


def save_config(config: TemplaterConfig, path: Path) -> None:
    """Save config to a YAML file, creating parent directories if needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)


def resolve_editor(config: TemplaterConfig) -> str:
    """Resolve the editor command once at startup.

    Precedence: config value, then $EDITOR, then vim.
    """
    return config.editor or os.environ.get("EDITOR") or DEFAULT_EDITOR


def resolve_storage_dir(config: TemplaterConfig) -> Path:
    """Resolve the directory holding template archives."""
    if config.storage_dir:
        return Path(config.storage_dir).expanduser()
    return get_templater_home()
