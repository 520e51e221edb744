"""Configuration loading."""

from templater.config.loader import (
    get_config_path,
    get_templater_home,
    load_config,
    resolve_editor,
    resolve_storage_dir,
    save_config,
)
from templater.config.schema import DEFAULT_CONFIG, DEFAULT_EDITOR, TemplaterConfig

__all__ = [
    "DEFAULT_CONFIG",
    "DEFAULT_EDITOR",
    "TemplaterConfig",
    "get_config_path",
    "get_templater_home",
    "load_config",
    "resolve_editor",
    "resolve_storage_dir",
    "save_config",
]
