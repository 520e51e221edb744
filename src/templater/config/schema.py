"""Configuration schema for templater."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Literal, cast

CompressionType = Literal["gz", "none"]

DEFAULT_EDITOR = "vim"


@dataclass(frozen=True)
class TemplaterConfig:
    """Templater configuration schema.

    None values indicate "not set" and are filled from defaults on merge.
    """

    # Where archives are stored; defaults to the templater home directory
    storage_dir: str | None = None

    # Editor used by `templater edit`
    editor: str | None = None

    # Capture policy
    allow_empty: bool | None = None
    compression: CompressionType | None = None

    # Expand policy
    stop_on_failure: bool | None = None

    def merge(self, other: TemplaterConfig) -> TemplaterConfig:
        """Merge another config into this one.

        Values from `other` take precedence when they are not None.
        Returns a new TemplaterConfig instance.
        """
        return TemplaterConfig(
            storage_dir=(
                other.storage_dir if other.storage_dir is not None else self.storage_dir
            ),
            editor=other.editor if other.editor is not None else self.editor,
            allow_empty=(
                other.allow_empty if other.allow_empty is not None else self.allow_empty
            ),
            compression=(
                other.compression if other.compression is not None else self.compression
            ),
            stop_on_failure=(
                other.stop_on_failure
                if other.stop_on_failure is not None
                else self.stop_on_failure
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary, excluding None values."""
        result: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not None:
                result[f.name] = value
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TemplaterConfig:
        """Create a TemplaterConfig from a dictionary.

        Unknown keys and values of the wrong type are ignored.
        """
        storage_dir_raw = data.get("storage_dir")
        storage_dir = str(storage_dir_raw) if storage_dir_raw else None
        editor_raw = data.get("editor")
        editor = str(editor_raw) if editor_raw else None

        allow_empty_raw = data.get("allow_empty")
        allow_empty = bool(allow_empty_raw) if allow_empty_raw is not None else None

        compression_raw = data.get("compression")
        compression: CompressionType | None = None
        if compression_raw in ("gz", "none"):
            compression = cast(CompressionType, compression_raw)

        stop_raw = data.get("stop_on_failure")
        stop_on_failure = bool(stop_raw) if stop_raw is not None else None

        return cls(
            storage_dir=storage_dir,
            editor=editor,
            allow_empty=allow_empty,
            compression=compression,
            stop_on_failure=stop_on_failure,
        )


# Default configuration values (used when not specified anywhere)
DEFAULT_CONFIG = TemplaterConfig(
    allow_empty=False,
    compression="gz",
    stop_on_failure=False,
)
