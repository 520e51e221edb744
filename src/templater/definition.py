"""Template definition files.

A definition file supplies defaults for ``templater create``::

    name: web-app
    description: Flask starter
    commands:
      - python -m venv .venv
    ignore:
      - "**/__pycache__"

JSON is accepted as well since it is a subset of YAML. Values given on
the command line take precedence over the file.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from templater.errors import DefinitionError


@dataclass(frozen=True)
class TemplateDefinition:
    """Values for creating a template, from a file and/or CLI flags."""

    name: str | None = None
    description: str | None = None
    commands: tuple[str, ...] = field(default_factory=tuple)
    ignore: tuple[str, ...] = field(default_factory=tuple)

    def overlay(self, other: TemplateDefinition) -> TemplateDefinition:
        """Return a definition where set values of `other` win.

        Lists are replaced as a whole when `other` has any entries.
        """
        return TemplateDefinition(
            name=other.name if other.name is not None else self.name,
            description=(
                other.description if other.description is not None else self.description
            ),
            commands=other.commands or self.commands,
            ignore=other.ignore or self.ignore,
        )


def _string_list(data: dict[str, Any], key: str, path: Path) -> tuple[str, ...]:
    raw = data.get(key)
    if raw is None:
        return ()
    if not isinstance(raw, list) or not all(isinstance(v, str) for v in raw):
        raise DefinitionError(f"{path}: '{key}' must be a list of strings")
    return tuple(raw)


def _optional_string(data: dict[str, Any], key: str, path: Path) -> str | None:
    raw = data.get(key)
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise DefinitionError(f"{path}: '{key}' must be a string")
    return raw


def load_definition(path: Path) -> TemplateDefinition:
    """Load a definition file.

    Raises:
        DefinitionError: If the file cannot be read or has the wrong shape.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise DefinitionError(f"Couldn't open definition file {path}: {e}") from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise DefinitionError(f"{path} is not a valid definition file: {e}") from e

    if data is None:
        return TemplateDefinition()
    if not isinstance(data, dict):
        raise DefinitionError(f"{path} must contain a mapping")

    return TemplateDefinition(
        name=_optional_string(data, "name", path),
        description=_optional_string(data, "description", path),
        commands=_string_list(data, "commands", path),
        ignore=_string_list(data, "ignore", path),
    )
