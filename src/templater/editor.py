"""Interactive metadata editing through an external text editor."""

from __future__ import annotations

import logging
import shlex
import subprocess
import tempfile
from pathlib import Path
from typing import Any

import yaml

from templater.errors import EditorError, ParseError
from templater.metadata import TemplateMetadata

logger = logging.getLogger(__name__)

EDIT_HEADER = """\
# Edit the template metadata below, then save and close the editor.
# Commands run in order inside the expanded project directory.
"""


def metadata_to_text(metadata: TemplateMetadata) -> str:
    """Render metadata as an editable YAML document."""
    data = {
        "name": metadata.name,
        "description": metadata.description,
        "commands": list(metadata.commands),
    }
    body = yaml.safe_dump(
        data, default_flow_style=False, sort_keys=False, allow_unicode=True
    )
    return EDIT_HEADER + body


def _require_str(data: dict[str, Any], key: str, default: str) -> str:
    value = data.get(key, default)
    if value is None:
        return default
    if not isinstance(value, str):
        raise ParseError(f"'{key}' must be a string, got {type(value).__name__}")
    return value


def metadata_from_text(text: str) -> TemplateMetadata:
    """Parse edited YAML text back into metadata.

    Raises:
        ParseError: If the text is not valid YAML, not a mapping, has no
            name, or has fields of the wrong type.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ParseError(f"Edited metadata is not valid YAML: {e}") from e

    if not isinstance(data, dict):
        raise ParseError("Edited metadata must be a mapping with name/description/commands")

    name = _require_str(data, "name", "").strip()
    if not name:
        raise ParseError("'name' is required")
    description = _require_str(data, "description", "")

    commands_raw = data.get("commands")
    if commands_raw is None:
        commands_raw = []
    if not isinstance(commands_raw, list):
        raise ParseError("'commands' must be a list of strings")
    for index, command in enumerate(commands_raw):
        if not isinstance(command, str):
            raise ParseError(f"commands[{index}] must be a string")

    return TemplateMetadata(name=name, description=description, commands=tuple(commands_raw))


def edit_text(text: str, editor: str, suffix: str = ".yaml") -> str:
    """Open text in the editor and return the saved result.

    Blocks until the editor process exits. The editor value may carry
    arguments, e.g. ``"code --wait"``.

    Raises:
        EditorError: If the editor cannot be started or exits non-zero.
    """
    with tempfile.NamedTemporaryFile(
        "w", suffix=suffix, prefix="templater-", encoding="utf-8", delete=False
    ) as f:
        f.write(text)
        path = Path(f.name)

    try:
        cmd = [*shlex.split(editor), str(path)]
        logger.info("Launching editor: %s", shlex.join(cmd))
        try:
            result = subprocess.run(cmd)
        except FileNotFoundError as e:
            raise EditorError(f"Editor not found: {editor}") from e
        if result.returncode != 0:
            raise EditorError(f"Editor exited with code {result.returncode}")
        return path.read_text(encoding="utf-8")
    finally:
        path.unlink(missing_ok=True)


def edit_metadata(metadata: TemplateMetadata, editor: str) -> TemplateMetadata:
    """Let the user edit metadata in the editor and parse the result."""
    return metadata_from_text(edit_text(metadata_to_text(metadata), editor))
