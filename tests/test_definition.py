"""Tests for template definition files."""

from pathlib import Path

import pytest

from templater.definition import TemplateDefinition, load_definition
from templater.errors import DefinitionError


def test_load_yaml(tmp_path: Path) -> None:
    path = tmp_path / "template.yaml"
    path.write_text(
        "name: web\n"
        "description: Web starter\n"
        "commands:\n  - npm install\n"
        "ignore:\n  - '**/node_modules'\n"
    )
    assert load_definition(path) == TemplateDefinition(
        name="web",
        description="Web starter",
        commands=("npm install",),
        ignore=("**/node_modules",),
    )


def test_load_json(tmp_path: Path) -> None:
    path = tmp_path / "template.json"
    path.write_text('{"name": "api", "commands": ["make"], "ignore": []}')
    definition = load_definition(path)
    assert definition.name == "api"
    assert definition.description is None
    assert definition.commands == ("make",)
    assert definition.ignore == ()


def test_empty_file(tmp_path: Path) -> None:
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert load_definition(path) == TemplateDefinition()


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(DefinitionError, match="Couldn't open"):
        load_definition(tmp_path / "missing.yaml")


@pytest.mark.parametrize(
    "content",
    [
        "name: [unclosed",
        "- a list\n",
        "name: 5\n",
        "commands: make\n",
        "ignore:\n  - 1\n",
    ],
)
def test_invalid_content(tmp_path: Path, content: str) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text(content)
    with pytest.raises(DefinitionError):
        load_definition(path)


class TestOverlay:
    """Tests for TemplateDefinition.overlay."""

    def test_flags_win_over_file(self) -> None:
        from_file = TemplateDefinition("file", "file desc", ("a",), ("*.o",))
        from_flags = TemplateDefinition("flag", None, ("b",), ())

        merged = from_file.overlay(from_flags)

        assert merged == TemplateDefinition("flag", "file desc", ("b",), ("*.o",))

    def test_empty_overlay_keeps_file(self) -> None:
        from_file = TemplateDefinition("file", "d", ("a",), ("*.o",))
        assert from_file.overlay(TemplateDefinition()) == from_file
