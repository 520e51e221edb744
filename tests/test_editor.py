"""Tests for metadata editing through an external editor."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from templater.editor import (
    edit_metadata,
    edit_text,
    metadata_from_text,
    metadata_to_text,
)
from templater.errors import EditorError, ParseError
from templater.metadata import TemplateMetadata


class TestTextFormat:
    """Tests for the YAML edit format."""

    def test_round_trip(self) -> None:
        metadata = TemplateMetadata(
            "démo",
            "Line one\nLine two",
            ("npm install", "cat <<EOF\nx: [1]\nEOF", "echo '# not a comment'"),
        )
        assert metadata_from_text(metadata_to_text(metadata)) == metadata

    def test_text_is_readable(self) -> None:
        text = metadata_to_text(TemplateMetadata("demo", "A demo", ("make",)))
        assert text.startswith("# Edit the template metadata")
        assert "name: demo" in text
        assert "- make" in text

    def test_missing_description_and_commands(self) -> None:
        assert metadata_from_text("name: demo\n") == TemplateMetadata("demo")

    def test_null_description(self) -> None:
        parsed = metadata_from_text("name: demo\ndescription:\ncommands:\n")
        assert parsed == TemplateMetadata("demo")

    def test_name_is_stripped(self) -> None:
        assert metadata_from_text("name: '  demo  '").name == "demo"

    @pytest.mark.parametrize(
        ("text", "message"),
        [
            ("name: [unclosed", "not valid YAML"),
            ("- just\n- a list\n", "must be a mapping"),
            ("", "must be a mapping"),
            ("description: no name\n", "'name' is required"),
            ("name: ''\n", "'name' is required"),
            ("name: 42\n", "'name' must be a string"),
            ("name: demo\ndescription: [1, 2]\n", "'description' must be a string"),
            ("name: demo\ncommands: make\n", "'commands' must be a list"),
            ("name: demo\ncommands:\n  - make\n  - 3\n", r"commands\[1\]"),
        ],
    )
    def test_parse_errors(self, text: str, message: str) -> None:
        with pytest.raises(ParseError, match=message):
            metadata_from_text(text)


def _editor_writing(content: str) -> MagicMock:
    """Fake subprocess.run that overwrites the edited file with content."""

    def run(cmd: list[str]) -> MagicMock:
        Path(cmd[-1]).write_text(content, encoding="utf-8")
        return MagicMock(returncode=0)

    return MagicMock(side_effect=run)


class TestEditText:
    """Tests for edit_text and edit_metadata."""

    def test_returns_saved_content(self) -> None:
        fake_run = _editor_writing("changed")
        with patch("templater.editor.subprocess.run", fake_run):
            assert edit_text("original", "vim") == "changed"

        cmd = fake_run.call_args.args[0]
        assert cmd[0] == "vim"
        assert cmd[-1].endswith(".yaml")
        assert not Path(cmd[-1]).exists()

    def test_editor_receives_current_text(self) -> None:
        seen: list[str] = []

        def run(cmd: list[str]) -> MagicMock:
            seen.append(Path(cmd[-1]).read_text(encoding="utf-8"))
            return MagicMock(returncode=0)

        with patch("templater.editor.subprocess.run", side_effect=run):
            assert edit_text("hello", "vim") == "hello"
        assert seen == ["hello"]

    def test_editor_with_arguments(self) -> None:
        fake_run = _editor_writing("x")
        with patch("templater.editor.subprocess.run", fake_run):
            edit_text("x", "code --wait")
        assert fake_run.call_args.args[0][:2] == ["code", "--wait"]

    def test_non_zero_exit(self) -> None:
        with (
            patch(
                "templater.editor.subprocess.run",
                return_value=MagicMock(returncode=1),
            ),
            pytest.raises(EditorError, match="code 1"),
        ):
            edit_text("x", "vim")

    def test_editor_not_found(self) -> None:
        with (
            patch("templater.editor.subprocess.run", side_effect=FileNotFoundError),
            pytest.raises(EditorError, match="not found"),
        ):
            edit_text("x", "no-such-editor")

    def test_edit_metadata(self) -> None:
        fake_run = _editor_writing("name: demo\ndescription: edited\ncommands: [make]\n")
        with patch("templater.editor.subprocess.run", fake_run):
            result = edit_metadata(TemplateMetadata("demo", "old"), "vim")
        assert result == TemplateMetadata("demo", "edited", ("make",))
