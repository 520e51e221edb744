"""Tests for tree rendering."""

from collections.abc import Callable
from pathlib import Path, PurePosixPath

from templater.archive import TreeEntry, pack
from templater.metadata import TemplateMetadata
from templater.tree import render, render_entries


def _entry(path: str, is_dir: bool = False) -> TreeEntry:
    return TreeEntry(path=PurePosixPath(path), is_dir=is_dir)


def test_render_artifact(make_tree: Callable[..., Path]) -> None:
    """Children are drawn alphabetically within each directory."""
    source = make_tree(
        {
            "src/util/helpers.c": "",
            "src/main.c": "",
            "docs/guide.md": "",
            "README.md": "",
        }
    )
    artifact = pack(source, TemplateMetadata("demo"))

    assert render(artifact) == "\n".join(
        [
            ".",
            "├── README.md",
            "├── docs",
            "│   └── guide.md",
            "└── src",
            "    ├── main.c",
            "    └── util",
            "        └── helpers.c",
        ]
    )


def test_render_uses_root_label(make_tree: Callable[..., Path]) -> None:
    artifact = pack(make_tree({"a.txt": "a"}), TemplateMetadata("demo"))
    assert render(artifact, root_label="demo") == "demo\n└── a.txt"


def test_render_keeps_insertion_order() -> None:
    """Entries are not re-sorted; capture order is what gets drawn."""
    entries = [_entry("z.txt"), _entry("a.txt")]
    assert render_entries(entries) == ".\n├── z.txt\n└── a.txt"


def test_render_implicit_directories() -> None:
    """Parents missing from the index are still drawn."""
    assert render_entries([_entry("a/b/c.txt")]) == "\n".join(
        [".", "└── a", "    └── b", "        └── c.txt"]
    )


def test_render_empty_directory_as_leaf() -> None:
    entries = [_entry("logs", is_dir=True), _entry("main.c")]
    assert render_entries(entries) == ".\n├── logs\n└── main.c"


def test_render_empty_tree() -> None:
    assert render_entries([]) == "."


def test_render_nested_pipes() -> None:
    """A directory that is not last keeps a vertical pipe for its children."""
    entries = [
        _entry("a", is_dir=True),
        _entry("a/x", is_dir=True),
        _entry("a/x/1.txt"),
        _entry("a/y.txt"),
        _entry("b.txt"),
    ]
    assert render_entries(entries) == "\n".join(
        [
            ".",
            "├── a",
            "│   ├── x",
            "│   │   └── 1.txt",
            "│   └── y.txt",
            "└── b.txt",
        ]
    )
