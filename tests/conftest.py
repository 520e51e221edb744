"""Shared fixtures for templater tests."""

from collections.abc import Callable
from pathlib import Path

import pytest

from templater.store import TemplateStore

TreeSpec = dict[str, str | bytes | None]


def write_tree(root: Path, spec: TreeSpec) -> Path:
    """Create files under root. A None value creates an empty directory."""
    root.mkdir(parents=True, exist_ok=True)
    for rel, content in spec.items():
        path = root / rel
        if content is None:
            path.mkdir(parents=True, exist_ok=True)
            continue
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
    return root


def read_tree(root: Path) -> dict[str, bytes]:
    """Map relative POSIX path -> bytes for every regular file under root."""
    return {
        p.relative_to(root).as_posix(): p.read_bytes()
        for p in sorted(root.rglob("*"))
        if p.is_file() and not p.is_symlink()
    }


@pytest.fixture
def make_tree(tmp_path: Path) -> Callable[..., Path]:
    """Build a source directory from a {relative path: content} mapping."""

    def _make(spec: TreeSpec, name: str = "source") -> Path:
        return write_tree(tmp_path / name, spec)

    return _make


@pytest.fixture
def store(tmp_path: Path) -> TemplateStore:
    """A template store rooted in a temporary directory."""
    return TemplateStore(tmp_path / "store", editor="true")
