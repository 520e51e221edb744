"""Directory-tree rendering for template artifacts."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from templater.archive import ArtifactSource, TreeEntry, read_entries

BRANCH = "├── "
LAST_BRANCH = "└── "
PIPE = "│   "
SPACE = "    "


@dataclass
class _Node:
    name: str
    is_dir: bool = True
    children: dict[str, _Node] = field(default_factory=dict)


def build_tree(entries: Iterable[TreeEntry]) -> _Node:
    """Nest flat tar entries, keeping the order in which they were captured.

    Parent directories missing from the index are created implicitly.
    """
    root = _Node(".")
    for entry in entries:
        parts = [p for p in entry.path.parts if p not in (".", "")]
        if not parts:
            continue
        node = root
        for part in parts[:-1]:
            node = node.children.setdefault(part, _Node(part))
        leaf = node.children.get(parts[-1])
        if leaf is None:
            node.children[parts[-1]] = _Node(parts[-1], is_dir=entry.is_dir)
        elif entry.is_dir:
            leaf.is_dir = True
    return root


def _render_children(node: _Node, prefix: str, lines: list[str]) -> None:
    children = list(node.children.values())
    for index, child in enumerate(children):
        last = index == len(children) - 1
        lines.append(f"{prefix}{LAST_BRANCH if last else BRANCH}{child.name}")
        if child.children:
            _render_children(child, prefix + (SPACE if last else PIPE), lines)


def render_entries(entries: Iterable[TreeEntry], root_label: str = ".") -> str:
    root = build_tree(entries)
    lines = [root_label]
    _render_children(root, "", lines)
    return "\n".join(lines)


def render(artifact: ArtifactSource, root_label: str = ".") -> str:
    """Render the captured tree of an artifact with box-drawing connectors.

    Only the tar index is read; file payloads are never extracted. Children
    appear in capture order, which is alphabetical by name within each
    directory.
    """
    return render_entries(read_entries(artifact), root_label)
