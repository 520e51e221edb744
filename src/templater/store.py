"""Named template storage on disk."""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import BinaryIO

from templater.archive import (
    Compression,
    copy_with_metadata,
    read_metadata,
    unpack,
    write_artifact,
)
from templater.config import (
    DEFAULT_EDITOR,
    TemplaterConfig,
    resolve_editor,
    resolve_storage_dir,
)
from templater.editor import edit_metadata
from templater.errors import (
    CorruptMetadataError,
    InvalidNameError,
    NameExistsError,
    TemplateNotFoundError,
)
from templater.ignore import HOST_CASE_SENSITIVE
from templater.metadata import TemplateMetadata
from templater.tree import render

logger = logging.getLogger(__name__)

ARCHIVE_DIRNAME = "archives"
ARTIFACT_SUFFIX = ".tmpl"
USAGE_SUFFIX = ".used"

EditFn = Callable[[TemplateMetadata], TemplateMetadata]


@dataclass(frozen=True)
class TemplateSummary:
    """What `list` reports about a stored template."""

    name: str
    description: str
    path: Path
    size: int
    created: datetime
    last_used: datetime | None = None
    commands: tuple[str, ...] | None = None


def validate_name(name: str) -> str:
    """Check that a template name can be used as a file name.

    Raises:
        InvalidNameError: If the name is empty, hidden, or has separators.
    """
    if not name or not name.strip():
        raise InvalidNameError(name, "name is empty")
    if name.startswith("."):
        raise InvalidNameError(name, "name must not start with '.'")
    for bad in ("/", "\\", "\0"):
        if bad in name:
            raise InvalidNameError(name, f"name must not contain {bad!r}")
    return name


class TemplateStore:
    """Maps template names to artifact files under a storage root.

    Artifacts are stored as ``<root>/archives/<name>.tmpl``. Writes go to a
    temporary file first and are moved into place, so a failed create or
    edit leaves the previous artifact intact.
    """

    def __init__(
        self,
        root: Path,
        *,
        editor: str = DEFAULT_EDITOR,
        allow_empty: bool = False,
        compression: Compression = "gz",
        case_sensitive: bool = HOST_CASE_SENSITIVE,
    ) -> None:
        self.root = Path(root)
        self.archive_dir = self.root / ARCHIVE_DIRNAME
        self.editor = editor
        self.allow_empty = allow_empty
        self.compression: Compression = compression
        self.case_sensitive = case_sensitive

    @classmethod
    def from_config(cls, config: TemplaterConfig) -> TemplateStore:
        """Build a store from resolved configuration."""
        return cls(
            resolve_storage_dir(config),
            editor=resolve_editor(config),
            allow_empty=bool(config.allow_empty),
            compression=config.compression or "gz",
        )

    # Lookup

    def artifact_path(self, name: str) -> Path:
        """Return where the artifact for `name` lives (whether or not it exists)."""
        return self.archive_dir / f"{validate_name(name)}{ARTIFACT_SUFFIX}"

    def exists(self, name: str) -> bool:
        return self.artifact_path(name).is_file()

    def locate(self, name: str) -> Path:
        """Return the artifact path for an existing template."""
        path = self.artifact_path(name)
        if not path.is_file():
            raise TemplateNotFoundError(name)
        return path

    def read_metadata(self, name: str) -> TemplateMetadata:
        with self.locate(name).open("rb") as f:
            return read_metadata(f)

    def _usage_path(self, stem: str) -> Path:
        # Names never start with '.', so sidecars cannot collide with artifacts
        return self.archive_dir / f".{stem}{USAGE_SUFFIX}"

    def _last_used(self, stem: str) -> datetime | None:
        try:
            text = self._usage_path(stem).read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            logger.warning("Ignoring malformed last-used record for %s: %r", stem, text)
            return None

    def _mark_used(self, name: str) -> None:
        stamp = datetime.now().isoformat(timespec="seconds")
        try:
            self._usage_path(name).write_text(stamp, encoding="utf-8")
        except OSError as e:
            logger.warning("Could not record last use of %s: %s", name, e)

    def _summarize(self, path: Path, with_commands: bool) -> TemplateSummary:
        with path.open("rb") as f:
            metadata = read_metadata(f)
        stat = path.stat()
        return TemplateSummary(
            name=metadata.name,
            description=metadata.description,
            path=path,
            size=stat.st_size,
            created=datetime.fromtimestamp(stat.st_mtime),
            last_used=self._last_used(path.stem),
            commands=metadata.commands if with_commands else None,
        )

    def _atomic_write(self, dest: Path, writer: Callable[[BinaryIO], object]) -> None:
        self.archive_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.archive_dir, prefix=".", suffix=".tmp")
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as f:
                writer(f)
            os.replace(tmp_path, dest)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

    # Operations

    def create(
        self,
        name: str,
        description: str,
        commands: Iterable[str],
        source_dir: Path,
        ignore_patterns: Iterable[str] = (),
        force: bool = False,
    ) -> TemplateSummary:
        """Capture source_dir as template `name`.

        Raises:
            NameExistsError: If the name is taken and force is False.
            EmptyTemplateError: If nothing is left to capture and the store
                does not allow empty templates.
            OSError: If source_dir cannot be read.
        """
        dest = self.artifact_path(name)
        if dest.exists() and not force:
            raise NameExistsError(name)

        metadata = TemplateMetadata(
            name=name, description=description, commands=tuple(commands)
        )
        patterns = list(ignore_patterns)
        if patterns:
            logger.info("Filtering files with ignore patterns: %s", patterns)

        self._atomic_write(
            dest,
            lambda f: write_artifact(
                f,
                source_dir,
                metadata,
                patterns,
                allow_empty=self.allow_empty,
                compression=self.compression,
                case_sensitive=self.case_sensitive,
            ),
        )
        self._usage_path(name).unlink(missing_ok=True)
        logger.info("Stored template %s at %s", name, dest)
        return self._summarize(dest, with_commands=True)

    def list(
        self, name_filter: str | None = None, *, with_commands: bool = False
    ) -> list[TemplateSummary]:
        """List templates sorted by name, or the exact match for name_filter."""
        if name_filter is not None:
            path = self.artifact_path(name_filter)
            if not path.is_file():
                return []
            return [self._summarize(path, with_commands)]

        if not self.archive_dir.is_dir():
            return []

        summaries: list[TemplateSummary] = []
        for path in sorted(self.archive_dir.glob(f"*{ARTIFACT_SUFFIX}")):
            try:
                summaries.append(self._summarize(path, with_commands))
            except CorruptMetadataError as e:
                logger.warning("Skipping unreadable artifact %s: %s", path, e)
        return summaries

    def get(self, name: str, *, with_commands: bool = False) -> TemplateSummary:
        return self._summarize(self.locate(name), with_commands)

    def delete(self, name: str) -> None:
        """Remove a template.

        Raises:
            TemplateNotFoundError: If no such template exists.
        """
        path = self.locate(name)
        path.unlink()
        self._usage_path(name).unlink(missing_ok=True)
        logger.info("Deleted template %s (%s)", name, path)

    def tree(self, name: str) -> str:
        """Render the file tree of a template."""
        with self.locate(name).open("rb") as f:
            return render(f, root_label=name)

    def edit(self, name: str, edit_fn: EditFn | None = None) -> TemplateSummary:
        """Edit a template's metadata without re-archiving its files.

        The current metadata is handed to edit_fn (by default the configured
        text editor). A changed name renames the artifact.

        Raises:
            TemplateNotFoundError: If no such template exists.
            NameExistsError: If renamed onto an existing template.
            ParseError: If the edited text is malformed.
            EditorError: If the editor fails.
        """
        path = self.locate(name)
        with path.open("rb") as f:
            current = read_metadata(f)

        if edit_fn is None:
            updated = edit_metadata(current, self.editor)
        else:
            updated = edit_fn(current)
        new_path = self.artifact_path(updated.name)
        same_file = new_path == path or (new_path.exists() and new_path.samefile(path))
        if not same_file and new_path.exists():
            raise NameExistsError(updated.name)

        with path.open("rb") as src:
            self._atomic_write(new_path, lambda dest: copy_with_metadata(src, dest, updated))
        if not same_file:
            path.unlink()
            usage = self._usage_path(name)
            if usage.exists():
                os.replace(usage, self._usage_path(updated.name))
            logger.info("Renamed template %s to %s", name, updated.name)

        return self._summarize(new_path, with_commands=True)

    def expand(
        self,
        name: str,
        path: Path | None = None,
        *,
        alias: str | None = None,
    ) -> tuple[Path, TemplateMetadata]:
        """Unpack a template into ``<path or cwd>/<alias or name>``.

        Returns the project directory and the template metadata.

        Raises:
            TemplateNotFoundError: If no such template exists.
            TargetNotEmptyError: If the project directory has content.
        """
        artifact = self.locate(name)
        project_dir = (path or Path.cwd()) / (alias or name)
        logger.info("Expanding template %s to %s", name, project_dir)
        with artifact.open("rb") as f:
            metadata = read_metadata(f)
            f.seek(0)
            unpack(f, project_dir)
        self._mark_used(name)
        return project_dir, metadata
