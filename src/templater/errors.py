"""Exception types raised by templater."""

from pathlib import Path


class TemplaterError(Exception):
    """Base class for all templater errors."""


class TemplateNotFoundError(TemplaterError):
    """Raised when no template exists under the requested name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Template not found: {name}")


class NameExistsError(TemplaterError):
    """Raised when creating or renaming onto an existing template name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Template {name} already exists (use --force to overwrite)")


class InvalidNameError(TemplaterError):
    """Raised when a template name cannot be used as an artifact key."""

    def __init__(self, name: str, reason: str) -> None:
        self.name = name
        super().__init__(f"Invalid template name {name!r}: {reason}")


class TargetNotEmptyError(TemplaterError):
    """Raised when expanding into a directory that already has content."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Target directory is not empty: {path}")


class CorruptMetadataError(TemplaterError):
    """Raised when an artifact header or metadata record cannot be decoded."""


class ParseError(TemplaterError):
    """Raised when edited metadata text is malformed."""


class EmptyTemplateError(TemplaterError):
    """Raised when no files remain after applying ignore patterns."""

    def __init__(self, source: Path) -> None:
        self.source = source
        super().__init__(
            f"No files left to capture in {source} after applying ignore patterns"
        )


class EditorError(TemplaterError):
    """Raised when the metadata editor cannot be run or exits with an error."""


class DefinitionError(TemplaterError):
    """Raised when a template definition file is unreadable or invalid."""


class CommandFailedError(TemplaterError):
    """Raised when a recorded command fails under the stop-on-failure policy."""

    def __init__(self, command: str, returncode: int) -> None:
        self.command = command
        self.returncode = returncode
        super().__init__(f"Command failed with exit code {returncode}: {command}")


class CorruptArchiveError(TemplaterError):
    """Raised when the file tree block of an artifact cannot be read."""
