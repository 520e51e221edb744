"""Template artifact reading and writing.

An artifact is a single file laid out as::

    header | metadata block | tree block

The header is ``struct(">4sBBI")``: magic, format version, compression flag
and the metadata block length. The metadata block is a record from
:mod:`templater.metadata`. The tree block is a tar stream, gzip-compressed
when the flag says so. Because the metadata length is known up front,
metadata can be read or replaced without touching the tree block.
"""

from __future__ import annotations

import errno
import io
import logging
import os
import shutil
import struct
import tarfile
import zlib
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Literal

from templater.errors import (
    CorruptArchiveError,
    CorruptMetadataError,
    EmptyTemplateError,
    TargetNotEmptyError,
)
from templater.ignore import HOST_CASE_SENSITIVE, IgnoreFilter
from templater.metadata import TemplateMetadata

logger = logging.getLogger(__name__)

MAGIC = b"TMPL"
FORMAT_VERSION = 1
HEADER = struct.Struct(">4sBBI")

Compression = Literal["gz", "none"]
COMPRESSION_FLAGS: dict[str, int] = {"none": 0, "gz": 1}
_TAR_READ_MODES = {0: "r:", 1: "r:gz"}
_TAR_WRITE_MODES = {0: "w:", 1: "w:gz"}

ArtifactSource = bytes | BinaryIO


@dataclass(frozen=True)
class TreeEntry:
    """One node of a captured tree, as listed in the tar index."""

    path: PurePosixPath
    is_dir: bool
    is_symlink: bool = False
    size: int = 0

    @property
    def name(self) -> str:
        return self.path.name


@dataclass(frozen=True)
class _CapturedPath:
    source: Path
    arcname: str
    is_dir: bool


def _as_stream(artifact: ArtifactSource) -> BinaryIO:
    if isinstance(artifact, (bytes, bytearray, memoryview)):
        return io.BytesIO(bytes(artifact))
    return artifact


def _read_exact(stream: BinaryIO, size: int, what: str) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise CorruptMetadataError(
            f"Truncated artifact: expected {size} bytes of {what}, got {len(data)}"
        )
    return data


def _read_header(stream: BinaryIO) -> tuple[int, int]:
    """Read and validate the header, returning (compression flag, metadata length)."""
    raw = _read_exact(stream, HEADER.size, "header")
    magic, version, flag, meta_len = HEADER.unpack(raw)
    if magic != MAGIC:
        raise CorruptMetadataError("Not a template artifact (bad magic)")
    if version != FORMAT_VERSION:
        raise CorruptMetadataError(f"Unsupported artifact format version {version}")
    if flag not in _TAR_READ_MODES:
        raise CorruptMetadataError(f"Unknown compression flag {flag}")
    return flag, meta_len


def _write_header(dest: BinaryIO, flag: int, metadata: TemplateMetadata) -> None:
    record = metadata.to_bytes()
    dest.write(HEADER.pack(MAGIC, FORMAT_VERSION, flag, len(record)))
    dest.write(record)


def _skip_metadata(stream: BinaryIO) -> int:
    """Position the stream at the start of the tree block, returning the flag."""
    flag, meta_len = _read_header(stream)
    _read_exact(stream, meta_len, "metadata")
    return flag


def _normalize_member(info: tarfile.TarInfo) -> tarfile.TarInfo:
    info.uid = info.gid = 0
    info.uname = info.gname = ""
    return info


def _scan(
    root: Path, rel: PurePosixPath, ignore: IgnoreFilter
) -> Iterator[_CapturedPath]:
    """Walk a directory depth-first in name order, pruning ignored paths."""
    with os.scandir(root / rel) as it:
        entries = sorted(it, key=lambda e: e.name)

    for entry in entries:
        rel_path = rel / entry.name
        if ignore.is_ignored(rel_path):
            logger.debug("Ignoring %s", rel_path)
            continue
        if entry.is_dir(follow_symlinks=False):
            yield _CapturedPath(Path(entry.path), rel_path.as_posix(), True)
            yield from _scan(root, rel_path, ignore)
        elif entry.is_file(follow_symlinks=False) or entry.is_symlink():
            yield _CapturedPath(Path(entry.path), rel_path.as_posix(), False)
        else:
            logger.warning("Skipping special file %s", rel_path)


def collect(
    source_dir: str | os.PathLike[str],
    ignore_patterns: Iterable[str] = (),
    case_sensitive: bool = HOST_CASE_SENSITIVE,
) -> list[tuple[Path, str, bool]]:
    """List (path, arcname, is_dir) for everything that would be captured."""
    source = Path(source_dir)
    if not source.exists():
        raise FileNotFoundError(errno.ENOENT, "Source directory not found", str(source))
    if not source.is_dir():
        raise NotADirectoryError(errno.ENOTDIR, "Source is not a directory", str(source))
    ignore = IgnoreFilter(ignore_patterns, case_sensitive=case_sensitive)
    return [(c.source, c.arcname, c.is_dir) for c in _scan(source, PurePosixPath(), ignore)]


def write_artifact(
    dest: BinaryIO,
    source_dir: str | os.PathLike[str],
    metadata: TemplateMetadata,
    ignore_patterns: Iterable[str] = (),
    *,
    allow_empty: bool = False,
    compression: Compression = "gz",
    case_sensitive: bool = HOST_CASE_SENSITIVE,
) -> int:
    """Capture source_dir into an artifact written to dest.

    Directories are recorded even when empty so the expanded layout matches
    the source. Only files and symlinks count towards the empty check.

    Returns:
        Number of files (including symlinks) captured.

    Raises:
        OSError: If source_dir is missing or any entry cannot be read.
        EmptyTemplateError: If no files remain and allow_empty is False.
    """
    flag = COMPRESSION_FLAGS[compression]
    captured = collect(source_dir, ignore_patterns, case_sensitive)
    file_count = sum(1 for _, _, is_dir in captured if not is_dir)
    if file_count == 0 and not allow_empty:
        raise EmptyTemplateError(Path(source_dir))

    _write_header(dest, flag, metadata)
    with tarfile.open(
        fileobj=dest, mode=_TAR_WRITE_MODES[flag], format=tarfile.PAX_FORMAT
    ) as tar:
        for path, arcname, _is_dir in captured:
            logger.debug("Adding %s", arcname)
            tar.add(path, arcname=arcname, recursive=False, filter=_normalize_member)

    logger.info(
        "Captured %d files (%d entries) for template %s",
        file_count,
        len(captured),
        metadata.name,
    )
    return file_count


def pack(
    source_dir: str | os.PathLike[str],
    metadata: TemplateMetadata,
    ignore_patterns: Iterable[str] = (),
    *,
    allow_empty: bool = False,
    compression: Compression = "gz",
) -> bytes:
    """Capture source_dir and return the artifact as bytes."""
    buffer = io.BytesIO()
    write_artifact(
        buffer,
        source_dir,
        metadata,
        ignore_patterns,
        allow_empty=allow_empty,
        compression=compression,
    )
    return buffer.getvalue()


def read_metadata(artifact: ArtifactSource) -> TemplateMetadata:
    """Read only the metadata block of an artifact."""
    stream = _as_stream(artifact)
    _flag, meta_len = _read_header(stream)
    return TemplateMetadata.from_bytes(_read_exact(stream, meta_len, "metadata"))


def copy_with_metadata(
    src: BinaryIO, dest: BinaryIO, metadata: TemplateMetadata
) -> None:
    """Copy an artifact from src to dest, replacing its metadata block.

    The tree block is copied byte-for-byte without being decoded.
    """
    flag = _skip_metadata(src)
    _write_header(dest, flag, metadata)
    shutil.copyfileobj(src, dest)


def rewrite_metadata(artifact: ArtifactSource, metadata: TemplateMetadata) -> bytes:
    """Return a copy of the artifact carrying new metadata."""
    buffer = io.BytesIO()
    copy_with_metadata(_as_stream(artifact), buffer, metadata)
    return buffer.getvalue()


def _open_tree(stream: BinaryIO, flag: int) -> tarfile.TarFile:
    try:
        return tarfile.open(fileobj=stream, mode=_TAR_READ_MODES[flag])
    except (tarfile.TarError, EOFError, zlib.error) as e:
        raise CorruptArchiveError(f"Cannot read template file tree: {e}") from e


def read_entries(artifact: ArtifactSource) -> list[TreeEntry]:
    """List the captured tree from the tar index without extracting payloads."""
    stream = _as_stream(artifact)
    flag = _skip_metadata(stream)
    try:
        with _open_tree(stream, flag) as tar:
            return [
                TreeEntry(
                    path=PurePosixPath(member.name),
                    is_dir=member.isdir(),
                    is_symlink=member.issym(),
                    size=member.size,
                )
                for member in tar
            ]
    except (tarfile.TarError, EOFError, zlib.error) as e:
        raise CorruptArchiveError(f"Cannot read template file tree: {e}") from e


def _clear_directory(path: Path) -> None:
    for child in path.iterdir():
        if child.is_dir() and not child.is_symlink():
            shutil.rmtree(child)
        else:
            child.unlink()


def _missing_dirs(target: Path) -> list[Path]:
    """Return target and its missing ancestors, nearest first."""
    missing: list[Path] = []
    for path in (target, *target.parents):
        if path.exists():
            break
        missing.append(path)
    return missing


def _extraction_filter(member: tarfile.TarInfo, dest_path: str) -> tarfile.TarInfo:
    """Check member paths like the ``data`` filter but keep the captured tree.

    Symlinks are restored with their recorded target, even when it is
    absolute or points above the project. Permission bits are restored as
    captured instead of being masked.
    """
    if member.issym():
        # Only the location of the link itself has to stay inside dest_path
        checked = tarfile.data_filter(
            member.replace(type=tarfile.REGTYPE, linkname="", deep=False), dest_path
        )
        return member.replace(
            name=checked.name,
            mode=None,
            uid=None,
            gid=None,
            uname=None,
            gname=None,
            deep=False,
        )
    checked = tarfile.data_filter(member, dest_path)
    return checked.replace(mode=member.mode & 0o777, deep=False)


def _rollback(target: Path, created: list[Path]) -> None:
    """Undo a failed unpack so a retry starts from the same state."""
    logger.warning("Rolling back partial expansion in %s", target)
    try:
        if created:
            shutil.rmtree(target)
            for parent in created[1:]:
                parent.rmdir()
        elif target.exists():
            _clear_directory(target)
    except OSError:
        logger.exception("Failed to roll back %s", target)


def unpack(artifact: ArtifactSource, target_dir: str | os.PathLike[str]) -> None:
    """Recreate the captured tree inside target_dir.

    target_dir must not exist or must be an empty directory. On failure
    anything written is removed again, including parent directories
    created for the target, and the error is re-raised.

    Raises:
        TargetNotEmptyError: If target_dir already has content.
        CorruptMetadataError: If the header or metadata is invalid.
        CorruptArchiveError: If the tree block is unreadable or unsafe.
        OSError: On any write failure.
    """
    target = Path(target_dir)
    created = _missing_dirs(target)
    if not created:
        if not target.is_dir():
            raise NotADirectoryError(errno.ENOTDIR, "Target is not a directory", str(target))
        if any(target.iterdir()):
            raise TargetNotEmptyError(target)

    stream = _as_stream(artifact)
    flag = _skip_metadata(stream)

    target.mkdir(parents=True, exist_ok=True)
    try:
        with _open_tree(stream, flag) as tar:
            tar.extractall(target, filter=_extraction_filter)
    except (tarfile.TarError, EOFError, zlib.error) as e:
        _rollback(target, created)
        raise CorruptArchiveError(f"Cannot extract template file tree: {e}") from e
    except BaseException:
        _rollback(target, created)
        raise

    logger.info("Unpacked template into %s", target)
