"""Binary codec for template metadata records.

A record is a sequence of big-endian u32 length-prefixed UTF-8 strings::

    name | description | command count (u32) | command_1 | ... | command_n

Length prefixes make every byte value legal inside a string, including
newlines and NUL.
"""

from __future__ import annotations

import struct
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from templater.errors import CorruptMetadataError

_U32 = struct.Struct(">I")


@dataclass(frozen=True)
class TemplateMetadata:
    """Name, description and ordered post-expand commands of a template."""

    name: str
    description: str = ""
    commands: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        # Accept any sequence for commands but store a tuple
        object.__setattr__(self, "commands", tuple(self.commands))

    def to_bytes(self) -> bytes:
        return encode(self.name, self.description, self.commands)

    @classmethod
    def from_bytes(cls, data: bytes) -> TemplateMetadata:
        name, description, commands = decode(data)
        return cls(name=name, description=description, commands=commands)


def _pack_str(value: str) -> bytes:
    raw = value.encode("utf-8")
    return _U32.pack(len(raw)) + raw


def encode(name: str, description: str, commands: Iterable[str]) -> bytes:
    """Encode metadata into a self-delimiting binary record."""
    cmds: Sequence[str] = list(commands)
    parts = [_pack_str(name), _pack_str(description), _U32.pack(len(cmds))]
    parts.extend(_pack_str(c) for c in cmds)
    return b"".join(parts)


class _Reader:
    """Cursor over a metadata buffer that raises on any overrun."""

    def __init__(self, data: bytes) -> None:
        self._data = memoryview(data)
        self._pos = 0

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    def u32(self) -> int:
        if self.remaining < _U32.size:
            raise CorruptMetadataError(
                f"Truncated metadata: expected length prefix at offset {self._pos}"
            )
        (value,) = _U32.unpack_from(self._data, self._pos)
        self._pos += _U32.size
        return int(value)

    def string(self) -> str:
        length = self.u32()
        if length > self.remaining:
            raise CorruptMetadataError(
                f"Length prefix {length} exceeds remaining {self.remaining} bytes"
            )
        raw = bytes(self._data[self._pos : self._pos + length])
        self._pos += length
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise CorruptMetadataError(f"Invalid UTF-8 in metadata: {e}") from e


def decode(data: bytes) -> tuple[str, str, tuple[str, ...]]:
    """Decode a record produced by :func:`encode`.

    Raises:
        CorruptMetadataError: If the buffer is truncated, a length prefix
            overruns it, or bytes are left over after the last command.
    """
    reader = _Reader(data)
    name = reader.string()
    description = reader.string()
    count = reader.u32()
    # Every command needs at least its 4-byte prefix
    if count * _U32.size > reader.remaining:
        raise CorruptMetadataError(
            f"Command count {count} exceeds remaining {reader.remaining} bytes"
        )
    commands = tuple(reader.string() for _ in range(count))
    if reader.remaining:
        raise CorruptMetadataError(
            f"{reader.remaining} unexpected trailing bytes after metadata"
        )
    return name, description, commands
