"""Ignore-pattern matching for template capture.

Patterns are unix globs anchored at the capture root and matched against
POSIX-style relative paths:

- ``*`` matches any run of characters within a single path segment
- ``?`` matches one character other than ``/``
- ``[...]`` is a character class (``[!...]`` negates)
- ``**`` as a whole segment matches zero or more segments, so ``**/*.txt``
  matches both ``c.txt`` and ``a/b/c.txt``
"""

from __future__ import annotations

import os
import re
from collections.abc import Iterable
from functools import lru_cache
from pathlib import PurePath

# Follow host convention: case-sensitive unless the platform folds case.
HOST_CASE_SENSITIVE = os.path.normcase("A") == "A"


def _translate(pattern: str) -> str:
    """Translate a glob pattern into a regular expression string."""
    pattern = pattern.strip("/")
    n = len(pattern)
    i = 0
    out: list[str] = []

    while i < n:
        c = pattern[i]
        if c == "*":
            j = i
            while j < n and pattern[j] == "*":
                j += 1
            whole_segment = (i == 0 or pattern[i - 1] == "/") and (
                j == n or pattern[j] == "/"
            )
            if j - i >= 2 and whole_segment:
                if j == n:
                    out.append(".*")
                    i = j
                else:
                    # Swallow the following slash so "**/" can match nothing
                    out.append("(?:.*/)?")
                    i = j + 1
            else:
                out.append("[^/]*")
                i = j
        elif c == "?":
            out.append("[^/]")
            i += 1
        elif c == "[":
            j = i + 1
            if j < n and pattern[j] in "!^":
                j += 1
            if j < n and pattern[j] == "]":
                j += 1
            while j < n and pattern[j] != "]":
                j += 1
            if j >= n:
                # Unterminated class is a literal bracket, as in fnmatch
                out.append(re.escape(c))
                i += 1
                continue
            body = pattern[i + 1 : j].replace("\\", "\\\\")
            if body[0] in "!^":
                body = "^/" + body[1:]
            char_class = f"[{body}]"
            try:
                re.compile(char_class)
            except re.error:
                # Malformed classes such as a reversed range match literally
                out.append(re.escape(pattern[i : j + 1]))
            else:
                out.append(char_class)
            i = j + 1
        else:
            out.append(re.escape(c))
            i += 1

    return "(?s:" + "".join(out) + r")\Z"


@lru_cache(maxsize=256)
def _compile(pattern: str, case_sensitive: bool) -> re.Pattern[str]:
    flags = 0 if case_sensitive else re.IGNORECASE
    return re.compile(_translate(pattern), flags)


def _as_posix(path: str | PurePath) -> str:
    if isinstance(path, PurePath):
        text = path.as_posix()
    else:
        text = path.replace("\\", "/")
    if text.startswith("./"):
        text = text[2:]
    return text.strip("/")


def matches(
    pattern: str,
    relative_path: str | PurePath,
    case_sensitive: bool = HOST_CASE_SENSITIVE,
) -> bool:
    """Return True if the relative path matches the glob pattern."""
    return _compile(pattern, case_sensitive).match(_as_posix(relative_path)) is not None


def is_ignored(
    path: str | PurePath,
    active_patterns: Iterable[str],
    case_sensitive: bool = HOST_CASE_SENSITIVE,
) -> bool:
    """Return True if any of the active patterns matches the path."""
    return any(matches(p, path, case_sensitive) for p in active_patterns)


class IgnoreFilter:
    """A compiled set of ignore patterns applied during a directory walk."""

    def __init__(
        self,
        patterns: Iterable[str] = (),
        case_sensitive: bool = HOST_CASE_SENSITIVE,
    ) -> None:
        self.patterns: tuple[str, ...] = tuple(p for p in patterns if p.strip("/"))
        self.case_sensitive = case_sensitive
        self._compiled = [_compile(p, case_sensitive) for p in self.patterns]

    def __bool__(self) -> bool:
        return bool(self.patterns)

    def is_ignored(self, relative_path: str | PurePath) -> bool:
        """Return True if the path is excluded by any pattern."""
        text = _as_posix(relative_path)
        return any(rx.match(text) is not None for rx in self._compiled)
