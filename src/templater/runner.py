"""Execution of a template's recorded commands after expansion."""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path

from templater.errors import CommandFailedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one recorded command."""

    command: str
    returncode: int

    @property
    def success(self) -> bool:
        return self.returncode == 0


def parse_env_overrides(pairs: Iterable[str]) -> dict[str, str]:
    """Parse KEY=VALUE strings. The value may itself contain '='.

    Raises:
        ValueError: If an item has no '=' or an empty key.
    """
    env: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Expected KEY=VALUE, got {pair!r}")
        env[key] = value
    return env


class CommandRunner:
    """Runs shell commands in order inside an expanded project.

    By default a failing command is reported and the batch continues.
    With stop_on_failure the first failure raises CommandFailedError.
    """

    def __init__(
        self,
        env_overrides: Mapping[str, str] | None = None,
        stop_on_failure: bool = False,
    ) -> None:
        self.env_overrides = dict(env_overrides or {})
        self.stop_on_failure = stop_on_failure

    def _environment(self) -> dict[str, str]:
        env = dict(os.environ)
        env.update(self.env_overrides)
        return env

    def run(self, command: str, cwd: Path) -> CommandResult:
        """Run one command through the system shell with cwd as working dir."""
        logger.info("Running command: %s", command)
        completed = subprocess.run(
            command,
            shell=True,
            cwd=cwd,
            env=self._environment(),
        )
        result = CommandResult(command=command, returncode=completed.returncode)
        if not result.success:
            logger.warning(
                "Command exited with code %d: %s", result.returncode, command
            )
        return result

    def run_all(self, commands: Iterable[str], cwd: Path) -> list[CommandResult]:
        """Run commands in listed order, returning one result per command run."""
        results: list[CommandResult] = []
        for command in commands:
            result = self.run(command, cwd)
            results.append(result)
            if not result.success and self.stop_on_failure:
                raise CommandFailedError(command, result.returncode)
        return results
