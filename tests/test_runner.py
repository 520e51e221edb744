"""Tests for running recorded commands."""

import os
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from templater.errors import CommandFailedError
from templater.runner import CommandResult, CommandRunner, parse_env_overrides


class TestParseEnvOverrides:
    """Tests for parse_env_overrides."""

    def test_pairs(self) -> None:
        assert parse_env_overrides(["A=1", "B=x=y", "C="]) == {
            "A": "1",
            "B": "x=y",
            "C": "",
        }

    @pytest.mark.parametrize("pair", ["NOEQUALS", "=value"])
    def test_invalid(self, pair: str) -> None:
        with pytest.raises(ValueError, match="KEY=VALUE"):
            parse_env_overrides([pair])


class TestCommandRunner:
    """Tests for CommandRunner with subprocess mocked."""

    @pytest.fixture
    def mock_run(self):
        with patch("templater.runner.subprocess.run") as mock:
            mock.return_value = MagicMock(returncode=0)
            yield mock

    def test_runs_in_order_with_cwd(self, mock_run: MagicMock, tmp_path: Path) -> None:
        results = CommandRunner().run_all(["first", "second"], tmp_path)

        assert [c.args[0] for c in mock_run.call_args_list] == ["first", "second"]
        for call in mock_run.call_args_list:
            assert call.kwargs["cwd"] == tmp_path
            assert call.kwargs["shell"] is True
        assert results == [CommandResult("first", 0), CommandResult("second", 0)]

    def test_env_overrides_layered_on_environment(
        self, mock_run: MagicMock, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("KEEP_ME", "yes")
        CommandRunner({"PROJECT": "demo"}).run("cmd", tmp_path)

        env = mock_run.call_args.kwargs["env"]
        assert env["PROJECT"] == "demo"
        assert env["KEEP_ME"] == "yes"
        assert "PROJECT" not in os.environ

    def test_failures_do_not_stop_batch(
        self, mock_run: MagicMock, tmp_path: Path
    ) -> None:
        mock_run.side_effect = [MagicMock(returncode=2), MagicMock(returncode=0)]

        results = CommandRunner().run_all(["bad", "good"], tmp_path)

        assert [r.success for r in results] == [False, True]
        assert results[0].returncode == 2

    def test_stop_on_failure(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.side_effect = [MagicMock(returncode=3), MagicMock(returncode=0)]

        with pytest.raises(CommandFailedError) as exc_info:
            CommandRunner(stop_on_failure=True).run_all(["bad", "never"], tmp_path)

        assert exc_info.value.returncode == 3
        assert exc_info.value.command == "bad"
        assert mock_run.call_count == 1

    def test_no_commands(self, mock_run: MagicMock, tmp_path: Path) -> None:
        assert CommandRunner().run_all([], tmp_path) == []
        mock_run.assert_not_called()


@pytest.mark.skipif(os.name == "nt", reason="POSIX shell syntax")
def test_real_shell_commands(tmp_path: Path) -> None:
    """Commands really run in cwd, see overrides, and continue past failures."""
    runner = CommandRunner({"GREETING": "hi"})
    results = runner.run_all(
        ['echo "$GREETING" > out.txt', "exit 3", "pwd > where.txt"], tmp_path
    )

    assert [r.returncode for r in results] == [0, 3, 0]
    assert (tmp_path / "out.txt").read_text() == "hi\n"
    assert Path((tmp_path / "where.txt").read_text().strip()).resolve() == tmp_path.resolve()
