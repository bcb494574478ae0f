"""Unit tests for the restore and save commands.

Runs main() against a directory-backed store with runner output files in
a temporary directory.
"""

import os
import shutil
from pathlib import Path
from unittest.mock import patch

import pytest
from structlog.testing import capture_logs

from workflow_cache.cli import FEATURE_UNAVAILABLE_MESSAGE, build_parser, main
from workflow_cache.core.config import Settings


@pytest.fixture(autouse=True)
def runner_env(monkeypatch: pytest.MonkeyPatch):
    """Clean action inputs and skip global logging configuration."""
    for name in list(os.environ):
        if name.startswith(("INPUT_", "STATE_")):
            monkeypatch.delenv(name)
    with patch("workflow_cache.cli.configure_logging"):
        yield


@pytest.fixture
def cli_settings(settings: Settings, tmp_path: Path) -> Settings:
    settings.github_output = tmp_path / "github_output"
    settings.github_state = tmp_path / "github_state"
    return settings


def _read_pairs(path: Path) -> dict[str, str]:
    if not path.exists():
        return {}
    return dict(line.split("=", 1) for line in path.read_text().splitlines())


def _outputs(settings: Settings) -> dict[str, str]:
    return _read_pairs(settings.github_output)


def _state(settings: Settings) -> dict[str, str]:
    return _read_pairs(settings.github_state)


class TestBuildParser:
    """Tests for argument parsing."""

    def test_repeatable_options(self) -> None:
        args = build_parser().parse_args(
            ["restore", "--path", "a", "--path", "b", "--key", "k", "--restore-keys", "k-"]
        )

        assert args.path == ["a", "b"]
        assert args.restore_keys == ["k-"]
        assert args.lookup_only is None

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestRestoreCommand:
    """Tests for the restore command."""

    def test_miss(self, cli_settings: Settings, dist: Path) -> None:
        code = main(["restore", "--path", "dist", "--key", "npm-abc"], cli_settings)

        assert code == 0
        assert _outputs(cli_settings) == {"cache-primary-key": "npm-abc", "cache-hit": "false"}
        assert _state(cli_settings) == {"CACHE_KEY": "npm-abc"}

    def test_fail_on_cache_miss(self, cli_settings: Settings, dist: Path) -> None:
        code = main(
            ["restore", "--path", "dist", "--key", "npm-abc", "--fail-on-cache-miss"], cli_settings
        )

        assert code == 1

    def test_exact_hit(self, cli_settings: Settings, dist: Path) -> None:
        assert main(["save", "--path", "dist", "--key", "npm-abc"], cli_settings) == 0
        shutil.rmtree(dist)

        code = main(["restore", "--path", "dist", "--key", "npm-abc"], cli_settings)

        assert code == 0
        assert (dist / "app.bin").read_bytes() == b"0123456789"
        outputs = _outputs(cli_settings)
        assert outputs["cache-hit"] == "true"
        assert outputs["cache-matched-key"] == "npm-abc"
        assert _state(cli_settings)["CACHE_RESULT"] == "npm-abc"

    def test_restore_key_hit(self, cli_settings: Settings, dist: Path) -> None:
        main(["save", "--path", "dist", "--key", "npm-old"], cli_settings)

        code = main(
            ["restore", "--path", "dist", "--key", "npm-new", "--restore-keys", "npm-"],
            cli_settings,
        )

        assert code == 0
        outputs = _outputs(cli_settings)
        assert outputs["cache-hit"] == "false"
        assert outputs["cache-matched-key"] == "npm-old"

    def test_inputs_from_environment(
        self, cli_settings: Settings, dist: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        main(["save", "--path", "dist", "--key", "npm-abc"], cli_settings)
        monkeypatch.setenv("INPUT_PATH", "dist")
        monkeypatch.setenv("INPUT_KEY", "npm-abc")
        monkeypatch.setenv("INPUT_LOOKUP-ONLY", "true")

        code = main(["restore"], cli_settings)

        assert code == 0
        assert _outputs(cli_settings)["cache-hit"] == "true"

    def test_missing_key(self, cli_settings: Settings) -> None:
        assert main(["restore", "--path", "dist"], cli_settings) == 1

    def test_validation_error_fails_step(self, cli_settings: Settings) -> None:
        with capture_logs() as logs:
            code = main(["restore", "--path", "dist", "--key", "a,b"], cli_settings)

        assert code == 1
        assert any("cannot contain commas" in log["event"] for log in logs)

    def test_invalid_boolean_input_fails_step(
        self, cli_settings: Settings, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("INPUT_LOOKUP-ONLY", "maybe")

        with capture_logs() as logs:
            code = main(["restore", "--path", "dist", "--key", "k"], cli_settings)

        assert code == 1
        assert any("must be a boolean" in log["event"] for log in logs)
        assert "cache-hit" not in _outputs(cli_settings)

    def test_feature_unavailable(self, cli_settings: Settings) -> None:
        cli_settings.cache_url = None

        with capture_logs() as logs:
            code = main(["restore", "--path", "dist", "--key", "k"], cli_settings)

        assert code == 0
        assert logs[0]["event"] == FEATURE_UNAVAILABLE_MESSAGE
        assert _outputs(cli_settings) == {"cache-hit": "false"}


class TestSaveCommand:
    """Tests for the save command."""

    def test_save(self, cli_settings: Settings, dist: Path, store_root: Path) -> None:
        code = main(["save", "--path", "dist", "--key", "build-123"], cli_settings)

        assert code == 0
        assert list(store_root.glob("archives/*/build-123/entry.json"))

    def test_skips_exact_hit(
        self, cli_settings: Settings, dist: Path, store_root: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("STATE_CACHE_KEY", "build-123")
        monkeypatch.setenv("STATE_CACHE_RESULT", "BUILD-123")

        with capture_logs() as logs:
            code = main(["save", "--path", "dist"], cli_settings)

        assert code == 0
        assert not store_root.joinpath("archives").exists()
        assert "not saving cache" in logs[-1]["event"]

    def test_key_from_restore_state(
        self, cli_settings: Settings, dist: Path, store_root: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("STATE_CACHE_KEY", "build-123")
        monkeypatch.setenv("STATE_CACHE_RESULT", "build-")

        assert main(["save", "--path", "dist"], cli_settings) == 0
        assert list(store_root.glob("archives/*/build-123/entry.json"))

    def test_duplicate_save_succeeds(self, cli_settings: Settings, dist: Path) -> None:
        assert main(["save", "--path", "dist", "--key", "k"], cli_settings) == 0

        with capture_logs() as logs:
            assert main(["save", "--path", "dist", "--key", "k"], cli_settings) == 0

        conflicts = [log for log in logs if log["event"].startswith("Failed to save")]
        assert conflicts[0]["log_level"] == "info"

    def test_missing_paths_fail_step(self, cli_settings: Settings) -> None:
        assert main(["save", "--path", "missing", "--key", "k"], cli_settings) == 1

    def test_no_key(self, cli_settings: Settings) -> None:
        with capture_logs() as logs:
            assert main(["save", "--path", "dist"], cli_settings) == 0

        assert logs[0]["event"] == "Key is not specified."

    def test_sync_round_trip(self, cli_settings: Settings, dist: Path) -> None:
        assert main(["save", "--path", "dist", "--key", "k", "--sync"], cli_settings) == 0
        (dist / "app.bin").unlink()

        assert main(["restore", "--path", "dist", "--key", "k", "--sync"], cli_settings) == 0
        assert (dist / "app.bin").read_bytes() == b"0123456789"
