"""Tests for cli.py: argument parsing and startup."""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from tailcast import __version__
from tailcast.cli import main, parse_cli_args, resolve_config


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run from an empty directory so no stray .env is loaded by main()."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_version_flag(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc_info:
        parse_cli_args(["--version"])
    assert exc_info.value.code == 0
    assert __version__ in capsys.readouterr().out


def test_flags_override_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("TAILCAST_PORT", "9000")
    monkeypatch.setenv("TAILCAST_CATCHUP_LINES", "30")
    args = parse_cli_args(
        ["--file", str(tmp_path / "x.log"), "--port", "9100", "--debounce-ms", "50", "--poll"]
    )
    config = resolve_config(args)
    assert config.file == tmp_path / "x.log"
    assert config.port == 9100
    assert config.debounce_ms == 50
    assert config.catch_up_lines == 30
    assert config.force_polling is True


def test_unset_flags_fall_through_to_defaults() -> None:
    config = resolve_config(parse_cli_args([]))
    assert config.port == 8080
    assert config.force_polling is False


def test_main_runs_server(tmp_path: Path) -> None:
    log_path = tmp_path / "app.log"
    with patch("tailcast.server.cli.run_server") as run_server:
        main(["--file", str(log_path), "--port", "8181", "--log-level", "warning"])
    run_server.assert_called_once()
    config = run_server.call_args.args[0]
    assert config.file == log_path
    assert config.port == 8181
    assert run_server.call_args.kwargs["log_level"] == "warning"


def test_main_rejects_invalid_config(tmp_path: Path) -> None:
    with pytest.raises(SystemExit, match="Invalid configuration"):
        main(["--file", str(tmp_path / "a.log"), "--chunk-size", "0"])


def test_main_rejects_unwatchable_path(tmp_path: Path) -> None:
    with (
        patch("tailcast.server.cli.run_server") as run_server,
        pytest.raises(SystemExit, match="does not exist"),
    ):
        main(["--file", str(tmp_path / "missing" / "a.log")])
    run_server.assert_not_called()


def test_main_loads_dotenv_from_working_directory(tmp_path: Path) -> None:
    (tmp_path / ".env").write_text("TAILCAST_PORT=8282\n", encoding="utf-8")
    with patch.dict(os.environ), patch("tailcast.server.cli.run_server") as run_server:
        main(["--file", str(tmp_path / "app.log")])
    assert run_server.call_args.args[0].port == 8282
