# tests/cli/test_cli.py
"""Tests for the wipledger CLI."""

import json
from pathlib import Path
from typing import ClassVar

import pytest
from sqlalchemy import text
from typer.testing import CliRunner

from wipledger import __version__
from wipledger.cli import app, resolve_database
from wipledger.contracts import BoardReset, ResetMode
from wipledger.core.ledger import BoardDB, BoardGateway
from wipledger.core.notifications import hookimpl

runner = CliRunner()


@pytest.fixture(autouse=True)
def _isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a stray ./settings.yaml or .env out of every invocation."""
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def board_path(tmp_path: Path) -> Path:
    """A board database holding two groups and one item."""
    path = tmp_path / "board.db"
    with BoardDB(f"sqlite:///{path}") as db:
        gateway = BoardGateway(db)
        backlog = gateway.create_group({"name": "Backlog"})
        gateway.create_group({"name": "Doing"})
        gateway.create_item({"title": "Write docs", "group_id": backlog.id})
    return path


def _invoke(*args: str):  # type: ignore[no-untyped-def]
    return runner.invoke(app, ["--no-dotenv", *args])


def _json_lines(output: str) -> list[dict[str, object]]:
    return [json.loads(line) for line in output.splitlines() if line.startswith('{"id"')]


class TestCliBasics:
    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_no_args_shows_help(self) -> None:
        result = runner.invoke(app, [])

        assert "rewind" in result.output
        assert "verify" in result.output

    def test_missing_env_file_exits(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["--env-file", str(tmp_path / "missing.env"), "init", "-d", "x.db"])

        assert result.exit_code == 1


class TestInit:
    def test_creates_database(self, tmp_path: Path) -> None:
        path = tmp_path / "fresh.db"

        result = _invoke("init", "-d", str(path))

        assert result.exit_code == 0
        assert path.exists()
        assert "Board database ready" in result.output

    def test_init_is_idempotent(self, board_path: Path) -> None:
        result = _invoke("init", "-d", str(board_path))

        assert result.exit_code == 0
        with BoardDB(f"sqlite:///{board_path}") as db:
            assert len(BoardGateway(db).list_groups()) == 2

    def test_no_database_configured(self) -> None:
        result = _invoke("init")

        assert result.exit_code == 1
        assert "No database specified" in result.output


class TestLedger:
    def test_json_lines(self, board_path: Path) -> None:
        result = _invoke("ledger", "-d", str(board_path), "--json")

        assert result.exit_code == 0
        records = _json_lines(result.output)
        assert [r["kind"] for r in records] == ["WIP_GROUP_CREATED", "WIP_GROUP_CREATED", "NOTE_CREATED"]
        assert all(r["recognized"] for r in records)
        assert json.loads(str(records[2]["payload"]))["title"] == "Write docs"

    def test_after_and_limit(self, board_path: Path) -> None:
        result = _invoke("ledger", "-d", str(board_path), "--json", "--after", "1", "-n", "1")

        assert [r["id"] for r in _json_lines(result.output)] == [2]

    def test_unrecognized_kind_marked(self, board_path: Path) -> None:
        with BoardDB(f"sqlite:///{board_path}") as db, db.connection() as conn:
            conn.execute(
                text("INSERT INTO event_log (timestamp, kind, payload) VALUES ('2024-01-01T00:00:00+00:00', 'NOTE_PINNED', '{}')")
            )

        result = _invoke("ledger", "-d", str(board_path))

        assert result.exit_code == 0
        assert "NOTE_PINNED (unrecognized)" in result.output

    def test_missing_database_file(self, tmp_path: Path) -> None:
        result = _invoke("ledger", "-d", str(tmp_path / "nope.db"))

        assert result.exit_code == 1
        assert "Database file not found" in result.output


class TestMaintenanceCommands:
    def test_rewind_with_yes(self, board_path: Path) -> None:
        result = _invoke("rewind", "-d", str(board_path), "--yes")

        assert result.exit_code == 0
        assert "Rewind completed" in result.output
        assert "events_applied: 3" in result.output

    def test_rewind_aborts_without_confirmation(self, board_path: Path) -> None:
        result = runner.invoke(app, ["--no-dotenv", "rewind", "-d", str(board_path)], input="n\n")

        assert result.exit_code == 1
        assert "Rewind completed" not in result.output

    def test_blow_then_verify_mismatch_then_rewind(self, board_path: Path) -> None:
        blown = _invoke("blow", "-d", str(board_path), "-y")
        assert blown.exit_code == 0
        assert "3 rows removed" in blown.output

        mismatch = _invoke("verify", "-d", str(board_path))
        assert mismatch.exit_code == 1
        assert "MISMATCH" in mismatch.output

        assert _invoke("rewind", "-d", str(board_path), "-y").exit_code == 0
        restored = _invoke("verify", "-d", str(board_path))
        assert restored.exit_code == 0
        assert "OK: live tables match the ledger." in restored.output

    def test_rewind_reports_decode_failure(self, board_path: Path) -> None:
        with BoardDB(f"sqlite:///{board_path}") as db, db.connection() as conn:
            conn.execute(
                text("INSERT INTO event_log (timestamp, kind, payload) VALUES ('2024-01-01T00:00:00+00:00', 'NOTE_CREATED', 'not json')")
            )

        result = _invoke("rewind", "-d", str(board_path), "-y")

        assert result.exit_code == 1
        assert "Operation failed" in result.output

    def test_skip_policy_from_settings(self, board_path: Path, tmp_path: Path) -> None:
        with BoardDB(f"sqlite:///{board_path}") as db, db.connection() as conn:
            conn.execute(
                text("INSERT INTO event_log (timestamp, kind, payload) VALUES ('2024-01-01T00:00:00+00:00', 'NOTE_CREATED', 'not json')")
            )
        settings_file = tmp_path / "settings.yaml"
        settings_file.write_text(f"database:\n  url: sqlite:///{board_path}\nreplay:\n  on_decode_error: skip\n")

        result = _invoke("rewind", "-y")

        assert result.exit_code == 0
        assert "decode_failures: 1" in result.output


class ResetCollector:
    """Hook plugin loaded by import path from settings.yaml."""

    received: ClassVar[list[BoardReset]] = []

    @hookimpl
    def wipledger_board_reset(self, notice: BoardReset) -> None:
        ResetCollector.received.append(notice)


class TestConfiguredNotifications:
    @pytest.fixture(autouse=True)
    def _clear_collector(self) -> None:
        ResetCollector.received.clear()

    def _settings(self, tmp_path: Path, board_path: Path, plugin: str) -> None:
        (tmp_path / "settings.yaml").write_text(f"database:\n  url: sqlite:///{board_path}\nnotifications:\n  plugins:\n    - {plugin}\n")

    def test_rewind_notifies_configured_plugin(self, board_path: Path, tmp_path: Path) -> None:
        self._settings(tmp_path, board_path, f"{__name__}:ResetCollector")

        result = _invoke("rewind", "-y")

        assert result.exit_code == 0
        assert [(n.mode, n.events_applied) for n in ResetCollector.received] == [(ResetMode.REWIND, 3)]

    def test_blow_notifies_configured_plugin(self, board_path: Path, tmp_path: Path) -> None:
        self._settings(tmp_path, board_path, f"{__name__}:ResetCollector")

        result = _invoke("blow", "-y")

        assert result.exit_code == 0
        assert [n.mode for n in ResetCollector.received] == [ResetMode.EMERGENCY_BLOW]

    def test_unloadable_plugin_exits_before_rewind(self, board_path: Path, tmp_path: Path) -> None:
        self._settings(tmp_path, board_path, "no_such_module_anywhere:Hook")

        result = _invoke("rewind", "-y")

        assert result.exit_code == 1
        assert "Cannot load notification plugin" in result.output
        assert "Rewind completed" not in result.output


class TestResolveDatabase:
    def test_url_passed_through(self) -> None:
        url, _ = resolve_database("sqlite:///./x.db", None)

        assert url == "sqlite:///./x.db"

    def test_path_becomes_absolute_url(self, tmp_path: Path) -> None:
        url, _ = resolve_database("new.db", None, must_exist=False)

        assert url == f"sqlite:///{tmp_path.resolve() / 'new.db'}"

    def test_invalid_settings_reported(self, tmp_path: Path) -> None:
        bad = tmp_path / "bad.yaml"
        bad.write_text("replay:\n  batch_size: -1\n")

        with pytest.raises(ValueError, match="Invalid settings"):
            resolve_database(None, bad)

    def test_missing_settings_file(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="Settings file not found"):
            resolve_database(None, tmp_path / "missing.yaml")
