"""
Tests for the typer CLI: commands run against a file-backed SQLite DB and release their session.
"""
import pytest
from typer.testing import CliRunner

from showtracker import cli
from showtracker.config import Config

runner = CliRunner()


@pytest.fixture
def closed_sessions(tmp_path, monkeypatch):
    cfg = Config(db_url=f"sqlite:///{tmp_path / 'tracker.sqlite3'}", api_key="")
    monkeypatch.setattr(cli, "load_config", lambda: cfg)
    monkeypatch.setattr(cli, "setup_logging", lambda *a, **kw: None)

    closed = []
    real_build = cli.build_services

    def build(session, config):
        real_close = session.close

        def close():
            closed.append(session)
            real_close()

        session.close = close
        return real_build(session, config)

    monkeypatch.setattr(cli, "build_services", build)
    return closed


def test_stats_closes_session(closed_sessions):
    result = runner.invoke(cli.app, ["stats"])
    assert result.exit_code == 0
    assert "cache_entries" in result.output
    assert len(closed_sessions) == 1


def test_failed_command_still_closes_session(closed_sessions):
    result = runner.invoke(cli.app, ["details", "123"])
    assert result.exit_code == 1
    assert "API key is missing" in result.output
    assert len(closed_sessions) == 1


def test_untrack_unknown_title(closed_sessions):
    result = runner.invoke(cli.app, ["untrack", "1", "123"])
    assert result.exit_code == 0
    assert "was not tracked" in result.output
    assert len(closed_sessions) == 1
