"""
Tests for the typer CLI commands that work without model access.
"""

import asyncio

import pytest
from typer.testing import CliRunner

from tutorloop import __version__
from tutorloop.cli import app
from tutorloop.core.persistence import JsonSessionStore
from tutorloop.models.context import Turn

runner = CliRunner()


@pytest.fixture
def store_dir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    sessions = tmp_path / "sessions"
    monkeypatch.setenv("TUTORLOOP_SESSION_STORE_DIR", str(sessions))
    return sessions


@pytest.fixture
def stored_session(store_dir):
    store = JsonSessionStore(store_dir)
    asyncio.run(store.append_turns("s1", [Turn.user_text("hi"), Turn.model_text("hello")]))
    asyncio.run(store.write("s1", summary="Greetings exchanged.", title="First Hello"))
    return store


def test_version():
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_config_show_masks_secrets(store_dir, monkeypatch):
    monkeypatch.setenv("TUTORLOOP_GEMINI_API_KEY", "super-secret-key")

    result = runner.invoke(app, ["config", "show"])

    assert result.exit_code == 0
    assert "window_size" in result.stdout
    assert "super-secret-key" not in result.stdout


def test_sessions_show(stored_session):
    result = runner.invoke(app, ["sessions", "show", "s1"])

    assert result.exit_code == 0
    assert "Greetings exchanged." in result.stdout
    assert "First Hello" in result.stdout
    assert "hello" in result.stdout


def test_sessions_show_missing(store_dir):
    result = runner.invoke(app, ["sessions", "show", "nope"])

    assert result.exit_code == 1


def test_sessions_delete(stored_session):
    result = runner.invoke(app, ["sessions", "delete", "s1", "--yes"])

    assert result.exit_code == 0
    assert asyncio.run(stored_session.read("s1")) is None


def test_sessions_delete_aborts_without_confirmation(stored_session):
    result = runner.invoke(app, ["sessions", "delete", "s1"], input="n\n")

    assert result.exit_code != 0
    assert asyncio.run(stored_session.read("s1")) is not None
