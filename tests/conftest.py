"""Shared fixtures: on-disk source layouts."""

import json

import pytest

from session_collector.config import Config, SourceConfig


def write_gemini_session(path, session_id, created_at="2024-01-15T10:00:00Z"):
    path.write_text(json.dumps({
        "id": session_id,
        "title": f"Session {session_id}",
        "created_at": created_at,
        "model": "gemini-1.5-pro",
        "messages": [
            {"id": f"{session_id}-1", "role": "user", "content": "How do I list files?"},
            {"id": f"{session_id}-2", "role": "model", "parts": [{"type": "text", "text": "Use ls."}]},
        ],
        "client_version": "0.3.1",
    }))


@pytest.fixture
def gemini_home(tmp_path):
    """A Gemini CLI directory with 3 valid sessions, 1 corrupt file and a history file."""
    home = tmp_path / ".gemini"
    sessions = home / "tmp" / "project-a"
    sessions.mkdir(parents=True)
    for i in range(1, 4):
        write_gemini_session(sessions / f"session-{i}.json", f"s{i}")
    (sessions / "broken.json").write_text('{"id": "broken", "messages": [')
    (sessions / "notes.tmp").write_text("scratch")

    history = home / "history.jsonl"
    history.write_text(
        json.dumps({"id": "h1", "prompt": "explain git rebase", "response": "Rebase replays commits...",
                    "timestamp": "2024-01-16T12:00:00Z", "command": "git rebase -i HEAD~3"}) + "\n"
        + "\n"
        + json.dumps({"id": "h2", "prompt": "what is a tuple", "response": "An immutable sequence.",
                      "timestamp": "2024-01-17T12:00:00Z"}) + "\n"
    )
    return home


@pytest.fixture
def gemini_source(gemini_home):
    return SourceConfig(
        config_dir=str(gemini_home),
        session_dir=str(gemini_home / "tmp"),
        history_file=str(gemini_home / "history.jsonl"),
        exclude_patterns=["*.tmp"],
    )


@pytest.fixture
def gemini_config(gemini_source):
    config = Config()
    config.sources = {"gemini_cli": gemini_source}
    return config


@pytest.fixture
def missing_source(tmp_path):
    """A source whose config directory does not exist."""
    root = tmp_path / "nowhere"
    return SourceConfig(
        config_dir=str(root),
        session_dir=str(root / "sessions"),
        history_file=str(root / "history.jsonl"),
    )
