"""Tests for collection snapshots."""

import json
from datetime import datetime, timedelta

from session_collector.models import CollectionResult, Message, Session
from session_collector.snapshot import load_latest, save_snapshot


def make_result():
    ts = datetime(2024, 3, 1, 9, 30, 15)
    session = Session(
        id="s1",
        source="gemini_cli",
        timestamp=ts,
        title="Explain decorators",
        messages=[Message(id="m1", role="user", content="What is a decorator?", timestamp=ts)],
        metadata={"model": "gemini-pro"},
    )
    return CollectionResult(
        sessions=[session],
        sources=["gemini_cli"],
        total_count=1,
        collected_at=ts,
        duration=timedelta(seconds=1.5),
        errors=["gemini_cli: failed to parse history line 3"],
    )


class TestSnapshot:
    """Tests for save_snapshot / load_latest."""

    def test_writes_timestamped_and_latest(self, tmp_path):
        path = save_snapshot(make_result(), tmp_path / "data")

        assert path.name == "collection-20240301-093015.json"
        latest = tmp_path / "data" / "latest.json"
        assert latest.exists()
        assert json.loads(path.read_text()) == json.loads(latest.read_text())

    def test_load_latest(self, tmp_path):
        save_snapshot(make_result(), tmp_path)
        loaded = load_latest(tmp_path)

        assert loaded.total_count == 1
        assert loaded.sources == ["gemini_cli"]
        assert loaded.duration == timedelta(seconds=1.5)
        assert loaded.errors == ["gemini_cli: failed to parse history line 3"]
        session = loaded.sessions[0]
        assert session.title == "Explain decorators"
        assert session.messages[0].content == "What is a decorator?"
        assert session.metadata == {"model": "gemini-pro"}

    def test_load_latest_missing(self, tmp_path):
        assert load_latest(tmp_path) is None

    def test_load_latest_corrupt(self, tmp_path):
        (tmp_path / "latest.json").write_text("{oops")
        assert load_latest(tmp_path) is None
