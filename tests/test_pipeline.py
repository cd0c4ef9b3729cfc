"""Tests for the concurrent session-directory pipeline."""

import json
import threading
import time
from pathlib import Path

import pytest

from session_collector.context import CollectionContext
from session_collector.errors import CollectionCancelled, DeadlineExceeded, FileTooLargeError
from session_collector.models import Session
from session_collector.pipeline import (
    discover_files,
    file_reference,
    parse_session_dir,
    parse_session_file,
)


def decode_json(path, text):
    data = json.loads(text)
    return [Session(id=data["id"], source="test")]


def as_text(path, text):
    return Session(id=f"text-{path.stem}", source="test", metadata={"source_type": "text"})


def accept_json(path):
    return path.suffix == ".json"


@pytest.fixture
def session_dir(tmp_path):
    """Three valid files, one corrupt file, one ignored file, across two levels."""
    nested = tmp_path / "nested"
    nested.mkdir()
    (tmp_path / "a.json").write_text('{"id": "a"}')
    (tmp_path / "b.json").write_text('{"id": "b"}')
    (nested / "c.json").write_text('{"id": "c"}')
    (nested / "corrupt.json").write_text("{not json")
    (tmp_path / "ignored.txt").write_text("skip me")
    return tmp_path


class TestDiscoverFiles:
    """Tests for directory discovery."""

    def test_filters_and_recurses(self, session_dir):
        paths, err = discover_files(CollectionContext(), session_dir, accept_json)
        assert err is None
        assert sorted(p.name for p in paths) == ["a.json", "b.json", "c.json", "corrupt.json"]

    def test_missing_root(self, tmp_path):
        paths, err = discover_files(CollectionContext(), tmp_path / "absent", accept_json)
        assert paths == []
        assert isinstance(err, FileNotFoundError)

    def test_cancelled(self, session_dir):
        ctx = CollectionContext()
        ctx.cancel()
        with pytest.raises(CollectionCancelled):
            discover_files(ctx, session_dir, accept_json)


class TestParseSessionFile:
    """Tests for single-file parsing."""

    def test_attaches_file_reference(self, session_dir):
        path = session_dir / "a.json"
        sessions, warning = parse_session_file(path, decode_json, as_text)

        assert warning is None
        assert sessions[0].metadata["file_path"] == str(path)
        ref = sessions[0].files[0]
        assert ref.name == "a.json"
        assert ref.size == path.stat().st_size
        assert ref.content_type == "application/json"
        assert len(ref.hash) == 64

    def test_corrupt_file_degrades_to_text(self, session_dir):
        path = session_dir / "nested" / "corrupt.json"
        sessions, warning = parse_session_file(path, decode_json, as_text)

        assert [s.id for s in sessions] == ["text-corrupt"]
        assert "corrupt.json" in warning
        assert "kept as text" in warning

    def test_decoder_crash_degrades_to_text(self, session_dir):
        def crashing_decode(path, text):
            raise AttributeError("'int' object has no attribute 'strip'")

        path = session_dir / "a.json"
        sessions, warning = parse_session_file(path, crashing_decode, as_text)

        assert [s.id for s in sessions] == ["text-a"]
        assert "has no attribute" in warning

    def test_size_cap(self, session_dir):
        with pytest.raises(FileTooLargeError) as exc:
            parse_session_file(session_dir / "a.json", decode_json, as_text, max_file_size=4)
        assert exc.value.limit == 4

    def test_jsonl_content_type(self, tmp_path):
        path = tmp_path / "t.jsonl"
        path.write_text("{}")
        ref = file_reference(path, path.stat(), b"{}")
        assert ref.content_type == "application/x-ndjson"


class TestParseSessionDir:
    """Tests for the bounded worker pool."""

    def test_isolates_corrupt_file(self, session_dir):
        result = parse_session_dir(CollectionContext(), session_dir, accept_json, decode_json, as_text)

        assert sorted(s.id for s in result.sessions) == ["a", "b", "c", "text-corrupt"]
        assert len(result.errors) == 1
        assert "corrupt.json" in result.errors[0]

    def test_oversized_file_is_reported_not_fatal(self, session_dir):
        (session_dir / "big.json").write_text(json.dumps({"id": "big", "pad": "x" * 200}))
        result = parse_session_dir(
            CollectionContext(), session_dir, accept_json, decode_json, as_text, max_file_size=100,
        )

        assert "big" not in [s.id for s in result.sessions]
        assert "a" in [s.id for s in result.sessions]
        assert any("failed to parse session file" in e and "big.json" in e for e in result.errors)

    def test_empty_directory(self, tmp_path):
        result = parse_session_dir(CollectionContext(), tmp_path, accept_json, decode_json, as_text)
        assert result.sessions == []
        assert result.errors == []

    def test_missing_directory_reported(self, tmp_path):
        result = parse_session_dir(
            CollectionContext(), tmp_path / "absent", accept_json, decode_json, as_text,
        )
        assert result.sessions == []
        assert len(result.errors) == 1
        assert "failed to walk session directory" in result.errors[0]

    def test_worker_count_is_bounded(self, tmp_path):
        for i in range(8):
            (tmp_path / f"{i}.json").write_text(json.dumps({"id": str(i)}))

        lock = threading.Lock()
        active = 0
        peak = 0

        def slow_decode(path, text):
            nonlocal active, peak
            with lock:
                active += 1
                peak = max(peak, active)
            time.sleep(0.05)
            with lock:
                active -= 1
            return decode_json(path, text)

        result = parse_session_dir(
            CollectionContext(), tmp_path, accept_json, slow_decode, as_text, max_workers=2,
        )

        assert len(result.sessions) == 8
        assert 1 <= peak <= 2

    def test_cancellation_discards_results(self, session_dir):
        ctx = CollectionContext()

        def cancelling_decode(path, text):
            ctx.cancel()
            return decode_json(path, text)

        with pytest.raises(CollectionCancelled):
            parse_session_dir(ctx, session_dir, accept_json, cancelling_decode, as_text)

    def test_deadline(self, session_dir):
        def stuck_decode(path, text):
            time.sleep(0.5)
            return decode_json(path, text)

        ctx = CollectionContext(timeout=0.05)
        started = time.monotonic()
        with pytest.raises(DeadlineExceeded):
            parse_session_dir(ctx, session_dir, accept_json, stuck_decode, as_text)
        assert time.monotonic() - started < 0.5

    def test_file_path_metadata(self, session_dir):
        result = parse_session_dir(CollectionContext(), session_dir, accept_json, decode_json, as_text)
        for session in result.sessions:
            assert Path(session.metadata["file_path"]).parent in (session_dir, session_dir / "nested")

    def test_decoder_crash_keeps_single_worker_alive(self, session_dir):
        def fragile_decode(path, text):
            if path.name == "b.json":
                raise TypeError("unhashable type: 'list'")
            return decode_json(path, text)

        result = parse_session_dir(
            CollectionContext(), session_dir, accept_json, fragile_decode, as_text, max_workers=1,
        )

        assert sorted(s.id for s in result.sessions) == ["a", "c", "text-b", "text-corrupt"]
        assert len(result.errors) == 2
        assert any("b.json" in e and "unhashable" in e for e in result.errors)

    def test_text_fallback_crash_is_reported(self, session_dir):
        def broken_text(path, text):
            raise RuntimeError("cannot wrap file")

        result = parse_session_dir(
            CollectionContext(), session_dir, accept_json, decode_json, broken_text, max_workers=1,
        )

        assert sorted(s.id for s in result.sessions) == ["a", "b", "c"]
        assert len(result.errors) == 1
        assert "corrupt.json" in result.errors[0]
        assert "cannot wrap file" in result.errors[0]
