"""Tests for date-range filtering and fallback data."""

from datetime import datetime, timedelta, timezone

from session_collector.fallback import generate_fallback
from session_collector.filters import filter_by_date_range, is_within_date_range
from session_collector.models import DateRange, Session

UTC = timezone.utc


def session_at(ts, session_id="s"):
    return Session(id=session_id, source="test", timestamp=ts)


class TestDateRange:
    """Tests for is_within_date_range / filter_by_date_range."""

    start = datetime(2024, 1, 10, tzinfo=UTC)
    end = datetime(2024, 1, 20, 23, 59, 59, tzinfo=UTC)

    def test_no_range_keeps_everything(self):
        sessions = [session_at(datetime(1999, 1, 1, tzinfo=UTC))]
        assert filter_by_date_range(sessions, None) is sessions
        assert is_within_date_range(datetime(1999, 1, 1), None)

    def test_bounds_are_inclusive(self):
        date_range = DateRange(start=self.start, end=self.end)
        assert is_within_date_range(self.start, date_range)
        assert is_within_date_range(self.end, date_range)
        assert not is_within_date_range(self.start - timedelta(seconds=1), date_range)
        assert not is_within_date_range(self.end + timedelta(seconds=1), date_range)

    def test_open_ended_ranges(self):
        assert is_within_date_range(datetime(2030, 1, 1, tzinfo=UTC), DateRange(start=self.start))
        assert not is_within_date_range(datetime(2000, 1, 1, tzinfo=UTC), DateRange(start=self.start))
        assert is_within_date_range(datetime(2000, 1, 1, tzinfo=UTC), DateRange(end=self.end))

    def test_mixed_naive_and_aware(self):
        local_noon = datetime(2024, 1, 15, 12, 0)
        assert is_within_date_range(local_noon, DateRange(start=self.start, end=self.end))

    def test_filter_preserves_order(self):
        sessions = [
            session_at(datetime(2024, 1, 12, tzinfo=UTC), "in-1"),
            session_at(datetime(2024, 2, 1, tzinfo=UTC), "out"),
            session_at(datetime(2024, 1, 11, tzinfo=UTC), "in-2"),
        ]
        kept = filter_by_date_range(sessions, DateRange(start=self.start, end=self.end))
        assert [s.id for s in kept] == ["in-1", "in-2"]


class TestFallback:
    """Tests for generated placeholder sessions."""

    def test_shape(self):
        now = datetime(2024, 5, 1, 12, 0)
        sessions = generate_fallback("amazon_q", now=now)

        assert [s.id for s in sessions] == [
            "amazon_q-fallback-1", "amazon_q-fallback-2", "amazon_q-fallback-3",
        ]
        assert [now - s.timestamp for s in sessions] == [
            timedelta(hours=24), timedelta(hours=12), timedelta(hours=6),
        ]
        for session in sessions:
            assert session.is_synthetic
            assert session.metadata["source_type"] == "amazon_q_fallback"
            user, assistant = session.messages
            assert (user.role, assistant.role) == ("user", "assistant")
            assert assistant.timestamp - user.timestamp == timedelta(minutes=1)

    def test_deterministic_apart_from_time(self):
        first = generate_fallback("gemini_cli", now=datetime(2024, 1, 1))
        second = generate_fallback("gemini_cli", now=datetime(2024, 6, 1))
        assert [s.title for s in first] == [s.title for s in second]
        assert [s.messages[0].content for s in first] == [s.messages[0].content for s in second]

    def test_unknown_source_uses_generic_samples(self):
        sessions = generate_fallback("custom")
        assert len(sessions) == 3
        assert all(s.source == "custom" for s in sessions)
