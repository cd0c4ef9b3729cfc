"""Tests for the multi-source orchestrator."""

import time

import pytest

from session_collector.config import Config, SourceConfig
from session_collector.context import CollectionContext
from session_collector.errors import InvalidRequestError
from session_collector.models import CollectionRequest
from session_collector.providers import CollectorRegistry, build_default_registry
from session_collector.providers.gemini import GeminiCollector
from session_collector.service import CollectService


class SlowGeminiCollector(GeminiCollector):
    """Gemini collector whose session files take far longer than its timeout."""

    def decode_session_file(self, path, text):
        time.sleep(0.5)
        return super().decode_session_file(path, text)


class TestCollectService:
    """Tests for CollectService.collect_all."""

    def test_supported_sources(self):
        assert CollectService().supported_sources() == ["amazon_q", "claude_code", "gemini_cli"]

    def test_mixed_directory_and_history(self, gemini_config):
        service = CollectService(config=gemini_config)
        result = service.collect_all(CollectionContext(), CollectionRequest(sources=["gemini_cli"]))

        assert result.total_count == 6
        assert len(result.sessions) == 6
        assert len(result.errors) == 1
        assert "broken.json" in result.errors[0]
        assert result.sources == ["gemini_cli"]
        assert result.duration.total_seconds() >= 0

    def test_sources_run_independently(self, gemini_config, missing_source):
        gemini_config.sources["amazon_q"] = missing_source
        service = CollectService(config=gemini_config)
        result = service.collect_all(
            CollectionContext(), CollectionRequest(sources=["gemini_cli", "amazon_q"]),
        )

        by_source = {}
        for session in result.sessions:
            by_source.setdefault(session.source, []).append(session)
        assert len(by_source["gemini_cli"]) == 6
        assert len(by_source["amazon_q"]) == 3
        assert all(s.is_synthetic for s in by_source["amazon_q"])

    def test_source_without_configuration(self, gemini_config):
        service = CollectService(config=gemini_config)
        result = service.collect_all(
            CollectionContext(), CollectionRequest(sources=["gemini_cli", "claude_code"]),
        )

        assert result.total_count == 6
        assert "no configuration for source 'claude_code'" in result.errors

    def test_unregistered_source(self, gemini_config):
        gemini_config.sources["cursor"] = SourceConfig()
        service = CollectService(config=gemini_config)
        result = service.collect_all(
            CollectionContext(), CollectionRequest(sources=["gemini_cli", "cursor"]),
        )

        assert result.total_count == 6
        assert any(e.startswith("failed to create collector for source 'cursor'") for e in result.errors)

    def test_cancelled_context(self, gemini_config):
        ctx = CollectionContext()
        ctx.cancel()
        result = CollectService(config=gemini_config).collect_all(
            ctx, CollectionRequest(sources=["gemini_cli"]),
        )

        assert result.sessions == []
        assert result.total_count == 0
        assert result.errors == ["failed to collect from source 'gemini_cli': context canceled"]

    def test_source_timeout(self, gemini_source):
        gemini_source.timeout = 0.05
        gemini_source.history_file = ""
        config = Config()
        config.sources = {"gemini_cli": gemini_source}
        registry = CollectorRegistry()
        registry.register("gemini_cli", SlowGeminiCollector)

        result = CollectService(registry=registry, config=config).collect_all(
            CollectionContext(), CollectionRequest(sources=["gemini_cli"]),
        )

        assert result.sessions == []
        assert result.errors == ["failed to collect from source 'gemini_cli': context deadline exceeded"]

    def test_empty_request(self):
        with pytest.raises(InvalidRequestError):
            CollectService().collect_all(CollectionContext(), CollectionRequest(sources=[]))

    def test_missing_request(self):
        with pytest.raises(InvalidRequestError):
            CollectService().collect_all(CollectionContext(), None)

    def test_default_registry_is_used(self):
        service = CollectService()
        assert service.registry.list_registered_sources() == build_default_registry().list_registered_sources()
