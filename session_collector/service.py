"""Top-level collection across every requested source."""

import logging
import threading
from typing import Optional

from .config import Config
from .context import CollectionContext
from .errors import ContextError, InvalidRequestError, UnknownSourceError
from .models import CollectionRequest, CollectionResult
from .providers import CollectorRegistry, build_default_registry

logger = logging.getLogger(__name__)


class CollectService:
    """Runs one collector per requested source and merges the results."""

    def __init__(self, registry: Optional[CollectorRegistry] = None, config: Optional[Config] = None):
        self.registry = registry or build_default_registry()
        self.config = config or Config()

    def supported_sources(self) -> list[str]:
        return self.registry.list_registered_sources()

    def collect_all(self, ctx: CollectionContext, request: Optional[CollectionRequest]) -> CollectionResult:
        """Collect every source in the request concurrently.

        Per-source failures (unknown source, missing configuration, collector
        errors including cancellation) are recorded in ``result.errors`` and
        never stop the other sources. Raises InvalidRequestError for a
        missing or empty request.
        """
        if request is None:
            raise InvalidRequestError("collection request is None")
        request.validate()

        result = CollectionResult(sources=list(request.sources))
        lock = threading.Lock()

        def add_error(message: str):
            logger.warning(message)
            with lock:
                result.errors.append(message)

        def collect_source(source: str):
            source_config = self.config.source(source)
            if source_config is None:
                add_error(f"no configuration for source '{source}'")
                return
            try:
                collector = self.registry.get_collector(source, source_config)
            except UnknownSourceError as e:
                add_error(f"failed to create collector for source '{source}': {e}")
                return

            file_errors: list[str] = []
            try:
                sessions = collector.collect(ctx, request, errors=file_errors)
            except ContextError as e:
                add_error(f"failed to collect from source '{source}': {e}")
                return
            finally:
                with lock:
                    result.errors.extend(file_errors)

            logger.info(f"Collected {len(sessions)} sessions from {source}")
            with lock:
                result.sessions.extend(sessions)

        threads = [
            threading.Thread(target=collect_source, args=(source,), name=f"collect-{source}", daemon=True)
            for source in request.sources
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        result.finalize()
        logger.info(
            f"Collection complete: {result.total_count} sessions from {len(result.sources)} sources "
            f"in {result.duration.total_seconds():.2f}s ({len(result.errors)} errors)"
        )
        return result
