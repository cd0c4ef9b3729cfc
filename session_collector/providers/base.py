"""Base class for per-source session collectors."""

import fnmatch
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from ..config import DEFAULT_SOURCES, DEFAULT_TIMEOUT, SourceConfig
from ..context import CollectionContext
from ..errors import ContextError, FileTooLargeError, InvalidRequestError
from ..fallback import generate_fallback
from ..filters import filter_by_date_range
from ..history import parse_history_file
from ..models import ROLE_USER, CollectionRequest, Message, Session
from ..pipeline import PipelineResult, parse_session_dir

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 100


def parse_timestamp(value) -> Optional[datetime]:
    """Parse RFC 3339 strings and epoch seconds/milliseconds. None if unusable."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        seconds = value / 1000 if value > 1e11 else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


def title_from_prompt(prompt: str, default: str) -> str:
    """First line of the prompt, capped at MAX_TITLE_LENGTH characters."""
    if not prompt:
        return default
    title = prompt.split("\n")[0].strip()
    if len(title) > MAX_TITLE_LENGTH:
        title = title[:MAX_TITLE_LENGTH - 3] + "..."
    return title or default


def stringify_metadata(raw) -> dict[str, str]:
    """Flatten a loosely typed mapping into string values."""
    if not isinstance(raw, dict):
        return {}
    return {str(k): v if isinstance(v, str) else str(v) for k, v in raw.items() if v is not None}


class SessionCollector(ABC):
    """Abstract base class for session collectors.

    Each source (Claude Code, Gemini CLI, Amazon Q) implements the decoding
    hooks; the base class runs the two collection strategies, error
    isolation, fallback, and filtering.
    """

    # Source identity
    name: str = ""  # unique identifier: "claude_code", "gemini_cli", ...
    display_name: str = ""  # human-readable: "Claude Code"
    icon: str = ""

    def __init__(self, config: Optional[SourceConfig] = None):
        self.config = (config or DEFAULT_SOURCES.get(self.name) or SourceConfig()).expanded()
        self.timeout = self.config.timeout or DEFAULT_TIMEOUT

    # -- discovery -------------------------------------------------------

    def get_config_dir(self) -> Path:
        return Path(self.config.config_dir)

    def is_available(self) -> bool:
        """Check if this source's configuration directory exists."""
        return bool(self.config.config_dir) and self.get_config_dir().is_dir()

    def default_file_rule(self, path: Path) -> bool:
        """Inclusion rule used when no include patterns are configured."""
        return path.suffix == ".json"

    def accepts_file(self, path: Path) -> bool:
        name = path.name
        if any(fnmatch.fnmatch(name, p) for p in self.config.exclude_patterns):
            return False
        if self.config.include_patterns:
            return any(fnmatch.fnmatch(name, p) for p in self.config.include_patterns)
        return self.default_file_rule(path)

    # -- decoding hooks --------------------------------------------------

    @abstractmethod
    def decode_session_file(self, path: Path, text: str) -> list[Session]:
        """Decode a structured session file. Raise ValueError if it is not one."""
        ...

    @abstractmethod
    def decode_history_line(self, line: str, line_num: int) -> Optional[Session]:
        """Decode one JSON history line. Raise ValueError if malformed."""
        ...

    def text_session(self, path: Path, text: str) -> Session:
        """Wrap an undecodable file as a single-message session."""
        session_id = f"{self.name}-text-{path.stem}"
        try:
            timestamp = datetime.fromtimestamp(path.stat().st_mtime)
        except OSError:
            timestamp = datetime.now()
        return Session(
            id=session_id,
            source=self.name,
            timestamp=timestamp,
            title=f"{self.display_name} Session: {path.name}",
            messages=[Message(
                id=f"{session_id}-content",
                role=ROLE_USER,
                content=text,
                timestamp=timestamp,
                metadata={"source_type": f"{self.name}_text"},
            )],
            metadata={
                "file_path": str(path),
                "source_type": f"{self.name}_text",
            },
        )

    def text_history_entry(self, line: str, line_num: int) -> Optional[Session]:
        """Wrap a plain-text history line as a single-message session."""
        if not line.strip():
            return None
        session_id = f"{self.name}-text-{line_num}"
        now = datetime.now()
        return Session(
            id=session_id,
            source=self.name,
            timestamp=now,
            title=f"{self.display_name} History Entry",
            messages=[Message(
                id=f"{session_id}-user",
                role=ROLE_USER,
                content=line,
                timestamp=now,
                metadata={"source_type": f"{self.name}_text"},
            )],
            metadata={
                "source_type": f"{self.name}_history",
                "entry_number": str(line_num),
            },
        )

    def fallback(self) -> list[Session]:
        return generate_fallback(self.name)

    # -- strategies ------------------------------------------------------

    def collect_history(self, ctx: CollectionContext) -> PipelineResult:
        return parse_history_file(
            ctx,
            Path(self.config.history_file),
            self.decode_history_line,
            self.text_history_entry,
        )

    def collect_session_dir(self, ctx: CollectionContext) -> PipelineResult:
        return parse_session_dir(
            ctx,
            Path(self.config.session_dir),
            self.accepts_file,
            self.decode_session_file,
            self.text_session,
        )

    def collect(
        self,
        ctx: CollectionContext,
        request: Optional[CollectionRequest],
        errors: Optional[list[str]] = None,
    ) -> list[Session]:
        """Collect this source's sessions.

        Non-fatal problems are logged and appended to ``errors`` when given.
        Raises InvalidRequestError for a missing request and the context
        error on cancellation or timeout, in which case nothing collected so
        far is returned.
        """
        if request is None:
            raise InvalidRequestError("collection request is None")

        with ctx.child(timeout=self.timeout) as child:
            child.check()
            if not self.is_available():
                logger.warning(
                    f"{self.display_name} config directory not found ({self.config.config_dir}), "
                    "returning fallback data"
                )
                return self.fallback()

            sessions: list[Session] = []
            failures: list[str] = []
            lock = threading.Lock()

            def run(label: str, strategy: Callable[[CollectionContext], PipelineResult]):
                try:
                    result = strategy(child)
                except ContextError:
                    return
                except (OSError, FileTooLargeError) as e:
                    with lock:
                        failures.append(f"{self.name}: {label} collection failed: {e}")
                    return
                except Exception as e:
                    logger.exception(f"Unexpected error during {self.display_name} {label} collection")
                    with lock:
                        failures.append(f"{self.name}: {label} collection failed unexpectedly: {e!r}")
                    return
                with lock:
                    sessions.extend(result.sessions)
                    failures.extend(f"{self.name}: {err}" for err in result.errors)

            threads = []
            if self.config.history_file:
                threads.append(threading.Thread(
                    target=run, args=("history", self.collect_history), daemon=True,
                ))
            if self.config.session_dir:
                threads.append(threading.Thread(
                    target=run, args=("session directory", self.collect_session_dir), daemon=True,
                ))
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join()

            child.check()

        for failure in failures:
            logger.warning(f"Collection warning: {failure}")
        if errors is not None:
            errors.extend(failures)

        if not sessions:
            logger.info(f"No {self.display_name} data found, generating fallback data")
            sessions = self.fallback()

        sessions = [self._apply_include_flags(s, request) for s in sessions]
        return filter_by_date_range(sessions, request.date_range)

    @staticmethod
    def _apply_include_flags(session: Session, request: CollectionRequest) -> Session:
        if request.include_files and request.include_commands:
            return session
        return replace(
            session,
            files=session.files if request.include_files else [],
            commands=session.commands if request.include_commands else [],
        )
