"""Streaming, line-at-a-time parsing of history files."""

import logging
from pathlib import Path
from typing import Callable, Optional

from .context import CollectionContext
from .errors import FileTooLargeError
from .models import Session
from .pipeline import MAX_FILE_SIZE, PipelineResult

logger = logging.getLogger(__name__)

MAX_LINE_BYTES = 64 * 1024  # 64KB
MAX_RECORDS_PER_FILE = 10000

LineFn = Callable[[str, int], Optional[Session]]


def _read_lines(f, max_line_bytes: int):
    """Yield (line_number, bytes, too_long) without buffering whole lines past the cap."""
    line_num = 0
    while True:
        chunk = f.readline(max_line_bytes + 1)
        if not chunk:
            return
        line_num += 1
        if len(chunk) > max_line_bytes and not chunk.endswith(b"\n"):
            # Discard the remainder of the overlong line
            while chunk and not chunk.endswith(b"\n"):
                chunk = f.readline(max_line_bytes)
            yield line_num, b"", True
            continue
        yield line_num, chunk, False


def parse_history_file(
    ctx: CollectionContext,
    path: Path,
    decode_line: LineFn,
    text_line: LineFn,
    max_records: int = MAX_RECORDS_PER_FILE,
    max_file_size: int = MAX_FILE_SIZE,
    max_line_bytes: int = MAX_LINE_BYTES,
) -> PipelineResult:
    """Parse a history file one line at a time.

    Lines starting with "{" go through decode_line, anything else through
    text_line. A line that fails to decode is logged and skipped. Raises
    FileTooLargeError, OSError, or the context error.
    """
    size = path.stat().st_size
    if size > max_file_size:
        raise FileTooLargeError(path, size, max_file_size)

    result = PipelineResult()
    with open(path, "rb") as f:
        for line_num, raw, too_long in _read_lines(f, max_line_bytes):
            ctx.check()
            if too_long:
                message = f"history line {line_num} in {path} exceeds {max_line_bytes} bytes"
                logger.warning(message)
                result.errors.append(message)
                continue

            line = raw.decode("utf-8", errors="replace").strip()
            if not line:
                continue

            try:
                if line.startswith("{"):
                    session = decode_line(line, line_num)
                else:
                    session = text_line(line, line_num)
            except Exception as e:
                message = f"failed to parse history line {line_num} in {path}: {e}"
                logger.warning(message)
                result.errors.append(message)
                continue

            if session is not None:
                session.metadata.setdefault("file_path", str(path))
                result.sessions.append(session)

            if len(result.sessions) >= max_records:
                logger.warning(f"Reached maximum records per file limit ({max_records}) in {path}")
                break

    return result
