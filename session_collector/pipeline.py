"""Concurrent parsing of a session directory with a bounded worker pool."""

import hashlib
import logging
import mimetypes
import os
import threading
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from queue import Empty, Queue
from typing import Callable, Optional

from .context import CollectionContext
from .errors import FileTooLargeError
from .models import FileReference, Session

logger = logging.getLogger(__name__)

MAX_WORKERS = 10
MAX_FILE_SIZE = 100 * 1024 * 1024  # 100MB
POLL_INTERVAL = 0.05

# Sentinel closing the path and output queues
_DONE = object()

DecodeFn = Callable[[Path, str], list[Session]]
TextFn = Callable[[Path, str], Session]


@dataclass
class PipelineResult:
    """Sessions recovered from a file set plus non-fatal error strings."""

    sessions: list[Session] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def discover_files(
    ctx: CollectionContext,
    root: Path,
    accept: Callable[[Path], bool],
) -> tuple[list[Path], Optional[OSError]]:
    """Walk root collecting accepted file paths.

    A walk error stops the walk but keeps what was already found; it is
    returned alongside the paths.
    """
    def _raise(err: OSError):
        raise err

    paths: list[Path] = []
    try:
        for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
            ctx.check()
            dirnames.sort()
            for name in sorted(filenames):
                path = Path(dirpath) / name
                if accept(path):
                    paths.append(path)
    except OSError as e:
        return paths, e
    return paths, None


def file_reference(path: Path, stat: os.stat_result, data: bytes) -> FileReference:
    content_type, _ = mimetypes.guess_type(path.name)
    if content_type is None and path.suffix == ".jsonl":
        content_type = "application/x-ndjson"
    return FileReference(
        path=str(path),
        name=path.name,
        size=stat.st_size,
        modified_time=datetime.fromtimestamp(stat.st_mtime),
        content_type=content_type or "text/plain",
        hash=hashlib.sha256(data).hexdigest(),
    )


def parse_session_file(
    path: Path,
    decode: DecodeFn,
    as_text: TextFn,
    max_file_size: int = MAX_FILE_SIZE,
) -> tuple[list[Session], Optional[str]]:
    """Parse one file, degrading to a single text session if decoding fails.

    Returns the sessions and an optional warning describing the degradation.
    Raises FileTooLargeError or OSError when the file cannot be used at all.
    """
    stat = path.stat()
    if stat.st_size > max_file_size:
        raise FileTooLargeError(path, stat.st_size, max_file_size)

    data = path.read_bytes()
    text = data.decode("utf-8", errors="replace")
    warning = None
    try:
        sessions = decode(path, text)
    except Exception as e:
        sessions = [as_text(path, text)]
        warning = f"session file {path} could not be decoded, kept as text: {e}"

    ref = file_reference(path, stat, data)
    for session in sessions:
        session.files.append(ref)
        session.metadata.setdefault("file_path", str(path))
    return sessions, warning


def _feed(ctx: CollectionContext, paths: list[Path], path_queue: Queue, workers: int) -> None:
    try:
        for path in paths:
            if ctx.done():
                break
            path_queue.put(path)
    finally:
        for _ in range(workers):
            path_queue.put(_DONE)


def _work(
    ctx: CollectionContext,
    path_queue: Queue,
    out_queue: Queue,
    decode: DecodeFn,
    as_text: TextFn,
    max_file_size: int,
) -> None:
    while True:
        path = path_queue.get()
        if path is _DONE or ctx.done():
            return
        try:
            sessions, warning = parse_session_file(path, decode, as_text, max_file_size)
        except Exception as e:
            out_queue.put(([], f"failed to parse session file {path}: {e}"))
            continue
        out_queue.put((sessions, warning))


def _close(threads: list[threading.Thread], out_queue: Queue) -> None:
    for thread in threads:
        thread.join()
    out_queue.put(_DONE)


def parse_session_dir(
    ctx: CollectionContext,
    root: Path,
    accept: Callable[[Path], bool],
    decode: DecodeFn,
    as_text: TextFn,
    max_workers: int = MAX_WORKERS,
    max_file_size: int = MAX_FILE_SIZE,
) -> PipelineResult:
    """Parse every accepted file under root using a bounded thread pool.

    Raises the context error if the context ends before all files are in;
    anything received up to that point is discarded.
    """
    result = PipelineResult()
    paths, walk_error = discover_files(ctx, root, accept)
    if walk_error is not None:
        result.errors.append(f"failed to walk session directory {root}: {walk_error}")

    workers = min(max_workers, len(paths), os.cpu_count() or 1)
    if workers == 0:
        return result

    logger.debug(f"Parsing {len(paths)} files under {root} with {workers} workers")

    path_queue: Queue = Queue(maxsize=len(paths) + workers)
    out_queue: Queue = Queue(maxsize=len(paths) + 1)

    threads = [
        threading.Thread(
            target=_work,
            args=(ctx, path_queue, out_queue, decode, as_text, max_file_size),
            name=f"session-parser-{i}",
            daemon=True,
        )
        for i in range(workers)
    ]
    for thread in threads:
        thread.start()
    threading.Thread(target=_feed, args=(ctx, paths, path_queue, workers), daemon=True).start()
    threading.Thread(target=_close, args=(threads, out_queue), daemon=True).start()

    while True:
        ctx.check()
        try:
            item = out_queue.get(timeout=POLL_INTERVAL)
        except Empty:
            continue
        if item is _DONE:
            break
        sessions, error = item
        result.sessions.extend(sessions)
        if error:
            result.errors.append(error)

    # Workers may have stopped early on cancellation without an error
    ctx.check()
    return result
