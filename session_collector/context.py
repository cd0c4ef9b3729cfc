"""Cancellation and deadline propagation shared by collector threads."""

import threading
import time
from typing import Optional

from .errors import CollectionCancelled, ContextError, DeadlineExceeded


class CollectionContext:
    """Cancellable context with an optional deadline.

    Children created with child() observe their parent's cancellation and
    deadline in addition to their own. Use as a context manager to cancel
    the context (and its children) when the block exits.
    """

    def __init__(self, parent: Optional["CollectionContext"] = None, timeout: Optional[float] = None):
        self._parent = parent
        self._lock = threading.Lock()
        self._reason: Optional[ContextError] = None
        self._children: list["CollectionContext"] = []
        self._deadline: Optional[float] = None
        if timeout is not None:
            self._deadline = time.monotonic() + timeout
        if parent is not None:
            parent._adopt(self)

    def __enter__(self) -> "CollectionContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cancel()

    def _adopt(self, child: "CollectionContext") -> None:
        with self._lock:
            reason = self._reason
            if reason is None:
                self._children.append(child)
        if reason is not None:
            child._end(reason)

    def _end(self, reason: ContextError) -> None:
        with self._lock:
            if self._reason is not None:
                return
            self._reason = reason
            children, self._children = self._children, []
        for child in children:
            child._end(reason)

    def child(self, timeout: Optional[float] = None) -> "CollectionContext":
        return CollectionContext(parent=self, timeout=timeout)

    def cancel(self) -> None:
        self._end(CollectionCancelled())

    def err(self) -> Optional[ContextError]:
        """Return why the context ended, or None while it is still live."""
        if self._reason is not None:
            return self._reason
        if self._parent is not None:
            parent_err = self._parent.err()
            if parent_err is not None:
                self._end(parent_err)
                return self._reason
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self._end(DeadlineExceeded())
            return self._reason
        return None

    def done(self) -> bool:
        return self.err() is not None

    def check(self) -> None:
        """Raise a fresh copy of the context error if the context has ended."""
        err = self.err()
        if err is not None:
            raise type(err)(str(err))
