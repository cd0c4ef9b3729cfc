"""Exception types raised by the collection engine."""


class CollectorError(Exception):
    """Base class for every error the collector raises on purpose."""


class InvalidRequestError(CollectorError):
    """The collection request is missing or has no sources."""


class UnknownSourceError(CollectorError):
    """No collector constructor is registered for a source."""

    def __init__(self, source: str):
        super().__init__(f"no collector registered for source: {source}")
        self.source = source


class ConfigError(CollectorError):
    """Configuration file could not be read or failed validation."""


class FileTooLargeError(CollectorError):
    """A file exceeds the per-file size cap."""

    def __init__(self, path, size: int, limit: int):
        super().__init__(f"file too large: {path} is {size} bytes (max: {limit})")
        self.path = path
        self.size = size
        self.limit = limit


class ContextError(CollectorError):
    """The collection context ended before the work finished."""


class CollectionCancelled(ContextError):
    """The context was cancelled."""

    def __init__(self, message: str = "context canceled"):
        super().__init__(message)


class DeadlineExceeded(ContextError):
    """The context deadline passed."""

    def __init__(self, message: str = "context deadline exceeded"):
        super().__init__(message)
