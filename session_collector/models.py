"""Unified session model for all collection sources."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from .errors import InvalidRequestError

SYNTHETIC_KEY = "synthetic"

ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"
ROLE_SYSTEM = "system"
ROLE_UNKNOWN = "unknown"
KNOWN_ROLES = (ROLE_USER, ROLE_ASSISTANT, ROLE_SYSTEM)


def normalize_role(role) -> str:
    """Map a raw role/sender value onto the closed set of roles."""
    if not role or not isinstance(role, str):
        return ROLE_UNKNOWN
    role = role.strip().lower()
    if role in KNOWN_ROLES:
        return role
    # Common aliases seen in exported histories
    if role in ("human", "prompt", "content"):
        return ROLE_USER
    if role in ("ai", "model", "bot", "response"):
        return ROLE_ASSISTANT
    return ROLE_UNKNOWN


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_iso(value) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


@dataclass
class Message:
    """A single conversational turn."""

    id: str
    role: str
    content: str
    timestamp: datetime
    metadata: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "timestamp": _iso(self.timestamp),
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Message":
        return cls(
            id=data.get("id", ""),
            role=data.get("role", ROLE_UNKNOWN),
            content=data.get("content", ""),
            timestamp=_parse_iso(data.get("timestamp")) or datetime.now(),
            metadata=dict(data.get("metadata") or {}),
        )


@dataclass
class CommandExecution:
    """A shell or tool command recorded alongside a session."""

    command: str
    timestamp: datetime
    id: str = ""
    args: list[str] = field(default_factory=list)
    output: str = ""
    error: str = ""
    exit_code: int = 0
    duration: timedelta = field(default_factory=timedelta)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "command": self.command,
            "args": list(self.args),
            "output": self.output,
            "error": self.error,
            "exit_code": self.exit_code,
            "timestamp": _iso(self.timestamp),
            "duration": self.duration.total_seconds(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CommandExecution":
        return cls(
            id=data.get("id", ""),
            command=data.get("command", ""),
            args=list(data.get("args") or []),
            output=data.get("output", ""),
            error=data.get("error", ""),
            exit_code=int(data.get("exit_code", 0)),
            timestamp=_parse_iso(data.get("timestamp")) or datetime.now(),
            duration=timedelta(seconds=float(data.get("duration", 0))),
        )


@dataclass
class FileReference:
    """A file touched by, or backing, a session."""

    path: str
    name: str
    size: int = 0
    modified_time: Optional[datetime] = None
    content_type: str = ""
    hash: str = ""

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "name": self.name,
            "size": self.size,
            "modified_time": _iso(self.modified_time),
            "content_type": self.content_type,
            "hash": self.hash,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FileReference":
        return cls(
            path=data.get("path", ""),
            name=data.get("name", ""),
            size=int(data.get("size", 0)),
            modified_time=_parse_iso(data.get("modified_time")),
            content_type=data.get("content_type", ""),
            hash=data.get("hash", ""),
        )


@dataclass
class Session:
    """Normalized session record shared by all sources."""

    # Identity
    id: str
    source: str  # source id: "claude_code", "gemini_cli", "amazon_q"

    # Timing
    timestamp: datetime = field(default_factory=datetime.now)

    # Content
    title: str = ""
    messages: list[Message] = field(default_factory=list)
    commands: list[CommandExecution] = field(default_factory=list)
    files: list[FileReference] = field(default_factory=list)

    # Source-specific data, flattened to strings
    metadata: dict[str, str] = field(default_factory=dict)

    @property
    def key(self) -> tuple[str, str, str]:
        """Composite identity; ids are only unique within a source file."""
        return (self.source, self.metadata.get("file_path", ""), self.id)

    @property
    def is_synthetic(self) -> bool:
        return self.metadata.get(SYNTHETIC_KEY) == "true"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "source": self.source,
            "timestamp": _iso(self.timestamp),
            "title": self.title,
            "messages": [m.to_dict() for m in self.messages],
            "commands": [c.to_dict() for c in self.commands],
            "files": [f.to_dict() for f in self.files],
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Session":
        return cls(
            id=data.get("id", ""),
            source=data.get("source", ""),
            timestamp=_parse_iso(data.get("timestamp")) or datetime.now(),
            title=data.get("title", ""),
            messages=[Message.from_dict(m) for m in data.get("messages") or []],
            commands=[CommandExecution.from_dict(c) for c in data.get("commands") or []],
            files=[FileReference.from_dict(f) for f in data.get("files") or []],
            metadata=dict(data.get("metadata") or {}),
        )


@dataclass
class DateRange:
    """Inclusive date range; a None bound is open on that side."""

    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {"start": _iso(self.start), "end": _iso(self.end)}


@dataclass
class CollectionRequest:
    """One invocation's worth of collection settings. Read-only once built."""

    sources: list[str] = field(default_factory=list)
    date_range: Optional[DateRange] = None
    include_files: bool = False
    include_commands: bool = False

    # Output hints, not used by the collectors
    output_path: str = ""
    template: str = ""

    def validate(self) -> None:
        if not self.sources:
            raise InvalidRequestError("at least one source must be requested")


@dataclass
class CollectionResult:
    """Merged output of a multi-source collection run."""

    sessions: list[Session] = field(default_factory=list)
    sources: list[str] = field(default_factory=list)
    total_count: int = 0
    collected_at: datetime = field(default_factory=datetime.now)
    duration: timedelta = field(default_factory=timedelta)
    errors: list[str] = field(default_factory=list)

    def finalize(self) -> None:
        """Compute counts and elapsed time once every collector has joined."""
        self.total_count = len(self.sessions)
        self.duration = datetime.now() - self.collected_at

    def to_dict(self) -> dict:
        return {
            "sessions": [s.to_dict() for s in self.sessions],
            "total_count": self.total_count,
            "sources": list(self.sources),
            "collected_at": _iso(self.collected_at),
            "duration": self.duration.total_seconds(),
            "errors": list(self.errors),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CollectionResult":
        sessions = [Session.from_dict(s) for s in data.get("sessions") or []]
        return cls(
            sessions=sessions,
            sources=list(data.get("sources") or []),
            total_count=int(data.get("total_count", len(sessions))),
            collected_at=_parse_iso(data.get("collected_at")) or datetime.now(),
            duration=timedelta(seconds=float(data.get("duration", 0))),
            errors=list(data.get("errors") or []),
        )
