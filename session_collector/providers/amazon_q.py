"""Amazon Q CLI session collector."""

from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

from ..models import ROLE_ASSISTANT, ROLE_USER, Message, Session, normalize_role
from ..schemas import AmazonQHistoryEntry, AmazonQSessionData
from . import register_builtin
from .base import SessionCollector, parse_timestamp, stringify_metadata, title_from_prompt

DEFAULT_TITLE = "Amazon Q CLI Session"

# Substrings identifying Amazon Q files by name
FILE_MARKERS = (".json", ".log", ".session", "amazonq", "aws-q", "q-cli")


@register_builtin
class AmazonQCollector(SessionCollector):
    """Collector for Amazon Q CLI history and conversation files."""

    name = "amazon_q"
    display_name = "Amazon Q CLI"
    icon = "☁️"

    def default_file_rule(self, path: Path) -> bool:
        name = path.name.lower()
        return any(marker in name for marker in FILE_MARKERS)

    def decode_history_line(self, line: str, line_num: int) -> Optional[Session]:
        entry = AmazonQHistoryEntry.model_validate_json(line)
        return self.history_entry_to_session(entry, line_num)

    def history_entry_to_session(self, entry: AmazonQHistoryEntry, index: int) -> Session:
        session_id = entry.id or f"amazonq-history-{index}"
        timestamp = parse_timestamp(entry.timestamp) or datetime.now()
        message_meta = {"service": entry.service, "region": entry.region}

        messages = []
        if entry.query:
            messages.append(Message(
                id=f"{session_id}-user",
                role=ROLE_USER,
                content=entry.query,
                timestamp=timestamp,
                metadata=dict(message_meta),
            ))
        if entry.response:
            messages.append(Message(
                id=f"{session_id}-assistant",
                role=ROLE_ASSISTANT,
                content=entry.response,
                timestamp=timestamp + timedelta(seconds=1),
                metadata=dict(message_meta),
            ))

        metadata = stringify_metadata(entry.metadata)
        metadata.update({
            "service": entry.service,
            "region": entry.region,
            "user_id": entry.user_id,
            "conversation_id": entry.conversation_id,
            "session_type": entry.session_type,
            "source_type": "amazon_q_history",
        })
        return Session(
            id=session_id,
            source=self.name,
            timestamp=timestamp,
            title=title_from_prompt(entry.query, DEFAULT_TITLE),
            messages=messages,
            metadata=metadata,
        )

    def decode_session_file(self, path: Path, text: str) -> list[Session]:
        if path.suffix == ".log":
            return [self.text_session(path, text)]
        data = AmazonQSessionData.model_validate_json(text)
        return [self.session_data_to_model(data, path)]

    def session_data_to_model(self, data: AmazonQSessionData, path: Path) -> Session:
        session_id = data.id or f"amazonq-{path.name}"
        timestamp = parse_timestamp(data.created_at) or datetime.now()
        service = data.service or (data.settings.service if data.settings else "")
        region = data.region or (data.settings.region if data.settings else "")

        messages = []
        for index, msg in enumerate(data.messages):
            messages.append(Message(
                id=msg.id or f"{session_id}-msg-{index + 1}",
                role=normalize_role(msg.role),
                content=msg.content,
                timestamp=parse_timestamp(msg.timestamp) or timestamp,
                metadata={"service": msg.service, "message_type": msg.message_type},
            ))

        title = data.title
        if not title:
            first_query = next((m.content for m in messages if m.role == ROLE_USER), "")
            title = title_from_prompt(first_query, DEFAULT_TITLE)

        metadata = stringify_metadata(data.metadata)
        metadata.update({
            "file_path": str(path),
            "service": service,
            "region": region,
            "user_id": data.user_id,
            "conversation_id": data.conversation_id,
            "source_type": "amazon_q_session",
        })
        return Session(
            id=session_id,
            source=self.name,
            timestamp=timestamp,
            title=title,
            messages=messages,
            metadata=metadata,
        )
