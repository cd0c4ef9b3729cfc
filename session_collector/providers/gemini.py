"""Gemini CLI session collector."""

import shlex
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

from ..models import (
    ROLE_ASSISTANT,
    ROLE_USER,
    CommandExecution,
    Message,
    Session,
    normalize_role,
)
from ..schemas import GeminiHistoryEntry, GeminiMessage, GeminiSessionData
from . import register_builtin
from .base import SessionCollector, parse_timestamp, stringify_metadata, title_from_prompt

DEFAULT_TITLE = "Gemini CLI Session"


def split_command(command: str) -> tuple[str, list[str]]:
    """Split a recorded command line into program and arguments."""
    try:
        parts = shlex.split(command)
    except ValueError:
        parts = command.split()
    if not parts:
        return command, []
    return parts[0], parts[1:]


def message_text(msg: GeminiMessage) -> str:
    """Plain content, or the text parts joined when content is empty."""
    if msg.content:
        return msg.content
    return "\n".join(p.text for p in msg.parts if p.type == "text" and p.text)


@register_builtin
class GeminiCollector(SessionCollector):
    """Collector for Gemini CLI history and saved sessions."""

    name = "gemini_cli"
    display_name = "Gemini CLI"
    icon = "✨"

    def decode_history_line(self, line: str, line_num: int) -> Optional[Session]:
        entry = GeminiHistoryEntry.model_validate_json(line)
        return self.history_entry_to_session(entry, line_num)

    def history_entry_to_session(self, entry: GeminiHistoryEntry, index: int) -> Session:
        session_id = entry.id or f"gemini-cli-history-{index}"
        timestamp = parse_timestamp(entry.timestamp) or datetime.now()

        messages = []
        if entry.prompt:
            messages.append(Message(
                id=f"{session_id}-user",
                role=ROLE_USER,
                content=entry.prompt,
                timestamp=timestamp,
            ))
        if entry.response:
            messages.append(Message(
                id=f"{session_id}-assistant",
                role=ROLE_ASSISTANT,
                content=entry.response,
                timestamp=timestamp + timedelta(seconds=1),
            ))

        commands = []
        if entry.command:
            program, args = split_command(entry.command)
            commands.append(CommandExecution(
                id=f"{session_id}-command",
                command=program,
                args=args,
                timestamp=timestamp,
            ))

        metadata = stringify_metadata(entry.metadata)
        metadata.update({
            "model": entry.model,
            "command": entry.command,
            "source_type": "gemini_cli_history",
        })
        return Session(
            id=session_id,
            source=self.name,
            timestamp=timestamp,
            title=title_from_prompt(entry.prompt, DEFAULT_TITLE),
            messages=messages,
            commands=commands,
            metadata=metadata,
        )

    def decode_session_file(self, path: Path, text: str) -> list[Session]:
        data = GeminiSessionData.model_validate_json(text)
        return [self.session_data_to_model(data, path)]

    def session_data_to_model(self, data: GeminiSessionData, path: Path) -> Session:
        session_id = data.id or f"gemini-cli-{path.name}"
        timestamp = parse_timestamp(data.created_at) or datetime.now()
        model = data.model or (data.settings.model if data.settings else "")

        messages = []
        for index, msg in enumerate(data.messages):
            messages.append(Message(
                id=msg.id or f"{session_id}-msg-{index + 1}",
                role=normalize_role(msg.role),
                content=message_text(msg),
                timestamp=parse_timestamp(msg.timestamp) or timestamp,
                metadata=stringify_metadata(msg.metadata),
            ))

        title = data.title
        if not title:
            first_prompt = next((m.content for m in messages if m.role == ROLE_USER), "")
            title = title_from_prompt(first_prompt, DEFAULT_TITLE)

        metadata = stringify_metadata(data.metadata)
        metadata.update({
            "file_path": str(path),
            "model": model,
            "source_type": "gemini_cli_session",
        })
        if data.updated_at:
            metadata["updated_at"] = data.updated_at
        return Session(
            id=session_id,
            source=self.name,
            timestamp=timestamp,
            title=title,
            messages=messages,
            metadata=metadata,
        )
