"""Claude Code session collector.

Claude Code data is decoded best-effort: JSON is read into plain dicts and
fields are looked up under several alternative keys, since the on-disk
layout has changed between releases.
"""

import json
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
from . import register_builtin
from .base import SessionCollector, parse_timestamp, stringify_metadata, title_from_prompt

TEXT_SUFFIXES = {".md", ".log", ".txt"}
COLLECTION_KEYS = ("sessions", "conversations", "chats", "history", "data")
DEFAULT_TITLE = "Claude Code Session"


def decode_path(encoded: str) -> str:
    """Decode a project directory name back to the original path."""
    return encoded.replace("-", "/")


def first_of(data: dict, *keys, default=None):
    """Value of the first key present with a non-empty value."""
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return value
    return default


def extract_text_content(content, text_only: bool = False) -> str:
    """Extract text from message content (handles both string and list formats)."""
    if isinstance(content, str):
        if content.strip().startswith("<system-reminder>"):
            return ""
        return content
    if isinstance(content, list):
        texts = []
        for item in content:
            if isinstance(item, dict):
                if item.get("type") == "text":
                    text = item.get("text", "")
                    if text and not text.strip().startswith("<system-reminder>"):
                        texts.append(text)
                elif item.get("type") == "tool_result" and not text_only:
                    content_str = str(item.get("content", ""))[:50]
                    texts.append(f"(tool_result: {content_str}...)")
            elif isinstance(item, str):
                texts.append(item)
        return " ".join(texts)
    if content is None:
        return ""
    return str(content)


def extract_commands(content, timestamp: datetime, results: dict) -> list[CommandExecution]:
    """Bash tool invocations in an assistant message, matched to their results."""
    if not isinstance(content, list):
        return []
    commands = []
    for item in content:
        if not isinstance(item, dict) or item.get("type") != "tool_use" or item.get("name") != "Bash":
            continue
        inp = item.get("input")
        command = inp.get("command", "") if isinstance(inp, dict) else ""
        if not command or not isinstance(command, str):
            continue
        tool_id = item.get("id") if isinstance(item.get("id"), str) else ""
        result = results.get(tool_id, {})
        output = extract_text_content(result.get("content", ""))
        failed = bool(result.get("is_error"))
        commands.append(CommandExecution(
            id=tool_id,
            command=command,
            args=[],
            output="" if failed else output,
            error=output if failed else "",
            exit_code=1 if failed else 0,
            timestamp=timestamp,
            duration=timedelta(),
        ))
    return commands


@register_builtin
class ClaudeCodeCollector(SessionCollector):
    """Collector for Claude Code sessions and prompt history."""

    name = "claude_code"
    display_name = "Claude Code"
    icon = "🧠"

    def default_file_rule(self, path: Path) -> bool:
        return path.suffix in (".json", ".jsonl")

    # -- session files ---------------------------------------------------

    def decode_session_file(self, path: Path, text: str) -> list[Session]:
        if path.suffix in TEXT_SUFFIXES:
            return [self.text_session(path, text)]
        if path.suffix == ".jsonl":
            return [self._parse_transcript(path, text)]

        data = json.loads(text)
        if isinstance(data, list):
            items = [d for d in data if isinstance(d, dict)]
            if not items:
                raise ValueError("JSON array holds no session objects")
            return [self.parse_session_map(d, f"{path.stem}-{i}") for i, d in enumerate(items)]
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")

        nested = self._nested_sessions(data, path.stem)
        if nested:
            return nested
        return [self.parse_session_map(data, path.stem)]

    def _nested_sessions(self, data: dict, stem: str) -> list[Session]:
        sessions = []
        for key in COLLECTION_KEYS:
            items = data.get(key)
            if not isinstance(items, list):
                continue
            for i, item in enumerate(items):
                if isinstance(item, dict):
                    sessions.append(self.parse_session_map(item, f"{stem}-{key}-{i}"))
        return sessions

    def _parse_transcript(self, path: Path, text: str) -> Session:
        """Parse a Claude Code JSONL transcript (one event per line)."""
        project_dir = path.parent.name
        session_id = path.stem
        cwd = ""
        version = ""
        git_branch = ""
        model = ""
        created_time: Optional[datetime] = None
        messages: list[Message] = []
        commands: list[CommandExecution] = []
        pending_tools: list[tuple[list, datetime]] = []
        tool_results: dict = {}
        parsed_lines = 0

        for line in text.splitlines():
            if not line.strip():
                continue
            try:
                data = json.loads(line)
            except json.JSONDecodeError:
                continue
            if not isinstance(data, dict):
                continue
            parsed_lines += 1

            msg_type = data.get("type")
            if msg_type not in ("user", "assistant"):
                # Plain exported messages carry a role instead of an event type
                if first_of(data, "role", "sender") and first_of(data, "content", "text", "body"):
                    message = self._parse_message(data, len(messages), datetime.now())
                    created_time = created_time or message.timestamp
                    messages.append(message)
                continue

            cwd = cwd or data.get("cwd", "")
            version = version or data.get("version", "")
            git_branch = git_branch or data.get("gitBranch", "")
            session_id = data.get("sessionId") or session_id

            msg = data.get("message") or {}
            if not isinstance(msg, dict):
                continue
            if msg_type == "assistant" and msg.get("model") and not model:
                model = msg["model"]

            timestamp = parse_timestamp(data.get("timestamp")) or datetime.now()
            if created_time is None:
                created_time = timestamp

            raw_content = msg.get("content", "")
            if isinstance(raw_content, list):
                for item in raw_content:
                    if isinstance(item, dict) and item.get("type") == "tool_result" \
                            and isinstance(item.get("tool_use_id"), str):
                        tool_results[item["tool_use_id"]] = item
            if msg_type == "assistant":
                pending_tools.append((raw_content, timestamp))

            role = normalize_role(msg.get("role", msg_type))
            content = extract_text_content(raw_content, text_only=(role == ROLE_USER))
            if not content or "<system-reminder>" in content[:100]:
                continue
            messages.append(Message(
                id=data.get("uuid") or f"{session_id}-{len(messages) + 1}",
                role=role,
                content=content,
                timestamp=timestamp,
            ))

        if parsed_lines == 0:
            raise ValueError("no JSON lines found in transcript")

        for raw_content, timestamp in pending_tools:
            commands.extend(extract_commands(raw_content, timestamp, tool_results))

        first_prompt = next((m.content for m in messages if m.role == ROLE_USER), "")
        project_path = cwd or decode_path(project_dir)
        return Session(
            id=session_id,
            source=self.name,
            timestamp=created_time or datetime.now(),
            title=title_from_prompt(first_prompt, DEFAULT_TITLE),
            messages=messages,
            commands=commands,
            metadata={
                "source_type": "claude_code_transcript",
                "project_path": project_path,
                "project_name": Path(project_path).name,
                "model": model or "unknown",
                "version": version,
                "git_branch": git_branch,
            },
        )

    # -- loose session maps ----------------------------------------------

    def parse_session_map(self, data: dict, fallback_id: str) -> Session:
        """Convert a loosely structured session dict into a Session."""
        session_id = str(first_of(data, "id", "sessionId", "session_id", default=f"claude-session-{fallback_id}"))
        timestamp = parse_timestamp(first_of(data, "timestamp", "created_at", "createdAt")) or datetime.now()

        messages = []
        raw_messages = data.get("messages")
        if isinstance(raw_messages, list):
            for index, item in enumerate(raw_messages):
                if isinstance(item, dict):
                    messages.append(self._parse_message(item, index, timestamp))

        prompt = first_of(data, "prompt", "query", "input", "display")
        response = first_of(data, "response", "output", "answer")
        if not messages and (prompt or response):
            messages = self._prompt_pair(session_id, prompt, response, timestamp)

        title = first_of(data, "title", "name")
        if not title:
            title = title_from_prompt(str(prompt or ""), DEFAULT_TITLE)

        metadata = stringify_metadata(data.get("metadata"))
        if data.get("project"):
            metadata["project_path"] = str(data["project"])
        metadata.setdefault("source_type", "claude_code_session")
        return Session(
            id=session_id,
            source=self.name,
            timestamp=timestamp,
            title=str(title),
            messages=messages,
            metadata=metadata,
        )

    @staticmethod
    def _parse_message(data: dict, index: int, default_time: datetime) -> Message:
        role = first_of(data, "role", "sender", "type")
        content = first_of(data, "content", "text", "body", default="")
        return Message(
            id=str(data.get("id") or f"msg-{index + 1}"),
            role=normalize_role(role),
            content=extract_text_content(content),
            timestamp=parse_timestamp(data.get("timestamp")) or default_time,
            metadata=stringify_metadata(data.get("metadata")),
        )

    @staticmethod
    def _prompt_pair(session_id: str, prompt, response, timestamp: datetime) -> list[Message]:
        messages = []
        if prompt:
            messages.append(Message(
                id=f"{session_id}-user", role=ROLE_USER, content=str(prompt), timestamp=timestamp,
            ))
        if response:
            messages.append(Message(
                id=f"{session_id}-assistant",
                role=ROLE_ASSISTANT,
                content=str(response),
                timestamp=timestamp + timedelta(seconds=1),
            ))
        return messages

    # -- history lines ---------------------------------------------------

    def decode_history_line(self, line: str, line_num: int) -> Optional[Session]:
        data = json.loads(line)
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")

        session = self.parse_session_map(data, f"history-{line_num}")
        if "sessionId" not in data and "id" not in data:
            session.id = f"claude_code-history-{line_num}"
        session.metadata["source_type"] = "claude_code_history"
        session.metadata["entry_number"] = str(line_num)
        return session
