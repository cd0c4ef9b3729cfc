"""Raw on-disk schemas for sources with a documented record layout.

History lines are decoded with StrictModel: any field not modelled here
rejects the line. Whole session files use LenientModel, which ignores
unknown fields so newer tool versions still decode.
"""

from typing import Any, Optional

import pydantic


class StrictModel(pydantic.BaseModel):
    """Rejects unknown fields."""

    model_config = pydantic.ConfigDict(extra="forbid", frozen=True)


class LenientModel(pydantic.BaseModel):
    """Ignores unknown fields."""

    model_config = pydantic.ConfigDict(extra="ignore", frozen=True)


# ==============================================================================
# Gemini CLI
# ==============================================================================


class GeminiHistoryEntry(StrictModel):
    id: str = ""
    command: str = ""
    prompt: str = ""
    response: str = ""
    timestamp: str = ""
    model: str = ""
    metadata: dict[str, Any] = pydantic.Field(default_factory=dict)


class GeminiMessagePart(LenientModel):
    type: str = ""
    text: str = ""


class GeminiMessage(LenientModel):
    id: str = ""
    role: str = ""
    content: str = ""
    parts: list[GeminiMessagePart] = pydantic.Field(default_factory=list)
    timestamp: str = ""
    metadata: dict[str, Any] = pydantic.Field(default_factory=dict)


class GeminiSessionSettings(LenientModel):
    model: str = ""
    temperature: float = 0.0
    max_tokens: int = 0


class GeminiSessionData(LenientModel):
    id: str = ""
    title: str = ""
    created_at: str = ""
    updated_at: str = ""
    model: str = ""
    messages: list[GeminiMessage] = pydantic.Field(default_factory=list)
    metadata: dict[str, Any] = pydantic.Field(default_factory=dict)
    settings: Optional[GeminiSessionSettings] = None


# ==============================================================================
# Amazon Q CLI
# ==============================================================================


class AmazonQHistoryEntry(StrictModel):
    id: str = ""
    conversation_id: str = ""
    query: str = ""
    response: str = ""
    timestamp: str = ""
    service: str = ""
    region: str = ""
    user_id: str = ""
    session_type: str = ""
    context: dict[str, Any] = pydantic.Field(default_factory=dict)
    metadata: dict[str, Any] = pydantic.Field(default_factory=dict)


class AmazonQMessage(LenientModel):
    id: str = ""
    role: str = ""
    content: str = ""
    timestamp: str = ""
    message_type: str = ""
    service: str = ""
    context: dict[str, Any] = pydantic.Field(default_factory=dict)
    metadata: dict[str, Any] = pydantic.Field(default_factory=dict)


class AmazonQSessionSettings(LenientModel):
    service: str = ""
    region: str = ""
    max_tokens: int = 0
    temperature: float = 0.0


class AmazonQSessionData(LenientModel):
    id: str = ""
    conversation_id: str = ""
    title: str = ""
    created_at: str = ""
    updated_at: str = ""
    service: str = ""
    region: str = ""
    user_id: str = ""
    messages: list[AmazonQMessage] = pydantic.Field(default_factory=list)
    context: dict[str, Any] = pydantic.Field(default_factory=dict)
    settings: Optional[AmazonQSessionSettings] = None
    metadata: dict[str, Any] = pydantic.Field(default_factory=dict)
