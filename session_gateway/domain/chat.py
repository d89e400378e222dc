"""
Chat Domain Model

Defines the inbound chat-completion request, the upstream session and event
records, and the outbound streaming chunk.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _content_to_text(content: Any) -> str:
    """
    Render message content as plain text

    OpenAI content-part lists contribute their text parts; anything else is str()-ed.
    """
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: list[str] = []
        for item in content:
            if isinstance(item, str):
                parts.append(item)
            elif isinstance(item, dict) and isinstance(item.get("text"), str):
                parts.append(item["text"])
        return "".join(parts)
    return str(content)


class ChatMessage(BaseModel):
    """Single chat turn"""

    model_config = ConfigDict(extra="ignore")

    role: str = Field("user", description="Message Role")
    content: str = Field("", description="Message Text")

    @field_validator("role", mode="before")
    @classmethod
    def _default_role(cls, value: Any) -> Any:
        return "user" if value is None else value

    @field_validator("content", mode="before")
    @classmethod
    def _flatten_content(cls, value: Any) -> str:
        return _content_to_text(value)


class ChatCompletionRequest(BaseModel):
    """
    Chat Completion Request Model

    Only the fields the upstream can honour are kept; everything else is ignored.
    The model default is filled in by the chat service from the gateway config.
    """

    model_config = ConfigDict(extra="ignore")

    model: Optional[str] = Field(None, description="Requested Model")
    messages: list[ChatMessage] = Field(default_factory=list, description="Conversation Turns")
    stream: bool = Field(False, description="Stream Response As SSE")

    @field_validator("stream", mode="before")
    @classmethod
    def _default_stream(cls, value: Any) -> Any:
        return False if value is None else value

    @field_validator("messages", mode="before")
    @classmethod
    def _default_messages(cls, value: Any) -> Any:
        return [] if value is None else value


@dataclass(frozen=True)
class UpstreamSession:
    """
    Upstream Chat Session

    Created once per inbound request and discarded with it.
    """

    # Opaque value of chat_session_id, sent back unchanged
    session_id: Any


MESSAGE_DELTA = "message_delta"


@dataclass(frozen=True)
class UpstreamEvent:
    """
    One decoded upstream NDJSON record

    The payload normally sits in the "obj" envelope:
    {"ind": 1, "obj": {"type": "message_delta", "content": "..."}}
    """

    type: Optional[str]
    content: Any = None
    record: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "UpstreamEvent":
        payload = record.get("obj")
        if not isinstance(payload, dict):
            payload = record
        event_type = payload.get("type")
        return cls(
            type=event_type if isinstance(event_type, str) else None,
            content=payload.get("content"),
            record=record,
        )

    @property
    def is_message_delta(self) -> bool:
        """Message delta with non-empty text"""
        return (
            self.type == MESSAGE_DELTA
            and isinstance(self.content, str)
            and bool(self.content)
        )


@dataclass(frozen=True)
class OutboundChunk:
    """
    Standardized streaming delta unit

    id and created are shared by every chunk of one completion.
    """

    id: str
    created: int
    model: str
    content: Optional[str] = None
    finish_reason: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        delta: dict[str, Any] = {}
        if self.content is not None:
            delta["content"] = self.content
        return {
            "id": self.id,
            "object": "chat.completion.chunk",
            "created": self.created,
            "model": self.model,
            "choices": [
                {
                    "index": 0,
                    "delta": delta,
                    "finish_reason": self.finish_reason,
                }
            ],
        }
