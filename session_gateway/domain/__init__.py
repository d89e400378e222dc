"""
Domain Model Module
"""

from session_gateway.domain.chat import (
    ChatCompletionRequest,
    ChatMessage,
    OutboundChunk,
    UpstreamEvent,
    UpstreamSession,
)

__all__ = [
    "ChatCompletionRequest",
    "ChatMessage",
    "OutboundChunk",
    "UpstreamEvent",
    "UpstreamSession",
]
