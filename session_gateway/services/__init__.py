"""
Service Layer Module
"""

from session_gateway.services.chat_service import (
    ChatService,
    PreparedCompletion,
    messages_to_prompt,
)

__all__ = [
    "ChatService",
    "PreparedCompletion",
    "messages_to_prompt",
]
