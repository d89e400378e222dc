"""
Upstream Provider Module
"""

from session_gateway.providers.session_client import SessionChatClient, UpstreamMessageStream

__all__ = [
    "SessionChatClient",
    "UpstreamMessageStream",
]
