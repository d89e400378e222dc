"""
Chat Completion Service

Drives one completion through the upstream session protocol:
1. create an upstream session
2. send the flattened conversation into it
3. transcode the NDJSON answer into an SSE stream or a single response
"""

import logging
from dataclasses import dataclass
from typing import Any, AsyncGenerator, Optional

import anyio

from session_gateway.common.deadline import Deadline
from session_gateway.common.stream_transcoder import StreamTranscoder
from session_gateway.config import GatewayConfig
from session_gateway.domain.chat import ChatCompletionRequest, ChatMessage
from session_gateway.providers.session_client import SessionChatClient, UpstreamMessageStream

logger = logging.getLogger(__name__)


def messages_to_prompt(messages: list[ChatMessage]) -> str:
    """
    Flatten a conversation into a single prompt

    Each turn becomes "<role>: <content>", turns are separated by a blank line.
    """
    return "\n\n".join(f"{m.role}: {m.content}" for m in messages)


@dataclass
class PreparedCompletion:
    """
    Completion whose upstream stream is open and ready to be consumed
    """

    model: str
    stream: UpstreamMessageStream
    transcoder: StreamTranscoder

    async def aclose(self) -> None:
        # Shielded so that a cancelled client request still releases the upstream socket
        with anyio.CancelScope(shield=True):
            await self.stream.aclose()


class ChatService:
    """
    Chat Completion Service

    Stateless apart from the read-only gateway configuration; one instance may
    serve any number of concurrent requests.
    """

    def __init__(self, client: SessionChatClient, config: GatewayConfig):
        self.client = client
        self.config = config

    def resolve_authorization(self, authorization: Optional[str]) -> str:
        """
        Pick the Authorization value sent upstream

        A "Bearer <token>" header is passed through verbatim, anything else is
        replaced by the configured fallback token.
        """
        if authorization and authorization.startswith("Bearer "):
            return authorization
        return self.config.fallback_token

    def resolve_model(self, request: ChatCompletionRequest) -> str:
        return request.model or self.config.default_model

    async def prepare(
        self,
        request: ChatCompletionRequest,
        authorization: Optional[str],
        deadline: Deadline,
    ) -> PreparedCompletion:
        """
        Run both upstream phases in order

        The session must be fully created before the message is sent. On return the
        send-message body is still unread; the caller must aclose() the result.

        Raises:
            UpstreamError: any failure of either phase
        """
        model = self.resolve_model(request)
        upstream_auth = self.resolve_authorization(authorization)

        session = await self.client.create_session(upstream_auth, model, deadline)
        prompt = messages_to_prompt(request.messages)
        stream = await self.client.send_message(upstream_auth, session, prompt, deadline)

        return PreparedCompletion(
            model=model,
            stream=stream,
            transcoder=StreamTranscoder(model=model),
        )

    async def stream_completion(self, prepared: PreparedCompletion) -> AsyncGenerator[bytes, None]:
        """
        SSE body for a streaming completion

        Frames are forwarded as they are produced. The upstream response is closed when the
        stream ends, fails, or is cancelled because the client went away.
        """
        try:
            async for frame in prepared.transcoder.to_sse(prepared.stream.iter_bytes()):
                yield frame
        finally:
            await prepared.aclose()

    async def complete(self, prepared: PreparedCompletion) -> dict[str, Any]:
        """
        Drain the upstream stream into a single chat.completion object

        Raises:
            UpstreamError: the upstream stream failed or timed out
        """
        try:
            return await prepared.transcoder.collect(prepared.stream.iter_bytes())
        finally:
            await prepared.aclose()
