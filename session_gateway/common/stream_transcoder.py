"""
Upstream NDJSON to OpenAI Chat Completions transcoding.

The upstream send-message call answers with newline-delimited JSON events. This module turns
that byte stream into `chat.completion.chunk` deltas, and renders them either as an SSE stream
or as one aggregated `chat.completion` object.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Any, AsyncGenerator, AsyncIterable, Optional

from session_gateway.common.errors import AppError, MalformedRecordError
from session_gateway.common.ndjson import NDJSONLineReader, decode_record
from session_gateway.common.sse import DONE_FRAME, format_sse_data
from session_gateway.domain.chat import OutboundChunk, UpstreamEvent

logger = logging.getLogger(__name__)


def new_completion_id() -> str:
    return f"chatcmpl-{uuid.uuid4()}"


class StreamTranscoder:
    """
    Transcoder for one completion

    Holds the completion id and creation time shared by every emitted chunk.
    An instance consumes a single upstream stream.
    """

    def __init__(
        self,
        model: str,
        completion_id: Optional[str] = None,
        created: Optional[int] = None,
    ) -> None:
        self.model = model
        self.completion_id = completion_id or new_completion_id()
        self.created = created if created is not None else int(time.time())

    async def events(self, upstream: AsyncIterable[bytes]) -> AsyncGenerator[UpstreamEvent, None]:
        """
        Decode every complete NDJSON record of the upstream stream, in arrival order.

        Malformed lines are skipped. The unterminated tail left at end of stream is discarded.
        """
        reader = NDJSONLineReader()

        async for chunk in upstream:
            for line in reader.feed(chunk):
                try:
                    record = decode_record(line)
                except MalformedRecordError as e:
                    logger.debug("Skipping malformed upstream record: %s", e.details.get("line"))
                    continue
                yield UpstreamEvent.from_record(record)

        tail = reader.close()
        if tail.strip():
            logger.debug("Discarding unterminated upstream tail (%d bytes)", len(tail))

    async def chunks(self, upstream: AsyncIterable[bytes]) -> AsyncGenerator[OutboundChunk, None]:
        """Yield one OutboundChunk per message delta, without reordering or batching."""
        async for event in self.events(upstream):
            if event.is_message_delta:
                yield self.delta_chunk(event.content)
            else:
                logger.debug("Ignoring upstream event: type=%s", event.type)

    def delta_chunk(self, content: str) -> OutboundChunk:
        return OutboundChunk(
            id=self.completion_id,
            created=self.created,
            model=self.model,
            content=content,
        )

    def stop_chunk(self) -> OutboundChunk:
        """Terminal chunk: empty delta, finish_reason "stop"."""
        return OutboundChunk(
            id=self.completion_id,
            created=self.created,
            model=self.model,
            finish_reason="stop",
        )

    async def to_sse(self, upstream: AsyncIterable[bytes]) -> AsyncGenerator[bytes, None]:
        """
        Render the completion as an SSE stream.

        Each delta is yielded as soon as it is decoded. A failure while reading ends the
        stream with an error frame followed by [DONE]; frames are always written whole.
        """
        try:
            async for chunk in self.chunks(upstream):
                yield format_sse_data(chunk.to_dict())
        except AppError as e:
            logger.warning(
                "Upstream stream failed: completion_id=%s, error=%s",
                self.completion_id,
                e.message,
            )
            yield format_sse_data(e.to_stream_dict())
            yield DONE_FRAME
            return
        except Exception as e:
            logger.error(
                "Unexpected error while transcoding stream: completion_id=%s, error=%s",
                self.completion_id,
                str(e),
                exc_info=True,
            )
            yield format_sse_data(
                {"error": {"message": str(e), "type": "internal_error", "code": "internal_error"}}
            )
            yield DONE_FRAME
            return

        yield format_sse_data(self.stop_chunk().to_dict())
        yield DONE_FRAME

    async def collect(self, upstream: AsyncIterable[bytes]) -> dict[str, Any]:
        """
        Drain the upstream stream and build a single chat.completion object.

        Errors propagate; a truncated stream never produces a success response.
        """
        text_parts: list[str] = []
        async for chunk in self.chunks(upstream):
            text_parts.append(chunk.content or "")

        return {
            "id": self.completion_id,
            "object": "chat.completion",
            "created": self.created,
            "model": self.model,
            "choices": [
                {
                    "index": 0,
                    "message": {"role": "assistant", "content": "".join(text_parts)},
                    "finish_reason": "stop",
                }
            ],
        }
