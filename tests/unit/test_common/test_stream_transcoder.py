import json

import pytest

from session_gateway.common.errors import StreamReadError
from session_gateway.common.stream_transcoder import StreamTranscoder
from tests.sse_utils import sse_payloads

UPSTREAM_BODY = (
    b'{"ind":0,"obj":{"type":"message_start"}}\n'
    b'{"ind":1,"obj":{"type":"message_delta","content":"Hel"}}\n'
    b'{"ind":2,"obj":{"type":"message_delta","content":"lo"}}\n'
    b'{"ind":3,"obj":{"type":"message_delta","content":""}}\n'
    b'{"ind":4,"obj":{"type":"message_delta","content":", world"}}\n'
    b'{"ind":5,"obj":{"type":"section_end"}}\n'
    b'{"ind":6,"obj":{"type":"stop"}}\n'
)


async def _aiter(chunks):
    for chunk in chunks:
        yield chunk


async def _failing(chunks, error):
    for chunk in chunks:
        yield chunk
    raise error


def _transcoder() -> StreamTranscoder:
    return StreamTranscoder(model="gpt-4o", completion_id="chatcmpl-test", created=1700000000)


async def _delta_contents(transcoder: StreamTranscoder, chunks) -> list[str]:
    return [c.content async for c in transcoder.chunks(_aiter(chunks))]


def _split(data: bytes, size: int) -> list[bytes]:
    return [data[i:i + size] for i in range(0, len(data), size)]


@pytest.mark.asyncio
async def test_chunks_emit_only_non_empty_message_deltas_in_order():
    contents = await _delta_contents(_transcoder(), [UPSTREAM_BODY])
    assert contents == ["Hel", "lo", ", world"]


@pytest.mark.asyncio
async def test_split_mid_record_yields_same_deltas():
    first = b'{"obj":{"type":"message_delta","content":"Hel"}}\n{"obj":{"type":"message_delta","conte'
    second = b'nt":"lo"}}\n'

    contents = await _delta_contents(_transcoder(), [first, second])

    assert contents == ["Hel", "lo"]


@pytest.mark.asyncio
@pytest.mark.parametrize("size", [1, 2, 3, 7, 16, 64])
async def test_chunk_boundaries_do_not_change_output(size):
    whole = [c.to_dict() async for c in _transcoder().chunks(_aiter([UPSTREAM_BODY]))]
    fragmented = [c.to_dict() async for c in _transcoder().chunks(_aiter(_split(UPSTREAM_BODY, size)))]

    assert fragmented == whole


@pytest.mark.asyncio
async def test_malformed_line_between_valid_lines_is_skipped():
    body = (
        b'{"obj":{"type":"message_delta","content":"A"}}\n'
        b'{"obj":{"type":"message_delta","content":\n'
        b"garbage\n"
        b'{"obj":{"type":"message_delta","content":"B"}}\n'
    )
    assert await _delta_contents(_transcoder(), [body]) == ["A", "B"]


@pytest.mark.asyncio
async def test_unterminated_tail_is_discarded():
    body = (
        b'{"obj":{"type":"message_delta","content":"A"}}\n'
        b'{"obj":{"type":"message_delta","content":"B"}}'
    )
    assert await _delta_contents(_transcoder(), [body]) == ["A"]


@pytest.mark.asyncio
async def test_records_without_envelope_are_read_from_top_level():
    body = b'{"type":"message_delta","content":"flat"}\n{"obj":"not-an-object","type":"stop"}\n'
    assert await _delta_contents(_transcoder(), [body]) == ["flat"]


@pytest.mark.asyncio
async def test_non_string_content_is_ignored():
    body = b'{"obj":{"type":"message_delta","content":42}}\n{"obj":{"type":"message_delta","content":"ok"}}\n'
    assert await _delta_contents(_transcoder(), [body]) == ["ok"]


@pytest.mark.asyncio
async def test_events_expose_every_decoded_record():
    events = [e async for e in _transcoder().events(_aiter([UPSTREAM_BODY]))]

    assert [e.type for e in events] == [
        "message_start",
        "message_delta",
        "message_delta",
        "message_delta",
        "message_delta",
        "section_end",
        "stop",
    ]
    assert events[1].record["ind"] == 1


@pytest.mark.asyncio
async def test_chunks_share_id_and_created():
    transcoder = StreamTranscoder(model="gpt-4o")
    chunks = [c async for c in transcoder.chunks(_aiter([UPSTREAM_BODY]))]

    assert {c.id for c in chunks} == {transcoder.completion_id}
    assert {c.created for c in chunks} == {transcoder.created}
    assert transcoder.completion_id.startswith("chatcmpl-")


@pytest.mark.asyncio
async def test_to_sse_frames_deltas_then_stop_then_done():
    frames = [f async for f in _transcoder().to_sse(_aiter(_split(UPSTREAM_BODY, 5)))]

    assert all(f.startswith(b"data: ") and f.endswith(b"\n\n") for f in frames)
    payloads = sse_payloads(frames)
    assert payloads[-1] == "[DONE]"

    chunks = [json.loads(p) for p in payloads[:-1]]
    assert [c["choices"][0]["delta"].get("content") for c in chunks] == ["Hel", "lo", ", world", None]
    assert chunks[0] == {
        "id": "chatcmpl-test",
        "object": "chat.completion.chunk",
        "created": 1700000000,
        "model": "gpt-4o",
        "choices": [{"index": 0, "delta": {"content": "Hel"}, "finish_reason": None}],
    }
    assert chunks[-1]["choices"][0] == {"index": 0, "delta": {}, "finish_reason": "stop"}


@pytest.mark.asyncio
async def test_to_sse_on_empty_stream_still_terminates():
    frames = [f async for f in _transcoder().to_sse(_aiter([]))]
    payloads = sse_payloads(frames)

    assert len(payloads) == 2
    assert json.loads(payloads[0])["choices"][0]["finish_reason"] == "stop"
    assert payloads[1] == "[DONE]"


@pytest.mark.asyncio
async def test_to_sse_read_failure_ends_with_error_frame():
    upstream = _failing(
        [b'{"obj":{"type":"message_delta","content":"Hel"}}\n{"obj":{"ty'],
        StreamReadError("Upstream stream read failed: connection reset"),
    )

    frames = [f async for f in _transcoder().to_sse(upstream)]
    payloads = sse_payloads(frames)

    assert json.loads(payloads[0])["choices"][0]["delta"]["content"] == "Hel"
    error = json.loads(payloads[1])
    assert error["error"]["code"] == "stream_read_error"
    assert "connection reset" in error["error"]["message"]
    assert payloads[2] == "[DONE]"
    assert len(payloads) == 3


@pytest.mark.asyncio
async def test_collect_concatenates_all_deltas():
    result = await _transcoder().collect(_aiter(_split(UPSTREAM_BODY, 3)))

    assert result["id"] == "chatcmpl-test"
    assert result["object"] == "chat.completion"
    assert result["model"] == "gpt-4o"
    assert result["choices"] == [
        {
            "index": 0,
            "message": {"role": "assistant", "content": "Hello, world"},
            "finish_reason": "stop",
        }
    ]


@pytest.mark.asyncio
async def test_collect_matches_concatenated_stream_deltas():
    frames = [f async for f in _transcoder().to_sse(_aiter([UPSTREAM_BODY]))]
    streamed = "".join(
        json.loads(p)["choices"][0]["delta"].get("content", "")
        for p in sse_payloads(frames)
        if p != "[DONE]"
    )

    collected = await _transcoder().collect(_aiter([UPSTREAM_BODY]))

    assert collected["choices"][0]["message"]["content"] == streamed


@pytest.mark.asyncio
async def test_collect_propagates_read_failure():
    upstream = _failing([b'{"obj":{"type":"message_delta","content":"Hel"}}\n'], StreamReadError())

    with pytest.raises(StreamReadError):
        await _transcoder().collect(upstream)
