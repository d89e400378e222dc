"""
Server-Sent Events framing for outbound completion streams
"""

from __future__ import annotations

import json
from typing import Any

DONE_FRAME = b"data: [DONE]\n\n"


def format_sse_data(payload: dict[str, Any]) -> bytes:
    """Serialize one JSON payload as a single SSE event"""
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n".encode("utf-8")
