"""
OpenAI Proxy API

Provides OpenAI-compatible API endpoints backed by the upstream session protocol.
"""

import json
import logging
import time
from typing import Optional

from fastapi import APIRouter, Header, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import ValidationError
from starlette.background import BackgroundTask

from session_gateway.api.deps import ChatServiceDep, GatewayConfigDep, SettingsDep
from session_gateway.common.deadline import Deadline
from session_gateway.common.errors import AppError, RequestParseError
from session_gateway.domain.chat import ChatCompletionRequest

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Proxy - OpenAI"])

SSE_HEADERS = {"Cache-Control": "no-cache"}


@router.get("/v1/models")
async def list_models(config: GatewayConfigDep):
    """
    OpenAI Models API (List)

    Returns the configured model allow-list.
    """
    created = int(time.time())
    return {
        "object": "list",
        "data": [
            {
                "id": model_id,
                "object": "model",
                "created": created,
                "owned_by": config.model_owner,
            }
            for model_id in config.allowed_models
        ],
    }


async def _parse_chat_request(request: Request) -> ChatCompletionRequest:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise RequestParseError(f"Invalid JSON body: {e}") from e

    if not isinstance(body, dict):
        raise RequestParseError("Request body must be a JSON object")

    try:
        return ChatCompletionRequest.model_validate(body)
    except ValidationError as e:
        raise RequestParseError(
            f"Invalid chat completion request: {e.error_count()} validation error(s)",
            details={"errors": e.errors(include_url=False)},
        ) from e


@router.post("/v1/chat/completions")
async def chat_completions(
    request: Request,
    service: ChatServiceDep,
    settings: SettingsDep,
    authorization: Optional[str] = Header(None, description="Bearer token"),
):
    """
    OpenAI Chat Completions API Proxy
    """
    try:
        chat_request = await _parse_chat_request(request)
        deadline = Deadline.after(settings.REQUEST_TIMEOUT_SECONDS)
        prepared = await service.prepare(chat_request, authorization, deadline)

        if chat_request.stream:
            return StreamingResponse(
                service.stream_completion(prepared),
                media_type="text/event-stream",
                headers=SSE_HEADERS,
                background=BackgroundTask(prepared.aclose),
            )

        return JSONResponse(content=await service.complete(prepared))

    except AppError as e:
        logger.warning(
            "Chat completion failed: type=%s code=%s message=%s details=%s",
            type(e).__name__,
            e.code,
            e.message,
            e.details,
        )
        return JSONResponse(content=e.to_dict(), status_code=e.status_code)
