"""
Upstream session protocol client

Speaks the upstream's two-call protocol: create a chat session, then send a
message into it and receive the answer as an NDJSON stream.
"""

import json
import logging
import time
from typing import Any, AsyncGenerator, Optional

import anyio
import httpx

from session_gateway.common.deadline import Deadline
from session_gateway.common.errors import (
    MissingSessionIdError,
    SendMessageError,
    SessionCreateError,
    StreamReadError,
    UpstreamConnectionError,
    UpstreamTimeoutError,
)
from session_gateway.common.http_client import HttpClient
from session_gateway.common.sanitizer import sanitize_headers
from session_gateway.config import GatewayConfig
from session_gateway.domain.chat import UpstreamSession

logger = logging.getLogger(__name__)

CREATE_SESSION_PATH = "/entp/chat/create-chat-session"
SEND_MESSAGE_PATH = "/entp/chat/send-message"


class UpstreamMessageStream:
    """
    Open send-message response
    
    Owns the underlying httpx response until aclose(). Body reads honour the
    request deadline and surface transport failures as StreamReadError.
    """
    
    def __init__(self, response: httpx.Response, deadline: Deadline, session: UpstreamSession):
        self.response = response
        self.deadline = deadline
        self.session = session
        self._closed = False
        self._started = time.monotonic()
        self._bytes_read = 0
    
    async def iter_bytes(self) -> AsyncGenerator[bytes, None]:
        """
        Yield raw body chunks as they arrive
        
        Raises:
            UpstreamTimeoutError: deadline expired or an HTTP read timed out
            StreamReadError: the connection broke while reading
        """
        body = self.response.aiter_bytes()
        while True:
            try:
                with anyio.fail_after(self.deadline.remaining()):
                    chunk = await anext(body)
            except StopAsyncIteration:
                break
            except TimeoutError as e:
                raise UpstreamTimeoutError(
                    "Upstream stream exceeded the request deadline",
                    details={"session_id": self.session.session_id},
                ) from e
            except httpx.TimeoutException as e:
                raise UpstreamTimeoutError(f"Upstream read timeout: {e}") from e
            except (httpx.TransportError, httpx.StreamError) as e:
                raise StreamReadError(
                    f"Upstream stream read failed: {e}",
                    details={"session_id": self.session.session_id},
                ) from e
            self._bytes_read += len(chunk)
            yield chunk
        
        logger.info(
            "Upstream stream finished: session_id=%s, bytes=%d, elapsed_ms=%d",
            self.session.session_id,
            self._bytes_read,
            int((time.monotonic() - self._started) * 1000),
        )
    
    async def aclose(self) -> None:
        """Release the upstream connection (idempotent)"""
        if self._closed:
            return
        self._closed = True
        await self.response.aclose()


class SessionChatClient:
    """
    Upstream Session Client
    
    Every call carries the disguise header set from the gateway configuration
    plus the resolved Authorization value.
    """
    
    def __init__(self, http_client: HttpClient, config: GatewayConfig):
        self.http_client = http_client
        self.config = config
    
    def _build_headers(self, authorization: str) -> dict[str, str]:
        headers = dict(self.config.disguise_headers)
        headers["authorization"] = authorization
        return headers
    
    def _url(self, path: str) -> str:
        return f"{self.config.upstream_origin}{path}"
    
    async def create_session(
        self,
        authorization: str,
        model: str,
        deadline: Deadline,
    ) -> UpstreamSession:
        """
        Create an upstream chat session
        
        The whole response body is read before returning.
        
        Args:
            authorization: Authorization header value sent upstream
            model: Model name, used in the session description
            deadline: Request deadline
        
        Returns:
            UpstreamSession: Newly created session
        
        Raises:
            SessionCreateError: upstream answered with a non-2xx status
            MissingSessionIdError: response body has no chat_session_id
        """
        url = self._url(CREATE_SESSION_PATH)
        payload = {
            "persona_id": self.config.persona_id,
            "description": f"Streaming chat session using {model}",
        }
        headers = self._build_headers(authorization)
        logger.debug(
            "Create Session Request: url=%s headers=%s body=%s",
            url,
            sanitize_headers(headers),
            json.dumps(payload, ensure_ascii=False),
        )
        
        try:
            with anyio.fail_after(deadline.remaining()):
                response = await self.http_client.post(
                    url,
                    headers=headers,
                    json=payload,
                )
        except TimeoutError as e:
            raise UpstreamTimeoutError("Create session exceeded the request deadline") from e
        except httpx.TimeoutException as e:
            raise UpstreamTimeoutError(f"Create session timeout: {e}") from e
        except httpx.RequestError as e:
            raise UpstreamConnectionError(f"Create session request error: {e}") from e
        
        if not response.is_success:
            logger.warning(
                "Create session failed: status=%s body=%s",
                response.status_code,
                response.text[:500],
            )
            raise SessionCreateError(
                response.status_code,
                details={"body": response.text[:500]},
            )
        
        session_id = _extract_session_id(response)
        logger.info("Upstream session created: session_id=%s, model=%s", session_id, model)
        return UpstreamSession(session_id=session_id)
    
    async def send_message(
        self,
        authorization: str,
        session: UpstreamSession,
        prompt: str,
        deadline: Deadline,
    ) -> UpstreamMessageStream:
        """
        Send the prompt into a session and open the answer stream
        
        Args:
            authorization: Authorization header value sent upstream
            session: Session returned by create_session
            prompt: Flattened conversation text
            deadline: Request deadline
        
        Returns:
            UpstreamMessageStream: Open stream, to be closed by the caller
        
        Raises:
            SendMessageError: upstream answered with a non-2xx status
        """
        url = self._url(SEND_MESSAGE_PATH)
        payload: dict[str, Any] = {
            "chat_session_id": session.session_id,
            "parent_message_id": None,
            "message": prompt,
            "file_descriptors": [],
            "search_doc_ids": [],
            "retrieval_options": {},
        }
        logger.debug(
            "Send Message Request: url=%s session_id=%s prompt_chars=%d",
            url,
            session.session_id,
            len(prompt),
        )
        
        try:
            with anyio.fail_after(deadline.remaining()):
                response = await self.http_client.open_stream(
                    "POST",
                    url,
                    headers=self._build_headers(authorization),
                    json=payload,
                )
        except TimeoutError as e:
            raise UpstreamTimeoutError("Send message exceeded the request deadline") from e
        except httpx.TimeoutException as e:
            raise UpstreamTimeoutError(f"Send message timeout: {e}") from e
        except httpx.RequestError as e:
            raise UpstreamConnectionError(f"Send message request error: {e}") from e
        
        if not response.is_success:
            body: Optional[str] = None
            try:
                with anyio.fail_after(deadline.remaining()):
                    await response.aread()
                body = response.text[:500]
            except (TimeoutError, httpx.HTTPError):
                body = None
            finally:
                await response.aclose()
            logger.warning(
                "Send message failed: status=%s session_id=%s body=%s",
                response.status_code,
                session.session_id,
                body,
            )
            raise SendMessageError(response.status_code, details={"body": body})
        
        return UpstreamMessageStream(response, deadline, session)


def _extract_session_id(response: httpx.Response) -> Any:
    try:
        data = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MissingSessionIdError(
            "Upstream session response is not JSON",
            details={"body": response.text[:500]},
        ) from e
    
    session_id = data.get("chat_session_id") if isinstance(data, dict) else None
    if session_id is None or session_id == "":
        raise MissingSessionIdError(details={"body": response.text[:500]})
    return session_id
