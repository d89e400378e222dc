"""
HTTP Client Wrapper Module

Provides the shared asynchronous HTTP client used for every upstream call.
"""

from typing import Any, Optional

import httpx

from session_gateway.config import get_settings


class HttpClient:
    """
    Asynchronous HTTP Client Wrapper
    
    Wraps httpx.AsyncClient, providing unified request methods and timeout configuration.
    The underlying client (and its connection pool) is created on first use and shared
    by all requests until close().
    """
    
    def __init__(
        self,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize HTTP Client
        
        Args:
            transport: Custom httpx transport (e.g. httpx.MockTransport)
        """
        settings = get_settings()
        self.timeout = settings.HTTP_TIMEOUT
        self.transport = transport
        self._client: Optional[httpx.AsyncClient] = None
    
    async def _get_client(self) -> httpx.AsyncClient:
        """
        Get or create HTTP client instance
        
        Returns:
            httpx.AsyncClient: HTTP client instance
        """
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                transport=self.transport,
            )
        return self._client
    
    async def close(self) -> None:
        """Close HTTP Client"""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
    
    async def post(
        self,
        url: str,
        headers: Optional[dict[str, str]] = None,
        json: Optional[dict[str, Any]] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """
        Send POST Request and read the full response body
        
        Args:
            url: Request URL
            headers: Request headers
            json: JSON request body
            **kwargs: Other httpx parameters
        
        Returns:
            httpx.Response: HTTP response
        """
        client = await self._get_client()
        return await client.post(url, headers=headers, json=json, **kwargs)
    
    async def open_stream(
        self,
        method: str,
        url: str,
        headers: Optional[dict[str, str]] = None,
        json: Optional[dict[str, Any]] = None,
    ) -> httpx.Response:
        """
        Send Streaming Request
        
        Returns as soon as the response headers arrive. The body is left unread and the
        caller owns the response: it must call ``aclose()`` once done with it.
        
        Args:
            method: HTTP method
            url: Request URL
            headers: Request headers
            json: JSON request body
        
        Returns:
            httpx.Response: Response with an unread body stream
        """
        client = await self._get_client()
        request = client.build_request(method=method, url=url, headers=headers, json=json)
        return await client.send(request, stream=True)
