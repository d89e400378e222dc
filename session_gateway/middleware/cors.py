"""
CORS Middleware Module

Allows every origin. Any OPTIONS request is answered directly with 204 and the
CORS headers; every other response gets Access-Control-Allow-Origin added.
Implemented as plain ASGI so that streamed bodies pass through untouched.
"""

from starlette.datastructures import MutableHeaders
from starlette.responses import Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

ALLOW_ORIGIN = "*"
ALLOW_METHODS = "GET, POST, OPTIONS"
ALLOW_HEADERS = "*"


class PermissiveCORSMiddleware:
    def __init__(
        self,
        app: ASGIApp,
        allow_methods: str = ALLOW_METHODS,
        allow_headers: str = ALLOW_HEADERS,
    ) -> None:
        self.app = app
        self.preflight_headers = {
            "Access-Control-Allow-Origin": ALLOW_ORIGIN,
            "Access-Control-Allow-Methods": allow_methods,
            "Access-Control-Allow-Headers": allow_headers,
        }

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        if scope["method"] == "OPTIONS":
            response = Response(status_code=204, headers=self.preflight_headers)
            await response(scope, receive, send)
            return

        async def send_with_cors(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                headers["Access-Control-Allow-Origin"] = ALLOW_ORIGIN
            await send(message)

        await self.app(scope, receive, send_with_cors)
