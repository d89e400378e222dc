"""
API Dependency Injection Module

Provides dependencies required by FastAPI routes.
"""

from typing import Annotated

from fastapi import Depends

from session_gateway.common.http_client import HttpClient
from session_gateway.config import GatewayConfig, Settings, get_gateway_config, get_settings
from session_gateway.providers import SessionChatClient
from session_gateway.services import ChatService


# ============ Global Singletons ============

# Shared client so upstream connections are pooled across requests
_global_http_client = HttpClient()


def get_http_client() -> HttpClient:
    """Get the shared upstream HTTP client"""
    return _global_http_client


async def close_http_client() -> None:
    """Close the shared upstream HTTP client (application shutdown)"""
    await _global_http_client.close()


SettingsDep = Annotated[Settings, Depends(get_settings)]
GatewayConfigDep = Annotated[GatewayConfig, Depends(get_gateway_config)]
HttpClientDep = Annotated[HttpClient, Depends(get_http_client)]


# ============ Service Dependencies ============

def get_chat_service(config: GatewayConfigDep, http_client: HttpClientDep) -> ChatService:
    """Get chat completion service"""
    return ChatService(SessionChatClient(http_client, config), config)


ChatServiceDep = Annotated[ChatService, Depends(get_chat_service)]
