"""
Test Configuration Module
"""

import pytest

from session_gateway.common.http_client import HttpClient
from session_gateway.config import GatewayConfig, Settings
from session_gateway.providers import SessionChatClient
from session_gateway.services import ChatService
from tests.fakes import TEST_ORIGIN, FakeUpstream


@pytest.fixture
def gateway_config() -> GatewayConfig:
    settings = Settings(
        UPSTREAM_ORIGIN=TEST_ORIGIN,
        ALLOWED_MODELS="gpt-4o,gpt-4o-mini,claude-opus-4-5",
        FALLBACK_TOKEN="Bearer fallback-token",
    )
    return GatewayConfig.from_settings(settings)


@pytest.fixture
def make_service(gateway_config):
    """Build a ChatService talking to the given FakeUpstream"""

    def _make(upstream: FakeUpstream) -> ChatService:
        http_client = HttpClient(transport=upstream.transport)
        return ChatService(SessionChatClient(http_client, gateway_config), gateway_config)

    return _make
