import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from session_gateway.api.deps import get_http_client
from session_gateway.common.http_client import HttpClient
from session_gateway.config import get_gateway_config
from session_gateway.main import app


@pytest.fixture
def use_upstream(gateway_config):
    """Route the app's upstream calls to a FakeUpstream"""

    def _use(upstream):
        app.dependency_overrides[get_gateway_config] = lambda: gateway_config
        app.dependency_overrides[get_http_client] = lambda: HttpClient(transport=upstream.transport)
        return upstream

    yield _use
    app.dependency_overrides = {}


@pytest_asyncio.fixture
async def api_client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
