import pytest


@pytest.mark.asyncio
@pytest.mark.parametrize("path", ["/v1/chat/completions", "/v1/models", "/anything/else"])
async def test_options_returns_permissive_cors_without_body(api_client, path):
    response = await api_client.options(path)

    assert response.status_code == 204
    assert response.content == b""
    assert response.headers["access-control-allow-origin"] == "*"
    assert response.headers["access-control-allow-methods"] == "GET, POST, OPTIONS"
    assert response.headers["access-control-allow-headers"] == "*"


@pytest.mark.asyncio
async def test_browser_preflight_is_answered(api_client):
    response = await api_client.options(
        "/v1/chat/completions",
        headers={
            "Origin": "https://app.example",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "authorization, content-type",
        },
    )

    assert response.status_code == 204
    assert response.headers["access-control-allow-origin"] == "*"


@pytest.mark.asyncio
async def test_unknown_path_returns_plain_not_found(api_client):
    response = await api_client.get("/v2/unknown")

    assert response.status_code == 404
    assert response.text == "Not Found"
    assert response.headers["access-control-allow-origin"] == "*"


@pytest.mark.asyncio
async def test_wrong_method_on_chat_path_returns_not_found(api_client):
    response = await api_client.get("/v1/chat/completions")

    assert response.status_code == 404
    assert response.text == "Not Found"


@pytest.mark.asyncio
async def test_health(api_client):
    response = await api_client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}
    assert response.headers["access-control-allow-origin"] == "*"


@pytest.mark.asyncio
@pytest.mark.parametrize("method", ["POST", "PUT", "DELETE"])
async def test_non_get_on_models_path_returns_not_found(api_client, method):
    response = await api_client.request(method, "/v1/models")

    assert response.status_code == 404
    assert response.text == "Not Found"
    assert response.headers["access-control-allow-origin"] == "*"
