"""
Configuration Management Module

Configures application parameters via environment variables or .env file,
and builds the immutable gateway configuration shared by every request.
"""

from dataclasses import dataclass, field
from functools import lru_cache
from types import MappingProxyType
from typing import Mapping

from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_ALLOWED_MODELS = ",".join(
    [
        "gpt-5.2", "gpt-5.1", "gpt-5", "gpt-5-mini", "gpt-5-nano",
        "o4-mini", "o3-mini", "o1-mini", "o3", "o1",
        "gpt-4", "gpt-4.1", "gpt-4o", "gpt-4o-mini", "o1-preview",
        "gpt-4-turbo", "gpt-4-turbo-preview", "gpt-4-1106-preview",
        "gpt-3.5-turbo", "claude-3-7-sonnet-latest", "claude-3-5-sonnet-20241022",
        "claude-opus-4-5-20251101", "claude-3-7-sonnet-20250219", "claude-opus-4-5",
    ]
)


class Settings(BaseSettings):
    """
    Application Configuration Class

    All configuration items can be overridden by environment variables, with names matching fields (uppercase).
    """

    # Application Config
    APP_NAME: str = "Session Gateway"
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Upstream Config
    UPSTREAM_ORIGIN: str = "https://theoldllm.vercel.app"
    # Persona selecting the upstream assistant profile
    PERSONA_ID: int = 154
    # Used when the client does not send a model
    DEFAULT_MODEL: str = "gpt-4o"
    # Substituted when the client sends no usable "Bearer <token>" header
    FALLBACK_TOKEN: str = "Bearer "

    # Model List Config
    # Comma-separated list of model ids returned by /v1/models
    ALLOWED_MODELS: str = DEFAULT_ALLOWED_MODELS
    MODEL_OWNER: str = "openai-proxy"

    # Browser Fingerprint Config
    USER_AGENT: str = (
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/137.0.0.0 Safari/537.36"
    )
    SEC_CH_UA: str = '"Chromium";v="137", "Not/A)Brand";v="24"'
    SEC_CH_UA_PLATFORM: str = '"Linux"'
    ACCEPT_LANGUAGE: str = "zh-HK,zh;q=0.9,en-US;q=0.8,en;q=0.7,zh-TW;q=0.6"

    # HTTP Client Config
    # Timeout for each upstream socket operation (seconds)
    HTTP_TIMEOUT: int = 300
    # Total budget for one completion across both upstream calls (seconds), <= 0 disables it
    REQUEST_TIMEOUT_SECONDS: float = 600

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get application configuration (Singleton)

    Uses lru_cache to ensure configuration is loaded only once, improving performance.

    Returns:
        Settings: Application configuration instance
    """
    return Settings()


@dataclass(frozen=True)
class GatewayConfig:
    """
    Immutable gateway configuration

    Built once at startup from Settings and passed by reference to the
    components that talk to the upstream.
    """

    upstream_origin: str
    persona_id: int
    default_model: str
    fallback_token: str
    model_owner: str
    allowed_models: tuple[str, ...]
    disguise_headers: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def from_settings(cls, settings: Settings) -> "GatewayConfig":
        origin = settings.UPSTREAM_ORIGIN.rstrip("/")
        return cls(
            upstream_origin=origin,
            persona_id=settings.PERSONA_ID,
            default_model=settings.DEFAULT_MODEL,
            fallback_token=settings.FALLBACK_TOKEN,
            model_owner=settings.MODEL_OWNER,
            allowed_models=parse_model_list(settings.ALLOWED_MODELS),
            disguise_headers=MappingProxyType(build_disguise_headers(settings, origin)),
        )


def parse_model_list(value: str) -> tuple[str, ...]:
    """
    Parse a comma-separated model list

    Blank entries are dropped and duplicates removed, keeping first-seen order.
    """
    models: list[str] = []
    for item in value.split(","):
        model = item.strip()
        if model and model not in models:
            models.append(model)
    return tuple(models)


def build_disguise_headers(settings: Settings, origin: str) -> dict[str, str]:
    """
    Build the browser header set attached to every upstream call

    Host and Connection are managed by the HTTP client. Authorization is added per call.
    """
    return {
        "pragma": "no-cache",
        "cache-control": "no-cache",
        "sec-ch-ua": settings.SEC_CH_UA,
        "sec-ch-ua-mobile": "?0",
        "sec-ch-ua-platform": settings.SEC_CH_UA_PLATFORM,
        "dnt": "1",
        "upgrade-insecure-requests": "1",
        "user-agent": settings.USER_AGENT,
        "accept": "*/*",
        "content-type": "application/json",
        "sec-fetch-site": "same-origin",
        "sec-fetch-mode": "cors",
        "sec-fetch-dest": "empty",
        "sec-fetch-user": "?1",
        "referer": f"{origin}/",
        "origin": origin,
        "accept-language": settings.ACCEPT_LANGUAGE,
        "priority": "u=1, i",
    }


@lru_cache()
def get_gateway_config() -> GatewayConfig:
    """Get the process-wide gateway configuration (built once)"""
    return GatewayConfig.from_settings(get_settings())
