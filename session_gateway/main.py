"""
Session Gateway Application Entry Point

FastAPI application main entry, including router registration and application configuration.
"""

import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from session_gateway import __version__
from session_gateway.api.deps import close_http_client
from session_gateway.api.proxy import openai_router
from session_gateway.common.errors import AppError
from session_gateway.config import get_gateway_config, get_settings
from session_gateway.logging_config import setup_logging
from session_gateway.middleware.cors import ALLOW_ORIGIN, PermissiveCORSMiddleware

logger = logging.getLogger(__name__)

# Initialize logging configuration
setup_logging()


# Application Lifecycle Management
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application Lifecycle Management

    Build the gateway configuration on startup, release upstream connections on shutdown.
    """
    config = get_gateway_config()
    logger.info(
        "Gateway started: upstream=%s, persona_id=%s, models=%d",
        config.upstream_origin,
        config.persona_id,
        len(config.allowed_models),
    )
    yield
    await close_http_client()


settings = get_settings()

app = FastAPI(
    title=settings.APP_NAME,
    description="OpenAI-compatible proxy for an upstream session-based chat service",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(PermissiveCORSMiddleware)


# Global Exception Handlers
@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """
    Handle application custom exceptions
    """
    logger.warning("Request failed: path=%s error=%s", request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """
    Unknown paths and methods answer a plain 404
    """
    if exc.status_code in (404, 405):
        return PlainTextResponse("Not Found", status_code=404)
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """
    Handle uncaught exceptions

    Runs outside the middleware stack, so the CORS header is set here explicitly.
    """
    logger.error(
        "Uncaught exception: %s\nPath: %s\nTraceback:\n%s",
        str(exc),
        request.url.path,
        traceback.format_exc(),
    )
    message = str(exc) if get_settings().DEBUG else "Internal server error"
    return JSONResponse(
        status_code=500,
        content={"error": message},
        headers={"Access-Control-Allow-Origin": ALLOW_ORIGIN},
    )


# Health Check Endpoint
@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health Check

    Used for service liveness probe.
    """
    return {"status": "healthy"}


# Register Proxy Routers
app.include_router(openai_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "session_gateway.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
