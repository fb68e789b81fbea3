from __future__ import annotations

import logging
import os

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings, get_settings
from .routers import chat
from .services.chat_service import ChatService, build_chat_service
from .services.error_handling import (
    AppError,
    build_error_response,
    log_exception,
    map_exception_to_error_code,
    new_trace_id,
)

logger = logging.getLogger(__name__)


def _configure_langsmith(settings: Settings) -> None:
    """Export LangSmith settings so @traceable spans reach the configured project."""
    if not (settings.langsmith_api_key and settings.langsmith_tracing_v2):
        logger.info("LangSmith tracing disabled (no API key or flag)")
        return
    project = settings.langsmith_project or "pulsepixel-chat-assistant"
    os.environ.setdefault("LANGCHAIN_TRACING_V2", "true")
    os.environ.setdefault("LANGSMITH_API_KEY", settings.langsmith_api_key)
    os.environ.setdefault("LANGSMITH_PROJECT", project)
    if settings.langsmith_endpoint:
        os.environ.setdefault("LANGSMITH_ENDPOINT", settings.langsmith_endpoint)
    logger.info("LangSmith tracing enabled for project=%s", project)


def create_app(settings: Settings | None = None, chat_service: ChatService | None = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(
        title="PulsePixel Chat Assistant",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _configure_langsmith(settings)
    app.state.chat_service = chat_service or build_chat_service(settings)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        trace_id = new_trace_id()
        await log_exception(request=request, exc=exc, trace_id=trace_id, handled=True)
        error_code, reason, status_code = map_exception_to_error_code(exc)
        return build_error_response(
            error_code=error_code,
            reason=reason,
            status_code=status_code,
            debug_payload={"trace_id": trace_id},
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        trace_id = new_trace_id()
        await log_exception(request=request, exc=exc, trace_id=trace_id, handled=True)
        error_code, reason, status_code = map_exception_to_error_code(exc)
        return build_error_response(
            error_code=error_code,
            reason=reason,
            status_code=status_code,
            debug_payload={"trace_id": trace_id},
        )

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        trace_id = new_trace_id()
        await log_exception(request=request, exc=exc, trace_id=trace_id, handled=True)
        error_code, reason, status_code = map_exception_to_error_code(exc)
        debug_payload = {"trace_id": trace_id}
        if exc.debug:
            debug_payload.update(exc.debug)
        return build_error_response(
            error_code=error_code,
            reason=reason,
            status_code=status_code,
            message=str(exc) or None,
            debug_payload=debug_payload,
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        trace_id = new_trace_id()
        await log_exception(request=request, exc=exc, trace_id=trace_id, handled=False)
        error_code, reason, status_code = map_exception_to_error_code(exc)
        return build_error_response(
            error_code=error_code,
            reason=reason,
            status_code=status_code,
            debug_payload={"trace_id": trace_id},
        )

    app.include_router(chat.router)
    logger.info("FastAPI app initialized (env=%s)", settings.env)
    return app


app = create_app()
