"""Application factory."""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import time
from typing import Dict, Any, Optional

from support_chat.core.config import Settings, settings as default_settings
from support_chat.core.container import ServiceContainer
from support_chat.core.errors import ChatServiceError, ConversationNotFoundError, ErrorCode
from support_chat.core.logging import setup_logging, get_logger
from support_chat.core.lifecycle import build_lifespan
from support_chat.api import chat, conversations, health

# Set up logging (should be done early)
setup_logging(default_settings.log_level, default_settings.log_format)
logger = get_logger(__name__)


def create_app(
    app_settings: Optional[Settings] = None,
    container: Optional[ServiceContainer] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        app_settings: Settings to use instead of the environment-derived ones.
        container: Pre-built service container, e.g. one with test doubles.
    """
    app_settings = app_settings or default_settings

    app = FastAPI(
        title=app_settings.app_name,
        version=app_settings.app_version,
        lifespan=build_lifespan(app_settings, container),
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Cache", "X-Conversation-Id"],
    )

    # Add request timing middleware
    @app.middleware("http")
    async def add_process_time_header(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = str(process_time)
        return response

    # Exception handlers
    @app.exception_handler(ChatServiceError)
    async def chat_service_error_handler(request: Request, exc: ChatServiceError):
        if isinstance(exc, ConversationNotFoundError):
            logger.info(f"Conversation not found: {exc.conversation_id}")
        else:
            logger.error(f"{type(exc).__name__} [{exc.code.value}]: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.error(f"Validation error: {exc.errors()}")
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request", "code": ErrorCode.VALIDATION_ERROR.value},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "code": ErrorCode.INTERNAL_SERVER_ERROR.value},
        )

    # Include routers
    app.include_router(health.router)
    app.include_router(chat.router, prefix="/api", tags=["chat"])
    app.include_router(conversations.router, prefix="/api")

    @app.get("/")
    async def root() -> Dict[str, Any]:
        """Root endpoint."""
        return {
            "service": app_settings.app_name,
            "version": app_settings.app_version,
            "status": "operational",
        }

    return app
