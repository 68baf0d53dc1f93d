"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from conversation_recall.api import routes
from conversation_recall.api.schemas import ServiceResponse
from conversation_recall.conversation_service import (
    ConversationService,
    build_conversation_service,
)
from conversation_recall.exceptions import (
    ConversationRecallError,
    DependencyUnavailable,
    InvalidInputError,
    PersistenceError,
)

logger = logging.getLogger(__name__)


def _error(status_code: int, error: str, message: Optional[str] = None) -> JSONResponse:
    body = ServiceResponse(success=False, error=error, message=message)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


async def invalid_input_handler(request: Request, exc: InvalidInputError):
    return _error(400, str(exc), "Invalid request")


async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
    )
    return _error(400, details, "Invalid request")


async def persistence_handler(request: Request, exc: PersistenceError):
    logger.error(f"Persistence failure on {request.url.path}: {exc}")
    return _error(500, "Failed to persist data", str(exc))


async def unavailable_handler(request: Request, exc: DependencyUnavailable):
    return _error(503, str(exc), "Service not configured")


async def service_error_handler(request: Request, exc: ConversationRecallError):
    logger.error(f"Request to {request.url.path} failed: {exc}")
    return _error(500, str(exc), "Internal error")


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return _error(exc.status_code, str(exc.detail))


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.url.path}: {exc}")
    return _error(500, "Internal server error")


def create_app(service: Optional[ConversationService] = None) -> FastAPI:
    """
    Create the application.

    Args:
        service: Pre-built service; when None one is built from settings at startup
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_service = getattr(app.state, "service", None) is None
        if owns_service:
            app.state.service = build_conversation_service()
        yield
        if owns_service:
            await app.state.service.close()

    app = FastAPI(
        title="conversation-recall",
        description="Conversation finalization, summarization and semantic recall.",
        version="0.1.0",
        lifespan=lifespan,
    )
    if service is not None:
        app.state.service = service

    app.add_exception_handler(InvalidInputError, invalid_input_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(PersistenceError, persistence_handler)
    app.add_exception_handler(DependencyUnavailable, unavailable_handler)
    app.add_exception_handler(ConversationRecallError, service_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(routes.router)

    return app
