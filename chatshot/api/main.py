"""FastAPI application for the chatshot capture service.

This module wires the browser session and capture engines into a FastAPI
application, maps capture errors onto HTTP responses, and manages the
session lifecycle through the application lifespan.
"""

import logging
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from playwright.async_api import Error as PlaywrightError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .. import __version__
from ..capture import BrowserSession, ChatCaptureEngine, GenericCaptureEngine
from ..config import CaptureConfig
from ..errors import ScreenshotError
from ..utils.locks import ConcurrencyGate, LockError
from .routes import chat_router, screenshots_router
from .schemas import ErrorResponse, HealthResponse


logger = logging.getLogger(__name__)

APP_TITLE = "chatshot"
APP_DESCRIPTION = """
Screenshots of web pages and of messages in a live, logged-in chat client.

* **/screenshot**: capture any http(s) page, a clip of it, or one element
* **/messageScreenshot**: capture one or several chat messages, optionally trimmed
  and with a temporary text substitution
"""

STATUS_BY_ERROR_CODE = {
    "not_initialized": 503,
    "already_initialized": 500,
    "blocked_navigation": 400,
    "element_not_found": 404,
    "message_not_found": 404,
    "cached_message_not_found": 404,
    "invalid_pattern": 400,
    "no_match_found": 400,
    "empty_result": 400,
    "no_bounding_boxes": 400,
    "region_too_tall": 400,
    "login_timeout": 503,
}


def _error_response(request: Request, status_code: int, error: str, message: str, details=None) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None)
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=error,
            message=message,
            details=details,
            request_id=request_id,
            timestamp=datetime.utcnow()
        ).model_dump(mode='json')
    )


def create_app(
    config: Optional[CaptureConfig] = None,
    session: Optional[BrowserSession] = None,
    manage_session: bool = True
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Service configuration (defaults if omitted)
        session: Pre-built browser session, created from config if omitted
        manage_session: Start and close the session in the app lifespan

    Returns:
        Configured FastAPI application instance
    """
    config = config or (session.config if session is not None else CaptureConfig())
    session = session or BrowserSession(config)
    start_time = time.time()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if manage_session:
            await session.init()
        try:
            yield
        finally:
            if manage_session:
                await session.close()

    app = FastAPI(
        title=APP_TITLE,
        description=APP_DESCRIPTION,
        version=__version__,
        lifespan=lifespan
    )

    app.state.session = session
    app.state.gate = ConcurrencyGate()
    app.state.generic_engine = GenericCaptureEngine(session)
    app.state.chat_engine = ChatCaptureEngine(session)

    @app.middleware("http")
    async def add_request_id_and_logging(request: Request, call_next):
        """Add request ID and access logging."""
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        started = time.time()
        response = await call_next(request)

        duration = time.time() - started
        response.headers["X-Request-ID"] = request_id
        logger.info(
            f"{request.client.host if request.client else '-'} {request.method} "
            f"{request.url.path} {response.status_code} - {round(duration * 1000, 2)} ms"
        )
        return response

    @app.exception_handler(ScreenshotError)
    async def screenshot_error_handler(request: Request, exc: ScreenshotError):
        status_code = STATUS_BY_ERROR_CODE.get(exc.error_code, 500)
        log = logger.warning if status_code < 500 else logger.error
        payload = exc.to_dict()
        log(f"Request error: {payload['message']}")
        return _error_response(request, status_code, exc.error_code, payload["message"], payload["details"])

    @app.exception_handler(LockError)
    async def lock_error_handler(request: Request, exc: LockError):
        logger.warning(str(exc))
        return _error_response(request, 503, "locked", str(exc), {"route": exc.key})

    @app.exception_handler(PlaywrightError)
    async def playwright_error_handler(request: Request, exc: PlaywrightError):
        logger.error(f"Request error: Failed to capture screenshot: {exc}")
        return _error_response(
            request, 500, "capture_failed", "Failed to capture screenshot", {"reason": str(exc)}
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle request validation errors with detailed information."""
        errors = []
        for error in exc.errors():
            field_path = " -> ".join(str(loc) for loc in error["loc"][1:])
            errors.append({
                "field": field_path,
                "message": error["msg"],
                "type": error["type"],
            })

        logger.warning(f"Request error: validation failed for {request.url.path}")
        return _error_response(
            request, 400, "validation_error", "Request validation failed",
            {"validation_errors": errors}
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return _error_response(request, exc.status_code, f"http_{exc.status_code}", str(exc.detail))

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check"
    )
    async def health_check():
        browser = session.is_initialized
        chat = session.chat_driver is not None

        if not browser:
            status = "unhealthy"
        elif session.chat_enabled and not (chat and session.crash_check_active):
            status = "degraded"
        else:
            status = "healthy"

        return HealthResponse(
            status=status,
            version=__version__,
            browser=browser,
            chat=chat,
            crash_check=session.crash_check_active,
            locks=len(app.state.gate.list_locks()),
            uptime_seconds=time.time() - start_time
        )

    app.include_router(screenshots_router)
    if session.chat_enabled:
        app.include_router(chat_router)

    return app
