from __future__ import annotations

import logging
import sys
from uuid import uuid4

import httpx
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from release_notifier.config import Settings, load_settings
from release_notifier.dispatcher import NotificationDispatcher, build_dispatcher
from release_notifier.domain.errors import (
    AuthenticationError,
    ConfigurationError,
    RequestSyntaxError,
    ValidationError,
)
from release_notifier.models.responses import ErrorResponse
from release_notifier.observability import (
    ErrorReporter,
    LoggingErrorReporter,
    build_error_reporter,
    configure_logging,
    incr_metric,
    log_event,
)
from release_notifier.routers import health, webhooks


NOT_FOUND_MESSAGE = "The requested resource could not be found!"
INTERNAL_ERROR_MESSAGE = "Something went wrong on our end!"


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def _error_body(error: str, message: str | None = None) -> dict:
    return ErrorResponse(error=error, message=message).model_dump(exclude_none=True)


def _register_exception_handlers(app: FastAPI, reporter: ErrorReporter) -> None:
    @app.exception_handler(RequestSyntaxError)
    async def _syntax_error(request: Request, exc: RequestSyntaxError):
        incr_metric("request_rejected", kind=exc.kind)
        return JSONResponse(status_code=400, content=_error_body(exc.kind, str(exc)))

    @app.exception_handler(ValidationError)
    async def _validation_error(request: Request, exc: ValidationError):
        incr_metric("request_rejected", kind=exc.kind)
        log_event(
            "release_notification_rejected",
            request_id=_request_id(request),
            path=request.url.path,
            field=exc.field,
            constraint=exc.constraint,
        )
        return JSONResponse(status_code=400, content=_error_body(exc.kind, str(exc)))

    @app.exception_handler(AuthenticationError)
    async def _authentication_error(request: Request, exc: AuthenticationError):
        incr_metric("request_rejected", kind=exc.kind)
        return JSONResponse(
            status_code=401,
            content=_error_body(exc.kind, str(exc)),
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        # Known path with the wrong method is reported like an unknown path.
        if exc.status_code in (404, 405):
            return JSONResponse(status_code=404, content=_error_body("NotFound", NOT_FOUND_MESSAGE))
        return JSONResponse(status_code=exc.status_code, content=_error_body(str(exc.detail)))

    @app.exception_handler(Exception)
    async def _internal_error(request: Request, exc: Exception):
        request_id = _request_id(request)
        log_event(
            "request_failed",
            level=logging.ERROR,
            request_id=request_id,
            path=request.url.path,
            error_type=type(exc).__name__,
            error=str(exc),
        )
        reporter.capture_exception(exc, request_id=request_id, path=request.url.path)
        return JSONResponse(status_code=500, content=_error_body(INTERNAL_ERROR_MESSAGE))


def create_app(
    settings: Settings | None = None,
    *,
    reporter: ErrorReporter | None = None,
    dispatcher: NotificationDispatcher | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the application. Webhook targets are resolved here, so a bad URL fails startup."""
    settings = settings or load_settings()
    reporter = reporter or LoggingErrorReporter()
    dispatcher = dispatcher or build_dispatcher(settings, reporter, transport=transport)

    app = FastAPI(title="Release Notifier", version="0.1.0")
    app.state.settings = settings
    app.state.dispatcher = dispatcher

    @app.middleware("http")
    async def attach_request_id(request: Request, call_next):
        request_id = (
            request.headers.get("X-Request-ID")
            or request.headers.get("X-Correlation-ID")
            or str(uuid4())
        )
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    _register_exception_handlers(app, reporter)
    app.include_router(health.router)
    app.include_router(webhooks.router)
    return app


def run() -> None:
    configure_logging()
    try:
        settings = load_settings()
        configure_logging(settings.log_level)
        reporter = build_error_reporter(settings.sentry_dsn, environment=settings.environment)
        app = create_app(settings, reporter=reporter)
    except ConfigurationError as exc:
        log_event("startup_failed", level=logging.CRITICAL, error=str(exc))
        sys.exit(1)

    log_event("server_starting", host=settings.host, port=settings.port, environment=settings.environment)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
