from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Annotated, Any
from uuid import uuid4

from fastapi import Depends, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from structlog.contextvars import bind_contextvars, reset_contextvars

from kidscurator.app.api.routes import ApiError, router
from kidscurator.app.dependencies import get_curation_service, get_settings, get_telemetry
from kidscurator.app.logging_config import configure_application_logging
from kidscurator.app.models.video_contracts import ErrorResponse, HealthResponse
from kidscurator.app.services.curation_service import VideoCurationService

LOGGER = logging.getLogger("kids_curator.http")

CORS_HEADERS: dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


def health_check() -> HealthResponse:
    timestamp = datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return HealthResponse(status="ok", timestamp=timestamp)


def service_overview(
    service: Annotated[VideoCurationService, Depends(get_curation_service)],
) -> dict[str, Any]:
    search_policy = service.search_policy
    channel_policy = service.channel_policy
    return {
        "message": "Kids video curation API",
        "endpoints": {
            "search": "/api/search?q=query&page=1",
            "channel": "/api/channel/{channelName}?page=1",
            "health": "/api/health",
        },
        "filters": {
            "search": {
                "policy": search_policy.name,
                "minDurationSeconds": search_policy.min_duration_seconds,
                "maxDurationSeconds": search_policy.max_duration_seconds,
            },
            "channel": {
                "policy": channel_policy.name,
                "minDurationSeconds": channel_policy.min_duration_seconds,
                "maxDurationSeconds": channel_policy.max_duration_seconds,
            },
        },
        "pagination": "continuation tokens; pass nextPageToken back as `continuation`",
    }


def _describe_errors(exc: RequestValidationError) -> str:
    problems: list[str] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        problems.append(f"{location}: {error.get('msg', 'invalid')}")
    return "; ".join(problems)


@asynccontextmanager
async def app_lifespan(_: FastAPI) -> AsyncIterator[None]:
    configure_application_logging(get_settings())
    yield


def create_app() -> FastAPI:
    app = FastAPI(title="Kids Curator API", version="0.1.0", lifespan=app_lifespan)

    async def cors_middleware(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=CORS_HEADERS)
        response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response

    async def request_context_middleware(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        telemetry = get_telemetry()
        incoming_request_id = request.headers.get("X-Request-ID")
        request_id = (
            incoming_request_id.strip()
            if isinstance(incoming_request_id, str) and incoming_request_id.strip()
            else str(uuid4())
        )
        context_tokens = bind_contextvars(
            http_request_id=request_id,
            http_method=request.method,
            http_path=request.url.path,
        )
        try:
            with telemetry.span(
                "http.request",
                request_id=request_id,
                method=request.method,
                path=request.url.path,
            ) as outcome:
                response = await call_next(request)
                outcome["status_code"] = response.status_code
        finally:
            reset_contextvars(**context_tokens)
        response.headers["X-Request-ID"] = request_id
        return response

    async def api_error_handler(_: Request, exc: Exception) -> Response:
        assert isinstance(exc, ApiError)
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_response().model_dump(exclude_none=True),
        )

    async def validation_error_handler(_: Request, exc: Exception) -> Response:
        assert isinstance(exc, RequestValidationError)
        error = ErrorResponse(error=f"Invalid request parameters ({_describe_errors(exc)})")
        return JSONResponse(status_code=400, content=error.model_dump(exclude_none=True))

    async def unhandled_error_handler(_: Request, exc: Exception) -> Response:
        LOGGER.exception("unhandled request failure")
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(error="Internal server error", message=str(exc)).model_dump(),
            headers=CORS_HEADERS,
        )

    app.middleware("http")(cors_middleware)
    app.middleware("http")(request_context_middleware)
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
    app.include_router(router)
    app.add_api_route(
        "/api/health",
        health_check,
        methods=["GET"],
        response_model=HealthResponse,
        tags=["system"],
        operation_id="health_check",
    )
    app.add_api_route(
        "/",
        service_overview,
        methods=["GET"],
        tags=["system"],
        operation_id="service_overview",
    )
    return app


app = create_app()
