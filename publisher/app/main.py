from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from structlog.contextvars import bound_contextvars

from publisher.app.api.routes import router
from publisher.app.dependencies import get_settings, get_telemetry
from publisher.app.logging_config import configure_application_logging
from publisher.app.models.deploy_contracts import ErrorDetail
from publisher.app.services.errors import (
    BundleNotFoundError,
    ClusterSpecNotFoundError,
    CredentialNotFoundError,
    EmptyProfileError,
    InvalidLayoutError,
    InvalidProfileError,
    MissingPayloadError,
    ProfileNotFoundError,
    PublishError,
    PushConflictError,
)

REQUEST_ID_HEADER = "X-Request-ID"

_NOT_FOUND_ERRORS = (
    CredentialNotFoundError,
    ProfileNotFoundError,
    BundleNotFoundError,
    ClusterSpecNotFoundError,
)
_UNPROCESSABLE_ERRORS = (
    InvalidProfileError,
    EmptyProfileError,
    MissingPayloadError,
    InvalidLayoutError,
)


def status_code_for_error(exc: PublishError) -> int:
    """Missing records are 404, unusable profiles or paths 422, lost push races 409.

    Clone, write, commit, push and delete failures are upstream problems (502).
    """
    if isinstance(exc, _NOT_FOUND_ERRORS):
        return 404
    if isinstance(exc, _UNPROCESSABLE_ERRORS):
        return 422
    if isinstance(exc, PushConflictError):
        return 409
    return 502


async def publish_error_handler(_: Request, exc: PublishError) -> Response:
    detail = ErrorDetail(error_type=type(exc).__name__, operation=exc.operation, message=str(exc))
    return JSONResponse(
        status_code=status_code_for_error(exc),
        content={"detail": detail.model_dump()},
    )


def health_check() -> dict[str, str]:
    return {"status": "ok"}


@asynccontextmanager
async def app_lifespan(_: FastAPI) -> AsyncIterator[None]:
    configure_application_logging(get_settings())
    yield


async def request_context_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    request_id = (request.headers.get(REQUEST_ID_HEADER) or "").strip() or str(uuid4())
    with (
        bound_contextvars(http_request_id=request_id, http_method=request.method),
        get_telemetry().span(
            "http.request",
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        ) as span,
    ):
        response = await call_next(request)
        span.set(status_code=response.status_code)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


def create_app() -> FastAPI:
    app = FastAPI(title="Cluster Publisher API", version="0.1.0", lifespan=app_lifespan)
    app.middleware("http")(request_context_middleware)
    app.add_exception_handler(
        PublishError,
        publish_error_handler,  # pyright: ignore[reportArgumentType]
    )
    app.include_router(router)
    app.add_api_route(
        "/health",
        health_check,
        methods=["GET"],
        tags=["system"],
        operation_id="health_check",
    )
    return app


app = create_app()
