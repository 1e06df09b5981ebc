import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import Callable, Iterable

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from app.api.problem_details import (
    PROBLEM_TYPE_DOMAIN,
    PROBLEM_TYPE_FLAG_STORE,
    PROBLEM_TYPE_NOT_IMPLEMENTED,
    PROBLEM_TYPE_SERVER,
    PROBLEM_TYPE_UPSTREAM,
    PROBLEM_TYPE_VALIDATION,
    problem_details,
)
from app.api.routes_bookings import router as bookings_router
from app.api.routes_feature_flags import router as feature_flags_router
from app.api.routes_health import router as health_router
from app.api.routes_integrations import router as integrations_router
from app.domain.errors import (
    DomainError,
    FeatureFlagStoreError,
    IntegrationConfigurationError,
    IntegrationNotImplementedError,
    IntegrationUpstreamError,
)
from app.infra.db import dispose_engine
from app.infra.logging import clear_log_context, configure_logging, update_log_context
from app.infra.metrics import Metrics, configure_metrics
from app.settings import settings

logger = logging.getLogger(__name__)


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable):
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable):
        logger = logging.getLogger("app.request")
        start = time.time()
        request_id = getattr(request.state, "request_id", None) or request.headers.get("X-Request-ID")
        if not request_id:
            request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        update_log_context(request_id=request_id, method=request.method, path=request.url.path)

        response = None
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            latency_ms = int((time.time() - start) * 1000)
            update_log_context(status_code=status_code, latency_ms=latency_ms)
            logger.info("request", extra={"latency_ms": latency_ms})
            if response is not None:
                response.headers.setdefault("X-Request-ID", request_id)
            clear_log_context()


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable):
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        return response


class MetricsMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: FastAPI, metrics_client: Metrics) -> None:
        super().__init__(app)
        self.metrics = metrics_client

    async def dispatch(self, request: Request, call_next: Callable):
        route_label = "unmatched"
        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
        finally:
            route = request.scope.get("route")
            route_label = getattr(route, "path", route_label)
            duration = time.perf_counter() - start
            self.metrics.record_http_latency(request.method, route_label, status_code, duration)
            self.metrics.record_http_request(request.method, route_label, status_code)
            if status_code >= 500:
                self.metrics.record_http_5xx(request.method, route_label)
        return response


def _resolve_cors_origins(app_settings) -> Iterable[str]:
    if app_settings.cors_origins:
        return app_settings.cors_origins
    if app_settings.app_env == "dev":
        return ["http://localhost:3000"]
    return []


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = []
        for error in exc.errors():
            loc = error.get("loc", [])
            field = ".".join(str(part) for part in loc if part not in {"body", "query", "path"}) or "body"
            errors.append({"field": field, "message": error.get("msg", "Invalid value")})
        return problem_details(
            request=request,
            status=422,
            title="Validation Error",
            detail="Request validation failed",
            errors=errors,
            type_=PROBLEM_TYPE_VALIDATION,
        )

    @app.exception_handler(DomainError)
    async def domain_exception_handler(request: Request, exc: DomainError):
        return problem_details(
            request=request,
            status=400,
            title=exc.title,
            detail=exc.detail,
            errors=exc.errors or [],
            type_=exc.type or PROBLEM_TYPE_DOMAIN,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return problem_details(
            request=request,
            status=exc.status_code,
            title=exc.detail if isinstance(exc.detail, str) else "HTTP Error",
            detail=exc.detail if isinstance(exc.detail, str) else "Request failed",
            type_=PROBLEM_TYPE_DOMAIN if exc.status_code < 500 else PROBLEM_TYPE_SERVER,
            headers=exc.headers,
        )

    @app.exception_handler(FeatureFlagStoreError)
    async def flag_store_exception_handler(request: Request, exc: FeatureFlagStoreError):
        logger.error("feature_flag_store_unavailable", extra={"extra": {"detail": str(exc)}})
        return problem_details(
            request=request,
            status=503,
            title="Feature Flags Unavailable",
            detail="Feature flag store could not be read",
            type_=PROBLEM_TYPE_FLAG_STORE,
        )

    @app.exception_handler(IntegrationNotImplementedError)
    async def not_implemented_exception_handler(request: Request, exc: IntegrationNotImplementedError):
        logger.error(
            "integration_not_implemented",
            extra={"extra": {"integration": exc.integration, "detail": exc.detail}},
        )
        return problem_details(
            request=request,
            status=501,
            title="Integration Not Implemented",
            detail=exc.detail,
            errors=[{"integration": exc.integration}],
            type_=PROBLEM_TYPE_NOT_IMPLEMENTED,
        )

    @app.exception_handler(IntegrationConfigurationError)
    async def integration_config_exception_handler(request: Request, exc: IntegrationConfigurationError):
        logger.error("integration_misconfigured", extra={"extra": {"detail": str(exc)}})
        return problem_details(
            request=request,
            status=503,
            title="Integration Misconfigured",
            detail=str(exc),
            type_=PROBLEM_TYPE_SERVER,
        )

    @app.exception_handler(IntegrationUpstreamError)
    async def upstream_payload_exception_handler(request: Request, exc: IntegrationUpstreamError):
        logger.warning(
            "integration_upstream_invalid",
            extra={"extra": {"integration": exc.integration, "detail": exc.detail}},
        )
        return problem_details(
            request=request,
            status=502,
            title="Bad Gateway",
            detail="Upstream integration returned an unreadable response",
            errors=[{"integration": exc.integration}],
            type_=PROBLEM_TYPE_UPSTREAM,
        )

    @app.exception_handler(httpx.HTTPError)
    async def upstream_exception_handler(request: Request, exc: httpx.HTTPError):
        upstream_status = exc.response.status_code if isinstance(exc, httpx.HTTPStatusError) else None
        logger.warning(
            "integration_upstream_failed",
            extra={"extra": {"error_type": type(exc).__name__, "upstream_status": upstream_status}},
        )
        return problem_details(
            request=request,
            status=502,
            title="Bad Gateway",
            detail="Upstream integration request failed",
            type_=PROBLEM_TYPE_UPSTREAM,
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        request_id = getattr(request.state, "request_id", None)
        error_type = type(exc).__name__
        update_log_context(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            status_code=500,
            error_type=error_type,
        )
        logger.exception(
            "unhandled_exception",
            extra={"request_id": request_id, "path": request.url.path, "error_type": error_type},
        )
        return problem_details(
            request=request,
            status=500,
            title="Internal Server Error",
            detail="Unexpected error",
            type_=PROBLEM_TYPE_SERVER,
        )


def create_app(app_settings) -> FastAPI:
    configure_logging(app_settings.log_level)
    metrics_client = configure_metrics(app_settings.metrics_enabled)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.metrics = getattr(app.state, "metrics", None) or metrics_client
        app.state.app_settings = getattr(app.state, "app_settings", app_settings)
        yield
        await dispose_engine()

    app = FastAPI(title="Fleet Operations Backend", version="1.0.0", lifespan=lifespan)
    app.state.metrics = metrics_client
    app.state.app_settings = app_settings

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(MetricsMiddleware, metrics_client=metrics_client)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(_resolve_cors_origins(app_settings)),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(feature_flags_router)
    app.include_router(bookings_router)
    app.include_router(integrations_router)
    if app_settings.metrics_enabled:
        from app.api.routes_metrics import router as metrics_router

        app.include_router(metrics_router)
    return app


app = create_app(settings)
