"""
BaaS Proxy - Main Application
Relays mobile app requests to the BaaS platform without exposing its API key
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncGenerator, Callable, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import structlog

from baas_proxy.config import Settings, load_settings_or_exit
from baas_proxy.models.errors import ErrorCode, ProxyError
from baas_proxy.routes import health, subscriptions, variables, workflows
from baas_proxy.utils.clock import utc_now
from baas_proxy.utils.logger import configure_logging
from baas_proxy.utils.rate_limiter import build_rate_limiter
from baas_proxy.utils.supabase_client import SupabaseClient
from baas_proxy.utils.workflow_client import WorkflowClient

logger = structlog.get_logger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan events"""
    settings: Settings = app.state.settings

    settings.log_config()
    await app.state.supabase.start()

    logger.info("BaaS proxy running", port=settings.port)
    logger.info("Health check available", url=f"http://localhost:{settings.port}/health")
    logger.info("BaaS credentials stay server-side", supabase_url=settings.supabase_url)

    yield

    await app.state.supabase.stop()
    if app.state.rate_limiter is not None:
        await app.state.rate_limiter.close()
    logger.info("BaaS proxy shutdown complete")


def client_address(request: Request, trust_forwarded_for: bool = False) -> str:
    """Address used as the rate limit key"""
    if trust_forwarded_for:
        forwarded = request.headers.get("X-Forwarded-For", "")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def register_error_handlers(app: FastAPI) -> None:
    """Render every error as {error, code, details?}"""

    @app.exception_handler(ProxyError)
    async def proxy_error_handler(request: Request, exc: ProxyError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_response())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.warning("Invalid request body", path=request.url.path, errors=len(exc.errors()))
        details = "; ".join(
            f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        error = ProxyError(status.HTTP_400_BAD_REQUEST, ErrorCode.INVALID_REQUEST_BODY, details=details)
        return JSONResponse(status_code=error.status_code, content=error.to_response())

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        # Unknown methods on known paths are reported as unknown endpoints too
        if exc.status_code in (status.HTTP_404_NOT_FOUND, status.HTTP_405_METHOD_NOT_ALLOWED):
            error = ProxyError(status.HTTP_404_NOT_FOUND, ErrorCode.NOT_FOUND)
            return JSONResponse(status_code=error.status_code, content=error.to_response())
        code = ErrorCode.CLIENT_ERROR if exc.status_code < 500 else ErrorCode.INTERNAL_ERROR
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail), "code": code.value},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error("Unhandled exception", method=request.method, path=request.url.path,
                     error=str(exc), exc_info=True)
        error = ProxyError(status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorCode.INTERNAL_ERROR)
        return JSONResponse(status_code=error.status_code, content=error.to_response())


def create_app(
    settings: Optional[Settings] = None,
    supabase: Optional[SupabaseClient] = None,
    workflow_client: Optional[WorkflowClient] = None,
    rate_limiter=None,
    clock: Callable[[], datetime] = utc_now,
) -> FastAPI:
    """
    Build the FastAPI application.

    Every collaborator can be injected; anything not given is built from
    settings. Missing BaaS configuration terminates the process.
    """
    settings = settings or load_settings_or_exit()
    configure_logging(settings.log_level, settings.log_format)

    app = FastAPI(
        title="BaaS Proxy",
        description="Credential-hiding proxy between the mobile app and the BaaS platform",
        version=settings.service_version,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.clock = clock
    app.state.supabase = supabase or SupabaseClient(
        settings.supabase_url, settings.supabase_anon_key, read_timeout=settings.upstream_timeout_seconds
    )
    app.state.workflow_client = workflow_client or WorkflowClient(timeout=settings.workflow_timeout_seconds)
    if rate_limiter is None and settings.rate_limit_enabled:
        rate_limiter = build_rate_limiter(settings)
    app.state.rate_limiter = rate_limiter

    register_error_handlers(app)

    @app.middleware("http")
    async def guard_requests(request: Request, call_next):
        """Log, rate limit and add security headers to every request"""
        client = client_address(request, settings.trust_forwarded_for)
        logger.info("Request received", method=request.method, path=request.url.path, client_ip=client)

        limiter = request.app.state.rate_limiter
        if limiter is not None and not await limiter.allow(client):
            logger.warning("Rate limit exceeded", client_ip=client)
            error = ProxyError(status.HTTP_429_TOO_MANY_REQUESTS, ErrorCode.RATE_LIMIT_EXCEEDED)
            response = JSONResponse(status_code=error.status_code, content=error.to_response())
        else:
            response = await call_next(request)

        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)

        logger.info("Request completed", method=request.method, path=request.url.path,
                    status_code=response.status_code)
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins(),
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )

    app.include_router(health.router, tags=["Health"])
    app.include_router(variables.router, prefix="/api/variables", tags=["Variables"])
    app.include_router(subscriptions.router, prefix="/api/subscription", tags=["Subscriptions"])
    app.include_router(workflows.router, prefix="/api/workflow-template", tags=["Workflows"])

    return app


app = create_app()


def run():
    """Console entry point"""
    import uvicorn

    settings = app.state.settings
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
