from contextlib import asynccontextmanager
from typing import Optional
import json
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from logguard.api import alert, conversations, dashboard, health, monitoring, settings as settings_api
from logguard.api import log as log_api  # Rename to avoid conflict
from logguard.api import metrics as metrics_api
from logguard.core.config import configure_logging, settings
from logguard.core.container import ServiceContainer
from logguard.core.database import init_db
from logguard.core.exceptions import (
    AlertNotFoundError,
    AuthenticationError,
    ConfigurationError,
    InvalidStatusTransition,
    MonitorStateError,
    PollerStateError,
    RuleNotFoundError,
    TransportError,
)
from logguard.middleware.logging_middleware import log_requests
from logguard.schemas.errors import ErrorDetail, ErrorResponse, ValidationErrorItem

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    body = ErrorResponse(status="error", message=message)
    return JSONResponse(status_code=status_code, content=json.loads(body.model_dump_json()))


def register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        error_items = []
        for error in exc.errors():
            error_items.append(ValidationErrorItem(
                field=".".join(str(loc) for loc in error.get("loc", [])) if "loc" in error else None,
                message=error.get("msg", "Validation error"),
                type=error.get("type", "unknown_error")
            ))

        error_response = ErrorResponse(
            status="error",
            message="Validation error",
            detail=ErrorDetail(errors=error_items)
        )
        return JSONResponse(status_code=400, content=json.loads(error_response.model_dump_json()))

    @app.exception_handler(AuthenticationError)
    async def authentication_error_handler(request: Request, exc: AuthenticationError):
        logger.error(f"Authentication failed: {exc}")
        return _error(401, str(exc))

    @app.exception_handler(TransportError)
    async def transport_error_handler(request: Request, exc: TransportError):
        logger.error(f"Upstream error: {exc}")
        return _error(502, str(exc))

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(request: Request, exc: ConfigurationError):
        logger.error(f"Configuration error: {exc}")
        return _error(400, str(exc))

    @app.exception_handler(AlertNotFoundError)
    @app.exception_handler(RuleNotFoundError)
    async def not_found_handler(request: Request, exc: Exception):
        return _error(404, str(exc))

    @app.exception_handler(InvalidStatusTransition)
    @app.exception_handler(MonitorStateError)
    @app.exception_handler(PollerStateError)
    async def conflict_handler(request: Request, exc: Exception):
        return _error(409, str(exc))


def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    """Build the API. Tests pass their own container, already bound to a prepared database."""
    owns_database = container is None
    container = container or ServiceContainer()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging()
        if owns_database:
            init_db()
        logger.info("LogGuard AI started")
        yield
        await container.shutdown()
        logger.info("LogGuard AI shutting down")

    app = FastAPI(
        title="LogGuard AI",
        description="AI-assisted Graylog monitoring with alerting and operator replies",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc"
    )
    app.state.container = container

    app.middleware("http")(log_requests)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(health.router, prefix="/health", tags=["Health"])
    app.include_router(log_api.router, prefix="/api/v1")
    app.include_router(alert.router, prefix="/api/v1", tags=["Alerts"])
    app.include_router(monitoring.router, prefix="/api/v1")
    app.include_router(settings_api.router, prefix="/api/v1")
    app.include_router(conversations.router, prefix="/api/v1")
    app.include_router(dashboard.router, prefix="/api/v1")
    app.include_router(metrics_api.router, prefix="/api/v1")

    @app.get("/")
    async def root():
        return {"message": "LogGuard AI", "version": "1.0.0", "docs": "/docs"}

    @app.get("/ping")
    async def ping():
        return {"status": "ok", "message": "Server is running"}

    return app


app = create_app()


def run_server():
    uvicorn.run("logguard.main:app", host="0.0.0.0", port=8000, log_level="info")


if __name__ == "__main__":
    run_server()
