"""Application factory for the Storefront HTTP surface.

``create_app`` wires routers, middleware and error mapping around a
:class:`~storefront.services.Storefront`. It never initializes the domain;
that happens once in the process entrypoint (``src/app.py``) or in the
test session.
"""

import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from protean.exceptions import InvalidOperationError, ValidationError

from storefront.api.routes import issue_router, notification_router, order_router
from storefront.config import get_settings
from storefront.domain import storefront
from storefront.exceptions import (
    InvalidTransitionError,
    InventoryConflict,
    NotFoundError,
    error_category,
)
from storefront.services import Storefront
from storefront.utils.logging import add_context, clear_context

logger = structlog.get_logger(__name__)


def _error_body(exc: Exception, detail, fallback: str) -> dict:
    category = error_category(exc)
    return {"error": category.value if category else fallback, "detail": detail}


async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=422, content=_error_body(exc, exc.messages, "validation"))


async def _invalid_transition(request: Request, exc: InvalidTransitionError) -> JSONResponse:
    return JSONResponse(status_code=409, content=_error_body(exc, exc.messages, "invalid_transition"))


async def _invalid_operation(request: Request, exc: InvalidOperationError) -> JSONResponse:
    return JSONResponse(status_code=409, content=_error_body(exc, exc.messages, "invalid_operation"))


async def _inventory_conflict(request: Request, exc: InventoryConflict) -> JSONResponse:
    return JSONResponse(status_code=409, content=_error_body(exc, exc.errors, "inventory_conflict"))


async def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content=_error_body(exc, str(exc), "not_found"))


def register_exception_handlers(app: FastAPI) -> None:
    """Map the error taxonomy onto HTTP status codes."""
    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(InvalidTransitionError, _invalid_transition)
    app.add_exception_handler(InvalidOperationError, _invalid_operation)
    app.add_exception_handler(InventoryConflict, _inventory_conflict)
    app.add_exception_handler(NotFoundError, _not_found)


def create_app(services: Storefront | None = None, domain=storefront) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "storefront", None) is None:
            app.state.storefront = Storefront(get_settings(), domain=domain)
        logger.info("Storefront API started", environment=app.state.storefront.settings.environment)
        yield
        await app.state.storefront.shutdown()

    app = FastAPI(
        title="Storefront API",
        description="Order lifecycle, notification delivery and issue tracking",
        lifespan=lifespan,
    )
    app.state.storefront = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        """Push the domain context and bind a request id for log lines."""
        clear_context()
        add_context(request_id=request.headers.get("x-request-id", uuid.uuid4().hex))
        try:
            with domain.domain_context():
                response = await call_next(request)
        finally:
            clear_context()
        return response

    register_exception_handlers(app)

    app.include_router(order_router)
    app.include_router(issue_router)
    app.include_router(notification_router)

    @app.get("/health")
    async def health():
        return JSONResponse(content={"status": "ok", "domain": domain.name})

    return app
