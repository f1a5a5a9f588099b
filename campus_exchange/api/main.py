"""FastAPI application entry point."""
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from campus_exchange.api.routes import disputes, health, listings, requests
from campus_exchange.application.errors import ExchangeError
from campus_exchange.config import Settings, settings as default_settings
from campus_exchange.infrastructure.database.connection import build_engine, build_session_factory
from campus_exchange.infrastructure.database.idempotency_store import SqlAlchemyIdempotencyStore
from campus_exchange.infrastructure.database.unit_of_work import SqlAlchemyUnitOfWork
from campus_exchange.infrastructure.memory.database import InMemoryDatabase
from campus_exchange.infrastructure.memory.idempotency_store import InMemoryIdempotencyStore
from campus_exchange.infrastructure.memory.unit_of_work import InMemoryUnitOfWork
from campus_exchange.infrastructure.observability.logging import configure_logging
from campus_exchange.infrastructure.trust.admin_flag_policy import AdminFlagTrustPolicy

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings: Settings = app.state.settings
    app.state.trust_policy = AdminFlagTrustPolicy()

    engine = None
    if settings.storage_backend == "memory":
        database = InMemoryDatabase()
        app.state.memory_db = database
        app.state.uow_factory = lambda: InMemoryUnitOfWork(database)
        app.state.idempotency_store = InMemoryIdempotencyStore()
    else:
        engine = build_engine(settings)
        session_factory = build_session_factory(engine)
        app.state.session_factory = session_factory
        app.state.uow_factory = lambda: SqlAlchemyUnitOfWork(session_factory)
        app.state.idempotency_store = SqlAlchemyIdempotencyStore(session_factory)

    logger.info("campus_exchange_starting", storage_backend=settings.storage_backend)
    yield
    logger.info("campus_exchange_stopping")

    if engine is not None:
        await engine.dispose()


async def _exchange_error_handler(request: Request, exc: ExchangeError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "code": exc.code},
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error.", "code": "INTERNAL_ERROR"},
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings)

    app = FastAPI(
        title="Campus Exchange",
        description="Exchange lifecycle engine for the campus peer-to-peer marketplace.",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["x-idempotency-replay"],
    )

    app.add_exception_handler(ExchangeError, _exchange_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_error_handler)

    app.include_router(health.router)
    app.include_router(listings.router)
    app.include_router(requests.router)
    app.include_router(disputes.router)

    return app


app = create_app()
