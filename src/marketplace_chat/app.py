from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from marketplace_chat.api.deps import build_verifier
from marketplace_chat.api.middleware.correlation_id import CorrelationIdMiddleware
from marketplace_chat.api.middleware.metrics import RequestTimingMiddleware
from marketplace_chat.api.v1.routers import health, messages, ws
from marketplace_chat.application.exceptions import (
    ForbiddenError,
    NotFoundError,
    PersistenceError,
    UnauthenticatedError,
    ValidationError,
)
from marketplace_chat.application.uow import UoWFactory
from marketplace_chat.config import settings
from marketplace_chat.infrastructure.db.session import engine
from marketplace_chat.infrastructure.db.uow import open_uow
from marketplace_chat.infrastructure.ws.gateway import RealtimeGateway
from marketplace_chat.infrastructure.ws.presence import PresenceRegistry
from marketplace_chat.infrastructure.ws.rooms import ConversationRouter
from marketplace_chat.services.identity_service import IdentityResolver

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    logger.info("Chat service started")

    yield

    await app.state.gateway.shutdown()
    await engine.dispose()
    logger.info("Database engine disposed")


def create_app(uow_factory: UoWFactory | None = None) -> FastAPI:
    app = FastAPI(
        title="Marketplace Chat Service",
        version="0.1.0",
        lifespan=lifespan,
    )

    uow_factory = uow_factory or open_uow
    app.state.uow_factory = uow_factory
    app.state.gateway = RealtimeGateway(
        PresenceRegistry(),
        ConversationRouter(),
        IdentityResolver(build_verifier(), uow_factory),
        uow_factory,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestTimingMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(messages.router)
    app.include_router(ws.router)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def _not_found(_req: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": exc.detail})

    @app.exception_handler(ForbiddenError)
    async def _forbidden(_req: Request, exc: ForbiddenError) -> JSONResponse:
        return JSONResponse(status_code=403, content={"detail": exc.detail})

    @app.exception_handler(ValidationError)
    async def _validation(_req: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": exc.detail})

    @app.exception_handler(UnauthenticatedError)
    async def _unauthenticated(_req: Request, exc: UnauthenticatedError) -> JSONResponse:
        return JSONResponse(status_code=401, content={"detail": exc.detail})

    @app.exception_handler(PersistenceError)
    async def _persistence(_req: Request, exc: PersistenceError) -> JSONResponse:
        return JSONResponse(status_code=503, content={"detail": exc.detail})
