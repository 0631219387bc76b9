"""FastAPI dependency injection helpers."""
from __future__ import annotations

from typing import Annotated, AsyncIterator

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from marketplace_chat.application.dto.identity import Identity
from marketplace_chat.application.exceptions import UnauthenticatedError
from marketplace_chat.application.ports.auth import TokenVerifier
from marketplace_chat.application.uow import UnitOfWork
from marketplace_chat.config import settings
from marketplace_chat.infrastructure.auth.hs256_verifier import HS256Verifier
from marketplace_chat.infrastructure.auth.jwks_verifier import JWKSVerifier
from marketplace_chat.infrastructure.ws.gateway import RealtimeGateway

_bearer_scheme = HTTPBearer()


async def get_uow(request: Request) -> AsyncIterator[UnitOfWork]:
    async with request.app.state.uow_factory() as uow:
        yield uow


UoWDep = Annotated[UnitOfWork, Depends(get_uow)]


def build_verifier() -> TokenVerifier:
    if settings.JWT_VERIFY_MODE == "jwks":
        assert settings.JWKS_URL, "JWKS_URL must be set when JWT_VERIFY_MODE=jwks"
        return JWKSVerifier(settings.JWKS_URL)
    return HS256Verifier(settings.JWT_SECRET, settings.JWT_ALGORITHM)


def get_gateway(request: Request) -> RealtimeGateway:
    return request.app.state.gateway


GatewayDep = Annotated[RealtimeGateway, Depends(get_gateway)]


async def get_current_identity(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(_bearer_scheme)],
    gateway: GatewayDep,
) -> Identity:
    try:
        return await gateway.resolver.authenticate(credentials.credentials)
    except UnauthenticatedError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=exc.detail,
        ) from exc


CurrentIdentity = Annotated[Identity, Depends(get_current_identity)]
