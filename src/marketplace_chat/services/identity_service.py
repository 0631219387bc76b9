from __future__ import annotations

import logging

import jwt

from marketplace_chat.application.dto.identity import Identity
from marketplace_chat.application.exceptions import UnauthenticatedError
from marketplace_chat.application.ports.auth import TokenVerifier
from marketplace_chat.application.uow import UoWFactory

logger = logging.getLogger(__name__)


class IdentityResolver:
    """Turns a bearer credential into the identity of an existing user."""

    def __init__(self, verifier: TokenVerifier, uow_factory: UoWFactory) -> None:
        self._verifier = verifier
        self._uow_factory = uow_factory

    async def authenticate(self, credential: str | None) -> Identity:
        if not credential or not credential.strip():
            raise UnauthenticatedError("Missing credential")

        try:
            claims = await self._verifier.verify(credential.strip())
        except jwt.ExpiredSignatureError as exc:
            raise UnauthenticatedError("Token expired") from exc
        except (jwt.PyJWTError, ValueError) as exc:
            logger.debug("Token rejected: %s", exc)
            raise UnauthenticatedError("Invalid token") from exc

        async with self._uow_factory() as uow:
            identity = await uow.users.get_identity(claims.subject_id)
        if identity is None:
            raise UnauthenticatedError("Unknown user")
        return identity
