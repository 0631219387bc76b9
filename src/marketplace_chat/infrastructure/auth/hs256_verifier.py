from __future__ import annotations

from typing import Any
from uuid import UUID

import jwt

from marketplace_chat.application.dto.identity import TokenClaims


def claims_from_payload(payload: dict[str, Any]) -> TokenClaims:
    """Accept ``sub``, then the legacy ``id`` / ``_id`` claims as the subject."""
    subject = payload.get("sub") or payload.get("id") or payload.get("_id")
    if not subject:
        raise jwt.InvalidTokenError("Token has no subject")
    return TokenClaims(subject_id=UUID(str(subject)), role=payload.get("role"))


class HS256Verifier:
    """Verify JWTs signed with a shared HS256 secret."""

    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        self._secret = secret
        self._algorithm = algorithm

    async def verify(self, token: str) -> TokenClaims:
        payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        return claims_from_payload(payload)
