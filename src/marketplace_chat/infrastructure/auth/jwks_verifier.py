from __future__ import annotations

import logging

import jwt
from jwt import PyJWKClient

from marketplace_chat.application.dto.identity import TokenClaims
from marketplace_chat.infrastructure.auth.hs256_verifier import claims_from_payload

logger = logging.getLogger(__name__)


class JWKSVerifier:
    """Verify JWTs using a remote JWKS endpoint."""

    def __init__(self, jwks_url: str) -> None:
        self._jwks_url = jwks_url
        self._jwk_client = PyJWKClient(jwks_url)

    async def verify(self, token: str) -> TokenClaims:
        signing_key = self._jwk_client.get_signing_key_from_jwt(token)
        payload = jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256", "ES256"],
        )
        return claims_from_payload(payload)
