"""FastAPI dependency validators for bearer token authentication."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from heuly.common import Role, User

if TYPE_CHECKING:
    from .token_service import TokenService

bearer_scheme = HTTPBearer(auto_error=True)

LOGGER = logging.getLogger(__name__)
LOGGER.setLevel(logging.DEBUG)


class Validate:
    """Holds validator dependencies for FastAPI authentication."""

    def __init__(self, token_service: TokenService) -> None:
        """Create a new validator instance.

        :param token_service: Verifies signature, issuer, audience and expiry
        """
        self.token_service = token_service

    def jwt_token(
        self,
        credentials: HTTPAuthorizationCredentials = Security(bearer_scheme),  # noqa: B008
    ) -> User:
        """Validate a bearer token and return the user it was issued for."""
        claims = self.token_service.decode_token(credentials.credentials)

        if claims is None or not claims.get("sub"):
            LOGGER.debug("Bearer token validation failed")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Could not validate credentials",
                headers={"WWW-Authenticate": "Bearer"},
            )

        roles = {Role.from_name(name) for name in claims.get("roles", [])}
        user = User(
            id=claims["sub"],
            email=claims["email"],
            username=claims.get("given_name", ""),
            roles={role for role in roles if role is not None},
        )
        LOGGER.debug("Bearer token validated for user: %s", user.id)
        return user
