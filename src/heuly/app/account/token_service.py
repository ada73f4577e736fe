"""Bearer token minting and validation."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import jwt

if TYPE_CHECKING:
    from heuly.common import User

LOGGER = logging.getLogger(__name__)
LOGGER.setLevel(logging.DEBUG)

HMAC_ALGORITHMS = ("HS256", "HS384", "HS512")


@dataclass
class TokenSettings:
    """Signing configuration for bearer tokens.

    :param str security_key: Pre-shared symmetric signing key
    :param str issuer: Value of the ``iss`` claim
    :param str audience: Value of the ``aud`` claim
    :param str algorithm: HMAC signature algorithm
    :param int expire_days: Validity window of a bearer token
    """

    DEFAULT_JWT_ALGORITHM = "HS512"
    DEFAULT_TOKEN_EXPIRE_DAYS = 7
    MINIMUM_SECURITY_KEY_LENGTH = 32

    security_key: str | None = None
    issuer: str = "heuly"
    audience: str = "heuly"
    algorithm: str = DEFAULT_JWT_ALGORITHM
    expire_days: int = DEFAULT_TOKEN_EXPIRE_DAYS

    def __post_init__(self) -> None:
        """Generate a signing key if none (or a too short one) was provided."""
        if (
            self.security_key is None
            or len(self.security_key) < self.MINIMUM_SECURITY_KEY_LENGTH
        ):
            LOGGER.warning(
                "No usable JWT security key configured; generated a random key. "
                "Tokens will not survive a restart.",
            )
            self.security_key = os.urandom(64).hex()

        if self.algorithm not in HMAC_ALGORITHMS:
            msg = f"Unsupported token algorithm: {self.algorithm}"
            raise ValueError(msg)


class TokenService:
    """Mints signed bearer tokens carrying identity claims."""

    def __init__(self, settings: TokenSettings) -> None:
        self.settings = settings

    def create_token(self, user: User, now: datetime | None = None) -> str:
        """Create a signed bearer token for the user.

        The token depends only on the user, the settings and ``now``.

        :param user: The user the token is issued for
        :param now: Issue time, defaults to the current UTC time
        :return: The encoded JWT
        """
        issued_at = now or datetime.now(UTC)

        payload = {
            "sub": user.id,
            "email": user.email,
            "given_name": user.username,
            "roles": sorted(str(role) for role in user.roles),
            "iss": self.settings.issuer,
            "aud": self.settings.audience,
            "iat": issued_at,
            "nbf": issued_at,
            "exp": issued_at + timedelta(days=self.settings.expire_days),
        }

        return jwt.encode(
            payload,
            self.settings.security_key,
            algorithm=self.settings.algorithm,
        )

    def decode_token(self, token: str) -> dict[str, Any] | None:
        """Verify a bearer token and return its claims.

        :param token: The encoded JWT
        :return: The claims if signature, issuer, audience and expiry are
            valid, None otherwise
        """
        try:
            return jwt.decode(
                token,
                self.settings.security_key,
                algorithms=[self.settings.algorithm],
                audience=self.settings.audience,
                issuer=self.settings.issuer,
                options={"require": ["exp", "iss", "aud", "email"]},
            )
        except jwt.ExpiredSignatureError:
            LOGGER.debug("Bearer token has expired")
            return None
        except jwt.InvalidTokenError as e:
            LOGGER.debug("Bearer token rejected: %s", e)
            return None
