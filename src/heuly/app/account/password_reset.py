"""Single-use password reset tokens.

A reset token is a signed JWT bound to the user id and to the user's
security stamp at issue time. Redeeming it replaces the password and rotates
the stamp in one conditional update, so a token stops working once it has
been redeemed, once it expires, or once the password changes by any path.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import jwt

from .errors import IdentityError, IdentityResult

if TYPE_CHECKING:
    from heuly.common import User

    from .queries import AccountQueries
    from .token_service import TokenSettings

LOGGER = logging.getLogger(__name__)
LOGGER.setLevel(logging.DEBUG)

RESET_PURPOSE = "ResetPassword"
_INVALID_TOKEN = IdentityError("InvalidToken", "Invalid token.")


@dataclass
class ResetTokenSettings:
    """Lifetime of password reset tokens.

    :param int expire_minutes: Minutes a reset token stays valid
    """

    DEFAULT_EXPIRE_MINUTES = 60 * 24

    expire_minutes: int = DEFAULT_EXPIRE_MINUTES


class PasswordResetFlow:
    """Issues and redeems password reset tokens."""

    def __init__(
        self,
        account_queries: AccountQueries,
        token_settings: TokenSettings,
        reset_settings: ResetTokenSettings | None = None,
    ) -> None:
        """Create a reset flow.

        :param account_queries: Identity store used to replace passwords
        :param token_settings: Signing key and algorithm shared with bearer tokens
        :param reset_settings: Reset token lifetime
        """
        self.account_queries = account_queries
        self.token_settings = token_settings
        self.reset_settings = reset_settings or ResetTokenSettings()

    def issue_reset_token(self, user: User, now: datetime | None = None) -> str:
        """Generate a reset token for the user's current password.

        :param user: The user requesting a reset
        :param now: Issue time, defaults to the current UTC time
        :return: The opaque reset token
        """
        issued_at = now or datetime.now(UTC)
        payload = {
            "sub": user.id,
            "stamp": user.security_stamp,
            "purpose": RESET_PURPOSE,
            "jti": secrets.token_urlsafe(16),
            "iat": issued_at,
            "exp": issued_at + timedelta(minutes=self.reset_settings.expire_minutes),
        }
        LOGGER.debug("Issued reset token for user %s", user.id)
        return jwt.encode(
            payload,
            self.token_settings.security_key,
            algorithm=self.token_settings.algorithm,
        )

    async def redeem_reset_token(
        self,
        user: User,
        token: str,
        new_password: str,
    ) -> IdentityResult:
        """Redeem a reset token and set the new password.

        :param user: The user the token is presented for
        :param token: The reset token
        :param new_password: The new plaintext password
        :return: The result of the operation
        """
        stamp = self._verify(user, token)
        if stamp is None:
            return IdentityResult.failed(_INVALID_TOKEN)

        return await self.account_queries.replace_password(user, stamp, new_password)

    def _verify(self, user: User, token: str) -> str | None:
        """Return the security stamp the token is bound to, if it is valid."""
        try:
            payload = jwt.decode(
                token,
                self.token_settings.security_key,
                algorithms=[self.token_settings.algorithm],
                options={"require": ["exp", "sub", "stamp", "purpose"]},
            )
        except jwt.ExpiredSignatureError:
            LOGGER.debug("Reset token for user %s has expired", user.id)
            return None
        except jwt.InvalidTokenError as e:
            LOGGER.debug("Reset token rejected: %s", e)
            return None

        if payload["purpose"] != RESET_PURPOSE:
            LOGGER.debug("Token presented for reset has the wrong purpose")
            return None

        if payload["sub"] != user.id:
            LOGGER.debug("Reset token was not issued for user %s", user.id)
            return None

        if not secrets.compare_digest(payload["stamp"], user.security_stamp):
            LOGGER.debug("Reset token for user %s is no longer current", user.id)
            return None

        return payload["stamp"]
