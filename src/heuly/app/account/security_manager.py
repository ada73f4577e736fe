"""Password policy and hashing.

Holds the password requirements applied at registration and reset, and the
bcrypt hashing used by the identity store.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass

from bcrypt import checkpw, gensalt, hashpw

from .errors import IdentityError

LOGGER = logging.getLogger(__name__)
LOGGER.setLevel(logging.DEBUG)

_BCRYPT_MAX_PASSWORD_BYTES = 72


@dataclass
class SecurityManager:
    """Manager for password requirements and hashing.

    :param int password_min_length: Minimum number of characters
    :param bool require_digit: Require at least one digit
    :param bool require_lowercase: Require at least one lowercase letter
    :param bool require_uppercase: Require at least one uppercase letter
    :param bool require_non_alphanumeric: Require at least one symbol
    :param int bcrypt_rounds: Work factor passed to bcrypt
    """

    DEFAULT_PASSWORD_MIN_LENGTH = 8
    DEFAULT_BCRYPT_ROUNDS = 12
    SECURITY_STAMP_BYTES = 32

    password_min_length: int = DEFAULT_PASSWORD_MIN_LENGTH
    require_digit: bool = True
    require_lowercase: bool = True
    require_uppercase: bool = True
    require_non_alphanumeric: bool = True
    bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS

    def validate_password(self, password: str) -> list[IdentityError]:
        """Validate a password against the configured requirements.

        Every failed rule is reported, not just the first one.

        :param password: The password to validate
        :return: The list of rule violations, empty if the password is valid
        """
        errors = []
        if len(password) < self.password_min_length:
            errors.append(
                IdentityError(
                    "PasswordTooShort",
                    "Passwords must be at least "
                    f"{self.password_min_length} characters.",
                ),
            )
        if len(password.encode()) > _BCRYPT_MAX_PASSWORD_BYTES:
            errors.append(
                IdentityError(
                    "PasswordTooLong",
                    "Passwords must be at most "
                    f"{_BCRYPT_MAX_PASSWORD_BYTES} bytes.",
                ),
            )
        if self.require_non_alphanumeric and all(c.isalnum() for c in password):
            errors.append(
                IdentityError(
                    "PasswordRequiresNonAlphanumeric",
                    "Passwords must have at least one non alphanumeric character.",
                ),
            )
        if self.require_digit and not any(c.isdigit() for c in password):
            errors.append(
                IdentityError(
                    "PasswordRequiresDigit",
                    "Passwords must have at least one digit ('0'-'9').",
                ),
            )
        if self.require_lowercase and not any(c.islower() for c in password):
            errors.append(
                IdentityError(
                    "PasswordRequiresLower",
                    "Passwords must have at least one lowercase ('a'-'z').",
                ),
            )
        if self.require_uppercase and not any(c.isupper() for c in password):
            errors.append(
                IdentityError(
                    "PasswordRequiresUpper",
                    "Passwords must have at least one uppercase ('A'-'Z').",
                ),
            )
        return errors

    def hash_password(self, password: str) -> bytes:
        """Hash a password with a fresh bcrypt salt."""
        return hashpw(password.encode(), gensalt(rounds=self.bcrypt_rounds))

    def verify_password(self, password: str, password_hash: bytes) -> bool:
        """Check a password against a stored bcrypt hash.

        :param password: Plaintext password to check
        :param password_hash: Stored bcrypt hash
        :return: True if the password matches, False otherwise
        """
        if not password_hash:
            return False
        try:
            return checkpw(password.encode(), password_hash)
        except ValueError as e:
            LOGGER.debug("bcrypt rejected password check: %s", e)
            return False

    def new_security_stamp(self) -> str:
        """Generate a new random security stamp."""
        return secrets.token_hex(self.SECURITY_STAMP_BYTES)
