"""Error taxonomy and result values for the account workflow.

Store operations report validation failures as ``IdentityResult`` values;
the workflow raises ``AccountError`` subclasses which the routes translate
into HTTP responses.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class IdentityError:
    """A single structured validation error.

    :param code: Machine-readable error kind, e.g. ``DuplicateEmail``
    :param description: Human-readable explanation
    """

    code: str
    description: str

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "description": self.description}


@dataclass(frozen=True)
class IdentityResult:
    """Outcome of an identity store operation."""

    errors: list[IdentityError] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.errors

    @classmethod
    def success(cls) -> IdentityResult:
        return cls()

    @classmethod
    def failed(cls, *errors: IdentityError) -> IdentityResult:
        return cls(list(errors))

    def has_code_prefix(self, prefix: str) -> bool:
        """Check whether any error code starts with the given prefix."""
        return any(error.code.startswith(prefix) for error in self.errors)


@dataclass(frozen=True)
class AuthResult:
    """Transient response envelope returned by the account workflow.

    :param success: Whether the operation succeeded
    :param message: Human-readable status message
    :param token: Bearer or reset token, when the operation produces one
    """

    success: bool
    message: str
    token: str | None = None


class AccountError(Exception):
    """Base class for account workflow failures."""

    def __init__(
        self,
        message: str,
        errors: list[IdentityError] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class ValidationError(AccountError):
    """Raised when input is malformed or required fields are missing."""


class DuplicateUserError(AccountError):
    """Raised when the email or username is already registered."""


class WeakPasswordError(AccountError):
    """Raised when a password does not satisfy the password policy."""


class NotFoundError(AccountError):
    """Raised when no user exists for the given email."""


class InvalidCredentialsError(AccountError):
    """Raised when a password check fails."""


class MismatchError(AccountError):
    """Raised when a password and its confirmation differ."""


class InvalidTokenError(AccountError):
    """Raised when a reset token cannot be redeemed."""

    def __init__(
        self,
        message: str,
        errors: list[IdentityError] | None = None,
        token: str | None = None,
    ) -> None:
        super().__init__(message, errors)
        self.token = token


class InternalError(AccountError):
    """Raised when role assignment or the store fails unexpectedly."""
