"""Models for account requests and responses."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from collections.abc import Sequence

    from heuly.common import User

    from .errors import AuthResult, IdentityError


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RegisterRequest(_CamelModel):
    """Registration form.

    Missing fields default to empty strings so the workflow can report them
    as validation errors.
    """

    name: str = ""
    email: str = ""
    password: str = ""
    confirm_password: str = Field(default="", alias="confirmPassword")


class LoginRequest(_CamelModel):
    email: str = ""
    password: str = ""


class ForgotPasswordRequest(_CamelModel):
    email: str = ""


class ResetPasswordRequest(_CamelModel):
    email: str = ""
    token: str = ""
    new_password: str = Field(default="", alias="newPassword")
    confirm_password: str = Field(default="", alias="confirmPassword")


class AuthResponse(_CamelModel):
    """Uniform response envelope.

    :param is_success: Whether the operation succeeded
    :param message: Human-readable status message
    :param token: Bearer or reset token, if any
    """

    is_success: bool = Field(alias="isSuccess")
    message: str
    token: str | None = None

    @classmethod
    def from_result(cls, result: AuthResult) -> AuthResponse:
        """Create AuthResponse from a workflow AuthResult."""
        return cls(
            is_success=result.success,
            message=result.message,
            token=result.token,
        )

    def to_json(self) -> dict:
        """Dump with camelCase keys, dropping an absent token."""
        return self.model_dump(by_alias=True, exclude_none=True)


class ErrorDetail(BaseModel):
    """A structured validation error in a 400/500 response."""

    code: str
    description: str

    @classmethod
    def from_errors(cls, errors: list[IdentityError]) -> list[dict]:
        return [cls(**error.to_dict()).model_dump() for error in errors]

    @classmethod
    def from_request_errors(cls, errors: Sequence[Any]) -> list[dict]:
        """Convert FastAPI request validation errors into error details."""
        return [
            cls(
                code="InvalidRequest",
                description=(
                    f"{'.'.join(str(part) for part in error.get('loc', ()))}: "
                    f"{error.get('msg', 'Invalid value')}"
                ),
            ).model_dump()
            for error in errors
        ]


class AccountInfo(_CamelModel):
    """Identity claims of the bearer of a valid token."""

    id: str
    email: str
    username: str
    roles: list[str]

    @classmethod
    def from_user(cls, user: User) -> AccountInfo:
        return cls(
            id=user.id,
            email=user.email,
            username=user.username,
            roles=sorted(str(role) for role in user.roles),
        )
