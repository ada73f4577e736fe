"""Account routes for the FastAPI application.

Provides endpoints for registration, login, password reset and the
information carried by a bearer token.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from heuly.common import User

from .errors import (
    AccountError,
    DuplicateUserError,
    InternalError,
    InvalidCredentialsError,
    InvalidTokenError,
    NotFoundError,
    WeakPasswordError,
)
from .models import (
    AccountInfo,
    AuthResponse,
    ErrorDetail,
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
)
from .validation import Validate
from .workflow import AccountWorkflow

LOGGER = logging.getLogger(__name__)
LOGGER.setLevel(logging.DEBUG)


def _failure_envelope(message: str, token: str | None = None) -> dict:
    return AuthResponse(is_success=False, message=message, token=token).to_json()


async def _register(
    workflow: AccountWorkflow,
    request: RegisterRequest,
) -> AuthResponse:
    try:
        result = await workflow.register(
            request.name,
            request.email,
            request.password,
            request.confirm_password,
        )
    except InternalError as e:
        LOGGER.error("Registration failed for %s: %s", request.email, e.message)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=ErrorDetail.from_errors(e.errors),
        ) from e
    except (DuplicateUserError, WeakPasswordError) as e:
        LOGGER.debug("Registration rejected for %s: %s", request.email, e.message)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=ErrorDetail.from_errors(e.errors),
        ) from e
    except AccountError as e:
        LOGGER.debug("Invalid registration for %s: %s", request.email, e.message)
        detail = (
            ErrorDetail.from_errors(e.errors) if e.errors else {"message": e.message}
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        ) from e
    return AuthResponse.from_result(result)


async def _login(
    workflow: AccountWorkflow,
    request: LoginRequest,
) -> AuthResponse:
    try:
        result = await workflow.login(request.email, request.password)
    except (NotFoundError, InvalidCredentialsError) as e:
        LOGGER.debug("Failed login attempt for email: %s", request.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
        ) from e
    except AccountError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=e.message,
        ) from e
    return AuthResponse.from_result(result)


async def _forgot_password(
    workflow: AccountWorkflow,
    request: ForgotPasswordRequest,
) -> AuthResponse:
    try:
        result = await workflow.forgot_password(request.email)
    except AccountError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_failure_envelope(e.message),
        ) from e

    if not result.success:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_failure_envelope(result.message),
        )
    return AuthResponse.from_result(result)


async def _reset_password(
    workflow: AccountWorkflow,
    request: ResetPasswordRequest,
) -> AuthResponse:
    try:
        result = await workflow.reset_password(
            request.email,
            request.token,
            request.new_password,
            request.confirm_password,
        )
    except InvalidTokenError as e:
        LOGGER.debug("Password reset failed for %s", request.email)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_failure_envelope(e.message, e.token),
        ) from e
    except AccountError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_failure_envelope(e.message),
        ) from e
    return AuthResponse.from_result(result)


def configure_account_router(
    router: APIRouter,
    workflow: AccountWorkflow,
    validate: Validate,
) -> APIRouter:
    """Configure the account router.

    :param router: The APIRouter to configure
    :param workflow: The AccountWorkflow handling every request
    :param validate: Bearer token validator for authenticated routes
    :return: The configured APIRouter
    """

    @router.post(
        "/register",
        response_model=AuthResponse,
        response_model_exclude_none=True,
    )
    async def register(request: RegisterRequest) -> AuthResponse:
        return await _register(workflow, request)

    @router.post(
        "/login",
        response_model=AuthResponse,
        response_model_exclude_none=True,
    )
    async def login(request: LoginRequest) -> AuthResponse:
        return await _login(workflow, request)

    @router.post(
        "/forgot-password",
        response_model=AuthResponse,
        response_model_exclude_none=True,
    )
    async def forgot_password(request: ForgotPasswordRequest) -> AuthResponse:
        return await _forgot_password(workflow, request)

    @router.post(
        "/reset-password",
        response_model=AuthResponse,
        response_model_exclude_none=True,
    )
    async def reset_password(request: ResetPasswordRequest) -> AuthResponse:
        return await _reset_password(workflow, request)

    @router.get("/me", response_model=AccountInfo)
    def get_account_info(
        user: Annotated[User, Depends(validate.jwt_token)],
    ) -> AccountInfo:
        return AccountInfo.from_user(user)

    return router
