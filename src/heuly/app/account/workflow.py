"""Registration, login and password reset orchestration."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from urllib.parse import urlencode

from heuly.common import Role, User

from .errors import (
    AuthResult,
    DuplicateUserError,
    InternalError,
    InvalidCredentialsError,
    InvalidTokenError,
    MismatchError,
    NotFoundError,
    ValidationError,
    WeakPasswordError,
)
from .queries import EMAIL_PATTERN

if TYPE_CHECKING:
    from heuly.notifications import EmailSender

    from .password_reset import PasswordResetFlow
    from .queries import AccountQueries
    from .token_service import TokenService

LOGGER = logging.getLogger(__name__)
LOGGER.setLevel(logging.DEBUG)

DEFAULT_ROLE = Role.USER

REGISTERED = "Account created successfully!"
LOGGED_IN = "Login successful!"
RESET_LINK_SENT = "A link to reset your password has been sent to your email."
RESET_UNKNOWN_EMAIL = (
    "If a user with that email exists, a password reset email will be sent."
)
PASSWORD_RESET = "Password reset successfully."
PASSWORDS_DO_NOT_MATCH = "Passwords do not match."

RESET_EMAIL_SUBJECT = "Password Reset - Heuly"
RESET_EMAIL_BODY = """
<p>Hello,</p>
<p>We received a request to reset the password for your account. If you did
not request a password reset, please ignore this email. Otherwise, click the
link below to reset your password:</p>
<p><a href='{link}'>Reset Password</a></p>
<p>If the link above does not work, copy and paste this URL into your
browser:</p>
<p>{link}</p>
<p>Regards,</p>
<p>Heuly</p>
"""


def _require(**fields: str | None) -> None:
    missing = [
        name for name, value in fields.items() if not value or not value.strip()
    ]
    if missing:
        msg = f"Required fields are missing: {', '.join(missing)}"
        raise ValidationError(msg)


class AccountWorkflow:
    """Coordinates the credential store, token service and reset flow."""

    def __init__(
        self,
        account_queries: AccountQueries,
        token_service: TokenService,
        password_reset: PasswordResetFlow,
        email_sender: EmailSender,
        reset_url_base: str,
    ) -> None:
        """Create the workflow from its collaborators.

        :param account_queries: Identity store
        :param token_service: Bearer token minting
        :param password_reset: Reset token lifecycle
        :param email_sender: Notification channel for reset links
        :param reset_url_base: URL the reset link points at
        """
        self.account_queries = account_queries
        self.token_service = token_service
        self.password_reset = password_reset
        self.email_sender = email_sender
        self.reset_url_base = reset_url_base

    async def register(
        self,
        name: str,
        email: str,
        password: str,
        confirm_password: str,
    ) -> AuthResult:
        """Create an account and return a bearer token for it.

        :raises ValidationError: Missing fields, bad email or mismatched passwords
        :raises DuplicateUserError: Email or username already registered
        :raises WeakPasswordError: Password does not satisfy the policy
        :raises InternalError: The default role could not be assigned
        """
        _require(
            name=name,
            email=email,
            password=password,
            confirm_password=confirm_password,
        )
        email = email.strip()
        if not EMAIL_PATTERN.match(email):
            msg = f"Email '{email}' is not a valid email address."
            raise ValidationError(msg)
        if password != confirm_password:
            raise ValidationError(PASSWORDS_DO_NOT_MATCH)

        user = User(id="", email=email, username=name.strip())
        result = await self.account_queries.create(user, password)
        if not result.succeeded:
            LOGGER.debug("Registration rejected for %s", email)
            if result.has_code_prefix("Duplicate"):
                msg = "A user with this email or username already exists."
                raise DuplicateUserError(msg, result.errors)
            if result.has_code_prefix("Password"):
                msg = "Password does not meet the requirements."
                raise WeakPasswordError(msg, result.errors)
            if result.has_code_prefix("Invalid"):
                msg = "Registration data is invalid."
                raise ValidationError(msg, result.errors)
            msg = "Failed to create account."
            raise InternalError(msg, result.errors)

        role_result = await self.account_queries.assign_role(user, DEFAULT_ROLE)
        if not role_result.succeeded:
            LOGGER.error("Could not assign default role to user %s", user.id)
            msg = "Failed to assign default role."
            raise InternalError(msg, role_result.errors)

        LOGGER.info("Registered user %s", user.id)
        return AuthResult(
            success=True,
            message=REGISTERED,
            token=self.token_service.create_token(user),
        )

    async def login(self, email: str, password: str) -> AuthResult:
        """Check credentials.

        The success envelope carries no token.

        :raises ValidationError: Missing fields
        :raises NotFoundError: No user for the email
        :raises InvalidCredentialsError: Wrong password
        """
        _require(email=email, password=password)

        user = await self.account_queries.find_by_email(email)
        if user is None:
            LOGGER.debug("Login attempt for unknown email %s", email)
            msg = "User not found!"
            raise NotFoundError(msg)

        if not await self.account_queries.verify_password(user, password):
            LOGGER.debug("Failed login attempt for user %s", user.id)
            msg = "Invalid password."
            raise InvalidCredentialsError(msg)

        LOGGER.debug("User %s logged in successfully", user.id)
        return AuthResult(success=True, message=LOGGED_IN)

    async def forgot_password(self, email: str) -> AuthResult:
        """Issue a reset token and email a reset link.

        An unknown email yields a failure envelope rather than an exception.

        :raises ValidationError: Missing email
        """
        _require(email=email)

        user = await self.account_queries.find_by_email(email)
        if user is None:
            LOGGER.debug("Password reset requested for unknown email %s", email)
            return AuthResult(success=False, message=RESET_UNKNOWN_EMAIL)

        token = self.password_reset.issue_reset_token(user)
        link = self.build_reset_link(token, user.email)

        try:
            await self.email_sender.send_email(
                user.email,
                RESET_EMAIL_SUBJECT,
                RESET_EMAIL_BODY.format(link=link),
            )
        except Exception:
            # the token is already issued; delivery can be retried out of band
            LOGGER.exception("Failed to send reset email to user %s", user.id)

        return AuthResult(success=True, message=RESET_LINK_SENT, token=token)

    async def reset_password(
        self,
        email: str,
        token: str,
        new_password: str,
        confirm_password: str,
    ) -> AuthResult:
        """Redeem a reset token and set a new password.

        :raises ValidationError: Missing fields
        :raises NotFoundError: No user for the email
        :raises MismatchError: New password and confirmation differ
        :raises InvalidTokenError: The token cannot be redeemed
        """
        _require(
            email=email,
            token=token,
            new_password=new_password,
            confirm_password=confirm_password,
        )

        user = await self.account_queries.find_by_email(email)
        if user is None:
            msg = "User not found."
            raise NotFoundError(msg)

        if new_password != confirm_password:
            raise MismatchError(PASSWORDS_DO_NOT_MATCH)

        result = await self.password_reset.redeem_reset_token(
            user,
            token,
            new_password,
        )
        if not result.succeeded:
            LOGGER.debug(
                "Password reset failed for user %s: %s",
                user.id,
                [error.code for error in result.errors],
            )
            msg = "Error resetting password."
            raise InvalidTokenError(msg, result.errors, token=token)

        LOGGER.info("Password reset for user %s", user.id)
        return AuthResult(success=True, message=PASSWORD_RESET)

    def build_reset_link(self, token: str, email: str) -> str:
        """Build the link embedded in the reset email."""
        separator = "&" if "?" in self.reset_url_base else "?"
        query = urlencode({"token": token, "email": email})
        return f"{self.reset_url_base}{separator}{query}"
