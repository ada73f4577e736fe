"""Account registration, login and password reset."""

from .account_routes import configure_account_router
from .password_reset import PasswordResetFlow, ResetTokenSettings
from .queries import AccountQueries
from .security_manager import SecurityManager
from .token_service import TokenService, TokenSettings
from .validation import Validate
from .workflow import AccountWorkflow

__all__ = [
    "AccountQueries",
    "AccountWorkflow",
    "PasswordResetFlow",
    "ResetTokenSettings",
    "SecurityManager",
    "TokenService",
    "TokenSettings",
    "Validate",
    "configure_account_router",
]
