"""FastAPI application factory for the account API."""

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from heuly.app.account import (
    AccountQueries,
    AccountWorkflow,
    PasswordResetFlow,
    ResetTokenSettings,
    SecurityManager,
    TokenService,
    TokenSettings,
    Validate,
    configure_account_router,
)
from heuly.app.account.models import ErrorDetail
from heuly.config import configure_logging, load_config_from_env
from heuly.notifications import SmtpEmailSender, SmtpSettings

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from heuly.config import AppConfig
    from heuly.notifications import EmailSender

LOGGER = logging.getLogger(__name__)


def build_account_workflow(
    config: "AppConfig",
    email_sender: "EmailSender | None" = None,
) -> AccountWorkflow:
    """Wire the account workflow and its collaborators from configuration.

    :param config: Application configuration
    :param email_sender: Notification channel, SMTP from config if not given
    :return: The account workflow
    """
    security_manager = SecurityManager(
        password_min_length=config.password_min_length,
    )
    token_settings = TokenSettings(
        security_key=config.jwt_security_key,
        issuer=config.jwt_valid_issuer,
        audience=config.jwt_valid_audience,
        algorithm=config.jwt_algorithm,
        expire_days=config.access_token_expire_days,
    )
    account_queries = AccountQueries(config.database_path, security_manager)

    if email_sender is None:
        email_sender = SmtpEmailSender(
            SmtpSettings(
                server=config.smtp_server,
                port=config.smtp_port,
                username=config.smtp_username,
                password=config.smtp_password,
                from_address=config.smtp_from,
                use_tls=config.smtp_use_tls,
                timeout=config.smtp_timeout,
            ),
        )

    return AccountWorkflow(
        account_queries=account_queries,
        token_service=TokenService(token_settings),
        password_reset=PasswordResetFlow(
            account_queries,
            token_settings,
            ResetTokenSettings(expire_minutes=config.reset_token_expire_minutes),
        ),
        email_sender=email_sender,
        reset_url_base=config.reset_url_base,
    )


def configure_fastapi_app(
    config: "AppConfig",
    email_sender: "EmailSender | None" = None,
) -> FastAPI:
    """Configure and return the FastAPI application.

    :param config: Application configuration
    :param email_sender: Optional notification channel replacing SMTP
    :return: Configured FastAPI application
    """
    if not Path(config.database_path).parent.exists():
        Path(config.database_path).parent.mkdir(parents=True, exist_ok=True)
        LOGGER.info(
            "Created directory for database at %s",
            Path(config.database_path).parent,
        )

    if not Path(config.database_path).exists():
        LOGGER.info("Database file does not exist at %s", config.database_path)

    workflow = build_account_workflow(config, email_sender)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> "AsyncGenerator[Any, Any]":
        """Application lifespan manager.

        Creates the identity tables and seeds the roles before serving.
        """
        LOGGER.info("Heuly account API is starting")

        await workflow.account_queries.initialize_tables()

        yield

        LOGGER.info("Heuly account API is shutting down")

    app = FastAPI(
        title="Heuly Account API",
        version="0.1.0",
        lifespan=lifespan,
        root_path=config.root_path,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        LOGGER.debug("Malformed request to %s: %s", request.url.path, exc.errors())
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": ErrorDetail.from_request_errors(exc.errors())},
        )

    account_router = configure_account_router(
        APIRouter(),
        workflow,
        Validate(workflow.token_service),
    )
    app.include_router(account_router, prefix="/account", tags=["account"])

    @app.get("/")
    def read_root() -> str:
        return "Heuly Account API"

    return app


def create_app(env_file: str | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Without an argument, as when uvicorn calls the factory, the file named by
    the ENV_FILE environment variable is used, falling back to .env.

    :param env_file: Optional path to the environment configuration file
    :return: Configured FastAPI application
    """
    if env_file is None:
        env_file = os.environ.get("ENV_FILE", ".env")
    config = load_config_from_env(env_file)
    configure_logging(config)
    return configure_fastapi_app(config)
