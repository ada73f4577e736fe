"""Shared fixtures for the account API tests."""

import pytest
import pytest_asyncio

from heuly.app.account import (
    AccountQueries,
    AccountWorkflow,
    PasswordResetFlow,
    SecurityManager,
    TokenService,
    TokenSettings,
)

from helpers import (
    TEST_AUDIENCE,
    TEST_ISSUER,
    TEST_RESET_URL,
    TEST_SECURITY_KEY,
    RecordingEmailSender,
)


@pytest.fixture
def security_manager() -> SecurityManager:
    """Password policy with a cheap bcrypt work factor."""
    return SecurityManager(bcrypt_rounds=4)


@pytest.fixture
def token_settings() -> TokenSettings:
    return TokenSettings(
        security_key=TEST_SECURITY_KEY,
        issuer=TEST_ISSUER,
        audience=TEST_AUDIENCE,
    )


@pytest.fixture
def token_service(token_settings: TokenSettings) -> TokenService:
    return TokenService(token_settings)


@pytest_asyncio.fixture
async def account_queries(
    tmp_path,  # noqa: ANN001
    security_manager: SecurityManager,
) -> AccountQueries:
    """Identity store on a fresh SQLite file per test."""
    queries = AccountQueries(str(tmp_path / "test.db"), security_manager)
    await queries.initialize_tables()
    return queries


@pytest.fixture
def password_reset(
    account_queries: AccountQueries,
    token_settings: TokenSettings,
) -> PasswordResetFlow:
    return PasswordResetFlow(account_queries, token_settings)


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def workflow(
    account_queries: AccountQueries,
    token_service: TokenService,
    password_reset: PasswordResetFlow,
    email_sender: RecordingEmailSender,
) -> AccountWorkflow:
    return AccountWorkflow(
        account_queries=account_queries,
        token_service=token_service,
        password_reset=password_reset,
        email_sender=email_sender,
        reset_url_base=TEST_RESET_URL,
    )
