"""Tests for reset token issue and redemption."""

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from heuly.app.account import (
    AccountQueries,
    PasswordResetFlow,
    ResetTokenSettings,
    TokenService,
    TokenSettings,
)
from heuly.common import User

from helpers import NEW_PASSWORD, TEST_EMAIL, TEST_NAME, TEST_PASSWORD


async def _registered_user(
    account_queries: AccountQueries,
    email: str = TEST_EMAIL,
    username: str = TEST_NAME,
) -> User:
    user = User(id="", email=email, username=username)
    result = await account_queries.create(user, TEST_PASSWORD)
    assert result.succeeded
    return user


async def _can_log_in(
    account_queries: AccountQueries,
    email: str,
    password: str,
) -> bool:
    user = await account_queries.find_by_email(email)
    assert user is not None
    return await account_queries.verify_password(user, password)


@pytest.mark.asyncio
async def test_issue_then_redeem_changes_password(
    account_queries: AccountQueries,
    password_reset: PasswordResetFlow,
) -> None:
    user = await _registered_user(account_queries)
    token = password_reset.issue_reset_token(user)

    result = await password_reset.redeem_reset_token(user, token, NEW_PASSWORD)

    assert result.succeeded
    assert await _can_log_in(account_queries, TEST_EMAIL, NEW_PASSWORD)
    assert not await _can_log_in(account_queries, TEST_EMAIL, TEST_PASSWORD)


@pytest.mark.asyncio
async def test_tokens_are_unique(
    account_queries: AccountQueries,
    password_reset: PasswordResetFlow,
) -> None:
    user = await _registered_user(account_queries)

    assert password_reset.issue_reset_token(user) != password_reset.issue_reset_token(
        user,
    )


@pytest.mark.asyncio
async def test_token_cannot_be_redeemed_twice(
    account_queries: AccountQueries,
    password_reset: PasswordResetFlow,
) -> None:
    user = await _registered_user(account_queries)
    token = password_reset.issue_reset_token(user)

    first = await password_reset.redeem_reset_token(user, token, NEW_PASSWORD)
    fresh = await account_queries.find_by_email(TEST_EMAIL)
    assert fresh is not None
    second = await password_reset.redeem_reset_token(fresh, token, "Another!1")

    assert first.succeeded
    assert [error.code for error in second.errors] == ["InvalidToken"]
    assert await _can_log_in(account_queries, TEST_EMAIL, NEW_PASSWORD)


@pytest.mark.asyncio
async def test_concurrent_redemption_succeeds_once(
    account_queries: AccountQueries,
    password_reset: PasswordResetFlow,
) -> None:
    user = await _registered_user(account_queries)
    token = password_reset.issue_reset_token(user)
    copy_a = await account_queries.find_by_email(TEST_EMAIL)
    copy_b = await account_queries.find_by_email(TEST_EMAIL)
    assert copy_a is not None
    assert copy_b is not None

    results = await asyncio.gather(
        password_reset.redeem_reset_token(copy_a, token, NEW_PASSWORD),
        password_reset.redeem_reset_token(copy_b, token, "Another!1"),
    )

    assert sorted(result.succeeded for result in results) == [False, True]


@pytest.mark.asyncio
async def test_password_change_invalidates_outstanding_tokens(
    account_queries: AccountQueries,
    password_reset: PasswordResetFlow,
) -> None:
    user = await _registered_user(account_queries)
    used = password_reset.issue_reset_token(user)
    outstanding = password_reset.issue_reset_token(user)

    assert (await password_reset.redeem_reset_token(user, used, NEW_PASSWORD)).succeeded

    fresh = await account_queries.find_by_email(TEST_EMAIL)
    assert fresh is not None
    result = await password_reset.redeem_reset_token(fresh, outstanding, "Another!1")

    assert not result.succeeded


@pytest.mark.asyncio
async def test_token_is_bound_to_its_user(
    account_queries: AccountQueries,
    password_reset: PasswordResetFlow,
) -> None:
    alice = await _registered_user(account_queries, "alice@example.com", "alice")
    bob = await _registered_user(account_queries, "bob@example.com", "bob")
    token = password_reset.issue_reset_token(alice)

    result = await password_reset.redeem_reset_token(bob, token, NEW_PASSWORD)

    assert [error.code for error in result.errors] == ["InvalidToken"]
    assert await _can_log_in(account_queries, "bob@example.com", TEST_PASSWORD)


@pytest.mark.asyncio
async def test_expired_token_is_rejected(
    account_queries: AccountQueries,
    token_settings: TokenSettings,
) -> None:
    flow = PasswordResetFlow(
        account_queries,
        token_settings,
        ResetTokenSettings(expire_minutes=1),
    )
    user = await _registered_user(account_queries)
    token = flow.issue_reset_token(
        user,
        now=datetime.now(UTC) - timedelta(minutes=2),
    )

    result = await flow.redeem_reset_token(user, token, NEW_PASSWORD)

    assert not result.succeeded
    assert await _can_log_in(account_queries, TEST_EMAIL, TEST_PASSWORD)


@pytest.mark.asyncio
async def test_bearer_token_is_not_a_reset_token(
    account_queries: AccountQueries,
    password_reset: PasswordResetFlow,
    token_service: TokenService,
) -> None:
    user = await _registered_user(account_queries)

    result = await password_reset.redeem_reset_token(
        user,
        token_service.create_token(user),
        NEW_PASSWORD,
    )

    assert not result.succeeded


@pytest.mark.asyncio
async def test_garbage_token_is_rejected(
    account_queries: AccountQueries,
    password_reset: PasswordResetFlow,
) -> None:
    user = await _registered_user(account_queries)

    result = await password_reset.redeem_reset_token(user, "not-a-token", NEW_PASSWORD)

    assert [error.code for error in result.errors] == ["InvalidToken"]


@pytest.mark.asyncio
async def test_weak_new_password_keeps_token_usable(
    account_queries: AccountQueries,
    password_reset: PasswordResetFlow,
) -> None:
    user = await _registered_user(account_queries)
    token = password_reset.issue_reset_token(user)

    weak = await password_reset.redeem_reset_token(user, token, "123")
    strong = await password_reset.redeem_reset_token(user, token, NEW_PASSWORD)

    assert "PasswordTooShort" in {error.code for error in weak.errors}
    assert strong.succeeded
