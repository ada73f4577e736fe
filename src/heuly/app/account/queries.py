"""Identity store database utilities.

Using the AccountQueries class as a repository for user, role and
credential queries. Each operation opens its own connection, so one call is
one unit of work.
"""

from __future__ import annotations

import logging
import re
import sqlite3
import uuid
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import aiosqlite

from heuly.common import Role, User
from heuly.common.user import normalize

from .errors import IdentityError, IdentityResult

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from .security_manager import SecurityManager

LOGGER = logging.getLogger(__name__)
LOGGER.setLevel(logging.DEBUG)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9\-._@+]+$")


class AccountQueries:
    """Repository for identity-related queries."""

    CREATE_USERS_TABLE = """
        CREATE TABLE IF NOT EXISTS users (
            id TEXT PRIMARY KEY,
            email TEXT NOT NULL,
            normalized_email TEXT NOT NULL UNIQUE,
            username TEXT NOT NULL,
            normalized_username TEXT NOT NULL UNIQUE,
            password_hash BLOB NOT NULL,
            security_stamp TEXT NOT NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );
        """

    CREATE_ROLES_TABLE = """
        CREATE TABLE IF NOT EXISTS roles (
            name TEXT NOT NULL,
            normalized_name TEXT PRIMARY KEY
        );
        """

    CREATE_USER_ROLES_TABLE = """
        CREATE TABLE IF NOT EXISTS user_roles (
            user_id TEXT NOT NULL,
            role_name TEXT NOT NULL,
            PRIMARY KEY (user_id, role_name),
            FOREIGN KEY (user_id) REFERENCES users (id) ON DELETE CASCADE,
            FOREIGN KEY (role_name) REFERENCES roles (normalized_name)
        );
        """

    SEED_ROLE = """
        INSERT OR IGNORE INTO roles (name, normalized_name) VALUES (?, ?)
        """

    COUNT_ROLES = """SELECT COUNT(*) FROM roles;"""

    GET_USER_BY_NORMALIZED_EMAIL = """
        SELECT id, email, username, password_hash, security_stamp
        FROM users WHERE normalized_email = ?
        """

    GET_USER_ROLES = """
        SELECT roles.name FROM user_roles
        JOIN roles ON roles.normalized_name = user_roles.role_name
        WHERE user_roles.user_id = ?
        """

    GET_DUPLICATES = """
        SELECT normalized_email, normalized_username FROM users
        WHERE normalized_email = ? OR normalized_username = ?
        """

    ADD_USER = """
        INSERT INTO users (
            id, email, normalized_email, username, normalized_username,
            password_hash, security_stamp
        ) VALUES (?, ?, ?, ?, ?, ?, ?)
        """

    ADD_USER_ROLE = """
        INSERT INTO user_roles (user_id, role_name) VALUES (?, ?)
        """

    REPLACE_PASSWORD = """
        UPDATE users SET password_hash = ?, security_stamp = ?
        WHERE id = ? AND security_stamp = ?
        """  # noqa: S105

    def __init__(
        self,
        database_path: str,
        security_manager: SecurityManager,
    ) -> None:
        """Create an AccountQueries instance.

        :param database_path: Path to the SQLite database file
        :param security_manager: Password policy and hashing
        """
        self.database_path = database_path
        self.security_manager = security_manager

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        # BEGIN IMMEDIATE: concurrent writers wait on the busy timeout
        # instead of failing on a lock upgrade
        async with aiosqlite.connect(
            self.database_path,
            isolation_level="IMMEDIATE",
        ) as db:
            await db.execute("PRAGMA foreign_keys = ON")
            yield db

    async def initialize_tables(self) -> None:
        """Create the identity tables and seed the fixed role set.

        Safe to call on every startup; existing rows are left untouched.
        """
        async with self._connect() as db:
            try:
                await db.execute(AccountQueries.CREATE_USERS_TABLE)
                await db.execute(AccountQueries.CREATE_ROLES_TABLE)
                await db.execute(AccountQueries.CREATE_USER_ROLES_TABLE)
                await db.executemany(
                    AccountQueries.SEED_ROLE,
                    [(role.value, role.normalized_name) for role in Role],
                )
                await db.commit()
            except Exception:
                await db.rollback()
                LOGGER.exception("Error initializing tables")
                raise
        LOGGER.info("Identity tables ready at %s", self.database_path)

    async def count_roles(self) -> int:
        """Return the number of seeded roles."""
        async with self._connect() as db:
            result = await db.execute(AccountQueries.COUNT_ROLES)
            row = await result.fetchone()
        return row[0] if row else 0

    async def find_by_email(self, email: str) -> User | None:
        """Look up a user by email, ignoring case.

        :param email: Email address to search for
        :return: The User with its roles, or None if no user matches
        """
        async with self._connect() as db:
            result = await db.execute(
                AccountQueries.GET_USER_BY_NORMALIZED_EMAIL,
                (normalize(email),),
            )
            row = await result.fetchone()
            if row is None:
                return None

            user_id, stored_email, username, password_hash, stamp = row
            result = await db.execute(AccountQueries.GET_USER_ROLES, (user_id,))
            role_rows = await result.fetchall()

        roles = {Role.from_name(name) for (name,) in role_rows}
        return User(
            id=user_id,
            email=stored_email,
            username=username,
            password_hash=password_hash,
            security_stamp=stamp,
            roles={role for role in roles if role is not None},
        )

    async def create(self, user: User, password: str) -> IdentityResult:
        """Create a new user with the given password.

        All validation problems are collected and returned together. On
        success the user's id, hash and stamp are filled in.

        :param user: The user to create (email and username are required)
        :param password: The plaintext password
        :return: The result of the operation
        """
        errors = self._validate_user(user)
        errors.extend(await self._find_duplicates(user))
        errors.extend(self.security_manager.validate_password(password))
        if errors:
            LOGGER.debug(
                "Refusing to create user %s: %s",
                user.email,
                [error.code for error in errors],
            )
            return IdentityResult(errors)

        user.id = user.id or str(uuid.uuid4())
        user.password_hash = self.security_manager.hash_password(password)
        user.security_stamp = self.security_manager.new_security_stamp()

        async with self._connect() as db:
            try:
                await db.execute(
                    AccountQueries.ADD_USER,
                    (
                        user.id,
                        user.email,
                        user.normalized_email,
                        user.username,
                        user.normalized_username,
                        user.password_hash,
                        user.security_stamp,
                    ),
                )
                await db.commit()
            except sqlite3.IntegrityError:
                # lost a race against a concurrent registration
                await db.rollback()
                LOGGER.debug("Unique constraint rejected user %s", user.email)
                duplicates = await self._find_duplicates(user)
                return IdentityResult(
                    duplicates
                    or [IdentityError("DuplicateEmail", "Email is already taken.")],
                )
            except Exception:
                await db.rollback()
                LOGGER.exception("Error creating user %s", user.email)
                return IdentityResult.failed(
                    IdentityError("StoreFailure", "Failed to create user."),
                )

        LOGGER.info("Created user %s", user.id)
        return IdentityResult.success()

    async def verify_password(self, user: User, password: str) -> bool:
        """Check a password against the user's stored hash."""
        return self.security_manager.verify_password(password, user.password_hash)

    async def assign_role(self, user: User, role: Role | str) -> IdentityResult:
        """Add the user to a role.

        :param user: An existing user
        :param role: A Role, or the name of one
        :return: The result of the operation
        """
        resolved = role if isinstance(role, Role) else Role.from_name(role)
        if resolved is None:
            return IdentityResult.failed(
                IdentityError("InvalidRoleName", f"Role name '{role}' is invalid."),
            )

        async with self._connect() as db:
            try:
                await db.execute(
                    AccountQueries.ADD_USER_ROLE,
                    (user.id, resolved.normalized_name),
                )
                await db.commit()
            except sqlite3.IntegrityError:
                await db.rollback()
                if resolved in await self.get_roles(user):
                    return IdentityResult.failed(
                        IdentityError(
                            "UserAlreadyInRole",
                            f"User already in role '{resolved}'.",
                        ),
                    )
                LOGGER.exception("Error assigning role %s to %s", resolved, user.id)
                return IdentityResult.failed(
                    IdentityError("StoreFailure", "Failed to assign role."),
                )
            except Exception:
                await db.rollback()
                LOGGER.exception("Error assigning role %s to %s", resolved, user.id)
                return IdentityResult.failed(
                    IdentityError("StoreFailure", "Failed to assign role."),
                )

        user.roles.add(resolved)
        LOGGER.debug("Assigned role %s to user %s", resolved, user.id)
        return IdentityResult.success()

    async def get_roles(self, user: User) -> set[Role]:
        """Return the roles currently stored for the user."""
        async with self._connect() as db:
            result = await db.execute(AccountQueries.GET_USER_ROLES, (user.id,))
            rows = await result.fetchall()
        roles = {Role.from_name(name) for (name,) in rows}
        return {role for role in roles if role is not None}

    async def replace_password(
        self,
        user: User,
        expected_stamp: str,
        new_password: str,
    ) -> IdentityResult:
        """Replace the password if the security stamp is still current.

        The check and the update are a single statement, so of two concurrent
        calls with the same stamp at most one succeeds. The stamp is rotated,
        which invalidates every outstanding reset token for the user.

        :param user: The user whose password changes
        :param expected_stamp: Security stamp the caller's token was bound to
        :param new_password: The new plaintext password
        :return: The result of the operation
        """
        errors = self.security_manager.validate_password(new_password)
        if errors:
            return IdentityResult(errors)

        password_hash = self.security_manager.hash_password(new_password)
        new_stamp = self.security_manager.new_security_stamp()

        async with self._connect() as db:
            try:
                result = await db.execute(
                    AccountQueries.REPLACE_PASSWORD,
                    (password_hash, new_stamp, user.id, expected_stamp),
                )
                updated = result.rowcount
                await db.commit()
            except Exception:
                await db.rollback()
                LOGGER.exception("Error replacing password for %s", user.id)
                return IdentityResult.failed(
                    IdentityError("StoreFailure", "Failed to change password."),
                )

        if updated != 1:
            LOGGER.debug("Stale security stamp for user %s", user.id)
            return IdentityResult.failed(
                IdentityError("InvalidToken", "Invalid token."),
            )

        user.password_hash = password_hash
        user.security_stamp = new_stamp
        LOGGER.info("Password replaced for user %s", user.id)
        return IdentityResult.success()

    def _validate_user(self, user: User) -> list[IdentityError]:
        errors = []
        if not user.username or not USERNAME_PATTERN.match(user.username):
            errors.append(
                IdentityError(
                    "InvalidUserName",
                    f"Username '{user.username}' is invalid.",
                ),
            )
        if not user.email or not EMAIL_PATTERN.match(user.email):
            errors.append(
                IdentityError("InvalidEmail", f"Email '{user.email}' is invalid."),
            )
        return errors

    async def _find_duplicates(self, user: User) -> list[IdentityError]:
        async with self._connect() as db:
            result = await db.execute(
                AccountQueries.GET_DUPLICATES,
                (user.normalized_email, user.normalized_username),
            )
            rows = await result.fetchall()

        errors = []
        if any(row[1] == user.normalized_username for row in rows):
            errors.append(
                IdentityError(
                    "DuplicateUserName",
                    f"Username '{user.username}' is already taken.",
                ),
            )
        if any(row[0] == user.normalized_email for row in rows):
            errors.append(
                IdentityError(
                    "DuplicateEmail",
                    f"Email '{user.email}' is already taken.",
                ),
            )
        return errors
