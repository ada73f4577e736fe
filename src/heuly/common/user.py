"""Fundamental user data model for app."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class Role(StrEnum):
    """Closed set of roles seeded into the identity store at startup."""

    USER = "User"
    ADMIN = "Admin"
    PREMIUM = "Premium"

    @property
    def normalized_name(self) -> str:
        """Upper-cased name used for case-insensitive role lookups."""
        return self.value.upper()

    @classmethod
    def from_name(cls, name: str) -> Role | None:
        """Resolve a stored or user-supplied role name.

        :param name: Role name in any casing
        :return: The matching Role, or None if the name is not a known role
        """
        return _ROLES_BY_NORMALIZED_NAME.get(name.upper())


_ROLES_BY_NORMALIZED_NAME = {role.normalized_name: role for role in Role}


@dataclass
class User:
    """Data structure representing a registered account.

    :param id: Unique identifier (UUID string)
    :param email: Email address as entered at registration
    :param username: Display/user name, unique ignoring case
    :param password_hash: bcrypt hash of the current password
    :param security_stamp: Random value rotated whenever the password changes
    :param roles: Roles assigned to the user
    """

    id: str
    email: str
    username: str
    password_hash: bytes = b""
    security_stamp: str = ""
    roles: set[Role] = field(default_factory=set)

    @property
    def normalized_email(self) -> str:
        return normalize(self.email)

    @property
    def normalized_username(self) -> str:
        return normalize(self.username)


def normalize(value: str) -> str:
    """Normalize an email or username for case-insensitive comparison."""
    return value.strip().upper()
