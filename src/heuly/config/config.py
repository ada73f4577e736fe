"""Configuration management for the account API.

This module provides utilities for loading and validating configuration
from environment variables.
"""

import logging
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING

from dotenv import load_dotenv

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

LOGGER = logging.getLogger(__name__)
LOGGER.setLevel(logging.DEBUG)

_PORT_UPPER_BOUND = 65536
_DEFAULT_TOKEN_EXPIRE_DAYS = 7
_MINUTES_IN_DAY = 60 * 24
_DEFAULT_PASSWORD_MIN_LENGTH = 8
_DEFAULT_SMTP_PORT = 587
_DEFAULT_SMTP_TIMEOUT_SECONDS = 10
_HMAC_ALGORITHMS = ("HS256", "HS384", "HS512")
_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


def configure_logging(app_config: "AppConfig") -> None:
    """Configure logging based on the application configuration.

    :param app_config: The application configuration instance
    """
    if not app_config.logging_level:
        logging.basicConfig(level=logging.INFO)
        return

    numeric_level = getattr(logging, app_config.logging_level.upper(), None)
    if numeric_level is None:
        LOGGER.warning("Invalid log level: %s, using INFO", app_config.logging_level)
        numeric_level = logging.INFO
    logging.basicConfig(level=numeric_level)


@dataclass
class AppConfig:
    """Holds application configuration loaded from environment variables."""

    database_path: str
    logging_level: str | None
    root_path: str

    jwt_security_key: str | None
    jwt_valid_issuer: str
    jwt_valid_audience: str
    jwt_algorithm: str
    access_token_expire_days: int
    reset_token_expire_minutes: int
    reset_url_base: str
    password_min_length: int

    smtp_server: str
    smtp_port: int
    smtp_username: str
    smtp_password: str
    smtp_from: str
    smtp_use_tls: bool
    smtp_timeout: int


def get_env_str(
    var_name: str,
    default: str | None,
    value_checker: "Callable[[str], bool] | None" = None,
) -> str:
    """Get an environment variable as a string with optional constraints.

    :param var_name: Name of the environment variable
    :param default: Default value if the variable is not set
    :param value_checker: Optional function to validate the value
    :return: The environment variable value
    :raises ValueError: If the value does not meet the constraints
    """
    value = os.getenv(var_name, default)
    if value is None:
        msg = f"Environment variable {var_name} is required"
        raise ValueError(msg)

    if value_checker and not value_checker(value):
        msg = f"Environment variable {var_name} has invalid value: {value}"
        raise ValueError(msg)

    return value


def get_env_optional_str(var_name: str) -> str | None:
    """Get an environment variable as a string, treating empty as unset.

    :param var_name: Name of the environment variable
    :return: The value, or None if it is unset or empty
    """
    value = os.getenv(var_name)
    return value or None


def get_env_int(
    var_name: str,
    default: int,
    value_checker: "Callable[[int], bool] | None" = None,
) -> int:
    """Get an environment variable as an integer with optional constraints.

    :param var_name: Name of the environment variable
    :param default: Default value if the variable is not set
    :param value_checker: Optional function to validate the value
    :return: The environment variable value as an integer
    :raises ValueError: If the value does not meet the constraints or is not an integer
    """
    value_str = os.getenv(var_name)
    if value_str is None or value_str == "":
        return default

    if not value_str.isnumeric():
        msg = f"Environment variable {var_name} must be an integer, got: {value_str}"
        raise ValueError(msg)

    value = int(value_str)

    if value_checker and not value_checker(value):
        msg = f"Environment variable {var_name} has invalid value: {value}"
        raise ValueError(msg)

    return value


def get_env_bool(var_name: str, *, default: bool) -> bool:
    """Get an environment variable as a boolean.

    :param var_name: Name of the environment variable
    :param default: Default value if the variable is not set
    :return: The environment variable value as a boolean
    :raises ValueError: If the value is not a recognised boolean
    """
    value_str = os.getenv(var_name)
    if value_str is None or value_str == "":
        return default

    if value_str.lower() in _TRUE_VALUES:
        return True
    if value_str.lower() in _FALSE_VALUES:
        return False

    msg = f"Environment variable {var_name} must be a boolean, got: {value_str}"
    raise ValueError(msg)


def load_config_from_env(env_file: "str | Path | None") -> AppConfig:
    """Load application configuration from environment variables.

    :param env_file: Optional .env file loaded before reading the environment
    :return: An AppConfig instance populated with environment variable values
    """
    if env_file:
        load_dotenv(dotenv_path=env_file)

    return AppConfig(
        database_path=get_env_str("DATABASE_PATH", "./heuly_sqlite.db"),
        logging_level=get_env_str("LOGGING_LEVEL", "INFO"),
        root_path=get_env_str("ROOT_PATH", ""),
        jwt_security_key=get_env_optional_str("JWT_SECURITY_KEY"),
        jwt_valid_issuer=get_env_str("JWT_VALID_ISSUER", "heuly"),
        jwt_valid_audience=get_env_str("JWT_VALID_AUDIENCE", "heuly"),
        jwt_algorithm=get_env_str(
            "JWT_ALGORITHM",
            "HS512",
            lambda algorithm: algorithm in _HMAC_ALGORITHMS,
        ),
        access_token_expire_days=get_env_int(
            "ACCESS_TOKEN_EXPIRE_DAYS",
            _DEFAULT_TOKEN_EXPIRE_DAYS,
            lambda days: days > 0,
        ),
        reset_token_expire_minutes=get_env_int(
            "RESET_TOKEN_EXPIRE_MINUTES",
            _MINUTES_IN_DAY,  # default 1 day
            lambda minutes: minutes > 0,
        ),
        reset_url_base=get_env_str(
            "RESET_URL_BASE",
            "http://localhost:8000/account/reset-password",
            lambda url: url.startswith(("http://", "https://")),
        ),
        password_min_length=get_env_int(
            "PASSWORD_MIN_LENGTH",
            _DEFAULT_PASSWORD_MIN_LENGTH,
            lambda length: length > 0,
        ),
        smtp_server=get_env_str("SMTP_SERVER", ""),
        smtp_port=get_env_int(
            "SMTP_PORT",
            _DEFAULT_SMTP_PORT,
            lambda port: 0 < port < _PORT_UPPER_BOUND,
        ),
        smtp_username=get_env_str("SMTP_USERNAME", ""),
        smtp_password=get_env_str("SMTP_PASSWORD", ""),
        smtp_from=get_env_str("SMTP_FROM", ""),
        smtp_use_tls=get_env_bool("SMTP_USE_TLS", default=True),
        smtp_timeout=get_env_int(
            "SMTP_TIMEOUT",
            _DEFAULT_SMTP_TIMEOUT_SECONDS,
            lambda timeout: timeout > 0,
        ),
    )
