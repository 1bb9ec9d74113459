"""
Environment configuration for confschema.

The CONFSCHEMA_ENV environment variable selects the runtime environment,
following the same pattern as RAILS_ENV / NODE_ENV:

    - development (default): verbose logging
    - test: quiet logging
    - production: quiet logging

Usage:
    from confschema.core.environment import get_confschema_env

    env = get_confschema_env()  # Returns "development", "test", or "production"
"""

from __future__ import annotations

import logging
import os
from enum import StrEnum

logger = logging.getLogger(__name__)


class ConfSchemaEnv(StrEnum):
    """Runtime environment values."""

    DEVELOPMENT = "development"
    TEST = "test"
    PRODUCTION = "production"


_DEFAULT_ENV = ConfSchemaEnv.DEVELOPMENT

CONFSCHEMA_ENV_VAR = "CONFSCHEMA_ENV"

_ALIASES: dict[str, ConfSchemaEnv] = {
    "": ConfSchemaEnv.DEVELOPMENT,
    "dev": ConfSchemaEnv.DEVELOPMENT,
    "development": ConfSchemaEnv.DEVELOPMENT,
    "test": ConfSchemaEnv.TEST,
    "testing": ConfSchemaEnv.TEST,
    "prod": ConfSchemaEnv.PRODUCTION,
    "production": ConfSchemaEnv.PRODUCTION,
}


def get_confschema_env() -> ConfSchemaEnv:
    """Get the current environment from CONFSCHEMA_ENV.

    Returns:
        ConfSchemaEnv: The current environment (development, test, or production).
        Defaults to development if CONFSCHEMA_ENV is not set or invalid.

    Examples:
        >>> import os
        >>> os.environ["CONFSCHEMA_ENV"] = "prod"
        >>> get_confschema_env()
        <ConfSchemaEnv.PRODUCTION: 'production'>
    """
    env_value = os.environ.get(CONFSCHEMA_ENV_VAR, "").lower().strip()
    env = _ALIASES.get(env_value)
    if env is None:
        logger.warning(
            "Unknown %s value '%s'. Defaulting to '%s'.",
            CONFSCHEMA_ENV_VAR,
            env_value,
            _DEFAULT_ENV.value,
        )
        return _DEFAULT_ENV
    return env


def default_log_level(env: ConfSchemaEnv | None = None) -> str:
    """Default logging level name for an environment."""
    env = env or get_confschema_env()
    return "DEBUG" if env == ConfSchemaEnv.DEVELOPMENT else "WARNING"
