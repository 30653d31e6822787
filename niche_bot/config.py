"""
Configuration management for the newsletter bot.

Loads settings from environment variables / .env file and provides
typed accessors with validation. Credentials are optional at load time
and only checked when the component that needs them is first used.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


class ConfigError(Exception):
    """Raised when configuration is invalid or missing required values."""
    pass


# Attribute name -> environment variable, for error messages
CREDENTIAL_ENV_NAMES = {
    "supabase_url": "SUPABASE_URL",
    "supabase_service_key": "SUPABASE_SERVICE_KEY",
    "openai_api_key": "OPENAI_API_KEY",
    "resend_api_key": "RESEND_API_KEY",
    "telegram_bot_token": "TELEGRAM_BOT_TOKEN",
    "telegram_chat_id": "TELEGRAM_CHAT_ID",
}


@dataclass
class Config:
    """Application configuration container."""

    # Store (Supabase)
    supabase_url: Optional[str] = None
    supabase_service_key: Optional[str] = None

    # Reasoning service (OpenAI-compatible chat completions)
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-5.1"
    openai_base_url: str = "https://api.openai.com/v1"
    openai_timeout: int = 180

    # Email delivery (Resend)
    resend_api_key: Optional[str] = None
    email_from: str = "support@arianeconcept.fr"
    email_send_delay: float = 0.6  # Resend allows 2 req/s

    # Operational notifications (Telegram)
    telegram_bot_token: Optional[str] = None
    telegram_chat_id: Optional[str] = None

    # Run settings
    candidate_limit: int = 30
    cooldown_days: int = 10
    port: int = 3001

    def require(self, name: str) -> str:
        """
        Return a credential value or raise ConfigError naming its variable.

        Args:
            name: Config attribute name (e.g. "openai_api_key").

        Raises:
            ConfigError: If the value is unset or empty.
        """
        value = getattr(self, name)
        if not value:
            env_name = CREDENTIAL_ENV_NAMES.get(name, name.upper())
            raise ConfigError(f"Missing required environment variable: {env_name}")
        return value


def _get_optional_env(key: str, default: Optional[str]) -> Optional[str]:
    """Get an optional environment variable with a default."""
    value = os.environ.get(key)
    if value is None or value == "":
        return default
    return value


def _get_int_env(key: str, default: int) -> int:
    """Get an integer environment variable or raise ConfigError."""
    value_str = os.environ.get(key)
    if not value_str:
        return default
    try:
        return int(value_str)
    except ValueError:
        raise ConfigError(f"{key} must be an integer, got: {value_str}")


def _get_float_env(key: str, default: float) -> float:
    """Get a float environment variable or raise ConfigError."""
    value_str = os.environ.get(key)
    if not value_str:
        return default
    try:
        return float(value_str)
    except ValueError:
        raise ConfigError(f"{key} must be a number, got: {value_str}")


def load_config(env_path: Optional[Path] = None) -> Config:
    """
    Load configuration from environment variables.

    Missing credentials do not fail here; see Config.require().

    Args:
        env_path: Optional path to .env file. If not provided,
                  searches for .env in current and parent directories.

    Returns:
        Config object with all settings populated.

    Raises:
        ConfigError: If a numeric setting cannot be parsed.
    """
    # Load .env file if it exists
    if env_path:
        load_dotenv(env_path)
    else:
        load_dotenv()

    cooldown_days = _get_int_env("COOLDOWN_DAYS", 10)
    if cooldown_days < 1:
        raise ConfigError(f"COOLDOWN_DAYS must be at least 1, got: {cooldown_days}")

    return Config(
        supabase_url=_get_optional_env("SUPABASE_URL", None),
        supabase_service_key=_get_optional_env("SUPABASE_SERVICE_KEY", None),
        openai_api_key=_get_optional_env("OPENAI_API_KEY", None),
        openai_model=_get_optional_env("OPENAI_MODEL", "gpt-5.1"),
        openai_base_url=_get_optional_env("OPENAI_BASE_URL", "https://api.openai.com/v1"),
        openai_timeout=_get_int_env("OPENAI_TIMEOUT", 180),
        resend_api_key=_get_optional_env("RESEND_API_KEY", None),
        email_from=_get_optional_env("EMAIL_FROM", "support@arianeconcept.fr"),
        email_send_delay=_get_float_env("EMAIL_SEND_DELAY", 0.6),
        telegram_bot_token=_get_optional_env("TELEGRAM_BOT_TOKEN", None),
        telegram_chat_id=_get_optional_env("TELEGRAM_CHAT_ID", None),
        candidate_limit=_get_int_env("CANDIDATE_LIMIT", 30),
        cooldown_days=cooldown_days,
        port=_get_int_env("PORT", 3001),
    )
