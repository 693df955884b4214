from __future__ import annotations

import os
from dataclasses import dataclass, field


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/122.0.0.0 Safari/537.36"
)


def _env_bool(name: str, default: bool) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return val.lower() in {"1", "true", "yes", "on"}


def _env_str(name: str, default: str | None = None):
    return field(default_factory=lambda: os.getenv(name, default))


@dataclass
class Settings:
    host: str = _env_str("HOST", "0.0.0.0")  # nosec B104 - container binding
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "3000")))
    api_token: str | None = field(default_factory=lambda: os.getenv("API_TOKEN") or None)
    headless: bool = field(default_factory=lambda: _env_bool("HEADLESS", True))
    user_agent: str = _env_str("BROWSER_USER_AGENT", DEFAULT_USER_AGENT)
    locale: str = _env_str("BROWSER_LOCALE", "pt-BR")
    timezone_id: str = _env_str("BROWSER_TIMEZONE", "America/Fortaleza")
    script_backend: str = _env_str("SCRIPT_BACKEND", "none")  # none|file|redis
    scripts_file: str = _env_str("SCRIPTS_FILE", "scripts.json")
    redis_url: str = _env_str("REDIS_URL", "redis://redis:6379/0")
    log_level: str = _env_str("LOG_LEVEL", "INFO")


def load_settings() -> Settings:
    """Build settings from the current environment."""
    return Settings()
