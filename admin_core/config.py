from functools import lru_cache
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings

_PROJECT_DIR = Path(__file__).resolve().parents[1]
_ENV_FILES = (
    _PROJECT_DIR / ".env",
    ".env",
)


class Settings(BaseSettings):
    """Client settings loaded from environment variables."""

    # Backend REST service (required)
    api_base_url: str

    # Identity provider
    keycloak_url: str = "https://auth.semantyca.com"
    keycloak_realm: str = "master"
    keycloak_client_id: str = "2next"

    # Redirect target for login/logout
    app_origin: str = "http://localhost:5173"

    # Session lifecycle
    token_min_validity: int = 30         # seconds before expiry that trigger a refresh
    gateway_reload_delay: float = 1.0    # seconds between a 502 purge and the reload
    request_timeout: float = 30.0

    # Resource stores
    default_page_size: int = 10

    # Logging — per-category log levels (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    log_level: str = "INFO"              # Root / app-wide
    log_level_http: str = "WARNING"      # httpx / httpcore — outbound HTTP
    log_level_auth: str = "INFO"         # credential broker, session, Keycloak adapter
    log_level_stores: str = "INFO"       # paginated resource stores

    model_config = {
        "env_file": _ENV_FILES,
        "env_file_encoding": "utf-8",
    }

    @field_validator("api_base_url", "keycloak_url", "app_origin")
    @classmethod
    def _strip_trailing_slashes(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("URL must not be empty")
        return value.rstrip("/")


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance — reads .env once."""
    return Settings()
