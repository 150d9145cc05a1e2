"""Centralized logging configuration.

Applies per-category log levels from Settings so that noisy loggers
(e.g. httpx/httpcore) can be silenced without affecting the session
and store logs.

Usage:
    from admin_core.infrastructure.logging.log_config import setup_logging
    setup_logging()   # Call once at startup
"""

import logging
import sys

from admin_core.config import Settings, get_settings


# ── Logger-name → Settings-field mapping ────────────────────────────

_CATEGORY_MAP: dict[str, list[str]] = {
    "log_level_http": [
        "httpx",
        "httpcore",
    ],
    "log_level_auth": [
        "admin_core.application.services.credential_broker",
        "admin_core.application.services.auth_store",
        "admin_core.application.interfaces.client_environment",
        "admin_core.infrastructure.keycloak",
        "admin_core.infrastructure.environment",
        "admin_core.infrastructure.http.interceptors",
    ],
    "log_level_stores": [
        "admin_core.application.services.resource_store",
        "admin_core.infrastructure.http.resource_client",
    ],
}


def setup_logging(settings: Settings | None = None) -> None:
    """Configure Python logging levels from client settings."""
    settings = settings or get_settings()
    root_level = _parse_level(settings.log_level)

    # ── Root logger ────────────────────────────────────────────────
    root = logging.getLogger()
    root.setLevel(root_level)

    # Hosts usually install a handler; scripts and tests may not.
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(
            logging.Formatter(
                "%(levelname)-8s %(name)s — %(message)s",
            )
        )
        root.addHandler(handler)

    # ── Per-category loggers ───────────────────────────────────────
    for settings_field, logger_names in _CATEGORY_MAP.items():
        raw_level: str = getattr(settings, settings_field, "INFO")
        level = _parse_level(raw_level)

        for name in logger_names:
            logging.getLogger(name).setLevel(level)

    logging.getLogger(__name__).debug(
        "Logging configured — root=%s, http=%s, auth=%s, stores=%s",
        settings.log_level,
        settings.log_level_http,
        settings.log_level_auth,
        settings.log_level_stores,
    )


def _parse_level(raw: str) -> int:
    """Convert a level name string to a logging constant, defaulting to INFO."""
    numeric = getattr(logging, raw.upper(), None)
    if isinstance(numeric, int):
        return numeric
    return logging.INFO
