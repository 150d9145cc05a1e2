"""Unit tests for client settings configuration."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from admin_core.config import Settings


def test_settings_uses_project_env_file_independent_of_cwd():
    """Settings should always include the project .env as an env source."""
    env_files = Settings.model_config.get("env_file")
    assert env_files is not None

    normalized = {str(Path(item)) for item in env_files}
    expected_project_env = str(Path(__file__).resolve().parents[2] / ".env")

    assert expected_project_env in normalized
    assert str(Path(".env")) in normalized


def test_settings_require_api_base_url(monkeypatch):
    monkeypatch.delenv("API_BASE_URL", raising=False)

    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_settings_strip_trailing_slashes(monkeypatch):
    monkeypatch.setenv("API_BASE_URL", " https://api.example.com/v1/ ")
    monkeypatch.setenv("KEYCLOAK_URL", "https://auth.example.com/")

    settings = Settings(_env_file=None)

    assert settings.api_base_url == "https://api.example.com/v1"
    assert settings.keycloak_url == "https://auth.example.com"
    assert settings.token_min_validity == 30
    assert settings.default_page_size == 10


def test_settings_reject_blank_url(monkeypatch):
    monkeypatch.setenv("API_BASE_URL", "   ")

    with pytest.raises(ValidationError):
        Settings(_env_file=None)
