"""Shared pytest fixtures."""

import pytest

from admin_core.application.services import reset_session_context
from admin_core.infrastructure.dependencies import reset_dependencies


@pytest.fixture(autouse=True)
def _fresh_process_state():
    """Every test starts as if the client process had just started."""
    reset_session_context()
    reset_dependencies()
    yield
    reset_session_context()
    reset_dependencies()
