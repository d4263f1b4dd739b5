"""
Shared pytest fixtures and configuration for actionlane tests.

This module provides:
- Settings / logging-context cleanup for test isolation
- In-memory sandbox and settings fixtures
- Location-based markers (``unit`` vs ``integration``)
"""

import os
from collections.abc import Generator
from pathlib import Path

import pytest
import structlog

from actionlane.core.settings import ActionLaneSettings, reset_settings
from actionlane.sandbox.memory import InMemorySandbox

# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "unit: fast, in-memory tests")
    config.addinivalue_line("markers", "integration: tests touching the real file system or processes")


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.path).relative_to(Path(__file__).parent)

        if "test_local" in str(test_path) or "end_to_end" in str(test_path):
            item.add_marker(pytest.mark.integration)

        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Isolation Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clean_settings_fixture(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Drop cached settings and ACTIONLANE_* overrides around each test."""
    for key in list(os.environ):
        if key.startswith("ACTIONLANE_"):
            monkeypatch.delenv(key)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture(autouse=True)
def clean_log_context_fixture() -> Generator[None, None, None]:
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()


# =============================================================================
# Sandbox / Settings Fixtures
# =============================================================================


@pytest.fixture
def settings() -> ActionLaneSettings:
    """Default settings, ignoring any ``.env`` in the working directory."""
    return ActionLaneSettings(_env_file=None)


@pytest.fixture
def sandbox() -> InMemorySandbox:
    return InMemorySandbox()
