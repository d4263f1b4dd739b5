"""Ambient stack shared by every area: logging, errors, settings."""

from actionlane.core.errors import (
    ActionCancelledError,
    ActionLaneError,
    ActionNotFoundError,
    CompilationError,
    ConfigError,
    ErrorCategory,
    InvalidTransitionError,
    PlanError,
    SandboxError,
)
from actionlane.core.logging import LogContext, configure_logging, get_logger
from actionlane.core.settings import ActionLaneSettings, get_settings, reset_settings

__all__ = [
    "ActionCancelledError",
    "ActionLaneError",
    "ActionNotFoundError",
    "CompilationError",
    "ConfigError",
    "ErrorCategory",
    "InvalidTransitionError",
    "PlanError",
    "SandboxError",
    "LogContext",
    "configure_logging",
    "get_logger",
    "ActionLaneSettings",
    "get_settings",
    "reset_settings",
]
