"""
Structured error types for the action lane.

Instead of generic exceptions that lose context, every error raised by
the engine is an :class:`ActionLaneError` carrying:

- **Category:** what kind of failure (sandbox, compilation, protocol, ...)
- **Context:** structured metadata (action id, path, language, ...)
- **Cause:** the chained underlying exception

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                      ActionLaneError                          │
        │              (category, context, cause)                       │
        ├──────────────────────────────────────────────────────────────┤
        │                                                               │
        │  SandboxError        CompilationError     ActionCancelledError│
        │  (SANDBOX)           (COMPILATION)        (CANCELLATION)      │
        │                                                               │
        │  ActionNotFoundError InvalidTransitionError                   │
        │  (PROTOCOL)          (INTERNAL, ValueError)                   │
        │                                                               │
        │  PlanError           ConfigError                              │
        │  (VALIDATION)        (CONFIG)                                 │
        └──────────────────────────────────────────────────────────────┘

Propagation:
    Errors raised inside an action handler are caught at the lane
    boundary and recorded on that action's record.  Only broken
    invariants (``ActionNotFoundError`` from the lane itself) escape.

Tags:
    error-handling, exception-hierarchy, actionlane
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and logging."""

    SANDBOX = "SANDBOX"              # File system / process spawner failures
    COMPILATION = "COMPILATION"      # Compiler reported failure
    CANCELLATION = "CANCELLATION"    # Cooperative cancellation observed
    PROTOCOL = "PROTOCOL"            # Unknown / duplicate identifiers
    VALIDATION = "VALIDATION"        # Plan or spec validation
    CONFIG = "CONFIG"                # Missing config, invalid settings
    INTERNAL = "INTERNAL"            # Bugs, unexpected state
    UNKNOWN = "UNKNOWN"


class ActionLaneError(Exception):
    """Base exception for all action lane errors.

    Subclasses set ``default_category``.

    Example:
        >>> error = SandboxError("write failed").with_context(path="a.txt")
        >>> error.to_dict()["context"]
        {'path': 'a.txt'}
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context: dict[str, Any] = dict(context or {})
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> ActionLaneError:
        """Add context to this error (fluent API)."""
        self.context.update(kwargs)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        if self.context:
            result["context"] = dict(self.context)
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


class SandboxError(ActionLaneError):
    """A sandbox call (mkdir, write, read, spawn) was rejected."""

    default_category = ErrorCategory.SANDBOX


class CompilationError(ActionLaneError):
    """The compiler service reported a failed compilation."""

    default_category = ErrorCategory.COMPILATION

    def __init__(
        self,
        message: str,
        *,
        errors: list[str] | None = None,
        warnings: list[str] | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.errors = list(errors or [])
        self.warnings = list(warnings or [])

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["errors"] = list(self.errors)
        return result


class ActionCancelledError(ActionLaneError):
    """Raised by ``CancellationToken.raise_if_cancelled()``.

    Not a failure: the lane records the action as aborted.
    """

    default_category = ErrorCategory.CANCELLATION


class ActionNotFoundError(ActionLaneError):
    """Dispatch requested for an identifier that was never registered."""

    default_category = ErrorCategory.PROTOCOL

    def __init__(self, action_id: str):
        self.action_id = action_id
        super().__init__(f"Action not found: {action_id}", context={"action_id": action_id})


class InvalidTransitionError(ActionLaneError, ValueError):
    """Raised when an illegal status transition is attempted.

    If a legitimate transition turns out to be blocked, add it to
    ``ACTION_VALID_TRANSITIONS`` explicitly; never remove the guard.
    """

    def __init__(self, current: str, target: str, enum_name: str = "ActionStatus") -> None:
        self.current = current
        self.target = target
        super().__init__(
            f"Invalid {enum_name} transition: {current} → {target}",
            context={"current": current, "target": target},
        )


class PlanError(ActionLaneError):
    """A YAML plan could not be parsed or validated."""

    default_category = ErrorCategory.VALIDATION


class ConfigError(ActionLaneError):
    """Configuration error (missing or invalid settings)."""

    default_category = ErrorCategory.CONFIG


def categorize_error(error: BaseException) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, ActionLaneError):
        return error.category
    if isinstance(error, OSError):
        return ErrorCategory.SANDBOX
    if isinstance(error, ValueError):
        return ErrorCategory.VALIDATION
    return ErrorCategory.UNKNOWN


__all__ = [
    "ErrorCategory",
    "ActionLaneError",
    "SandboxError",
    "CompilationError",
    "ActionCancelledError",
    "ActionNotFoundError",
    "InvalidTransitionError",
    "PlanError",
    "ConfigError",
    "categorize_error",
]
