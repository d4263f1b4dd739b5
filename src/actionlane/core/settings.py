"""Centralized settings for the action lane.

All fields can be set via ``ACTIONLANE_*`` environment variables (e.g.
``ACTIONLANE_SHELL=bash``) or a ``.env`` file.  ``shell_env`` is a JSON
object when given through the environment.

Example:
    >>> from actionlane.core.settings import get_settings
    >>> get_settings().artifacts_dir
    'contracts/artifacts'
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ActionLaneSettings(BaseSettings):
    """Action lane configuration.

    Fields
    ──────
    log_level            : structlog log level
    log_json             : JSON logs (None = auto-detect from tty)
    shell                : Shell binary used for shell actions (``<shell> -c <command>``)
    shell_env            : Environment overlay for shell actions
    kill_timeout_seconds : Grace period between SIGTERM and SIGKILL
    artifacts_dir        : Default output root for contract artifacts
    solc_binary          : Solidity compiler executable (standard-json mode)
    node_binary          : Node executable used to syntax-check JS contracts
    optimization_runs    : Solidity optimizer runs
    evm_version          : Solidity target EVM version
    """

    model_config = SettingsConfigDict(
        env_prefix="ACTIONLANE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    log_json: bool | None = None

    # ── Shell actions ────────────────────────────────────────────
    shell: str = "sh"
    shell_env: dict[str, str] = Field(default_factory=lambda: {"npm_config_yes": "true"})
    kill_timeout_seconds: float = Field(default=5.0, gt=0)

    # ── Contract actions ─────────────────────────────────────────
    artifacts_dir: str = "contracts/artifacts"
    solc_binary: str = "solc"
    node_binary: str = "node"
    optimization_runs: int = Field(default=200, ge=1)
    evm_version: str = "london"

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return level

    @field_validator("artifacts_dir")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/") or "."


_settings: ActionLaneSettings | None = None


def get_settings(*, _force_reload: bool = False) -> ActionLaneSettings:
    """Load, validate, and cache an :class:`ActionLaneSettings` instance."""
    global _settings
    if _settings is None or _force_reload:
        _settings = ActionLaneSettings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings (tests, reconfiguration)."""
    global _settings
    _settings = None
