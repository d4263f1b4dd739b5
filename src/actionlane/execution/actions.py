"""Action specs - what the upstream plan asks the lane to do.

An action is one of three closed variants.  Each spec is immutable; the
upstream parser may *replace* the spec registered for an identifier
while the action is still pending (streaming refinement), never mutate
it in place.

ARCHITECTURE
────────────
::

    ActionSpec = FileAction | ShellAction | ContractAction

    FileAction      ─ path, content
    ShellAction     ─ command
    ContractAction  ─ path, language, target?, optimize, output_dir?, content

Related modules:
    models.py    - ActionRecord wraps a spec with lifecycle state
    handlers.py  - one execution strategy per variant
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeAlias

from actionlane.contracts.languages import ChainTarget, ContractLanguage


class ActionKind(str, Enum):
    """Discriminator tag of the action union."""

    FILE = "file"
    SHELL = "shell"
    CONTRACT = "contract"


def _as_bytes(content: str | bytes) -> bytes:
    return content.encode("utf-8") if isinstance(content, str) else content


@dataclass(frozen=True)
class FileAction:
    """Write ``content`` to ``path`` inside the sandbox."""

    path: str
    content: str | bytes = b""

    kind = ActionKind.FILE

    @property
    def content_bytes(self) -> bytes:
        return _as_bytes(self.content)

    @property
    def location(self) -> str:
        return self.path


@dataclass(frozen=True)
class ShellAction:
    """Run ``command`` through the sandbox shell."""

    command: str

    kind = ActionKind.SHELL

    @property
    def location(self) -> str:
        return self.command


@dataclass(frozen=True)
class ContractAction:
    """Compile the contract source at ``path`` and write artifacts.

    When ``content`` is non-empty it is materialized at ``path`` before
    compiling; otherwise the source already in the sandbox is used.
    """

    path: str
    language: ContractLanguage = ContractLanguage.SOLIDITY
    target: ChainTarget | None = None
    optimize: bool = False
    output_dir: str | None = None
    content: str | bytes = b""

    kind = ActionKind.CONTRACT

    def __post_init__(self) -> None:
        # Accept plain strings from parsers / YAML
        object.__setattr__(self, "language", ContractLanguage(self.language))
        if self.target is not None:
            object.__setattr__(self, "target", ChainTarget(self.target))

    @property
    def content_bytes(self) -> bytes:
        return _as_bytes(self.content)

    @property
    def location(self) -> str:
        return self.path


ActionSpec: TypeAlias = FileAction | ShellAction | ContractAction


def describe_action(spec: ActionSpec) -> dict[str, Any]:
    """Short, log-friendly description of a spec (no content)."""
    return {"kind": spec.kind.value, "location": spec.location}


__all__ = [
    "ActionKind",
    "ContractLanguage",
    "ChainTarget",
    "FileAction",
    "ShellAction",
    "ContractAction",
    "ActionSpec",
    "describe_action",
]
