"""Sandbox protocol - the narrow interface the engine executes against.

The sandbox is an external collaborator: a file system plus a process
spawner.  The engine depends on these protocols only; every call may
suspend.

Architecture:
    ::

        Sandbox
          ├── write_file(path, data)         ─ create/overwrite
          ├── mkdir(path, recursive=True)    ─ tolerate "exists" when recursive
          ├── read_file(path) -> bytes
          └── spawn(cmd, args, env) -> ProcessHandle

        ProcessHandle
          ├── output        ─ async iterator of byte chunks (stdout+stderr)
          ├── wait() -> int ─ exit code
          └── kill()        ─ termination *request*; returns immediately

    No locking is exposed: the lane's one-at-a-time discipline is what
    keeps concurrent mutation out.

Implementations:
    local.py   - LocalSandbox (directory root + asyncio subprocesses)
    memory.py  - InMemorySandbox (dict file system + scripted processes)
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Mapping
from typing import Protocol, runtime_checkable


@runtime_checkable
class ProcessHandle(Protocol):
    """A live process spawned inside the sandbox."""

    @property
    def pid(self) -> int | None: ...

    @property
    def output(self) -> AsyncIterator[bytes]:
        """Merged stdout/stderr chunks until the process closes its pipes."""
        ...

    async def wait(self) -> int:
        """Wait for exit and return the exit code."""
        ...

    def kill(self) -> None:
        """Request termination. Does not wait."""
        ...


@runtime_checkable
class Sandbox(Protocol):
    """File system + process spawner the lane executes against."""

    async def write_file(self, path: str, data: bytes | str) -> None: ...

    async def mkdir(self, path: str, recursive: bool = True) -> None: ...

    async def read_file(self, path: str) -> bytes: ...

    async def spawn(
        self,
        cmd: str,
        args: list[str],
        env: Mapping[str, str] | None = None,
    ) -> ProcessHandle: ...
