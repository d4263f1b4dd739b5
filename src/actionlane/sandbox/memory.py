"""In-memory sandbox for tests and dry runs.

Files live in a dict, directories in a set, and processes are
:class:`ScriptedProcess` objects produced by a pluggable factory.  Every
spawn is recorded so tests can assert on what was run and whether a
termination request reached the process.

Example::

    sandbox = InMemorySandbox(
        process_factory=lambda cmd, args, env: ScriptedProcess(exit_code=1),
    )
    await sandbox.write_file("a.txt", b"hi")
    assert sandbox.files["a.txt"] == b"hi"
"""

from __future__ import annotations

import asyncio
import posixpath
from collections.abc import AsyncIterator, Callable, Iterable, Mapping
from dataclasses import dataclass, field

from actionlane.core.errors import SandboxError


def _normalize(path: str) -> str:
    normalized = posixpath.normpath(path.replace("\\", "/")).lstrip("/")
    if normalized.startswith(".."):
        raise SandboxError(f"Path escapes sandbox root: {path}", context={"path": path})
    return "" if normalized == "." else normalized


class ScriptedProcess:
    """Fake process: emits scripted output, then exits.

    With ``block=True`` the process stays alive after its output until
    :meth:`kill` (or :meth:`finish`) is called - the shape of a
    long-running dev server.
    """

    def __init__(
        self,
        output: Iterable[bytes] = (),
        exit_code: int = 0,
        *,
        block: bool = False,
        killed_exit_code: int = -15,
        pid: int | None = None,
    ) -> None:
        self._chunks = list(output)
        self._exit_code = exit_code
        self._killed_exit_code = killed_exit_code
        self._pid = pid
        self._released = asyncio.Event()
        self.kill_count = 0
        self.returncode: int | None = None
        if not block:
            self._released.set()

    @property
    def pid(self) -> int | None:
        return self._pid

    @property
    def killed(self) -> bool:
        return self.kill_count > 0

    @property
    def output(self) -> AsyncIterator[bytes]:
        return self._emit()

    async def _emit(self) -> AsyncIterator[bytes]:
        for chunk in self._chunks:
            await asyncio.sleep(0)
            yield chunk
        await self._released.wait()

    async def wait(self) -> int:
        await self._released.wait()
        if self.returncode is None:
            self.returncode = self._killed_exit_code if self.killed else self._exit_code
        return self.returncode

    def kill(self) -> None:
        self.kill_count += 1
        self._released.set()

    def finish(self, exit_code: int | None = None) -> None:
        """Let a blocking process exit on its own."""
        if exit_code is not None:
            self._exit_code = exit_code
        self._released.set()


ProcessFactory = Callable[[str, list[str], Mapping[str, str]], ScriptedProcess]


@dataclass
class SpawnRecord:
    """One call to :meth:`InMemorySandbox.spawn`."""

    cmd: str
    args: list[str]
    env: dict[str, str]
    process: ScriptedProcess


@dataclass
class InMemorySandbox:
    """Dict-backed sandbox.

    ``fail_writes`` / ``fail_mkdirs`` / ``fail_spawn`` inject setup errors
    for the given paths (or every spawn).
    """

    files: dict[str, bytes] = field(default_factory=dict)
    directories: set[str] = field(default_factory=set)
    process_factory: ProcessFactory | None = None
    fail_writes: set[str] = field(default_factory=set)
    fail_mkdirs: set[str] = field(default_factory=set)
    fail_spawn: bool = False
    spawns: list[SpawnRecord] = field(default_factory=list)

    async def write_file(self, path: str, data: bytes | str) -> None:
        await asyncio.sleep(0)
        key = _normalize(path)
        if key in self.fail_writes:
            raise SandboxError(f"Failed to write {path}", context={"path": path})
        parent = posixpath.dirname(key)
        if parent and parent not in self.directories:
            raise SandboxError(f"Failed to write {path}: no such directory {parent}", context={"path": path})
        self.files[key] = data.encode("utf-8") if isinstance(data, str) else bytes(data)

    async def mkdir(self, path: str, recursive: bool = True) -> None:
        await asyncio.sleep(0)
        key = _normalize(path)
        if key in self.fail_mkdirs:
            raise SandboxError(f"Failed to create {path}", context={"path": path})
        if key in self.directories:
            if recursive:
                return
            raise SandboxError(f"Directory exists: {path}", context={"path": path})
        parent = posixpath.dirname(key)
        if parent and parent not in self.directories and not recursive:
            raise SandboxError(f"No such directory: {parent}", context={"path": path})

        while key:
            self.directories.add(key)
            key = posixpath.dirname(key)

    async def read_file(self, path: str) -> bytes:
        await asyncio.sleep(0)
        key = _normalize(path)
        if key not in self.files:
            raise SandboxError(f"No such file: {path}", context={"path": path})
        return self.files[key]

    async def spawn(
        self,
        cmd: str,
        args: list[str],
        env: Mapping[str, str] | None = None,
    ) -> ScriptedProcess:
        await asyncio.sleep(0)
        if self.fail_spawn:
            raise SandboxError(f"Failed to start process {cmd}", context={"cmd": cmd})
        env_dict = dict(env or {})
        if self.process_factory is not None:
            process = self.process_factory(cmd, list(args), env_dict)
        else:
            process = ScriptedProcess()
        self.spawns.append(SpawnRecord(cmd=cmd, args=list(args), env=env_dict, process=process))
        return process

    def read_text(self, path: str) -> str:
        """Synchronous helper for assertions."""
        return self.files[_normalize(path)].decode("utf-8")

    def exists(self, path: str) -> bool:
        key = _normalize(path)
        return key in self.files or key in self.directories
