"""Local sandbox - a directory on disk plus asyncio subprocesses.

Every path is resolved relative to ``root`` and must stay inside it.
File operations run in a worker thread so the lane's event loop keeps
serving registrations and cancellations while a large write is in
flight.  Processes start with ``cwd=root``.

Cancellation follows SIGTERM → SIGKILL: ``kill()`` sends SIGTERM to the
process group at once and escalates to SIGKILL when the shell is still
alive after ``kill_timeout_seconds``.  Once the shell is gone, whatever
remains of its group is killed outright.

Example:
    >>> sandbox = LocalSandbox("/tmp/project")
    >>> await sandbox.write_file("src/a.txt", b"hi")
    >>> proc = await sandbox.spawn("sh", ["-c", "cat src/a.txt"])
    >>> await proc.wait()
    0
"""

from __future__ import annotations

import asyncio
import os
import signal
from collections.abc import AsyncIterator, Mapping
from pathlib import Path

from actionlane.core.errors import SandboxError
from actionlane.core.logging import get_logger

logger = get_logger(__name__)

_CHUNK_SIZE = 4096


class LocalProcess:
    """``ProcessHandle`` over an ``asyncio.subprocess.Process``.

    The process leads its own session, so ``kill()`` reaches the whole
    process group: ``sh -c "sleep 30; echo x"`` or ``cmd & wait`` leave no
    child behind holding the output pipe.
    """

    def __init__(self, process: asyncio.subprocess.Process, kill_timeout: float) -> None:
        self._process = process
        self._pgid = process.pid
        self._kill_timeout = kill_timeout
        self._escalation: asyncio.Task[None] | None = None
        self.kill_requested = False

    @property
    def pid(self) -> int | None:
        return self._process.pid

    @property
    def returncode(self) -> int | None:
        return self._process.returncode

    @property
    def output(self) -> AsyncIterator[bytes]:
        return self._read_output()

    async def _read_output(self) -> AsyncIterator[bytes]:
        stream = self._process.stdout
        if stream is None:
            return
        while True:
            chunk = await stream.read(_CHUNK_SIZE)
            if not chunk:
                break
            yield chunk

    async def wait(self) -> int:
        code = await self._process.wait()
        if self._escalation is not None:
            # after a kill, exit means the whole group is gone
            await self._escalation
        return code

    def kill(self) -> None:
        """SIGTERM to the process group now, SIGKILL after the grace period."""
        if self._escalation is not None:
            return
        if not self._signal_group(signal.SIGTERM):
            return  # nothing left in the group
        self.kill_requested = True
        logger.debug("sandbox.process_terminate_sent", pid=self._process.pid, pgid=self._pgid)
        self._escalation = asyncio.get_running_loop().create_task(self._escalate())

    def _signal_group(self, sig: signal.Signals) -> bool:
        try:
            os.killpg(self._pgid, sig)
        except ProcessLookupError:
            return False
        return True

    async def _escalate(self) -> None:
        try:
            await asyncio.wait_for(self._process.wait(), timeout=self._kill_timeout)
        except TimeoutError:
            if self._signal_group(signal.SIGKILL):
                logger.warning("sandbox.process_killed", pid=self._process.pid, pgid=self._pgid)
            return
        # leader exited; children that ignored SIGTERM still hold the group
        if self._signal_group(signal.SIGKILL):
            logger.debug("sandbox.process_group_swept", pgid=self._pgid)


class LocalSandbox:
    """Sandbox rooted at a local directory."""

    def __init__(
        self,
        root: str | Path,
        *,
        inherit_env: bool = True,
        kill_timeout_seconds: float = 5.0,
    ) -> None:
        """
        Args:
            root: Directory every path is resolved against. Created if missing.
            inherit_env: Child processes inherit ``os.environ`` (overlaid
                with the spawn ``env``). If False only the spawn env is passed.
            kill_timeout_seconds: Seconds between SIGTERM and SIGKILL.
        """
        self.root = Path(root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)
        self._inherit_env = inherit_env
        self._kill_timeout = kill_timeout_seconds

    # ── Paths ────────────────────────────────────────────────────────

    def resolve(self, path: str) -> Path:
        """Resolve *path* under the root; refuse anything that escapes it."""
        candidate = (self.root / path).resolve()
        if candidate != self.root and not candidate.is_relative_to(self.root):
            raise SandboxError(
                f"Path escapes sandbox root: {path}",
                context={"path": path, "root": str(self.root)},
            )
        return candidate

    # ── File system ──────────────────────────────────────────────────

    async def write_file(self, path: str, data: bytes | str) -> None:
        target = self.resolve(path)
        payload = data.encode("utf-8") if isinstance(data, str) else data
        try:
            await asyncio.to_thread(target.write_bytes, payload)
        except OSError as exc:
            raise SandboxError(f"Failed to write {path}: {exc}", context={"path": path}, cause=exc) from exc

    async def mkdir(self, path: str, recursive: bool = True) -> None:
        target = self.resolve(path)
        try:
            await asyncio.to_thread(target.mkdir, parents=recursive, exist_ok=recursive)
        except OSError as exc:
            raise SandboxError(f"Failed to create {path}: {exc}", context={"path": path}, cause=exc) from exc

    async def read_file(self, path: str) -> bytes:
        target = self.resolve(path)
        try:
            return await asyncio.to_thread(target.read_bytes)
        except OSError as exc:
            raise SandboxError(f"Failed to read {path}: {exc}", context={"path": path}, cause=exc) from exc

    # ── Processes ────────────────────────────────────────────────────

    async def spawn(
        self,
        cmd: str,
        args: list[str],
        env: Mapping[str, str] | None = None,
    ) -> LocalProcess:
        full_env = dict(os.environ) if self._inherit_env else {}
        full_env.update(env or {})

        try:
            process = await asyncio.create_subprocess_exec(
                cmd,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                stdin=asyncio.subprocess.DEVNULL,
                env=full_env,
                cwd=str(self.root),
                start_new_session=True,
            )
        except OSError as exc:
            raise SandboxError(
                f"Failed to start process {cmd}: {exc}",
                context={"cmd": cmd},
                cause=exc,
            ) from exc

        logger.debug("sandbox.process_spawned", cmd=cmd, pid=process.pid)
        return LocalProcess(process, self._kill_timeout)
