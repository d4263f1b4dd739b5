"""Action type handlers - one execution strategy per action kind.

Uniform contract::

    await handler.execute(spec, sandbox, token) -> outcome dict

Handlers check the cancellation token before and after each sandbox
call and return promptly once it is raised.  Partial sandbox mutations
are left as they are; nothing is rolled back.

ARCHITECTURE
────────────
::

    ActionHandlers.handler_for(spec)   ─ exhaustive match on the spec variant
      ├── FileActionHandler      ─ mkdir -p parent (non-fatal) → write
      ├── ShellActionHandler     ─ spawn <shell> -c <command> → stream → exit code
      └── ContractActionHandler  ─ read → compile → artifacts / error report

Related modules:
    sequencer.py - drives handlers one at a time
    contracts/   - compiler service and artifact writers
"""

from __future__ import annotations

import asyncio
import posixpath
from collections.abc import Callable
from typing import Any, Protocol, assert_never

from actionlane.contracts.artifacts import ArtifactPaths, write_failure_report, write_success_artifacts
from actionlane.contracts.compiler import CompilerOptions, ContractCompiler, SmartContractCompiler
from actionlane.core.errors import CompilationError
from actionlane.core.logging import get_logger
from actionlane.core.settings import ActionLaneSettings, get_settings
from actionlane.execution.actions import ActionSpec, ContractAction, FileAction, ShellAction
from actionlane.execution.cancellation import CancellationToken
from actionlane.sandbox.protocol import ProcessHandle, Sandbox

logger = get_logger(__name__)

OutputSink = Callable[[bytes], Any]


def log_output_sink(chunk: bytes) -> None:
    """Default sink: shell output goes to the debug log."""
    logger.debug("shell.output", data=chunk.decode("utf-8", errors="replace"))


def parent_directory(path: str) -> str | None:
    """Directory that must exist before writing *path* (None for the root)."""
    folder = posixpath.dirname(path.replace("\\", "/")).rstrip("/")
    if not folder or folder == ".":
        return None
    return folder


class ActionHandler(Protocol):
    async def execute(self, spec: Any, sandbox: Sandbox, token: CancellationToken) -> dict[str, Any]: ...


# ── File ─────────────────────────────────────────────────────────────────


class FileActionHandler:
    """Write a file, creating its parent directory first."""

    async def execute(self, spec: FileAction, sandbox: Sandbox, token: CancellationToken) -> dict[str, Any]:
        if token.cancelled:
            return {}

        folder = parent_directory(spec.path)
        if folder is not None:
            try:
                await sandbox.mkdir(folder, recursive=True)
                logger.debug("file.folder_created", folder=folder)
            except Exception as exc:
                # Directory races are expected; the write below decides the outcome
                logger.error("file.folder_failed", folder=folder, error=str(exc))

        if token.cancelled:
            return {}

        data = spec.content_bytes
        await sandbox.write_file(spec.path, data)
        logger.debug("file.written", path=spec.path, size=len(data))
        return {"path": spec.path, "bytes": len(data)}


# ── Shell ────────────────────────────────────────────────────────────────


class ShellActionHandler:
    """Run a command through the sandbox shell.

    Only a failure to spawn is an error.  Any exit code, including
    non-zero, completes the action; the code is kept in the outcome.
    """

    def __init__(
        self,
        *,
        shell: str = "sh",
        env: dict[str, str] | None = None,
        sink: OutputSink | None = None,
        output_drain_seconds: float = 1.0,
    ) -> None:
        self._shell = shell
        self._env = dict(env or {})
        self._sink = sink or log_output_sink
        self._drain_timeout = output_drain_seconds

    @classmethod
    def from_settings(cls, settings: ActionLaneSettings, sink: OutputSink | None = None) -> ShellActionHandler:
        return cls(shell=settings.shell, env=settings.shell_env, sink=sink)

    async def execute(self, spec: ShellAction, sandbox: Sandbox, token: CancellationToken) -> dict[str, Any]:
        if token.cancelled:
            return {}

        process = await sandbox.spawn(self._shell, ["-c", spec.command], env=self._env)
        remove_kill = token.add_callback(process.kill)
        pump = asyncio.create_task(self._pump(process))

        try:
            exit_code = await process.wait()
        finally:
            remove_kill()
            await self._settle(pump)

        logger.debug("shell.exited", exit_code=exit_code, cancelled=token.cancelled)
        return {"exit_code": exit_code}

    async def _pump(self, process: ProcessHandle) -> None:
        async for chunk in process.output:
            try:
                self._sink(chunk)
            except Exception as exc:
                logger.warning("shell.sink_failed", error=str(exc))

    async def _settle(self, pump: asyncio.Task[None]) -> None:
        # Background children may hold the pipe open after the shell exits
        try:
            await asyncio.wait_for(asyncio.shield(pump), timeout=self._drain_timeout)
        except TimeoutError:
            pump.cancel()
            logger.debug("shell.output_detached")
        except Exception as exc:
            logger.warning("shell.output_failed", error=str(exc))


# ── Contract ─────────────────────────────────────────────────────────────


class ContractActionHandler:
    """Compile a contract and write artifacts or a failure report."""

    def __init__(
        self,
        compiler: ContractCompiler | None = None,
        settings: ActionLaneSettings | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._compiler = compiler or SmartContractCompiler(self._settings)

    def output_dir_for(self, spec: ContractAction) -> str:
        return spec.output_dir or self._settings.artifacts_dir

    async def execute(self, spec: ContractAction, sandbox: Sandbox, token: CancellationToken) -> dict[str, Any]:
        if token.cancelled:
            return {}

        if spec.content_bytes:
            await self._materialize_source(spec, sandbox)

        source = (await sandbox.read_file(spec.path)).decode("utf-8")
        if token.cancelled:
            return {}

        options = CompilerOptions(
            optimize=spec.optimize,
            optimization_runs=self._settings.optimization_runs,
            evm_version=self._settings.evm_version,
        )
        result = await self._compiler.compile(source, spec.language, spec.path, options)
        if token.cancelled:
            return {}

        output_dir = self.output_dir_for(spec)
        paths = ArtifactPaths.for_source(spec.path, output_dir)
        try:
            await sandbox.mkdir(output_dir, recursive=True)
        except Exception as exc:
            logger.debug("contract.output_dir_not_created", output_dir=output_dir, error=str(exc))

        for warning in result.warnings:
            logger.warning("contract.compiler_warning", path=spec.path, warning=warning)

        if result.success:
            written = await write_success_artifacts(sandbox, paths, spec, result)
            logger.info("contract.compiled", path=spec.path, output_dir=output_dir, artifacts=len(written))
            return {"artifacts": written}

        report = await write_failure_report(sandbox, paths, spec, result)
        errors = result.errors or ["Unknown error"]
        logger.error("contract.compilation_failed", path=spec.path, errors=errors, report=report)
        raise CompilationError(
            f"Compilation failed: {'; '.join(errors)}",
            errors=errors,
            warnings=result.warnings,
            context={"path": spec.path, "language": spec.language.value, "report": report},
        )

    @staticmethod
    async def _materialize_source(spec: ContractAction, sandbox: Sandbox) -> None:
        folder = parent_directory(spec.path)
        if folder is not None:
            try:
                await sandbox.mkdir(folder, recursive=True)
            except Exception as exc:
                logger.error("contract.folder_failed", folder=folder, error=str(exc))
        await sandbox.write_file(spec.path, spec.content_bytes)


# ── Dispatch ─────────────────────────────────────────────────────────────


class ActionHandlers:
    """The closed set of handlers, selected by spec variant."""

    def __init__(
        self,
        *,
        file: FileActionHandler | None = None,
        shell: ShellActionHandler | None = None,
        contract: ContractActionHandler | None = None,
        settings: ActionLaneSettings | None = None,
        sink: OutputSink | None = None,
        compiler: ContractCompiler | None = None,
    ) -> None:
        settings = settings or get_settings()
        self.file = file or FileActionHandler()
        self.shell = shell or ShellActionHandler.from_settings(settings, sink)
        self.contract = contract or ContractActionHandler(compiler, settings)

    def handler_for(self, spec: ActionSpec) -> ActionHandler:
        match spec:
            case FileAction():
                return self.file
            case ShellAction():
                return self.shell
            case ContractAction():
                return self.contract
            case _:
                assert_never(spec)
