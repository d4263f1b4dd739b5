"""
Test support utilities for actionlane tests.

Helpers that don't fit as pytest fixtures but are shared across test
modules: a scripted compiler service, an event-loop polling helper and a
process liveness check.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Callable
from dataclasses import dataclass, field

from actionlane.contracts.compiler import CompilationResult, CompilerOptions
from actionlane.contracts.languages import ContractLanguage


@dataclass
class CompileCall:
    source: str
    language: ContractLanguage
    file_name: str
    options: CompilerOptions | None


@dataclass
class StubCompiler:
    """``ContractCompiler`` returning a fixed result and recording calls.

    ``gate`` (when set) must be released before ``compile`` returns, which
    lets a test hold an action inside the compiler.
    """

    result: CompilationResult = field(
        default_factory=lambda: CompilationResult(success=True, bytecode="6080", abi=[], metadata="{}")
    )
    gate: asyncio.Event | None = None
    calls: list[CompileCall] = field(default_factory=list)

    async def compile(
        self,
        source: str,
        language: ContractLanguage,
        file_name: str,
        options: CompilerOptions | None = None,
    ) -> CompilationResult:
        self.calls.append(CompileCall(source, language, file_name, options))
        if self.gate is not None:
            await self.gate.wait()
        return self.result


async def wait_until(predicate: Callable[[], bool], *, timeout: float = 2.0) -> None:
    """Yield to the loop until *predicate* holds (fails the test on timeout)."""
    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.001)

    await asyncio.wait_for(_poll(), timeout=timeout)


def process_alive(pid: int) -> bool:
    """True while *pid* runs; zombies awaiting a reaper count as gone."""
    try:
        with open(f"/proc/{pid}/stat") as handle:
            state = handle.read().rsplit(")", 1)[1].split()[0]
    except FileNotFoundError:
        return False
    except OSError:
        try:
            os.kill(pid, 0)
        except ProcessLookupError:
            return False
        return True
    return state not in ("Z", "X")
