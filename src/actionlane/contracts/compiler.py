"""Contract compiler service.

The engine reaches compilers through the :class:`ContractCompiler`
protocol only.  :class:`SmartContractCompiler` is the default service:

    solidity    ─ ``solc --standard-json`` subprocess
    javascript  ─ ``node --check`` syntax validation; source doubles as bytecode
    rust        ─ not supported (use a shell action running ``cargo build``)

A compilation that cannot run (missing binary, garbled output) comes
back as a failed :class:`CompilationResult`, never as an exception, so
the contract handler can always write a failure report.
"""

from __future__ import annotations

import asyncio
import json
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from actionlane.core.logging import get_logger
from actionlane.core.settings import ActionLaneSettings, get_settings
from actionlane.contracts.languages import ContractLanguage

logger = get_logger(__name__)


@dataclass
class CompilationResult:
    """What a compiler returns. Warnings never make a result fail."""

    success: bool
    bytecode: str | None = None
    abi: list[Any] | None = None
    metadata: str | None = None
    warnings: list[str] = field(default_factory=list)
    gas_estimates: dict[str, Any] | None = None
    errors: list[str] = field(default_factory=list)

    @classmethod
    def failure(cls, *errors: str, warnings: list[str] | None = None) -> CompilationResult:
        return cls(success=False, errors=list(errors), warnings=list(warnings or []))


@dataclass
class CompilerOptions:
    optimize: bool = False
    optimization_runs: int = 200
    evm_version: str = "london"


class ContractCompiler(Protocol):
    """Compiler service contract."""

    async def compile(
        self,
        source: str,
        language: ContractLanguage,
        file_name: str,
        options: CompilerOptions | None = None,
    ) -> CompilationResult: ...


class SmartContractCompiler:
    """Default compiler service backed by local toolchains."""

    def __init__(self, settings: ActionLaneSettings | None = None) -> None:
        self._settings = settings or get_settings()

    def default_options(self, *, optimize: bool = False) -> CompilerOptions:
        return CompilerOptions(
            optimize=optimize,
            optimization_runs=self._settings.optimization_runs,
            evm_version=self._settings.evm_version,
        )

    async def compile(
        self,
        source: str,
        language: ContractLanguage,
        file_name: str,
        options: CompilerOptions | None = None,
    ) -> CompilationResult:
        options = options or self.default_options()
        try:
            language = ContractLanguage(language)
        except ValueError:
            return CompilationResult.failure(f"Unsupported language: {language}")

        if language is ContractLanguage.SOLIDITY:
            return await self.compile_solidity(source, file_name, options)
        if language is ContractLanguage.RUST:
            return await self.compile_rust(source, file_name)
        if language is ContractLanguage.JAVASCRIPT:
            return await self.compile_javascript(source, file_name)
        return CompilationResult.failure(f"Unsupported language: {language.value}")

    # ── Solidity ─────────────────────────────────────────────────────

    @staticmethod
    def build_solidity_input(source: str, file_name: str, options: CompilerOptions) -> dict[str, Any]:
        """Standard-JSON input document for ``solc``."""
        return {
            "language": "Solidity",
            "sources": {file_name: {"content": source}},
            "settings": {
                "optimizer": {
                    "enabled": options.optimize,
                    "runs": options.optimization_runs,
                },
                "evmVersion": options.evm_version,
                "outputSelection": {
                    "*": {"*": ["abi", "evm.bytecode", "evm.gasEstimates", "metadata"]},
                },
            },
        }

    @staticmethod
    def parse_solidity_output(output: dict[str, Any], file_name: str) -> CompilationResult:
        """Turn ``solc`` standard-JSON output into a :class:`CompilationResult`."""
        diagnostics = output.get("errors") or []
        errors = [d.get("formattedMessage", d.get("message", "")) for d in diagnostics if d.get("severity") == "error"]
        warnings = [d.get("formattedMessage", d.get("message", "")) for d in diagnostics if d.get("severity") == "warning"]

        if errors:
            return CompilationResult.failure(*errors, warnings=warnings)

        contracts = (output.get("contracts") or {}).get(file_name)
        if not contracts:
            return CompilationResult.failure("No contracts found in source code", warnings=warnings)

        # Single-contract files: the first contract wins
        contract = next(iter(contracts.values()))
        evm = contract.get("evm") or {}
        return CompilationResult(
            success=True,
            bytecode=(evm.get("bytecode") or {}).get("object"),
            abi=contract.get("abi"),
            gas_estimates=evm.get("gasEstimates"),
            metadata=contract.get("metadata"),
            warnings=warnings,
        )

    async def compile_solidity(self, source: str, file_name: str, options: CompilerOptions) -> CompilationResult:
        payload = json.dumps(self.build_solidity_input(source, file_name, options)).encode("utf-8")
        try:
            process = await asyncio.create_subprocess_exec(
                self._settings.solc_binary,
                "--standard-json",
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout, stderr = await process.communicate(payload)
        except OSError as exc:
            logger.error("compiler.solc_unavailable", binary=self._settings.solc_binary, error=str(exc))
            return CompilationResult.failure(f"Compilation failed: {exc}")

        try:
            output = json.loads(stdout.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            detail = stderr.decode("utf-8", errors="replace").strip() or str(exc)
            logger.error("compiler.solc_bad_output", exit_code=process.returncode, error=detail)
            return CompilationResult.failure(f"Compilation failed: {detail}")

        return self.parse_solidity_output(output, file_name)

    # ── Rust ─────────────────────────────────────────────────────────

    async def compile_rust(self, source: str, file_name: str = "lib.rs") -> CompilationResult:
        logger.warning("compiler.rust_unsupported", file_name=file_name)
        return CompilationResult.failure(
            "Rust compilation not yet implemented. Use shell actions with cargo build instead."
        )

    # ── JavaScript ───────────────────────────────────────────────────

    async def compile_javascript(self, source: str, file_name: str = "contract.js") -> CompilationResult:
        fd, tmp_name = tempfile.mkstemp(suffix=".js")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(source)
            try:
                process = await asyncio.create_subprocess_exec(
                    self._settings.node_binary,
                    "--check",
                    tmp_name,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )
                _, stderr = await process.communicate()
            except OSError as exc:
                return CompilationResult.failure(f"JavaScript syntax error: {exc}")
        finally:
            Path(tmp_name).unlink(missing_ok=True)

        if process.returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip() or "Unknown error"
            return CompilationResult.failure(f"JavaScript syntax error: {message}")

        # JavaScript contracts have no bytecode; the source stands in for it
        return CompilationResult(success=True, bytecode=source, abi=[], warnings=[])
