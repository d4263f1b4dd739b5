"""Compilation artifacts and reports.

Artifact names are derived from the source path only, so compiling the
same contract again overwrites the previous outputs::

    <output_dir>/<basename>.bin            bytecode
    <output_dir>/<basename>.abi.json       ABI (2-space JSON)
    <output_dir>/<basename>.metadata.json  compiler metadata
    <output_dir>/<basename>.report.json    success report
    <output_dir>/<basename>.error.json     failure report
"""

from __future__ import annotations

import json
import posixpath
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from actionlane.contracts.compiler import CompilationResult
from actionlane.sandbox.protocol import Sandbox

if TYPE_CHECKING:
    from actionlane.execution.actions import ContractAction


@dataclass(frozen=True)
class ArtifactPaths:
    output_dir: str
    base: str

    @classmethod
    def for_source(cls, source_path: str, output_dir: str) -> ArtifactPaths:
        stem, _ = posixpath.splitext(posixpath.basename(source_path.replace("\\", "/")))
        return cls(output_dir=output_dir.rstrip("/") or ".", base=stem)

    def _path(self, suffix: str) -> str:
        return posixpath.join(self.output_dir, f"{self.base}{suffix}")

    @property
    def bytecode(self) -> str:
        return self._path(".bin")

    @property
    def abi(self) -> str:
        return self._path(".abi.json")

    @property
    def metadata(self) -> str:
        return self._path(".metadata.json")

    @property
    def report(self) -> str:
        return self._path(".report.json")

    @property
    def error_report(self) -> str:
        return self._path(".error.json")


def _timestamp() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


def success_report(spec: ContractAction, result: CompilationResult) -> dict[str, Any]:
    report: dict[str, Any] = {
        "success": True,
        "fileName": spec.path,
        "language": spec.language.value,
    }
    # absent rather than null when unknown
    if spec.target is not None:
        report["target"] = spec.target.value
    report["warnings"] = list(result.warnings)
    if result.gas_estimates is not None:
        report["gasEstimates"] = result.gas_estimates
    report["compiledAt"] = _timestamp()
    return report


def failure_report(spec: ContractAction, result: CompilationResult) -> dict[str, Any]:
    return {
        "success": False,
        "fileName": spec.path,
        "language": spec.language.value,
        "errors": list(result.errors),
        "warnings": list(result.warnings),
        "compiledAt": _timestamp(),
    }


def _dump(document: Any) -> str:
    return json.dumps(document, indent=2)


async def write_success_artifacts(
    sandbox: Sandbox,
    paths: ArtifactPaths,
    spec: ContractAction,
    result: CompilationResult,
) -> list[str]:
    """Write artifacts plus the success report. Returns the written paths."""
    written: list[str] = []
    if result.bytecode:
        await sandbox.write_file(paths.bytecode, result.bytecode)
        written.append(paths.bytecode)
    if result.abi is not None:
        await sandbox.write_file(paths.abi, _dump(result.abi))
        written.append(paths.abi)
    if result.metadata:
        await sandbox.write_file(paths.metadata, result.metadata)
        written.append(paths.metadata)

    await sandbox.write_file(paths.report, _dump(success_report(spec, result)))
    written.append(paths.report)
    return written


async def write_failure_report(
    sandbox: Sandbox,
    paths: ArtifactPaths,
    spec: ContractAction,
    result: CompilationResult,
) -> str:
    await sandbox.write_file(paths.error_report, _dump(failure_report(spec, result)))
    return paths.error_report
