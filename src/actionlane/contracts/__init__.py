"""Contract compilation: compiler service and artifact writers."""

from actionlane.contracts.artifacts import (
    ArtifactPaths,
    failure_report,
    success_report,
    write_failure_report,
    write_success_artifacts,
)
from actionlane.contracts.compiler import (
    CompilationResult,
    CompilerOptions,
    ContractCompiler,
    SmartContractCompiler,
)
from actionlane.contracts.languages import ChainTarget, ContractLanguage

__all__ = [
    "ChainTarget",
    "ContractLanguage",
    "ArtifactPaths",
    "failure_report",
    "success_report",
    "write_failure_report",
    "write_success_artifacts",
    "CompilationResult",
    "CompilerOptions",
    "ContractCompiler",
    "SmartContractCompiler",
]
