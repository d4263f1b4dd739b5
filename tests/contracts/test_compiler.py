"""Tests for the contract compiler service."""

from __future__ import annotations

import shutil

import pytest

from actionlane.contracts.compiler import CompilationResult, CompilerOptions, SmartContractCompiler
from actionlane.contracts.languages import ContractLanguage
from actionlane.core.settings import ActionLaneSettings


def _compiler(**overrides) -> SmartContractCompiler:
    return SmartContractCompiler(ActionLaneSettings(_env_file=None, **overrides))


def _solc_output(**overrides) -> dict:
    output = {
        "contracts": {
            "Token.sol": {
                "Token": {
                    "abi": [{"type": "function", "name": "totalSupply"}],
                    "metadata": '{"compiler":{"version":"0.8.20"}}',
                    "evm": {
                        "bytecode": {"object": "6080604052"},
                        "gasEstimates": {"creation": {"totalCost": "1000"}},
                    },
                }
            }
        }
    }
    output.update(overrides)
    return output


class TestSolidityInput:
    def test_standard_json_document(self):
        document = SmartContractCompiler.build_solidity_input(
            "contract T {}", "Token.sol", CompilerOptions(optimize=True, optimization_runs=500)
        )
        assert document["language"] == "Solidity"
        assert document["sources"] == {"Token.sol": {"content": "contract T {}"}}
        assert document["settings"]["optimizer"] == {"enabled": True, "runs": 500}
        assert document["settings"]["evmVersion"] == "london"
        assert "evm.bytecode" in document["settings"]["outputSelection"]["*"]["*"]

    def test_default_options_from_settings(self):
        options = _compiler(optimization_runs=999, evm_version="paris").default_options(optimize=True)
        assert options == CompilerOptions(optimize=True, optimization_runs=999, evm_version="paris")


class TestSolidityOutput:
    def test_success(self):
        result = SmartContractCompiler.parse_solidity_output(_solc_output(), "Token.sol")
        assert result.success
        assert result.bytecode == "6080604052"
        assert result.abi == [{"type": "function", "name": "totalSupply"}]
        assert result.gas_estimates == {"creation": {"totalCost": "1000"}}
        assert result.metadata.startswith("{")

    def test_warnings_do_not_fail(self):
        output = _solc_output(errors=[{"severity": "warning", "formattedMessage": "Unused variable"}])
        result = SmartContractCompiler.parse_solidity_output(output, "Token.sol")
        assert result.success
        assert result.warnings == ["Unused variable"]

    def test_errors_fail(self):
        output = {
            "errors": [
                {"severity": "error", "formattedMessage": "ParserError: Expected ';'"},
                {"severity": "warning", "message": "SPDX missing"},
            ]
        }
        result = SmartContractCompiler.parse_solidity_output(output, "Token.sol")
        assert not result.success
        assert result.errors == ["ParserError: Expected ';'"]
        assert result.warnings == ["SPDX missing"]

    def test_no_contracts(self):
        result = SmartContractCompiler.parse_solidity_output({"contracts": {}}, "Token.sol")
        assert result.errors == ["No contracts found in source code"]


class TestCompile:
    @pytest.mark.asyncio
    async def test_rust_not_supported(self):
        result = await _compiler().compile("fn main() {}", ContractLanguage.RUST, "lib.rs")
        assert not result.success
        assert "Rust compilation not yet implemented" in result.errors[0]

    @pytest.mark.asyncio
    async def test_unknown_language(self):
        result = await _compiler().compile("x", "cobol", "x.cbl")  # type: ignore[arg-type]
        assert result.errors == ["Unsupported language: cobol"]

    @pytest.mark.asyncio
    async def test_missing_solc_is_a_failed_result(self):
        compiler = _compiler(solc_binary="definitely-not-solc-xyz")
        result = await compiler.compile("contract T {}", ContractLanguage.SOLIDITY, "T.sol")
        assert not result.success
        assert result.errors[0].startswith("Compilation failed:")

    @pytest.mark.asyncio
    @pytest.mark.skipif(shutil.which("node") is None, reason="node not installed")
    async def test_javascript_syntax_check(self):
        compiler = _compiler()
        ok = await compiler.compile("module.exports = {};", ContractLanguage.JAVASCRIPT, "c.js")
        assert ok == CompilationResult(success=True, bytecode="module.exports = {};", abi=[], warnings=[])

        bad = await compiler.compile("function (", ContractLanguage.JAVASCRIPT, "c.js")
        assert not bad.success
        assert bad.errors[0].startswith("JavaScript syntax error:")

    def test_failure_factory(self):
        result = CompilationResult.failure("a", "b", warnings=["w"])
        assert result == CompilationResult(success=False, errors=["a", "b"], warnings=["w"])
