"""Tests for YAML action plans."""

from __future__ import annotations

import pytest

from actionlane.core.errors import PlanError
from actionlane.execution.actions import ChainTarget, ContractAction, ContractLanguage, FileAction, ShellAction
from actionlane.execution.plan import Plan

PLAN_YAML = """
actions:
  - type: file
    path: contracts/Token.sol
    content: |
      contract Token {}
  - id: build
    type: contract
    path: contracts/Token.sol
    language: solidity
    target: polygon
    optimize: true
    outputDir: build
  - type: shell
    command: ls build
    complete: false
"""


class TestParse:
    def test_from_yaml(self):
        plan = Plan.from_yaml(PLAN_YAML)
        specs = plan.specs()
        assert [action_id for action_id, _ in specs] == ["1", "build", "3"]
        assert specs[0][1] == FileAction(path="contracts/Token.sol", content="contract Token {}\n")
        assert specs[1][1] == ContractAction(
            path="contracts/Token.sol",
            language=ContractLanguage.SOLIDITY,
            target=ChainTarget.POLYGON,
            optimize=True,
            output_dir="build",
            content="",
        )
        assert specs[2][1] == ShellAction(command="ls build")

    def test_events_carry_complete_flag(self):
        events = list(Plan.from_yaml(PLAN_YAML).events())
        assert [e.content_complete for e in events] == [True, True, False]

    def test_bare_list_accepted(self):
        plan = Plan.from_yaml("- type: shell\n  command: pwd\n")
        assert plan.specs() == [("1", ShellAction(command="pwd"))]

    def test_empty_document(self):
        assert Plan.from_yaml("").actions == []

    def test_from_yaml_file(self, tmp_path):
        path = tmp_path / "plan.yaml"
        path.write_text(PLAN_YAML, encoding="utf-8")
        assert len(Plan.from_yaml_file(path).actions) == 3


class TestErrors:
    def test_invalid_yaml(self):
        with pytest.raises(PlanError, match="Invalid YAML"):
            Plan.from_yaml("actions: [")

    def test_unknown_type(self):
        with pytest.raises(PlanError, match="Invalid plan"):
            Plan.from_yaml("actions:\n  - type: deploy\n    path: x\n")

    def test_unknown_field(self):
        with pytest.raises(PlanError):
            Plan.from_yaml("actions:\n  - type: shell\n    command: ls\n    timeout: 5\n")

    def test_unknown_language(self):
        with pytest.raises(PlanError):
            Plan.from_yaml("actions:\n  - type: contract\n    path: a.vy\n    language: vyper\n")

    def test_scalar_document(self):
        with pytest.raises(PlanError, match="mapping"):
            Plan.from_yaml("just a string")

    def test_missing_file(self, tmp_path):
        with pytest.raises(PlanError, match="Cannot read plan"):
            Plan.from_yaml_file(tmp_path / "missing.yaml")

    def test_numeric_ids_become_strings(self):
        plan = Plan.from_yaml("- id: 7\n  type: shell\n  command: ls\n")
        assert plan.specs()[0][0] == "7"
