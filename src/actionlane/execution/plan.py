"""Pydantic models for YAML action plans.

A plan is a recorded (or hand-written) action stream: the CLI replays
it through the lane the same way the live parser would.

Example YAML::

    actions:
      - id: "1"
        type: file
        path: contracts/Token.sol
        content: |
          pragma solidity ^0.8.0;
          contract Token {}
      - type: contract
        path: contracts/Token.sol
        language: solidity
        optimize: true
      - type: shell
        command: ls contracts/artifacts

Entries without ``id`` get their 1-based position.  ``complete: false``
entries register (or refine) an action without finalizing it.

Usage::

    plan = Plan.from_yaml_file("plan.yaml")
    await ActionStreamConsumer(sequencer).consume(plan.events())
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from typing import Annotated, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from actionlane.core.errors import PlanError
from actionlane.execution.actions import (
    ActionSpec,
    ChainTarget,
    ContractAction,
    ContractLanguage,
    FileAction,
    ShellAction,
)
from actionlane.execution.stream import ActionEvent


class _PlanEntry(BaseModel):
    model_config = ConfigDict(extra="forbid", coerce_numbers_to_str=True)

    id: str | None = Field(default=None, description="Action identifier (default: position)")
    complete: bool = Field(default=True, description="Finalize the action with this entry")


class FileEntry(_PlanEntry):
    type: Literal["file"]
    path: str = Field(..., min_length=1)
    content: str = ""

    def to_action(self) -> FileAction:
        return FileAction(path=self.path, content=self.content)


class ShellEntry(_PlanEntry):
    type: Literal["shell"]
    command: str = Field(..., min_length=1)

    def to_action(self) -> ShellAction:
        return ShellAction(command=self.command)


class ContractEntry(_PlanEntry):
    type: Literal["contract"]
    path: str = Field(..., min_length=1)
    language: ContractLanguage = ContractLanguage.SOLIDITY
    target: ChainTarget | None = None
    optimize: bool = False
    output_dir: str | None = Field(default=None, alias="outputDir")
    content: str = ""

    model_config = ConfigDict(extra="forbid", coerce_numbers_to_str=True, populate_by_name=True)

    def to_action(self) -> ContractAction:
        return ContractAction(
            path=self.path,
            language=self.language,
            target=self.target,
            optimize=self.optimize,
            output_dir=self.output_dir,
            content=self.content,
        )


PlanEntry = Annotated[FileEntry | ShellEntry | ContractEntry, Field(discriminator="type")]


class Plan(BaseModel):
    """An ordered list of action entries."""

    model_config = ConfigDict(extra="forbid")

    actions: list[PlanEntry] = Field(default_factory=list)

    def events(self) -> Iterator[ActionEvent]:
        for position, entry in enumerate(self.actions, start=1):
            yield ActionEvent(
                action_id=entry.id or str(position),
                action=entry.to_action(),
                content_complete=entry.complete,
            )

    def specs(self) -> list[tuple[str, ActionSpec]]:
        return [(event.action_id, event.action) for event in self.events()]

    @classmethod
    def from_yaml(cls, content: str) -> Plan:
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as exc:
            raise PlanError(f"Invalid YAML: {exc}", cause=exc) from exc

        if data is None:
            data = {}
        if isinstance(data, list):
            data = {"actions": data}
        if not isinstance(data, dict):
            raise PlanError("Plan must be a mapping with an 'actions' list")

        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise PlanError(f"Invalid plan: {exc}", cause=exc) from exc

    @classmethod
    def from_yaml_file(cls, path: str | Path) -> Plan:
        path = Path(path)
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise PlanError(f"Cannot read plan {path}: {exc}", context={"path": str(path)}, cause=exc) from exc
        return cls.from_yaml(content)
