"""Tests for action specs and records."""

from __future__ import annotations

import dataclasses
from datetime import timedelta

import pytest

from actionlane.execution.actions import (
    ActionKind,
    ChainTarget,
    ContractAction,
    ContractLanguage,
    FileAction,
    ShellAction,
    describe_action,
)
from actionlane.execution.models import ActionRecord, ActionStatus, RecordChange


class TestSpecs:
    def test_kinds(self):
        assert FileAction(path="a").kind is ActionKind.FILE
        assert ShellAction(command="ls").kind is ActionKind.SHELL
        assert ContractAction(path="C.sol").kind is ActionKind.CONTRACT

    def test_specs_are_frozen(self):
        spec = FileAction(path="a.txt", content="x")
        with pytest.raises(dataclasses.FrozenInstanceError):
            spec.path = "b.txt"  # type: ignore[misc]

    def test_content_bytes(self):
        assert FileAction(path="a", content="héllo").content_bytes == "héllo".encode()
        assert FileAction(path="a", content=b"\x00\x01").content_bytes == b"\x00\x01"

    def test_contract_coerces_strings(self):
        spec = ContractAction(path="C.sol", language="javascript", target="polygon")
        assert spec.language is ContractLanguage.JAVASCRIPT
        assert spec.target is ChainTarget.POLYGON

    def test_contract_rejects_unknown_language(self):
        with pytest.raises(ValueError):
            ContractAction(path="C.vy", language="vyper")

    def test_equality_drives_refinement(self):
        assert FileAction(path="a", content="x") == FileAction(path="a", content="x")
        assert FileAction(path="a", content="x") != FileAction(path="a", content="xy")

    def test_describe_action(self):
        assert describe_action(ShellAction(command="npm test")) == {"kind": "shell", "location": "npm test"}
        assert describe_action(FileAction(path="src/a.js", content="secret")) == {
            "kind": "file",
            "location": "src/a.js",
        }


class TestActionRecord:
    def test_defaults(self):
        record = ActionRecord(action_id="1", spec=ShellAction(command="ls"))
        assert record.status is ActionStatus.PENDING
        assert record.executed is False
        assert record.token.cancelled is False
        assert record.created_at.tzinfo is not None
        assert record.duration_seconds is None
        assert not record.is_terminal

    def test_each_record_has_its_own_token(self):
        a = ActionRecord(action_id="1", spec=ShellAction(command="ls"))
        b = ActionRecord(action_id="2", spec=ShellAction(command="ls"))
        assert a.token is not b.token

    def test_duration(self):
        record = ActionRecord(action_id="1", spec=ShellAction(command="ls"))
        record.started_at = record.created_at
        record.finished_at = record.created_at + timedelta(seconds=2)
        assert record.duration_seconds == 2.0

    def test_to_dict(self):
        record = ActionRecord(action_id="1", spec=FileAction(path="a.txt", content="hi"))
        data = record.to_dict()
        assert data["action_id"] == "1"
        assert data["kind"] == "file"
        assert data["location"] == "a.txt"
        assert data["status"] == "pending"
        assert data["started_at"] is None
        assert "content" not in data


class TestRecordChange:
    def test_registration_is_transition(self):
        record = ActionRecord(action_id="1", spec=ShellAction(command="ls"))
        change = RecordChange(action_id="1", previous_status=None, new_status=ActionStatus.PENDING, record=record)
        assert change.is_transition
        assert change.to_dict()["previous_status"] is None

    def test_field_update_is_not_transition(self):
        record = ActionRecord(action_id="1", spec=ShellAction(command="ls"))
        change = RecordChange(
            action_id="1",
            previous_status=ActionStatus.PENDING,
            new_status=ActionStatus.PENDING,
            record=record,
        )
        assert not change.is_transition
