"""
End-to-end scenarios against a real directory sandbox.

One lane, one LocalSandbox, real ``sh`` for shell actions and a stub
compiler service for contracts.
"""

from __future__ import annotations

import asyncio
import json

import pytest

from actionlane.contracts.compiler import CompilationResult
from actionlane.execution import (
    ActionSequencer,
    ActionStatus,
    ContractAction,
    ContractLanguage,
    FileAction,
    ShellAction,
    StatusHistory,
)
from actionlane.sandbox.local import LocalSandbox
from tests._support import StubCompiler, process_alive, wait_until


@pytest.fixture
def lane(tmp_path, settings) -> ActionSequencer:
    compiler = StubCompiler(CompilationResult.failure("bad syntax"))
    return ActionSequencer(LocalSandbox(tmp_path), settings=settings, compiler=compiler, sink=lambda c: None)


class TestScenarios:
    @pytest.mark.asyncio
    async def test_file_action(self, lane, tmp_path):
        async with lane:
            lane.register("1", FileAction(path="a.txt", content="hi"))
            lane.finalize("1")
            await lane.join()

        assert lane.store.get("1").status is ActionStatus.COMPLETE
        assert (tmp_path / "a.txt").read_text() == "hi"

    @pytest.mark.asyncio
    async def test_shell_non_zero_exit_completes(self, lane):
        async with lane:
            lane.register("2", ShellAction(command="exit 1"))
            lane.finalize("2")
            await lane.join()

        record = lane.store.get("2")
        assert record.status is ActionStatus.COMPLETE
        assert record.result == {"exit_code": 1}

    @pytest.mark.asyncio
    async def test_contract_failure_writes_error_report(self, lane, tmp_path):
        (tmp_path / "C.sol").write_text("contract C {")
        async with lane:
            lane.register("3", ContractAction(path="C.sol", language=ContractLanguage.SOLIDITY))
            lane.finalize("3")
            await lane.join()

        record = lane.store.get("3")
        assert record.status is ActionStatus.FAILED
        assert "bad syntax" in record.error
        assert record.error_type == "CompilationError"
        report = json.loads((tmp_path / "contracts" / "artifacts" / "C.error.json").read_text())
        assert report["errors"] == ["bad syntax"]


class TestWorkflow:
    @pytest.mark.asyncio
    async def test_later_shell_observes_earlier_file(self, tmp_path, settings):
        chunks: list[bytes] = []
        lane = ActionSequencer(LocalSandbox(tmp_path), settings=settings, compiler=StubCompiler(), sink=chunks.append)
        history = StatusHistory()
        lane.store.subscribe(history)

        async with lane:
            lane.register("1", FileAction(path="src/index.js", content="console.log(1)\n"))
            lane.register("2", ShellAction(command="cat src/index.js"))
            lane.register("3", ShellAction(command="test -f src/missing.js"))
            for action_id in ["1", "2", "3"]:
                lane.finalize(action_id)
            await lane.join()

        assert b"".join(chunks) == b"console.log(1)\n"
        assert lane.store.get("3").result == {"exit_code": 1}
        assert [r.status for r in lane.store.all()] == [ActionStatus.COMPLETE] * 3
        assert history.statuses("2") == [ActionStatus.PENDING, ActionStatus.RUNNING, ActionStatus.COMPLETE]

    @pytest.mark.asyncio
    async def test_cancel_long_running_shell(self, lane, tmp_path):
        async with lane:
            record = lane.register("1", ShellAction(command="exec sleep 30"))
            lane.register("2", FileAction(path="after.txt", content="done"))
            lane.finalize("1")
            lane.finalize("2")

            await wait_until(lambda: record.executed)
            await asyncio.sleep(0.1)
            lane.cancel("1")
            await asyncio.wait_for(lane.join(), timeout=10)

        assert record.status is ActionStatus.ABORTED
        assert record.result["exit_code"] < 0
        assert (tmp_path / "after.txt").read_text() == "done"

    @pytest.mark.asyncio
    async def test_cancel_compound_shell_command(self, lane, tmp_path):
        async with lane:
            record = lane.register("1", ShellAction(command="sleep 30; echo after > after.txt"))
            lane.finalize("1")

            await wait_until(lambda: record.executed)
            await asyncio.sleep(0.1)
            lane.cancel("1")
            await asyncio.wait_for(lane.join(), timeout=2)

        assert record.status is ActionStatus.ABORTED
        assert not (tmp_path / "after.txt").exists()

    @pytest.mark.asyncio
    async def test_cancel_shell_waiting_on_background_job(self, tmp_path, settings):
        chunks: list[bytes] = []
        lane = ActionSequencer(LocalSandbox(tmp_path), settings=settings, compiler=StubCompiler(), sink=chunks.append)
        async with lane:
            record = lane.register("1", ShellAction(command="sleep 30 & echo $!; wait"))
            lane.register("2", FileAction(path="next.txt", content="ran"))
            lane.finalize("1")
            lane.finalize("2")

            await wait_until(lambda: b"\n" in b"".join(chunks))
            child = int(b"".join(chunks).split(b"\n", 1)[0])
            lane.cancel("1")
            await asyncio.wait_for(lane.join(), timeout=2)

        assert record.status is ActionStatus.ABORTED
        assert lane.store.get("2").status is ActionStatus.COMPLETE
        await wait_until(lambda: not process_alive(child))
