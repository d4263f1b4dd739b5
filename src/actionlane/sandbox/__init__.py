"""Sandbox adapters: the file system + process spawner actions run against."""

from actionlane.sandbox.local import LocalProcess, LocalSandbox
from actionlane.sandbox.memory import InMemorySandbox, ScriptedProcess, SpawnRecord
from actionlane.sandbox.protocol import ProcessHandle, Sandbox

__all__ = [
    "Sandbox",
    "ProcessHandle",
    "LocalSandbox",
    "LocalProcess",
    "InMemorySandbox",
    "ScriptedProcess",
    "SpawnRecord",
]
