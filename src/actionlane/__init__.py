"""actionlane - single-lane execution of streamed file, shell and contract actions."""

__version__ = "0.1.0"
