"""Agent tool backends."""

from ralph_loop.backend.base import ToolRunner, ToolRunRequest, ToolRunResult
from ralph_loop.backend.cli_backend import CliToolBackend, ToolExecutionError
from ralph_loop.backend.tools import AgentTool, ToolSpec, resolve_executable

__all__ = [
    "AgentTool",
    "CliToolBackend",
    "ToolExecutionError",
    "ToolRunRequest",
    "ToolRunResult",
    "ToolRunner",
    "ToolSpec",
    "resolve_executable",
]
