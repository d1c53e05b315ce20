"""Backend interface for agent tool invocation."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from ralph_loop.backend.tools import AgentTool


@dataclass(slots=True)
class ToolRunRequest:
    """Inputs required to run the agent tool once."""

    tool: AgentTool
    prompt: str
    model: str | None = None


@dataclass(slots=True)
class ToolRunResult:
    """Execution outcome of one invocation.

    ``error`` is set when the process could not be started or exited non-zero;
    ``output`` then still carries whatever the agent printed, followed by the
    error text.
    """

    output: str
    exit_code: int | None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.exit_code == 0


OutputSink = Callable[[str], None]


class ToolRunner(Protocol):
    """Protocol implemented by tool runners."""

    def run(self, request: ToolRunRequest) -> ToolRunResult:
        """Run the tool and return captured output."""
