"""Supported agent CLIs and their argument conventions."""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """Argument-building strategy for one agent CLI."""

    executable: str
    display_name: str
    subcommand: tuple[str, ...] = ()
    model_flag: str = "--model"
    auto_approve_flag: str | None = None
    prompt_flag: str | None = "-p"

    def build_args(self, *, prompt: str, model: str | None = None) -> list[str]:
        """Return argv with the prompt always in the last position."""

        args = [self.executable, *self.subcommand]
        if model:
            args.extend([self.model_flag, model])
        if self.auto_approve_flag:
            args.append(self.auto_approve_flag)
        if self.prompt_flag:
            args.append(self.prompt_flag)
        args.append(prompt)
        return args


class AgentTool(str, Enum):
    """Closed set of agent CLIs the loop knows how to drive."""

    CLAUDE = "claude"
    CODEX = "codex"
    GEMINI = "gemini"
    COPILOT = "copilot"

    @property
    def spec(self) -> ToolSpec:
        return _TOOL_SPECS[self]

    @classmethod
    def parse(cls, value: str) -> AgentTool:
        normalized = value.strip().lower()
        try:
            return cls(normalized)
        except ValueError as error:
            supported = ", ".join(tool.value for tool in cls)
            raise ValueError(
                f"Unsupported agent tool: {value!r}. Use one of: {supported}.",
            ) from error


_TOOL_SPECS: dict[AgentTool, ToolSpec] = {
    AgentTool.CLAUDE: ToolSpec(
        executable="claude",
        display_name="Claude",
        auto_approve_flag="--dangerously-skip-permissions",
    ),
    AgentTool.CODEX: ToolSpec(
        executable="codex",
        display_name="Codex",
        subcommand=("exec",),
        auto_approve_flag="--full-auto",
        prompt_flag=None,
    ),
    AgentTool.GEMINI: ToolSpec(
        executable="gemini",
        display_name="Gemini",
        auto_approve_flag="--yolo",
    ),
    AgentTool.COPILOT: ToolSpec(
        executable="copilot",
        display_name="Copilot",
        auto_approve_flag="--allow-all-tools",
    ),
}


def resolve_executable(tool: AgentTool) -> str | None:
    """Absolute path of the tool's executable on PATH, or None."""

    return shutil.which(tool.spec.executable)
