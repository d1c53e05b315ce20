"""Iteration loop: pick the next story, run the agent, check for completion."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from ralph_loop.backend.base import OutputSink, ToolRunner, ToolRunRequest
from ralph_loop.backend.tools import AgentTool
from ralph_loop.config import DEFAULT_COMPLETION_MARKER
from ralph_loop.progress import ProgressLog
from ralph_loop.stories import Story, StoryStore

logger = logging.getLogger(__name__)


class LoopOutcome(str, Enum):
    """Terminal states of the loop."""

    DONE = "done"
    COMPLETED = "completed"
    EXHAUSTED = "exhausted"


@dataclass(slots=True)
class LoopResult:
    """How and after how many agent invocations the loop stopped."""

    outcome: LoopOutcome
    iterations: int

    @property
    def exit_code(self) -> int:
        return 1 if self.outcome is LoopOutcome.EXHAUSTED else 0


class IterationLoop:
    """Single-threaded control loop around one agent tool.

    The requirements document is re-read at the top of every iteration
    because the agent edits it on disk. The current story is reported for
    the audit trail only; the prompt sent to the agent never changes.
    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        store: StoryStore,
        runner: ToolRunner,
        progress_log: ProgressLog,
        tool: AgentTool,
        prompt: str,
        max_iterations: int,
        model: str | None = None,
        completion_marker: str = DEFAULT_COMPLETION_MARKER,
        sleep_seconds: float = 2.0,
        echo: OutputSink | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_iterations < 1:
            raise ValueError("max_iterations must be a positive integer")
        self.store = store
        self.runner = runner
        self.progress_log = progress_log
        self.tool = tool
        self.prompt = prompt
        self.max_iterations = max_iterations
        self.model = model
        self.completion_marker = completion_marker
        self.sleep_seconds = sleep_seconds
        self.echo = echo
        self._sleep = sleep

    def run(self) -> LoopResult:
        self._announce(
            f"Starting loop: tool={self.tool.value} model={self.model or 'default'} "
            f"max_iterations={self.max_iterations}",
        )
        for iteration in range(1, self.max_iterations + 1):
            incomplete = self.store.incomplete_stories()
            if not incomplete:
                self._announce("All stories complete.")
                return LoopResult(outcome=LoopOutcome.DONE, iterations=iteration - 1)

            self._announce(
                f"Iteration {iteration}/{self.max_iterations} started: "
                f"{len(incomplete)} remaining, current story {_describe(incomplete[0])}",
            )
            result = self.runner.run(
                ToolRunRequest(tool=self.tool, prompt=self.prompt, model=self.model),
            )
            if not result.succeeded:
                reason = result.error or f"exit code {result.exit_code}"
                self._announce(f"Iteration {iteration} invocation failed: {reason}")

            if self.completion_marker in result.output:
                self._announce(f"Completion signal received in iteration {iteration}.")
                return LoopResult(outcome=LoopOutcome.COMPLETED, iterations=iteration)

            self._announce(f"Iteration {iteration} finished without completion signal.")
            if iteration < self.max_iterations and self.sleep_seconds > 0:
                self._sleep(self.sleep_seconds)

        if self.store.remaining_count() == 0:
            self._announce("All stories complete.")
            return LoopResult(outcome=LoopOutcome.DONE, iterations=self.max_iterations)

        self._announce(
            f"Reached max iterations ({self.max_iterations}) without completing all stories.",
        )
        return LoopResult(outcome=LoopOutcome.EXHAUSTED, iterations=self.max_iterations)

    def _announce(self, text: str) -> None:
        logger.info("%s", text)
        if self.echo is not None:
            self.echo(text)
        try:
            self.progress_log.append(text)
        except OSError as error:
            logger.warning("Cannot append to %s: %s", self.progress_log.path, error)


def _describe(story: Story) -> str:
    title = f" {story.title}" if story.title else ""
    return f"{story.id}{title} (priority {story.priority})"
