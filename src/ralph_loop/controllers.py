"""Controllers for loop CLI commands."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from ralph_loop.archive import Archiver
from ralph_loop.backend import AgentTool, CliToolBackend, resolve_executable
from ralph_loop.backend.base import OutputSink
from ralph_loop.config import Settings
from ralph_loop.loop import IterationLoop, LoopResult
from ralph_loop.progress import ProgressLog
from ralph_loop.stories import RequirementsDocument, RequirementsParseError, StoryStore


class PreconditionError(RuntimeError):
    """The loop cannot start: a required file, executable, or setting is missing."""


@dataclass(slots=True)
class RunCommand:
    """CLI input for the iteration loop."""

    max_iterations: int
    workdir: Path | None = None
    tool: str | None = None
    model: str | None = None
    sleep_seconds: float | None = None


@dataclass(slots=True)
class StatusCommand:
    """CLI input for the story status view."""

    workdir: Path | None = None


class LoopCliController:
    """Checks preconditions, wires components, and runs commands."""

    def run(self, command: RunCommand, *, echo: OutputSink) -> LoopResult:
        settings = _settings(command.workdir)
        if command.sleep_seconds is not None:
            settings.loop.sleep_seconds = command.sleep_seconds
        _validate(settings)
        if command.max_iterations < 1:
            raise PreconditionError("Max iterations must be a positive integer.")

        try:
            tool = AgentTool.parse(command.tool or settings.loop.tool)
        except ValueError as error:
            raise PreconditionError(str(error)) from error
        if resolve_executable(tool) is None:
            raise PreconditionError(
                f"Executable not found in PATH: {tool.spec.executable} "
                f"(required by --tool {tool.value})",
            )

        paths = settings.paths
        document = _load_document(StoryStore(paths.prd_file))
        if not paths.prompt_file.is_file():
            raise PreconditionError(f"Prompt template not found: {paths.prompt_file}")
        prompt = paths.prompt_file.read_text("utf-8")

        progress_log = ProgressLog(paths.progress_file)
        archiver = Archiver(
            prd_file=paths.prd_file,
            progress_log=progress_log,
            last_branch_file=paths.last_branch_file,
            archive_root=paths.archive_dir,
            branch_prefix=settings.loop.branch_prefix,
        )
        archived = archiver.archive_if_branch_changed(document.branch_name)
        if archived.archived:
            echo(f"Archived previous run to {archived.destination}")
        recorded = archiver.record_branch(document.branch_name)
        for step in (archived, recorded):
            if not step.ok:
                for problem in step.errors:
                    echo(f"Archival warning: {problem}")

        if not paths.progress_file.exists():
            progress_log.reset()

        model = command.model or settings.loop.model
        loop = IterationLoop(
            store=StoryStore(paths.prd_file),
            runner=CliToolBackend(progress_log=progress_log, echo=echo, cwd=paths.workdir),
            progress_log=progress_log,
            tool=tool,
            prompt=prompt,
            max_iterations=command.max_iterations,
            model=model,
            completion_marker=settings.loop.completion_marker,
            sleep_seconds=settings.loop.sleep_seconds,
            echo=echo,
        )
        try:
            return loop.run()
        except OSError as error:
            raise PreconditionError(
                f"Requirements document became unreadable during the run: {error}",
            ) from error

    def status(self, command: StatusCommand) -> list[str]:
        """Render branch, progress, and stories in selection order."""

        settings = _settings(command.workdir)
        document = _load_document(StoryStore(settings.paths.prd_file))
        completed = document.completed_stories()
        lines = [
            f"Branch: {document.branch_name or 'n/a'}",
            f"Progress: {len(completed)}/{document.total} stories complete",
        ]
        if not document.stories_declared:
            lines.append("Requirements document declares no userStories.")
        lines.extend(
            f"  [TODO] {story.id}: {story.title} (priority {story.priority})"
            for story in document.incomplete_stories()
        )
        lines.extend(f"  [PASS] {story.id}: {story.title}" for story in completed)
        return lines

    def tools(self) -> list[str]:
        """List supported agent tools and whether each resolves on PATH."""

        lines: list[str] = []
        for tool in AgentTool:
            resolved = resolve_executable(tool)
            lines.append(
                f"{tool.value}: executable={tool.spec.executable} "
                f"available={'yes' if resolved else 'no'}"
                + (f" path={resolved}" if resolved else ""),
            )
        return lines


def _settings(workdir: Path | None) -> Settings:
    try:
        return Settings.from_env(workdir=workdir)
    except ValueError as error:
        raise PreconditionError(f"Invalid configuration: {error}") from error


def _validate(settings: Settings) -> None:
    try:
        settings.validate()
    except ValueError as error:
        raise PreconditionError(f"Invalid configuration: {error}") from error


def _load_document(store: StoryStore) -> RequirementsDocument:
    if not store.path.is_file():
        raise PreconditionError(f"Requirements document not found: {store.path}")
    try:
        return store.load()
    except RequirementsParseError as error:
        raise PreconditionError(f"Malformed requirements document: {error}") from error
