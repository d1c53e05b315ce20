"""Runtime configuration for the iteration loop."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_COMPLETION_MARKER = "<promise>COMPLETE</promise>"
DEFAULT_BRANCH_PREFIX = "ralph/"


@dataclass(slots=True)
class PathSettings:
    """Files owned or read by the loop, resolved against the work directory."""

    workdir: Path = Path()
    prd_file: Path = Path("prd.json")
    prompt_file: Path = Path("prompt.md")
    progress_file: Path = Path("progress.txt")
    last_branch_file: Path = Path(".last-branch")
    archive_dir: Path = Path("archive")


@dataclass(slots=True)
class LoopSettings:
    """Iteration loop and agent invocation settings."""

    tool: str = "claude"
    model: str | None = None
    sleep_seconds: float = 2.0
    completion_marker: str = DEFAULT_COMPLETION_MARKER
    branch_prefix: str = DEFAULT_BRANCH_PREFIX


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    paths: PathSettings = field(default_factory=PathSettings)
    loop: LoopSettings = field(default_factory=LoopSettings)

    @classmethod
    def from_env(cls, workdir: Path | None = None) -> Settings:
        """Load settings from environment with defaults for a local checkout."""

        root = workdir or Path(os.getenv("RALPH_LOOP_WORKDIR", "."))
        root = root.expanduser().resolve()
        return cls(
            paths=PathSettings(
                workdir=root,
                prd_file=_resolve(root, os.getenv("RALPH_LOOP_PRD_FILE", "prd.json")),
                prompt_file=_resolve(root, os.getenv("RALPH_LOOP_PROMPT_FILE", "prompt.md")),
                progress_file=_resolve(
                    root,
                    os.getenv("RALPH_LOOP_PROGRESS_FILE", "progress.txt"),
                ),
                last_branch_file=_resolve(
                    root,
                    os.getenv("RALPH_LOOP_LAST_BRANCH_FILE", ".last-branch"),
                ),
                archive_dir=_resolve(root, os.getenv("RALPH_LOOP_ARCHIVE_DIR", "archive")),
            ),
            loop=LoopSettings(
                tool=os.getenv("RALPH_LOOP_TOOL", "claude").strip().lower(),
                model=os.getenv("RALPH_LOOP_MODEL", "").strip() or None,
                sleep_seconds=float(os.getenv("RALPH_LOOP_SLEEP_SECONDS", "2")),
                completion_marker=os.getenv(
                    "RALPH_LOOP_COMPLETION_MARKER",
                    DEFAULT_COMPLETION_MARKER,
                ),
                branch_prefix=os.getenv("RALPH_LOOP_BRANCH_PREFIX", DEFAULT_BRANCH_PREFIX),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error for values the loop cannot work with."""

        if self.loop.sleep_seconds < 0:
            raise ValueError("RALPH_LOOP_SLEEP_SECONDS must be >= 0.")
        if not self.loop.completion_marker.strip():
            raise ValueError("RALPH_LOOP_COMPLETION_MARKER must be a non-empty string.")
        if not self.loop.tool:
            raise ValueError("RALPH_LOOP_TOOL must name a supported agent tool.")


def _resolve(root: Path, value: str) -> Path:
    path = Path(value.strip()).expanduser()
    if path.is_absolute():
        return path
    return root / path
