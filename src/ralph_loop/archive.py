"""Best-effort archival of run artifacts when the tracked branch changes."""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path

from ralph_loop.progress import ProgressLog

logger = logging.getLogger(__name__)

_UNSAFE_FOLDER_CHARS = ("\\", "/", ":", "*", "?", '"', "<", ">", "|")


@dataclass(slots=True)
class ArchiveResult:
    """Outcome of one archival step; callers may ignore it."""

    archived: bool = False
    destination: Path | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def sanitize_branch_name(branch: str, *, prefix: str = "ralph/") -> str:
    """Turn a branch name into a single path component."""

    name = branch.strip()
    if prefix and name.startswith(prefix):
        name = name[len(prefix) :]
    for char in _UNSAFE_FOLDER_CHARS:
        name = name.replace(char, "_")
    return name or "unknown"


class Archiver:
    """Moves the previous run's artifacts aside once per process start."""

    def __init__(  # noqa: PLR0913
        self,
        *,
        prd_file: Path,
        progress_log: ProgressLog,
        last_branch_file: Path,
        archive_root: Path,
        branch_prefix: str = "ralph/",
        today: Callable[[], date] = date.today,
    ) -> None:
        self.prd_file = prd_file
        self.progress_log = progress_log
        self.last_branch_file = last_branch_file
        self.archive_root = archive_root
        self.branch_prefix = branch_prefix
        self._today = today

    def read_last_branch(self) -> str | None:
        if not self.last_branch_file.exists():
            return None
        value = self.last_branch_file.read_text("utf-8", errors="replace").strip()
        return value or None

    def archive_if_branch_changed(self, current_branch: str | None) -> ArchiveResult:
        result = ArchiveResult()
        try:
            previous_branch = self.read_last_branch()
        except OSError as error:
            result.errors.append(f"Cannot read branch marker {self.last_branch_file}: {error}")
            logger.warning("%s", result.errors[-1])
            return result

        if not previous_branch or not current_branch or previous_branch == current_branch:
            return result

        folder_name = sanitize_branch_name(current_branch, prefix=self.branch_prefix)
        destination = self.archive_root / f"{self._today().isoformat()}-{folder_name}"
        try:
            destination.mkdir(parents=True, exist_ok=True)
        except OSError as error:
            result.errors.append(f"Cannot create archive folder {destination}: {error}")
            logger.warning("%s", result.errors[-1])
            return result

        result.destination = destination
        for source in (self.prd_file, self.progress_log.path):
            if not source.exists():
                continue
            try:
                shutil.copy2(source, destination / source.name)
            except OSError as error:
                result.errors.append(f"Cannot copy {source} to {destination}: {error}")
                logger.warning("%s", result.errors[-1])

        try:
            self.progress_log.reset()
        except OSError as error:
            result.errors.append(f"Cannot reset progress log {self.progress_log.path}: {error}")
            logger.warning("%s", result.errors[-1])

        result.archived = True
        logger.info(
            "Archived run artifacts for branch change %s -> %s into %s",
            previous_branch,
            current_branch,
            destination,
        )
        return result

    def record_branch(self, current_branch: str | None) -> ArchiveResult:
        result = ArchiveResult()
        if not current_branch:
            return result
        try:
            self.last_branch_file.parent.mkdir(parents=True, exist_ok=True)
            self.last_branch_file.write_text(current_branch + "\n", "utf-8")
        except OSError as error:
            result.errors.append(f"Cannot write branch marker {self.last_branch_file}: {error}")
            logger.warning("%s", result.errors[-1])
        return result
