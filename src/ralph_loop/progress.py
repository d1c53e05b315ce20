"""Append-only progress log shared across iterations."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from pathlib import Path

PROGRESS_HEADER_TITLE = "# Ralph Progress Log"


class ProgressLog:
    """Timestamped text log; the only rewrite is ``reset`` on archival."""

    def __init__(self, path: Path, *, clock: Callable[[], datetime] = datetime.now) -> None:
        self.path = path
        self._clock = clock

    def append(self, line: str) -> None:
        if not self.path.exists():
            self.reset()
        stamp = self._clock().strftime("%Y-%m-%d %H:%M:%S")
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(f"[{stamp}] {line.rstrip()}\n")

    def reset(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(self._header(), "utf-8")

    def _header(self) -> str:
        started = self._clock().isoformat(timespec="seconds")
        return f"{PROGRESS_HEADER_TITLE}\nStarted: {started}\n---\n"
