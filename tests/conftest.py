"""Shared test fixtures."""

from __future__ import annotations

import json
import os
import stat
import sys
from collections.abc import Callable
from pathlib import Path

import pytest

_ENV_VARS = (
    "RALPH_LOOP_WORKDIR",
    "RALPH_LOOP_PRD_FILE",
    "RALPH_LOOP_PROMPT_FILE",
    "RALPH_LOOP_PROGRESS_FILE",
    "RALPH_LOOP_LAST_BRANCH_FILE",
    "RALPH_LOOP_ARCHIVE_DIR",
    "RALPH_LOOP_TOOL",
    "RALPH_LOOP_MODEL",
    "RALPH_LOOP_SLEEP_SECONDS",
    "RALPH_LOOP_COMPLETION_MARKER",
    "RALPH_LOOP_BRANCH_PREFIX",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def _write_prd(
    path: Path,
    stories: list[dict],
    *,
    branch: str | None = "ralph/feature-x",
) -> Path:
    payload: dict[str, object] = {"userStories": stories}
    if branch is not None:
        payload["branchName"] = branch
    path.write_text(json.dumps(payload, indent=2), "utf-8")
    return path


def write_fake_agent(bin_dir: Path, name: str, body: str) -> Path:
    """Install a Python script as executable ``name`` inside ``bin_dir``."""

    bin_dir.mkdir(parents=True, exist_ok=True)
    implementation = bin_dir / f"{name}_impl.py"
    implementation.write_text(body.strip() + "\n", "utf-8")

    if os.name == "nt":
        launcher = bin_dir / f"{name}.cmd"
        launcher.write_text(
            f'@echo off\r\n"{sys.executable}" "{implementation}" %*\r\n',
            "utf-8",
        )
        return launcher

    launcher = bin_dir / name
    launcher.write_text(
        f'#!/usr/bin/env sh\nexec "{sys.executable}" "{implementation}" "$@"\n',
        "utf-8",
    )
    launcher.chmod(launcher.stat().st_mode | stat.S_IXUSR)
    return launcher


@pytest.fixture()
def fake_agent(tmp_path: Path, monkeypatch) -> Callable[[str, str], Path]:
    """Return an installer that puts fake agent CLIs first on PATH."""

    bin_dir = tmp_path / "bin"
    monkeypatch.setenv("PATH", f"{bin_dir}{os.pathsep}{os.environ.get('PATH', '')}")

    def _install(name: str, body: str) -> Path:
        return write_fake_agent(bin_dir, name, body)

    return _install


@pytest.fixture()
def workdir(tmp_path: Path) -> Path:
    """Work directory with a prompt template and a two-story prd.json."""

    root = tmp_path / "work"
    root.mkdir()
    (root / "prompt.md").write_text("Implement the next story.\n", "utf-8")
    _write_prd(
        root / "prd.json",
        [
            {"id": "US-001", "title": "First", "priority": 1, "passes": False},
            {"id": "US-002", "title": "Second", "priority": 2, "passes": False},
        ],
    )
    return root


@pytest.fixture()
def write_prd() -> Callable[..., Path]:
    """Return the helper that writes a prd.json with the given stories."""

    return _write_prd
