"""Read-only access to the requirements document (prd.json)."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

UNSET_PRIORITY = 999


class RequirementsParseError(ValueError):
    """Requirements document exists but cannot be interpreted."""


@dataclass(frozen=True, slots=True)
class Story:
    """One work item with defaults applied at load time."""

    id: str | int
    title: str = ""
    priority: int = UNSET_PRIORITY
    passes: bool = False

    def sort_key(self) -> tuple[int, tuple[int, int | str]]:
        """Selection order: priority first, identifier as tie-break."""

        return (self.priority, _id_sort_key(self.id))


@dataclass(frozen=True, slots=True)
class RequirementsDocument:
    """Parsed requirements document."""

    branch_name: str | None
    stories: tuple[Story, ...]
    stories_declared: bool = True

    @property
    def total(self) -> int:
        return len(self.stories)

    def incomplete_stories(self) -> list[Story]:
        return sorted(
            (story for story in self.stories if not story.passes),
            key=Story.sort_key,
        )

    def completed_stories(self) -> list[Story]:
        return sorted(
            (story for story in self.stories if story.passes),
            key=Story.sort_key,
        )


class StoryStore:
    """Story selection over a document that the agent rewrites between iterations.

    Every query goes back to disk: the external tool may have flipped
    ``passes`` flags since the previous call, so no parsed state is kept.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> RequirementsDocument:
        try:
            raw_text = self.path.read_text("utf-8")
        except UnicodeDecodeError as error:
            raise RequirementsParseError(f"{self.path} is not UTF-8 text: {error}") from error
        try:
            payload = json.loads(raw_text)
        except json.JSONDecodeError as error:
            raise RequirementsParseError(f"{self.path} is not valid JSON: {error}") from error
        return parse_requirements(payload, source=str(self.path))

    def incomplete_stories(self) -> list[Story]:
        return self.load().incomplete_stories()

    def current_story(self) -> Story | None:
        incomplete = self.incomplete_stories()
        return incomplete[0] if incomplete else None

    def remaining_count(self) -> int:
        return len(self.incomplete_stories())


def parse_requirements(payload: Any, *, source: str = "prd.json") -> RequirementsDocument:
    """Validate raw JSON payload and apply field defaults."""

    if not isinstance(payload, dict):
        raise RequirementsParseError(f"{source}: expected a JSON object at top level")

    branch_name = payload.get("branchName")
    if branch_name is not None and not isinstance(branch_name, str):
        raise RequirementsParseError(f"{source}: branchName must be a string")
    branch_name = branch_name.strip() or None if branch_name else None

    if "userStories" not in payload:
        logger.warning("%s declares no userStories; treating as an empty story list", source)
        return RequirementsDocument(branch_name=branch_name, stories=(), stories_declared=False)

    raw_stories = payload["userStories"]
    if not isinstance(raw_stories, list):
        raise RequirementsParseError(f"{source}: userStories must be an array")

    stories = tuple(
        _parse_story(raw, index=index, source=source) for index, raw in enumerate(raw_stories)
    )
    return RequirementsDocument(branch_name=branch_name, stories=stories)


def _parse_story(raw: Any, *, index: int, source: str) -> Story:
    if not isinstance(raw, dict):
        raise RequirementsParseError(f"{source}: userStories[{index}] must be an object")

    story_id = raw.get("id")
    if isinstance(story_id, bool) or not isinstance(story_id, (str, int)):
        raise RequirementsParseError(
            f"{source}: userStories[{index}].id must be a string or integer",
        )
    if isinstance(story_id, str):
        story_id = story_id.strip()
        if not story_id:
            raise RequirementsParseError(f"{source}: userStories[{index}].id is empty")

    title = raw.get("title")
    priority = raw.get("priority")
    if isinstance(priority, bool) or not isinstance(priority, int):
        priority = UNSET_PRIORITY

    return Story(
        id=story_id,
        title=title if isinstance(title, str) else "",
        priority=priority,
        passes=raw.get("passes") is True,
    )


def _id_sort_key(story_id: str | int) -> tuple[int, int | str]:
    # Integers sort before strings so mixed identifiers still have a total order.
    if isinstance(story_id, int):
        return (0, story_id)
    return (1, story_id)
