from __future__ import annotations

import json
from pathlib import Path

import allure
import pytest

from ralph_loop.stories import (
    UNSET_PRIORITY,
    RequirementsParseError,
    Story,
    StoryStore,
    parse_requirements,
)

pytestmark = [
    allure.epic("Iteration Loop"),
    allure.feature("Story Store"),
]


def test_incomplete_stories_excludes_passing_and_sorts_by_priority_then_id(
    tmp_path: Path,
    write_prd,
) -> None:
    store = StoryStore(
        write_prd(
            tmp_path / "prd.json",
            [
                {"id": 2, "title": "done", "passes": True},
                {"id": 1, "title": "first", "passes": False, "priority": 1},
                {"id": 3, "title": "unprioritized", "passes": False},
            ],
        ),
    )

    incomplete = store.incomplete_stories()

    assert [story.id for story in incomplete] == [1, 3]
    assert incomplete[0].priority == 1
    assert incomplete[1].priority == UNSET_PRIORITY
    assert store.remaining_count() == 2


def test_identifier_breaks_priority_ties(tmp_path: Path, write_prd) -> None:
    store = StoryStore(
        write_prd(
            tmp_path / "prd.json",
            [
                {"id": "US-003", "priority": 2},
                {"id": "US-001", "priority": 2},
                {"id": "US-002", "priority": 1},
            ],
        ),
    )

    assert [story.id for story in store.incomplete_stories()] == ["US-002", "US-001", "US-003"]


def test_mixed_identifier_types_have_total_order() -> None:
    document = parse_requirements(
        {"userStories": [{"id": "b"}, {"id": 10}, {"id": "a"}, {"id": 2}]},
    )

    assert [story.id for story in document.incomplete_stories()] == [2, 10, "a", "b"]


def test_current_story_is_idempotent_without_mutation(tmp_path: Path, write_prd) -> None:
    store = StoryStore(
        write_prd(tmp_path / "prd.json", [{"id": "A", "priority": 5}, {"id": "B", "priority": 4}]),
    )

    first = store.current_story()
    second = store.current_story()

    assert first == second == Story(id="B", priority=4)


def test_current_story_is_none_when_everything_passes(tmp_path: Path, write_prd) -> None:
    store = StoryStore(
        write_prd(tmp_path / "prd.json", [{"id": 1, "passes": True}, {"id": 2, "passes": True}]),
    )

    assert store.current_story() is None
    assert store.remaining_count() == 0
    assert len(store.load().completed_stories()) == 2


@pytest.mark.parametrize("raw_passes", ["true", 1, None, "yes"])
def test_only_literal_true_counts_as_passing(raw_passes: object) -> None:
    document = parse_requirements({"userStories": [{"id": 1, "passes": raw_passes}]})

    assert [story.id for story in document.incomplete_stories()] == [1]


def test_non_integer_priority_falls_back_to_sentinel() -> None:
    document = parse_requirements(
        {
            "userStories": [
                {"id": 1, "priority": "high"},
                {"id": 2, "priority": True},
                {"id": 3, "priority": 7},
            ],
        },
    )

    assert [(story.id, story.priority) for story in document.incomplete_stories()] == [
        (3, 7),
        (1, UNSET_PRIORITY),
        (2, UNSET_PRIORITY),
    ]


def test_store_rereads_document_after_external_change(tmp_path: Path, write_prd) -> None:
    prd_path = write_prd(tmp_path / "prd.json", [{"id": 1}, {"id": 2}])
    store = StoryStore(prd_path)
    assert store.remaining_count() == 2

    payload = json.loads(prd_path.read_text("utf-8"))
    payload["userStories"][0]["passes"] = True
    prd_path.write_text(json.dumps(payload), "utf-8")

    assert store.remaining_count() == 1
    assert store.current_story() == Story(id=2)


def test_absent_user_stories_is_empty_but_flagged(tmp_path: Path) -> None:
    prd_path = tmp_path / "prd.json"
    prd_path.write_text(json.dumps({"branchName": "ralph/x"}), "utf-8")

    document = StoryStore(prd_path).load()

    assert document.stories == ()
    assert document.stories_declared is False
    assert document.branch_name == "ralph/x"


def test_present_but_empty_user_stories_is_declared(tmp_path: Path, write_prd) -> None:
    document = StoryStore(write_prd(tmp_path / "prd.json", [])).load()

    assert document.stories == ()
    assert document.stories_declared is True


def test_malformed_json_is_a_parse_error_not_an_empty_list(tmp_path: Path) -> None:
    prd_path = tmp_path / "prd.json"
    prd_path.write_text('{"userStories": [', "utf-8")

    with pytest.raises(RequirementsParseError, match="not valid JSON"):
        StoryStore(prd_path).remaining_count()


@pytest.mark.parametrize(
    ("payload", "message"),
    [
        ([], "JSON object"),
        ({"userStories": {"id": 1}}, "must be an array"),
        ({"userStories": ["US-001"]}, "must be an object"),
        ({"userStories": [{"title": "no id"}]}, "string or integer"),
        ({"userStories": [{"id": "  "}]}, "is empty"),
        ({"branchName": 5, "userStories": []}, "branchName"),
    ],
)
def test_structural_errors_raise_parse_error(payload: object, message: str) -> None:
    with pytest.raises(RequirementsParseError, match=message):
        parse_requirements(payload)


def test_missing_file_raises_file_not_found(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        StoryStore(tmp_path / "missing.json").load()
