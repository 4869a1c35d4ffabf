"""
Shared fixtures: a fake HTTP session that records requests and replays canned responses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import pytest

from drawtopia.common.config import Settings
from drawtopia.story_generation import BookTemplate, StoryPage

BACKEND = "https://backend.test"


@dataclass
class FakeResponse:
    status_code: int = 200
    payload: Any = None
    reason: str = "OK"
    invalid_json: bool = False

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def json(self) -> Any:
        if self.invalid_json:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self.payload


@dataclass
class FakeSession:
    """
    Stand-in for :class:`requests.Session`.

    ``routes`` maps an endpoint path to a list of responses consumed in order
    (the last one repeats) or to a callable receiving the posted JSON.
    """

    routes: dict[str, Any] = field(default_factory=dict)
    calls: list[tuple[str, dict[str, Any]]] = field(default_factory=list)

    def post(self, url: str, json: dict[str, Any] | None = None, **kwargs: Any) -> FakeResponse:
        path = url[len(BACKEND):] if url.startswith(BACKEND) else url
        body = json or {}
        self.calls.append((path, body))

        route = self.routes.get(path)
        if route is None:
            return FakeResponse(status_code=404, payload={"detail": "Not Found"}, reason="Not Found")

        if callable(route):
            outcome = route(path, body)
        elif isinstance(route, list):
            outcome = route.pop(0) if len(route) > 1 else route[0]
        else:
            outcome = route

        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def paths(self) -> list[str]:
        return [path for path, _ in self.calls]


class RecordingSink:
    def __init__(self) -> None:
        self.events: list[tuple[str, float]] = []

    def on_progress(self, label: str, percent: float) -> None:
        self.events.append((label, percent))

    @property
    def percents(self) -> list[float]:
        return [percent for _, percent in self.events]


def composite_ok(url: str) -> FakeResponse:
    return FakeResponse(payload={"success": True, "url": url})


def edit_ok(url: str) -> FakeResponse:
    return FakeResponse(payload={"storage_info": {"uploaded": True, "url": url}})


@pytest.fixture
def settings() -> Settings:
    return Settings(backend_url=BACKEND, public_app_url="https://app.test")


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def template() -> BookTemplate:
    return BookTemplate.from_mapping(
        {
            "id": "tpl-1",
            "name": "Enchanted Forest",
            "story_world": "forest",
            "cover_image": "https://cdn.test/cover.png",
            "copyright_page_image": "https://cdn.test/copyright.png",
            "dedication_page_image": "https://cdn.test/dedication.png",
            "story_page_images": [
                "https://cdn.test/story-page-1.png",
                "https://cdn.test/story-page-2.png",
                "https://cdn.test/story-page-3.png",
            ],
            "last_story_page_image": "https://cdn.test/last.png",
            "back_cover_image": "https://cdn.test/back.png",
        }
    )


@pytest.fixture
def story_pages() -> list[StoryPage]:
    return [
        StoryPage(page_number=1, text="Luna steps into the glowing forest."),
        StoryPage(page_number=2, text="She meets a shy fox under a giant mushroom."),
        StoryPage(page_number=3, text="Together they find the hidden treasure."),
    ]
