"""
Client for the backend story-title suggestion endpoint.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import requests

from drawtopia.common.config import Settings
from drawtopia.common.http import error_detail, post_json, read_json_object

logger = logging.getLogger(__name__)

GENERATE_TITLES_PATH = "/story/generate-titles"


@dataclass(frozen=True)
class TitleRequest:
    """Character and story choices the titles are personalised with."""

    character_name: str
    special_ability: str
    story_world: str
    adventure_type: str
    character_type: str = "person"
    character_style: str = "cartoon"
    story_format: str = "story"
    age_group: str = "7-10"

    def to_payload(self) -> dict[str, Any]:
        return {
            "character_name": self.character_name,
            "special_ability": self.special_ability,
            "story_world": self.story_world,
            "adventure_type": self.adventure_type,
            "character_type": self.character_type or "person",
            "character_style": self.character_style or "cartoon",
            "story_format": self.story_format or "story",
            "age_group": self.age_group or "7-10",
        }


@dataclass(frozen=True)
class TitleSuggestions:
    success: bool
    titles: tuple[str, ...] = field(default_factory=tuple)
    error: str | None = None


class StoryTitleClient:
    """
    Requests title suggestions for a story from the backend.
    """

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self._settings = settings or Settings.from_env()
        self._session = session or requests.Session()

    def generate_story_titles(self, request: TitleRequest) -> TitleSuggestions:
        url = self._settings.endpoint(GENERATE_TITLES_PATH)
        try:
            response = post_json(
                self._session,
                url,
                request.to_payload(),
                timeout=self._settings.request_timeout,
            )
            if not response.ok:
                detail = error_detail(response)
                message = detail or (
                    f"Failed to generate story titles: {response.status_code} {response.reason}"
                )
                return TitleSuggestions(success=False, error=message)

            data = read_json_object(response)
            titles = data.get("titles")
            if not data.get("success") or not isinstance(titles, list):
                return TitleSuggestions(
                    success=False,
                    error="Invalid response from story titles API",
                )
        except (requests.RequestException, ValueError) as exc:
            logger.error("Error generating story titles: %s", exc)
            return TitleSuggestions(success=False, error=str(exc) or "Failed to generate story titles")

        return TitleSuggestions(success=True, titles=tuple(str(title) for title in titles))
