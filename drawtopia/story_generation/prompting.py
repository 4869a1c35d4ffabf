"""
Prompt construction utilities for Drawtopia book pages.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import yaml

from .templates import StoryWorld

DEFAULT_PROMPTS_PATH = Path(__file__).with_name("prompts.yaml")

STORY_CONTEXT_LIMIT = 100

DEFAULT_CHARACTER_ACTION = "Character is actively participating in the scene"

_FIELD_PATTERN = re.compile(r"\{(\w+)\}")

_REQUIRED_SECTIONS = (
    "copyright_page",
    "dedication_page",
    "story_page",
    "last_word_page",
    "character_actions",
    "world_scenes",
)


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({_normalize_key(k): _freeze(v) for k, v in value.items()})
    if isinstance(value, list):
        return tuple(_freeze(item) for item in value)
    return value


def _normalize_key(key: Any) -> Any:
    # YAML turns ``1:`` into an int; quoted "1" should behave the same.
    if isinstance(key, str) and key.isdigit():
        return int(key)
    return key


def replace_placeholders(text: str, replacements: Mapping[str, str]) -> str:
    """
    Replace every ``[KEY]`` token in ``text`` with its value.

    Tokens without a replacement are left untouched.
    """
    result = text
    for placeholder, value in replacements.items():
        result = re.sub(
            r"\[" + re.escape(placeholder) + r"\]",
            lambda _match, value=value: str(value),
            result,
        )
    return result


def fill_fields(text: str, **values: Any) -> str:
    """
    Literal ``{field}`` substitution in a single pass; unknown fields stay as written.

    Inserted values are never scanned again, so a value containing ``{field}``
    text is kept verbatim.
    """

    def _substitute(match: re.Match[str]) -> str:
        name = match.group(1)
        return str(values[name]) if name in values else match.group(0)

    return _FIELD_PATTERN.sub(_substitute, text)


@dataclass(frozen=True)
class PromptLibrary:
    """
    Read-only collection of the static prompt fragments used for every page type.
    """

    sections: Mapping[str, Any]

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PromptLibrary":
        if not isinstance(data, Mapping):
            raise ValueError("Prompt library data must be a mapping.")
        missing = [name for name in _REQUIRED_SECTIONS if name not in data]
        if missing:
            raise ValueError(f"Prompt library is missing sections: {', '.join(missing)}")
        return cls(sections=_freeze(data))

    @classmethod
    def from_yaml(cls, source: str | Path) -> "PromptLibrary":
        path = Path(source)
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
        if not isinstance(data, Mapping):
            raise ValueError("Prompt library YAML must deserialize to a mapping.")
        return cls.from_mapping(data)

    def section(self, name: str) -> Mapping[str, Any]:
        value = self.sections.get(name)
        return value if isinstance(value, Mapping) else MappingProxyType({})

    def text(self, section: str, key: str, default: str = "") -> str:
        value = self.section(section).get(key)
        return default if value is None else str(value)


@lru_cache(maxsize=1)
def default_prompt_library() -> PromptLibrary:
    """Load the bundled ``prompts.yaml`` once per process."""
    return PromptLibrary.from_yaml(DEFAULT_PROMPTS_PATH)


class PagePromptBuilder:
    """
    Renders the prompt for each page type from a :class:`PromptLibrary`.

    Parameters
    ----------
    library:
        Prompt fragments to render from. Defaults to the bundled library.
    """

    def __init__(self, library: PromptLibrary | None = None) -> None:
        self._library = library or default_prompt_library()

    @property
    def library(self) -> PromptLibrary:
        return self._library

    def build_copyright_page_prompt(self, child_name: str, character_name: str) -> str:
        main_text = replace_placeholders(
            self._library.text("copyright_page", "main_text"),
            {"CHILD_NAME": child_name, "CHARACTER_NAME": character_name},
        )
        footer_text = self._library.text("copyright_page", "footer_text")
        return fill_fields(
            self._library.text("copyright_page", "base_prompt"),
            mainText=main_text,
            footerText=footer_text,
        )

    def build_dedication_page_prompt(self, dedication_message: str) -> str:
        return fill_fields(
            self._library.text("dedication_page", "base_prompt"),
            dedicationMessage=dedication_message,
        )

    def build_story_page_prompt(
        self,
        page_number: int,
        story_text: str,
        character_action: str,
        scene_description: str,
    ) -> str:
        return fill_fields(
            self._library.text("story_page", "base_prompt"),
            pageNumber=page_number,
            storyText=story_text,
            characterAction=character_action,
            sceneDescription=scene_description,
        )

    def build_last_word_page_prompt(self, child_name: str) -> str:
        message = replace_placeholders(
            self._library.text("last_word_page", "message"),
            {"CHILD_NAME": child_name},
        )
        return fill_fields(self._library.text("last_word_page", "base_prompt"), message=message)

    def generate_character_action(self, page_number: int) -> str:
        """Pose/attitude of the character for a given page of the story arc."""
        actions = self._library.section("character_actions")
        action = actions.get(page_number)
        if action is None:
            action = actions.get("default", DEFAULT_CHARACTER_ACTION)
        return str(action)

    def generate_scene_description(
        self,
        page_number: int,
        story_world: StoryWorld | str | None,
        story_text: str | None = None,
    ) -> str:
        """
        Describe the backdrop for ``page_number`` in ``story_world``.

        Unknown worlds use the forest table; pages without an entry get a
        generic description. Non-blank ``story_text`` is appended as context,
        truncated to :data:`STORY_CONTEXT_LIMIT` characters.
        """
        world = StoryWorld.parse(story_world)
        world_key = world.value if isinstance(world, StoryWorld) else world
        scenes = self._library.section("world_scenes")
        descriptions = scenes.get(world_key)
        if not isinstance(descriptions, Mapping):
            descriptions = scenes.get(StoryWorld.FOREST.value, MappingProxyType({}))

        description = descriptions.get(page_number)
        if description is None:
            description = f"Scene {page_number} in {world_key}"

        if story_text and story_text.strip():
            excerpt = (
                story_text[:STORY_CONTEXT_LIMIT] + "..."
                if len(story_text) > STORY_CONTEXT_LIMIT
                else story_text
            )
            return f"{description}. Story context: {excerpt}"

        return str(description)
