"""
Structured representations of book templates and the story pages laid over them.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping, Sequence

from drawtopia.common.errors import TemplateNotFoundError


class StoryWorld(str, Enum):
    """Theme of a template set."""

    FOREST = "forest"
    UNDERWATER = "underwater"
    OUTERSPACE = "outerspace"

    @classmethod
    def parse(cls, value: Any) -> "StoryWorld | str":
        """
        Resolve ``value`` to a known world.

        Unknown keys are returned as the cleaned string so callers can still
        report which world was asked for.
        """
        if isinstance(value, StoryWorld):
            return value

        key = str(value or "").strip().lower().replace(" ", "").replace("_", "")
        if key == "space":
            return cls.OUTERSPACE
        try:
            return cls(key)
        except ValueError:
            return str(value or "").strip()


def _coerce_optional_str(value: Any) -> str | None:
    if value is None:
        return None

    text = str(value).strip()
    return text or None


def _normalize_image_list(value: Any) -> tuple[str | None, ...]:
    if value is None:
        return ()

    if isinstance(value, str) or not isinstance(value, Sequence):
        raise TypeError("story_page_images must be a sequence of URLs.")

    # Positions matter: a gap keeps its slot so later pages stay aligned.
    return tuple(_coerce_optional_str(item) for item in value)


@dataclass(frozen=True)
class BookTemplate:
    """
    A themed set of pre-authored background images for one book.
    """

    id: str
    name: str
    story_world: StoryWorld | str | None = None
    cover_image: str | None = None
    copyright_page_image: str | None = None
    dedication_page_image: str | None = None
    story_page_images: tuple[str | None, ...] = field(default_factory=tuple)
    last_story_page_image: str | None = None
    back_cover_image: str | None = None
    created_at: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "BookTemplate":
        """Create a template from a ``book_templates`` row."""
        if not isinstance(data, Mapping):
            raise TypeError("Book template data must be a mapping.")

        template_id = _coerce_optional_str(data.get("id"))
        if template_id is None:
            raise ValueError("Book template requires an 'id'.")

        world_value = data.get("story_world")
        return cls(
            id=template_id,
            name=_coerce_optional_str(data.get("name")) or template_id,
            story_world=StoryWorld.parse(world_value) if world_value else None,
            cover_image=_coerce_optional_str(data.get("cover_image")),
            copyright_page_image=_coerce_optional_str(data.get("copyright_page_image")),
            dedication_page_image=_coerce_optional_str(data.get("dedication_page_image")),
            story_page_images=_normalize_image_list(data.get("story_page_images")),
            last_story_page_image=_coerce_optional_str(data.get("last_story_page_image")),
            back_cover_image=_coerce_optional_str(data.get("back_cover_image")),
            created_at=_coerce_optional_str(data.get("created_at")),
        )

    def story_page_image(self, index: int) -> str | None:
        """Template image at zero-based ``index``, or ``None`` when absent."""
        if 0 <= index < len(self.story_page_images):
            return self.story_page_images[index]
        return None

    def summary(self) -> dict[str, Any]:
        return {
            "has_copyright_page": bool(self.copyright_page_image),
            "has_dedication_page": bool(self.dedication_page_image),
            "has_last_word_page": bool(self.last_story_page_image),
            "has_back_cover": bool(self.back_cover_image),
            "story_pages_count": len(self.story_page_images),
        }


@dataclass(frozen=True)
class StoryPage:
    """A single page of story text."""

    page_number: int
    text: str

    @property
    def has_text(self) -> bool:
        return bool(self.text and self.text.strip())

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "StoryPage":
        if not isinstance(data, Mapping):
            raise TypeError("Story page data must be a mapping.")

        raw_number = data.get("page_number", data.get("pageNumber"))
        try:
            page_number = int(raw_number) if raw_number not in (None, "") else 0
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid page number: {raw_number!r}") from exc

        text = data.get("text")
        return cls(page_number=page_number, text="" if text is None else str(text))


def coerce_story_pages(pages: Iterable[StoryPage | Mapping[str, Any] | None]) -> list[StoryPage | None]:
    """
    Accept story pages as dataclasses or mappings; ``None`` entries are preserved.
    """
    coerced: list[StoryPage | None] = []
    for page in pages:
        if page is None or isinstance(page, StoryPage):
            coerced.append(page)
        else:
            coerced.append(StoryPage.from_mapping(page))
    return coerced


def select_template_for_world(
    templates: Iterable[BookTemplate],
    story_world: StoryWorld | str,
    *,
    rng: random.Random | None = None,
) -> BookTemplate:
    """
    Pick a random template for ``story_world`` among those with a cover image.
    """
    world = StoryWorld.parse(story_world)
    candidates = [
        template
        for template in templates
        if template.cover_image and StoryWorld.parse(template.story_world) == world
    ]
    if not candidates:
        label = world.value if isinstance(world, StoryWorld) else world
        raise TemplateNotFoundError(f"No templates found for story world: {label}")

    chooser = rng or random
    return chooser.choice(candidates)
