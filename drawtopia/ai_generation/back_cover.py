"""
Back-cover compositing: text overlay blocks and the remote overlay call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

import requests

from drawtopia.common.config import Settings
from drawtopia.common.http import post_json, read_json_object
from drawtopia.story_generation.prompting import PromptLibrary, default_prompt_library

from .image_service import GenerationResult

logger = logging.getLogger(__name__)

OVERLAY_BACK_COVER_PATH = "/overlay-back-cover/"

ALIGNMENTS = ("left", "center", "right")


@dataclass(frozen=True)
class TextBlock:
    """
    One line or paragraph of text drawn onto the back cover.

    ``y_position`` is the vertical position as a fraction of image height.
    """

    text: str
    font_size: int
    color_hex: str
    y_position: float
    alignment: str = "center"
    shadow: bool = False
    shadow_color: str | None = None
    shadow_offset: tuple[int, int] | None = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.y_position <= 1.0:
            raise ValueError(f"y_position must be within [0, 1], got {self.y_position}")
        if self.alignment not in ALIGNMENTS:
            raise ValueError(
                f"alignment must be one of {', '.join(ALIGNMENTS)}, got {self.alignment!r}"
            )
        if not self.color_hex.startswith("#"):
            raise ValueError(f"color_hex must be a hex color, got {self.color_hex!r}")

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "text": self.text,
            "font_size": self.font_size,
            "color_hex": self.color_hex,
            "y_position": self.y_position,
            "alignment": self.alignment,
            "shadow": self.shadow,
        }
        if self.shadow and self.shadow_color:
            payload["shadow_color"] = self.shadow_color
        if self.shadow and self.shadow_offset:
            payload["shadow_offset"] = list(self.shadow_offset)
        return payload


# Literal fallbacks used when the prompt library omits a block or a field.
_FALLBACK_BLOCKS: dict[str, dict[str, Any]] = {
    "title_1": {"text": "Every Child", "font_size": 64, "color_hex": "#FFFFFF", "y_position": 0.12},
    "title_2": {"text": "Is a Hero", "font_size": 64, "color_hex": "#FFD93D", "y_position": 0.2},
    "description": {
        "text": "A one-of-a-kind adventure created from a child's own drawing.",
        "font_size": 30,
        "color_hex": "#FFFFFF",
        "y_position": 0.38,
    },
    "tagline": {
        "text": "Where every drawing becomes a story",
        "font_size": 36,
        "color_hex": "#FFD93D",
        "y_position": 0.55,
    },
    "website": {
        "text": "www.drawtopia.com",
        "font_size": 28,
        "color_hex": "#FFFFFF",
        "y_position": 0.78,
        "alignment": "left",
    },
    "isbn": {
        "text": "ISBN 978-0-000-00000-0",
        "font_size": 22,
        "color_hex": "#FFFFFF",
        "y_position": 0.86,
        "alignment": "right",
    },
    "age_range": {
        "text": "Ages 3-10",
        "font_size": 24,
        "color_hex": "#FFFFFF",
        "y_position": 0.92,
        "alignment": "left",
    },
}


def _block_from_config(config: Mapping[str, Any] | None, fallback: Mapping[str, Any]) -> TextBlock:
    source = config if isinstance(config, Mapping) else {}

    def pick(key: str, default: Any = None) -> Any:
        value = source.get(key)
        return fallback.get(key, default) if value is None else value

    offset = pick("shadow_offset")
    return TextBlock(
        text=str(pick("text", "")),
        font_size=int(pick("font_size", 24)),
        color_hex=str(pick("color_hex", "#FFFFFF")),
        y_position=float(pick("y_position", 0.5)),
        alignment=str(pick("alignment", "center")),
        shadow=bool(pick("shadow", False)),
        shadow_color=pick("shadow_color"),
        shadow_offset=(int(offset[0]), int(offset[1])) if offset else None,
    )


def build_back_cover_text_blocks(library: PromptLibrary | None = None) -> list[TextBlock]:
    """
    Fixed back-cover layout: two title lines, description, tagline, website,
    ISBN placeholder and age range, top to bottom.
    """
    section = (library or default_prompt_library()).section("back_cover")
    title_lines = section.get("title_lines") or ()

    blocks: list[TextBlock] = []
    for index, key in enumerate(("title_1", "title_2")):
        config = title_lines[index] if index < len(title_lines) else None
        blocks.append(_block_from_config(config, _FALLBACK_BLOCKS[key]))
    for key in ("description", "tagline", "website", "isbn", "age_range"):
        blocks.append(_block_from_config(section.get(key), _FALLBACK_BLOCKS[key]))
    return blocks


class BackCoverCompositor:
    """
    Sends a back-cover template and its text layout to the overlay endpoint.
    """

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        session: requests.Session | None = None,
        library: PromptLibrary | None = None,
    ) -> None:
        self._settings = settings or Settings.from_env()
        self._session = session or requests.Session()
        self._library = library

    def text_blocks(self) -> list[TextBlock]:
        return build_back_cover_text_blocks(self._library)

    def compose(
        self,
        image_url: str,
        text_blocks: Sequence[TextBlock] | None = None,
        *,
        logo_url: str | None = None,
        barcode_isbn: str | None = None,
    ) -> GenerationResult:
        blocks = list(text_blocks) if text_blocks is not None else self.text_blocks()
        payload: dict[str, Any] = {
            "image_url": image_url,
            "text_blocks": [block.to_payload() for block in blocks],
        }
        if logo_url:
            payload["logo_url"] = logo_url
        if barcode_isbn:
            payload["barcode_isbn"] = barcode_isbn

        try:
            response = post_json(
                self._session,
                self._settings.endpoint(OVERLAY_BACK_COVER_PATH),
                payload,
                timeout=self._settings.request_timeout,
            )
            if not response.ok:
                return GenerationResult.failed(
                    f"Back cover overlay failed with status {response.status_code}"
                )
            data = read_json_object(response)
        except (requests.RequestException, ValueError) as exc:
            logger.error("Error composing back cover: %s", exc)
            return GenerationResult.failed(f"Back cover overlay failed: {exc}")

        if data.get("success") and data.get("url"):
            return GenerationResult.ok(str(data["url"]))
        return GenerationResult.failed(
            str(data.get("message") or "Back cover overlay returned no image URL")
        )
