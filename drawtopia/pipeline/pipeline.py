"""
Orchestrates the Drawtopia book-page pipeline from template and story text to page images.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping, Protocol, Sequence

import yaml

from drawtopia.ai_generation import BackCoverCompositor, GenerationResult, ImageGenerationClient
from drawtopia.common.config import Settings
from drawtopia.common.errors import BookGenerationError
from drawtopia.story_generation import (
    BookTemplate,
    PagePromptBuilder,
    StoryPage,
    StoryWorld,
    coerce_story_pages,
)

logger = logging.getLogger(__name__)


class ProgressSink(Protocol):
    """Receives human-readable progress labels with a percentage in [0, 100]."""

    def on_progress(self, label: str, percent: float) -> None: ...


@dataclass(frozen=True)
class ProgressPlan:
    """Percentages reported at each stage of a run."""

    copyright_page: float
    dedication_page: float
    story_pages_start: float
    story_pages_end: float
    last_word_page: float
    back_cover: float
    complete: float = 100.0

    def story_page(self, index: int, total: int) -> float:
        span = self.story_pages_end - self.story_pages_start
        return self.story_pages_start + ((index + 1) / total) * span


FULL_BOOK_PROGRESS = ProgressPlan(
    copyright_page=10,
    dedication_page=20,
    story_pages_start=30,
    story_pages_end=70,
    last_word_page=75,
    back_cover=85,
)

STORY_PAGES_ONLY_PROGRESS = ProgressPlan(
    copyright_page=10,
    dedication_page=10,
    story_pages_start=10,
    story_pages_end=100,
    last_word_page=100,
    back_cover=100,
)


@dataclass(frozen=True)
class PageIssue:
    """A page that produced no image, and why."""

    page_number: int
    reason: str
    detail: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"page_number": self.page_number, "reason": self.reason, "detail": self.detail}


@dataclass
class BookPagesResult:
    """Aggregated output of one pipeline run."""

    success: bool = False
    story_page_image_urls: list[str] = field(default_factory=list)
    copyright_image_url: str | None = None
    dedication_image_url: str | None = None
    last_word_image_url: str | None = None
    back_cover_image_url: str | None = None
    skipped_pages: list[PageIssue] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "copyright_image_url": self.copyright_image_url,
            "dedication_image_url": self.dedication_image_url,
            "story_page_image_urls": list(self.story_page_image_urls),
            "last_word_image_url": self.last_word_image_url,
            "back_cover_image_url": self.back_cover_image_url,
            "skipped_pages": [issue.to_dict() for issue in self.skipped_pages],
            "error": self.error,
        }

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), sort_keys=False, allow_unicode=True)


@dataclass(frozen=True)
class BookRequest:
    """Everything one run of the pipeline needs from its caller."""

    book_template: BookTemplate | None
    character_image_url: str | None
    story_pages: Sequence[StoryPage | None]
    story_world: StoryWorld | str | None = None
    child_name: str = ""
    character_name: str = ""
    dedication_message: str = ""
    story_pages_only: bool = False

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "BookRequest":
        """
        Build a request from a YAML/JSON document.

        Expected keys: ``book_template`` (mapping), ``character_image_url``,
        ``story_pages`` (list of mappings) and the optional personalisation fields.
        """
        if not isinstance(payload, Mapping):
            raise ValueError("Book request payload must be a mapping.")

        template_data = payload.get("book_template")
        template = BookTemplate.from_mapping(template_data) if template_data else None
        story_world = payload.get("story_world") or (template.story_world if template else None)

        return cls(
            book_template=template,
            character_image_url=payload.get("character_image_url"),
            story_pages=coerce_story_pages(payload.get("story_pages") or []),
            story_world=StoryWorld.parse(story_world) if story_world else None,
            child_name=str(payload.get("child_name") or ""),
            character_name=str(payload.get("character_name") or ""),
            dedication_message=str(payload.get("dedication_message") or ""),
            story_pages_only=bool(payload.get("story_pages_only", False)),
        )

    @classmethod
    def from_file(cls, source: str | Path) -> "BookRequest":
        path = Path(source)
        text = path.read_text(encoding="utf-8")
        if path.suffix.lower() in {".yaml", ".yml"}:
            data = yaml.safe_load(text)
        elif path.suffix.lower() == ".json":
            import json

            data = json.loads(text)
        else:
            raise ValueError("Unsupported book request format. Use YAML or JSON.")
        return cls.from_mapping(data)


class BookPagesOrchestrator:
    """
    High-level coordinator that turns a book template and story text into page images.

    Pages are generated one at a time. A page that cannot be produced is
    recorded in :attr:`BookPagesResult.skipped_pages` and the run carries on;
    only invalid input fails the run as a whole.
    """

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        image_client: ImageGenerationClient | None = None,
        back_cover_compositor: BackCoverCompositor | None = None,
        prompt_builder: PagePromptBuilder | None = None,
    ) -> None:
        self._settings = settings or Settings.from_env()
        self._prompts = prompt_builder or PagePromptBuilder()
        self._image_client = image_client or ImageGenerationClient(settings=self._settings)
        self._back_cover = back_cover_compositor or BackCoverCompositor(
            settings=self._settings,
            library=self._prompts.library,
        )

    def generate_all_book_pages(
        self,
        request: BookRequest,
        *,
        progress: ProgressSink | None = None,
    ) -> BookPagesResult:
        """
        Run the whole pipeline. Never raises; failures come back in the result.
        """
        result = BookPagesResult()
        try:
            template, valid_pages = self._validate(request)
            self._run(request, template, valid_pages, result, progress)
            result.success = True
        except BookGenerationError as exc:
            logger.error("Cannot generate book pages: %s", exc)
            result.error = str(exc)
        except Exception as exc:
            logger.exception("Error generating book pages")
            result.success = False
            result.error = str(exc) or exc.__class__.__name__
        return result

    @staticmethod
    def _validate(request: BookRequest) -> tuple[BookTemplate, list[StoryPage]]:
        if not request.book_template:
            raise BookGenerationError("Book template is required")
        if not request.character_image_url:
            raise BookGenerationError("Character image URL is required")
        if not request.story_pages:
            raise BookGenerationError("Story pages are required")

        valid_pages = [page for page in request.story_pages if page is not None and page.has_text]
        if not valid_pages:
            raise BookGenerationError("Story pages must have text content")
        return request.book_template, valid_pages

    def _run(
        self,
        request: BookRequest,
        template: BookTemplate,
        valid_pages: list[StoryPage],
        result: BookPagesResult,
        progress: ProgressSink | None,
    ) -> None:
        plan = STORY_PAGES_ONLY_PROGRESS if request.story_pages_only else FULL_BOOK_PROGRESS
        story_world = request.story_world or template.story_world

        logger.info("Generating book pages for %d story pages", len(valid_pages))
        logger.debug("Book template %s fields: %s", template.id, template.summary())

        if not request.story_pages_only:
            self._notify(progress, "Generating copyright page...", plan.copyright_page)
            result.copyright_image_url = self._generate_copyright_page(request, template)

            self._notify(progress, "Generating dedication page...", plan.dedication_page)
            result.dedication_image_url = self._generate_dedication_page(request, template)

        self._notify(progress, "Generating story pages...", plan.story_pages_start)
        urls, issues = self._generate_story_pages(
            valid_pages,
            template=template,
            character_image_url=str(request.character_image_url),
            story_world=story_world,
            plan=plan,
            progress=progress,
        )
        result.story_page_image_urls = urls
        result.skipped_pages = issues
        logger.info("Generated %d out of %d story page images", len(urls), len(valid_pages))

        if not request.story_pages_only:
            self._notify(progress, "Generating final page...", plan.last_word_page)
            result.last_word_image_url = self._generate_last_word_page(request, template)

            self._notify(progress, "Generating back cover...", plan.back_cover)
            result.back_cover_image_url = self._compose_back_cover(template)

        self._notify(progress, "Complete!", plan.complete)

    def _generate_story_pages(
        self,
        pages: Sequence[StoryPage],
        *,
        template: BookTemplate,
        character_image_url: str,
        story_world: StoryWorld | str | None,
        plan: ProgressPlan,
        progress: ProgressSink | None,
    ) -> tuple[list[str], list[PageIssue]]:
        urls: list[str] = []
        issues: list[PageIssue] = []
        total = len(pages)

        for index, page in enumerate(pages):
            page_number = page.page_number or index + 1
            # Template art is matched by position in the filtered page list, not by page number.
            template_image = template.story_page_image(index)
            if not template_image:
                logger.warning("No template image for story page %d", page_number)
                issues.append(PageIssue(page_number, "no_template_image"))
                continue

            self._notify(
                progress,
                f"Generating story page {page_number}...",
                plan.story_page(index, total),
            )
            try:
                outcome = self._generate_story_page(
                    page,
                    page_number=page_number,
                    template_image=template_image,
                    character_image_url=character_image_url,
                    story_world=story_world,
                )
            except Exception as exc:
                logger.exception("Error generating story page %d", page_number)
                issues.append(PageIssue(page_number, "error", str(exc)))
                continue

            if outcome.success and outcome.url:
                urls.append(outcome.url)
                logger.info("Story page %d generated successfully", page_number)
            else:
                logger.error("Failed to generate story page %d: %s", page_number, outcome.error)
                issues.append(PageIssue(page_number, "generation_failed", outcome.error))

        return urls, issues

    def _generate_story_page(
        self,
        page: StoryPage,
        *,
        page_number: int,
        template_image: str,
        character_image_url: str,
        story_world: StoryWorld | str | None,
    ) -> GenerationResult:
        character_action = self._prompts.generate_character_action(page_number)
        scene_description = self._prompts.generate_scene_description(
            page_number, story_world, page.text
        )
        prompt = self._prompts.build_story_page_prompt(
            page_number, page.text, character_action, scene_description
        )
        return self._image_client.generate_with_two_templates(
            template_image, character_image_url, prompt
        )

    def _generate_copyright_page(self, request: BookRequest, template: BookTemplate) -> str | None:
        if not template.copyright_page_image:
            logger.warning("Copyright page template image not found in book template")
            return None

        prompt = self._prompts.build_copyright_page_prompt(
            request.child_name, request.character_name
        )
        return self._single_template_page(
            "copyright page", template.copyright_page_image, prompt
        )

    def _generate_dedication_page(self, request: BookRequest, template: BookTemplate) -> str | None:
        if not template.dedication_page_image:
            logger.warning("Dedication page template image not found in book template")
            return None
        if not request.dedication_message:
            logger.warning("No dedication message provided")
            return None

        prompt = self._prompts.build_dedication_page_prompt(request.dedication_message)
        return self._single_template_page(
            "dedication page", template.dedication_page_image, prompt
        )

    def _generate_last_word_page(self, request: BookRequest, template: BookTemplate) -> str | None:
        if not template.last_story_page_image:
            logger.warning("Last word page template image not found in book template")
            return None

        prompt = self._prompts.build_last_word_page_prompt(request.child_name)
        return self._single_template_page(
            "last word page", template.last_story_page_image, prompt
        )

    def _single_template_page(self, label: str, template_image: str, prompt: str) -> str | None:
        try:
            outcome = self._image_client.generate_with_single_template(template_image, prompt)
        except Exception:
            logger.exception("Error generating %s", label)
            return None

        if outcome.success and outcome.url:
            logger.info("%s generated: %s", label.capitalize(), outcome.url)
            return outcome.url
        logger.error("Failed to generate %s: %s", label, outcome.error)
        return None

    def _compose_back_cover(self, template: BookTemplate) -> str | None:
        if not template.back_cover_image:
            logger.warning("Back cover template image not found in book template")
            return None

        try:
            outcome = self._back_cover.compose(
                template.back_cover_image,
                logo_url=self._settings.logo_url,
                barcode_isbn=self._settings.barcode_isbn,
            )
        except Exception:
            logger.exception("Error composing back cover")
            return None

        if outcome.success and outcome.url:
            logger.info("Back cover generated: %s", outcome.url)
            return outcome.url
        logger.error("Failed to generate back cover: %s", outcome.error)
        return None

    @staticmethod
    def _notify(sink: ProgressSink | None, label: str, percent: float) -> None:
        if sink is not None:
            sink.on_progress(label, max(0.0, min(100.0, float(percent))))


def generate_all_book_pages(
    *,
    book_template: BookTemplate | None,
    character_image_url: str | None,
    story_pages: Iterable[StoryPage | Mapping[str, Any] | None],
    story_world: StoryWorld | str | None = None,
    child_name: str = "",
    character_name: str = "",
    dedication_message: str = "",
    story_pages_only: bool = False,
    progress: ProgressSink | None = None,
    orchestrator: BookPagesOrchestrator | None = None,
) -> BookPagesResult:
    """
    Functional entry point mirroring :meth:`BookPagesOrchestrator.generate_all_book_pages`.

    Malformed story-page mappings are reported in the result rather than raised.
    """
    try:
        pages = coerce_story_pages(story_pages or [])
    except (TypeError, ValueError) as exc:
        logger.error("Invalid story pages: %s", exc)
        return BookPagesResult(success=False, error=str(exc))

    request = BookRequest(
        book_template=book_template,
        character_image_url=character_image_url,
        story_pages=pages,
        story_world=story_world,
        child_name=child_name,
        character_name=character_name,
        dedication_message=dedication_message,
        story_pages_only=story_pages_only,
    )
    try:
        runner = orchestrator or BookPagesOrchestrator()
    except Exception as exc:
        logger.exception("Cannot set up the book pages pipeline")
        return BookPagesResult(success=False, error=str(exc) or exc.__class__.__name__)
    return runner.generate_all_book_pages(request, progress=progress)
