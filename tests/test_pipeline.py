"""
Book Pipeline Tests
===================
End-to-end runs of the orchestrator against a fake backend.
"""

import pytest
import requests
import yaml

from conftest import FakeResponse, FakeSession, RecordingSink, composite_ok, edit_ok
from drawtopia.ai_generation import BackCoverCompositor, ImageGenerationClient
from drawtopia.pipeline import (
    BookPagesOrchestrator,
    BookRequest,
    PageIssue,
    generate_all_book_pages,
)
from drawtopia.story_generation import BookTemplate, PagePromptBuilder, StoryPage

CHARACTER = "https://cdn.test/character.png"


def _composite_from_template(path, body):
    # https://cdn.test/story-page-2.png -> https://cdn.test/out/story-page-2.png?token=abc
    url = body["template_cover_url"].replace("cdn.test/", "cdn.test/out/")
    return composite_ok(url + "?token=abc")


def _edit_from_template(path, body):
    url = body["image_url"].replace("cdn.test/", "cdn.test/out/")
    return edit_ok(url + "?token=abc")


def _back_cover_ok(path, body):
    return FakeResponse(payload={"success": True, "url": "https://cdn.test/out/back.png?sig=1"})


@pytest.fixture
def happy_session(session: FakeSession) -> FakeSession:
    session.routes["/generate-cover-image"] = _composite_from_template
    session.routes["/edit-image"] = _edit_from_template
    session.routes["/overlay-back-cover/"] = _back_cover_ok
    return session


@pytest.fixture
def orchestrator(settings, session) -> BookPagesOrchestrator:
    return BookPagesOrchestrator(
        settings=settings,
        image_client=ImageGenerationClient(settings=settings, session=session),
        back_cover_compositor=BackCoverCompositor(settings=settings, session=session),
    )


def _request(template, pages, **overrides) -> BookRequest:
    fields = {
        "book_template": template,
        "character_image_url": CHARACTER,
        "story_pages": pages,
        "story_world": "forest",
        "child_name": "Ava",
        "character_name": "Sparky",
        "dedication_message": "For Ava",
    }
    fields.update(overrides)
    return BookRequest(**fields)


class TestFullBook:
    def test_all_pages_and_back_cover(self, orchestrator, happy_session, template, story_pages):
        result = orchestrator.generate_all_book_pages(_request(template, story_pages))

        assert result.success
        assert result.error is None
        assert result.story_page_image_urls == [
            "https://cdn.test/out/story-page-1.png",
            "https://cdn.test/out/story-page-2.png",
            "https://cdn.test/out/story-page-3.png",
        ]
        assert result.back_cover_image_url == "https://cdn.test/out/back.png"
        assert result.copyright_image_url == "https://cdn.test/out/copyright.png"
        assert result.dedication_image_url == "https://cdn.test/out/dedication.png"
        assert result.last_word_image_url == "https://cdn.test/out/last.png"
        assert result.skipped_pages == []

    def test_calls_are_sequenced(self, orchestrator, happy_session, template, story_pages):
        orchestrator.generate_all_book_pages(_request(template, story_pages))
        assert happy_session.paths() == [
            "/edit-image",
            "/edit-image",
            "/generate-cover-image",
            "/generate-cover-image",
            "/generate-cover-image",
            "/edit-image",
            "/overlay-back-cover/",
        ]

    def test_back_cover_gets_logo_and_barcode(self, orchestrator, happy_session, template, story_pages):
        orchestrator.generate_all_book_pages(_request(template, story_pages))
        _, body = happy_session.calls[-1]
        assert body["image_url"] == "https://cdn.test/back.png"
        assert body["logo_url"] == "https://app.test/assets/logo.png"
        assert body["barcode_isbn"] == "978-0-000-00000-0"

    def test_one_failed_page_is_best_effort(self, orchestrator, session, template, story_pages):
        session.routes["/generate-cover-image"] = [
            composite_ok("https://cdn.test/out/1.png"),
            FakeResponse(status_code=500),
            composite_ok("https://cdn.test/out/3.png"),
        ]
        session.routes["/edit-image"] = _edit_from_template
        session.routes["/overlay-back-cover/"] = _back_cover_ok

        result = orchestrator.generate_all_book_pages(_request(template, story_pages))

        assert result.success
        assert result.story_page_image_urls == ["https://cdn.test/out/1.png", "https://cdn.test/out/3.png"]
        assert result.skipped_pages == [
            PageIssue(2, "generation_failed", "Failed to generate image: 500")
        ]

    def test_network_error_on_a_page_does_not_stop_the_run(
        self, orchestrator, session, template, story_pages
    ):
        session.routes["/generate-cover-image"] = [
            requests.ConnectionError("reset by peer"),
            composite_ok("https://cdn.test/out/2.png"),
        ]
        session.routes["/edit-image"] = _edit_from_template
        session.routes["/overlay-back-cover/"] = _back_cover_ok

        result = orchestrator.generate_all_book_pages(_request(template, story_pages))

        assert result.success
        assert result.story_page_image_urls == ["https://cdn.test/out/2.png", "https://cdn.test/out/2.png"]
        assert [issue.page_number for issue in result.skipped_pages] == [1]

    def test_back_cover_failure_is_not_fatal(self, orchestrator, session, template, story_pages):
        session.routes["/generate-cover-image"] = _composite_from_template
        session.routes["/edit-image"] = _edit_from_template
        session.routes["/overlay-back-cover/"] = FakeResponse(status_code=500)

        result = orchestrator.generate_all_book_pages(_request(template, story_pages))

        assert result.success
        assert result.back_cover_image_url is None
        assert len(result.story_page_image_urls) == 3

    def test_no_dedication_message_skips_dedication(self, orchestrator, happy_session, template, story_pages):
        result = orchestrator.generate_all_book_pages(
            _request(template, story_pages, dedication_message="")
        )
        assert result.dedication_image_url is None
        edited = [body["image_url"] for path, body in happy_session.calls if path == "/edit-image"]
        assert "https://cdn.test/dedication.png" not in edited

    def test_template_without_extras(self, orchestrator, happy_session, story_pages):
        bare = BookTemplate(
            id="bare",
            name="Bare",
            story_page_images=("https://cdn.test/p1.png", "https://cdn.test/p2.png", "https://cdn.test/p3.png"),
        )
        result = orchestrator.generate_all_book_pages(_request(bare, story_pages))
        assert result.success
        assert len(result.story_page_image_urls) == 3
        assert result.back_cover_image_url is None
        assert set(happy_session.paths()) == {"/generate-cover-image"}


class TestStoryPagesOnly:
    def test_back_cover_is_never_composed(self, orchestrator, happy_session, template, story_pages):
        result = orchestrator.generate_all_book_pages(
            _request(template, story_pages, story_pages_only=True)
        )
        assert result.success
        assert len(result.story_page_image_urls) == 3
        assert result.back_cover_image_url is None
        assert result.copyright_image_url is None
        assert happy_session.paths() == ["/generate-cover-image"] * 3

    def test_progress_spans_ten_to_hundred(self, orchestrator, happy_session, template, story_pages):
        sink = RecordingSink()
        orchestrator.generate_all_book_pages(
            _request(template, story_pages, story_pages_only=True), progress=sink
        )
        assert sink.percents[0] == 10
        assert sink.percents[-1] == 100
        assert sink.percents[1:4] == pytest.approx([40, 70, 100])


class TestPreconditions:
    def test_empty_story_pages(self, orchestrator, session, template):
        result = orchestrator.generate_all_book_pages(_request(template, []))
        assert not result.success
        assert result.error == "Story pages are required"
        assert session.calls == []

    def test_missing_character_image(self, orchestrator, session, template, story_pages):
        result = orchestrator.generate_all_book_pages(
            _request(template, story_pages, character_image_url="")
        )
        assert not result.success
        assert result.error == "Character image URL is required"
        assert session.calls == []

    def test_missing_template(self, orchestrator, session, story_pages):
        result = orchestrator.generate_all_book_pages(_request(None, story_pages))
        assert not result.success
        assert result.error == "Book template is required"
        assert session.calls == []

    def test_pages_without_text(self, orchestrator, session, template):
        pages = [StoryPage(1, ""), StoryPage(2, "   "), None]
        result = orchestrator.generate_all_book_pages(_request(template, pages))
        assert not result.success
        assert result.error == "Story pages must have text content"
        assert session.calls == []


class TestPageMatching:
    def test_fewer_template_images_than_pages(self, orchestrator, happy_session, story_pages):
        short = BookTemplate(
            id="short",
            name="Short",
            story_page_images=("https://cdn.test/p1.png", "https://cdn.test/p2.png"),
        )
        result = orchestrator.generate_all_book_pages(
            _request(short, story_pages, story_pages_only=True)
        )
        assert result.success
        assert result.story_page_image_urls == ["https://cdn.test/out/p1.png", "https://cdn.test/out/p2.png"]
        assert result.skipped_pages == [PageIssue(3, "no_template_image")]

    def test_blank_pages_are_filtered_before_matching(self, orchestrator, happy_session, template):
        pages = [StoryPage(1, "First"), StoryPage(2, " "), StoryPage(3, "Third")]
        result = orchestrator.generate_all_book_pages(
            _request(template, pages, story_pages_only=True)
        )
        templates_used = [body["template_cover_url"] for _, body in happy_session.calls]
        assert templates_used == ["https://cdn.test/story-page-1.png", "https://cdn.test/story-page-2.png"]
        assert len(result.story_page_image_urls) == 2
        assert result.skipped_pages == []

    def test_template_image_follows_position_not_page_number(self, orchestrator, happy_session, template):
        pages = [StoryPage(3, "Third comes first"), StoryPage(1, "First comes second")]
        orchestrator.generate_all_book_pages(_request(template, pages, story_pages_only=True))

        first_path, first_body = happy_session.calls[0]
        assert first_body["template_cover_url"] == "https://cdn.test/story-page-1.png"
        assert "page 3" in first_body["prompt"]
        assert first_body["character_image_url"] == CHARACTER

    def test_missing_page_number_uses_position(self, orchestrator, happy_session, template):
        pages = [StoryPage(0, "No number")]
        orchestrator.generate_all_book_pages(_request(template, pages, story_pages_only=True))
        assert "page 1" in happy_session.calls[0][1]["prompt"]

    def test_output_order_matches_input_order(self, orchestrator, happy_session, template, story_pages):
        result = orchestrator.generate_all_book_pages(_request(template, story_pages))
        numbers = [url.rsplit("-", 1)[-1] for url in result.story_page_image_urls]
        assert numbers == ["1.png", "2.png", "3.png"]


class TestProgress:
    def test_full_book_progress_is_monotonic_and_bounded(
        self, orchestrator, happy_session, template, story_pages
    ):
        sink = RecordingSink()
        orchestrator.generate_all_book_pages(_request(template, story_pages), progress=sink)

        percents = sink.percents
        assert percents == sorted(percents)
        assert all(0 <= percent <= 100 for percent in percents)
        assert percents[:3] == [10, 20, 30]
        assert percents[3:6] == pytest.approx([30 + 40 / 3, 30 + 80 / 3, 70])
        assert percents[6:] == [75, 85, 100]
        assert sink.events[-1][0] == "Complete!"

    def test_page_labels_use_page_numbers(self, orchestrator, happy_session, template, story_pages):
        sink = RecordingSink()
        orchestrator.generate_all_book_pages(_request(template, story_pages), progress=sink)
        labels = [label for label, _ in sink.events]
        assert "Generating story page 2..." in labels

    def test_no_progress_on_precondition_failure(self, orchestrator, session, template):
        sink = RecordingSink()
        orchestrator.generate_all_book_pages(_request(template, []), progress=sink)
        assert sink.events == []


class _ExplodingPrompts(PagePromptBuilder):
    def build_copyright_page_prompt(self, child_name, character_name):
        raise RuntimeError("template data is corrupt")


class _FlakyPrompts(PagePromptBuilder):
    def generate_scene_description(self, page_number, story_world, story_text=None):
        if page_number == 2:
            raise KeyError("scene")
        return super().generate_scene_description(page_number, story_world, story_text)


class TestUnexpectedErrors:
    def test_unexpected_error_is_returned_not_raised(self, settings, happy_session, template, story_pages):
        orchestrator = BookPagesOrchestrator(
            settings=settings,
            image_client=ImageGenerationClient(settings=settings, session=happy_session),
            back_cover_compositor=BackCoverCompositor(settings=settings, session=happy_session),
            prompt_builder=_ExplodingPrompts(),
        )
        result = orchestrator.generate_all_book_pages(_request(template, story_pages))
        assert not result.success
        assert result.error == "template data is corrupt"

    def test_error_while_building_one_page_is_recorded(
        self, settings, happy_session, template, story_pages
    ):
        orchestrator = BookPagesOrchestrator(
            settings=settings,
            image_client=ImageGenerationClient(settings=settings, session=happy_session),
            back_cover_compositor=BackCoverCompositor(settings=settings, session=happy_session),
            prompt_builder=_FlakyPrompts(),
        )
        result = orchestrator.generate_all_book_pages(
            _request(template, story_pages, story_pages_only=True)
        )
        assert result.success
        assert len(result.story_page_image_urls) == 2
        assert [(issue.page_number, issue.reason) for issue in result.skipped_pages] == [(2, "error")]


class TestFunctionalEntryPoint:
    def test_accepts_mappings(self, orchestrator, happy_session, template):
        result = generate_all_book_pages(
            book_template=template,
            character_image_url=CHARACTER,
            story_pages=[{"pageNumber": 1, "text": "Hello"}, {"pageNumber": 2, "text": "World"}],
            story_world="forest",
            story_pages_only=True,
            orchestrator=orchestrator,
        )
        assert result.success
        assert len(result.story_page_image_urls) == 2

    def test_malformed_pages_become_an_error_result(self, orchestrator, session, template):
        result = generate_all_book_pages(
            book_template=template,
            character_image_url=CHARACTER,
            story_pages=[{"pageNumber": "one", "text": "Hello"}],
            orchestrator=orchestrator,
        )
        assert not result.success
        assert "Invalid page number" in result.error
        assert session.calls == []

    def test_bad_environment_becomes_an_error_result(self, monkeypatch, template):
        monkeypatch.setenv("DRAWTOPIA_REQUEST_TIMEOUT", "thirty")
        result = generate_all_book_pages(
            book_template=template,
            character_image_url=CHARACTER,
            story_pages=[StoryPage(1, "hi")],
        )
        assert not result.success
        assert "DRAWTOPIA_REQUEST_TIMEOUT" in result.error


class TestBookRequest:
    def test_from_yaml_file(self, tmp_path):
        path = tmp_path / "request.yaml"
        path.write_text(
            yaml.safe_dump(
                {
                    "book_template": {
                        "id": "t1",
                        "name": "Reef",
                        "story_world": "underwater",
                        "story_page_images": ["https://cdn.test/1.png"],
                    },
                    "character_image_url": CHARACTER,
                    "story_pages": [{"pageNumber": 1, "text": "Splash"}],
                    "child_name": "Ava",
                    "story_pages_only": True,
                }
            ),
            encoding="utf-8",
        )
        request = BookRequest.from_file(path)
        assert request.book_template.id == "t1"
        assert request.story_world == "underwater"
        assert request.story_pages == [StoryPage(1, "Splash")]
        assert request.story_pages_only is True

    def test_unsupported_extension(self, tmp_path):
        path = tmp_path / "request.txt"
        path.write_text("{}", encoding="utf-8")
        with pytest.raises(ValueError):
            BookRequest.from_file(path)

    def test_result_serializes_to_yaml(self, orchestrator, happy_session, template, story_pages):
        result = orchestrator.generate_all_book_pages(_request(template, story_pages))
        data = yaml.safe_load(result.to_yaml())
        assert data["success"] is True
        assert len(data["story_page_image_urls"]) == 3
        assert data["skipped_pages"] == []
