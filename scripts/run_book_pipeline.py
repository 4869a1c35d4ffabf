"""
CLI to run the Drawtopia book-page pipeline end-to-end.

Usage:
    python scripts/run_book_pipeline.py \
        --request book_request.yaml \
        --output book_pages.yaml

The request file holds ``book_template``, ``character_image_url``, ``story_pages``
and optional ``child_name``, ``character_name``, ``dedication_message``,
``story_world`` and ``story_pages_only`` keys.

Environment variables (a local .env file is read first):
    DRAWTOPIA_BACKEND_URL      - image backend origin
    DRAWTOPIA_PUBLIC_APP_URL   - public app origin used for the back-cover logo
    DRAWTOPIA_REQUEST_TIMEOUT  - optional HTTP timeout in seconds
    DRAWTOPIA_APP_NAME         - product name shown in the summary
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

from dotenv import load_dotenv

# Ensure project root is on the Python path when running as a script.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from drawtopia import BookPagesOrchestrator, BookRequest, Settings
from drawtopia.pipeline.progress import ProgressTracker


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate the illustrated pages of a Drawtopia book.")
    parser.add_argument(
        "--request",
        required=True,
        help="Path to the book request YAML/JSON file.",
    )
    parser.add_argument(
        "--output",
        default="book_pages.yaml",
        help="Output YAML file to store the generated page URLs.",
    )
    parser.add_argument(
        "--story-pages-only",
        action="store_true",
        default=None,
        help="Only generate story pages (skip copyright, dedication, last page and back cover).",
    )
    parser.add_argument(
        "--backend-url",
        default=None,
        help="Override the image backend origin.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity for the pipeline modules.",
    )
    return parser.parse_args(argv)


def main(argv: list[str]) -> int:
    args = parse_args(argv)
    load_dotenv()
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )

    settings = Settings.from_env()
    if args.backend_url:
        settings = replace(settings, backend_url=args.backend_url)

    request = BookRequest.from_file(args.request)
    if args.story_pages_only:
        request = replace(request, story_pages_only=True)

    orchestrator = BookPagesOrchestrator(settings=settings)
    tracker = ProgressTracker()
    try:
        result = orchestrator.generate_all_book_pages(request, progress=tracker)
    finally:
        tracker.close()

    output_path = Path(args.output)
    output_path.write_text(result.to_yaml(), encoding="utf-8")

    if not result.success:
        tracker.write(f"{settings.app_name} book generation failed: {result.error}")
        return 1

    tracker.write(
        f"{settings.app_name}: generated {len(result.story_page_image_urls)} story page(s); "
        f"{len(result.skipped_pages)} skipped."
    )
    for issue in result.skipped_pages:
        detail = f" ({issue.detail})" if issue.detail else ""
        tracker.write(f"  - page {issue.page_number}: {issue.reason}{detail}")
    tracker.write(f"Saved book pages to {output_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
