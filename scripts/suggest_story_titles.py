"""
Utility script to request story title suggestions from the backend.

Usage:
    python scripts/suggest_story_titles.py \
        --character-name "Luna" \
        --special-ability "talks to animals" \
        --story-world forest \
        --adventure-type treasure_hunt

Environment variables (a local .env file is read first):
    DRAWTOPIA_BACKEND_URL  - optional override of the backend origin
    DRAWTOPIA_APP_NAME     - product name shown in the output
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv
from tqdm.auto import tqdm

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from drawtopia.common import Settings
from drawtopia.story_generation import StoryTitleClient, TitleRequest


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Suggest titles for a Drawtopia story.")
    parser.add_argument("--character-name", required=True, help="Name of the story's hero.")
    parser.add_argument("--special-ability", required=True, help="The hero's special ability.")
    parser.add_argument(
        "--story-world",
        required=True,
        choices=["forest", "underwater", "outerspace", "space"],
        help="Theme of the story world.",
    )
    parser.add_argument(
        "--adventure-type",
        required=True,
        help="Adventure type, e.g. treasure_hunt or helping_friend.",
    )
    parser.add_argument("--character-type", default="person", help="person, animal or magical_creature.")
    parser.add_argument("--character-style", default="cartoon", help="3d, cartoon or anime.")
    parser.add_argument("--age-group", default="7-10", help="Target reader age group.")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity for the client modules.",
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
    client = StoryTitleClient(settings=settings)
    suggestions = client.generate_story_titles(
        TitleRequest(
            character_name=args.character_name,
            special_ability=args.special_ability,
            story_world=args.story_world,
            adventure_type=args.adventure_type,
            character_type=args.character_type,
            character_style=args.character_style,
            age_group=args.age_group,
        )
    )

    if not suggestions.success:
        tqdm.write(f"{settings.app_name} could not generate titles: {suggestions.error}")
        return 1

    tqdm.write(f"{settings.app_name} title suggestions:")
    for title in suggestions.titles:
        tqdm.write(f"  {title}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
