"""
Drawtopia package exposing book templates, image generation clients and the page pipeline.
"""

from .ai_generation import BackCoverCompositor, GenerationResult, ImageGenerationClient
from .common import Settings
from .pipeline import (
    BookPagesOrchestrator,
    BookPagesResult,
    BookRequest,
    generate_all_book_pages,
)
from .story_generation import BookTemplate, PagePromptBuilder, StoryPage, StoryWorld

__all__ = [
    "BackCoverCompositor",
    "BookPagesOrchestrator",
    "BookPagesResult",
    "BookRequest",
    "BookTemplate",
    "GenerationResult",
    "ImageGenerationClient",
    "PagePromptBuilder",
    "Settings",
    "StoryPage",
    "StoryWorld",
    "generate_all_book_pages",
]
