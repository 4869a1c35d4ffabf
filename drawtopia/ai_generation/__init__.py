"""
Remote image generation: template edits, composites and back-cover overlays.
"""

from .back_cover import BackCoverCompositor, TextBlock, build_back_cover_text_blocks
from .image_service import GenerationResult, ImageGenerationClient

__all__ = [
    "BackCoverCompositor",
    "GenerationResult",
    "ImageGenerationClient",
    "TextBlock",
    "build_back_cover_text_blocks",
]
