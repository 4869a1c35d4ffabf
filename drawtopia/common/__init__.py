"""
Common utilities shared across Drawtopia modules.
"""

from .config import LOGO_PATH, Settings
from .errors import (
    BookGenerationError,
    DrawtopiaError,
    ImageGenerationError,
    TemplateNotFoundError,
)
from .http import post_json, strip_query_string

__all__ = [
    "BookGenerationError",
    "DrawtopiaError",
    "ImageGenerationError",
    "LOGO_PATH",
    "Settings",
    "TemplateNotFoundError",
    "post_json",
    "strip_query_string",
]
