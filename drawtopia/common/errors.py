"""
Exception hierarchy for Drawtopia book generation.
"""


class DrawtopiaError(Exception):
    """Base class for all errors raised by the package."""


class BookGenerationError(DrawtopiaError, ValueError):
    """Raised when the book pipeline receives inputs it cannot work with."""


class ImageGenerationError(DrawtopiaError):
    """Raised when the image backend answers with a non-success HTTP status."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TemplateNotFoundError(DrawtopiaError, LookupError):
    """Raised when no book template matches the requested story world."""
