"""
End-to-end orchestration of Drawtopia book-page generation.
"""

from .pipeline import (
    BookPagesOrchestrator,
    BookPagesResult,
    BookRequest,
    PageIssue,
    ProgressSink,
    generate_all_book_pages,
)

__all__ = [
    "BookPagesOrchestrator",
    "BookPagesResult",
    "BookRequest",
    "PageIssue",
    "ProgressSink",
    "generate_all_book_pages",
]
