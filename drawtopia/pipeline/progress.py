"""
Command-line progress reporting for the book pipeline.
"""

from __future__ import annotations

from typing import Any

from tqdm.auto import tqdm


class ProgressTracker:
    """
    Renders pipeline progress as a percentage bar with the current step as its label.
    """

    def __init__(self, **bar_kwargs: Any) -> None:
        self._bar_kwargs = {"total": 100, "unit": "%", "desc": "Book pages", **bar_kwargs}
        self._bar: tqdm | None = None
        self._last_percent = 0.0
        self.history: list[tuple[str, float]] = []

    def on_progress(self, label: str, percent: float) -> None:
        if self._bar is None:
            self._bar = tqdm(**self._bar_kwargs)

        self.history.append((label, percent))
        self._bar.set_description(label)
        # The bar only moves forward.
        step = percent - self._last_percent
        if step > 0:
            self._bar.update(step)
            self._last_percent = percent

        if percent >= 100:
            self.close()

    def close(self) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None

    @staticmethod
    def write(message: str) -> None:
        tqdm.write(message)
