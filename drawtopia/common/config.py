"""
Environment-driven configuration for the Drawtopia backend clients.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Mapping

DEFAULT_BACKEND_URL = "https://image-edit-five.vercel.app"
DEFAULT_APP_NAME = "Drawtopia"
DEFAULT_BARCODE_ISBN = "978-0-000-00000-0"

# Logo location relative to the public app origin.
LOGO_PATH = "/assets/logo.png"

_API_SUFFIX = re.compile(r"/api/?$")


def _first_env(env: Mapping[str, str], *names: str) -> str | None:
    for name in names:
        value = env.get(name)
        if value is not None and value.strip():
            return value.strip()
    return None


def _coerce_optional_float(value: str | None, *, name: str) -> float | None:
    if value is None:
        return None

    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number of seconds, got {value!r}") from exc


def normalize_backend_url(url: str) -> str:
    """Trim trailing slashes and a trailing ``/api`` segment from ``url``."""
    trimmed = url.strip().rstrip("/")
    return _API_SUFFIX.sub("", trimmed).rstrip("/")


@dataclass(frozen=True)
class Settings:
    """
    Immutable runtime settings.

    Parameters
    ----------
    backend_url:
        Origin of the image backend hosting ``/edit-image``, ``/generate-cover-image``,
        ``/overlay-back-cover/`` and ``/story/generate-titles``.
    public_app_url:
        Public origin of the web app. Used to build the logo URL handed to the
        back-cover overlay. Empty disables the logo.
    app_name:
        Display name of the product.
    request_timeout:
        Seconds before an HTTP call is abandoned. ``None`` keeps the ``requests``
        default of waiting indefinitely.
    barcode_isbn:
        Value printed as the back-cover barcode.
    """

    backend_url: str = DEFAULT_BACKEND_URL
    public_app_url: str = ""
    app_name: str = DEFAULT_APP_NAME
    request_timeout: float | None = None
    barcode_isbn: str = DEFAULT_BARCODE_ISBN

    def __post_init__(self) -> None:
        object.__setattr__(self, "backend_url", normalize_backend_url(self.backend_url))
        object.__setattr__(self, "public_app_url", self.public_app_url.strip().rstrip("/"))

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "Settings":
        """
        Build settings from ``env`` (defaults to ``os.environ``).
        """
        source = os.environ if env is None else env
        return cls(
            backend_url=_first_env(source, "DRAWTOPIA_BACKEND_URL", "VITE_API_BASE_URL")
            or DEFAULT_BACKEND_URL,
            public_app_url=_first_env(
                source, "DRAWTOPIA_PUBLIC_APP_URL", "VITE_PUBLIC_APP_URL"
            )
            or "",
            app_name=_first_env(source, "DRAWTOPIA_APP_NAME", "VITE_APP_NAME")
            or DEFAULT_APP_NAME,
            request_timeout=_coerce_optional_float(
                _first_env(source, "DRAWTOPIA_REQUEST_TIMEOUT"),
                name="DRAWTOPIA_REQUEST_TIMEOUT",
            ),
            barcode_isbn=_first_env(source, "DRAWTOPIA_BARCODE_ISBN") or DEFAULT_BARCODE_ISBN,
        )

    @property
    def logo_url(self) -> str | None:
        """Absolute logo URL, or ``None`` when no public app URL is configured."""
        if not self.public_app_url:
            return None
        return f"{self.public_app_url}{LOGO_PATH}"

    def endpoint(self, path: str) -> str:
        """Join ``path`` onto the backend origin."""
        return f"{self.backend_url}/{path.lstrip('/')}"
