"""
Integration with the Drawtopia image backend for template-based page generation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

import requests

from drawtopia.common.config import Settings
from drawtopia.common.errors import ImageGenerationError
from drawtopia.common.http import post_json, read_json_object, strip_query_string

logger = logging.getLogger(__name__)

EDIT_IMAGE_PATH = "/edit-image"
GENERATE_COVER_IMAGE_PATH = "/generate-cover-image"

NO_IMAGE_URL_MESSAGE = "No image URL received from API"


@dataclass(frozen=True)
class GenerationResult:
    """Outcome of a single remote generation call."""

    success: bool
    url: str | None = None
    error: str | None = None

    @classmethod
    def ok(cls, url: str) -> "GenerationResult":
        return cls(success=True, url=strip_query_string(url))

    @classmethod
    def failed(cls, error: str) -> "GenerationResult":
        return cls(success=False, error=error)


class ImageGenerationClient:
    """
    Convenience wrapper around the image backend's edit and composite endpoints.

    Calls are made once; retrying is left to the caller.

    Parameters
    ----------
    settings:
        Backend location and timeout. Falls back to :meth:`Settings.from_env`.
    session:
        Optional pre-configured :class:`requests.Session`. Mainly useful for testing.
    """

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self._settings = settings or Settings.from_env()
        self._session = session or requests.Session()

    @property
    def settings(self) -> Settings:
        return self._settings

    def generate_with_single_template(self, template_url: str, prompt: str) -> GenerationResult:
        """
        Edit one template image according to ``prompt``.

        The backend answers with ``{"storage_info": {"uploaded": bool, "url": str}}``.
        """
        payload = {"image_url": template_url, "prompt": prompt}
        try:
            data = self._post(EDIT_IMAGE_PATH, payload)
            storage_info = data.get("storage_info")
            if (
                isinstance(storage_info, Mapping)
                and storage_info.get("uploaded")
                and storage_info.get("url")
            ):
                return GenerationResult.ok(str(storage_info["url"]))
            return GenerationResult.failed(NO_IMAGE_URL_MESSAGE)
        except (ImageGenerationError, requests.RequestException, ValueError) as exc:
            logger.error("Error generating image: %s", exc)
            return GenerationResult.failed(str(exc) or "Unknown error")

    def generate_with_two_templates(
        self,
        template_url: str,
        character_url: str,
        prompt: str,
    ) -> GenerationResult:
        """
        Composite the character image into a template image according to ``prompt``.

        The backend answers with ``{"success": bool, "url": str, "message": str}``.
        """
        payload = {
            "template_cover_url": template_url,
            "character_image_url": character_url,
            "prompt": prompt,
        }
        try:
            data = self._post(GENERATE_COVER_IMAGE_PATH, payload)
            if data.get("success") and data.get("url"):
                return GenerationResult.ok(str(data["url"]))
            return GenerationResult.failed(str(data.get("message") or NO_IMAGE_URL_MESSAGE))
        except (ImageGenerationError, requests.RequestException, ValueError) as exc:
            logger.error("Error generating image: %s", exc)
            return GenerationResult.failed(str(exc) or "Unknown error")

    def _post(self, path: str, payload: Mapping[str, Any]) -> Mapping[str, Any]:
        response = post_json(
            self._session,
            self._settings.endpoint(path),
            payload,
            timeout=self._settings.request_timeout,
        )
        if not response.ok:
            raise ImageGenerationError(
                f"Failed to generate image: {response.status_code}",
                status_code=response.status_code,
            )
        return read_json_object(response)
