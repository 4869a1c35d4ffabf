"""
Thin JSON-over-HTTP helpers built on ``requests``.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

import requests

logger = logging.getLogger(__name__)

JSON_HEADERS = {"Content-Type": "application/json"}


def strip_query_string(url: str) -> str:
    """
    Drop everything from the first ``?`` onwards.

    Signed storage URLs carry expiring tokens in the query string; only the
    bare object URL is kept.
    """
    return url.split("?", 1)[0]


def post_json(
    session: requests.Session,
    url: str,
    payload: Mapping[str, Any],
    *,
    timeout: float | None = None,
) -> requests.Response:
    """
    POST ``payload`` as JSON and return the raw response.

    Status handling is left to the caller; transport errors propagate as
    :class:`requests.RequestException`.
    """
    logger.debug("POST %s", url)
    return session.post(url, json=dict(payload), headers=JSON_HEADERS, timeout=timeout)


def read_json_object(response: requests.Response) -> Mapping[str, Any]:
    """
    Decode a JSON object body, raising ``ValueError`` for anything else.
    """
    data = response.json()
    if not isinstance(data, Mapping):
        raise ValueError("Expected a JSON object in the response body.")
    return data


def error_detail(response: requests.Response) -> str | None:
    """Extract a FastAPI-style ``detail`` message from an error response, if any."""
    try:
        data = response.json()
    except ValueError:
        return None
    if isinstance(data, Mapping):
        detail = data.get("detail")
        if detail:
            return str(detail)
    return None
