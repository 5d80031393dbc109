"""Homebrew formula metadata client with a time-bounded on-disk cache."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import requests

from brewshard.utils.cache import JsonFileCache

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_URL = "https://formulae.brew.sh/api/formula.json"
DEFAULT_CACHE_TTL_SECONDS = 3600
_HTTP_SUCCESS_MIN = 200
_HTTP_SUCCESS_MAX = 300


class FormulaFetchError(RuntimeError):
    """Raised when the formula feed cannot be fetched or decoded."""


def fetch_formulae(
    source_url: str = DEFAULT_SOURCE_URL,
    *,
    timeout_seconds: float = 60.0,
) -> list[dict[str, Any]]:
    """Download the raw formula records from *source_url*."""
    logger.info("Fetching formula metadata from %s", source_url)
    try:
        response = requests.get(source_url, timeout=timeout_seconds)
    except requests.RequestException as exc:
        raise FormulaFetchError(f"Failed to fetch formula data: {exc}") from exc

    if response.status_code < _HTTP_SUCCESS_MIN or response.status_code >= _HTTP_SUCCESS_MAX:
        message = response.text.strip()[:300]
        raise FormulaFetchError(
            f"Failed to fetch formula data (HTTP {response.status_code}): {message}"
        )

    try:
        body = response.json()
    except ValueError as exc:
        raise FormulaFetchError(f"Formula feed is not valid JSON: {exc}") from exc

    if not isinstance(body, list):
        raise FormulaFetchError(
            f"Formula feed must be a JSON array, got {type(body).__name__}"
        )
    return body


def load_formulae(
    cache_path: Path,
    *,
    source_url: str = DEFAULT_SOURCE_URL,
    ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
    refresh: bool = False,
    timeout_seconds: float = 60.0,
) -> list[dict[str, Any]]:
    """Return raw formula records, from cache when fresh, else from the network.

    A successful fetch rewrites the cache.  ``refresh=True`` skips the
    cache read.
    """
    cache = JsonFileCache(cache_path, ttl_seconds=ttl_seconds)
    if not refresh:
        cached = cache.get()
        if isinstance(cached, list):
            logger.info("Using cached formula metadata from %s", cache_path)
            return cached

    formulae = fetch_formulae(source_url, timeout_seconds=timeout_seconds)
    cache.put(formulae)
    return formulae
