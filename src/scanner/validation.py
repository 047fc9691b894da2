"""Integrity checks on untrusted analysis-service output.

The model may hallucinate listings or return ads without a resolvable
canonical URL; those never reach the local store.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Iterable, TypeVar

from src.common.config import settings
from src.common.models import ListingDraft

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=ListingDraft)

# Numeric ad id plus category id after the slug, e.g. "/2876543210-173-4567"
_AD_ID_RE = re.compile(r"/\d+-\d+")

# First number in a free-text answer; "." "," space or NBSP may group thousands,
# each separator followed by exactly three digits
_NUMBER_RE = re.compile(r"\d{1,3}(?:[., \u00a0]\d{3})+|\d+")


def is_valid_ad_url(url: str | None, marker: str | None = None) -> bool:
    """Check that a URL points at a concrete classifieds ad.

    Requires the ad path marker (case-insensitive) and, somewhere after it,
    a ``/<digits>-<digits>`` ad id.
    """
    if not url:
        return False
    marker = (marker or settings.scanner.ad_url_marker).lower()
    pos = url.lower().find(marker)
    if pos < 0:
        return False
    # Start on the marker's trailing slash so an id right after it matches
    start = pos + len(marker) - 1 if marker.endswith("/") else pos + len(marker)
    return _AD_ID_RE.search(url, start) is not None


def filter_valid_listings(
    listings: Iterable[T],
    marker: str | None = None,
) -> list[T]:
    """Drop listings without a valid ad URL, preserving order."""
    kept: list[T] = []
    dropped = 0
    for listing in listings:
        if is_valid_ad_url(listing.url, marker):
            kept.append(listing)
        else:
            dropped += 1
            logger.debug("Dropping listing with unresolvable URL: %s", listing.url)
    if dropped:
        logger.info("Validation dropped %d of %d listings", dropped, dropped + len(kept))
    return kept


def parse_price_number(text: str | None) -> int | None:
    """Parse the first price-like number in a free-text answer.

    Examples:
        "729" -> 729, "€1.049" -> 1049, "729,00 €" -> 729, "1 099 EUR" -> 1099,
        "729\\n2 Angebote" -> 729

    Returns:
        Integer EUR amount, or None if the text has no number.
    """
    if not text:
        return None
    match = _NUMBER_RE.search(text)
    if not match:
        return None
    digits = re.sub(r"\D", "", match.group(0))
    return int(digits) if digits else None


def strip_code_fences(content: str) -> str:
    """Remove markdown code fences the model sometimes wraps JSON in."""
    content = content.strip()
    if content.startswith("```"):
        lines = [l for l in content.split("\n") if not l.strip().startswith("```")]
        content = "\n".join(lines)
    return content.strip()


def load_json_object(content: str) -> dict:
    """Parse a JSON object from model output.

    Raises:
        json.JSONDecodeError: Content is not JSON.
        ValueError: Content is JSON but not an object.
    """
    content = strip_code_fences(content)
    try:
        data = json.loads(content or "{}")
    except json.JSONDecodeError:
        # Prose around the object, e.g. a search narration before the JSON
        start, end = content.find("{"), content.rfind("}")
        if start < 0 or end <= start:
            raise
        data = json.loads(content[start : end + 1])
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return data
