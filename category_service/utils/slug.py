"""Slug helpers shared by every entity family."""

import logging
import re
import time
import unicodedata
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

MAX_SLUG_LENGTH = 100
MAX_SUFFIX_ATTEMPTS = 100

_SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
_DROPPED_CHARS = re.compile(r"[*+~.()'\"!:@]")
_SEPARATOR_RUNS = re.compile(r"[\s\W_-]+")


def slugify(text: str) -> str:
    """
    Turn a display name into a URL slug.

    Accents are stripped, punctuation such as ``*+~.()'"!:@`` is dropped and
    every other run of non-word characters becomes a single hyphen.

    Example:
        >>> slugify("Men's Running Shoes")
        'mens-running-shoes'
        >>> slugify("Été Collection")
        'ete-collection'
    """
    if not text:
        return ""
    normalized = unicodedata.normalize("NFKD", text)
    ascii_text = normalized.encode("ascii", "ignore").decode("ascii")
    ascii_text = _DROPPED_CHARS.sub("", ascii_text)
    return _SEPARATOR_RUNS.sub("-", ascii_text).strip("-").lower()


def is_valid_slug(slug: str) -> bool:
    """Lowercase alphanumerics separated by single hyphens, at most 100 chars."""
    return bool(slug) and len(slug) <= MAX_SLUG_LENGTH and bool(_SLUG_PATTERN.match(slug))


async def generate_unique_slug(
    base_slug: str,
    exists: Callable[[str], Awaitable[bool]],
    max_attempts: int = MAX_SUFFIX_ATTEMPTS,
    clock: Optional[Callable[[], float]] = None,
    base_taken: bool = False,
) -> str:
    """
    Find a slug that ``exists`` reports as free.

    Tries ``base``, then ``base-1`` ... ``base-<max_attempts>``. If all are
    taken, falls back to a millisecond timestamp suffix. The base is kept
    whole, so ``summer-2024`` becomes ``summer-2024-1``, never ``summer-1``.

    Args:
        base_slug: Preferred slug
        exists: Coroutine function returning True when a slug is taken
        max_attempts: Number of numeric suffixes to try
        clock: Seconds clock used for the fallback suffix (default time.time)
        base_taken: Skip the check of base_slug itself, already known taken

    Returns:
        A slug that was free when checked
    """
    base_slug = base_slug or "item"
    if not base_taken and not await exists(base_slug):
        return base_slug

    for counter in range(1, max_attempts + 1):
        candidate = f"{base_slug}-{counter}"
        if not await exists(candidate):
            return candidate

    stamp = int((clock or time.time)() * 1000)
    logger.warning(f"No free numeric suffix for slug '{base_slug}', using timestamp {stamp}")
    return f"{base_slug}-{stamp}"

