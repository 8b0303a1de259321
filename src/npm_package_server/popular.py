# SPDX-License-Identifier: GPL-3.0-only OR MIT
"""
Popular packages digest.

Builds a Markdown summary of widely used npm packages from a few seed
searches and keeps the rendered text in memory for 24 hours.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from .packages import author_name, format_date
from .registry import search_registry
from .utils import InternalFailureError

logger = logging.getLogger(__name__)

POPULAR_PACKAGES_URI = "npm://popular-packages"

CACHE_DURATION = 24 * 60 * 60  # 24 hours
SEED_QUERIES = ["react", "lodash", "express", "typescript", "webpack"]
RESULTS_PER_SEED = 10
MAX_POPULAR_PACKAGES = 50


class PopularPackagesCache:
    """
    Single time-bounded text value.

    No locking: concurrent refreshes overwrite the same value, so a race
    only costs a redundant upstream fetch.
    """

    def __init__(self, ttl: float = CACHE_DURATION, clock: Callable[[], float] = time.time):
        self.ttl = ttl
        self._clock = clock
        self._text: Optional[str] = None
        self._fetched_at = 0.0

    def get(self) -> Optional[str]:
        if self._text is not None and (self._clock() - self._fetched_at) < self.ttl:
            return self._text
        return None

    def set(self, text: str) -> None:
        self._text = text
        self._fetched_at = self._clock()

    def clear(self) -> None:
        self._text = None
        self._fetched_at = 0.0


popular_packages_cache = PopularPackagesCache()


def _rank(pkg: Dict[str, Any]) -> float:
    """Favour short names, described packages and keyword-rich packages."""
    score = 1.0 if len(pkg.get("name") or "") < 15 else 0.0
    score += 1.0 if pkg.get("description") else 0.0
    score += len(pkg.get("keywords") or []) / 10
    return score


async def _collect_popular_packages() -> List[Dict[str, Any]]:
    seen = set()
    packages: List[Dict[str, Any]] = []
    failures = 0

    for term in SEED_QUERIES:
        try:
            results = await search_registry(term, RESULTS_PER_SEED, 0)
            found = [
                result["package"] for result in results["objects"]
                if isinstance(result.get("package"), dict)
            ]
        except Exception as e:
            failures += 1
            logger.error(f"Failed to search for {term}: {e}")
            continue

        for pkg in found:
            name = pkg.get("name")
            if name and name not in seen:
                seen.add(name)
                packages.append(pkg)

    if failures == len(SEED_QUERIES):
        raise InternalFailureError("All popular package searches failed")

    # sorted() is stable, so ties keep registry order
    return sorted(packages, key=_rank, reverse=True)


def format_popular_packages(packages: List[Dict[str, Any]], updated: Optional[datetime] = None) -> str:
    updated = updated or datetime.now(timezone.utc)
    text = "# 🔥 Most Popular NPM Packages\n\n"
    text += f"Updated: {updated.isoformat()}\n\n"

    for index, pkg in enumerate(packages[:MAX_POPULAR_PACKAGES], start=1):
        links = pkg.get("links") or {}
        text += f"## {index}. {pkg.get('name')}\n"
        text += f"**Version:** {pkg.get('version')}\n"
        text += f"**Description:** {pkg.get('description') or 'No description available'}\n"

        if pkg.get("keywords"):
            text += f"**Keywords:** {', '.join(pkg['keywords'][:5])}\n"

        author = author_name(pkg.get("author"))
        if author:
            text += f"**Author:** {author}\n"

        if links.get("npm"):
            text += f"**NPM:** {links['npm']}\n"
        if links.get("homepage"):
            text += f"**Homepage:** {links['homepage']}\n"
        if links.get("repository"):
            text += f"**Repository:** {links['repository']}\n"
        text += f"**Last Updated:** {format_date(pkg.get('date'))}\n\n"

    return text


async def get_popular_packages(cache: Optional[PopularPackagesCache] = None) -> str:
    """
    Return the popular packages digest, refreshing it at most once per TTL.

    Args:
        cache: Cache to use (defaults to the module-level cache)

    Returns:
        Markdown text

    Raises:
        InternalFailureError: If the digest cannot be built
    """
    cache = cache if cache is not None else popular_packages_cache

    cached = cache.get()
    if cached is not None:
        logger.debug("Serving popular packages from cache")
        return cached

    logger.info("Refreshing popular packages digest")
    try:
        packages = await _collect_popular_packages()
        text = format_popular_packages(packages)
    except InternalFailureError as e:
        raise InternalFailureError(f"Failed to fetch popular packages: {e.message}")
    except Exception as e:
        logger.error(f"Failed to build popular packages digest: {e}")
        raise InternalFailureError(f"Failed to fetch popular packages: {e}")

    cache.set(text)
    return text
