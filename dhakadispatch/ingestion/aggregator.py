"""Candidate article aggregation for one category.

- Regular categories: one upstream fetch.
- The synthetic aggregate category ("top"): one fetch per other category, in
  parallel, all-or-nothing. Results are deduped by link (first seen wins),
  sorted newest first and truncated.
- Then: drop articles that cannot be rendered (no image, or no body and no
  description) and articles already chosen earlier in this batch.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import AbstractSet, Iterable, List, Optional, Sequence

from dhakadispatch.config import AGGREGATE_SOURCE_KEY, NEWS_CATEGORIES
from dhakadispatch.ingestion.article_types import Article, Category

logger = logging.getLogger(__name__)

MAX_CANDIDATES = 10

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def merge_unique(articles: Iterable[Article]) -> List[Article]:
    """Drop later duplicates of the same link, keeping first-seen order."""
    seen = set()
    out: List[Article] = []
    for a in articles:
        if a.link in seen:
            continue
        seen.add(a.link)
        out.append(a)
    return out


def newest_first(articles: Sequence[Article]) -> List[Article]:
    # stable: equal timestamps keep merge order
    return sorted(articles, key=lambda a: a.published_at or _OLDEST, reverse=True)


def _fetch_aggregate(source, categories: Sequence[Category], limit: int) -> List[Article]:
    keys = [c.source_key for c in categories if c.source_key != AGGREGATE_SOURCE_KEY]
    logger.info(f"Fetching aggregate category from {len(keys)} sources: {', '.join(keys)}")
    with ThreadPoolExecutor(max_workers=max(1, len(keys))) as executor:
        # map() preserves category order and re-raises the first failure
        pages = list(executor.map(source.fetch, keys))
    merged = merge_unique(a for page in pages for a in page.results)
    return newest_first(merged)[:limit]


def fetch_raw_articles(
    category: Category,
    source,
    *,
    categories: Optional[Sequence[Category]] = None,
    limit: int = MAX_CANDIDATES,
) -> List[Article]:
    if category.source_key == AGGREGATE_SOURCE_KEY:
        return _fetch_aggregate(source, categories or NEWS_CATEGORIES, limit)
    logger.info(f"Fetching news for '{category.source_key}'...")
    return list(source.fetch(category.source_key).results)


def collect_candidates(
    category: Category,
    used_links: AbstractSet[str],
    source,
    *,
    categories: Optional[Sequence[Category]] = None,
    limit: int = MAX_CANDIDATES,
) -> List[Article]:
    """Return the ordered CandidateSet for `category` (possibly empty).

    `source` is anything with `fetch(category_key) -> NewsPage`. Upstream
    failures propagate as NewsSourceError.
    """
    raw = fetch_raw_articles(category, source, categories=categories, limit=limit)
    valid = [a for a in raw if a.is_renderable]
    unused = [a for a in valid if a.link not in used_links]
    logger.info(f"Found {len(unused)} new, valid articles for {category.name}.")
    return unused[:limit]
