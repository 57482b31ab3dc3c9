"""NewsData.io latest-news client."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

import requests

from dhakadispatch.errors import NewsSourceError
from dhakadispatch.ingestion.article_types import Article, article_from_newsdata

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NewsPage:
    status: str
    results: List[Article]
    next_page: Optional[str] = None


@dataclass(frozen=True)
class NewsDataClient:
    api_key: str
    country: str = "bd"
    language: str = "en"
    page_size: int = 10
    endpoint: str = "https://newsdata.io/api/1/news"
    timeout: int = 30

    def fetch(self, category_key: str) -> NewsPage:
        """Fetch up to `page_size` image-bearing articles for one upstream category.

        Raises NewsSourceError on transport failure, non-2xx status, or a
        payload whose `status` is not "success".
        """
        params = {
            "apikey": self.api_key,
            "country": self.country,
            "language": self.language,
            "image": 1,
            "size": min(max(self.page_size, 1), 10),
            "category": category_key,
        }
        try:
            resp = requests.get(
                self.endpoint,
                params=params,
                headers={"User-Agent": "DhakaDispatch/1.0"},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise NewsSourceError(f"NewsData request for '{category_key}' failed: {e}") from e

        if not resp.ok:
            raise NewsSourceError(
                f"NewsData API request for '{category_key}' failed: {resp.status_code} {resp.reason}"
            )
        try:
            data = resp.json() or {}
        except ValueError as e:
            raise NewsSourceError(f"NewsData returned non-JSON body for '{category_key}'") from e

        status = str(data.get("status") or "")
        if status != "success":
            message = data.get("results", {}).get("message") if isinstance(data.get("results"), dict) else None
            raise NewsSourceError(f"NewsData error for '{category_key}': {message or status or 'missing status'}")

        raw_results = data.get("results") or []
        if not isinstance(raw_results, list):
            raw_results = []
        articles = [a for a in (article_from_newsdata(r) for r in raw_results) if a is not None]
        logger.info(f"NewsData returned {len(articles)} articles for '{category_key}'")
        return NewsPage(status=status, results=articles, next_page=data.get("nextPage"))
