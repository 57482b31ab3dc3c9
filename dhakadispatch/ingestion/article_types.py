"""Shared ingestion data types."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Category:
    """One editorial topic; `source_key` is the upstream category identifier."""

    name: str
    source_key: str


@dataclass(frozen=True)
class Article:
    """Normalized upstream article. Identity is `link`."""

    id: str
    title: str
    link: str
    description: Optional[str] = None
    body: Optional[str] = None
    published_at: Optional[datetime] = None
    image_url: Optional[str] = None
    source_name: str = ""
    raw: Optional[Dict[str, Any]] = None

    @property
    def text(self) -> str:
        """Body if present, otherwise the description."""
        return self.body or self.description or ""

    @property
    def is_renderable(self) -> bool:
        return bool(self.image_url) and bool(self.body or self.description)


def _parse_dt(dt: Any) -> Optional[datetime]:
    if not dt:
        return None
    if isinstance(dt, datetime):
        return dt
    s = str(dt).strip()
    if not s:
        return None
    # NewsData returns "YYYY-MM-DD HH:MM:SS" in UTC
    s = s.replace("Z", "+00:00")
    if " " in s and "T" not in s:
        s = s.replace(" ", "T", 1)
    try:
        parsed = datetime.fromisoformat(s)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def article_from_newsdata(item: Dict[str, Any]) -> Optional[Article]:
    """Map one NewsData.io `results` entry to an Article (None if it has no link)."""
    if not isinstance(item, dict):
        return None
    link = (item.get("link") or "").strip()
    if not link:
        return None
    return Article(
        id=str(item.get("article_id") or ""),
        title=str(item.get("title") or "").strip(),
        link=link,
        description=item.get("description") or None,
        body=item.get("content") or None,
        published_at=_parse_dt(item.get("pubDate")),
        image_url=item.get("image_url") or None,
        source_name=str(item.get("source_id") or ""),
        raw=item,
    )
