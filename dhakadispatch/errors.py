"""Exception types shared across the dispatch pipeline.

Skip conditions (no candidates, nothing relevant, no image) are plain return
values. Everything here is category-fatal: the batch loop catches it, logs it
and moves on to the next category.
"""

from __future__ import annotations

from typing import Optional


class DispatchError(Exception):
    """Base class for category-fatal pipeline errors"""
    pass


class NewsSourceError(DispatchError):
    """Upstream news API returned a non-success response"""
    pass


class ModelError(DispatchError):
    """Language/image model call failed outright"""
    pass


class SelectionParseError(DispatchError):
    """Model reply was neither the sentinel nor a complete record"""

    def __init__(self, reason: str, raw_text: str = ""):
        super().__init__(f"Failed to parse model response ({reason}): {raw_text[:500]}")
        self.reason = reason
        self.raw_text = raw_text


class CompositionError(DispatchError):
    """Fonts, assets, image payload or rendering failed"""
    pass


class PublishError(DispatchError):
    """Upload or webhook delivery failed"""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(f"{message}: {status_code} {body}".strip() if status_code else message)
        self.status_code = status_code
        self.body = body
