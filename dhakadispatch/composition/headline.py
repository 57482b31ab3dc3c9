"""Headline text helpers: highlight segmentation and font sizing."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Sequence

# (max headline length, font size), checked in order
FONT_SIZE_STEPS = (
    (50, 72),
    (80, 64),
    (120, 56),
    (160, 48),
)
MIN_FONT_SIZE = 40


@dataclass(frozen=True)
class HeadlineSegment:
    text: str
    is_highlighted: bool = False


def split_headline(headline: str, highlight_phrases: Sequence[str]) -> List[HeadlineSegment]:
    """Partition `headline` into plain and highlighted segments.

    Phrases are matched case-insensitively as literal text, earlier phrases
    winning at the same position. Joining the segment texts gives back the
    headline unchanged.
    """
    if not highlight_phrases or not highlight_phrases[0]:
        return [HeadlineSegment(headline, False)]
    phrases = [p for p in highlight_phrases if p]
    pattern = re.compile("(" + "|".join(re.escape(p) for p in phrases) + ")", re.IGNORECASE)
    lowered = {p.lower() for p in phrases}
    return [
        HeadlineSegment(part, part.lower() in lowered)
        for part in pattern.split(headline)
        if part
    ]


def dynamic_font_size(headline: str) -> int:
    length = len(headline)
    for max_length, size in FONT_SIZE_STEPS:
        if length <= max_length:
            return size
    return MIN_FONT_SIZE
