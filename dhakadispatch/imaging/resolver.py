"""Main image resolution: the article's own photo first, generated art second."""

from __future__ import annotations

import base64
import logging
from typing import Optional

import requests

from dhakadispatch.ingestion.article_types import Article

logger = logging.getLogger(__name__)

GENERATED_ASPECT_RATIO = "4:3"
GENERATED_MIME_TYPE = "image/png"


def to_data_uri(data: bytes, mime_type: str) -> str:
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def fetch_article_image(url: str, *, timeout: int = 30) -> Optional[str]:
    """Fetch an article image as a data URI; None on any network/HTTP failure."""
    try:
        resp = requests.get(url, headers={"User-Agent": "DhakaDispatch/1.0"}, timeout=timeout)
    except requests.exceptions.RequestException as e:
        logger.warning(f"Error fetching original image: {e}. Generating new one.")
        return None
    if not resp.ok:
        logger.warning(f"Failed to fetch original image: {resp.status_code}. Generating new one.")
        return None
    mime_type = (resp.headers.get("Content-Type") or "image/png").split(";")[0].strip() or "image/png"
    logger.info("Original image fetched successfully.")
    return to_data_uri(resp.content, mime_type)


def resolve_main_image(article: Article, image_prompt: str, model, *, timeout: int = 30) -> Optional[str]:
    """Return the main image as a data URI, or None when none is available.

    `model` is anything with `generate_images(prompt, ...)`. A failed
    generation call propagates; an empty generation result yields None.
    """
    logger.info("Preparing main image. Trying to fetch original article image first...")
    if article.image_url:
        found = fetch_article_image(article.image_url, timeout=timeout)
        if found:
            return found

    images = model.generate_images(
        image_prompt,
        number_of_images=1,
        aspect_ratio=GENERATED_ASPECT_RATIO,
        mime_type=GENERATED_MIME_TYPE,
    )
    if not images:
        return None
    first = images[0]
    return f"data:{first.mime_type or GENERATED_MIME_TYPE};base64,{first.image_bytes}"
