"""Fonts and overlay images needed to render a post."""

from __future__ import annotations

import io
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, Optional

import requests
from PIL import Image, ImageFont, UnidentifiedImageError

from dhakadispatch.errors import CompositionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FontFace:
    """TrueType bytes for one weight. `data=None` selects Pillow's built-in font."""

    name: str
    data: Optional[bytes] = None

    def at(self, size: int):
        try:
            if self.data is None:
                return ImageFont.load_default(size=size)
            return ImageFont.truetype(io.BytesIO(self.data), size=size)
        except OSError as e:
            raise CompositionError(f"Unable to load font '{self.name}' at {size}px: {e}") from e


@dataclass(frozen=True)
class CompositionAssets:
    bold: FontFace
    brand: FontFace
    overlay: Image.Image
    logo: Image.Image

    def font(self, role: str) -> FontFace:
        return {"bold": self.bold, "brand": self.brand}[role]


def fetch_bytes(url: str, *, timeout: int = 30) -> bytes:
    try:
        resp = requests.get(url, headers={"User-Agent": "DhakaDispatch/1.0"}, timeout=timeout)
    except requests.exceptions.RequestException as e:
        raise CompositionError(f"Failed to fetch resource: {url}: {e}") from e
    if not resp.ok:
        raise CompositionError(f"Failed to fetch resource: {url} ({resp.status_code})")
    return resp.content


def open_image(data: bytes, label: str) -> Image.Image:
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise CompositionError(f"Invalid image data for {label}: {e}") from e
    return img.convert("RGBA")


def load_assets(
    *,
    font_bold_url: str,
    font_brand_url: str,
    overlay_url: str,
    logo_url: str,
    timeout: int = 30,
) -> CompositionAssets:
    """Fetch every resource concurrently; any failure aborts the render."""
    urls: Dict[str, str] = {
        "bold": font_bold_url,
        "brand": font_brand_url,
        "overlay": overlay_url,
        "logo": logo_url,
    }
    with ThreadPoolExecutor(max_workers=len(urls)) as executor:
        futures = {name: executor.submit(fetch_bytes, url, timeout=timeout) for name, url in urls.items()}
        blobs = {name: future.result() for name, future in futures.items()}
    logger.info("Composition resources fetched")
    return CompositionAssets(
        bold=FontFace("Poppins 700", blobs["bold"]),
        brand=FontFace("Inter 600", blobs["brand"]),
        overlay=open_image(blobs["overlay"], "overlay"),
        logo=open_image(blobs["logo"], "logo"),
    )
