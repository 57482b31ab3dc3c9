"""Rasterize the post layout with Pillow and encode it as a PNG data URI."""

from __future__ import annotations

import base64
import binascii
import io
import logging
import re
from typing import Dict, List, Sequence, Tuple

from PIL import Image, ImageDraw, ImageFilter, ImageOps, UnidentifiedImageError

from dhakadispatch.composition.assets import CompositionAssets
from dhakadispatch.composition.headline import dynamic_font_size, split_headline
from dhakadispatch.composition.layout import (
    CANVAS_HEIGHT,
    CANVAS_WIDTH,
    ImageNode,
    MeasureFunc,
    Node,
    RectNode,
    TextNode,
    build_layout,
)
from dhakadispatch.errors import CompositionError

logger = logging.getLogger(__name__)

OUTPUT_WIDTH = 1080

_DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?:;[^,]*)?;base64,(?P<data>.*)$", re.DOTALL)


def decode_data_uri(src: str) -> Image.Image:
    match = _DATA_URI_RE.match(src or "")
    if not match:
        raise CompositionError("Main image is not a base64 data URI")
    try:
        raw = base64.b64decode(match.group("data"), validate=False)
        img = Image.open(io.BytesIO(raw))
        img.load()
    except (binascii.Error, UnidentifiedImageError, OSError) as e:
        raise CompositionError(f"Invalid main image payload: {e}") from e
    return img.convert("RGBA")


class _FontCache:
    def __init__(self, assets: CompositionAssets):
        self._assets = assets
        self._fonts: Dict[Tuple[str, int], object] = {}

    def get(self, role: str, size: int):
        key = (role, size)
        if key not in self._fonts:
            self._fonts[key] = self._assets.font(role).at(size)
        return self._fonts[key]

    def measure(self, role: str) -> MeasureFunc:
        return lambda text, size: self.get(role, size).getlength(text)


def _place_image(canvas: Image.Image, img: Image.Image, node: ImageNode) -> None:
    box = (int(node.width), int(node.height))
    if node.fit == "cover":
        fitted = ImageOps.fit(img, box, method=Image.LANCZOS, centering=(0.5, 0.5))
        offset = (0, 0)
    elif node.fit == "contain":
        fitted = ImageOps.contain(img, box, method=Image.LANCZOS)
        offset = ((box[0] - fitted.width) // 2, (box[1] - fitted.height) // 2)
    else:
        fitted = img.resize(box, Image.LANCZOS)
        offset = (0, 0)
    canvas.alpha_composite(fitted, dest=(int(node.x) + offset[0], int(node.y) + offset[1]))


def _draw_text(canvas: Image.Image, node: TextNode, fonts: _FontCache) -> None:
    font = fonts.get(node.font, node.size)
    anchor = "rm" if node.align == "right" else "lm"
    dx, dy, blur = node.shadow
    if blur or dx or dy:
        layer = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
        ImageDraw.Draw(layer).text((node.x + dx, node.y + dy), node.text, font=font, fill="#000000", anchor=anchor)
        if blur:
            layer = layer.filter(ImageFilter.GaussianBlur(blur / 2))
        canvas.alpha_composite(layer)
    ImageDraw.Draw(canvas).text((node.x, node.y), node.text, font=font, fill=node.fill, anchor=anchor)


def rasterize(nodes: Sequence[Node], assets: CompositionAssets, main_image: Image.Image, fonts: _FontCache) -> Image.Image:
    canvas = Image.new("RGBA", (CANVAS_WIDTH, CANVAS_HEIGHT), (255, 255, 255, 255))
    sources = {"main": main_image, "overlay": assets.overlay, "logo": assets.logo}
    for node in nodes:
        if isinstance(node, RectNode):
            ImageDraw.Draw(canvas).rectangle(
                [node.x, node.y, node.x + node.width - 1, node.y + node.height - 1],
                fill=node.fill,
            )
        elif isinstance(node, ImageNode):
            _place_image(canvas, sources[node.source], node)
        elif isinstance(node, TextNode):
            _draw_text(canvas, node, fonts)
    return canvas


def fit_to_width(img: Image.Image, width: int = OUTPUT_WIDTH) -> Image.Image:
    if img.width == width:
        return img
    height = round(img.height * width / img.width)
    return img.resize((width, height), Image.LANCZOS)


def encode_png_data_uri(img: Image.Image) -> str:
    buf = io.BytesIO()
    img.convert("RGB").save(buf, format="PNG", optimize=True)
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")


def compose_final_image(
    headline: str,
    highlight_phrases: Sequence[str],
    main_image_src: str,
    assets: CompositionAssets,
    *,
    brand_text: str,
) -> str:
    """Render the 1080x1080 post and return it as a PNG data URI.

    Raises CompositionError on any font, payload or rendering failure.
    """
    segments = split_headline(headline, list(highlight_phrases))
    font_size = dynamic_font_size(headline)
    main_image = decode_data_uri(main_image_src)
    fonts = _FontCache(assets)
    try:
        nodes: List[Node] = build_layout(segments, font_size, brand_text, fonts.measure("bold"))
        raster = fit_to_width(rasterize(nodes, assets, main_image, fonts))
        encoded = encode_png_data_uri(raster)
    except CompositionError:
        raise
    except (OSError, ValueError, KeyError) as e:
        raise CompositionError(f"Rendering failed: {e}") from e
    logger.info(f"Composed {raster.width}x{raster.height} post ({len(segments)} headline segments, {font_size}px)")
    return encoded
