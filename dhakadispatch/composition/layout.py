"""Fixed 1080x1080 post layout.

`build_layout` turns the headline segments into a flat, paint-ordered list of
positioned nodes in canvas coordinates. It only needs a text-width function,
so it is independent of the rasterizer:

    headline band (324px, white, centered wrapped spans)
    separator     (5px, black)
    image band    (remaining height, main image cover-cropped)
    overlays      (frame over the whole canvas, logo bottom-left, brand bottom-right)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Sequence, Tuple, Union

from dhakadispatch.composition.headline import HeadlineSegment

CANVAS_WIDTH = 1080
CANVAS_HEIGHT = 1080
BACKGROUND = "#ffffff"

HEADLINE_BAND_HEIGHT = 324
HEADLINE_PADDING_X = 40
HEADLINE_PADDING_Y = 20
HEADLINE_LINE_HEIGHT = 1.2
HEADLINE_TEXT_COLOR = "#111827"
HIGHLIGHT_FILL = "#ef4444"
HIGHLIGHT_TEXT_COLOR = "#ffffff"
SPAN_PADDING_X = 8
SPAN_MARGIN_X = 2

SEPARATOR_HEIGHT = 5
SEPARATOR_COLOR = "#000000"

IMAGE_BAND_TOP = HEADLINE_BAND_HEIGHT + SEPARATOR_HEIGHT
IMAGE_BAND_HEIGHT = CANVAS_HEIGHT - IMAGE_BAND_TOP

LOGO_BOX = (20, CANVAS_HEIGHT - 20 - 60, 200, 60)  # x, y, w, h
BRAND_FONT_SIZE = 24
BRAND_RIGHT = 30
BRAND_BOTTOM = 25
BRAND_COLOR = "#ffffff"
BRAND_SHADOW = (1, 1, 3)  # dx, dy, blur

MeasureFunc = Callable[[str, int], float]


@dataclass(frozen=True)
class RectNode:
    x: float
    y: float
    width: float
    height: float
    fill: str


@dataclass(frozen=True)
class TextNode:
    """Text anchored at its left (or right) edge, vertically centered on `y`."""

    x: float
    y: float
    text: str
    font: str  # "bold" | "brand"
    size: int
    fill: str
    align: str = "left"
    shadow: Tuple[int, int, int] = (0, 0, 0)


@dataclass(frozen=True)
class ImageNode:
    x: float
    y: float
    width: float
    height: float
    source: str  # "main" | "overlay" | "logo"
    fit: str = "cover"  # "cover" | "contain" | "fill"


Node = Union[RectNode, TextNode, ImageNode]


@dataclass
class _Piece:
    text: str
    highlighted: bool
    text_width: float

    @property
    def outer_width(self) -> float:
        return self.text_width + 2 * SPAN_PADDING_X + 2 * SPAN_MARGIN_X


@dataclass
class _Line:
    pieces: List[_Piece] = field(default_factory=list)

    @property
    def width(self) -> float:
        return sum(p.outer_width for p in self.pieces)


def _span_width(measure: MeasureFunc, text: str, size: int) -> float:
    return measure(text, size) + 2 * SPAN_PADDING_X + 2 * SPAN_MARGIN_X


def wrap_segments(
    segments: Sequence[HeadlineSegment],
    measure: MeasureFunc,
    font_size: int,
    max_width: float,
) -> List[_Line]:
    """Flow segments into lines, splitting a segment on words only when it cannot fit whole."""
    lines: List[_Line] = [_Line()]

    for segment in segments:
        words = segment.text.split()
        if not words:
            continue
        whole = " ".join(words)
        whole_width = _span_width(measure, whole, font_size)
        if lines[-1].width + whole_width <= max_width:
            lines[-1].pieces.append(_Piece(whole, segment.is_highlighted, measure(whole, font_size)))
            continue
        if whole_width <= max_width:
            lines.append(_Line([_Piece(whole, segment.is_highlighted, measure(whole, font_size))]))
            continue
        chunk: List[str] = []
        for word in words:
            candidate = " ".join(chunk + [word])
            if lines[-1].width + _span_width(measure, candidate, font_size) <= max_width:
                chunk.append(word)
                continue
            if chunk:
                text = " ".join(chunk)
                lines[-1].pieces.append(_Piece(text, segment.is_highlighted, measure(text, font_size)))
            if lines[-1].pieces:
                lines.append(_Line())
            chunk = [word]
        if chunk:
            text = " ".join(chunk)
            lines[-1].pieces.append(_Piece(text, segment.is_highlighted, measure(text, font_size)))

    return [line for line in lines if line.pieces]


def layout_headline(
    segments: Sequence[HeadlineSegment],
    font_size: int,
    measure: MeasureFunc,
) -> List[Node]:
    inner_width = CANVAS_WIDTH - 2 * HEADLINE_PADDING_X
    inner_height = HEADLINE_BAND_HEIGHT - 2 * HEADLINE_PADDING_Y
    line_height = round(font_size * HEADLINE_LINE_HEIGHT)

    lines = wrap_segments(segments, measure, font_size, inner_width)
    block_height = line_height * len(lines)
    top = HEADLINE_PADDING_Y + (inner_height - block_height) / 2

    nodes: List[Node] = []
    for row, line in enumerate(lines):
        y = top + row * line_height
        x = HEADLINE_PADDING_X + (inner_width - line.width) / 2
        for piece in line.pieces:
            box_x = x + SPAN_MARGIN_X
            box_width = piece.text_width + 2 * SPAN_PADDING_X
            if piece.highlighted:
                nodes.append(RectNode(box_x, y, box_width, line_height, HIGHLIGHT_FILL))
            nodes.append(
                TextNode(
                    x=box_x + SPAN_PADDING_X,
                    y=y + line_height / 2,
                    text=piece.text,
                    font="bold",
                    size=font_size,
                    fill=HIGHLIGHT_TEXT_COLOR if piece.highlighted else HEADLINE_TEXT_COLOR,
                )
            )
            x += piece.outer_width
    return nodes


def build_layout(
    segments: Sequence[HeadlineSegment],
    font_size: int,
    brand_text: str,
    measure: MeasureFunc,
) -> List[Node]:
    """Whole-canvas node list in paint order."""
    nodes: List[Node] = [
        RectNode(0, 0, CANVAS_WIDTH, CANVAS_HEIGHT, BACKGROUND),
        RectNode(0, 0, CANVAS_WIDTH, HEADLINE_BAND_HEIGHT, BACKGROUND),
    ]
    nodes.extend(layout_headline(segments, font_size, measure))
    # bands are painted after the headline so an overflowing headline is clipped
    nodes.append(RectNode(0, HEADLINE_BAND_HEIGHT, CANVAS_WIDTH, SEPARATOR_HEIGHT, SEPARATOR_COLOR))
    nodes.append(ImageNode(0, IMAGE_BAND_TOP, CANVAS_WIDTH, IMAGE_BAND_HEIGHT, "main", "cover"))
    nodes.append(ImageNode(0, 0, CANVAS_WIDTH, CANVAS_HEIGHT, "overlay", "fill"))
    lx, ly, lw, lh = LOGO_BOX
    nodes.append(ImageNode(lx, ly, lw, lh, "logo", "contain"))
    brand_line = round(BRAND_FONT_SIZE * HEADLINE_LINE_HEIGHT)
    nodes.append(
        TextNode(
            x=CANVAS_WIDTH - BRAND_RIGHT,
            y=CANVAS_HEIGHT - BRAND_BOTTOM - brand_line / 2,
            text=brand_text,
            font="brand",
            size=BRAND_FONT_SIZE,
            fill=BRAND_COLOR,
            align="right",
            shadow=BRAND_SHADOW,
        )
    )
    return nodes
