"""Slide geometry for the deck assembler.

All measurements are in inches except font sizes, which are in points.
``LayoutGeometry`` is derived once per deck from ``LayoutConstants`` so every
content slide of a deck shares exactly the same boxes.
"""
import io
import logging
import textwrap
import unicodedata
from typing import List, Optional, Sequence, Tuple

from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel, ConfigDict, model_validator

from slide_schema import Box

logger = logging.getLogger(__name__)

POINTS_PER_INCH = 72.0

# Text frame insets (python-pptx / PowerPoint defaults)
INSET_X = 0.1
INSET_Y = 0.05

# Hanging indent reserved for bullet glyphs and list numbers
LIST_INDENT = 0.3

# Average glyph advance as a fraction of the font size
CHAR_ADVANCE = 0.5
WIDE_CHAR_ADVANCE = 1.0

FONT_STEP = 0.5
MIN_STEP_FONT_SIZE = 6.0
# Smallest run size a .pptx can carry
MIN_FONT_SIZE = 1.0


class LayoutConstants(BaseModel):
    """Fixed layout parameters for a 16:9 deck."""
    model_config = ConfigDict(frozen=True)

    slide_width: float = 10.0
    slide_height: float = 5.625
    margin: float = 0.5
    title_top: float = 0.3
    title_height: float = 0.7
    content_top: float = 1.1
    content_height: float = 2.8
    image_width: float = 3.2
    gap: float = 0.2
    examples_gap: float = 0.1
    examples_label_height: float = 0.3
    cover_title_top: float = 2.0
    cover_title_height: float = 1.0
    cover_caption_top: float = 3.5
    cover_caption_height: float = 0.6

    @property
    def content_width(self) -> float:
        return self.slide_width - 2 * self.margin

    @property
    def text_width(self) -> float:
        return self.content_width - self.image_width - self.gap

    @property
    def examples_top(self) -> float:
        return self.content_top + self.content_height + self.examples_gap

    @property
    def examples_height(self) -> float:
        return self.slide_height - self.examples_top - self.margin

    @model_validator(mode="after")
    def check_fits_slide(self) -> "LayoutConstants":
        if self.text_width <= 0:
            raise ValueError("image region and gap leave no room for the text column")
        if self.title_top + self.title_height > self.content_top:
            raise ValueError("title band overlaps the content region")
        if self.examples_height <= self.examples_label_height:
            raise ValueError("no room left for the examples band")
        if self.content_height + self.examples_height + self.margin > self.slide_height:
            raise ValueError("content and examples regions exceed the slide height")
        return self


DEFAULT_LAYOUT = LayoutConstants()


class LayoutGeometry(BaseModel):
    model_config = ConfigDict(frozen=True)

    cover_title: Box
    cover_caption: Box
    title_band: Box
    image_column: Box
    text_column: Box
    examples_label: Box
    examples_list: Box

    @classmethod
    def from_constants(cls, c: LayoutConstants) -> "LayoutGeometry":
        label_h = c.examples_label_height
        return cls(
            cover_title=Box(x=c.margin, y=c.cover_title_top, w=c.content_width, h=c.cover_title_height),
            cover_caption=Box(x=c.margin, y=c.cover_caption_top, w=c.content_width, h=c.cover_caption_height),
            title_band=Box(x=c.margin, y=c.title_top, w=c.content_width, h=c.title_height),
            # RTL reading order puts the illustration on the visual left
            image_column=Box(x=c.margin, y=c.content_top, w=c.image_width, h=c.content_height),
            text_column=Box(x=c.slide_width - c.margin - c.text_width, y=c.content_top,
                            w=c.text_width, h=c.content_height),
            examples_label=Box(x=c.margin, y=c.examples_top, w=c.content_width, h=label_h),
            examples_list=Box(x=c.margin, y=c.examples_top + label_h,
                              w=c.content_width, h=c.examples_height - label_h),
        )

# ---- Images ------------------------------------------------------------------

def image_size(data: bytes) -> Optional[Tuple[int, int]]:
    """Pixel size of an encoded image, or None if it can't be decoded."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            return img.size
    except (UnidentifiedImageError, OSError, ValueError) as e:
        logger.warning("Could not read illustration: %s", e)
        return None

def contain_fit(box: Box, px_w: int, px_h: int) -> Box:
    """Largest box with the image's aspect ratio that fits inside ``box``, centred."""
    if px_w <= 0 or px_h <= 0:
        return box
    scale = min(box.w / px_w, box.h / px_h)
    w = px_w * scale
    h = px_h * scale
    return Box(x=box.x + (box.w - w) / 2, y=box.y + (box.h - h) / 2, w=w, h=h)

# ---- Shrink-to-fit -----------------------------------------------------------

def _advance(ch: str) -> float:
    if unicodedata.east_asian_width(ch) in ("W", "F"):
        return WIDE_CHAR_ADVANCE
    return CHAR_ADVANCE

def split_lines(text: str) -> List[str]:
    """Hard line breaks inside one bullet or example."""
    return text.replace("\r\n", "\n").replace("\r", "\n").split("\n")

def _line_count(text: str, avail_pt: float, font_size: float) -> int:
    return sum(_wrapped_count(piece, avail_pt, font_size) for piece in split_lines(text))

def _wrapped_count(text: str, avail_pt: float, font_size: float) -> int:
    if not text:
        return 1
    # Wide glyphs take two narrow cells so textwrap's char count tracks width.
    cells = "".join(ch * 2 if _advance(ch) > CHAR_ADVANCE else ch for ch in text)
    per_line = max(1, int(avail_pt / (font_size * CHAR_ADVANCE)))
    return max(1, len(textwrap.wrap(cells, width=per_line, break_long_words=True)))

def estimate_text_height(paragraphs: Sequence[str], width: float, font_size: float,
                         line_spacing: float = 1.2, indent: float = 0.0) -> float:
    """Rendered height in inches of the paragraphs in a box ``width`` inches wide."""
    avail_pt = (width - 2 * INSET_X - indent) * POINTS_PER_INCH
    if avail_pt <= 0:
        return float("inf")
    lines = sum(_line_count(p, avail_pt, font_size) for p in paragraphs) or 1
    return lines * font_size * line_spacing / POINTS_PER_INCH + 2 * INSET_Y

def text_fits(paragraphs: Sequence[str], box: Box, font_size: float,
              line_spacing: float = 1.2, indent: float = 0.0) -> bool:
    return estimate_text_height(paragraphs, box.w, font_size, line_spacing, indent) <= box.h

def fit_font_size(paragraphs: Sequence[str], box: Box, base_size: float,
                  line_spacing: float = 1.2, indent: float = 0.0) -> float:
    """Largest font size, at most ``base_size``, at which the text stays inside ``box``.

    Steps down in half points to a readable floor, then halves until the
    estimate fits, stopping at MIN_FONT_SIZE. Text that still does not fit at
    that size is left for the caller to flag as overflowing. The result never
    exceeds ``base_size``.
    """
    size = base_size
    while size >= MIN_STEP_FONT_SIZE:
        if text_fits(paragraphs, box, size, line_spacing, indent):
            return size
        size -= FONT_STEP
    size = min(base_size, MIN_STEP_FONT_SIZE)
    while size > MIN_FONT_SIZE and not text_fits(paragraphs, box, size, line_spacing, indent):
        size = max(size / 2, MIN_FONT_SIZE)
    return size
