"""Deck assembler: turns a DeckSpec into a laid-out, right-to-left Deck.

The assembler is a pure function. It does no network or file I/O and the same
input always yields the same geometry, so it can be tested without python-pptx
or a remote model. Serialization lives in ``pptx_export``.
"""
import logging
from typing import List

from layout import (
    DEFAULT_LAYOUT,
    LIST_INDENT,
    LayoutConstants,
    LayoutGeometry,
    contain_fit,
    fit_font_size,
    image_size,
    text_fits,
)
from slide_schema import Deck, DeckSpec, Element, ElementKind, Slide, SlideSpec, TextStyle

logger = logging.getLogger(__name__)

DEFAULT_ATTRIBUTION = "تم الإنشاء بواسطة MathMind AI"
NO_IMAGE_CAPTION = "لا توجد صورة"
EXAMPLES_LABEL = "أمثلة:"

COVER_BACKGROUND = "F1F5F9"
CONTENT_BACKGROUND = "FFFFFF"
PLACEHOLDER_FILL = "F1F5F9"

COVER_TITLE_STYLE = TextStyle(font_size=36, color="0F172A", align="center", valign="middle", bold=True)
COVER_CAPTION_STYLE = TextStyle(font_size=18, color="475569", align="center", valign="middle")
SLIDE_TITLE_STYLE = TextStyle(font_size=24, color="4F46E5", align="right", valign="middle", bold=True)
PLACEHOLDER_CAPTION_STYLE = TextStyle(font_size=10, color="94A3B8", align="center", valign="middle")
EXAMPLES_LABEL_STYLE = TextStyle(font_size=14, color="0F172A", align="right", valign="top", bold=True)

BULLET_FONT_SIZE = 16.0
BULLET_LINE_SPACING = 1.5
BULLET_COLOR = "334155"
EXAMPLE_FONT_SIZE = 14.0
EXAMPLE_LINE_SPACING = 1.2
EXAMPLE_COLOR = "475569"


def assemble(spec: DeckSpec, constants: LayoutConstants = DEFAULT_LAYOUT,
             attribution: str = DEFAULT_ATTRIBUTION) -> Deck:
    """Build a cover slide plus one content slide per ``spec.slides`` entry, in order."""
    if not isinstance(spec, DeckSpec):
        raise TypeError(f"assemble() expects a DeckSpec, got {type(spec).__name__}")
    if not isinstance(constants, LayoutConstants):
        raise TypeError(f"assemble() expects LayoutConstants, got {type(constants).__name__}")

    geometry = LayoutGeometry.from_constants(constants)
    slides = [_cover_slide(spec.title, attribution, geometry)]
    slides.extend(_content_slide(s, geometry) for s in spec.slides)
    logger.debug("Assembled deck %r with %d slides", spec.title, len(slides))
    return Deck(
        title=spec.title,
        slide_width=constants.slide_width,
        slide_height=constants.slide_height,
        slides=tuple(slides),
    )

# ---- Cover -------------------------------------------------------------------

def _cover_slide(title: str, attribution: str, g: LayoutGeometry) -> Slide:
    elements = (
        Element(kind=ElementKind.TEXT, role="title", box=g.cover_title, rtl=True,
                style=COVER_TITLE_STYLE, paragraphs=(title,)),
        Element(kind=ElementKind.TEXT, role="caption", box=g.cover_caption, rtl=True,
                style=COVER_CAPTION_STYLE, paragraphs=(attribution,)),
    )
    return Slide(elements=elements, background=COVER_BACKGROUND, is_cover=True)

# ---- Content slides ----------------------------------------------------------

def _content_slide(s: SlideSpec, g: LayoutGeometry) -> Slide:
    elements: List[Element] = [
        Element(kind=ElementKind.TEXT, role="slide_title", box=g.title_band, rtl=True,
                style=SLIDE_TITLE_STYLE, paragraphs=(s.title,)),
    ]
    elements.extend(_image_column(s, g))
    elements.append(_shrinking_list("bullets", s.bullets, g.text_column, "bullet",
                                    BULLET_FONT_SIZE, BULLET_LINE_SPACING, BULLET_COLOR))
    if s.examples:
        elements.append(Element(kind=ElementKind.TEXT, role="examples_label", box=g.examples_label,
                                rtl=True, style=EXAMPLES_LABEL_STYLE, paragraphs=(EXAMPLES_LABEL,)))
        elements.append(_shrinking_list("examples", s.examples, g.examples_list, "number",
                                        EXAMPLE_FONT_SIZE, EXAMPLE_LINE_SPACING, EXAMPLE_COLOR))
    return Slide(elements=tuple(elements), background=CONTENT_BACKGROUND,
                 notes=s.speaker_notes or None)

def _image_column(s: SlideSpec, g: LayoutGeometry) -> List[Element]:
    box = g.image_column
    size = image_size(s.illustration) if s.illustration else None
    if size is not None:
        return [Element(kind=ElementKind.IMAGE, role="image", box=box,
                        image=s.illustration, image_box=contain_fit(box, *size))]
    # Same box as the picture would get; only the element kind changes.
    return [
        Element(kind=ElementKind.SHAPE, role="placeholder", box=box, fill=PLACEHOLDER_FILL),
        Element(kind=ElementKind.TEXT, role="placeholder_caption", box=box, rtl=True,
                style=PLACEHOLDER_CAPTION_STYLE, paragraphs=(NO_IMAGE_CAPTION,)),
    ]

def _shrinking_list(role, items, box, list_style, base_size, line_spacing, color) -> Element:
    paragraphs = tuple(items)
    size = fit_font_size(paragraphs, box, base_size, line_spacing, LIST_INDENT)
    style = TextStyle(font_size=size, color=color, align="right", valign="top",
                      line_spacing=line_spacing)
    return Element(
        kind=ElementKind.TEXT, role=role, box=box, rtl=True, style=style,
        paragraphs=paragraphs, list_style=list_style, shrink=True,
        overflow=not text_fits(paragraphs, box, size, line_spacing, LIST_INDENT),
    )
