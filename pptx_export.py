import io
import logging
import re
import uuid

from pptx import Presentation
from pptx.dml.color import RGBColor
from pptx.enum.shapes import MSO_SHAPE
from pptx.enum.text import MSO_AUTO_SIZE, MSO_VERTICAL_ANCHOR, PP_PARAGRAPH_ALIGNMENT
from pptx.oxml.xmlchemy import OxmlElement
from pptx.util import Inches, Pt

from layout import LIST_INDENT, MIN_FONT_SIZE, split_lines
from slide_schema import Deck, Element, ElementKind, Slide

logger = logging.getLogger(__name__)

ALIGN = {
    "left": PP_PARAGRAPH_ALIGNMENT.LEFT,
    "center": PP_PARAGRAPH_ALIGNMENT.CENTER,
    "right": PP_PARAGRAPH_ALIGNMENT.RIGHT,
}
VALIGN = {
    "top": MSO_VERTICAL_ANCHOR.TOP,
    "middle": MSO_VERTICAL_ANCHOR.MIDDLE,
    "bottom": MSO_VERTICAL_ANCHOR.BOTTOM,
}

# ---- File naming -------------------------------------------------------------

def sanitize_title(title: str) -> str:
    """Title with everything outside [A-Za-z0-9] removed, lower-cased.

    Empty for titles written only in non-Latin scripts.
    """
    return re.sub(r"[^a-z0-9]", "", title, flags=re.IGNORECASE).lower()

def export_filename(title: str) -> str:
    base = sanitize_title(title)
    if not base:
        base = f"presentation_{uuid.uuid4().hex[:8]}"
        logger.info("Title %r has no ASCII letters or digits, saving as %s", title, base)
    return f"{base}.pptx"

# ---- Element writers ---------------------------------------------------------

def _box(el: Element, box=None):
    b = box or el.box
    return Inches(b.x), Inches(b.y), Inches(b.w), Inches(b.h)

def _set_paragraph_direction(p, el: Element) -> None:
    pPr = p._p.get_or_add_pPr()
    if el.rtl:
        pPr.set("rtl", "1")
    if el.list_style == "none":
        return
    indent = Inches(LIST_INDENT)
    pPr.set("marL", str(int(indent)))
    pPr.set("indent", str(-int(indent)))
    if el.list_style == "bullet":
        bu = OxmlElement("a:buChar")
        bu.set("char", "•")
    else:
        bu = OxmlElement("a:buAutoNum")
        bu.set("type", "arabicPeriod")
    pPr.append(bu)

def _style_run(run, el: Element, size, color) -> None:
    run.font.size = size
    run.font.bold = el.style.bold
    run.font.color.rgb = color

def _add_text(slide, el: Element) -> None:
    shape = slide.shapes.add_textbox(*_box(el))
    tf = shape.text_frame
    tf.word_wrap = True
    tf.vertical_anchor = VALIGN[el.style.valign]
    tf.auto_size = MSO_AUTO_SIZE.TEXT_TO_FIT_SHAPE if el.shrink else MSO_AUTO_SIZE.NONE

    size = Pt(max(el.style.font_size, MIN_FONT_SIZE))
    color = RGBColor.from_string(el.style.color)
    for i, text in enumerate(el.paragraphs or ("",)):
        p = tf.paragraphs[0] if i == 0 else tf.add_paragraph()
        p.alignment = ALIGN[el.style.align]
        if el.style.line_spacing != 1.0:
            p.line_spacing = el.style.line_spacing
        _set_paragraph_direction(p, el)
        # Newlines stay inside one list item as <a:br/>, not as new items
        for j, line in enumerate(split_lines(text)):
            if j:
                p.add_line_break()
            run = p.add_run()
            run.text = line
            _style_run(run, el, size, color)

def _add_image(slide, el: Element) -> None:
    slide.shapes.add_picture(io.BytesIO(el.image), *_box(el, el.image_box))

def _add_shape(slide, el: Element) -> None:
    rect = slide.shapes.add_shape(MSO_SHAPE.RECTANGLE, *_box(el))
    rect.fill.solid()
    rect.fill.fore_color.rgb = RGBColor.from_string(el.fill or "FFFFFF")
    rect.line.fill.background()

WRITERS = {
    ElementKind.TEXT: _add_text,
    ElementKind.IMAGE: _add_image,
    ElementKind.SHAPE: _add_shape,
}

# ---- Deck --------------------------------------------------------------------

def _write_slide(prs, layout, item: Slide) -> None:
    slide = prs.slides.add_slide(layout)
    slide.background.fill.solid()
    slide.background.fill.fore_color.rgb = RGBColor.from_string(item.background)
    for el in item.elements:
        WRITERS[el.kind](slide, el)
    if item.notes:
        slide.notes_slide.notes_text_frame.text = item.notes

def render_presentation(deck: Deck) -> Presentation:
    prs = Presentation()  # default theme
    prs.slide_width = Inches(deck.slide_width)
    prs.slide_height = Inches(deck.slide_height)
    # Blank layout if the template has one, else whatever comes last
    layout_idx_blank = 6 if len(prs.slide_layouts) > 6 else len(prs.slide_layouts) - 1
    layout = prs.slide_layouts[layout_idx_blank]
    for item in deck.slides:
        _write_slide(prs, layout, item)
    return prs

def export_pptx(deck: Deck) -> bytes:
    out = io.BytesIO()
    render_presentation(deck).save(out)
    logger.info("Exported %r (%d slides, %d bytes)", deck.title, len(deck.slides), out.tell())
    return out.getvalue()
