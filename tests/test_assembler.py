import pytest

from assembler import (
    BULLET_FONT_SIZE,
    COVER_BACKGROUND,
    EXAMPLE_FONT_SIZE,
    EXAMPLES_LABEL,
    NO_IMAGE_CAPTION,
    assemble,
)
from layout import DEFAULT_LAYOUT, MIN_FONT_SIZE, LayoutConstants, LayoutGeometry
from slide_schema import DeckSpec, ElementKind, SlideSpec

EXAMPLE_ROLES = {"examples_label", "examples"}


def deck_spec(*slides, title="Vectors"):
    return DeckSpec(title=title, slides=slides)


def image_column_box(slide):
    for el in slide.elements:
        if el.role in ("image", "placeholder"):
            return el.box
    raise AssertionError("slide has no image column")


class TestScenarios:
    def test_single_slide_without_illustration(self):
        deck = assemble(deck_spec(SlideSpec(title="Intro", bullets=["a", "b"], examples=[])))

        assert len(deck.slides) == 2
        content = deck.slides[1]
        assert [e.kind for e in content.by_role("placeholder")] == [ElementKind.SHAPE]
        assert content.by_role("placeholder_caption")[0].paragraphs == (NO_IMAGE_CAPTION,)
        assert not [e for e in content.elements if e.role in EXAMPLE_ROLES]
        assert content.by_role("image") == []

    def test_full_slide_has_exactly_five_elements(self, wide_png):
        deck = assemble(deck_spec(SlideSpec(
            title="Sums", bullets=["addition"], examples=["2+2=4"], illustration=wide_png,
        )))
        content = deck.slides[1]

        assert [e.role for e in content.elements] == [
            "slide_title", "image", "bullets", "examples_label", "examples",
        ]
        image = content.by_role("image")[0]
        assert image.kind == ElementKind.IMAGE
        assert (image.box.w, image.box.h) == (DEFAULT_LAYOUT.image_width, DEFAULT_LAYOUT.content_height)
        assert image.image == wide_png
        fitted = image.image_box
        assert fitted.x >= image.box.x and fitted.y >= image.box.y
        assert fitted.x + fitted.w <= image.box.x + image.box.w + 1e-9
        assert fitted.y + fitted.h <= image.box.y + image.box.h + 1e-9


class TestCoverSlide:
    def test_cover_carries_title_and_attribution(self):
        deck = assemble(deck_spec(title="المتجهات"), attribution="MathMind")
        cover = deck.slides[0]
        assert cover.is_cover
        assert cover.background == COVER_BACKGROUND
        assert cover.by_role("title")[0].paragraphs == ("المتجهات",)
        assert cover.by_role("caption")[0].paragraphs == ("MathMind",)
        assert cover.by_role("title")[0].style.align == "center"

    def test_cover_background_differs_from_content(self):
        deck = assemble(deck_spec(SlideSpec(title="t", bullets=[])))
        assert deck.slides[0].background != deck.slides[1].background

    def test_empty_deck_is_just_a_cover(self):
        deck = assemble(deck_spec())
        assert len(deck.slides) == 1


class TestProperties:
    def test_assembly_is_deterministic(self, wide_png):
        spec = deck_spec(
            SlideSpec(title="one", bullets=["x" * 500], examples=["e1", "e2"], illustration=wide_png),
            SlideSpec(title="two", bullets=[], speaker_notes="notes"),
        )
        assert assemble(spec) == assemble(spec)

    def test_placeholder_box_matches_image_box(self, tall_png):
        with_image = assemble(deck_spec(SlideSpec(title="t", bullets=["b"], illustration=tall_png)))
        without = assemble(deck_spec(SlideSpec(title="t", bullets=["b"])))
        assert image_column_box(with_image.slides[1]) == image_column_box(without.slides[1])
        caption = without.slides[1].by_role("placeholder_caption")[0]
        assert caption.box == image_column_box(without.slides[1])

    @pytest.mark.parametrize("examples,expected", [
        ([], []),
        (["one"], ["examples_label", "examples"]),
        (["one", "two", "three"], ["examples_label", "examples"]),
    ])
    def test_examples_band_only_when_there_are_examples(self, examples, expected):
        deck = assemble(deck_spec(SlideSpec(title="t", bullets=["b"], examples=examples)))
        roles = [e.role for e in deck.slides[1].elements if e.role in EXAMPLE_ROLES]
        assert roles == expected

    def test_examples_label_and_numbering(self):
        deck = assemble(deck_spec(SlideSpec(title="t", bullets=[], examples=["2+2=4", "3*3=9"])))
        slide = deck.slides[1]
        assert slide.by_role("examples_label")[0].paragraphs == (EXAMPLES_LABEL,)
        examples = slide.by_role("examples")[0]
        assert examples.list_style == "number"
        assert examples.paragraphs == ("2+2=4", "3*3=9")

    def test_slide_and_item_order_preserved(self):
        titles = [f"slide {i}" for i in range(7)]
        spec = deck_spec(*[
            SlideSpec(title=t, bullets=[f"{t} / {j}" for j in range(3)]) for t in titles
        ])
        deck = assemble(spec)
        assert [s.by_role("slide_title")[0].paragraphs[0] for s in deck.slides[1:]] == titles
        assert deck.slides[3].by_role("bullets")[0].paragraphs == ("slide 2 / 0", "slide 2 / 1", "slide 2 / 2")

    def test_long_text_shrinks_instead_of_overflowing(self):
        deck = assemble(deck_spec(SlideSpec(
            title="t", bullets=["ب" * 2200, "short"], examples=["e" * 2400],
        )))
        slide = deck.slides[1]
        bullets = slide.by_role("bullets")[0]
        examples = slide.by_role("examples")[0]
        assert bullets.style.font_size < BULLET_FONT_SIZE
        assert not bullets.overflow
        assert not examples.overflow
        assert bullets.shrink and examples.shrink

    def test_multiline_example_shrinks(self):
        example = "x = 1\ny = 2\nz = 3\nw = 4\nv = 5\nu = 6"
        deck = assemble(deck_spec(SlideSpec(title="t", bullets=["b"], examples=[example])))
        examples = deck.slides[1].by_role("examples")[0]
        assert examples.paragraphs == (example,)
        assert examples.style.font_size < EXAMPLE_FONT_SIZE
        assert not examples.overflow

    def test_text_past_the_size_floor_is_flagged(self):
        deck = assemble(deck_spec(SlideSpec(title="t", bullets=["b"] * 2000)))
        bullets = deck.slides[1].by_role("bullets")[0]
        assert bullets.style.font_size == MIN_FONT_SIZE
        assert bullets.overflow


class TestContentSlide:
    def test_everything_reads_right_to_left(self):
        deck = assemble(deck_spec(SlideSpec(title="t", bullets=["b"], examples=["e"])))
        text = [e for e in deck.slides[1].elements if e.kind == ElementKind.TEXT]
        assert all(e.rtl for e in text)
        assert deck.slides[1].by_role("slide_title")[0].style.align == "right"
        assert deck.slides[1].by_role("bullets")[0].style.align == "right"

    def test_empty_bullets_render_an_empty_list(self):
        deck = assemble(deck_spec(SlideSpec(title="only a title", bullets=[])))
        slide = deck.slides[1]
        assert slide.by_role("slide_title")
        assert slide.by_role("placeholder")
        bullets = slide.by_role("bullets")[0]
        assert bullets.paragraphs == ()
        assert bullets.style.font_size == BULLET_FONT_SIZE

    def test_speaker_notes_are_not_elements(self):
        deck = assemble(deck_spec(SlideSpec(title="t", bullets=["b"], speaker_notes="say this")))
        slide = deck.slides[1]
        assert slide.notes == "say this"
        assert all("say this" not in e.paragraphs for e in slide.elements)

    def test_unreadable_illustration_uses_placeholder(self):
        deck = assemble(deck_spec(SlideSpec(title="t", bullets=["b"], illustration=b"\x89PNG broken")))
        assert deck.slides[1].by_role("image") == []
        assert deck.slides[1].by_role("placeholder")

    def test_geometry_is_uniform_across_slides(self, wide_png):
        deck = assemble(deck_spec(
            SlideSpec(title="a", bullets=["1"], illustration=wide_png),
            SlideSpec(title="b", bullets=["1", "2"]),
        ))
        g = LayoutGeometry.from_constants(DEFAULT_LAYOUT)
        for slide in deck.slides[1:]:
            assert slide.by_role("slide_title")[0].box == g.title_band
            assert slide.by_role("bullets")[0].box == g.text_column
            assert image_column_box(slide) == g.image_column

    def test_custom_constants_are_honoured(self):
        constants = LayoutConstants(image_width=4.0)
        deck = assemble(deck_spec(SlideSpec(title="t", bullets=["b"])), constants)
        assert image_column_box(deck.slides[1]).w == 4.0
        assert deck.slides[1].by_role("bullets")[0].box.w == pytest.approx(constants.text_width)


class TestStructuralErrors:
    def test_rejects_plain_dict(self):
        with pytest.raises(TypeError):
            assemble({"title": "x", "slides": []})

    def test_rejects_bad_constants(self):
        with pytest.raises(TypeError):
            assemble(deck_spec(), constants={"margin": 1})

    def test_slides_are_required(self):
        with pytest.raises(ValueError):
            DeckSpec(title="x")

    def test_bullets_are_required(self):
        with pytest.raises(ValueError):
            SlideSpec(title="x")
