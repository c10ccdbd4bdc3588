from enum import Enum
from typing import List, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field

# ---- Input: what the caller wants on the slides ------------------------------

class SlideSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str = Field(..., description="Slide title")
    bullets: Tuple[str, ...] = Field(..., description="Bullet points, may be empty")
    examples: Tuple[str, ...] = Field(default=(), description="Worked examples")
    illustration: Optional[bytes] = Field(default=None, description="Pre-fetched image bytes")
    speaker_notes: Optional[str] = Field(default=None, description="Optional speaker notes")

class DeckSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    slides: Tuple[SlideSpec, ...]

# ---- Output: laid-out deck ---------------------------------------------------

class ElementKind(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    SHAPE = "shape"

class Box(BaseModel):
    """Bounding box in inches, origin at the slide's top-left corner."""
    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    w: float
    h: float

class TextStyle(BaseModel):
    model_config = ConfigDict(frozen=True)

    font_size: float = 18.0
    color: str = "000000"
    align: str = "right"     # "left" | "center" | "right"
    valign: str = "top"      # "top" | "middle" | "bottom"
    bold: bool = False
    line_spacing: float = 1.0

class Element(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: ElementKind
    role: str
    box: Box
    rtl: bool = False
    style: TextStyle = Field(default_factory=TextStyle)
    paragraphs: Tuple[str, ...] = ()
    list_style: str = "none"  # "none" | "bullet" | "number"
    shrink: bool = False
    fill: Optional[str] = None
    image: Optional[bytes] = Field(default=None, repr=False)
    image_box: Optional[Box] = None
    overflow: bool = False

class Slide(BaseModel):
    model_config = ConfigDict(frozen=True)

    elements: Tuple[Element, ...]
    background: str = "FFFFFF"
    notes: Optional[str] = None
    is_cover: bool = False

    def by_role(self, role: str) -> List[Element]:
        return [e for e in self.elements if e.role == role]

class Deck(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    slide_width: float
    slide_height: float
    slides: Tuple[Slide, ...]

# ---- Upstream content plan (LLM output) --------------------------------------

class PlannedSlide(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(..., description="Slide title")
    bullets: List[str] = Field(default_factory=list, description="Bullet points")
    examples: List[str] = Field(default_factory=list, description="Real-world examples")
    image_description: str = Field(default="", alias="imageDescription",
                                   description="English prompt for the illustration")
    speaker_notes: str = Field(default="", alias="speakerNotes", description="Speaker notes")

class PresentationPlan(BaseModel):
    title: str = Field(default="", description="Presentation title")
    slides: List[PlannedSlide] = Field(default_factory=list)
