"""Topic in, .pptx out: plan -> illustrations -> assemble -> export."""
import logging
from typing import Optional, Sequence

from pydantic import BaseModel, ConfigDict

from assembler import assemble
from layout import DEFAULT_LAYOUT, LayoutConstants
from llm_router import plan_presentation
from media import MediaError, fetch_illustrations, make_client
from pptx_export import export_filename, export_pptx
from settings import Settings, get_settings
from slide_schema import Deck, DeckSpec, PresentationPlan, SlideSpec

logger = logging.getLogger(__name__)


class GeneratedPresentation(BaseModel):
    model_config = ConfigDict(frozen=True)

    deck: Deck
    content: bytes
    filename: str


def build_deck_spec(plan: PresentationPlan, illustrations: Sequence[Optional[bytes]]) -> DeckSpec:
    if len(illustrations) != len(plan.slides):
        raise ValueError("need exactly one illustration entry per slide")
    return DeckSpec(
        title=plan.title,
        slides=tuple(
            SlideSpec(
                title=s.title,
                bullets=tuple(s.bullets),
                examples=tuple(s.examples),
                illustration=image,
                speaker_notes=s.speaker_notes or None,
            )
            for s, image in zip(plan.slides, illustrations)
        ),
    )


def generate_presentation(topic: str, slide_count: int, provider: Optional[str] = None,
                          api_key: Optional[str] = None, image_client=None,
                          constants: LayoutConstants = DEFAULT_LAYOUT,
                          settings: Optional[Settings] = None) -> GeneratedPresentation:
    settings = settings or get_settings()
    provider = provider or settings.default_provider

    # 1) Text content
    plan = plan_presentation(provider, api_key, topic, slide_count, settings)

    # 2) One illustration per slide; failures come back as None
    descriptions = [s.image_description for s in plan.slides]
    client = image_client
    if client is None:
        try:
            client = make_client(api_key if provider == "gemini" else None, settings)
        except MediaError as e:
            logger.warning("No image client, slides get placeholders: %s", e)
    if client is None:
        illustrations = [None] * len(descriptions)
    else:
        illustrations = fetch_illustrations(client, descriptions,
                                            workers=settings.illustration_workers, settings=settings)

    # 3) Layout and serialization
    deck = assemble(build_deck_spec(plan, illustrations), constants)
    content = export_pptx(deck)
    filename = export_filename(deck.title)
    logger.info("Generated %s with %d content slides", filename, len(plan.slides))
    return GeneratedPresentation(deck=deck, content=content, filename=filename)
