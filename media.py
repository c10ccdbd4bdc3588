"""Gemini image and speech generation.

Illustrations for slides degrade to ``None`` on any failure so a deck is never
lost to one bad image; the visualizer and speech calls raise instead, since
the caller has nothing to fall back to.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence

from google import genai
from google.genai import types

from settings import Settings, get_settings

logger = logging.getLogger(__name__)

IMAGE_SIZES = ("1K", "2K", "4K")

SLIDE_IMAGE_PROMPT = "Educational illustration, clean, academic, white background. {description}"
MATH_VISUAL_PROMPT = (
    "Create a highly accurate, educational mathematical visualization or diagram for the "
    "following concept (which might be in Arabic): {prompt}. Clean white background, academic style."
)


class MediaError(Exception):
    """A media generation call returned nothing usable."""


def make_client(api_key: Optional[str] = None, settings: Optional[Settings] = None) -> genai.Client:
    settings = settings or get_settings()
    key = api_key or settings.gemini_api_key
    if not key:
        raise MediaError("API key is missing. Set GEMINI_API_KEY or pass api_key.")
    return genai.Client(api_key=key)

# ---- Response helpers --------------------------------------------------------

def extract_inline_data(response) -> Optional[bytes]:
    """First inline binary payload (image or audio) of a generate_content response."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates or candidates[0].content is None:
        return None
    for part in candidates[0].content.parts or []:
        if part.inline_data and part.inline_data.data:
            return part.inline_data.data
    return None

def _should_fall_back(e: Exception) -> bool:
    return getattr(e, "code", None) in (403, 404) or "PERMISSION_DENIED" in str(e)

def _generate_image(client, prompt: str, image_size: str, settings: Settings) -> Optional[bytes]:
    try:
        response = client.models.generate_content(
            model=settings.image_model,
            contents=prompt,
            config=types.GenerateContentConfig(
                image_config=types.ImageConfig(aspect_ratio="16:9", image_size=image_size),
            ),
        )
    except Exception as e:
        if not _should_fall_back(e):
            raise
        logger.warning("Falling back to %s: %s", settings.fallback_image_model, e)
        response = client.models.generate_content(
            model=settings.fallback_image_model,
            contents=prompt,
            config=types.GenerateContentConfig(
                image_config=types.ImageConfig(aspect_ratio="16:9"),
            ),
        )
    return extract_inline_data(response)

# ---- Features ----------------------------------------------------------------

def generate_slide_image(client, description: str, settings: Optional[Settings] = None) -> Optional[bytes]:
    """Illustration bytes for one slide, or None if generation failed."""
    settings = settings or get_settings()
    prompt = SLIDE_IMAGE_PROMPT.format(description=description)
    try:
        return _generate_image(client, prompt, "1K", settings)
    except Exception as e:
        logger.warning("Slide image generation failed: %s", e)
        return None

def generate_math_visual(client, prompt: str, size: str = "1K",
                         settings: Optional[Settings] = None) -> Optional[bytes]:
    if size not in IMAGE_SIZES:
        raise ValueError(f"size must be one of {', '.join(IMAGE_SIZES)}")
    settings = settings or get_settings()
    return _generate_image(client, MATH_VISUAL_PROMPT.format(prompt=prompt), size, settings)

def generate_speech(client, text: str, max_chars: Optional[int] = None, voice: Optional[str] = None,
                    settings: Optional[Settings] = None) -> bytes:
    """Raw PCM audio for ``text``, truncated to ``max_chars`` characters."""
    settings = settings or get_settings()
    if not text or not text.strip():
        raise ValueError("Text is empty")
    max_chars = max_chars or settings.tts_max_chars
    voice = voice or settings.tts_voice

    response = client.models.generate_content(
        model=settings.tts_model,
        contents=text[:max_chars],
        config=types.GenerateContentConfig(
            response_modalities=["AUDIO"],
            speech_config=types.SpeechConfig(
                voice_config=types.VoiceConfig(
                    prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=voice),
                ),
            ),
        ),
    )
    audio = extract_inline_data(response)
    if not audio:
        raise MediaError("No audio generated")
    return audio

def fetch_illustrations(client, descriptions: Sequence[str], workers: int = 1,
                        settings: Optional[Settings] = None) -> List[Optional[bytes]]:
    """One illustration (or None) per description, in input order.

    ``workers == 1`` fetches one at a time; more uses a bounded thread pool
    whose results are still placed by index.
    """
    settings = settings or get_settings()

    def fetch(description: str) -> Optional[bytes]:
        if not description or not description.strip():
            return None
        return generate_slide_image(client, description, settings)

    if workers <= 1:
        results = [fetch(d) for d in descriptions]
    else:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(fetch, descriptions))
    missing = sum(1 for r in results if r is None)
    if missing:
        logger.warning("%d of %d slides have no illustration", missing, len(results))
    return results
