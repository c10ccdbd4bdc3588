import json
import logging
import re
from typing import Optional
from pydantic import ValidationError
from settings import Settings, get_settings
from slide_schema import PresentationPlan, PlannedSlide

logger = logging.getLogger(__name__)

class PlanningError(Exception):
    """The model did not return a usable presentation plan."""

# ---- Prompt helpers ----------------------------------------------------------

PROMPT_JSON_SPEC = """
Return ONLY valid JSON with this exact schema:
{
  "title": "عنوان العرض التقديمي",
  "slides": [
    {
      "title": "عنوان الشريحة",
      "bullets": ["نقطة 1", "نقطة 2", "نقطة 3"],
      "examples": ["مثال واقعي 1", "مثال 2"],
      "imageDescription": "Detailed English prompt for image generation...",
      "speakerNotes": "ملاحظات مفصلة للمتحدث بالعربية..."
    }
  ]
}
Do not include markdown fences or any prose before/after the JSON.
"""

def build_presentation_prompt(topic: str, slide_count: int) -> str:
    return f"""
أنت صانع محتوى تعليمي خبير.
قم بإنشاء عرض تقديمي حول الموضوع التالي: "{topic}".
يجب أن يحتوي العرض على {slide_count} شرائح محتوى (غير شامل شريحة العنوان).

المتطلبات:
1. المحتوى يجب أن يكون باللغة العربية، دقيقاً وغنياً بالمعلومات.
2. imageDescription يجب أن يكون وصفاً مفصلاً باللغة الإنجليزية للمساعدة في توليد صورة توضيحية.
3. أرجع النتيجة بتنسيق JSON فقط.

{PROMPT_JSON_SPEC}
""".strip()

# ---- JSON cleaners -----------------------------------------------------------

def clean_llm_output(text: str) -> str:
    """Remove markdown fences and extract JSON block if present."""
    text = text.strip()
    # Remove triple backtick fences like ```json ... ``` or ``` ... ```
    text = re.sub(r"^```[a-zA-Z]*\n?", "", text)
    text = re.sub(r"```$", "", text)
    # Extract JSON object if wrapped in prose
    match = re.search(r"\{.*\}", text, re.DOTALL)
    if match:
        return match.group(0)
    return text

def safe_json_parse(s: str) -> Optional[PresentationPlan]:
    try:
        obj = json.loads(clean_llm_output(s))
        return PresentationPlan.model_validate(obj)
    except (json.JSONDecodeError, ValidationError) as e:
        logger.warning("Presentation plan parse failed: %s", e)
        return None

# ---- Post-processing ---------------------------------------------------------

def _clean_items(items) -> list:
    return [i.strip() for i in items if i and i.strip()]

def clean_presentation_plan(plan: PresentationPlan, slide_count: Optional[int] = None) -> PresentationPlan:
    """Trim whitespace, drop blank bullets/examples and cap at the requested count."""
    slides = [
        PlannedSlide(
            title=s.title.strip(),
            bullets=_clean_items(s.bullets),
            examples=_clean_items(s.examples),
            image_description=s.image_description.strip(),
            speaker_notes=s.speaker_notes.strip(),
        )
        for s in plan.slides
    ]
    if slide_count is not None:
        slides = slides[:slide_count]
    return PresentationPlan(title=plan.title.strip(), slides=slides)

# ---- Provider calls ----------------------------------------------------------

def _plan_schema():
    from google.genai import types
    text_list = types.Schema(type=types.Type.ARRAY, items=types.Schema(type=types.Type.STRING))
    slide = types.Schema(
        type=types.Type.OBJECT,
        properties={
            "title": types.Schema(type=types.Type.STRING),
            "bullets": text_list,
            "examples": text_list,
            "imageDescription": types.Schema(type=types.Type.STRING),
            "speakerNotes": types.Schema(type=types.Type.STRING),
        },
    )
    return types.Schema(
        type=types.Type.OBJECT,
        properties={
            "title": types.Schema(type=types.Type.STRING),
            "slides": types.Schema(type=types.Type.ARRAY, items=slide),
        },
    )

def call_gemini(api_key: Optional[str], prompt: str, settings: Settings) -> str:
    from google import genai
    from google.genai import types
    client = genai.Client(api_key=api_key)
    resp = client.models.generate_content(
        model=settings.plan_model,
        contents=prompt,
        config=types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=_plan_schema(),
        ),
    )
    return (resp.text or "").strip()

def call_openai(api_key: Optional[str], prompt: str, settings: Settings) -> str:
    from openai import OpenAI
    client = OpenAI(api_key=api_key)
    resp = client.chat.completions.create(
        model=settings.openai_model,
        messages=[{"role": "user", "content": prompt}],
        temperature=0.2,
        # Enforce JSON output when supported
        response_format={"type": "json_object"}
    )
    return (resp.choices[0].message.content or "").strip()

def call_anthropic(api_key: Optional[str], prompt: str, settings: Settings) -> str:
    import anthropic
    client = anthropic.Anthropic(api_key=api_key)
    resp = client.messages.create(
        model=settings.anthropic_model,
        max_tokens=8000,
        temperature=0.2,
        messages=[{"role": "user", "content": prompt}],
    )
    # Claude often returns fenced json; cleaner handles it.
    return resp.content[0].text.strip()

PROVIDERS = {
    "gemini": call_gemini,
    "openai": call_openai,
    "anthropic": call_anthropic,
}

# ---- Router entrypoint -------------------------------------------------------

def plan_presentation(provider: str, api_key: Optional[str], topic: str, slide_count: int,
                      settings: Optional[Settings] = None) -> PresentationPlan:
    settings = settings or get_settings()
    call = PROVIDERS.get(provider)
    if call is None:
        raise ValueError("Unsupported provider")
    prompt = build_presentation_prompt(topic, slide_count)
    logger.info("Planning %d slides on %r with %s", slide_count, topic, provider)
    plan = safe_json_parse(call(api_key, prompt, settings))
    if plan is None or not plan.slides:
        raise PlanningError("فشل في توليد محتوى العرض التقديمي. تأكد من صحة المفتاح.")
    if not plan.title.strip():
        plan = plan.model_copy(update={"title": topic})
    return clean_presentation_plan(plan, slide_count)
