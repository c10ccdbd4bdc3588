import logging
from typing import Dict, List, Optional, Sequence
from google.genai import types
from pydantic import BaseModel, Field
from settings import Settings, get_settings

logger = logging.getLogger(__name__)

# ---- Prompts -----------------------------------------------------------------

TUTOR_SYSTEM_INSTRUCTION = (
    "أنت مدرس رياضيات متقدم. اكتب جميع المعادلات الرياضية والكسور باستخدام صيغة LaTeX. "
    "استخدم $$ للمعادلات في سطر منفصل و $ للمعادلات في نفس السطر. "
    "اجعل الرد باللغة العربية ولكن الأرقام والرموز بالإنجليزية داخل LaTeX لضمان ظهورها بشكل صحيح."
)

SOLVER_DEFAULT_PROMPT = """
حل المسألة الرياضية في الصورة خطوة بخطوة باللغة العربية.
**مهم جداً للتنسيق:**
1. أي معادلة رياضية، كسر، جذر، أو رقم متغير يجب أن يكتب بصيغة **LaTeX**.
2. للمعادلات الكبيرة (مثل الكسور)، ضعها في سطر منفصل محاطة بـ $$ (مثال: $$ \\frac{x}{y} $$).
3. للرموز الصغيرة داخل النص، حطها بـ $ (مثال: $x$).
4. لا تستخدم النص العادي للكسور أبداً (لا تكتب 1/2 بل اكتب $ \\frac{1}{2} $).
5. اجعل الشرح بالعربي، ولكن الرياضيات بالإنجليزية داخل الـ LaTeX لضمان عدم تداخل الحروف.
""".strip()

EXPLORER_PROMPT = "أجب باللغة العربية. استخدم LaTeX للمعادلات الرياضية ($ للمعادلات الصغيرة و $$ للكبيرة): {prompt}"

class Source(BaseModel):
    uri: str
    title: str = ""

class ExplorerAnswer(BaseModel):
    text: str
    sources: List[Source] = Field(default_factory=list)

# ---- Tutor -------------------------------------------------------------------

def _to_content(turn: Dict) -> types.Content:
    return types.Content(
        role=turn["role"],
        parts=[types.Part.from_text(text=p["text"]) for p in turn["parts"]],
    )

def tutor_reply(client, prompt: str, history: Sequence[Dict],
                settings: Optional[Settings] = None) -> str:
    """Deep-thinking tutor answer given the earlier turns of the conversation."""
    settings = settings or get_settings()
    chat = client.chats.create(
        model=settings.tutor_model,
        config=types.GenerateContentConfig(
            system_instruction=TUTOR_SYSTEM_INSTRUCTION,
            thinking_config=types.ThinkingConfig(thinking_budget=settings.tutor_thinking_budget),
        ),
        history=[_to_content(t) for t in history],
    )
    response = chat.send_message(prompt)
    return response.text or ""

# ---- Solver ------------------------------------------------------------------

def solve_problem(client, prompt: str = "", image: Optional[bytes] = None,
                  mime_type: str = "image/jpeg", settings: Optional[Settings] = None) -> str:
    settings = settings or get_settings()
    parts = []
    if image:
        parts.append(types.Part.from_bytes(data=image, mime_type=mime_type))
    parts.append(types.Part.from_text(text=prompt or SOLVER_DEFAULT_PROMPT))
    response = client.models.generate_content(
        model=settings.solver_model,
        contents=[types.Content(role="user", parts=parts)],
    )
    return response.text or ""

# ---- Explorer ----------------------------------------------------------------

def extract_sources(response) -> List[Source]:
    candidates = getattr(response, "candidates", None) or []
    metadata = candidates[0].grounding_metadata if candidates else None
    sources = []
    for chunk in (metadata.grounding_chunks if metadata else None) or []:
        if chunk.web and chunk.web.uri:
            sources.append(Source(uri=chunk.web.uri, title=chunk.web.title or ""))
    return sources

def explain(client, prompt: str, use_search: bool, settings: Optional[Settings] = None) -> ExplorerAnswer:
    """Search-grounded answer with its web sources, or a fast answer without any."""
    settings = settings or get_settings()
    contents = EXPLORER_PROMPT.format(prompt=prompt)
    if not use_search:
        response = client.models.generate_content(model=settings.fast_model, contents=contents)
        return ExplorerAnswer(text=response.text or "")

    response = client.models.generate_content(
        model=settings.search_model,
        contents=contents,
        config=types.GenerateContentConfig(tools=[types.Tool(google_search=types.GoogleSearch())]),
    )
    sources = extract_sources(response)
    logger.info("Explorer answer grounded on %d sources", len(sources))
    return ExplorerAnswer(text=response.text or "", sources=sources)
