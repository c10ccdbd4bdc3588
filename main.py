import base64
import logging
import os
import tempfile
from pathlib import Path
from fastapi import FastAPI, UploadFile, File, Form, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse, Response
from starlette.background import BackgroundTask
from assistant import explain, solve_problem, tutor_reply
from llm_router import PlanningError, plan_presentation
from media import MediaError, generate_math_visual, generate_speech, make_client
from pipeline import generate_presentation
from session import (
    FlowStep,
    InvalidSlideCount,
    Message,
    Mode,
    Sender,
    SessionController,
    SessionStore,
    parse_slide_count,
)
from settings import get_settings
from typing import List, Optional

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

PPTX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.presentationml.presentation"

app = FastAPI(title="MathMind AI", version="1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

sessions = SessionStore()

def _data_uri(data: bytes, mime_type: str = "image/png") -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"

def _output_dir() -> Path:
    path = Path(get_settings().output_dir)
    path.mkdir(parents=True, exist_ok=True)
    return path

def _slide_count(raw: str) -> int:
    try:
        return parse_slide_count(raw)
    except InvalidSlideCount as e:
        raise HTTPException(status_code=400, detail=str(e))

@app.get("/health")
def health():
    return {"ok": True}

# ---- Presentations -----------------------------------------------------------

@app.post("/plan")
def plan_only(
    topic: str = Form(...),
    count: str = Form(...),
    provider: str = Form("gemini"),     # "gemini" | "openai" | "anthropic"
    api_key: Optional[str] = Form(None),
):
    slide_count = _slide_count(count)
    try:
        plan = plan_presentation(provider, api_key, topic, slide_count)
    except (PlanningError, ValueError) as e:
        raise HTTPException(status_code=400, detail=f"LLM error: {e}")
    return JSONResponse(plan.model_dump(by_alias=True))

@app.post("/generate")
def generate_ppt(
    topic: str = Form(...),
    count: str = Form(...),
    provider: str = Form("gemini"),
    api_key: Optional[str] = Form(None),  # not stored, just used for this request
):
    if not topic.strip():
        raise HTTPException(status_code=400, detail="Topic is empty")
    # Reject bad counts before any model is called
    slide_count = _slide_count(count)

    try:
        result = generate_presentation(topic, slide_count, provider, api_key)
    except (PlanningError, MediaError, ValueError) as e:
        raise HTTPException(status_code=400, detail=f"LLM error: {e}")

    out = tempfile.NamedTemporaryFile(delete=False, suffix=".pptx")
    out.write(result.content)
    out.close()
    # Removed once the body has been sent
    return FileResponse(out.name, filename=result.filename, media_type=PPTX_MEDIA_TYPE,
                        background=BackgroundTask(os.unlink, out.name))

@app.get("/files/{name}")
def download(name: str):
    path = _output_dir() / name
    if Path(name).name != name or not path.is_file():
        raise HTTPException(status_code=404, detail="File not found")
    return FileResponse(str(path), filename=name, media_type=PPTX_MEDIA_TYPE)

# ---- Chat sessions -----------------------------------------------------------

def _presentation_turn(session: SessionController, text: str, provider: Optional[str],
                       api_key: Optional[str]) -> List[Message]:
    flow = session.presentation
    mode = Mode.PRESENTATION

    if flow.step == FlowStep.TOPIC:
        return [session.add(mode, Sender.AI, flow.submit_topic(text))]

    try:
        count = flow.submit_count(text)
    except InvalidSlideCount:
        return [session.add(mode, Sender.AI, "الرجاء إدخال رقم صحيح للشرائح (بين 1 و 20).")]

    replies = [session.add(
        mode, Sender.AI,
        f'بدء البحث عن "{flow.topic}" لإنشاء {count} شرائح...\n\n'
        "1. البحث عن بيانات دقيقة...\n2. هيكلة المحتوى...\n"
        "3. توليد رسوم توضيحية بالذكاء الاصطناعي لكل شريحة...\n\nقد يستغرق هذا دقيقة.",
    )]
    try:
        result = generate_presentation(flow.topic, count, provider, api_key)
        (_output_dir() / result.filename).write_bytes(result.content)
        replies.append(session.add(
            mode, Sender.AI,
            f'نجاح! تم إنشاء "{result.deck.title}" مع {count} شرائح.\n\n'
            "تضمن البحث، الأمثلة، ورسوم توضيحية خاصة.",
            file=result.filename,
        ))
    except Exception:
        logger.exception("Presentation generation failed")
        replies.append(session.add(mode, Sender.AI, "واجهت خطأ أثناء إنشاء العرض التقديمي. يرجى المحاولة مرة أخرى."))
    finally:
        flow.reset()
    return replies

def _standard_turn(session: SessionController, mode: Mode, text: str, history: List[dict],
                   api_key: Optional[str], size: str, use_search: bool) -> Message:
    client = make_client(api_key)
    if mode == Mode.TUTOR:
        return session.add(mode, Sender.AI, tutor_reply(client, text, history))
    if mode == Mode.VISUALIZER:
        image = generate_math_visual(client, text, size)
        if image:
            return session.add(mode, Sender.AI, f'إليك تصور بدقة {size} لـ: "{text}"', image=_data_uri(image))
        return session.add(mode, Sender.AI, "لم أتمكن من إنشاء الصورة. يرجى تجربة وصف مختلف.")
    if mode == Mode.EXPLORER:
        answer = explain(client, text, use_search)
        return session.add(mode, Sender.AI, answer.text or "لم يتم توليد أي استجابة.",
                           sources=tuple(s.model_dump() for s in answer.sources))
    # Text-only input to the solver
    return session.add(mode, Sender.AI, solve_problem(client, text))

@app.get("/sessions/{session_id}/{mode}/messages")
def list_messages(session_id: str, mode: Mode):
    return {"messages": [m.model_dump() for m in sessions.get(session_id).history(mode)]}

@app.post("/sessions/{session_id}/{mode}/messages")
def send_message(
    session_id: str,
    mode: Mode,
    text: str = Form(...),
    api_key: Optional[str] = Form(None),
    provider: Optional[str] = Form(None),
    size: str = Form("1K"),            # visualizer: "1K" | "2K" | "4K"
    use_search: bool = Form(True),     # explorer: grounded search vs fast answer
):
    if not text.strip():
        raise HTTPException(status_code=400, detail="Text is empty")
    session = sessions.get(session_id)
    if mode == Mode.PRESENTATION and session.presentation.step == FlowStep.GENERATING:
        raise HTTPException(status_code=409, detail="Presentation is still being generated")

    history = session.chat_history(mode)
    user_msg = session.add(mode, Sender.USER, text)
    if mode == Mode.PRESENTATION:
        replies = _presentation_turn(session, text, provider, api_key)
    else:
        try:
            replies = [_standard_turn(session, mode, text, history, api_key, size, use_search)]
        except Exception:
            logger.exception("%s request failed", mode.value)
            replies = [session.add(mode, Sender.AI, "حدث خطأ ما.")]
    return {
        "messages": [m.model_dump() for m in [user_msg, *replies]],
        "step": session.presentation.step.value,
    }

@app.post("/sessions/{session_id}/solver/upload")
async def upload_problem(
    session_id: str,
    file: UploadFile = File(...),
    api_key: Optional[str] = Form(None),
):
    data = await file.read()
    if not data:
        raise HTTPException(status_code=400, detail="File is empty")
    mime_type = file.content_type or "image/jpeg"
    session = sessions.get(session_id)
    user_msg = session.add(Mode.SOLVER, Sender.USER, "قم بتحليل هذه الصورة:", image=_data_uri(data, mime_type))
    try:
        answer = solve_problem(make_client(api_key),
                               "قم بحل المسألة الظاهرة في الصورة خطوة بخطوة باللغة العربية.",
                               image=data, mime_type=mime_type)
        reply = session.add(Mode.SOLVER, Sender.AI, answer)
    except Exception:
        logger.exception("Image solve failed")
        reply = session.add(Mode.SOLVER, Sender.AI, "فشل في معالجة الصورة.")
    return {"messages": [user_msg.model_dump(), reply.model_dump()]}

# ---- Speech ------------------------------------------------------------------

@app.post("/speech")
def speech(text: str = Form(...), api_key: Optional[str] = Form(None)):
    try:
        audio = generate_speech(make_client(api_key), text)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except MediaError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return Response(content=audio, media_type="audio/L16;rate=24000")

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", "8000")))
