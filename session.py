"""Per-session chat state.

Each session owns one append-only message log per assistant mode plus the
presentation flow (topic, then slide count, then generation).
"""
import re
import threading
import time
import uuid
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union
from pydantic import BaseModel, ConfigDict, Field

MIN_SLIDES = 1
MAX_SLIDES = 20

class Mode(str, Enum):
    TUTOR = "tutor"
    VISUALIZER = "visualizer"
    SOLVER = "solver"
    EXPLORER = "explorer"
    PRESENTATION = "presentation"

class Sender(str, Enum):
    USER = "user"
    AI = "ai"

class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    sender: Sender
    text: str
    image: Optional[str] = None  # data URI
    timestamp: int = Field(default_factory=lambda: int(time.time() * 1000))
    sources: Tuple[Dict[str, str], ...] = ()
    file: Optional[str] = None  # generated deck, served from /files

GREETINGS = {
    Mode.TUTOR: "مرحباً! أنا معلم الرياضيات المتقدم. يمكنني مساعدتك في البراهين المعقدة، التفاضل والتكامل، والاستدلال العميق. على ماذا سنعمل اليوم؟",
    Mode.VISUALIZER: "صِف شكلاً هندسياً أو مفهوماً رياضياً، وسأقوم بإنشاء تصور عالي الجودة لك.",
    Mode.SOLVER: "ارفع صورة لمسألة رياضية، وسأقوم بشرح الحل خطوة بخطوة.",
    Mode.EXPLORER: "اسألني أي شيء. يمكنني البحث في الويب عن بيانات في الوقت الفعلي أو إعطائك تعريفات سريعة.",
    Mode.PRESENTATION: "مرحباً بك في منشئ العروض التقديمية. الرجاء إدخال **موضوع** العرض التقديمي.",
}

# ---- Slide count -------------------------------------------------------------

class InvalidSlideCount(ValueError):
    pass

def parse_slide_count(raw: Union[str, int]) -> int:
    """Leading integer of ``raw`` if it lies in 1..20, else InvalidSlideCount."""
    match = re.match(r"\s*([+-]?\d+)", str(raw))
    if not match:
        raise InvalidSlideCount(f"not a number: {raw!r}")
    count = int(match.group(1))
    if not MIN_SLIDES <= count <= MAX_SLIDES:
        raise InvalidSlideCount(f"slide count must be between {MIN_SLIDES} and {MAX_SLIDES}, got {count}")
    return count

# ---- Presentation flow -------------------------------------------------------

class FlowStep(str, Enum):
    TOPIC = "topic"
    COUNT = "count"
    GENERATING = "generating"

class PresentationFlow:
    def __init__(self):
        self.step = FlowStep.TOPIC
        self.topic = ""

    def submit_topic(self, topic: str) -> str:
        self.topic = topic.strip()
        self.step = FlowStep.COUNT
        return f'موضوع رائع: "{self.topic}".\n\nكم عدد الشرائح التي تود إنشاؤها؟ (مثال: 5, 8, 10)'

    def submit_count(self, raw: str) -> int:
        """Validated count; a bad value leaves the flow waiting for a count."""
        count = parse_slide_count(raw)
        self.step = FlowStep.GENERATING
        return count

    def reset(self) -> None:
        self.step = FlowStep.TOPIC
        self.topic = ""

# ---- Session controller ------------------------------------------------------

class SessionController:
    def __init__(self, session_id: str):
        self.session_id = session_id
        self._logs: Dict[Mode, List[Message]] = {
            mode: [Message(sender=Sender.AI, text=GREETINGS[mode])] for mode in Mode
        }
        self.presentation = PresentationFlow()

    def add(self, mode: Mode, sender: Sender, text: str, **extra) -> Message:
        msg = Message(sender=sender, text=text, **extra)
        self._logs[mode].append(msg)
        return msg

    def history(self, mode: Mode) -> Tuple[Message, ...]:
        return tuple(self._logs[mode])

    def chat_history(self, mode: Mode) -> List[dict]:
        """Turns in model format, without the greeting the conversation opens with."""
        turns = []
        for msg in self._logs[mode]:
            if not turns and msg.sender == Sender.AI:
                continue
            role = "user" if msg.sender == Sender.USER else "model"
            turns.append({"role": role, "parts": [{"text": msg.text}]})
        return turns

class SessionStore:
    def __init__(self):
        self._sessions: Dict[str, SessionController] = {}
        self._lock = threading.Lock()

    def get(self, session_id: str) -> SessionController:
        with self._lock:
            if session_id not in self._sessions:
                self._sessions[session_id] = SessionController(session_id)
            return self._sessions[session_id]

    def __len__(self) -> int:
        return len(self._sessions)
