"""Shared fixtures: in-memory images and a stand-in for the google-genai client."""
import io
from types import SimpleNamespace

import pytest
from PIL import Image

from settings import get_settings


def _png(width: int, height: int, color=(79, 70, 229)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Fresh settings per test, no real API key, decks written under tmp_path."""
    for var in ("GEMINI_API_KEY", "MATHMIND_GEMINI_API_KEY"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("MATHMIND_OUTPUT_DIR", str(tmp_path / "generated"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def wide_png() -> bytes:
    return _png(1600, 900)


@pytest.fixture
def tall_png() -> bytes:
    return _png(300, 900)


def make_response(data=None, text=None, sources=()):
    parts = []
    if data is not None:
        parts.append(SimpleNamespace(inline_data=SimpleNamespace(data=data, mime_type="image/png"), text=None))
    chunks = [SimpleNamespace(web=SimpleNamespace(uri=uri, title=title)) for uri, title in sources]
    candidate = SimpleNamespace(
        content=SimpleNamespace(parts=parts),
        grounding_metadata=SimpleNamespace(grounding_chunks=chunks),
    )
    return SimpleNamespace(text=text, candidates=[candidate])


class FakeAPIError(Exception):
    def __init__(self, code: int, message: str = ""):
        super().__init__(f"{code} {message}")
        self.code = code


class FakeModels:
    def __init__(self, handler):
        self.handler = handler
        self.calls = []

    def generate_content(self, model, contents, config=None):
        self.calls.append(SimpleNamespace(model=model, contents=contents, config=config))
        return self.handler(model, contents, config)


class FakeChat:
    def __init__(self, reply, sent):
        self.reply = reply
        self.sent = sent

    def send_message(self, message):
        self.sent.append(message)
        return SimpleNamespace(text=self.reply)


class FakeChats:
    def __init__(self, reply):
        self.reply = reply
        self.created = []
        self.sent = []

    def create(self, model, config=None, history=None):
        self.created.append(SimpleNamespace(model=model, config=config, history=history))
        return FakeChat(self.reply, self.sent)


class FakeClient:
    def __init__(self, handler=None, chat_reply=""):
        self.models = FakeModels(handler or (lambda model, contents, config: make_response()))
        self.chats = FakeChats(chat_reply)


@pytest.fixture
def fake_client():
    return FakeClient


@pytest.fixture
def response():
    return make_response


@pytest.fixture
def api_error():
    return FakeAPIError
