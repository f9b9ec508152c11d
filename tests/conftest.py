"""
Shared fixtures: an in-memory stand-in for the Gemini client, SQLite source
databases, and a fake stdin. No network access is needed.

Run with: pytest tests/ -v
"""
import io
import sqlite3
from types import SimpleNamespace

import pytest

from gemini_cli.commands import common


# =============================================================================
# Fake model client
# =============================================================================

def text_chunk(*texts):
    """A response whose first candidate carries one text part per argument."""
    parts = [SimpleNamespace(text=t) for t in texts]
    return SimpleNamespace(
        candidates=[SimpleNamespace(content=SimpleNamespace(parts=parts))]
    )


def empty_chunk():
    return SimpleNamespace(candidates=[])


def default_vector(text):
    return [float(len(text)), 1.0, 0.5]


class FakeModels:
    def __init__(self):
        self.calls = []
        self.chunks = [text_chunk("Hello", ", world")]
        self.vectors = {}
        self.fail_on = None
        self.listing = []

    def _record(self, name, **kwargs):
        self.calls.append((name, kwargs))

    def generate_content_stream(self, model, contents, config=None):
        self._record("generate_content_stream", model=model, contents=contents, config=config)
        return iter(self.chunks)

    def generate_content(self, model, contents, config=None):
        self._record("generate_content", model=model, contents=contents, config=config)
        return self.chunks[0]

    def count_tokens(self, model, contents):
        self._record("count_tokens", model=model, contents=contents)
        words = sum(len((p.text or "").split()) for p in contents)
        return SimpleNamespace(total_tokens=words)

    def embed_content(self, model, contents):
        self._record("embed_content", model=model, contents=list(contents))
        if self.fail_on is not None and self.fail_on in contents:
            raise RuntimeError(f"embedding failed for {self.fail_on!r}")
        return SimpleNamespace(embeddings=[
            SimpleNamespace(values=self.vectors.get(t, default_vector(t)))
            for t in contents
        ])

    def list(self):
        return iter(self.listing)

    def calls_named(self, name):
        return [kwargs for call, kwargs in self.calls if call == name]


class FakeChat:
    def __init__(self, model, config):
        self.model = model
        self.config = config
        self.messages = []

    def send_message_stream(self, message):
        self.messages.append(message)
        return iter([text_chunk(f"echo: {message}")])


class FakeChats:
    def __init__(self):
        self.created = []

    def create(self, model, config=None):
        chat = FakeChat(model, config)
        self.created.append(chat)
        return chat


class FakeClient:
    def __init__(self):
        self.models = FakeModels()
        self.chats = FakeChats()
        self.api_key = None


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def patched_client(monkeypatch, fake_client):
    """Route genai.Client() to the fake and provide an API key."""
    def _make(api_key=None):
        fake_client.api_key = api_key
        return fake_client

    monkeypatch.setattr(common.genai, "Client", _make)
    monkeypatch.setenv("API_KEY", "test-key")
    return fake_client


# =============================================================================
# stdin
# =============================================================================

class FakeStdin(io.StringIO):
    def __init__(self, data="", tty=False):
        super().__init__(data)
        self._tty = tty

    def isatty(self):
        return self._tty


@pytest.fixture
def tty_stdin(monkeypatch):
    stdin = FakeStdin(tty=True)
    monkeypatch.setattr("sys.stdin", stdin)
    return stdin


# =============================================================================
# SQLite sources
# =============================================================================

@pytest.fixture
def source_db(tmp_path):
    """A small blog database to embed from."""
    path = tmp_path / "blog.db"
    db = sqlite3.connect(str(path))
    db.executescript("""
        CREATE TABLE posts (id INTEGER PRIMARY KEY, title TEXT, body TEXT);
        INSERT INTO posts VALUES (1, 'Cats', 'cats are great');
        INSERT INTO posts VALUES (2, 'Dogs', NULL);
        INSERT INTO posts VALUES (3, 'Birds', 'they fly');
    """)
    db.commit()
    db.close()
    return path
