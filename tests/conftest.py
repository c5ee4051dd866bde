"""Shared fixtures and fakes for the SafePrompt test suite."""

import asyncio
from types import SimpleNamespace

import pytest

from safeprompt.core.config import AnalyzerSettings
from safeprompt.core.documents import Document
from safeprompt.core.host import InMemoryDiagnosticCollection, LoggingNotifier
from safeprompt.core.service import SafePromptService


class FakeEnhancer:
    """Stands in for PromptEnhancer; records prompts and can hold requests open."""

    def __init__(self, responses=None, error=None):
        self.calls = []
        self.responses = dict(responses or {})
        self.error = error
        self.gates = {}
        self.closed = False

    def hold(self, prompt):
        gate = asyncio.Event()
        self.gates[prompt] = gate
        return gate

    async def enhance(self, prompt):
        self.calls.append(prompt)
        gate = self.gates.get(prompt)
        if gate is not None:
            await gate.wait()
        if self.error is not None:
            raise self.error
        return self.responses.get(prompt, f"Secure: {prompt}")

    async def aclose(self):
        self.closed = True


class FakeCompletions:
    def __init__(self, content="Enhanced prompt", error=None, choices=None):
        self.content = content
        self.error = error
        self.choices = choices
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        if self.choices is not None:
            return SimpleNamespace(choices=self.choices)
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def make_client(completions):
    """Build an object shaped like AsyncOpenAI around fake completions."""
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions), closed=False)

    async def close():
        client.closed = True

    client.close = close
    return client


@pytest.fixture
def no_credentials(monkeypatch):
    # setenv first so values written by the code under test are undone too
    for name in ('OPENAI_API_KEY', 'NVIDIA_API'):
        monkeypatch.setenv(name, '')
        monkeypatch.delenv(name)


@pytest.fixture
def fake_enhancer():
    return FakeEnhancer()


@pytest.fixture
def collection():
    return InMemoryDiagnosticCollection()


@pytest.fixture
def notifier():
    return LoggingNotifier()


@pytest.fixture
def settings():
    return AnalyzerSettings(debounce_seconds=0.01)


@pytest.fixture
def service(collection, notifier, fake_enhancer, settings):
    return SafePromptService(
        publisher=collection,
        notifier=notifier,
        enhancer=fake_enhancer,
        settings=settings,
    )


@pytest.fixture
def make_document():
    def _make(text, language_id='javascript', uri='file:///workspace/app.js'):
        return Document(uri=uri, language_id=language_id, text=text)
    return _make
