from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from medconsult.core.config import Settings
from medconsult.main import create_app
from medconsult.services.consultation_orchestrator import ConsultationOrchestrator
from medconsult.services.model_gateway import ModelGateway, ModelReply
from medconsult.services.session_store import MemorySessionStore


class FakeCompletions:
    """Stands in for `AsyncOpenAI().chat.completions`."""

    def __init__(self, responses=None, error=None):
        self.responses = list(responses or [])
        self.error = error
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        content = self.responses.pop(0) if self.responses else ""
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class FakeClient:
    def __init__(self, responses=None, error=None):
        self.completions = FakeCompletions(responses, error)
        self.chat = SimpleNamespace(completions=self.completions)


class ScriptedGateway(ModelGateway):
    """
    Gateway that records prompts and replays scripted replies in order.
    An Exception in the script is raised; once the script runs out the
    normal (keyless, canned) behaviour applies.
    """

    def __init__(self, settings, replies=None):
        super().__init__(settings)
        self.replies = list(replies or [])
        self.prompts = []

    async def generate(self, prompt, use_reasoner=True):
        self.prompts.append(prompt)
        if self.replies:
            reply = self.replies.pop(0)
            if isinstance(reply, Exception):
                raise reply
            return ModelReply(text=reply, degraded=False, model="scripted")
        return await super().generate(prompt, use_reasoner=use_reasoner)


def make_settings(**overrides):
    values = dict(
        GROQ_API_KEY_REASONER="",
        GROQ_API_KEY_CHAT="",
        DATABASE_URL="",
        LOG_LEVEL="WARNING",
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def store():
    return MemorySessionStore()


@pytest.fixture
def gateway(settings):
    return ScriptedGateway(settings)


@pytest.fixture
def orchestrator(store, gateway):
    return ConsultationOrchestrator(store, gateway)


@pytest.fixture
def client(settings, store, gateway):
    return TestClient(create_app(settings, store=store, gateway=gateway))
