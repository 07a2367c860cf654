import asyncio

import pytest

from persona_core.agents.chat_handler import ChatRequestHandler
from persona_core.domain.models import ChatRequest, ConversationTurn, PersonaConfig, TrainingExample
from persona_core.resilience.fallback import ModelFallbackChain
from persona_core.resilience.retry import RetryScheduler


class SettingsStub:
    gemini_api_key = "test-key"
    request_timeout = 5.0
    debug = False


class DebugSettings(SettingsStub):
    debug = True


class NoKeySettings(SettingsStub):
    gemini_api_key = None


class DictStore:
    def __init__(self, *personas):
        self._personas = {p.id: p for p in personas}

    def get(self, persona_id):
        return self._personas.get(persona_id)

    def list(self):
        return list(self._personas.values())


class FakeProvider:
    name = "fake"

    def __init__(self, outcome):
        self._outcome = outcome
        self.calls = []

    async def generate(self, model, prompt):
        self.calls.append((model, prompt))
        if isinstance(self._outcome, BaseException):
            raise self._outcome
        return self._outcome


class SlowProvider:
    name = "slow"

    async def generate(self, model, prompt):
        await asyncio.sleep(60)
        return "late"


HITESH = PersonaConfig(
    id="hitesh",
    name="Hitesh Choudhary",
    system_instruction="You are Hitesh.",
    training_examples=(TrainingExample(user_input="q", expected_response="a"),),
)


async def no_sleep(seconds):
    return None


def make_handler(provider, settings=SettingsStub, candidates=("modelA",), max_retries=3):
    scheduler = RetryScheduler(max_retries=max_retries, base_delay_ms=1, jitter_ms=1, sleep=no_sleep)
    chain = ModelFallbackChain(provider, scheduler, candidates)
    return ChatRequestHandler(settings(), DictStore(HITESH), chain)


@pytest.mark.asyncio
async def test_success_response():
    provider = FakeProvider("Chai pe charcha!")
    handler = make_handler(provider)
    req = ChatRequest(
        message="hi",
        persona_id="hitesh",
        history=(ConversationTurn(sender="user", content="earlier"),),
    )
    res = await handler.handle(req)
    assert res.status_code == 200
    assert res.ok
    assert res.body["response"] == "Chai pe charcha!"
    assert res.body["persona"] == "hitesh"
    assert res.body["timestamp"].endswith("Z")
    model, prompt = provider.calls[0]
    assert model == "modelA"
    assert "User: earlier" in prompt
    assert "Current User Message: hi" in prompt


@pytest.mark.asyncio
async def test_missing_key_is_config_error():
    provider = FakeProvider("x")
    res = await make_handler(provider, settings=NoKeySettings).handle(ChatRequest(message="", persona_id=""))
    assert res.status_code == 500
    assert res.body == {"error": "Server misconfiguration: Missing GEMINI_API_KEY"}
    assert provider.calls == []


@pytest.mark.asyncio
async def test_empty_message_is_rejected():
    res = await make_handler(FakeProvider("x")).handle(ChatRequest(message="", persona_id="hitesh"))
    assert res.status_code == 400
    assert res.body == {"error": "Message and persona are required"}


@pytest.mark.asyncio
async def test_unknown_persona_is_rejected():
    res = await make_handler(FakeProvider("x")).handle(ChatRequest(message="hi", persona_id="unknown"))
    assert res.status_code == 400
    assert res.body == {"error": "Invalid persona selected"}


@pytest.mark.asyncio
async def test_transient_exhaustion_returns_503():
    provider = FakeProvider(Exception("The model is overloaded. Please try again later."))
    handler = make_handler(provider, candidates=("modelA",), max_retries=3)
    res = await handler.handle(ChatRequest(message="hi", persona_id="hitesh"))
    assert len(provider.calls) == 3
    assert res.status_code == 503
    assert res.body == {
        "error": "Model is temporarily overloaded. We retried a few times—please try again shortly."
    }


@pytest.mark.asyncio
async def test_fatal_returns_500_without_details():
    provider = FakeProvider(Exception("API key expired"))
    res = await make_handler(provider).handle(ChatRequest(message="hi", persona_id="hitesh"))
    assert res.status_code == 500
    assert res.body["error"].startswith("Failed to generate response.")
    assert "details" not in res.body
    assert len(provider.calls) == 1


@pytest.mark.asyncio
async def test_debug_mode_attaches_details():
    provider = FakeProvider(Exception("API key expired"))
    res = await make_handler(provider, settings=DebugSettings).handle(ChatRequest(message="hi", persona_id="hitesh"))
    assert res.status_code == 500
    assert res.body["details"] == "API key expired"


@pytest.mark.asyncio
async def test_model_unavailable_everywhere_returns_500():
    provider = FakeProvider(Exception("model not found"))
    handler = make_handler(provider, candidates=("modelA", "modelB"))
    res = await handler.handle(ChatRequest(message="hi", persona_id="hitesh"))
    assert res.status_code == 500
    assert [m for m, _ in provider.calls] == ["modelA", "modelB"]


@pytest.mark.asyncio
async def test_deadline_cancels_in_flight_call():
    handler = make_handler(SlowProvider())
    res = await handler.handle(ChatRequest(message="hi", persona_id="hitesh"), timeout=0.05)
    assert res.status_code == 503
    assert res.body["error"].startswith("Model is temporarily overloaded.")


@pytest.mark.asyncio
async def test_empty_persona_is_rejected_without_calling_model():
    provider = FakeProvider("x")
    res = await make_handler(provider).handle(ChatRequest(message="hi", persona_id=""))
    assert res.status_code == 400
    assert res.body == {"error": "Message and persona are required"}
    assert provider.calls == []
