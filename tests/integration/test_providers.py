from types import SimpleNamespace

import httpx
import openai
import pytest
import requests

from issue_triage.core.exceptions import (
    ContextExceededError, ModelUnavailableError, PreconditionError, ServiceUnreachableError
)
from issue_triage.integrations.base import CompletionOptions, json_schema_format
from issue_triage.integrations.jan_client import JanClient
from issue_triage.integrations.openai_client import OpenAIClient


class FakeCompletions:
    def __init__(self, content="{}", finish_reason="stop"):
        self.content = content
        self.finish_reason = finish_reason
        self.requests = []

    def create(self, **request):
        self.requests.append(request)
        message = SimpleNamespace(content=self.content)
        choice = SimpleNamespace(message=message, finish_reason=self.finish_reason)
        usage = SimpleNamespace(prompt_tokens=10, completion_tokens=5, total_tokens=15)
        return SimpleNamespace(choices=[choice], usage=usage)


def fake_sdk_client(completions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload or {}

    def json(self):
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"status {self.status_code}")


class FakeSession:
    def __init__(self, responses):
        self.responses = responses
        self.urls = []

    def get(self, url, timeout=None, **kwargs):
        self.urls.append(url)
        outcome = self.responses[url]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


MESSAGES = [{"role": "system", "content": "sys"}, {"role": "user", "content": "hi"}]


def test_openai_complete_passes_options():
    completions = FakeCompletions(content='{"findings": []}')
    client = OpenAIClient(model="gpt-4o-mini", client=fake_sdk_client(completions), timeout=30.0)
    response_format = json_schema_format("batch_analysis", {"type": "object"})

    text = client.complete(MESSAGES, CompletionOptions(temperature=0.1, max_tokens=500,
                                                       response_format=response_format))

    assert text == '{"findings": []}'
    request = completions.requests[0]
    assert request["model"] == "gpt-4o-mini"
    assert request["max_tokens"] == 500
    assert request["temperature"] == 0.1
    assert request["timeout"] == 30.0
    assert request["response_format"]["type"] == "json_schema"


def test_truncated_response_is_context_exceeded():
    client = OpenAIClient(client=fake_sdk_client(FakeCompletions(finish_reason="length")))

    with pytest.raises(ContextExceededError):
        client.complete(MESSAGES, CompletionOptions(max_tokens=10))


def test_jan_downgrades_schema_to_json_mode():
    completions = FakeCompletions()
    client = JanClient(model="llama", client=fake_sdk_client(completions), session=FakeSession({}))

    client.complete(MESSAGES, CompletionOptions(response_format=json_schema_format("x", {})))

    assert completions.requests[0]["response_format"] == {"type": "json_object"}


def _jan_session(health=None, models=None):
    return FakeSession({
        "http://localhost:1337/health": health if health is not None else FakeResponse(200),
        "http://localhost:1337/v1/models": models if models is not None else FakeResponse(
            200, {"data": [{"id": "llama"}, {"id": "mistral"}]}
        ),
    })


def test_jan_model_available():
    session = _jan_session()
    client = JanClient(model="llama", client=fake_sdk_client(FakeCompletions()), session=session)

    client.check_model_available()

    assert session.urls == ["http://localhost:1337/health", "http://localhost:1337/v1/models"]
    assert client.list_models() == ["llama", "mistral"]


def test_jan_missing_model():
    client = JanClient(model="qwen", client=fake_sdk_client(FakeCompletions()), session=_jan_session())

    with pytest.raises(ModelUnavailableError) as excinfo:
        client.check_model_available()

    assert "qwen" in str(excinfo.value)


@pytest.mark.parametrize("health", [
    requests.ConnectionError("refused"),
    FakeResponse(503),
])
def test_jan_unreachable(health):
    client = JanClient(model="llama", client=fake_sdk_client(FakeCompletions()), session=_jan_session(health=health))

    with pytest.raises(ServiceUnreachableError):
        client.check_model_available()

    status = client.test_connection()
    assert status["connected"] is False
    assert status["provider"] == "jan"


def test_jan_test_connection_success():
    client = JanClient(model="llama", client=fake_sdk_client(FakeCompletions()), session=_jan_session())

    assert client.test_connection() == {"provider": "jan", "model": "llama", "connected": True, "error": None}


def _status_error(error_class, status_code):
    request = httpx.Request("GET", "https://api.openai.com/v1/models/gpt-4o-mini")
    response = httpx.Response(status_code, request=request)
    return error_class(f"status {status_code}", response=response, body=None)


class FakeModels:
    def __init__(self, error=None):
        self.error = error
        self.retrieved = []

    def retrieve(self, model):
        self.retrieved.append(model)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(id=model)


def _openai_with_models(models):
    return OpenAIClient(client=SimpleNamespace(chat=None, models=models))


def test_openai_model_available():
    models = FakeModels()

    _openai_with_models(models).check_model_available()

    assert models.retrieved == ["gpt-4o-mini"]


@pytest.mark.parametrize("error, expected", [
    (_status_error(openai.NotFoundError, 404), ModelUnavailableError),
    (_status_error(openai.AuthenticationError, 401), PreconditionError),
    (_status_error(openai.PermissionDeniedError, 403), PreconditionError),
    (_status_error(openai.InternalServerError, 500), PreconditionError),
    (openai.APIConnectionError(request=httpx.Request("GET", "https://api.openai.com/v1/models")),
     ServiceUnreachableError),
])
def test_openai_readiness_errors_become_precondition_errors(error, expected):
    client = _openai_with_models(FakeModels(error))

    with pytest.raises(expected):
        client.check_model_available()

    assert client.test_connection()["connected"] is False


@pytest.mark.parametrize("payload", [[{"id": "llama"}], {"models": []}])
def test_jan_unexpected_model_list_shape(payload):
    session = _jan_session(models=FakeResponse(200, payload))
    client = JanClient(model="llama", client=fake_sdk_client(FakeCompletions()), session=session)

    with pytest.raises(ServiceUnreachableError):
        client.check_model_available()
