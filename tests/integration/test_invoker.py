import pytest
import requests

from conftest import FakeHTTPError, make_response

from issue_triage.core.analysis.invoker import CompletionInvoker, classify_error
from issue_triage.core.analysis.prompts import Prompt
from issue_triage.core.config import EngineConfig, ProviderConfig
from issue_triage.core.exceptions import (
    ContextExceededError, ErrorRecovery, InvalidRequestError, ModelNotFoundError, ModelUnavailableError,
    RateLimitedError, ServiceUnavailableError, UnknownCompletionError
)


def _prompt(analysis_type="batch"):
    return Prompt(messages=[{"role": "system", "content": "s"}, {"role": "user", "content": "u"}],
                  analysis_type=analysis_type, record_ids=[1])


@pytest.mark.parametrize("error, expected, retryable", [
    (FakeHTTPError("Too many requests", 429), RateLimitedError, True),
    (FakeHTTPError("This request exceeds the context window", 400), ContextExceededError, False),
    (FakeHTTPError("max_tokens is too large", 400), ContextExceededError, False),
    (FakeHTTPError("messages must be an array", 400), InvalidRequestError, False),
    (FakeHTTPError("model 'llama' not found", 404), ModelNotFoundError, False),
    (FakeHTTPError("maximum context length exceeded"), ContextExceededError, False),
    (RuntimeError("prompt is over the token limit"), ContextExceededError, False),
    (requests.ConnectionError("Connection refused"), ServiceUnavailableError, True),
    (ConnectionRefusedError("[Errno 111] Connection refused"), ServiceUnavailableError, True),
    (TimeoutError("read timed out"), ServiceUnavailableError, True),
    (FakeHTTPError("internal server error", 503), UnknownCompletionError, True),
    (ValueError("something odd"), UnknownCompletionError, False),
])
def test_classify_error(error, expected, retryable):
    classified = classify_error(error)

    assert isinstance(classified, expected)
    assert classified.retryable is retryable


def test_classified_errors_pass_through():
    error = RateLimitedError("slow down", 429)
    assert classify_error(error) is error


def test_invoke_returns_raw_text_and_sends_options(fake_provider_factory):
    provider = fake_provider_factory([make_response([1])])
    invoker = CompletionInvoker(provider, ProviderConfig(temperature=0.1, max_tokens=1234, timeout_seconds=12.5),
                                sleep=lambda _: None)

    raw = invoker.invoke(_prompt())

    assert '"findings"' in raw
    options = provider.requests[0]["options"]
    assert options.temperature == 0.1
    assert options.max_tokens == 1234
    assert options.timeout == 12.5
    assert options.response_format["type"] == "json_schema"
    assert options.response_format["json_schema"]["name"] == "batch_analysis"


def test_readiness_checked_once(fake_provider_factory):
    provider = fake_provider_factory([make_response([1]), make_response([1])])
    invoker = CompletionInvoker(provider, sleep=lambda _: None)

    invoker.invoke(_prompt())
    invoker.invoke(_prompt("simplified"))

    assert provider.ready_checks == 1


def test_readiness_failure_propagates(fake_provider_factory):
    provider = fake_provider_factory(ready_error=ModelUnavailableError("llama", ["mistral"]))
    invoker = CompletionInvoker(provider, sleep=lambda _: None)

    with pytest.raises(ModelUnavailableError):
        invoker.invoke(_prompt())
    assert provider.requests == []


def test_transient_errors_are_retried_with_backoff(fake_provider_factory):
    delays = []
    provider = fake_provider_factory([
        FakeHTTPError("rate limited", 429),
        requests.ConnectionError("connection refused"),
        make_response([1]),
    ])
    invoker = CompletionInvoker(provider, engine_config=EngineConfig(max_retries=3, retry_base_delay=1.0),
                                sleep=delays.append)

    raw = invoker.invoke(_prompt())

    assert '"findings"' in raw
    assert delays == [1.0, 2.0]


def test_retries_exhaust_and_raise_classified(fake_provider_factory):
    delays = []
    provider = fake_provider_factory([FakeHTTPError("rate limited", 429)] * 5)
    invoker = CompletionInvoker(provider, engine_config=EngineConfig(max_retries=2, retry_base_delay=0.5),
                                sleep=delays.append)

    with pytest.raises(RateLimitedError):
        invoker.invoke(_prompt())

    assert len(provider.requests) == 3
    assert delays == [0.5, 1.0]


def test_non_retryable_error_not_retried(fake_provider_factory):
    delays = []
    provider = fake_provider_factory([FakeHTTPError("context length exceeded", 400), make_response([1])])
    invoker = CompletionInvoker(provider, sleep=delays.append)

    with pytest.raises(ContextExceededError):
        invoker.invoke(_prompt())

    assert len(provider.requests) == 1
    assert delays == []


def test_retry_delay_is_capped():
    assert ErrorRecovery.get_retry_delay(0, 1.0, 30.0) == 1.0
    assert ErrorRecovery.get_retry_delay(3, 1.0, 30.0) == 8.0
    assert ErrorRecovery.get_retry_delay(10, 1.0, 30.0) == 30.0
