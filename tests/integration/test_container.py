import pytest

from issue_triage.core.analysis.engine import AdaptiveBatchEngine
from issue_triage.core.config import Config, ProviderConfig
from issue_triage.core.container import Container, _setup_default_services, create_provider, singleton
from issue_triage.core.exceptions import ConfigurationError
from issue_triage.integrations.github_client import GitHubClient
from issue_triage.integrations.jan_client import JanClient
from issue_triage.integrations.openai_client import OpenAIClient


@pytest.fixture
def default_container():
    container = Container()
    _setup_default_services(container)
    container.register_instance("config", Config())
    return container


def test_singleton_factory_is_cached():
    container = Container()
    calls = []

    @singleton
    def make():
        calls.append(1)
        return object()

    container.register_singleton("thing", make)

    assert container.get("thing") is container.get("thing")
    assert len(calls) == 1

    container.reset_singleton("thing")
    container.get("thing")
    assert len(calls) == 2


def test_unknown_service_raises():
    with pytest.raises(KeyError):
        Container().get("missing")


def test_create_provider_by_name():
    assert isinstance(create_provider(ProviderConfig(provider="jan", model="llama")), JanClient)

    openai_provider = create_provider(ProviderConfig(provider="openai", model="gpt-4o-mini",
                                                     api_key="sk-test", base_url=None))
    assert type(openai_provider) is OpenAIClient

    with pytest.raises(ConfigurationError):
        create_provider(ProviderConfig(provider="gemini"))


def test_default_services_wire_engine(default_container):
    engine = default_container.get("engine")

    assert isinstance(engine, AdaptiveBatchEngine)
    assert isinstance(engine.invoker.provider, JanClient)
    assert engine.llm_logger is None
    # Engines are built per run; the provider is shared
    assert default_container.get("engine") is not engine
    assert default_container.get("engine").invoker.provider is engine.invoker.provider


def test_default_github_client(default_container):
    client = default_container.get("github_client")

    assert isinstance(client, GitHubClient)
    assert "Authorization" not in client.session.headers
