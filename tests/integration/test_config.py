import pytest

from issue_triage.core import config as config_module
from issue_triage.core.config import Config, ConfigManager, parse_env_line, validate_config
from issue_triage.core.exceptions import ConfigurationError

ENV_KEYS = [
    "AI_PROVIDER", "OPENAI_API_KEY", "OPENAI_MODEL", "JAN_MODEL", "JAN_BASE_URL", "BATCH_SIZE",
    "LLM_MAX_RETRIES", "LLM_TIMEOUT", "RUN_DEADLINE_SECONDS", "LOG_LEVEL", "MAX_ISSUES", "OPENAI_BASE_URL",
]


@pytest.fixture
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
    # No .env file is read during these tests
    monkeypatch.setattr(ConfigManager, "_load_environment", lambda self: None)
    config_module.reset_config()
    yield monkeypatch
    config_module.reset_config()


def test_defaults(clean_env):
    config = ConfigManager().get_config()

    assert config.provider.provider == "jan"
    assert config.provider.model == "llama3.2-3b-instruct"
    assert config.provider.base_url == "http://localhost:1337/v1"
    assert config.engine.initial_batch_size == 5
    assert config.engine.max_retries == 3
    assert config.engine.run_deadline_seconds is None
    assert config.uses_local_provider()


def test_environment_overrides(clean_env):
    clean_env.setenv("AI_PROVIDER", "openai")
    clean_env.setenv("OPENAI_API_KEY", "sk-test")
    clean_env.setenv("BATCH_SIZE", "8")
    clean_env.setenv("RUN_DEADLINE_SECONDS", "120")

    config = ConfigManager().get_config()

    assert config.provider.provider == "openai"
    assert config.provider.model == "gpt-4o-mini"
    assert config.provider.api_key == "sk-test"
    assert config.engine.initial_batch_size == 8
    assert config.engine.run_deadline_seconds == 120.0


def test_openai_requires_api_key(clean_env):
    clean_env.setenv("AI_PROVIDER", "openai")

    with pytest.raises(ConfigurationError) as excinfo:
        ConfigManager().get_config()

    assert "OPENAI_API_KEY" in str(excinfo.value)


@pytest.mark.parametrize("key, value", [
    ("BATCH_SIZE", "0"),
    ("BATCH_SIZE", "-3"),
    ("AI_PROVIDER", "gemini"),
    ("LOG_LEVEL", "LOUD"),
    ("LLM_TIMEOUT", "0"),
])
def test_invalid_values_rejected(clean_env, key, value):
    clean_env.setenv(key, value)

    with pytest.raises(ConfigurationError):
        ConfigManager().get_config()


def test_non_numeric_value_names_the_variable(clean_env):
    clean_env.setenv("BATCH_SIZE", "five")

    with pytest.raises(ConfigurationError) as excinfo:
        ConfigManager().get_config()

    assert excinfo.value.context["config_key"] == "BATCH_SIZE"


def test_validate_config_collects_all_errors():
    config = Config()
    config.engine.initial_batch_size = 0
    config.engine.max_retries = -1

    with pytest.raises(ConfigurationError) as excinfo:
        validate_config(config)

    assert "BATCH_SIZE" in str(excinfo.value)
    assert "LLM_MAX_RETRIES" in str(excinfo.value)


def test_env_file_loading_respects_existing_environment(clean_env, tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text('# comment\nJAN_MODEL="mistral-7b"\nBATCH_SIZE=4\nnot a pair\n', encoding="utf-8")
    clean_env.setenv("BATCH_SIZE", "6")

    manager = ConfigManager()
    manager._load_env_file(env_file)
    config = manager.get_config()

    assert config.provider.model == "mistral-7b"
    assert config.engine.initial_batch_size == 6


@pytest.mark.parametrize("line, expected", [
    ("", None),
    ("# GITHUB_TOKEN=x", None),
    ("BATCH_SIZE = 4", ("BATCH_SIZE", "4")),
    ("PRODUCT_AREA='offline sync'", ("PRODUCT_AREA", "offline sync")),
    ('OPENAI_BASE_URL="http://host/v1?a=b"', ("OPENAI_BASE_URL", "http://host/v1?a=b")),
    ('JAN_MODEL="', ("JAN_MODEL", '"')),
])
def test_parse_env_line(line, expected):
    assert parse_env_line(line) == expected


def test_parse_env_line_rejects_missing_equals():
    with pytest.raises(ValueError):
        parse_env_line("not a pair")
