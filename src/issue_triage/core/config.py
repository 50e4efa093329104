#!/usr/bin/env python3
"""
Configuration for issue triage.

Settings come from the process environment, optionally seeded from a .env
file in the project root, and are validated once when first requested.
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Optional, Dict, Tuple
from pathlib import Path

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = ('jan', 'openai')

DEFAULT_MODELS = {
    'jan': 'llama3.2-3b-instruct',
    'openai': 'gpt-4o-mini',
}

DEFAULT_JAN_BASE_URL = "http://localhost:1337/v1"

LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
VERBOSE_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s'


@dataclass
class ProviderConfig:
    """Completion provider configuration."""
    provider: str = "jan"
    base_url: Optional[str] = DEFAULT_JAN_BASE_URL
    model: str = DEFAULT_MODELS['jan']
    api_key: Optional[str] = None
    temperature: float = 0.3
    max_tokens: int = 4000
    timeout_seconds: float = 60.0


@dataclass
class EngineConfig:
    """Adaptive batch engine configuration."""
    initial_batch_size: int = 5
    max_retries: int = 3
    retry_base_delay: float = 1.0
    max_retry_delay: float = 30.0
    run_deadline_seconds: Optional[float] = None
    llm_debug_log: bool = False


@dataclass
class GitHubConfig:
    """Issue tracker configuration."""
    token: Optional[str] = None
    api_url: str = "https://api.github.com"
    timeout: int = 30


@dataclass
class ApplicationConfig:
    """CLI defaults and logging."""
    repository: Optional[str] = None
    product_area: Optional[str] = None
    max_issues: int = 50
    output_path: str = "./reports"

    log_level: str = "INFO"
    verbose_logging: bool = False


@dataclass
class Config:
    """All configuration sections."""
    provider: ProviderConfig = field(default_factory=ProviderConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)
    github: GitHubConfig = field(default_factory=GitHubConfig)
    app: ApplicationConfig = field(default_factory=ApplicationConfig)

    def has_github_token(self) -> bool:
        return bool(self.github.token)

    def uses_local_provider(self) -> bool:
        """Check if completions go to a local JAN server."""
        return self.provider.provider == 'jan'


def provider_defaults(provider_name: str) -> Tuple[str, Optional[str]]:
    """Model and base URL for a provider, from its environment variables or built-in defaults."""
    if provider_name == 'openai':
        return os.getenv('OPENAI_MODEL', DEFAULT_MODELS['openai']), os.getenv('OPENAI_BASE_URL')
    return os.getenv('JAN_MODEL', DEFAULT_MODELS['jan']), os.getenv('JAN_BASE_URL', DEFAULT_JAN_BASE_URL)


def parse_env_line(line: str) -> Optional[Tuple[str, str]]:
    """
    Parse one KEY=VALUE line of a .env file.

    Returns None for blank lines and comments. Matching single or double
    quotes around the value are removed.

    Raises:
        ValueError: If the line has no '='
    """
    line = line.strip()
    if not line or line.startswith('#'):
        return None
    if '=' not in line:
        raise ValueError(f"expected KEY=VALUE, got '{line}'")

    key, _, value = line.partition('=')
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        value = value[1:-1]
    return key.strip(), value


class ConfigManager:
    """Loads, validates and caches the configuration."""

    def __init__(self, env_file_path: str = ".env"):
        """
        Args:
            env_file_path: .env file name, relative to the project root
        """
        self._config: Optional[Config] = None
        self._env_file_path = env_file_path
        self._load_environment()

    def _load_environment(self) -> None:
        # Project root sits three levels above src/issue_triage/core
        env_path = Path(__file__).resolve().parents[3] / self._env_file_path
        if env_path.exists():
            self._load_env_file(env_path)
        else:
            logger.debug(f"No .env file at {env_path}, using the process environment only")

    def _load_env_file(self, env_path: Path) -> None:
        """Copy .env entries into os.environ without overriding variables already set."""
        try:
            text = Path(env_path).read_text(encoding='utf-8')
        except OSError as e:
            logger.error(f"Could not read {env_path}: {e}")
            return

        applied = []
        for number, raw_line in enumerate(text.splitlines(), 1):
            try:
                entry = parse_env_line(raw_line)
            except ValueError as e:
                logger.warning(f"{env_path}:{number}: {e}")
                continue
            if entry is None:
                continue

            key, value = entry
            if key in os.environ:
                logger.debug(f"{key} already set in the environment, ignoring .env value")
                continue
            os.environ[key] = value
            applied.append(key)

        logger.info(f"Applied {len(applied)} settings from {env_path}")

    def get_config(self, force_reload: bool = False) -> Config:
        """Return the validated configuration, building it on first use."""
        if self._config is None or force_reload:
            self._config = self._build_config()
        return self._config

    def _build_config(self) -> Config:
        provider_name = os.getenv('AI_PROVIDER', 'jan').lower()

        model, base_url = provider_defaults(provider_name)

        provider_config = ProviderConfig(
            provider=provider_name,
            base_url=base_url,
            model=model,
            api_key=os.getenv('OPENAI_API_KEY'),
            temperature=self._get_float('LLM_TEMPERATURE', 0.3),
            max_tokens=self._get_int('LLM_MAX_TOKENS', 4000),
            timeout_seconds=self._get_float('LLM_TIMEOUT', 60.0)
        )

        deadline = self._get_float('RUN_DEADLINE_SECONDS', 0.0)
        engine_config = EngineConfig(
            initial_batch_size=self._get_int('BATCH_SIZE', 5),
            max_retries=self._get_int('LLM_MAX_RETRIES', 3),
            retry_base_delay=self._get_float('RETRY_BASE_DELAY', 1.0),
            max_retry_delay=self._get_float('MAX_RETRY_DELAY', 30.0),
            run_deadline_seconds=deadline if os.getenv('RUN_DEADLINE_SECONDS') else None,
            llm_debug_log=self._get_bool('LLM_DEBUG_LOG')
        )

        github_config = GitHubConfig(
            token=os.getenv('GITHUB_TOKEN'),
            api_url=os.getenv('GITHUB_API_URL', 'https://api.github.com'),
            timeout=self._get_int('GITHUB_TIMEOUT', 30)
        )

        app_config = ApplicationConfig(
            repository=os.getenv('GITHUB_REPOSITORY'),
            product_area=os.getenv('PRODUCT_AREA'),
            max_issues=self._get_int('MAX_ISSUES', 50),
            output_path=os.getenv('OUTPUT_PATH', './reports'),
            log_level=os.getenv('LOG_LEVEL', 'INFO').upper(),
            verbose_logging=self._get_bool('VERBOSE_LOGGING')
        )

        config = Config(provider=provider_config, engine=engine_config,
                        github=github_config, app=app_config)
        validate_config(config)
        logger.debug(f"Configuration loaded: provider={provider_name}, model={model}")
        return config

    def _get_int(self, key: str, default: int) -> int:
        value = os.getenv(key)
        if value is None or value == '':
            return default
        try:
            return int(value)
        except ValueError:
            raise ConfigurationError(key, f"expected an integer, got '{value}'")

    def _get_float(self, key: str, default: float) -> float:
        value = os.getenv(key)
        if value is None or value == '':
            return default
        try:
            return float(value)
        except ValueError:
            raise ConfigurationError(key, f"expected a number, got '{value}'")

    @staticmethod
    def _get_bool(key: str) -> bool:
        return os.getenv(key, 'false').strip().lower() in ('1', 'true', 'yes')

    def update_logging(self) -> None:
        """Apply LOG_LEVEL and VERBOSE_LOGGING to the root logger and its handlers."""
        app = self.get_config().app
        level = getattr(logging, app.log_level)
        formatter = logging.Formatter(VERBOSE_LOG_FORMAT if app.verbose_logging else LOG_FORMAT,
                                      datefmt='%Y-%m-%d %H:%M:%S')

        root = logging.getLogger()
        root.setLevel(level)
        for handler in root.handlers:
            handler.setLevel(level)
            handler.setFormatter(formatter)


def validate_config(config: Config) -> None:
    """
    Validate a configuration object.

    Raises:
        ConfigurationError: listing every problem found
    """
    problems = []

    if config.provider.provider not in SUPPORTED_PROVIDERS:
        problems.append(f"AI_PROVIDER must be one of: {', '.join(SUPPORTED_PROVIDERS)}")
    if config.provider.provider == 'openai' and not config.provider.api_key:
        problems.append("OPENAI_API_KEY is required when AI_PROVIDER=openai")
    if not config.provider.model:
        problems.append("A model name must be configured")
    if config.provider.timeout_seconds <= 0:
        problems.append("LLM_TIMEOUT must be positive")

    if config.engine.initial_batch_size < 1:
        problems.append("BATCH_SIZE must be at least 1")
    if config.engine.max_retries < 0:
        problems.append("LLM_MAX_RETRIES cannot be negative")
    if config.engine.run_deadline_seconds is not None and config.engine.run_deadline_seconds <= 0:
        problems.append("RUN_DEADLINE_SECONDS must be positive when set")

    if config.app.max_issues < 1:
        problems.append("MAX_ISSUES must be at least 1")
    if config.app.log_level not in LOG_LEVELS:
        problems.append(f"LOG_LEVEL must be one of: {', '.join(LOG_LEVELS)}")

    if problems:
        raise ConfigurationError('config', '; '.join(problems))


_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager


def get_config() -> Config:
    return get_config_manager().get_config()


def reset_config() -> None:
    """Forget the cached manager so the next call re-reads the environment."""
    global _config_manager
    _config_manager = None


def integration_status(config: Config) -> Dict[str, bool]:
    """Which integrations have the settings they need."""
    return {
        'provider_configured': bool(config.provider.model),
        'openai_api_key': bool(config.provider.api_key),
        'github_token': config.has_github_token(),
        'repository': bool(config.app.repository),
        'product_area': bool(config.app.product_area),
    }
