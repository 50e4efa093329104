#!/usr/bin/env python3
"""
Dependency Injection Container

Wires configuration, the completion provider, the analysis engine and the
issue source together in one place, so commands never build them by hand.
"""

import logging
import threading
from functools import wraps
from typing import Any, Callable, Dict, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


class Container:
    """Service registry with singleton and factory lifecycles."""

    def __init__(self):
        self._factories: Dict[str, Callable] = {}
        self._singletons: Dict[str, Any] = {}
        self._lock = threading.RLock()

    def register_singleton(self, service_name: str, factory: Callable[[], T]) -> None:
        """Register a factory whose first result is cached and reused."""
        with self._lock:
            factory._is_singleton = True
            self._factories[service_name] = factory
            self._singletons.pop(service_name, None)

    def register_factory(self, service_name: str, factory: Callable[[], T]) -> None:
        """Register a factory called on every get()."""
        with self._lock:
            self._factories[service_name] = factory

    def register_instance(self, service_name: str, instance: T) -> None:
        """Register a pre-built instance (tests use this to inject fakes)."""
        with self._lock:
            self._singletons[service_name] = instance

    def get(self, service_name: str) -> Any:
        """
        Get service instance by name.

        Raises:
            KeyError: If service is not registered
        """
        if service_name in self._singletons:
            return self._singletons[service_name]

        if service_name not in self._factories:
            raise KeyError(f"Service '{service_name}' not registered")

        # Re-entrant lock: factories resolve their own dependencies via get()
        with self._lock:
            factory = self._factories[service_name]
            if getattr(factory, '_is_singleton', False):
                if service_name not in self._singletons:
                    self._singletons[service_name] = factory()
                    logger.debug(f"Created singleton instance for '{service_name}'")
                return self._singletons[service_name]

            logger.debug(f"Created new instance for '{service_name}'")
            return factory()

    def has(self, service_name: str) -> bool:
        return service_name in self._factories or service_name in self._singletons

    def clear(self) -> None:
        with self._lock:
            self._factories.clear()
            self._singletons.clear()

    def reset_singleton(self, service_name: str) -> None:
        """Drop a cached singleton so the next get() rebuilds it."""
        with self._lock:
            if self._singletons.pop(service_name, None) is not None:
                logger.debug(f"Reset singleton '{service_name}'")


def singleton(factory_func: Callable[[], T]) -> Callable[[], T]:
    """Mark a factory function as singleton."""
    @wraps(factory_func)
    def wrapper():
        return factory_func()

    wrapper._is_singleton = True
    return wrapper


def create_provider(provider_config):
    """Instantiate the completion provider named in the configuration."""
    from ..integrations.jan_client import JanClient
    from ..integrations.openai_client import OpenAIClient
    from .exceptions import ConfigurationError

    providers = {
        'jan': lambda: JanClient(
            model=provider_config.model,
            base_url=provider_config.base_url,
            timeout=provider_config.timeout_seconds,
        ),
        'openai': lambda: OpenAIClient(
            model=provider_config.model,
            api_key=provider_config.api_key,
            base_url=provider_config.base_url,
            timeout=provider_config.timeout_seconds,
        ),
    }
    if provider_config.provider not in providers:
        raise ConfigurationError('AI_PROVIDER', f"unsupported provider '{provider_config.provider}'")

    logger.info(f"Using {provider_config.provider} provider with model {provider_config.model}")
    return providers[provider_config.provider]()


# Global container instance
_container: Optional[Container] = None
_container_lock = threading.Lock()


def get_container() -> Container:
    """Get global container instance (thread-safe singleton)."""
    global _container
    if _container is None:
        with _container_lock:
            if _container is None:
                _container = Container()
                _setup_default_services(_container)
    return _container


def reset_container() -> None:
    """Reset global container (useful for testing)."""
    global _container
    with _container_lock:
        if _container:
            _container.clear()
        _container = None


def _setup_default_services(container: Container) -> None:
    """Register default services with configuration injection."""

    @singleton
    def create_config():
        from .config import get_config
        return get_config()

    @singleton
    def create_completion_provider():
        return create_provider(container.get('config').provider)

    @singleton
    def create_llm_logger():
        config = container.get('config')
        if not config.engine.llm_debug_log:
            return None
        from .llm_logger import LLMLogger
        return LLMLogger()

    def create_invoker():
        from .analysis.invoker import CompletionInvoker
        config = container.get('config')
        return CompletionInvoker(
            container.get('completion_provider'),
            provider_config=config.provider,
            engine_config=config.engine,
        )

    def create_engine():
        from .analysis.engine import AdaptiveBatchEngine
        from .analysis.prompts import IssueAnalysisPrompts
        from .json_validator import BatchResponseValidator
        config = container.get('config')
        return AdaptiveBatchEngine(
            invoker=container.get('invoker'),
            prompt_builder=IssueAnalysisPrompts(),
            validator=BatchResponseValidator(),
            config=config.engine,
            llm_logger=container.get('llm_logger'),
        )

    def create_github_client():
        from ..integrations.github_client import GitHubClient
        config = container.get('config')
        return GitHubClient(
            token=config.github.token,
            api_url=config.github.api_url,
            timeout=config.github.timeout,
        )

    container.register_singleton('config', create_config)
    container.register_singleton('completion_provider', create_completion_provider)
    container.register_singleton('llm_logger', create_llm_logger)

    # Non-singletons: each run gets a fresh invoker (and readiness check)
    container.register_factory('invoker', create_invoker)
    container.register_factory('engine', create_engine)
    container.register_factory('github_client', create_github_client)

    logger.debug("Default services registered in container")

