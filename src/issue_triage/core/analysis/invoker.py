#!/usr/bin/env python3
"""
Completion invoker.

Sends one prompt to the configured provider, classifies whatever goes wrong
and applies bounded backoff to transient classifications only. Everything
else is handed back to the caller to decide on.
"""

import logging
import time
from typing import Callable, Optional

import openai
import requests

from ..config import EngineConfig, ProviderConfig
from ..exceptions import (
    CompletionError, ContextExceededError, ErrorRecovery, InvalidRequestError, ModelNotFoundError,
    RateLimitedError, ServiceUnavailableError, UnknownCompletionError
)
from ..schemas import get_schema_by_type
from ...integrations.base import CompletionOptions, CompletionProvider, json_schema_format
from .prompts import Prompt

logger = logging.getLogger(__name__)

CONTEXT_LIMIT_MARKERS = ('context length', 'maximum context', 'token limit', 'context window')
CONNECTION_MARKERS = ('connection refused', 'econnrefused', 'enotfound', 'name or service not known',
                      'failed to establish', 'timed out', 'timeout')
TRANSIENT_MARKERS = ('temporarily', 'overloaded', 'try again', 'bad gateway', 'service unavailable',
                     'connection reset')


def mentions_context_limit(message: str) -> bool:
    """True when an error message describes a context window or token limit."""
    text = (message or '').lower()
    return any(marker in text for marker in CONTEXT_LIMIT_MARKERS)


def _status_code(error: Exception) -> Optional[int]:
    status = getattr(error, 'status_code', None) or getattr(error, 'status', None)
    if status is None:
        response = getattr(error, 'response', None)
        status = getattr(response, 'status_code', None)
    try:
        return int(status) if status is not None else None
    except (TypeError, ValueError):
        return None


def classify_error(error: Exception) -> CompletionError:
    """
    Map a raw provider exception onto the completion error taxonomy.

    Already-classified errors pass through unchanged.
    """
    if isinstance(error, CompletionError):
        return error

    message = str(error)
    lowered = message.lower()
    status = _status_code(error)

    if status == 429:
        return RateLimitedError(f"Rate limited: {message}", status, error)

    if status == 400:
        if 'context' in lowered or 'token' in lowered:
            return ContextExceededError(f"Context exceeded: {message}", status, error)
        return InvalidRequestError(f"Invalid request: {message}", status, error)

    if mentions_context_limit(message):
        return ContextExceededError(f"Context exceeded: {message}", status, error)

    if isinstance(error, (openai.APIConnectionError, requests.ConnectionError, requests.Timeout,
                          ConnectionError, TimeoutError)):
        return ServiceUnavailableError(f"Service unavailable: {message}", status, error)

    if status == 404:
        return ModelNotFoundError(f"Model not found: {message}", status, error)

    if status is None and any(marker in lowered for marker in CONNECTION_MARKERS):
        return ServiceUnavailableError(f"Service unavailable: {message}", status, error)

    transient = (status is not None and status >= 500) or any(marker in lowered for marker in TRANSIENT_MARKERS)
    return UnknownCompletionError(f"Completion failed: {message}", status, error, retryable=transient)


class CompletionInvoker:
    """Runs completions against one provider with classification and backoff."""

    def __init__(self, provider: CompletionProvider, provider_config: Optional[ProviderConfig] = None,
                 engine_config: Optional[EngineConfig] = None, sleep: Callable[[float], None] = time.sleep):
        self.provider = provider
        self.provider_config = provider_config or ProviderConfig(model=provider.model)
        self.engine_config = engine_config or EngineConfig()
        self._sleep = sleep
        self._ready = False

    @property
    def model(self) -> str:
        return self.provider.model

    def ensure_ready(self) -> None:
        """
        Run the provider readiness check once per invoker.

        Raises:
            PreconditionError: If the service is unreachable or the model is missing
        """
        if self._ready:
            return
        logger.info(f"Checking {self.provider.name} availability for model {self.provider.model}")
        self.provider.check_model_available()
        self._ready = True

    def options_for(self, prompt: Prompt) -> CompletionOptions:
        schema = get_schema_by_type(prompt.analysis_type)
        return CompletionOptions(
            temperature=self.provider_config.temperature,
            max_tokens=self.provider_config.max_tokens,
            response_format=json_schema_format(f"{prompt.analysis_type}_analysis", schema),
            timeout=self.provider_config.timeout_seconds,
        )

    def invoke(self, prompt: Prompt) -> str:
        """
        Send a prompt and return the raw response text.

        Raises:
            PreconditionError: From the readiness check
            CompletionError: Classified failure after any transient retries
        """
        self.ensure_ready()
        options = self.options_for(prompt)

        return ErrorRecovery.execute_with_retry(
            lambda: self.provider.complete(prompt.messages, options),
            classify=classify_error,
            max_retries=self.engine_config.max_retries,
            base_delay=self.engine_config.retry_base_delay,
            max_delay=self.engine_config.max_retry_delay,
            sleep=self._sleep,
        )
