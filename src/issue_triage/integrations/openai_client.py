#!/usr/bin/env python3
"""
OpenAI integration for batch issue analysis.

Sends chat completions to the hosted OpenAI API (or any endpoint speaking the
same protocol) with structured-output enforcement.
"""

import logging
from typing import Any, Dict, List, Optional

import openai
from openai import OpenAI

from ..core.exceptions import (
    ContextExceededError, ModelUnavailableError, PreconditionError, ServiceUnreachableError
)
from .base import CompletionOptions, CompletionProvider

logger = logging.getLogger(__name__)


class OpenAIClient(CompletionProvider):
    """Client for OpenAI API integration with structured outputs."""

    name = "openai"

    def __init__(self, model: str = "gpt-4o-mini", api_key: Optional[str] = None,
                 base_url: Optional[str] = None, timeout: float = 60.0, client: Any = None):
        """
        Initialize OpenAI client.

        Args:
            model: Model name to request
            api_key: OpenAI API key
            base_url: Alternative endpoint (None for api.openai.com)
            timeout: Default request timeout in seconds
            client: Preconfigured SDK client (tests inject a fake here)
        """
        super().__init__(model)
        self.base_url = base_url
        self.timeout = timeout
        # Retries are handled by ErrorRecovery so the SDK must not retry on its own
        self.client = client or OpenAI(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0)

    def _response_format(self, options: CompletionOptions) -> Optional[Dict[str, Any]]:
        return options.response_format

    def complete(self, messages: List[Dict[str, str]], options: CompletionOptions) -> str:
        """Make one chat completion request and return the message text."""
        logger.debug(f"Requesting {self.name} completion from {self.model} ({len(messages)} messages)")

        request: Dict[str, Any] = {
            'model': self.model,
            'messages': messages,
            'max_tokens': options.max_tokens,
            'temperature': options.temperature,
            'timeout': options.timeout or self.timeout,
        }
        response_format = self._response_format(options)
        if response_format:
            request['response_format'] = response_format

        response = self.client.chat.completions.create(**request)

        if not response.choices:
            return ""

        choice = response.choices[0]
        # Detect truncated responses early
        if getattr(choice, "finish_reason", None) == "length":
            logger.warning(
                "%s response was truncated at max_tokens=%s",
                self.name,
                options.max_tokens,
            )
            raise ContextExceededError(
                f"Response truncated at max_tokens={options.max_tokens} (finish_reason=length)"
            )

        usage = getattr(response, 'usage', None)
        if usage is not None:
            logger.info(
                f"{self.name} call successful - tokens: {usage.prompt_tokens} prompt + "
                f"{usage.completion_tokens} completion = {usage.total_tokens} total"
            )

        return choice.message.content or ""

    def check_model_available(self) -> None:
        """Confirm the API key works and the model can be retrieved."""
        endpoint = self.base_url or "https://api.openai.com/v1"
        try:
            self.client.models.retrieve(self.model)
        except openai.NotFoundError:
            raise ModelUnavailableError(self.model)
        except openai.AuthenticationError as e:
            raise PreconditionError(f"OpenAI authentication failed: {e}", context={'endpoint': endpoint})
        except openai.APIStatusError as e:
            raise PreconditionError(
                f"Model check failed with status {e.status_code}: {e}", context={'endpoint': endpoint, 'model': self.model}
            )
        except openai.APIConnectionError as e:
            raise ServiceUnreachableError(endpoint, e)

        logger.info(f"OpenAI model {self.model} is available")
