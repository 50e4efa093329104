#!/usr/bin/env python3
"""
Completion provider interface.

Every LLM backend exposes the same narrow surface: send chat messages and
get back text, plus a readiness check used once before a run starts.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional


@dataclass
class CompletionOptions:
    """Per-request completion settings."""
    temperature: float = 0.3
    max_tokens: int = 4000
    response_format: Optional[Dict[str, Any]] = None
    timeout: Optional[float] = None


def json_schema_format(name: str, schema: Dict[str, Any]) -> Dict[str, Any]:
    """Build an OpenAI-style structured output response_format."""
    return {
        "type": "json_schema",
        "json_schema": {
            "name": name,
            "schema": schema,
            "strict": True
        }
    }


class CompletionProvider(ABC):
    """Abstract base for chat completion backends."""

    name = "provider"

    def __init__(self, model: str):
        self.model = model

    @abstractmethod
    def complete(self, messages: List[Dict[str, str]], options: CompletionOptions) -> str:
        """
        Run one chat completion and return the response text.

        Raises whatever the underlying client raises; classification is the
        caller's job. Truncated responses raise ContextExceededError.
        """

    @abstractmethod
    def check_model_available(self) -> None:
        """
        Confirm the service is reachable and the configured model exists.

        Raises:
            PreconditionError: If the service or model cannot serve requests
        """

    def test_connection(self) -> Dict[str, Any]:
        """Check readiness and report the outcome as a status dict."""
        try:
            self.check_model_available()
            return {'provider': self.name, 'model': self.model, 'connected': True, 'error': None}
        except Exception as e:
            return {'provider': self.name, 'model': self.model, 'connected': False, 'error': str(e)}
