#!/usr/bin/env python3
"""
JAN integration.

JAN serves local models behind an OpenAI-compatible API, so completions go
through the OpenAI SDK pointed at the local endpoint. Readiness is checked
with plain HTTP calls against the health and model-list endpoints.
"""

import logging
from typing import Any, Dict, List, Optional

import requests

from ..core.exceptions import ModelUnavailableError, ServiceUnreachableError
from .base import CompletionOptions
from .openai_client import OpenAIClient

logger = logging.getLogger(__name__)

DEFAULT_JAN_URL = "http://localhost:1337/v1"


class JanClient(OpenAIClient):
    """Client for a local JAN server."""

    name = "jan"

    def __init__(self, model: str, base_url: Optional[str] = None, timeout: float = 60.0,
                 health_timeout: float = 5.0, client: Any = None, session: Optional[requests.Session] = None):
        base_url = (base_url or DEFAULT_JAN_URL).rstrip('/')
        # JAN ignores the key but the SDK requires one
        super().__init__(model=model, api_key="not-needed", base_url=base_url, timeout=timeout, client=client)
        self.health_timeout = health_timeout
        self.session = session or requests.Session()

    @property
    def server_root(self) -> str:
        """Server URL without the /v1 API prefix."""
        if self.base_url.endswith('/v1'):
            return self.base_url[:-3]
        return self.base_url

    def _response_format(self, options: CompletionOptions) -> Optional[Dict[str, Any]]:
        # Local runtimes support JSON mode more reliably than strict schemas;
        # the schema itself is already spelled out in the prompt text.
        if options.response_format and options.response_format.get('type') == 'json_schema':
            return {'type': 'json_object'}
        return options.response_format

    def validate_connection(self) -> None:
        """Check that the JAN server answers its health endpoint."""
        url = f"{self.server_root}/health"
        try:
            response = self.session.get(url, timeout=self.health_timeout)
        except requests.RequestException as e:
            raise ServiceUnreachableError(self.server_root, e)

        if response.status_code != 200:
            raise ServiceUnreachableError(
                self.server_root, RuntimeError(f"health check returned status {response.status_code}")
            )

    def list_models(self) -> List[str]:
        """Return the ids of the models JAN has available."""
        url = f"{self.base_url}/models"
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise ServiceUnreachableError(self.server_root, e)

        try:
            payload = response.json()
        except ValueError as e:
            raise ServiceUnreachableError(self.server_root, e)

        entries = payload.get('data') if isinstance(payload, dict) else None
        if not isinstance(entries, list):
            raise ServiceUnreachableError(self.server_root, ValueError("model list response has no 'data' array"))
        return [entry.get('id') for entry in entries if isinstance(entry, dict) and entry.get('id')]

    def check_model_available(self) -> None:
        """Confirm JAN is running and the configured model is loaded."""
        self.validate_connection()
        models = self.list_models()
        if self.model not in models:
            raise ModelUnavailableError(self.model, models)

        logger.info(f"JAN model {self.model} is available at {self.server_root}")
