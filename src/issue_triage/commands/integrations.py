#!/usr/bin/env python3
"""
Integrations command endpoints for checking external service connections.
"""

import logging
from argparse import Namespace

from .base import BaseCommand
from ..core.config import integration_status

logger = logging.getLogger(__name__)


class IntegrationsCommand(BaseCommand):
    """Check the completion provider and GitHub connections."""

    name = "integrations"
    subcommands = ["test", "status"]

    def test(self, args: Namespace) -> int:
        """Test provider readiness and GitHub reachability."""
        print("Testing integrations...")

        provider_status = self._test_provider()
        github_status = self._test_github()

        print("\n=== Integration Test Results ===")
        label = f"{provider_status.get('provider', 'provider')} ({provider_status.get('model', '?')})"
        if provider_status['connected']:
            print(f"Completion provider {label}: connected")
        else:
            print(f"Completion provider {label}: FAILED - {provider_status['error']}")

        if github_status['connected']:
            remaining = github_status.get('remaining')
            print(f"GitHub API: connected" + (f" ({remaining} requests remaining)" if remaining is not None else ""))
        else:
            print(f"GitHub API: FAILED - {github_status['error']}")

        if provider_status['connected'] and github_status['connected']:
            print("All integrations working")
            return 0

        print("Some integrations failed - check configuration")
        return 1

    def status(self, args: Namespace) -> int:
        """Show which integrations are configured, without network calls."""
        config = self.config
        status = integration_status(config)

        print("Integration Status:")
        print(f"   - Provider: {config.provider.provider} / {config.provider.model}")
        if config.uses_local_provider():
            print(f"   - Local server: {config.provider.base_url}")
        elif config.provider.base_url:
            print(f"   - Endpoint: {config.provider.base_url}")
        print(f"   - Batch size: {config.engine.initial_batch_size} (max retries {config.engine.max_retries})")
        for key, is_set in status.items():
            print(f"   - {key}: {'set' if is_set else 'missing'}")

        return 0

    def _test_provider(self) -> dict:
        try:
            provider = self._container.get('completion_provider')
        except Exception as e:
            self.logger.warning(f"Provider setup failed: {e}")
            return {'connected': False, 'error': str(e)}
        return provider.test_connection()

    def _test_github(self) -> dict:
        client = self._container.get('github_client')
        return client.test_connection()
