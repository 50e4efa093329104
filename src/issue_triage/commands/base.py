#!/usr/bin/env python3
"""
Base command class for the command architecture.

Commands resolve their collaborators through the dependency injection
container so tests can swap in fakes.
"""

import logging
from abc import ABC, abstractmethod
from argparse import Namespace
from typing import List

from ..core.container import get_container
from ..core.exceptions import (
    AnalysisCancelledError, ConfigurationError, PreconditionError, RecordSourceError
)

logger = logging.getLogger(__name__)


class BaseCommand(ABC):
    """Base class for all CLI commands."""

    # Subcommand names; the router dispatches to the method of the same name
    subcommands: List[str] = []

    def __init__(self, container=None):
        """
        Args:
            container: Optional container instance. If None, uses global container.
        """
        self.logger = logging.getLogger(self.__class__.__name__)
        self._container = container or get_container()

    @property
    def config(self):
        """Get configuration from container."""
        return self._container.get('config')

    def execute(self, subcommand: str, args: Namespace) -> int:
        """
        Execute the command with given subcommand and arguments.

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        if subcommand not in self.subcommands:
            available = ", ".join(self.get_available_subcommands())
            self.logger.error(f"Unknown subcommand '{subcommand}'. Available: {available}")
            return 1

        try:
            return getattr(self, subcommand)(args)
        except KeyboardInterrupt:
            self.logger.info("Command interrupted by user")
            return 130
        except Exception as e:
            return self.handle_error(e, f"{self.name} {subcommand}")

    @property
    @abstractmethod
    def name(self) -> str:
        """Command name as typed on the command line."""

    def get_available_subcommands(self) -> List[str]:
        return list(self.subcommands)

    def handle_error(self, error: Exception, context: str = "") -> int:
        """
        Standard error handling for commands.

        Expected failures (configuration, unreachable service, missing
        input) are reported without a traceback.
        """
        error_msg = f"{context}: {error}" if context else str(error)

        if isinstance(error, (ConfigurationError, PreconditionError, RecordSourceError,
                              AnalysisCancelledError)):
            self.logger.error(error_msg)
            return 1
        self.logger.error(error_msg, exc_info=True)
        return 1

