#!/usr/bin/env python3
"""
Command endpoints for the issue triage CLI.

Each top-level command is a BaseCommand subclass registered here.
"""

from typing import Dict, Type
from .base import BaseCommand
from .issues import IssuesCommand
from .integrations import IntegrationsCommand

# Command registry for easy extension
COMMANDS: Dict[str, Type[BaseCommand]] = {
    'issues': IssuesCommand,
    'integrations': IntegrationsCommand,
}


def get_command(command_name: str, container=None) -> BaseCommand:
    """Get a command instance by name."""
    if command_name not in COMMANDS:
        available = ', '.join(COMMANDS.keys())
        raise ValueError(f"Unknown command '{command_name}'. Available: {available}")

    return COMMANDS[command_name](container)
