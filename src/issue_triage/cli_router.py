#!/usr/bin/env python3
"""
CLI Router for issue triage.

Command structure:
- issues fetch --repository owner/name --output issues.json
- issues analyze --input issues.json --product-area "authentication"
- integrations test
- integrations status
"""

import argparse
import logging
import sys
from typing import List, Optional

from .commands import COMMANDS, get_command
from .core.config import LOG_FORMAT, SUPPORTED_PROVIDERS, get_config_manager
from .core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return number


class CLIRouter:
    """Routes parsed command lines to command classes."""

    def __init__(self, container=None):
        self.container = container
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """Create the main argument parser."""
        parser = argparse.ArgumentParser(
            prog="issue-triage",
            description="Analyze GitHub issues for a product area with an LLM, in adaptive batches",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog=self._get_examples_text()
        )

        subparsers = parser.add_subparsers(
            dest='command',
            help='Available commands',
            metavar='{command}'
        )

        self._add_issues_parser(subparsers)
        self._add_integrations_parser(subparsers)

        return parser

    def _add_issues_parser(self, subparsers):
        issues_parser = subparsers.add_parser(
            'issues',
            help='Fetch and analyze repository issues'
        )

        issues_subparsers = issues_parser.add_subparsers(
            dest='subcommand',
            help='Issue operations',
            metavar='{fetch,analyze}'
        )

        fetch_parser = issues_subparsers.add_parser('fetch', help='Download issues and comments to a JSON file')
        fetch_parser.add_argument('--repository', help='Repository as owner/name (default: GITHUB_REPOSITORY)')
        fetch_parser.add_argument('--max-issues', type=_positive_int, default=None, help='Maximum issues to fetch (default: MAX_ISSUES or 50)')
        fetch_parser.add_argument('--state', choices=['open', 'closed', 'all'], default='open', help='Issue state (default: open)')
        fetch_parser.add_argument('--output', help='Output JSON file (default: OUTPUT_PATH/<repo>_issues.json)')

        analyze_parser = issues_subparsers.add_parser('analyze', help='Analyze issues for relevance to a product area')
        source = analyze_parser.add_mutually_exclusive_group()
        source.add_argument('--input', help='JSON file written by "issues fetch"')
        source.add_argument('--repository', help='Fetch issues live from owner/name')
        analyze_parser.add_argument('--product-area', help='Product area to judge relevance against (default: PRODUCT_AREA)')
        analyze_parser.add_argument('--max-issues', type=_positive_int, default=None, help='Maximum issues to fetch with --repository')
        analyze_parser.add_argument('--state', choices=['open', 'closed', 'all'], default='open', help='Issue state with --repository')
        analyze_parser.add_argument('--batch-size', type=_positive_int, default=None, help='Initial batch size (default: BATCH_SIZE or 5)')
        analyze_parser.add_argument('--provider', choices=list(SUPPORTED_PROVIDERS), help='Completion provider (default: AI_PROVIDER)')
        analyze_parser.add_argument('--model', help='Model name for the provider')
        analyze_parser.add_argument('--output', help='Write the aggregate result as JSON to this file')
        analyze_parser.add_argument('--verbose', action='store_true', help='Show per-batch progress')

    def _add_integrations_parser(self, subparsers):
        integrations_parser = subparsers.add_parser(
            'integrations',
            help='External integration checks'
        )

        integrations_subparsers = integrations_parser.add_subparsers(
            dest='subcommand',
            help='Integration operations',
            metavar='{test,status}'
        )

        integrations_subparsers.add_parser('test', help='Test provider and GitHub connections')
        integrations_subparsers.add_parser('status', help='Show integration configuration')

    def _get_examples_text(self) -> str:
        return """
Examples:
  issue-triage issues fetch --repository octocat/hello-world --output issues.json
  issue-triage issues analyze --input issues.json --product-area "authentication"
  issue-triage issues analyze --repository octocat/hello-world --product-area "sync" --provider openai
  issue-triage integrations test
"""

    def route_command(self, args: Optional[List[str]] = None) -> int:
        """
        Route command to appropriate handler.

        Returns:
            Exit code
        """
        try:
            if args is None:
                args = sys.argv[1:]

            parsed_args = self.parser.parse_args(args)

            if not parsed_args.command:
                self.parser.print_help()
                return 1

            return self._handle_command(parsed_args)

        except SystemExit as e:
            # argparse calls sys.exit() on error or help
            return e.code if e.code is not None else 0
        except ConfigurationError as e:
            logger.error(str(e))
            return 1

    def _handle_command(self, args: argparse.Namespace) -> int:
        logger.debug(f"Handling command: {args.command}")

        if args.command not in COMMANDS:
            available = ', '.join(COMMANDS.keys())
            logger.error(f"Unknown command '{args.command}'. Available: {available}")
            return 1

        subcommand = getattr(args, 'subcommand', None)
        if not subcommand:
            logger.error(f"No subcommand specified for '{args.command}'")
            self.parser.parse_args([args.command, '--help'])
            return 1

        command = get_command(args.command, self.container)
        return command.execute(subcommand, args)


def main(args: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        Exit code
    """
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)

    try:
        get_config_manager().update_logging()
    except ConfigurationError as e:
        logger.error(str(e))
        return 1

    router = CLIRouter()
    return router.route_command(args)


if __name__ == '__main__':
    sys.exit(main())
