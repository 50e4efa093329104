#!/usr/bin/env python3
"""
Issue command endpoints: fetching issues and running batch analysis.
"""

import logging
from argparse import Namespace
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Tuple

from .base import BaseCommand
from ..core.config import provider_defaults, validate_config
from ..core.analysis.engine import BatchProgress
from ..core.exceptions import AnalysisCancelledError
from ..core.formatters import format_aggregate_result, format_record
from ..core.models.record import Comment, Record
from ..core.record_store import load_records_file, save_analysis_result, save_records_file

logger = logging.getLogger(__name__)


class IssuesCommand(BaseCommand):
    """Fetch issues from GitHub and analyze them in adaptive batches."""

    name = "issues"
    subcommands = ["fetch", "analyze"]

    def fetch(self, args: Namespace) -> int:
        """Download issues and their comments to an interchange file."""
        repository = args.repository or self.config.app.repository
        if not repository:
            self.logger.error("No repository given (use --repository or GITHUB_REPOSITORY)")
            return 1

        max_issues = args.max_issues or self.config.app.max_issues
        print(f"Fetching up to {max_issues} {args.state} issues from {repository}...")

        records, comments = self._fetch_from_github(repository, args.state, max_issues)

        for record in records[:10]:
            print(format_record(record))
        if len(records) > 10:
            print(f"... and {len(records) - 10} more")

        output = args.output or str(Path(self.config.app.output_path) / f"{repository.replace('/', '_')}_issues.json")
        save_records_file(output, records, comments)
        print(f"Saved {len(records)} issues to {output}")
        return 0

    def analyze(self, args: Namespace) -> int:
        """Run the adaptive batch engine over issues from a file or GitHub."""
        product_area = args.product_area or self.config.app.product_area
        if not product_area:
            self.logger.error("No product area given (use --product-area or PRODUCT_AREA)")
            return 1

        self._apply_overrides(args)

        if args.input:
            records, comments = load_records_file(args.input)
        else:
            repository = args.repository or self.config.app.repository
            if not repository:
                self.logger.error("Provide --input FILE or --repository owner/name")
                return 1
            records, comments = self._fetch_from_github(
                repository, getattr(args, 'state', 'open'), args.max_issues or self.config.app.max_issues
            )

        if not records:
            print("No issues to analyze")
            return 0

        engine = self._container.get('engine')
        if args.verbose:
            engine.progress_callback = self._print_progress

        print(f"Analyzing {len(records)} issues for '{product_area}'...")
        try:
            result = engine.analyze(records, comments, product_area,
                                    initial_batch_size=args.batch_size)
        except AnalysisCancelledError as e:
            self.logger.error(str(e))
            if e.partial_result is not None:
                print("Partial results before cancellation:")
                print(format_aggregate_result(e.partial_result, product_area))
            return 1

        print(format_aggregate_result(result, product_area))

        if args.output:
            save_analysis_result(args.output, result, metadata={
                'product_area': product_area,
                'provider': self.config.provider.provider,
                'model': self.config.provider.model,
                'issue_count': len(records),
            })
            print(f"Saved analysis to {args.output}")

        return 0

    # ---------- Helpers ----------

    def _fetch_from_github(self, repository: str, state: str,
                           max_issues: int) -> Tuple[List[Record], Dict[int, List[Comment]]]:
        client = self._container.get('github_client')
        fetched = client.fetch_with_comments(repository, state=state, max_issues=max_issues)
        return fetched['records'], fetched['comments']

    def _apply_overrides(self, args: Namespace) -> None:
        """Apply --provider/--model/--batch-size on top of the loaded configuration."""
        config = self.config
        provider = getattr(args, 'provider', None)
        model = getattr(args, 'model', None)

        if provider and provider != config.provider.provider:
            default_model, base_url = provider_defaults(provider)
            config.provider = replace(config.provider, provider=provider,
                                      model=model or default_model, base_url=base_url)
        elif model:
            config.provider = replace(config.provider, model=model)

        if getattr(args, 'batch_size', None) is not None:
            config.engine.initial_batch_size = args.batch_size

        validate_config(config)
        if provider or model:
            # Rebuild the provider with the new settings
            self._container.reset_singleton('completion_provider')

    @staticmethod
    def _print_progress(progress: BatchProgress) -> None:
        print(
            f"  batch {progress.batch_index}/{progress.estimated_batches} "
            f"(records {progress.record_offset + 1}-{progress.record_offset + progress.unit_size}): "
            f"{progress.state}" + (f" - {progress.detail}" if progress.detail else "")
        )
