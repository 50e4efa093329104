#!/usr/bin/env python3
"""
Merging of per-batch analysis results into one aggregate.
"""

import logging
from collections import Counter
from typing import List, Sequence

from ..models.analysis import AnalyzedFinding, BatchResult, AggregateResult

logger = logging.getLogger(__name__)

TOP_CATEGORY_LIMIT = 5


def rank_top_categories(results: Sequence[BatchResult], limit: int = TOP_CATEGORY_LIMIT) -> List[str]:
    """
    Rank categories by the number of batches that list them.

    Each batch casts one vote per distinct category in its top_categories,
    regardless of how many findings carry it. Ties keep first-seen order.
    """
    votes: Counter = Counter()
    first_seen: List[str] = []
    for result in results:
        for category in dict.fromkeys(result.top_categories):
            if not category:
                continue
            if category not in votes:
                first_seen.append(category)
            votes[category] += 1

    # sorted() is stable, so equal vote counts stay in first-seen order
    ranked = sorted(first_seen, key=lambda category: -votes[category])
    return ranked[:limit]


def merge_batch_results(results: Sequence[BatchResult]) -> AggregateResult:
    """
    Combine batch results, in batch order, into an AggregateResult.

    processing_errors and total_batches are only set when at least one
    batch ended as a placeholder.
    """
    findings: List[AnalyzedFinding] = []
    total_analyzed = 0
    processing_errors = 0

    for result in results:
        findings.extend(result.findings)
        total_analyzed += result.total_analyzed
        if result.processing_error:
            processing_errors += 1

    aggregate = AggregateResult(
        findings=findings,
        total_analyzed=total_analyzed,
        relevant_found=len(findings),
        top_categories=rank_top_categories(results),
    )

    if processing_errors > 0:
        aggregate.processing_errors = processing_errors
        aggregate.total_batches = len(results)
        logger.warning(f"{processing_errors}/{len(results)} batches could not be analyzed")

    logger.debug(
        f"Merged {len(results)} batches: {total_analyzed} analyzed, {len(findings)} relevant"
    )
    return aggregate
