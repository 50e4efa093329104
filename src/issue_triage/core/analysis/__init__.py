#!/usr/bin/env python3
"""
Adaptive batch analysis for issue records.

Partitions records, dispatches them to a completion provider, recovers from
oversized or malformed batches and merges the results.
"""

from .engine import AdaptiveBatchEngine, BatchProgress
from .invoker import CompletionInvoker, classify_error
from .merger import merge_batch_results, rank_top_categories
from .partitioner import partition, batch_count, WorkQueue
from .prompts import IssueAnalysisPrompts, Prompt

__all__ = [
    'AdaptiveBatchEngine', 'BatchProgress',
    'CompletionInvoker', 'classify_error',
    'merge_batch_results', 'rank_top_categories',
    'partition', 'batch_count', 'WorkQueue',
    'IssueAnalysisPrompts', 'Prompt'
]
