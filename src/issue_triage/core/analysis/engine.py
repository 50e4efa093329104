#!/usr/bin/env python3
"""
Adaptive batch analysis engine.

Walks the record list in order, sending one unit of work at a time to the
completion invoker. When a unit fails the engine decides between shrinking
the batch and retrying the same records, a one-off simplified prompt, or
giving up on the unit with a placeholder result. Only run-level
precondition failures (and explicit cancellation) stop a run.
"""

import logging
import threading
import time
from dataclasses import dataclass, replace
from typing import Callable, List, Mapping, Optional, Sequence

from ..config import EngineConfig
from ..exceptions import AnalysisCancelledError, ContextExceededError, PreconditionError
from ..json_validator import BatchResponseValidator
from ..llm_logger import LLMLogger
from ..models.analysis import AggregateResult, BatchResult
from ..models.record import Comment, Record
from .invoker import CompletionInvoker, classify_error, mentions_context_limit
from .merger import merge_batch_results
from .partitioner import RecordRange, WorkQueue
from .prompts import IssueAnalysisPrompts, Prompt

logger = logging.getLogger(__name__)

# Batch states
DISPATCH = "dispatch"
VALIDATE = "validate"
FALLBACK_SIMPLIFIED = "fallback_simplified"
SHRINK_AND_RETRY = "shrink_and_retry"
PLACEHOLDER = "placeholder"
ACCEPT = "accept"

# Units at or below this size get a simplified prompt or a placeholder instead of shrinking
SMALL_UNIT_SIZE = 2


@dataclass
class BatchProgress:
    """Snapshot reported to the progress callback on every state change."""
    batch_index: int
    estimated_batches: int
    batch_size: int
    state: str
    record_offset: int
    unit_size: int
    detail: str = ""


class AdaptiveBatchEngine:
    """Partitions, dispatches, recovers and merges batch analysis work."""

    def __init__(self,
                 invoker: CompletionInvoker,
                 prompt_builder: Optional[IssueAnalysisPrompts] = None,
                 validator: Optional[BatchResponseValidator] = None,
                 config: Optional[EngineConfig] = None,
                 llm_logger: Optional[LLMLogger] = None,
                 progress_callback: Optional[Callable[[BatchProgress], None]] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.invoker = invoker
        self.prompt_builder = prompt_builder or IssueAnalysisPrompts()
        self.validator = validator or BatchResponseValidator()
        self.config = config or EngineConfig()
        self.llm_logger = llm_logger
        self.progress_callback = progress_callback
        self._clock = clock

    def analyze(self,
                records: Sequence[Record],
                comments_by_record_id: Optional[Mapping[int, Sequence[Comment]]],
                product_area: str,
                prompt_builder: Optional[IssueAnalysisPrompts] = None,
                initial_batch_size: Optional[int] = None,
                cancel_event: Optional[threading.Event] = None) -> AggregateResult:
        """
        Analyze records in adaptive batches.

        Args:
            records: Records in the order findings should be reported
            comments_by_record_id: Discussion threads keyed by record id
            product_area: Product area the relevance judgement is made against
            prompt_builder: Overrides the engine's prompt builder for this run
            initial_batch_size: Starting batch size (config default if None)
            cancel_event: Set from another thread to stop between units

        Returns:
            Aggregate of every unit, with failure counts when any unit failed

        Raises:
            PreconditionError: Service unreachable or model missing, before any batch
            AnalysisCancelledError: Cancelled or past the run deadline
            ValueError: If initial_batch_size is less than 1
        """
        records = list(records)
        comments = comments_by_record_id or {}
        builder = prompt_builder or self.prompt_builder
        current_size = initial_batch_size if initial_batch_size is not None else self.config.initial_batch_size
        if current_size < 1:
            raise ValueError(f"initial_batch_size must be a positive integer; got {current_size}")

        if not records:
            logger.info("No records to analyze")
            return merge_batch_results([])

        # Fatal checks happen before any batch is sent
        self.invoker.ensure_ready()

        logger.info(
            f"Analyzing {len(records)} records for '{product_area}' starting at batch size {current_size}"
        )

        queue = WorkQueue(len(records), current_size)
        results: List[BatchResult] = []
        started = self._clock()

        while queue:
            self._check_cancelled(cancel_event, started, results, queue)

            estimated = len(results) + queue.estimated_batches(current_size)
            unit = queue.next_unit(current_size)
            batch = records[unit.start:unit.end]

            result = self._process_unit(batch, unit, comments, product_area, builder,
                                        batch_index=len(results) + 1, estimated=estimated,
                                        batch_size=current_size)

            if result is None:
                current_size = max(1, len(unit) // 2)
                queue.push_front(unit)
                logger.info(f"Reduced batch size to {current_size}; retrying records {unit.start}-{unit.end - 1}")
                continue

            results.append(result)

        aggregate = merge_batch_results(results)
        logger.info(
            f"Analysis complete: {aggregate.total_analyzed} analyzed, {aggregate.relevant_found} relevant"
            + (f", {aggregate.processing_errors} failed batches" if aggregate.has_errors else "")
        )
        return aggregate

    # ---------- Per-unit state machine ----------

    def _process_unit(self, batch: List[Record], unit: RecordRange, comments, product_area: str,
                      builder, batch_index: int, estimated: int, batch_size: int) -> Optional[BatchResult]:
        """
        Run one unit through dispatch and validation.

        Returns:
            The accepted or placeholder BatchResult, or None when the unit
            should be re-sent at a smaller batch size
        """
        size = len(batch)

        def report(state: str, detail: str = "") -> None:
            self._report(BatchProgress(batch_index, estimated, batch_size, state, unit.start, size, detail))

        report(DISPATCH)
        if self.llm_logger:
            self.llm_logger.log_batch_start(batch_index, [record.id for record in batch], size)

        prompt = builder.build_prompt(batch, comments, product_area)
        try:
            raw = self._dispatch(prompt)
        except PreconditionError:
            raise
        except Exception as e:
            error = classify_error(e)
            context_exceeded = isinstance(error, ContextExceededError) or mentions_context_limit(str(e))

            if context_exceeded and size > 1:
                report(SHRINK_AND_RETRY, "context exceeded")
                logger.warning(f"Batch {batch_index} ({size} records) exceeded the context window")
                return None

            if size <= SMALL_UNIT_SIZE:
                report(PLACEHOLDER, str(error))
                logger.error(f"Batch {batch_index} failed at size {size}: {error}")
                return BatchResult.placeholder(size)

            report(SHRINK_AND_RETRY, str(error))
            logger.warning(f"Batch {batch_index} failed ({error.__class__.__name__}); shrinking from {size}")
            return None

        report(VALIDATE)
        result = self._validate(raw, prompt)

        if result is None:
            if size <= SMALL_UNIT_SIZE:
                return self._fallback_simplified(batch, comments, product_area, builder, report, batch_index)

            report(SHRINK_AND_RETRY, "invalid response")
            logger.warning(f"Batch {batch_index} returned an invalid response; shrinking from {size}")
            return None

        report(ACCEPT)
        return self._accept(result, size, batch_index)

    def _fallback_simplified(self, batch: List[Record], comments, product_area: str, builder,
                             report, batch_index: int) -> BatchResult:
        """One simplified-prompt attempt for a small unit; placeholder if it fails too."""
        size = len(batch)
        report(FALLBACK_SIMPLIFIED)
        logger.warning(f"Batch {batch_index} returned an invalid response; trying simplified prompt")

        prompt = builder.build_simplified_prompt(batch, comments, product_area)
        try:
            raw = self._dispatch(prompt)
        except PreconditionError:
            raise
        except Exception as e:
            report(PLACEHOLDER, str(e))
            logger.error(f"Simplified prompt for batch {batch_index} failed: {e}")
            return BatchResult.placeholder(size)

        result = self._validate(raw, prompt)
        if result is None:
            report(PLACEHOLDER, "invalid simplified response")
            logger.error(f"Simplified prompt for batch {batch_index} also returned an invalid response")
            return BatchResult.placeholder(size)

        report(ACCEPT, "simplified")
        return self._accept(result, size, batch_index)

    def _accept(self, result: BatchResult, size: int, batch_index: int) -> BatchResult:
        if result.total_analyzed != size:
            logger.debug(
                f"Batch {batch_index}: model reported {result.total_analyzed} analyzed, {size} were sent"
            )
        logger.info(f"Batch {batch_index}: {len(result.findings)} relevant of {size}")
        return replace(result, total_analyzed=size, relevant_found=len(result.findings), processing_error=False)

    # ---------- Helpers ----------

    def _dispatch(self, prompt: Prompt) -> str:
        try:
            raw = self.invoker.invoke(prompt)
        except Exception as e:
            if self.llm_logger:
                self.llm_logger.log_llm_interaction(prompt.messages, None, prompt.analysis_type, error=e)
            raise
        if self.llm_logger:
            self.llm_logger.log_llm_interaction(prompt.messages, raw, prompt.analysis_type)
        return raw

    def _validate(self, raw: str, prompt: Prompt) -> Optional[BatchResult]:
        result = self.validator.parse(raw)
        if self.llm_logger:
            parsed = None
            if result is not None:
                parsed = {
                    'findings': [finding.to_dict() for finding in result.findings],
                    'total_analyzed': result.total_analyzed,
                    'top_categories': result.top_categories,
                }
            self.llm_logger.log_parsed_result(parsed, prompt.analysis_type)
        return result

    def _report(self, progress: BatchProgress) -> None:
        logger.debug(
            f"Batch {progress.batch_index}/{progress.estimated_batches} "
            f"[offset {progress.record_offset}, size {progress.unit_size}]: {progress.state}"
        )
        if self.llm_logger and progress.state != DISPATCH:
            self.llm_logger.log_transition(
                progress.state.upper(),
                f"Batch {progress.batch_index}, records {progress.record_offset}-"
                f"{progress.record_offset + progress.unit_size - 1}" + (f": {progress.detail}" if progress.detail else "")
            )
        if self.progress_callback:
            self.progress_callback(progress)

    def _check_cancelled(self, cancel_event: Optional[threading.Event], started: float,
                         results: List[BatchResult], queue: WorkQueue) -> None:
        reason = None
        if cancel_event is not None and cancel_event.is_set():
            reason = "cancel requested"
        elif self.config.run_deadline_seconds is not None:
            elapsed = self._clock() - started
            if elapsed >= self.config.run_deadline_seconds:
                reason = f"run deadline of {self.config.run_deadline_seconds}s exceeded"

        if reason is None:
            return

        partial = merge_batch_results(results)
        logger.warning(f"Stopping analysis ({reason}) with {queue.remaining_records} records remaining")
        raise AnalysisCancelledError(reason, partial_result=partial, records_remaining=queue.remaining_records)
