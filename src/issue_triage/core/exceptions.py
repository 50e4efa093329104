#!/usr/bin/env python3
"""
Standardized exception hierarchy for issue triage.

Provides specific exception types for the failure modes of batch analysis
(precondition failures, classified completion errors, malformed responses)
with error context and retry metadata.
"""

import logging
import time
from typing import Any, Callable, Dict, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


class TriageError(Exception):
    """Base exception for all issue triage errors."""

    def __init__(self, message: str, error_code: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        """
        Initialize base exception.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
            context: Additional error context
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            'error_type': self.__class__.__name__,
            'error_code': self.error_code,
            'message': self.message,
            'context': self.context
        }


# Run-level precondition failures
class PreconditionError(TriageError):
    """The completion service cannot serve this run at all."""
    pass


class ServiceUnreachableError(PreconditionError):
    """Completion service could not be reached."""

    def __init__(self, endpoint: str, original_error: Optional[Exception] = None):
        message = f"Cannot connect to completion service at {endpoint}"
        context = {
            'endpoint': endpoint,
            'original_error': str(original_error) if original_error else None
        }
        super().__init__(message, context=context)


class ModelUnavailableError(PreconditionError):
    """Target model is not loaded or does not exist."""

    def __init__(self, model: str, available_models: Optional[list] = None):
        available = ', '.join(available_models) if available_models else 'None'
        message = f"Model '{model}' is not available. Available models: {available}"
        context = {
            'model': model,
            'available_models': available_models or []
        }
        super().__init__(message, context=context)


# Completion errors (classified by the invoker)
class CompletionError(TriageError):
    """Base class for classified completion failures."""

    retryable = False

    def __init__(self, message: str, status_code: Optional[int] = None,
                 original_error: Optional[Exception] = None, retryable: Optional[bool] = None):
        context = {
            'status_code': status_code,
            'original_error': str(original_error) if original_error else None
        }
        super().__init__(message, context=context)
        self.status_code = status_code
        self.original_error = original_error
        if retryable is not None:
            self.retryable = retryable


class RateLimitedError(CompletionError):
    """Service rejected the request with HTTP 429."""
    retryable = True


class ContextExceededError(CompletionError):
    """Prompt (or the response it requires) does not fit the model context."""
    retryable = False


class InvalidRequestError(CompletionError):
    """Service rejected the request as malformed (HTTP 400)."""
    retryable = False


class ServiceUnavailableError(CompletionError):
    """Connection refused, host not found or request timed out."""
    retryable = True


class ModelNotFoundError(CompletionError):
    """Service reported the model as missing (HTTP 404)."""
    retryable = False


class UnknownCompletionError(CompletionError):
    """Unclassified failure; retryability decided by heuristics."""
    retryable = False


# Response-related exceptions
class MalformedResponseError(TriageError):
    """LLM output could not be turned into a batch result."""

    def __init__(self, reason: str, raw_length: int = 0):
        message = f"Malformed LLM response: {reason}"
        context = {
            'reason': reason,
            'raw_length': raw_length
        }
        super().__init__(message, context=context)


class AnalysisCancelledError(TriageError):
    """Run stopped between batch units by a cancel signal or deadline."""

    def __init__(self, reason: str, partial_result: Any = None, records_remaining: int = 0):
        message = f"Analysis cancelled: {reason}"
        context = {
            'reason': reason,
            'records_remaining': records_remaining
        }
        super().__init__(message, context=context)
        self.partial_result = partial_result
        self.records_remaining = records_remaining


# Configuration and record source exceptions
class ConfigurationError(TriageError):
    """Configuration is invalid or missing."""

    def __init__(self, config_key: str, issue: str):
        message = f"Configuration error for {config_key}: {issue}"
        context = {
            'config_key': config_key,
            'issue': issue
        }
        super().__init__(message, context=context)


class RecordSourceError(TriageError):
    """Failed to load records from the issue tracker or an input file."""

    def __init__(self, source: str, operation: str, original_error: Optional[Exception] = None):
        message = f"Failed to {operation} from {source}"
        if original_error:
            message += f": {original_error}"
        context = {
            'source': source,
            'operation': operation,
            'original_error': str(original_error) if original_error else None
        }
        super().__init__(message, context=context)


# Recovery utilities
class ErrorRecovery:
    """Utilities for error recovery and retry logic."""

    @staticmethod
    def is_retryable_error(error: Exception) -> bool:
        """Check if an error is potentially retryable."""
        return isinstance(error, CompletionError) and error.retryable

    @staticmethod
    def get_retry_delay(attempt: int, base_delay: float = 1.0, max_delay: float = 30.0) -> float:
        """Get recommended retry delay in seconds (exponential backoff)."""
        return min(base_delay * (2 ** attempt), max_delay)

    @staticmethod
    def execute_with_retry(operation: Callable[[], T],
                           classify: Optional[Callable[[Exception], Exception]] = None,
                           max_retries: int = 3,
                           base_delay: float = 1.0,
                           max_delay: float = 30.0,
                           sleep: Callable[[float], None] = time.sleep) -> T:
        """
        Run an operation, retrying retryable failures with exponential backoff.

        Args:
            operation: Zero-argument callable to execute
            classify: Maps a raw exception to a classified one (identity if None)
            max_retries: Retries after the first attempt
            base_delay: Delay before the first retry, in seconds
            max_delay: Upper bound for any single delay
            sleep: Sleep function (injected in tests)

        Returns:
            The operation's return value

        Raises:
            The classified error once it is not retryable or retries are exhausted
        """
        attempt = 0
        while True:
            try:
                return operation()
            except Exception as e:
                error = classify(e) if classify else e
                if not ErrorRecovery.is_retryable_error(error) or attempt >= max_retries:
                    if error is e:
                        raise
                    raise error from e

                delay = ErrorRecovery.get_retry_delay(attempt, base_delay, max_delay)
                logger.warning(
                    "Operation failed (%s), retrying in %.1fs (attempt %d/%d)",
                    error.__class__.__name__, delay, attempt + 1, max_retries
                )
                sleep(delay)
                attempt += 1
