#!/usr/bin/env python3
"""
JSON validation for batch analysis responses.

Turns raw LLM output into a BatchResult, tolerating code fences, leading
prose and smart quotes, and rejecting anything missing the required
top-level fields.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional

from .exceptions import MalformedResponseError
from .models.analysis import AnalyzedFinding, BatchResult, Workaround
from .text_sanitizer import normalize_quotes, preprocess_llm_response

logger = logging.getLogger(__name__)

JSON_OBJECT_PATTERN = re.compile(r'\{[\s\S]*\}')

# Accepted alias for the findings list
FINDINGS_KEYS = ('findings', 'relevantIssues')


class BatchResponseValidator:
    """Validates batch analysis JSON output and builds BatchResult objects."""

    def parse(self, raw_output: Optional[str]) -> Optional[BatchResult]:
        """
        Parse raw LLM output.

        Returns:
            BatchResult, or None when the output is empty, not JSON, or
            missing required fields
        """
        try:
            return self.validate_and_parse(raw_output)
        except MalformedResponseError as e:
            logger.warning(str(e))
            return None

    def validate_and_parse(self, raw_output: Optional[str]) -> BatchResult:
        """
        Validate and parse LLM JSON output.

        Raises:
            MalformedResponseError: If the output cannot become a BatchResult
        """
        if not raw_output or not raw_output.strip():
            raise MalformedResponseError("empty response")

        data = self._load_json(raw_output)

        if not isinstance(data, dict):
            raise MalformedResponseError("top-level JSON value is not an object", len(raw_output))

        findings_key = next((key for key in FINDINGS_KEYS if key in data), None)
        if findings_key is None:
            raise MalformedResponseError("missing required field 'findings'", len(raw_output))
        if 'summary' not in data:
            raise MalformedResponseError("missing required field 'summary'", len(raw_output))

        raw_findings = data[findings_key]
        if not isinstance(raw_findings, list):
            raise MalformedResponseError(f"'{findings_key}' is not a list", len(raw_output))

        try:
            findings = [self._build_finding(item) for item in raw_findings if isinstance(item, dict)]
        except (TypeError, ValueError, OverflowError) as e:
            raise MalformedResponseError(f"unusable finding ({e})", len(raw_output))
        dropped = len(raw_findings) - len(findings)
        if dropped:
            logger.warning(f"Dropped {dropped} non-object findings from response")

        summary = data['summary'] if isinstance(data['summary'], dict) else {}
        return BatchResult(
            findings=findings,
            total_analyzed=self._to_int(summary.get('totalAnalyzed'), 0),
            relevant_found=len(findings),
            top_categories=self._top_categories(summary, findings),
        )

    @staticmethod
    def _load_json(raw_output: str) -> Any:
        """Try progressively more lenient ways of reading JSON from the output."""
        processed = preprocess_llm_response(raw_output)

        candidates = [processed]
        match = JSON_OBJECT_PATTERN.search(processed)
        if match and match.group(0) != processed:
            candidates.append(match.group(0))

        # Smart quote normalization runs only after the raw text failed to parse
        candidates.extend(normalize_quotes(candidate) for candidate in list(candidates))

        last_error = None
        for candidate in candidates:
            try:
                return json.loads(candidate)
            except json.JSONDecodeError as e:
                last_error = e

        # Trailing commas are the most common repairable defect
        repaired = re.sub(r',\s*([}\]])', r'\1', candidates[-1])
        try:
            data = json.loads(repaired)
            logger.info("Parsed LLM response after JSON repair")
            return data
        except json.JSONDecodeError:
            pass

        raise MalformedResponseError(f"invalid JSON ({last_error})", len(raw_output))

    @staticmethod
    def _to_int(value: Any, default: int) -> int:
        try:
            return int(value)
        except (TypeError, ValueError, OverflowError):
            return default

    @staticmethod
    def _as_list(value: Any) -> List[Any]:
        return value if isinstance(value, list) else []

    @staticmethod
    def _top_categories(summary: Dict[str, Any], findings: List[AnalyzedFinding]) -> List[str]:
        categories = summary.get('topCategories')
        if isinstance(categories, list):
            return [str(category) for category in categories if category]
        # Derive from findings when the model omitted the summary list
        return list(dict.fromkeys(finding.category for finding in findings if finding.category))

    def _build_finding(self, item: Dict[str, Any]) -> AnalyzedFinding:
        workarounds = [
            Workaround(
                description=str(entry.get('description', '')),
                author=str(entry.get('author') or 'unknown'),
                author_role=entry.get('authorType', 'user'),
                confidence=entry.get('confidence', 0),
                effectiveness=entry.get('effectiveness', 'suggested'),
            )
            for entry in self._as_list(item.get('workarounds'))
            if isinstance(entry, dict)
        ]

        return AnalyzedFinding(
            record_id=self._to_int(item.get('id'), 0),
            title=str(item.get('title', '')),
            relevance_score=item.get('relevanceScore', 0),
            category=str(item.get('category') or 'uncategorized'),
            priority=item.get('priority', 'medium'),
            summary=str(item.get('summary', '')),
            workarounds=workarounds,
            tags=[str(tag) for tag in self._as_list(item.get('tags'))],
            sentiment=item.get('sentiment', 'neutral'),
        )
