#!/usr/bin/env python3
"""
Analysis result data models.

Contains per-record findings, per-batch results and the aggregate produced
by a full analysis run.
"""

from typing import List, Dict, Any, Optional
from dataclasses import dataclass, field

VALID_PRIORITIES = ('high', 'medium', 'low')
VALID_SENTIMENTS = ('positive', 'neutral', 'negative')
VALID_EFFECTIVENESS = ('confirmed', 'suggested', 'partial')
VALID_AUTHOR_ROLES = ('maintainer', 'contributor', 'user')


def _clamp_score(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return max(0.0, min(100.0, number))


@dataclass
class Workaround:
    """A workaround mentioned in a record's discussion."""
    description: str
    author: str = "unknown"
    author_role: str = "user"
    confidence: float = 0.0
    effectiveness: str = "suggested"

    def __post_init__(self):
        """Validate and clean data."""
        self.description = self.description.strip()
        self.confidence = _clamp_score(self.confidence)
        if self.author_role not in VALID_AUTHOR_ROLES:
            self.author_role = "user"
        if self.effectiveness not in VALID_EFFECTIVENESS:
            self.effectiveness = "suggested"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'description': self.description,
            'author': self.author,
            'author_role': self.author_role,
            'confidence': self.confidence,
            'effectiveness': self.effectiveness,
        }


@dataclass
class AnalyzedFinding:
    """Analysis output for one record the model judged relevant."""
    record_id: int
    title: str
    relevance_score: float
    category: str
    priority: str
    summary: str
    workarounds: List[Workaround] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    sentiment: str = "neutral"

    def __post_init__(self):
        """Validate and clean data."""
        self.relevance_score = _clamp_score(self.relevance_score)
        self.summary = self.summary.strip()
        if self.priority not in VALID_PRIORITIES:
            self.priority = "medium"
        if self.sentiment not in VALID_SENTIMENTS:
            self.sentiment = "neutral"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'record_id': self.record_id,
            'title': self.title,
            'relevance_score': self.relevance_score,
            'category': self.category,
            'priority': self.priority,
            'summary': self.summary,
            'workarounds': [workaround.to_dict() for workaround in self.workarounds],
            'tags': list(self.tags),
            'sentiment': self.sentiment,
        }


@dataclass
class BatchResult:
    """Result of one unit of work, either validated or a placeholder."""
    findings: List[AnalyzedFinding]
    total_analyzed: int
    relevant_found: int
    top_categories: List[str] = field(default_factory=list)
    processing_error: bool = False

    @classmethod
    def placeholder(cls, record_count: int) -> 'BatchResult':
        """Empty result marking a unit that could not be analyzed."""
        return cls(
            findings=[],
            total_analyzed=record_count,
            relevant_found=0,
            top_categories=[],
            processing_error=True,
        )


@dataclass
class AggregateResult:
    """
    Combined result of a full analysis run.

    processing_errors and total_batches stay None on runs where every
    batch succeeded; to_dict() leaves them out entirely in that case.
    """
    findings: List[AnalyzedFinding]
    total_analyzed: int
    relevant_found: int
    top_categories: List[str]
    processing_errors: Optional[int] = None
    total_batches: Optional[int] = None

    @property
    def has_errors(self) -> bool:
        return bool(self.processing_errors)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'findings': [finding.to_dict() for finding in self.findings],
            'total_analyzed': self.total_analyzed,
            'relevant_found': self.relevant_found,
            'top_categories': list(self.top_categories),
        }
        if self.processing_errors is not None:
            data['processing_errors'] = self.processing_errors
        if self.total_batches is not None:
            data['total_batches'] = self.total_batches
        return data
