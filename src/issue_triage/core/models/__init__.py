#!/usr/bin/env python3
"""
Core data models for issue triage.

Contains all data structures used throughout the application.
"""

from .record import Record, Comment
from .analysis import Workaround, AnalyzedFinding, BatchResult, AggregateResult

__all__ = ['Record', 'Comment', 'Workaround', 'AnalyzedFinding', 'BatchResult', 'AggregateResult']
