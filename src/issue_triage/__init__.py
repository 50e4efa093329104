"""Issue triage: adaptive batch LLM analysis of issue trackers."""

__version__ = "0.1.0"
