"""Completion providers and the issue tracker client."""
