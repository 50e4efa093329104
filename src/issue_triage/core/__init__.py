"""Core engine, models and configuration for issue triage."""
