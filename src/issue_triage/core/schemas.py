#!/usr/bin/env python3
"""
Centralized JSON schemas for LLM structured outputs.

Contains the schemas used for batch analysis responses so the prompt text,
the structured-output request and the validator all agree on one shape.
"""

import json
from typing import Dict, Any

WORKAROUND_SCHEMA = {
    "type": "object",
    "properties": {
        "description": {"type": "string"},
        "author": {"type": "string"},
        "authorType": {"type": "string", "enum": ["maintainer", "contributor", "user"]},
        "effectiveness": {"type": "string", "enum": ["confirmed", "suggested", "partial"]},
        "confidence": {"type": "number", "minimum": 0, "maximum": 100}
    },
    "required": ["description", "author", "authorType", "effectiveness", "confidence"],
    "additionalProperties": False
}

FINDING_SCHEMA = {
    "type": "object",
    "properties": {
        "id": {"type": "number"},
        "title": {"type": "string"},
        "relevanceScore": {"type": "number", "minimum": 0, "maximum": 100},
        "category": {"type": "string"},
        "priority": {"type": "string", "enum": ["high", "medium", "low"]},
        "summary": {"type": "string"},
        "workarounds": {"type": "array", "items": WORKAROUND_SCHEMA},
        "tags": {"type": "array", "items": {"type": "string"}},
        "sentiment": {"type": "string", "enum": ["positive", "neutral", "negative"]}
    },
    "required": ["id", "title", "relevanceScore", "category", "priority", "summary",
                 "workarounds", "tags", "sentiment"],
    "additionalProperties": False
}

# Schema for full batch analysis
BATCH_ANALYSIS_SCHEMA = {
    "type": "object",
    "properties": {
        "findings": {"type": "array", "items": FINDING_SCHEMA},
        "summary": {
            "type": "object",
            "properties": {
                "totalAnalyzed": {"type": "number"},
                "relevantFound": {"type": "number"},
                "topCategories": {"type": "array", "items": {"type": "string"}},
                "analysisModel": {"type": "string"}
            },
            "required": ["totalAnalyzed", "relevantFound", "topCategories", "analysisModel"],
            "additionalProperties": False
        }
    },
    "required": ["findings", "summary"],
    "additionalProperties": False
}

# Reduced schema for the simplified fallback prompt
SIMPLIFIED_ANALYSIS_SCHEMA = {
    "type": "object",
    "properties": {
        "findings": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "id": {"type": "number"},
                    "title": {"type": "string"},
                    "relevanceScore": {"type": "number", "minimum": 0, "maximum": 100},
                    "category": {"type": "string"},
                    "summary": {"type": "string"}
                },
                "required": ["id", "title", "relevanceScore", "category", "summary"],
                "additionalProperties": False
            }
        },
        "summary": {
            "type": "object",
            "properties": {
                "totalAnalyzed": {"type": "number"},
                "topCategories": {"type": "array", "items": {"type": "string"}}
            },
            "required": ["totalAnalyzed", "topCategories"],
            "additionalProperties": False
        }
    },
    "required": ["findings", "summary"],
    "additionalProperties": False
}


def get_schema_by_type(analysis_type: str) -> Dict[str, Any]:
    """
    Get JSON schema by analysis type.

    Args:
        analysis_type: Type of analysis ("batch" or "simplified")

    Returns:
        JSON schema dictionary

    Raises:
        ValueError: If analysis_type is not recognized
    """
    schemas = {
        "batch": BATCH_ANALYSIS_SCHEMA,
        "simplified": SIMPLIFIED_ANALYSIS_SCHEMA,
    }

    if analysis_type not in schemas:
        raise ValueError(f"Unknown analysis type: {analysis_type}")

    return schemas[analysis_type]


def schema_as_text(analysis_type: str) -> str:
    """Render a schema as indented JSON for inclusion in prompt text."""
    return json.dumps(get_schema_by_type(analysis_type), indent=2)
