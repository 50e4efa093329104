#!/usr/bin/env python3
"""
Text sanitization utilities for LLM output.

Handles common issues in model responses that break JSON parsing, such as
typographic quotes and markdown code fences around the payload.
"""

import re
import logging

logger = logging.getLogger(__name__)

# Typographic quotation marks that can break JSON parsing
SMART_QUOTES_MAP = {
    "“": '"',  # Left double quotation mark
    "”": '"',  # Right double quotation mark
    "‘": "'",  # Left single quotation mark
    "’": "'",  # Right single quotation mark
}

SMART_QUOTES_TRANSLATION = str.maketrans(SMART_QUOTES_MAP)

CODE_FENCE_PATTERN = re.compile(r'^\s*```(?:json)?\s*\n?(.*?)\n?\s*```\s*$', re.DOTALL | re.IGNORECASE)


def normalize_quotes(text: str) -> str:
    """
    Normalize typographic quotation marks to ASCII equivalents.

    Args:
        text: Input text that may contain smart quotes

    Returns:
        Text with normalized ASCII quotes
    """
    if not text:
        return text

    return text.translate(SMART_QUOTES_TRANSLATION)


def strip_code_fences(text: str) -> str:
    """Remove a markdown code fence wrapping the whole text, if present."""
    if not text:
        return text

    match = CODE_FENCE_PATTERN.match(text)
    return match.group(1) if match else text


def preprocess_llm_response(raw_response: str) -> str:
    """
    Preprocess LLM response before JSON parsing.

    This is a safety net for providers without structured outputs, which
    often wrap JSON in markdown fences. Quotes are left alone here since
    smart quotes inside string values are valid JSON.

    Args:
        raw_response: Raw response from LLM

    Returns:
        Preprocessed response ready for JSON parsing
    """
    if not raw_response:
        return raw_response

    processed = strip_code_fences(raw_response.strip()).strip()

    if processed != raw_response:
        logger.debug(
            "Preprocessed LLM response: original length %d, processed length %d",
            len(raw_response),
            len(processed),
        )

    return processed
