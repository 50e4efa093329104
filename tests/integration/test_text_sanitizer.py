import logging

from issue_triage.core.text_sanitizer import normalize_quotes, preprocess_llm_response, strip_code_fences


def test_normalize_quotes():
    """Typographic quotes become ASCII quotes."""
    assert normalize_quotes("‘a’ “b”") == "'a' \"b\""
    assert normalize_quotes("") == ""


def test_strip_code_fences():
    assert strip_code_fences("```json\n{\"a\": 1}\n```") == '{"a": 1}'
    assert strip_code_fences("```\n[1]\n```") == "[1]"
    # Only a fence wrapping the whole text is removed
    assert strip_code_fences("see ```json {}```") == "see ```json {}```"


def test_preprocess_keeps_quotes_inside_strings():
    raw = '{"summary": "User says “it crashes”"}'
    assert preprocess_llm_response(raw) == raw


def test_preprocess_strips_fences_and_whitespace(caplog):
    caplog.set_level(logging.DEBUG)

    processed = preprocess_llm_response("\n```JSON\n{\"findings\": []}\n```\n")

    assert processed == '{"findings": []}'
    assert "Preprocessed LLM response" in caplog.text


def test_preprocess_empty_input():
    assert preprocess_llm_response("") == ""
    assert preprocess_llm_response(None) is None
