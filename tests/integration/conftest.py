import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from issue_triage.core.analysis.prompts import Prompt  # noqa: E402
from issue_triage.core.models.record import Comment, Record  # noqa: E402
from issue_triage.integrations.base import CompletionOptions, CompletionProvider  # noqa: E402


def make_response(record_ids: Sequence[int], relevant_ids: Optional[Sequence[int]] = None,
                  categories: Optional[List[str]] = None, total: Optional[int] = None) -> str:
    """Valid batch analysis JSON reporting each relevant id as one finding."""
    relevant = list(record_ids if relevant_ids is None else relevant_ids)
    categories = categories if categories is not None else ["Bug"]
    findings = [
        {
            "id": record_id,
            "title": f"Issue {record_id}",
            "relevanceScore": 80,
            "category": categories[0] if categories else "Bug",
            "priority": "high",
            "summary": f"Summary of {record_id}",
            "workarounds": [],
            "tags": ["sync"],
            "sentiment": "negative",
        }
        for record_id in relevant
    ]
    return json.dumps({
        "findings": findings,
        "summary": {
            "totalAnalyzed": len(record_ids) if total is None else total,
            "relevantFound": len(findings),
            "topCategories": categories,
            "analysisModel": "fake-model",
        },
    })


def make_simplified_response(record_ids: Sequence[int]) -> str:
    return json.dumps({
        "findings": [
            {"id": record_id, "title": f"Issue {record_id}", "relevanceScore": 70,
             "category": "Bug", "summary": "short"}
            for record_id in record_ids
        ],
        "summary": {"totalAnalyzed": len(record_ids), "topCategories": ["Bug"]},
    })


class FakePromptBuilder:
    """Prompt builder that only records which ids went into each prompt."""

    def __init__(self) -> None:
        self.simplified_calls: List[List[int]] = []

    def build_prompt(self, records, comments_by_record_id, product_area) -> Prompt:
        ids = [record.id for record in records]
        return Prompt(
            messages=[{"role": "system", "content": "sys"},
                      {"role": "user", "content": f"{product_area}: {ids}"}],
            analysis_type="batch",
            record_ids=ids,
        )

    def build_simplified_prompt(self, records, comments_by_record_id, product_area) -> Prompt:
        ids = [record.id for record in records]
        self.simplified_calls.append(ids)
        return Prompt(
            messages=[{"role": "system", "content": "sys"},
                      {"role": "user", "content": f"simple {product_area}: {ids}"}],
            analysis_type="simplified",
            record_ids=ids,
        )


class FakeInvoker:
    """Invoker whose behaviour is a function of the prompt it receives."""

    def __init__(self, handler: Callable[[Prompt], str], ready_error: Optional[Exception] = None) -> None:
        self.handler = handler
        self.ready_error = ready_error
        self.ready_checks = 0
        self.calls: List[Dict[str, Any]] = []

    def ensure_ready(self) -> None:
        self.ready_checks += 1
        if self.ready_error is not None:
            raise self.ready_error

    def invoke(self, prompt: Prompt) -> str:
        self.calls.append({"type": prompt.analysis_type, "ids": list(prompt.record_ids)})
        return self.handler(prompt)

    @property
    def batch_sizes(self) -> List[int]:
        return [len(call["ids"]) for call in self.calls if call["type"] == "batch"]


class FakeProvider(CompletionProvider):
    """Completion provider replaying scripted outcomes in order."""

    name = "fake"

    def __init__(self, outcomes: Optional[List[Any]] = None, ready_error: Optional[Exception] = None,
                 model: str = "fake-model") -> None:
        super().__init__(model)
        self.outcomes = list(outcomes or [])
        self.ready_error = ready_error
        self.requests: List[Dict[str, Any]] = []
        self.ready_checks = 0

    def complete(self, messages: List[Dict[str, str]], options: CompletionOptions) -> str:
        self.requests.append({"messages": messages, "options": options})
        outcome = self.outcomes.pop(0) if self.outcomes else make_response([1])
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def check_model_available(self) -> None:
        self.ready_checks += 1
        if self.ready_error is not None:
            raise self.ready_error


class FakeHTTPError(Exception):
    """Stand-in for an SDK error carrying an HTTP status."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def build_records(count: int, start: int = 1) -> List[Record]:
    now = datetime(2024, 5, 1, tzinfo=timezone.utc)
    return [
        Record(id=record_id, number=record_id, title=f"Issue {record_id}", body=f"Body of issue {record_id}",
               labels=["bug"], author="reporter", url=f"https://github.com/o/r/issues/{record_id}",
               created_at=now)
        for record_id in range(start, start + count)
    ]


@pytest.fixture
def records_factory():
    return build_records


@pytest.fixture
def sample_comments() -> Dict[int, List[Comment]]:
    return {
        1: [
            Comment(id=101, author="maintainer-a", body="Try clearing the cache.", author_role="maintainer"),
            Comment(id=102, author="user-b", body="That worked for me.", author_role="user"),
        ]
    }


@pytest.fixture
def fake_prompt_builder() -> FakePromptBuilder:
    return FakePromptBuilder()


@pytest.fixture
def fake_invoker_factory():
    def _factory(handler: Callable[[Prompt], str], ready_error: Optional[Exception] = None) -> FakeInvoker:
        return FakeInvoker(handler, ready_error)

    return _factory


@pytest.fixture
def fake_provider_factory():
    def _factory(outcomes: Optional[List[Any]] = None, ready_error: Optional[Exception] = None) -> FakeProvider:
        return FakeProvider(outcomes, ready_error)

    return _factory
