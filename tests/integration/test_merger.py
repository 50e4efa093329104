from issue_triage.core.analysis.merger import merge_batch_results, rank_top_categories
from issue_triage.core.models.analysis import AnalyzedFinding, BatchResult


def _finding(record_id, category="Bug"):
    return AnalyzedFinding(record_id=record_id, title=f"Issue {record_id}", relevance_score=75,
                           category=category, priority="high", summary="s")


def _batch(ids, categories, total=None):
    findings = [_finding(record_id, categories[0] if categories else "Bug") for record_id in ids]
    return BatchResult(findings=findings, total_analyzed=total if total is not None else len(ids),
                       relevant_found=len(findings), top_categories=categories)


def test_categories_ranked_by_batch_votes():
    results = [
        _batch([1], ["Bug", "Feature"]),
        _batch([2], ["Bug", "Performance"]),
        _batch([3], ["Documentation", "Bug"]),
    ]

    assert rank_top_categories(results) == ["Bug", "Feature", "Performance", "Documentation"]


def test_category_counted_once_per_batch():
    results = [
        _batch([1], ["Feature", "Feature", "Feature"]),
        _batch([2], ["Bug"]),
        _batch([3], ["Bug"]),
    ]

    assert rank_top_categories(results) == ["Bug", "Feature"]


def test_top_categories_limited_to_five():
    results = [_batch([i], [f"cat-{i}"]) for i in range(8)]

    assert rank_top_categories(results) == ["cat-0", "cat-1", "cat-2", "cat-3", "cat-4"]


def test_merge_without_errors_omits_error_fields():
    merged = merge_batch_results([_batch([1, 2], ["Bug"]), _batch([3], ["Feature"], total=4)])

    assert [finding.record_id for finding in merged.findings] == [1, 2, 3]
    assert merged.total_analyzed == 6
    assert merged.relevant_found == 3
    assert merged.processing_errors is None
    assert merged.total_batches is None
    assert not merged.has_errors


def test_merge_with_placeholder_counts_errors():
    merged = merge_batch_results([
        _batch([1], ["Bug"]),
        BatchResult.placeholder(2),
        _batch([4], ["Bug"]),
    ])

    assert [finding.record_id for finding in merged.findings] == [1, 4]
    assert merged.total_analyzed == 4
    assert merged.processing_errors == 1
    assert merged.total_batches == 3
    assert merged.to_dict()["processing_errors"] == 1


def test_merge_empty():
    merged = merge_batch_results([])

    assert merged.findings == []
    assert merged.total_analyzed == 0
    assert merged.top_categories == []
