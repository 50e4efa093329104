#!/usr/bin/env python3
"""
Formatting utilities for records and analysis results.
"""

from typing import Sequence

from .models.analysis import AggregateResult, AnalyzedFinding
from .models.record import Record

PRIORITY_ORDER = {'high': 0, 'medium': 1, 'low': 2}


def format_record(record: Record) -> str:
    """Format a single record for a listing."""
    timestamp = record.created_at.strftime("%Y-%m-%d") if record.created_at else "unknown"
    labels = f" [{', '.join(record.labels)}]" if record.labels else ""
    return f"#{record.display_number} [{timestamp}] {record.title}{labels}\n    {record.url}\n"


def format_finding(finding: AnalyzedFinding) -> str:
    lines = [
        f"#{finding.record_id} {finding.title}",
        f"    relevance {finding.relevance_score:.0f} | {finding.category} | {finding.priority} priority | {finding.sentiment}",
        f"    {finding.summary}",
    ]
    for workaround in finding.workarounds:
        lines.append(
            f"    workaround ({workaround.effectiveness}, by {workaround.author} [{workaround.author_role}]): "
            f"{workaround.description}"
        )
    if finding.tags:
        lines.append(f"    tags: {', '.join(finding.tags)}")
    return "\n".join(lines)


def sort_findings(findings: Sequence[AnalyzedFinding]):
    """Order findings by priority, then by relevance score descending."""
    return sorted(findings, key=lambda f: (PRIORITY_ORDER.get(f.priority, 1), -f.relevance_score))


def format_aggregate_result(result: AggregateResult, product_area: str = "", limit: int = 20) -> str:
    """Format an analysis run as a plain text summary."""
    title = "ISSUE ANALYSIS"
    if product_area:
        title += f": {product_area}"

    lines = [
        "=" * 60,
        title,
        "=" * 60,
        f"Issues analyzed: {result.total_analyzed}",
        f"Relevant issues: {result.relevant_found}",
    ]

    if result.top_categories:
        lines.append(f"Top categories: {', '.join(result.top_categories)}")

    if result.has_errors:
        lines.append(
            f"Failed batches: {result.processing_errors} of {result.total_batches} "
            "(records in those batches were not analyzed)"
        )

    findings = sort_findings(result.findings)
    if findings:
        lines.extend(["", "FINDINGS:"])
        for finding in findings[:limit]:
            lines.append(format_finding(finding))
        if len(findings) > limit:
            lines.append(f"... and {len(findings) - limit} more")
    else:
        lines.extend(["", "No relevant issues found."])

    lines.append("=" * 60)
    return "\n".join(lines)
