#!/usr/bin/env python3
"""
JSON file persistence for records and analysis results.

The interchange format is {"records": [...], "comments": {"<record id>": [...]}},
which is what `issues fetch` writes and `issues analyze --input` reads.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence, Tuple, Union

from .exceptions import RecordSourceError
from .models.analysis import AggregateResult
from .models.record import Comment, Record

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def load_records_file(path: PathLike) -> Tuple[List[Record], Dict[int, List[Comment]]]:
    """
    Load records and comment threads from an interchange file.

    A bare JSON list is accepted as a list of records without comments.

    Raises:
        RecordSourceError: If the file is missing or not in the expected shape
    """
    path = Path(path)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise RecordSourceError(str(path), "load records", e)

    if isinstance(data, list):
        data = {'records': data, 'comments': {}}
    if not isinstance(data, dict) or not isinstance(data.get('records'), list):
        raise RecordSourceError(str(path), "load records", ValueError("expected a 'records' list"))

    try:
        records = [Record.from_dict(item) for item in data['records']]
        comments: Dict[int, List[Comment]] = {}
        for record_id, items in (data.get('comments') or {}).items():
            comments[int(record_id)] = [Comment.from_dict(item) for item in items]
    except (KeyError, TypeError, ValueError) as e:
        raise RecordSourceError(str(path), "parse records", e)

    logger.info(f"Loaded {len(records)} records from {path}")
    return records, comments


def save_records_file(path: PathLike, records: Sequence[Record],
                      comments_by_record_id: Mapping[int, Sequence[Comment]]) -> Path:
    """Write records and comment threads to an interchange file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        'records': [record.to_dict() for record in records],
        'comments': {
            str(record_id): [comment.to_dict() for comment in comments]
            for record_id, comments in comments_by_record_id.items()
        },
    }
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)

    logger.info(f"Saved {len(records)} records to {path}")
    return path


def save_analysis_result(path: PathLike, result: AggregateResult, metadata: Dict[str, Any] = None) -> Path:
    """Write an aggregate result as JSON, with optional run metadata."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        'metadata': {'generated_at': datetime.now().isoformat(), **(metadata or {})},
        'result': result.to_dict(),
    }
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)

    logger.info(f"Saved analysis result to {path}")
    return path
