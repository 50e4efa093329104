#!/usr/bin/env python3
"""
Record data model.

Represents an issue and its discussion thread as loaded from the issue
tracker. Records are immutable inputs to the analysis engine.
"""

from datetime import datetime
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, field

from dateutil import parser as date_parser

MAINTAINER_ASSOCIATIONS = {'OWNER', 'MEMBER', 'COLLABORATOR'}
CONTRIBUTOR_ASSOCIATIONS = {'CONTRIBUTOR'}


def _parse_datetime_safe(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if not value:
        return None
    try:
        return date_parser.parse(value)
    except (ValueError, OverflowError, TypeError):
        return None


def author_role_from_association(association: Optional[str]) -> str:
    """Map a GitHub author_association value to maintainer/contributor/user."""
    value = (association or '').upper()
    if value in MAINTAINER_ASSOCIATIONS:
        return 'maintainer'
    if value in CONTRIBUTOR_ASSOCIATIONS:
        return 'contributor'
    return 'user'


@dataclass(frozen=True)
class Comment:
    """A single comment in a record's discussion thread."""
    id: int
    author: str
    body: str
    created_at: Optional[datetime] = None
    author_role: str = 'user'

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'author': self.author,
            'body': self.body,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'author_role': self.author_role,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Comment':
        """Create from internal dict or a raw GitHub comment payload."""
        user = data.get('user') or {}
        author = data.get('author') or user.get('login') or 'unknown'
        role = data.get('author_role') or author_role_from_association(data.get('author_association'))
        return cls(
            id=int(data.get('id', 0)),
            author=author,
            body=data.get('body') or '',
            created_at=_parse_datetime_safe(data.get('created_at')),
            author_role=role,
        )


@dataclass(frozen=True)
class Record:
    """
    One analyzable issue.

    Frozen so the engine cannot mutate its inputs; comments are kept
    separately in a mapping keyed by record id.
    """
    id: int
    title: str
    body: str = ""
    number: Optional[int] = None
    labels: List[str] = field(default_factory=list)
    state: str = "open"
    author: str = ""
    url: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def display_number(self) -> int:
        return self.number if self.number is not None else self.id

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'id': self.id,
            'number': self.display_number,
            'title': self.title,
            'body': self.body,
            'labels': list(self.labels),
            'state': self.state,
            'author': self.author,
            'url': self.url,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Record':
        """Create from internal dict or a raw GitHub issue payload."""
        labels = []
        for label in data.get('labels') or []:
            if isinstance(label, dict):
                name = label.get('name')
                if name:
                    labels.append(name)
            elif label:
                labels.append(str(label))

        user = data.get('user') or {}
        number = data.get('number')
        return cls(
            id=int(data['id']),
            title=(data.get('title') or '').strip(),
            body=data.get('body') or data.get('description') or '',
            number=int(number) if number is not None else None,
            labels=labels,
            state=data.get('state') or 'open',
            author=data.get('author') or user.get('login') or '',
            url=data.get('html_url') or data.get('url') or '',
            created_at=_parse_datetime_safe(data.get('created_at')),
            updated_at=_parse_datetime_safe(data.get('updated_at')),
        )
