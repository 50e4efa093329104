#!/usr/bin/env python3
"""
GitHub issue source.

Lists repository issues and their comment threads over the REST API and
converts them into Record and Comment models.
"""

import logging
from typing import Any, Dict, List, Optional

import requests

from ..core.exceptions import RecordSourceError
from ..core.models.record import Comment, Record

logger = logging.getLogger(__name__)

MAX_PER_PAGE = 100


class GitHubClient:
    """Minimal GitHub REST client for issue retrieval."""

    def __init__(self, token: Optional[str] = None, api_url: str = "https://api.github.com",
                 timeout: int = 30, session: Optional[requests.Session] = None):
        self.api_url = api_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": "issue-triage/0.1",
        })
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    @staticmethod
    def parse_repository(repository: str) -> List[str]:
        """Split 'owner/name' into its parts."""
        parts = [part for part in (repository or '').strip().split('/') if part]
        if len(parts) != 2:
            raise RecordSourceError(repository or '<empty>', "parse repository name",
                                    ValueError("expected 'owner/name'"))
        return parts

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.api_url}{path}"
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise RecordSourceError(url, "fetch data", e)

        if response.status_code == 403 and response.headers.get('X-RateLimit-Remaining') == '0':
            raise RecordSourceError(url, "fetch data", RuntimeError("GitHub API rate limit exceeded"))
        if response.status_code != 200:
            raise RecordSourceError(url, "fetch data",
                                    RuntimeError(f"status {response.status_code}: {response.text[:200]}"))

        return response.json()

    def list_issues(self, repository: str, state: str = "open", max_issues: int = 50) -> List[Record]:
        """
        List issues (not pull requests) in a repository, most recently updated first.

        Args:
            repository: 'owner/name'
            state: open, closed or all
            max_issues: Upper bound on the number of records returned
        """
        owner, name = self.parse_repository(repository)
        records: List[Record] = []
        page = 1
        # Page size stays fixed so page numbers keep addressing the same offsets
        per_page = min(MAX_PER_PAGE, max_issues)

        while len(records) < max_issues:
            items = self._get(f"/repos/{owner}/{name}/issues", params={
                'state': state,
                'sort': 'updated',
                'direction': 'desc',
                'per_page': per_page,
                'page': page,
            })
            if not items:
                break

            for item in items:
                # The issues endpoint also returns pull requests
                if 'pull_request' in item:
                    continue
                records.append(Record.from_dict(item))
                if len(records) >= max_issues:
                    break

            if len(items) < per_page:
                break
            page += 1

        logger.info(f"Fetched {len(records)} issues from {repository}")
        return records

    def get_issue_comments(self, repository: str, number: int) -> List[Comment]:
        """Fetch every comment on an issue, oldest first."""
        owner, name = self.parse_repository(repository)
        comments: List[Comment] = []
        page = 1

        while True:
            items = self._get(f"/repos/{owner}/{name}/issues/{number}/comments",
                              params={'per_page': MAX_PER_PAGE, 'page': page})
            comments.extend(Comment.from_dict(item) for item in items)
            if len(items) < MAX_PER_PAGE:
                break
            page += 1

        logger.debug(f"Fetched {len(comments)} comments for {repository}#{number}")
        return comments

    def fetch_with_comments(self, repository: str, state: str = "open",
                            max_issues: int = 50) -> Dict[str, Any]:
        """Fetch issues and the comment thread of each one."""
        records = self.list_issues(repository, state=state, max_issues=max_issues)
        comments = {}
        for record in records:
            comments[record.id] = self.get_issue_comments(repository, record.display_number)
        return {'records': records, 'comments': comments}

    def test_connection(self) -> Dict[str, Any]:
        """Check API reachability and report remaining rate limit."""
        try:
            data = self._get("/rate_limit")
        except RecordSourceError as e:
            return {'connected': False, 'error': str(e)}
        core = data.get('resources', {}).get('core', {})
        return {'connected': True, 'remaining': core.get('remaining'), 'limit': core.get('limit'), 'error': None}
