from collections.abc import Iterator
from datetime import UTC, datetime
from typing import Any

from pydantic import Field

from workdigest.observers.base import HttpSourceClient, parse_timestamp
from workdigest.types import ActivityKind, ActivityRecord
from workdigest.utilities.loggers import get_logger

logger = get_logger('observer.github')


def _search_range(start: datetime, end: datetime) -> str:
    fmt = '%Y-%m-%dT%H:%M:%SZ'
    return f'{start.astimezone(UTC).strftime(fmt)}..{end.astimezone(UTC).strftime(fmt)}'


def _repository_from_url(repository_url: str) -> str:
    # https://api.github.com/repos/{owner}/{repo}
    return '/'.join(repository_url.rstrip('/').split('/')[-2:])


class GitHubClient(HttpSourceClient):
    """Commits, pull requests and reviews authored by a GitHub user"""

    source = 'github'

    base_url: str = 'https://api.github.com'
    token: str | None = None
    per_page: int = Field(default=100, ge=1, le=100)

    def headers(self) -> dict[str, str]:
        headers = {
            **super().headers(),
            'Accept': 'application/vnd.github+json',
            'X-GitHub-Api-Version': '2022-11-28',
        }
        if self.token:
            headers['Authorization'] = f'Bearer {self.token}'
        return headers

    def _search(self, kind: str, query: str, sort: str) -> list[dict[str, Any]]:
        data = self.get_json(
            f'/search/{kind}',
            params={'q': query, 'sort': sort, 'order': 'desc', 'per_page': self.per_page},
        )
        return data.get('items') or []

    def commits(self, username: str, start: datetime, end: datetime) -> Iterator[ActivityRecord]:
        for item in self._search('commits', f'author:{username} author-date:{_search_range(start, end)}', 'author-date'):
            commit = item.get('commit', {})
            yield ActivityRecord(
                source=self.source,
                kind=ActivityKind.COMMIT,
                author=username,
                timestamp=parse_timestamp(commit.get('author', {}).get('date')) or start,
                description=commit.get('message', ''),
                provenance=item.get('repository', {}).get('full_name'),
                url=item.get('html_url'),
            )

    def pull_requests(self, username: str, start: datetime, end: datetime) -> Iterator[ActivityRecord]:
        for item in self._search('issues', f'type:pr author:{username} created:{_search_range(start, end)}', 'created'):
            repository = _repository_from_url(item.get('repository_url', ''))
            yield ActivityRecord(
                source=self.source,
                kind=ActivityKind.PULL_REQUEST,
                author=username,
                timestamp=parse_timestamp(item.get('created_at')) or start,
                description=item.get('title', ''),
                provenance=f'{repository}#{item.get("number")}',
                url=item.get('html_url'),
            )

    def reviews(self, username: str, start: datetime, end: datetime) -> Iterator[ActivityRecord]:
        query = f'type:pr reviewed-by:{username} -author:{username} updated:{_search_range(start, end)}'
        for item in self._search('issues', query, 'updated'):
            repository = _repository_from_url(item.get('repository_url', ''))
            yield ActivityRecord(
                source=self.source,
                kind=ActivityKind.REVIEW,
                author=username,
                timestamp=parse_timestamp(item.get('updated_at')) or start,
                description=f'Reviewed: {item.get("title", "")}',
                provenance=f'{repository}#{item.get("number")}',
                url=item.get('html_url'),
            )

    def observe(self, handle: str, start: datetime, end: datetime) -> Iterator[ActivityRecord]:
        logger.info(f'Fetching GitHub activity for {handle}')
        yield from self.commits(handle, start, end)
        yield from self.pull_requests(handle, start, end)
        yield from self.reviews(handle, start, end)
