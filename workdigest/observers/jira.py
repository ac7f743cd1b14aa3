from collections.abc import Iterator
from datetime import datetime
from typing import Any

from pydantic import Field

from workdigest.observers.base import HttpSourceClient, parse_timestamp
from workdigest.types import ActivityKind, ActivityRecord
from workdigest.utilities.loggers import get_logger

logger = get_logger('observer.jira')

JQL_TIME_FORMAT = '%Y-%m-%d %H:%M'
SEARCH_FIELDS = 'key,summary,status,issuetype,project,assignee,created,updated,resolutiondate'


class JiraClient(HttpSourceClient):
    """Tickets assigned to a user, and the customer issues they resolved"""

    source = 'jira'

    username: str
    api_token: str
    max_results: int = Field(default=100, ge=1, le=100)
    customer_projects: list[str] = Field(
        default_factory=list,
        description='Project keys whose resolved issues count as customer issues',
    )

    def auth(self) -> tuple[str, str]:
        return self.username, self.api_token

    def search(self, jql: str) -> list[dict[str, Any]]:
        data = self.get_json(
            '/rest/api/3/search',
            params={'jql': jql, 'maxResults': self.max_results, 'fields': SEARCH_FIELDS},
        )
        return data.get('issues') or []

    def _record(
        self, issue: dict[str, Any], kind: ActivityKind, handle: str, timestamp_field: str, fallback: datetime
    ) -> ActivityRecord:
        fields = issue.get('fields', {})
        status = (fields.get('status') or {}).get('name')
        summary = fields.get('summary', '')
        return ActivityRecord(
            source=self.source,
            kind=kind,
            author=handle,
            timestamp=parse_timestamp(fields.get(timestamp_field)) or fallback,
            description=f'{summary} [{status}]' if status else summary,
            provenance=issue.get('key'),
            url=f'{self.base_url.rstrip("/")}/browse/{issue.get("key")}',
        )

    def tickets(self, handle: str, start: datetime, end: datetime) -> Iterator[ActivityRecord]:
        jql = (
            f"assignee = '{handle}' AND updated >= '{start.strftime(JQL_TIME_FORMAT)}' "
            f"AND updated <= '{end.strftime(JQL_TIME_FORMAT)}' ORDER BY updated DESC"
        )
        for issue in self.search(jql):
            if issue.get('fields', {}).get('project', {}).get('key') in self.customer_projects:
                continue
            yield self._record(issue, ActivityKind.TICKET, handle, 'updated', start)

    def customer_issues(self, handle: str, start: datetime, end: datetime) -> Iterator[ActivityRecord]:
        if not self.customer_projects:
            return
        projects = ', '.join(self.customer_projects)
        jql = (
            f"project in ({projects}) AND assignee = '{handle}' "
            f"AND resolved >= '{start.strftime(JQL_TIME_FORMAT)}' AND resolved <= '{end.strftime(JQL_TIME_FORMAT)}' "
            'ORDER BY resolved DESC'
        )
        for issue in self.search(jql):
            yield self._record(issue, ActivityKind.CUSTOMER_ISSUE, handle, 'resolutiondate', start)

    def observe(self, handle: str, start: datetime, end: datetime) -> Iterator[ActivityRecord]:
        logger.info(f'Fetching Jira activity for {handle}')
        yield from self.tickets(handle, start, end)
        yield from self.customer_issues(handle, start, end)
