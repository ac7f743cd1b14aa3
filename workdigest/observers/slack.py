from collections.abc import Iterator
from datetime import UTC, datetime, timedelta

from pydantic import Field
from slack_sdk import WebClient

from workdigest.observers.base import SourceClient
from workdigest.types import ActivityKind, ActivityRecord
from workdigest.utilities.loggers import get_logger

logger = get_logger('observer.slack')


class SlackClient(SourceClient):
    """Messages a Slack user posted, found through `search.messages`.

    Search requires a user token (`xoxp-...`) with the `search:read` scope.
    """

    source = 'slack'

    token: str
    page_size: int = Field(default=100, ge=1, le=100)
    client: WebClient | None = None

    def connect(self) -> WebClient:
        if self.client is None:
            self.client = WebClient(token=self.token)
        return self.client

    def observe(self, handle: str, start: datetime, end: datetime) -> Iterator[ActivityRecord]:
        # `after:` and `before:` are exclusive calendar days
        after = (start - timedelta(days=1)).strftime('%Y-%m-%d')
        before = (end + timedelta(days=1)).strftime('%Y-%m-%d')
        response = self.connect().search_messages(
            query=f'from:<@{handle}> after:{after} before:{before}',
            count=self.page_size,
            sort='timestamp',
        )

        for match in response['messages']['matches']:
            posted_at = datetime.fromtimestamp(float(match['ts']), tz=UTC)
            if not start <= posted_at <= end:
                continue

            channel = match.get('channel') or {}
            yield ActivityRecord(
                source=self.source,
                kind=ActivityKind.MESSAGE,
                author=handle,
                timestamp=posted_at,
                description=match.get('text', ''),
                provenance=f'#{channel["name"]}' if channel.get('name') else None,
                url=match.get('permalink'),
            )
