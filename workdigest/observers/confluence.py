from collections.abc import Iterator
from datetime import datetime

from pydantic import Field

from workdigest.observers.base import HttpSourceClient, parse_timestamp
from workdigest.types import ActivityKind, ActivityRecord
from workdigest.utilities.loggers import get_logger

logger = get_logger('observer.confluence')

CQL_TIME_FORMAT = '%Y-%m-%d %H:%M'


class ConfluenceClient(HttpSourceClient):
    """Wiki pages and blog posts a user created or edited"""

    source = 'confluence'

    username: str
    api_token: str
    limit: int = Field(default=100, ge=1, le=250)

    def auth(self) -> tuple[str, str]:
        return self.username, self.api_token

    def observe(self, handle: str, start: datetime, end: datetime) -> Iterator[ActivityRecord]:
        cql = (
            f'contributor = "{handle}" AND type in (page, blogpost) '
            f'AND lastmodified >= "{start.strftime(CQL_TIME_FORMAT)}" '
            f'AND lastmodified <= "{end.strftime(CQL_TIME_FORMAT)}" ORDER BY lastmodified DESC'
        )
        data = self.get_json(
            '/wiki/rest/api/content/search',
            params={'cql': cql, 'limit': self.limit, 'expand': 'space,version'},
        )

        for page in data.get('results') or []:
            version = page.get('version') or {}
            action = 'Created' if version.get('number') == 1 else 'Updated'
            yield ActivityRecord(
                source=self.source,
                kind=ActivityKind.DOCUMENT,
                author=handle,
                timestamp=parse_timestamp(version.get('when')) or start,
                description=f'{action}: {page.get("title", "")}',
                provenance=(page.get('space') or {}).get('key'),
                url=f'{self.base_url.rstrip("/")}/wiki{(page.get("_links") or {}).get("webui", "")}',
            )
