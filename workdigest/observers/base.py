from abc import ABC, abstractmethod
from collections.abc import Iterator
from datetime import datetime
from typing import Any, ClassVar

import httpx
from pydantic import BaseModel, ConfigDict, Field

from workdigest.types import ActivityRecord
from workdigest.utilities.loggers import get_logger

logger = get_logger('observer')


class SourceClient(BaseModel, ABC):
    """Fetches one source's activity for an account over a time range.

    `fetch_activity` never raises: any failure inside `observe` is logged and
    reported as an empty result, so one broken source cannot sink a summary.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    source: ClassVar[str]

    @abstractmethod
    def observe(self, handle: str, start: datetime, end: datetime) -> Iterator[ActivityRecord]:
        """Yield activity records for `handle` between `start` and `end`"""

    def fetch_activity(self, handle: str, start: datetime, end: datetime) -> list[ActivityRecord]:
        try:
            records = list(self.observe(handle, start, end))
        except Exception as e:
            logger.error(f'Failed to fetch {self.source} activity for {handle}: {e}')
            return []

        logger.debug(f'Fetched {len(records)} {self.source} record(s) for {handle}')
        return records


class HttpSourceClient(SourceClient):
    """A source client backed by a lazily created `httpx.Client`"""

    base_url: str
    timeout_seconds: float = Field(default=30.0, gt=0)
    transport: httpx.BaseTransport | None = Field(default=None, description='Override for tests')
    client: httpx.Client | None = None

    def headers(self) -> dict[str, str]:
        return {'Accept': 'application/json', 'User-Agent': 'workdigest/0.1'}

    def auth(self) -> httpx.Auth | tuple[str, str] | None:
        return None

    def connect(self) -> httpx.Client:
        if self.client is None:
            self.client = httpx.Client(
                base_url=self.base_url,
                headers=self.headers(),
                auth=self.auth(),
                timeout=self.timeout_seconds,
                transport=self.transport,
            )
        return self.client

    def get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        response = self.connect().get(path, params=params)
        response.raise_for_status()
        return response.json()

    def disconnect(self) -> None:
        if self.client:
            self.client.close()
        self.client = None

    def __enter__(self) -> 'HttpSourceClient':
        self.connect()
        return self

    def __exit__(self, *exc: object) -> None:
        self.disconnect()


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse the ISO-8601 flavours returned by GitHub, Atlassian and Google"""
    if not value:
        return None
    value = value.replace('Z', '+00:00')
    # Atlassian omits the colon in the offset: 2024-03-01T10:00:00.000+0000
    if 'T' in value and value[-5] in '+-' and value[-3] != ':':
        value = f'{value[:-2]}:{value[-2:]}'
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        logger.debug(f'Unparseable timestamp {value!r}')
        return None
