from collections.abc import Iterator
from datetime import datetime
from pathlib import Path
from typing import Any, ClassVar

from workdigest.observers.base import SourceClient, parse_timestamp
from workdigest.types import ActivityKind, ActivityRecord
from workdigest.utilities.loggers import get_logger

try:
    from google.oauth2 import service_account
    from googleapiclient.discovery import Resource, build
except ImportError:
    raise RuntimeError('Missing calendar dependencies, run `pip install "workdigest[google]"`')

logger = get_logger('observer.calendar')


class GoogleCalendarClient(SourceClient):
    """Meetings on a user's primary Google calendar.

    Uses a service account with domain-wide delegation, impersonating the
    user whose calendar is read.
    """

    source = 'calendar'

    SCOPES: ClassVar[list[str]] = ['https://www.googleapis.com/auth/calendar.readonly']

    credentials_path: Path
    max_results: int = 250

    def _get_calendar_service(self, subject: str) -> Resource:
        creds = service_account.Credentials.from_service_account_file(str(self.credentials_path), scopes=self.SCOPES)
        return build('calendar', 'v3', credentials=creds.with_subject(subject), cache_discovery=False)

    @staticmethod
    def _attended(event: dict[str, Any], handle: str) -> bool:
        for attendee in event.get('attendees', []):
            if attendee.get('self') or attendee.get('email') == handle:
                return attendee.get('responseStatus') != 'declined'
        # no attendee list means the user owns a solo event
        return True

    def observe(self, handle: str, start: datetime, end: datetime) -> Iterator[ActivityRecord]:
        service = self._get_calendar_service(handle)
        results = (
            service.events()
            .list(
                calendarId='primary',
                timeMin=start.isoformat(),
                timeMax=end.isoformat(),
                singleEvents=True,
                orderBy='startTime',
                maxResults=self.max_results,
            )
            .execute()
        )

        for event in results.get('items', []):
            if event.get('status') == 'cancelled' or not self._attended(event, handle):
                continue
            # all-day events only carry a date
            event_start = event.get('start', {})
            yield ActivityRecord(
                source=self.source,
                kind=ActivityKind.MEETING,
                author=handle,
                timestamp=parse_timestamp(event_start.get('dateTime')) or start,
                description=event.get('summary') or 'Untitled meeting',
                provenance=f'{len(event.get("attendees", []))} attendees' if event.get('attendees') else None,
                url=event.get('htmlLink'),
            )
