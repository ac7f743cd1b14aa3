from datetime import UTC, datetime

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from app.api.dependencies import Access, Identities, Meetings, Requester
from app.api.errors import forbidden, http_errors
from workdigest.types import MeetingMinutes, MeetingPlatform
from workdigest.utilities.loggers import get_logger

router = APIRouter(prefix='/api/meetings', tags=['meetings'])
logger = get_logger('app.api.meetings')


class MeetingRequest(BaseModel):
    meeting_id: str
    title: str
    transcript: str = Field(min_length=1)
    participants: list[str] = Field(default_factory=list, description='Identity keys; the requester is always added')
    meeting_date: datetime | None = None
    platform: MeetingPlatform = 'other'


@router.post('')
def generate_minutes(request: MeetingRequest, requester: Requester, meetings: Meetings) -> MeetingMinutes:
    """Generate minutes from a transcript"""
    participants = list(dict.fromkeys([requester.key, *request.participants]))
    with http_errors():
        return meetings.generate(
            meeting_id=request.meeting_id,
            title=request.title,
            transcript=request.transcript,
            participants=participants,
            meeting_date=request.meeting_date,
            platform=request.platform,
        )


@router.get('')
def list_minutes(
    requester: Requester,
    identities: Identities,
    access: Access,
    meetings: Meetings,
    start: datetime,
    end: datetime,
    user: str | None = None,
    q: str | None = None,
) -> list[MeetingMinutes]:
    """Meetings one identity (the requester by default) took part in, optionally filtered by text"""
    key = user or requester.key
    if key != requester.key:
        if (target := identities.find_by_key(key)) is None:
            raise HTTPException(status_code=404, detail=f'Identity not found: {key}')
        if not access.can_access(requester, target):
            raise forbidden(requester.key, f'meetings of {key}')

    start, end = (value if value.tzinfo else value.replace(tzinfo=UTC) for value in (start, end))
    if q:
        return meetings.search_user_meetings(key, q, start, end)
    return meetings.get_user_meetings(key, start, end)


@router.get('/{minutes_id}')
def get_minutes(minutes_id: int, requester: Requester, access: Access, meetings: Meetings) -> MeetingMinutes:
    with http_errors():
        minutes = meetings.get_by_id(minutes_id)
    if not access.can_access(requester, minutes):
        raise forbidden(requester.key, f'meeting minutes {minutes_id}')
    return minutes


@router.post('/{minutes_id}/regenerate')
def regenerate_minutes(minutes_id: int, requester: Requester, access: Access, meetings: Meetings) -> MeetingMinutes:
    with http_errors():
        minutes = meetings.get_by_id(minutes_id)
        if not access.can_access(requester, minutes):
            raise forbidden(requester.key, f'meeting minutes {minutes_id}')
        logger.info(f'{requester.key} is regenerating meeting minutes {minutes_id}')
        return meetings.regenerate(minutes_id)
