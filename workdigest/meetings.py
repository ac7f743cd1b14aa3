from datetime import UTC, datetime

from workdigest.errors import NoRawInputError, NotFoundError
from workdigest.narrative import MEETING_EXTRACTIONS, MEETING_MINUTES_PROMPT, NarrativeGenerator, render_from_raw_input
from workdigest.store import MeetingStore
from workdigest.types import DerivedFields, MeetingMinutes, MeetingPlatform
from workdigest.utilities.loggers import get_logger

logger = get_logger('meetings')


class MeetingMinutesService:
    """Minutes generated from meeting transcripts.

    The transcript is stored with the minutes so they can be regenerated later.
    """

    def __init__(self, meetings: MeetingStore, generator: NarrativeGenerator) -> None:
        self.meetings = meetings
        self.generator = generator

    def _render(self, minutes: MeetingMinutes, fallback_narrative: str | None = None) -> DerivedFields:
        prompt = MEETING_MINUTES_PROMPT.render(attendees=minutes.participants, transcript=minutes.transcript)
        return render_from_raw_input(self.generator, prompt, MEETING_EXTRACTIONS, fallback_narrative)

    @staticmethod
    def _apply(minutes: MeetingMinutes, derived: DerivedFields) -> None:
        minutes.narrative = derived.narrative
        for extraction in MEETING_EXTRACTIONS:
            setattr(minutes, extraction.name, derived.sections[extraction.name])
        minutes.processed_at = datetime.now(UTC)

    def generate(
        self,
        meeting_id: str,
        title: str,
        transcript: str,
        participants: list[str],
        meeting_date: datetime | None = None,
        platform: MeetingPlatform = 'other',
    ) -> MeetingMinutes:
        logger.info(f'Generating meeting minutes for {meeting_id!r} ({len(participants)} participants)')
        minutes = MeetingMinutes(
            meeting_id=meeting_id,
            title=title,
            meeting_date=meeting_date or datetime.now(UTC),
            platform=platform,
            participants=participants,
            transcript=transcript,
        )
        self._apply(minutes, self._render(minutes))
        saved = self.meetings.save(minutes)
        logger.info(f'Saved meeting minutes {saved.id} for {meeting_id!r}')
        return saved

    def regenerate(self, minutes_id: int) -> MeetingMinutes:
        """Re-run generation over the stored transcript; generator failures degrade to keyword extraction"""
        minutes = self.get_by_id(minutes_id)
        if not minutes.transcript:
            raise NoRawInputError(f'No transcript available for meeting minutes {minutes_id}')

        logger.info(f'Regenerating meeting minutes {minutes_id}')
        derived = self._render(minutes, fallback_narrative=minutes.narrative or minutes.transcript)
        if derived.degraded:
            logger.warning(f'Meeting minutes {minutes_id} regenerated from the previous narrative')
        self._apply(minutes, derived)
        return self.meetings.save(minutes)

    def get_by_id(self, minutes_id: int) -> MeetingMinutes:
        if (minutes := self.meetings.find_by_id(minutes_id)) is None:
            raise NotFoundError(f'Meeting minutes not found with ID: {minutes_id}')
        return minutes

    def get_user_meetings(self, key: str, start: datetime, end: datetime) -> list[MeetingMinutes]:
        return self.meetings.find_by_participant(key, start, end)

    def search_user_meetings(self, key: str, query: str, start: datetime, end: datetime) -> list[MeetingMinutes]:
        """Meetings the user took part in whose title or minutes mention `query` (case-insensitive)"""
        needle = query.lower()
        return [
            m
            for m in self.get_user_meetings(key, start, end)
            if any(needle in (text or '').lower() for text in (m.title, m.narrative, m.transcript))
        ]
