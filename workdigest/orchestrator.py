"""Idempotent generation and retrieval of work summaries.

Every summary is keyed by `(owner, summary_date, summary_type)`. A generate
call for a key that already has a summary returns the stored row unchanged;
only `regenerate` rewrites derived fields. A failed generation persists
nothing, so the next call simply starts over.
"""

import threading
from calendar import monthrange
from collections import Counter
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from workdigest.aggregator import ActivityAggregator
from workdigest.errors import DuplicateSummaryError, NoRawInputError, NotFoundError
from workdigest.narrative import (
    ROLLUP_SUMMARY_PROMPT,
    SUMMARY_EXTRACTIONS,
    WORK_SUMMARY_PROMPT,
    NarrativeGenerator,
    render_from_raw_input,
)
from workdigest.scoring import score
from workdigest.settings import settings
from workdigest.store import IdentityStore, SummaryStore
from workdigest.types import DerivedFields, Section, Summary, SummaryType, WorkDataDocument
from workdigest.utilities.loggers import get_logger

logger = get_logger('orchestrator')

END_OF_DAY = time(23, 59, 59)

ROLLUP_SOURCES: dict[SummaryType, SummaryType] = {
    SummaryType.WEEKLY: SummaryType.DAILY,
    SummaryType.MONTHLY: SummaryType.DAILY,
    SummaryType.YEARLY: SummaryType.MONTHLY,
}

PERIOD_NAMES: dict[SummaryType, str] = {
    SummaryType.DAILY: 'day',
    SummaryType.WEEKLY: 'week',
    SummaryType.MONTHLY: 'month',
    SummaryType.YEARLY: 'year',
}


def period_end(anchor: date, summary_type: SummaryType) -> date:
    """Last day (inclusive) of the period starting at `anchor`"""
    match summary_type:
        case SummaryType.DAILY:
            return anchor
        case SummaryType.WEEKLY:
            return anchor + timedelta(days=6)
        case SummaryType.MONTHLY:
            return anchor.replace(day=monthrange(anchor.year, anchor.month)[1])
        case SummaryType.YEARLY:
            return anchor.replace(month=12, day=31)


def average_score(scores: list[int | None]) -> int | None:
    """Truncated mean of the non-null scores, or None when there are none"""
    present = [s for s in scores if s is not None]
    if not present:
        return None
    return sum(present) // len(present)


def roll_up(summaries: list[Summary]) -> tuple[WorkDataDocument, int | None, int | None]:
    """Concatenate each section across `summaries` (in date order) and average their scores"""
    ordered = sorted(summaries, key=lambda s: s.summary_date)
    sections = {}
    for section in Section:
        parts = [text for s in ordered if (text := getattr(s, section.value)) is not None]
        sections[section] = '\n'.join(parts) if parts else None

    return (
        WorkDataDocument(sections=sections),
        average_score([s.productivity_score for s in ordered]),
        average_score([s.collaboration_score for s in ordered]),
    )


class SummaryOrchestrator:
    def __init__(
        self,
        summaries: SummaryStore,
        identities: IdentityStore,
        aggregator: ActivityAggregator,
        generator: NarrativeGenerator,
        tz: ZoneInfo | None = None,
    ) -> None:
        self.summaries = summaries
        self.identities = identities
        self.aggregator = aggregator
        self.generator = generator
        self.tz = tz or settings.tz
        self._locks: dict[tuple, threading.Lock] = {}
        self._lock_holders: Counter[tuple] = Counter()
        self._locks_guard = threading.Lock()

    @contextmanager
    def _key_lock(self, key: tuple) -> Iterator[None]:
        """Serialize work on one summary key; the lock is dropped once nobody holds or awaits it"""
        with self._locks_guard:
            lock = self._locks.setdefault(key, threading.Lock())
            self._lock_holders[key] += 1
        try:
            with lock:
                yield
        finally:
            with self._locks_guard:
                self._lock_holders[key] -= 1
                if not self._lock_holders[key]:
                    del self._lock_holders[key]
                    del self._locks[key]

    def _render(self, prompt: str, fallback_narrative: str | None = None) -> DerivedFields:
        return render_from_raw_input(self.generator, prompt, SUMMARY_EXTRACTIONS, fallback_narrative)

    def _persist(self, summary: Summary) -> Summary:
        try:
            return self.summaries.save(summary)
        except DuplicateSummaryError:
            # another writer won the race; theirs is the summary for this key
            logger.warning(f'Summary {summary.key!r} was created concurrently, returning the stored one')
            if (stored := self.summaries.find_by_key(*summary.key)) is None:
                raise
            return stored

    def _require_owner(self, owner: str) -> None:
        if self.identities.find_by_key(owner) is None:
            raise NotFoundError(f'Identity not found: {owner}')

    def generate_daily(self, owner: str, day: date) -> Summary:
        """Return the daily summary for `owner` on `day`, generating it on first request"""
        key = (owner, day, SummaryType.DAILY)
        with self._key_lock(key):
            if existing := self.summaries.find_by_key(*key):
                logger.info(f'Daily summary already exists for {owner} on {day}')
                return existing

            if (identity := self.identities.find_by_key(owner)) is None:
                raise NotFoundError(f'Identity not found: {owner}')

            logger.info(f'Generating daily summary for {owner} on {day}')
            start = datetime.combine(day, time.min, tzinfo=self.tz)
            end = datetime.combine(day, END_OF_DAY, tzinfo=self.tz)
            document = self.aggregator.aggregate(identity, start, end)

            derived = self._render(WORK_SUMMARY_PROMPT.render(work_data=document.render()))
            productivity, collaboration = score(document)

            summary = Summary(
                owner=owner,
                summary_date=day,
                summary_type=SummaryType.DAILY,
                narrative=derived.narrative,
                key_achievements=derived.sections.get('key_achievements'),
                productivity_score=productivity,
                collaboration_score=collaboration,
            )
            summary.apply_document(document)

            saved = self._persist(summary)
            logger.info(f'Generated daily summary {saved.id} for {owner} on {day}')
            return saved

    def generate_weekly(self, owner: str, week_start: date) -> Summary:
        return self._generate_rollup(owner, week_start, SummaryType.WEEKLY)

    def generate_monthly(self, owner: str, month: date) -> Summary:
        return self._generate_rollup(owner, month.replace(day=1), SummaryType.MONTHLY)

    def generate_yearly(self, owner: str, year: int | date) -> Summary:
        anchor = date(year, 1, 1) if isinstance(year, int) else year.replace(month=1, day=1)
        return self._generate_rollup(owner, anchor, SummaryType.YEARLY)

    def _generate_rollup(self, owner: str, anchor: date, summary_type: SummaryType) -> Summary:
        """Build a coarse summary from the finer summaries already stored in its period.

        Raw sources are never re-fetched; missing finer summaries are simply absent.
        """
        key = (owner, anchor, summary_type)
        with self._key_lock(key):
            if existing := self.summaries.find_by_key(*key):
                logger.info(f'{summary_type.value.title()} summary already exists for {owner} starting {anchor}')
                return existing

            self._require_owner(owner)

            end = period_end(anchor, summary_type)
            parts = self.summaries.find_by_owner_and_range(owner, anchor, end, ROLLUP_SOURCES[summary_type])
            logger.info(
                f'Rolling up {len(parts)} {ROLLUP_SOURCES[summary_type].value} summaries '
                f'into a {summary_type.value} summary for {owner} ({anchor} to {end})'
            )

            document, productivity, collaboration = roll_up(parts)
            prompt = ROLLUP_SUMMARY_PROMPT.render(period=PERIOD_NAMES[summary_type], work_data=document.render())
            derived = self._render(prompt)

            summary = Summary(
                owner=owner,
                summary_date=anchor,
                summary_type=summary_type,
                narrative=derived.narrative,
                key_achievements=derived.sections.get('key_achievements'),
                productivity_score=productivity,
                collaboration_score=collaboration,
            )
            summary.apply_document(document)
            return self._persist(summary)

    def regenerate(self, summary_id: int) -> Summary:
        """Rewrite the narrative and key achievements of a stored summary from its stored sections"""
        key = self.get_by_id(summary_id).key
        with self._key_lock(key):
            # re-read under the lock so concurrent regenerations each count
            summary = self.get_by_id(summary_id)
            document = summary.document()
            if document.empty:
                raise NoRawInputError(f'Summary {summary_id} has no stored activity to regenerate from')

            logger.info(f'Regenerating summary {summary_id} ({summary.summary_type.value}) for {summary.owner}')
            if summary.summary_type == SummaryType.DAILY:
                prompt = WORK_SUMMARY_PROMPT.render(work_data=document.render())
            else:
                prompt = ROLLUP_SUMMARY_PROMPT.render(
                    period=PERIOD_NAMES[summary.summary_type], work_data=document.render()
                )

            derived = self._render(prompt, fallback_narrative=summary.narrative or document.render())
            summary.narrative = derived.narrative
            summary.key_achievements = derived.sections.get('key_achievements')
            summary.revision += 1
            summary.updated_at = datetime.now(UTC)

            saved = self.summaries.save(summary)
            logger.info(f'Regenerated summary {summary_id}, revision {saved.revision}')
            return saved

    def get_by_id(self, summary_id: int) -> Summary:
        if (summary := self.summaries.find_by_id(summary_id)) is None:
            raise NotFoundError(f'Work summary not found with ID: {summary_id}')
        return summary

    def get_by_owner_and_range(
        self, owner: str, start: date, end: date, summary_type: SummaryType | None = None
    ) -> list[Summary]:
        logger.debug(f'Fetching summaries for {owner} from {start} to {end}')
        return self.summaries.find_by_owner_and_range(owner, start, end, summary_type)

    def get_team_summaries(
        self, manager_key: str, start: date, end: date, summary_type: SummaryType | None = None
    ) -> list[Summary]:
        """Summaries of the manager's direct reports within the range"""
        reports = self.identities.find_direct_reports(manager_key)
        logger.debug(f'Fetching team summaries for {manager_key} ({len(reports)} reports) from {start} to {end}')
        if not reports:
            return []
        return self.summaries.find_by_owners_and_range([r.key for r in reports], start, end, summary_type)
