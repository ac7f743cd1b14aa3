from datetime import UTC, datetime, timedelta

import pytest
from conftest import FakeGenerator, RaisingGenerator

from workdigest.errors import GenerationFailedError, NoRawInputError, NotFoundError
from workdigest.meetings import MeetingMinutesService
from workdigest.narrative import NO_ITEMS_FOUND
from workdigest.store import InMemoryMeetingStore
from workdigest.types import MeetingMinutes

WHEN = datetime(2024, 3, 1, 15, 0, tzinfo=UTC)

MINUTES = """Meeting summary: billing migration sync.
Key discussion points: rollout order and risk.
Action items: alice to write the rollback plan.
We agreed to migrate EU customers first."""


@pytest.fixture
def store() -> InMemoryMeetingStore:
    return InMemoryMeetingStore()


@pytest.fixture
def service(store) -> MeetingMinutesService:
    return MeetingMinutesService(store, FakeGenerator(reply=MINUTES))


def generate(service: MeetingMinutesService, **overrides) -> MeetingMinutes:
    params = {
        'meeting_id': 'zoom-123',
        'title': 'Billing migration sync',
        'transcript': 'alice: we should do EU first\nbob: agreed',
        'participants': ['alice', 'bob'],
        'meeting_date': WHEN,
        'platform': 'zoom',
    }
    return service.generate(**(params | overrides))


def test_generate_fills_derived_sections(service):
    minutes = generate(service)

    assert minutes.id is not None
    assert minutes.narrative == MINUTES
    assert minutes.key_points == MINUTES
    assert minutes.action_items == MINUTES
    assert minutes.decisions == MINUTES
    assert minutes.processed_at is not None
    assert minutes.transcript.startswith('alice:')


def test_generate_prompt_names_attendees(store):
    generator = FakeGenerator(reply=MINUTES)
    generate(MeetingMinutesService(store, generator))

    assert 'Meeting Attendees: alice, bob' in generator.prompts[0]
    assert 'bob: agreed' in generator.prompts[0]


def test_generate_failure_saves_nothing(store):
    service = MeetingMinutesService(store, RaisingGenerator())
    with pytest.raises(GenerationFailedError):
        generate(service)
    assert store.find_by_participant('alice', WHEN - timedelta(days=1), WHEN + timedelta(days=1)) == []


def test_regenerate_with_failing_generator_uses_keywords(service):
    """Every derived section is filled from the stored narrative"""
    minutes = generate(service)
    service.generator = RaisingGenerator()

    regenerated = service.regenerate(minutes.id)

    assert regenerated.narrative == MINUTES
    assert regenerated.key_points == 'Key discussion points: rollout order and risk.'
    assert regenerated.action_items == 'Action items: alice to write the rollback plan.'
    assert regenerated.decisions == 'We agreed to migrate EU customers first.'


def test_regenerate_without_matches_uses_sentinel(store):
    minutes = store.save(
        MeetingMinutes(meeting_id='m', title='Chat', meeting_date=WHEN, transcript='hello', narrative='We chatted.')
    )
    service = MeetingMinutesService(store, RaisingGenerator())

    regenerated = service.regenerate(minutes.id)

    assert regenerated.key_points == NO_ITEMS_FOUND
    assert regenerated.action_items == NO_ITEMS_FOUND
    assert regenerated.decisions == NO_ITEMS_FOUND


def test_regenerate_without_transcript(store, service):
    minutes = store.save(MeetingMinutes(meeting_id='m', title='No recording', meeting_date=WHEN))
    with pytest.raises(NoRawInputError):
        service.regenerate(minutes.id)


def test_get_by_id(service):
    minutes = generate(service)
    assert service.get_by_id(minutes.id) == minutes
    with pytest.raises(NotFoundError):
        service.get_by_id(404)


def test_user_meetings_and_search(service):
    generate(service)
    generate(service, meeting_id='zoom-456', title='Hiring loop', transcript='carol: next candidate', participants=['carol'])
    generate(service, meeting_id='zoom-789', title='Retro', meeting_date=WHEN + timedelta(days=30))

    start, end = WHEN - timedelta(days=1), WHEN + timedelta(days=1)

    assert [m.meeting_id for m in service.get_user_meetings('alice', start, end)] == ['zoom-123']
    assert [m.meeting_id for m in service.get_user_meetings('carol', start, end)] == ['zoom-456']
    assert [m.meeting_id for m in service.search_user_meetings('alice', 'BILLING', start, end)] == ['zoom-123']
    assert service.search_user_meetings('alice', 'hiring', start, end) == []
