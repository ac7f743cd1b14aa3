from datetime import UTC, date, datetime, timedelta

import pytest
from conftest import SCENARIO_DAY, FakeGenerator, StaticGitHub, make_commit

from app.storage_sqlite import SQLIdentityStore, SQLMeetingStore, SQLSummaryStore, create_storage_engine
from workdigest.aggregator import ActivityAggregator
from workdigest.errors import DuplicateSummaryError
from workdigest.orchestrator import SummaryOrchestrator
from workdigest.types import Identity, MeetingMinutes, Role, Summary, SummaryType


@pytest.fixture
def engine(tmp_path):
    return create_storage_engine(f'sqlite:///{tmp_path / "workdigest.db"}')


@pytest.fixture
def summary_store(engine) -> SQLSummaryStore:
    return SQLSummaryStore(engine)


@pytest.fixture
def identity_store(engine) -> SQLIdentityStore:
    store = SQLIdentityStore(engine)
    store.save(Identity(key='bob', role=Role.MANAGER, handles={'github': 'bob-gh'}))
    store.save(Identity(key='alice', manager_key='bob', handles={'github': 'alice-gh', 'slack': 'U-alice'}))
    store.save(Identity(key='zed', manager_key='bob'))
    return store


def test_summary_round_trip(summary_store):
    saved = summary_store.save(
        Summary(owner='alice', summary_date=SCENARIO_DAY, commits='- Fix (acme/web)', productivity_score=30)
    )

    assert saved.id is not None
    assert saved.created_at.tzinfo is not None
    assert summary_store.find_by_id(saved.id) == saved
    assert summary_store.find_by_key('alice', SCENARIO_DAY, SummaryType.DAILY) == saved
    assert summary_store.find_by_key('alice', SCENARIO_DAY, SummaryType.WEEKLY) is None


def test_duplicate_key_is_rejected(summary_store):
    summary_store.save(Summary(owner='alice', summary_date=SCENARIO_DAY))
    with pytest.raises(DuplicateSummaryError):
        summary_store.save(Summary(owner='alice', summary_date=SCENARIO_DAY, narrative='second'))

    assert summary_store.find_by_key('alice', SCENARIO_DAY, SummaryType.DAILY).narrative is None


def test_update_in_place(summary_store):
    saved = summary_store.save(Summary(owner='alice', summary_date=SCENARIO_DAY, narrative='v1'))
    saved.narrative = 'v2'
    saved.revision += 1

    updated = summary_store.save(saved)

    assert updated.id == saved.id
    assert updated.narrative == 'v2'
    assert updated.revision == 1
    assert updated.created_at == saved.created_at


def test_range_queries(summary_store):
    for offset in range(4):
        summary_store.save(Summary(owner='alice', summary_date=SCENARIO_DAY + timedelta(days=offset)))
    summary_store.save(Summary(owner='alice', summary_date=SCENARIO_DAY, summary_type=SummaryType.WEEKLY))
    summary_store.save(Summary(owner='zed', summary_date=SCENARIO_DAY))

    found = summary_store.find_by_owner_and_range('alice', SCENARIO_DAY, SCENARIO_DAY + timedelta(days=2))
    dailies = summary_store.find_by_owner_and_range(
        'alice', SCENARIO_DAY, SCENARIO_DAY + timedelta(days=6), SummaryType.DAILY
    )
    team = summary_store.find_by_owners_and_range(['alice', 'zed'], SCENARIO_DAY, SCENARIO_DAY, SummaryType.DAILY)

    assert len(found) == 4
    assert [s.summary_type for s in found[:2]] == [SummaryType.DAILY, SummaryType.WEEKLY]
    assert len(dailies) == 4
    assert sorted(s.owner for s in team) == ['alice', 'zed']


def test_identity_hierarchy(identity_store):
    assert identity_store.find_by_key('alice').handles == {'github': 'alice-gh', 'slack': 'U-alice'}
    assert identity_store.find_manager('alice').key == 'bob'
    assert identity_store.find_manager('bob') is None
    assert [i.key for i in identity_store.find_direct_reports('bob')] == ['alice', 'zed']
    assert identity_store.find_by_key('nobody') is None


def test_identity_save_overwrites(identity_store):
    identity_store.save(Identity(key='zed', role=Role.LEADER))

    assert identity_store.find_by_key('zed').role == Role.LEADER
    assert [i.key for i in identity_store.all()] == ['alice', 'bob', 'zed']


def test_meeting_store(engine):
    store = SQLMeetingStore(engine)
    when = datetime(2024, 3, 1, 15, tzinfo=UTC)
    saved = store.save(
        MeetingMinutes(meeting_id='zoom-1', title='Sync', meeting_date=when, participants=['alice', 'bob'])
    )
    store.save(MeetingMinutes(meeting_id='zoom-2', title='Other', meeting_date=when, participants=['zed']))

    assert store.find_by_id(saved.id).meeting_date == when
    assert [m.meeting_id for m in store.find_by_participant('alice', when - timedelta(hours=1), when)] == ['zoom-1']
    assert store.find_by_participant('alice', when + timedelta(seconds=1), when + timedelta(days=1)) == []

    saved.narrative = 'Synced.'
    assert store.save(saved).narrative == 'Synced.'


def test_orchestrator_on_sql_stores(summary_store, identity_store):
    orchestrator = SummaryOrchestrator(
        summaries=summary_store,
        identities=identity_store,
        aggregator=ActivityAggregator([StaticGitHub(records=[make_commit()])]),
        generator=FakeGenerator(),
        tz=UTC,
    )

    first = orchestrator.generate_daily('alice', SCENARIO_DAY)
    second = orchestrator.generate_daily('alice', SCENARIO_DAY)
    weekly = orchestrator.generate_weekly('alice', SCENARIO_DAY)

    assert first == second
    assert first.productivity_score == 30
    assert weekly.productivity_score == 30
    assert weekly.commits == first.commits
    assert orchestrator.get_team_summaries('bob', SCENARIO_DAY, date(2024, 3, 7))[0].owner == 'alice'
