from collections.abc import Iterator
from datetime import UTC, date, datetime

import pytest

from workdigest.access import AccessControlEngine
from workdigest.aggregator import ActivityAggregator
from workdigest.errors import CollaboratorUnavailableError
from workdigest.meetings import MeetingMinutesService
from workdigest.observers.base import SourceClient
from workdigest.orchestrator import SummaryOrchestrator
from workdigest.store import InMemoryIdentityStore, InMemoryMeetingStore, InMemorySummaryStore
from workdigest.types import ActivityKind, ActivityRecord, Identity, Role

NARRATIVE = """Alice had a focused day.
Accomplished: fixed the login bug in acme/web.
Collaboration was light."""


class FakeGenerator:
    """Returns `reply` for every prompt and remembers the prompts it saw"""

    def __init__(self, reply: str = NARRATIVE) -> None:
        self.reply = reply
        self.prompts: list[str] = []

    def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.reply


class RaisingGenerator:
    def __init__(self) -> None:
        self.calls = 0

    def complete(self, prompt: str) -> str:
        self.calls += 1
        raise CollaboratorUnavailableError('model offline')


class StaticSourceClient(SourceClient):
    """Serves fixed records, filtered to the requested window"""

    source = 'static'

    records: list[ActivityRecord] = []
    fail: bool = False

    def observe(self, handle: str, start: datetime, end: datetime) -> Iterator[ActivityRecord]:
        if self.fail:
            raise RuntimeError(f'{self.source} is down')
        for record in self.records:
            if record.author == handle and start <= record.timestamp <= end:
                yield record


class StaticGitHub(StaticSourceClient):
    source = 'github'


class StaticJira(StaticSourceClient):
    source = 'jira'


class StaticConfluence(StaticSourceClient):
    source = 'confluence'


class StaticSlack(StaticSourceClient):
    source = 'slack'


class StaticCalendar(StaticSourceClient):
    source = 'calendar'


SCENARIO_DAY = date(2024, 3, 1)


def make_commit(author: str = 'alice-gh', when: datetime | None = None, message: str = 'Fix login bug') -> ActivityRecord:
    return ActivityRecord(
        source='github',
        kind=ActivityKind.COMMIT,
        author=author,
        timestamp=when or datetime(2024, 3, 1, 12, 0, tzinfo=UTC),
        description=message,
        provenance='acme/web',
    )


def handles(name: str) -> dict[str, str]:
    return {
        'github': f'{name}-gh',
        'jira': name,
        'confluence': name,
        'slack': f'U-{name}',
        'calendar': f'{name}@example.com',
    }


@pytest.fixture
def identities() -> InMemoryIdentityStore:
    """carol (leader) <- bob (manager) <- alice (engineer); dave reports to erin; root is an admin"""
    return InMemoryIdentityStore(
        [
            Identity(key='carol', name='Carol', role=Role.LEADER, handles=handles('carol')),
            Identity(key='bob', name='Bob', role=Role.MANAGER, manager_key='carol', handles=handles('bob')),
            Identity(key='alice', name='Alice', role=Role.ENGINEER, manager_key='bob', handles=handles('alice')),
            Identity(key='erin', name='Erin', role=Role.MANAGER, handles=handles('erin')),
            Identity(key='dave', name='Dave', role=Role.ENGINEER, manager_key='erin', handles=handles('dave')),
            Identity(key='root', name='Root', role=Role.ADMIN),
        ]
    )


@pytest.fixture
def clients() -> list[StaticSourceClient]:
    return [
        StaticGitHub(records=[make_commit()]),
        StaticJira(),
        StaticConfluence(),
        StaticSlack(),
        StaticCalendar(),
    ]


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def summaries() -> InMemorySummaryStore:
    return InMemorySummaryStore()


@pytest.fixture
def orchestrator(summaries, identities, clients, generator) -> SummaryOrchestrator:
    return SummaryOrchestrator(
        summaries=summaries,
        identities=identities,
        aggregator=ActivityAggregator(clients),
        generator=generator,
        tz=UTC,
    )


@pytest.fixture
def access(identities) -> AccessControlEngine:
    return AccessControlEngine(identities)


@pytest.fixture
def meeting_service(generator) -> MeetingMinutesService:
    return MeetingMinutesService(InMemoryMeetingStore(), generator)
