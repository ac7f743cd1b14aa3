from datetime import UTC, date, datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, field_validator


class Role(str, Enum):
    ENGINEER = 'engineer'
    MANAGER = 'manager'
    LEADER = 'leader'
    ADMIN = 'admin'

    @property
    def rank(self) -> int:
        return list(Role).index(self)

    # str comparisons would order roles alphabetically
    def __lt__(self, other: object) -> bool:
        return self.rank < other.rank if isinstance(other, Role) else NotImplemented

    def __le__(self, other: object) -> bool:
        return self.rank <= other.rank if isinstance(other, Role) else NotImplemented

    def __gt__(self, other: object) -> bool:
        return self.rank > other.rank if isinstance(other, Role) else NotImplemented

    def __ge__(self, other: object) -> bool:
        return self.rank >= other.rank if isinstance(other, Role) else NotImplemented

    @property
    def manages_people(self) -> bool:
        return Role.MANAGER <= self < Role.ADMIN


class Identity(BaseModel):
    """A person known to the directory, keyed by username"""

    key: str = Field(description='Unique, stable username')
    name: str = Field(default='', description='Display name')
    email: str | None = Field(default=None)
    role: Role = Field(default=Role.ENGINEER)
    manager_key: str | None = Field(default=None, description='Username of the direct manager, if any')
    handles: dict[str, str] = Field(
        default_factory=dict,
        description='Account name per source, e.g. {"github": "alice-gh", "slack": "U123"}',
    )

    def handle_for(self, source: str) -> str | None:
        return self.handles.get(source)


class ActivityKind(str, Enum):
    COMMIT = 'commit'
    PULL_REQUEST = 'pull_request'
    REVIEW = 'review'
    TICKET = 'ticket'
    DOCUMENT = 'document'
    MESSAGE = 'message'
    MEETING = 'meeting'
    CUSTOMER_ISSUE = 'customer_issue'


class ActivityRecord(BaseModel):
    """One unit of externally observed work"""

    source: str = Field(description='Source the record came from (github, jira, ...)')
    kind: ActivityKind
    author: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    description: str = Field(description='One-line description of the work')
    provenance: str | None = Field(default=None, description='Repository, ticket key, space or channel')
    url: str | None = None

    def render(self) -> str:
        line = ' '.join(self.description.strip().splitlines()[:1]) or '(no description)'
        if self.provenance:
            return f'- {line} ({self.provenance})'
        return f'- {line}'


class Section(str, Enum):
    """Work-data sections, in presentation order"""

    COMMITS = 'commits'
    PULL_REQUESTS = 'pull_requests'
    REVIEWS = 'reviews'
    TICKETS = 'tickets'
    DOCUMENTS = 'documents'
    CHAT = 'chat'
    MEETINGS = 'meetings'
    CUSTOMER_ISSUES = 'customer_issues'

    @property
    def heading(self) -> str:
        return SECTION_TITLES[self]

    @property
    def sentinel(self) -> str:
        return SECTION_SENTINELS[self]


SECTION_TITLES: dict[Section, str] = {
    Section.COMMITS: 'GitHub Commits',
    Section.PULL_REQUESTS: 'GitHub Pull Requests',
    Section.REVIEWS: 'GitHub Reviews',
    Section.TICKETS: 'Jira Tickets',
    Section.DOCUMENTS: 'Confluence Documents',
    Section.CHAT: 'Slack Activity',
    Section.MEETINGS: 'Meetings',
    Section.CUSTOMER_ISSUES: 'Customer Issues Resolved',
}

# checked by equality when scoring, never by absence
SECTION_SENTINELS: dict[Section, str] = {
    Section.COMMITS: 'No commits',
    Section.PULL_REQUESTS: 'No pull requests',
    Section.REVIEWS: 'No reviews',
    Section.TICKETS: 'No tickets',
    Section.DOCUMENTS: 'No documents',
    Section.CHAT: 'No chat activity',
    Section.MEETINGS: 'No meetings',
    Section.CUSTOMER_ISSUES: 'No customer issues resolved',
}

KIND_SECTIONS: dict[ActivityKind, Section] = {
    ActivityKind.COMMIT: Section.COMMITS,
    ActivityKind.PULL_REQUEST: Section.PULL_REQUESTS,
    ActivityKind.REVIEW: Section.REVIEWS,
    ActivityKind.TICKET: Section.TICKETS,
    ActivityKind.DOCUMENT: Section.DOCUMENTS,
    ActivityKind.MESSAGE: Section.CHAT,
    ActivityKind.MEETING: Section.MEETINGS,
    ActivityKind.CUSTOMER_ISSUE: Section.CUSTOMER_ISSUES,
}


class WorkDataDocument(BaseModel):
    """Formatted text per section, the input to narrative generation and scoring"""

    sections: dict[Section, str | None] = Field(default_factory=dict)

    def get(self, section: Section) -> str | None:
        return self.sections.get(section)

    def render(self) -> str:
        blocks = []
        for section in Section:
            if (text := self.sections.get(section)) is not None:
                blocks.append(f'{section.heading}:\n{text}')
        return '\n\n'.join(blocks)

    @property
    def empty(self) -> bool:
        return all(text is None for text in self.sections.values())


class SummaryType(str, Enum):
    DAILY = 'daily'
    WEEKLY = 'weekly'
    MONTHLY = 'monthly'
    YEARLY = 'yearly'


class Summary(BaseModel):
    """Generated work summary for one (owner, summary_date, summary_type) key"""

    id: int | None = None
    owner: str = Field(description='Key of the identity this summary describes')
    summary_date: date = Field(description='Day, or period start for coarser types')
    summary_type: SummaryType = SummaryType.DAILY

    commits: str | None = None
    pull_requests: str | None = None
    reviews: str | None = None
    tickets: str | None = None
    documents: str | None = None
    chat: str | None = None
    meetings: str | None = None
    customer_issues: str | None = None

    narrative: str | None = None
    key_achievements: str | None = None
    productivity_score: int | None = Field(default=None, ge=0, le=100)
    collaboration_score: int | None = Field(default=None, ge=0, le=100)

    revision: int = Field(default=0, description='Number of explicit regenerations')
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def key(self) -> tuple[str, date, SummaryType]:
        return self.owner, self.summary_date, self.summary_type

    def document(self) -> WorkDataDocument:
        return WorkDataDocument(sections={section: getattr(self, section.value) for section in Section})

    def apply_document(self, document: WorkDataDocument) -> None:
        for section in Section:
            setattr(self, section.value, document.get(section))


MeetingPlatform = Literal['zoom', 'microsoft_teams', 'google_meet', 'slack_huddle', 'other']


class MeetingMinutes(BaseModel):
    """Minutes generated from a meeting transcript"""

    id: int | None = None
    meeting_id: str = Field(description='Identifier of the meeting on its platform')
    title: str
    meeting_date: datetime
    platform: MeetingPlatform = 'other'
    participants: list[str] = Field(default_factory=list, description='Identity keys of the participants')

    transcript: str | None = Field(default=None, description='Raw input kept for regeneration')
    narrative: str | None = None
    key_points: str | None = None
    action_items: str | None = None
    decisions: str | None = None

    processed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator('meeting_date')
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class DerivedFields(BaseModel):
    """Narrative plus the sections extracted from it"""

    narrative: str
    sections: dict[str, str] = Field(default_factory=dict)
    degraded: bool = Field(default=False, description='Whether the narrative step fell back')
