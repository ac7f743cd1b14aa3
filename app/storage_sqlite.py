"""SQLAlchemy-backed stores for summaries, identities and meeting minutes."""

from collections.abc import Iterable
from datetime import UTC, date, datetime

from sqlalchemy import (
    JSON,
    Column,
    Date,
    DateTime,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base

from workdigest.errors import DuplicateSummaryError
from workdigest.types import Identity, MeetingMinutes, Role, Section, Summary, SummaryType
from workdigest.utilities.loggers import get_logger

logger = get_logger('app.storage')

Base = declarative_base()


def _to_utc(value: datetime | None) -> datetime | None:
    """Normalize to naive UTC; SQLite drops offsets on the way in"""
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(UTC)
    return value.replace(tzinfo=None)


def _from_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    return value if value.tzinfo else value.replace(tzinfo=UTC)


class SummaryRow(Base):
    __tablename__ = 'work_summaries'
    __table_args__ = (UniqueConstraint('owner', 'summary_date', 'summary_type', name='uq_summary_key'),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner = Column(String, nullable=False, index=True)
    summary_date = Column(Date, nullable=False)
    summary_type = Column(String, nullable=False)

    commits = Column(Text)
    pull_requests = Column(Text)
    reviews = Column(Text)
    tickets = Column(Text)
    documents = Column(Text)
    chat = Column(Text)
    meetings = Column(Text)
    customer_issues = Column(Text)

    narrative = Column(Text)
    key_achievements = Column(Text)
    productivity_score = Column(Integer)
    collaboration_score = Column(Integer)

    revision = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)

    def to_summary(self) -> Summary:
        return Summary(
            id=self.id,
            owner=self.owner,
            summary_date=self.summary_date,
            summary_type=SummaryType(self.summary_type),
            **{section.value: getattr(self, section.value) for section in Section},
            narrative=self.narrative,
            key_achievements=self.key_achievements,
            productivity_score=self.productivity_score,
            collaboration_score=self.collaboration_score,
            revision=self.revision,
            created_at=_from_utc(self.created_at),
            updated_at=_from_utc(self.updated_at),
        )

    def update_from(self, summary: Summary) -> None:
        for section in Section:
            setattr(self, section.value, getattr(summary, section.value))
        self.narrative = summary.narrative
        self.key_achievements = summary.key_achievements
        self.productivity_score = summary.productivity_score
        self.collaboration_score = summary.collaboration_score
        self.revision = summary.revision


class IdentityRow(Base):
    __tablename__ = 'identities'

    key = Column(String, primary_key=True)
    name = Column(String, nullable=False, default='')
    email = Column(String)
    role = Column(String, nullable=False)
    manager_key = Column(String, index=True)
    handles = Column(JSON, nullable=False, default=dict)

    def to_identity(self) -> Identity:
        return Identity(
            key=self.key,
            name=self.name,
            email=self.email,
            role=Role(self.role),
            manager_key=self.manager_key,
            handles=dict(self.handles or {}),
        )


class MeetingRow(Base):
    __tablename__ = 'meeting_minutes'

    id = Column(Integer, primary_key=True, autoincrement=True)
    meeting_id = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)
    meeting_date = Column(DateTime, nullable=False)
    platform = Column(String, nullable=False)
    participants = Column(JSON, nullable=False, default=list)

    transcript = Column(Text)
    narrative = Column(Text)
    key_points = Column(Text)
    action_items = Column(Text)
    decisions = Column(Text)

    processed_at = Column(DateTime)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)

    def to_minutes(self) -> MeetingMinutes:
        return MeetingMinutes(
            id=self.id,
            meeting_id=self.meeting_id,
            title=self.title,
            meeting_date=_from_utc(self.meeting_date),
            platform=self.platform,
            participants=list(self.participants or []),
            transcript=self.transcript,
            narrative=self.narrative,
            key_points=self.key_points,
            action_items=self.action_items,
            decisions=self.decisions,
            processed_at=_from_utc(self.processed_at),
            created_at=_from_utc(self.created_at),
            updated_at=_from_utc(self.updated_at),
        )

    def update_from(self, minutes: MeetingMinutes) -> None:
        self.meeting_id = minutes.meeting_id
        self.title = minutes.title
        self.meeting_date = _to_utc(minutes.meeting_date)
        self.platform = minutes.platform
        self.participants = list(minutes.participants)
        self.transcript = minutes.transcript
        self.narrative = minutes.narrative
        self.key_points = minutes.key_points
        self.action_items = minutes.action_items
        self.decisions = minutes.decisions
        self.processed_at = _to_utc(minutes.processed_at)


def create_storage_engine(database_url: str) -> Engine:
    """Create an engine and make sure every table exists"""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return engine


class SQLSummaryStore:
    """Summaries keyed by `(owner, summary_date, summary_type)`, enforced by a unique constraint"""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def _get_session(self) -> Session:
        return Session(self.engine)

    def find_by_key(self, owner: str, summary_date: date, summary_type: SummaryType) -> Summary | None:
        stmt = select(SummaryRow).where(
            SummaryRow.owner == owner,
            SummaryRow.summary_date == summary_date,
            SummaryRow.summary_type == summary_type.value,
        )
        with self._get_session() as session:
            row = session.execute(stmt).scalar_one_or_none()
            return row.to_summary() if row else None

    def find_by_id(self, summary_id: int) -> Summary | None:
        with self._get_session() as session:
            row = session.get(SummaryRow, summary_id)
            return row.to_summary() if row else None

    def save(self, summary: Summary) -> Summary:
        now = _to_utc(datetime.now(UTC))
        with self._get_session() as session:
            if summary.id is None:
                row = SummaryRow(
                    owner=summary.owner,
                    summary_date=summary.summary_date,
                    summary_type=summary.summary_type.value,
                    created_at=now,
                    updated_at=now,
                )
                session.add(row)
            elif (row := session.get(SummaryRow, summary.id)) is None:
                raise ValueError(f'Cannot update unknown summary {summary.id}')
            else:
                row.updated_at = now

            row.update_from(summary)
            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                logger.warning(f'Summary {summary.key!r} already stored: {e.orig}')
                raise DuplicateSummaryError(summary.key) from e
            return row.to_summary()

    def find_by_owner_and_range(
        self, owner: str, start: date, end: date, summary_type: SummaryType | None = None
    ) -> list[Summary]:
        return self.find_by_owners_and_range([owner], start, end, summary_type)

    def find_by_owners_and_range(
        self, owners: Iterable[str], start: date, end: date, summary_type: SummaryType | None = None
    ) -> list[Summary]:
        stmt = (
            select(SummaryRow)
            .where(SummaryRow.owner.in_(list(owners)), SummaryRow.summary_date.between(start, end))
            .order_by(SummaryRow.summary_date, SummaryRow.summary_type)
        )
        if summary_type is not None:
            stmt = stmt.where(SummaryRow.summary_type == summary_type.value)
        with self._get_session() as session:
            return [row.to_summary() for row in session.execute(stmt).scalars()]


class SQLIdentityStore:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def find_by_key(self, key: str) -> Identity | None:
        with Session(self.engine) as session:
            row = session.get(IdentityRow, key)
            return row.to_identity() if row else None

    def find_manager(self, key: str) -> Identity | None:
        identity = self.find_by_key(key)
        if identity is None or identity.manager_key is None:
            return None
        return self.find_by_key(identity.manager_key)

    def find_direct_reports(self, key: str) -> list[Identity]:
        stmt = select(IdentityRow).where(IdentityRow.manager_key == key).order_by(IdentityRow.key)
        with Session(self.engine) as session:
            return [row.to_identity() for row in session.execute(stmt).scalars()]

    def save(self, identity: Identity) -> Identity:
        row = IdentityRow(
            key=identity.key,
            name=identity.name,
            email=identity.email,
            role=identity.role.value,
            manager_key=identity.manager_key,
            handles=dict(identity.handles),
        )
        with Session(self.engine) as session:
            session.merge(row)
            session.commit()
        return identity

    def all(self) -> list[Identity]:
        with Session(self.engine) as session:
            return [row.to_identity() for row in session.execute(select(IdentityRow).order_by(IdentityRow.key)).scalars()]


class SQLMeetingStore:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def find_by_id(self, minutes_id: int) -> MeetingMinutes | None:
        with Session(self.engine) as session:
            row = session.get(MeetingRow, minutes_id)
            return row.to_minutes() if row else None

    def save(self, minutes: MeetingMinutes) -> MeetingMinutes:
        now = _to_utc(datetime.now(UTC))
        with Session(self.engine) as session:
            if minutes.id is None:
                row = MeetingRow(created_at=now)
                session.add(row)
            elif (row := session.get(MeetingRow, minutes.id)) is None:
                raise ValueError(f'Cannot update unknown meeting minutes {minutes.id}')
            row.update_from(minutes)
            row.updated_at = now
            session.commit()
            return row.to_minutes()

    def find_by_participant(self, key: str, start: datetime, end: datetime) -> list[MeetingMinutes]:
        stmt = (
            select(MeetingRow)
            .where(MeetingRow.meeting_date.between(_to_utc(start), _to_utc(end)))
            .order_by(MeetingRow.meeting_date)
        )
        with Session(self.engine) as session:
            # participants is a JSON list, filtered here to stay portable across backends
            return [row.to_minutes() for row in session.execute(stmt).scalars() if key in (row.participants or [])]
