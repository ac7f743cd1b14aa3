"""Storage contracts used by the engine, plus in-memory implementations.

The SQLAlchemy-backed implementations live in `app.storage_sqlite`.
"""

import threading
from collections.abc import Iterable
from datetime import UTC, date, datetime
from itertools import count
from typing import Protocol

from workdigest.errors import DuplicateSummaryError
from workdigest.types import Identity, MeetingMinutes, Summary, SummaryType


class SummaryStore(Protocol):
    def find_by_key(self, owner: str, summary_date: date, summary_type: SummaryType) -> Summary | None: ...

    def find_by_id(self, summary_id: int) -> Summary | None: ...

    def save(self, summary: Summary) -> Summary:
        """Insert or update; raises `DuplicateSummaryError` when inserting an existing key"""
        ...

    def find_by_owner_and_range(
        self, owner: str, start: date, end: date, summary_type: SummaryType | None = None
    ) -> list[Summary]: ...

    def find_by_owners_and_range(
        self, owners: Iterable[str], start: date, end: date, summary_type: SummaryType | None = None
    ) -> list[Summary]: ...


class IdentityStore(Protocol):
    def find_by_key(self, key: str) -> Identity | None: ...

    def find_manager(self, key: str) -> Identity | None: ...

    def find_direct_reports(self, key: str) -> list[Identity]: ...

    def save(self, identity: Identity) -> Identity: ...


class MeetingStore(Protocol):
    def find_by_id(self, minutes_id: int) -> MeetingMinutes | None: ...

    def save(self, minutes: MeetingMinutes) -> MeetingMinutes: ...

    def find_by_participant(self, key: str, start: datetime, end: datetime) -> list[MeetingMinutes]: ...


def _sort_key(summary: Summary) -> tuple[date, str]:
    return summary.summary_date, summary.summary_type.value


class InMemorySummaryStore:
    """Dict-backed summary store with the same uniqueness rule as the database"""

    def __init__(self) -> None:
        self._rows: dict[int, Summary] = {}
        self._keys: dict[tuple, int] = {}
        self._ids = count(1)
        self._lock = threading.Lock()

    def find_by_key(self, owner: str, summary_date: date, summary_type: SummaryType) -> Summary | None:
        with self._lock:
            if (summary_id := self._keys.get((owner, summary_date, summary_type))) is None:
                return None
            return self._rows[summary_id].model_copy(deep=True)

    def find_by_id(self, summary_id: int) -> Summary | None:
        with self._lock:
            summary = self._rows.get(summary_id)
            return summary.model_copy(deep=True) if summary else None

    def save(self, summary: Summary) -> Summary:
        now = datetime.now(UTC)
        with self._lock:
            existing_id = self._keys.get(summary.key)
            if summary.id is None:
                if existing_id is not None:
                    raise DuplicateSummaryError(summary.key)
                summary = summary.model_copy(update={'id': next(self._ids), 'created_at': now, 'updated_at': now})
            else:
                if existing_id is not None and existing_id != summary.id:
                    raise DuplicateSummaryError(summary.key)
                summary = summary.model_copy(update={'updated_at': now})
            self._rows[summary.id] = summary
            self._keys[summary.key] = summary.id
            return summary.model_copy(deep=True)

    def find_by_owner_and_range(
        self, owner: str, start: date, end: date, summary_type: SummaryType | None = None
    ) -> list[Summary]:
        return self.find_by_owners_and_range([owner], start, end, summary_type)

    def find_by_owners_and_range(
        self, owners: Iterable[str], start: date, end: date, summary_type: SummaryType | None = None
    ) -> list[Summary]:
        owners = set(owners)
        with self._lock:
            found = [
                s.model_copy(deep=True)
                for s in self._rows.values()
                if s.owner in owners
                and start <= s.summary_date <= end
                and (summary_type is None or s.summary_type == summary_type)
            ]
        return sorted(found, key=_sort_key)


class InMemoryIdentityStore:
    """Identities kept in an arena keyed by username"""

    def __init__(self, identities: Iterable[Identity] = ()) -> None:
        self._identities: dict[str, Identity] = {}
        for identity in identities:
            self.save(identity)

    def find_by_key(self, key: str) -> Identity | None:
        return self._identities.get(key)

    def find_manager(self, key: str) -> Identity | None:
        identity = self._identities.get(key)
        if identity is None or identity.manager_key is None:
            return None
        return self._identities.get(identity.manager_key)

    def find_direct_reports(self, key: str) -> list[Identity]:
        return sorted(
            (i for i in self._identities.values() if i.manager_key == key),
            key=lambda i: i.key,
        )

    def save(self, identity: Identity) -> Identity:
        self._identities[identity.key] = identity
        return identity

    def all(self) -> list[Identity]:
        return sorted(self._identities.values(), key=lambda i: i.key)


class InMemoryMeetingStore:
    def __init__(self) -> None:
        self._rows: dict[int, MeetingMinutes] = {}
        self._ids = count(1)

    def find_by_id(self, minutes_id: int) -> MeetingMinutes | None:
        minutes = self._rows.get(minutes_id)
        return minutes.model_copy(deep=True) if minutes else None

    def save(self, minutes: MeetingMinutes) -> MeetingMinutes:
        now = datetime.now(UTC)
        if minutes.id is None:
            minutes = minutes.model_copy(update={'id': next(self._ids), 'created_at': now, 'updated_at': now})
        else:
            minutes = minutes.model_copy(update={'updated_at': now})
        self._rows[minutes.id] = minutes
        return minutes.model_copy(deep=True)

    def find_by_participant(self, key: str, start: datetime, end: datetime) -> list[MeetingMinutes]:
        found = [m for m in self._rows.values() if key in m.participants and start <= m.meeting_date <= end]
        return sorted((m.model_copy(deep=True) for m in found), key=lambda m: m.meeting_date)
