"""Hierarchical authorization: who may see or regenerate whose records.

Rules, in order:

1. admins may access anything
2. everyone may access their own records
3. meeting participants may access the meeting; otherwise the remaining
   rules are applied to each participant in turn
4. managers and leaders may access anyone whose manager they are, or anyone
   reachable by walking down their reporting tree
5. nobody else

The reporting tree comes from an external store and is not guaranteed to be
acyclic, so every walk carries a visited set.
"""

from collections import deque
from collections.abc import Iterator

from workdigest.store import IdentityStore
from workdigest.types import Identity, MeetingMinutes, Role, Summary
from workdigest.utilities.loggers import get_logger

logger = get_logger('access')

Target = Identity | Summary | MeetingMinutes


class AccessControlEngine:
    def __init__(self, identities: IdentityStore) -> None:
        self.identities = identities

    def can_access(self, requester: Identity, target: Target) -> bool:
        if requester.role == Role.ADMIN:
            return True

        if isinstance(target, MeetingMinutes):
            if requester.key in target.participants:
                return True
            return any(self._can_access_key(requester, key) for key in target.participants)

        owner_key = target.owner if isinstance(target, Summary) else target.key
        return self._can_access_key(requester, owner_key)

    def _can_access_key(self, requester: Identity, target_key: str) -> bool:
        if target_key == requester.key:
            return True
        if not requester.role.manages_people:
            return False

        target = self.identities.find_by_key(target_key)
        if target is None:
            logger.debug(f'Unknown identity {target_key!r}, denying {requester.key}')
            return False
        if target.manager_key == requester.key:
            return True
        return self.manages(requester.key, target_key)

    def _walk(self, manager_key: str) -> Iterator[Identity]:
        visited = {manager_key}
        queue = deque([manager_key])
        while queue:
            for report in self.identities.find_direct_reports(queue.popleft()):
                if report.key not in visited:
                    visited.add(report.key)
                    queue.append(report.key)
                    yield report

    def manages(self, manager_key: str, target_key: str) -> bool:
        """Return True if `target_key` sits anywhere below `manager_key`"""
        return any(report.key == target_key for report in self._walk(manager_key))

    def reporting_tree(self, manager_key: str) -> list[Identity]:
        """Everyone below `manager_key`, breadth first"""
        return list(self._walk(manager_key))
