from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime

from workdigest.observers.base import SourceClient
from workdigest.types import KIND_SECTIONS, ActivityRecord, Identity, Section, WorkDataDocument
from workdigest.utilities.loggers import get_logger

logger = get_logger('aggregator')


def format_section(section: Section, records: Sequence[ActivityRecord]) -> str:
    """Render records as a bulleted list, or the section's placeholder if there are none"""
    if not records:
        return section.sentinel
    return '\n'.join(record.render() for record in records)


class ActivityAggregator:
    """Collects activity from every configured source into one work-data document.

    Sources are fetched one after another unless `max_workers` is set, in which
    case they are fetched in a thread pool. Either way the document is built
    only once every source has answered (or failed), in client order.
    """

    def __init__(self, clients: Sequence[SourceClient], max_workers: int | None = None) -> None:
        self.clients = list(clients)
        self.max_workers = max_workers

    def _fetch(self, client: SourceClient, identity: Identity, start: datetime, end: datetime) -> list[ActivityRecord]:
        if not (handle := identity.handle_for(client.source)):
            logger.debug(f'No {client.source} account configured for {identity.key}, skipping')
            return []
        try:
            return client.fetch_activity(handle, start, end)
        except Exception as e:
            logger.error(f'{client.source} client failed for {identity.key}: {e}')
            return []

    def collect(self, identity: Identity, start: datetime, end: datetime) -> list[list[ActivityRecord]]:
        if self.max_workers and len(self.clients) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                return list(pool.map(lambda c: self._fetch(c, identity, start, end), self.clients))
        return [self._fetch(client, identity, start, end) for client in self.clients]

    def aggregate(self, identity: Identity, start: datetime, end: datetime) -> WorkDataDocument:
        buckets: dict[Section, list[ActivityRecord]] = {section: [] for section in Section}
        for records in self.collect(identity, start, end):
            for record in records:
                buckets[KIND_SECTIONS[record.kind]].append(record)

        counts = ', '.join(f'{section.value}={len(records)}' for section, records in buckets.items() if records)
        logger.info(f'Aggregated activity for {identity.key}: {counts or "nothing found"}')

        return WorkDataDocument(
            sections={section: format_section(section, records) for section, records in buckets.items()}
        )
