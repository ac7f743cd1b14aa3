from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime

from starlette.background import BackgroundTask

from workdigest.utilities.loggers import get_logger

logger = get_logger('background')


@dataclass
class ScheduledJob:
    """A background task run every `interval` seconds after an initial `delay`"""

    name: str
    task: BackgroundTask
    interval: float
    delay: float = 0
    runs: int = field(default=0, init=False)
    failures: int = field(default=0, init=False)
    last_run: datetime | None = field(default=None, init=False)

    async def run_forever(self) -> None:
        if self.delay > 0:
            await asyncio.sleep(self.delay)

        while True:
            self.last_run = datetime.now(UTC)
            try:
                await self.task()
            except Exception as e:
                self.failures += 1
                logger.error(f'Error in scheduled job {self.name!r}: {e}', exc_info=True)
            self.runs += 1
            await asyncio.sleep(self.interval)


class PeriodicTaskManager:
    """Runs scheduled jobs side by side on the event loop"""

    def __init__(self, jobs: Sequence[ScheduledJob]) -> None:
        names = [job.name for job in jobs]
        if len(names) != len(set(names)):
            raise ValueError(f'Scheduled job names must be unique: {names}')
        self.jobs = {job.name: job for job in jobs}
        self.running: dict[str, asyncio.Task] = {}

    async def start_all(self) -> None:
        for name, job in self.jobs.items():
            if name in self.running:
                continue
            logger.info(f'Starting scheduled job {name!r} every {job.interval:g}s')
            self.running[name] = asyncio.create_task(job.run_forever(), name=name)

    async def stop_all(self) -> None:
        for name, task in self.running.items():
            logger.debug(f'Stopping scheduled job {name!r}')
            task.cancel()
        await asyncio.gather(*self.running.values(), return_exceptions=True)
        self.running.clear()
