from datetime import date, datetime, timedelta

from prefect import flow, task
from prefect.cache_policies import NONE

from app.settings import settings
from workdigest.errors import WorkdigestError
from workdigest.orchestrator import SummaryOrchestrator
from workdigest.types import Identity
from workdigest.utilities.loggers import get_logger

logger = get_logger('app.background')


def _yesterday() -> date:
    return datetime.now(settings.tz).date() - timedelta(days=1)


@task(task_run_name='generate daily summary for {identity.key} on {day}', cache_policy=NONE)
def generate_daily_summary(orchestrator: SummaryOrchestrator, identity: Identity, day: date) -> int | None:
    try:
        return orchestrator.generate_daily(identity.key, day).id
    except WorkdigestError as e:
        logger.error(f'Failed to generate daily summary for {identity.key} on {day}: {e}')
        return None


@flow(flow_run_name='generate daily summaries')
def generate_daily_summaries(
    orchestrator: SummaryOrchestrator, identities: list[Identity], day: date | None = None
) -> list[int]:
    """Generate the daily summary of every identity, by default for yesterday"""
    day = day or _yesterday()
    logger.info_style(f'Generating daily summaries for {len(identities)} identities on {day}')

    generated = [
        summary_id
        for identity in identities
        if (summary_id := generate_daily_summary(orchestrator, identity, day)) is not None
    ]
    logger.info_kv('Daily summaries generated', f'{len(generated)}/{len(identities)}')
    return generated
