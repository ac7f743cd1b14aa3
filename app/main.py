import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from starlette.background import BackgroundTask

from app.api.dependencies import get_enabled_sources, get_generator, get_identity_store, get_orchestrator
from app.api.endpoints import meetings, summaries
from app.settings import settings
from workdigest.background.task_manager import PeriodicTaskManager, ScheduledJob
from workdigest.narrative import OllamaNarrativeGenerator
from workdigest.utilities.loggers import get_logger

logger = get_logger('main')


def _run_daily_generation() -> None:
    from app.background import generate_daily_summaries

    generate_daily_summaries(get_orchestrator(), get_identity_store().all())


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage the scheduled daily generation"""
    jobs: list[ScheduledJob] = []

    if sources := get_enabled_sources():
        logger.info(f'👀 Collecting activity from: {sources!r}')
    else:
        logger.warning_style('☹️ No activity sources enabled, summaries will only contain placeholders')

    generator = get_generator()
    if isinstance(generator, OllamaNarrativeGenerator) and not await asyncio.to_thread(generator.is_available):
        logger.warning_style(f'🦙 Ollama is not reachable at {generator.base_url}, new summaries will fail until it is')

    if settings.daily_generation_enabled:
        jobs.append(
            ScheduledJob(
                name='daily-summaries',
                task=BackgroundTask(_run_daily_generation),
                interval=settings.daily_generation_interval_seconds,
                delay=settings.daily_generation_initial_delay_seconds,
            )
        )
        logger.info(
            f'🗓️ Generating daily summaries every {settings.daily_generation_interval_seconds} seconds '
            f'(after {settings.daily_generation_initial_delay_seconds}s initial delay)'
        )

    task_manager = PeriodicTaskManager(jobs)
    await task_manager.start_all()

    try:
        yield
    finally:
        await task_manager.stop_all()


app = FastAPI(
    title='Work Digest Service',
    description='Daily, weekly, monthly and yearly summaries of engineering work, plus meeting minutes',
    lifespan=lifespan,
    docs_url='/docs',
    redoc_url='/redoc',
    openapi_url='/openapi.json',
)

app.add_middleware(GZipMiddleware, minimum_size=1000)

app.add_middleware(
    CORSMiddleware,
    allow_origins=['*'],
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)


@app.get('/health', include_in_schema=False)
def health() -> dict[str, object]:
    return {'status': 'ok', 'sources': get_enabled_sources()}


app.include_router(summaries.router)
app.include_router(meetings.router)
