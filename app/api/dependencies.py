from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header, HTTPException
from sqlalchemy.engine import Engine

from app.settings import settings
from app.sources import calendar, confluence, github, jira, slack
from app.storage_sqlite import SQLIdentityStore, SQLMeetingStore, SQLSummaryStore, create_storage_engine
from workdigest.access import AccessControlEngine
from workdigest.aggregator import ActivityAggregator
from workdigest.meetings import MeetingMinutesService
from workdigest.narrative import NarrativeGenerator, OllamaNarrativeGenerator
from workdigest.observers.base import SourceClient
from workdigest.orchestrator import SummaryOrchestrator
from workdigest.store import IdentityStore
from workdigest.types import Identity
from workdigest.utilities.loggers import get_logger

logger = get_logger('app.dependencies')

SOURCES = {
    'github': github,
    'jira': jira,
    'confluence': confluence,
    'slack': slack,
    'calendar': calendar,
}


@lru_cache
def get_engine() -> Engine:
    return create_storage_engine(settings.resolved_database_url)


def get_identity_store() -> IdentityStore:
    return SQLIdentityStore(get_engine())


@lru_cache
def get_source_clients() -> list[SourceClient]:
    """Clients for every enabled and fully configured source"""
    return [client for module in SOURCES.values() if (client := module.build_client()) is not None]


def get_enabled_sources() -> list[str]:
    return [client.source for client in get_source_clients()]


@lru_cache
def get_generator() -> NarrativeGenerator:
    if settings.narrative_backend == 'agent':
        from app.agents import AgentNarrativeGenerator

        return AgentNarrativeGenerator()

    ollama = settings.ollama
    return OllamaNarrativeGenerator(
        base_url=ollama.base_url,
        model=ollama.model,
        temperature=ollama.temperature,
        top_p=ollama.top_p,
        max_tokens=ollama.max_tokens,
        timeout_seconds=ollama.timeout_seconds,
    )


@lru_cache
def get_orchestrator() -> SummaryOrchestrator:
    return SummaryOrchestrator(
        summaries=SQLSummaryStore(get_engine()),
        identities=get_identity_store(),
        aggregator=ActivityAggregator(get_source_clients(), max_workers=settings.max_source_workers),
        generator=get_generator(),
        tz=settings.tz,
    )


@lru_cache
def get_meeting_service() -> MeetingMinutesService:
    return MeetingMinutesService(SQLMeetingStore(get_engine()), get_generator())


def get_access(identities: Annotated[IdentityStore, Depends(get_identity_store)]) -> AccessControlEngine:
    return AccessControlEngine(identities)


def get_requester(
    identities: Annotated[IdentityStore, Depends(get_identity_store)],
    x_username: Annotated[str | None, Header()] = None,
) -> Identity:
    """Resolve the calling identity from the `X-Username` header set by the auth proxy"""
    if not x_username:
        raise HTTPException(status_code=401, detail='Missing X-Username header')
    if (identity := identities.find_by_key(x_username)) is None:
        logger.warning(f'Request from unknown identity {x_username!r}')
        raise HTTPException(status_code=401, detail=f'Unknown identity: {x_username}')
    return identity


Requester = Annotated[Identity, Depends(get_requester)]
Access = Annotated[AccessControlEngine, Depends(get_access)]
Orchestrator = Annotated[SummaryOrchestrator, Depends(get_orchestrator)]
Meetings = Annotated[MeetingMinutesService, Depends(get_meeting_service)]
Identities = Annotated[IdentityStore, Depends(get_identity_store)]
