from datetime import date
from typing import Annotated

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from app.api.dependencies import Access, Identities, Orchestrator, Requester
from app.api.errors import forbidden, http_errors
from workdigest.types import Identity, Summary, SummaryType
from workdigest.utilities.loggers import get_logger

router = APIRouter(prefix='/api/summaries', tags=['summaries'])
logger = get_logger('app.api.summaries')


class GenerateRequest(BaseModel):
    owner: str | None = Field(default=None, description='Defaults to the requester')
    summary_date: date = Field(description='The day, or the first day of the week/month/year')


def _target(requester: Identity, owner: str | None, identities: Identities, access: Access) -> str:
    """Resolve and authorize the owner a request is about"""
    if owner is None or owner == requester.key:
        return requester.key
    if (target := identities.find_by_key(owner)) is None:
        raise HTTPException(status_code=404, detail=f'Identity not found: {owner}')
    if not access.can_access(requester, target):
        raise forbidden(requester.key, f'summaries of {owner}')
    return owner


@router.post('/{summary_type}')
def generate_summary(
    summary_type: SummaryType,
    request: GenerateRequest,
    requester: Requester,
    identities: Identities,
    access: Access,
    orchestrator: Orchestrator,
) -> Summary:
    """Generate (or return the existing) summary of a given type"""
    owner = _target(requester, request.owner, identities, access)
    logger.info(f'{requester.key} requested a {summary_type.value} summary of {owner} for {request.summary_date}')

    generate = {
        SummaryType.DAILY: orchestrator.generate_daily,
        SummaryType.WEEKLY: orchestrator.generate_weekly,
        SummaryType.MONTHLY: orchestrator.generate_monthly,
        SummaryType.YEARLY: orchestrator.generate_yearly,
    }[summary_type]
    with http_errors():
        return generate(owner, request.summary_date)


@router.get('')
def list_summaries(
    requester: Requester,
    identities: Identities,
    access: Access,
    orchestrator: Orchestrator,
    start: date,
    end: date,
    owner: str | None = None,
    summary_type: Annotated[SummaryType | None, Query(alias='type')] = None,
) -> list[Summary]:
    """Summaries of one identity (the requester by default) within a date range"""
    if end < start:
        raise HTTPException(status_code=422, detail='end must not be before start')
    owner = _target(requester, owner, identities, access)
    return orchestrator.get_by_owner_and_range(owner, start, end, summary_type)


@router.get('/team')
def team_summaries(
    requester: Requester,
    orchestrator: Orchestrator,
    start: date,
    end: date,
    summary_type: Annotated[SummaryType | None, Query(alias='type')] = None,
) -> list[Summary]:
    """Summaries of the requester's direct reports"""
    if not requester.role.manages_people:
        raise forbidden(requester.key, 'team summaries')
    return orchestrator.get_team_summaries(requester.key, start, end, summary_type)


@router.get('/{summary_id}')
def get_summary(summary_id: int, requester: Requester, access: Access, orchestrator: Orchestrator) -> Summary:
    with http_errors():
        summary = orchestrator.get_by_id(summary_id)
    if not access.can_access(requester, summary):
        raise forbidden(requester.key, f'summary {summary_id}')
    return summary


@router.post('/{summary_id}/regenerate')
def regenerate_summary(summary_id: int, requester: Requester, access: Access, orchestrator: Orchestrator) -> Summary:
    with http_errors():
        summary = orchestrator.get_by_id(summary_id)
        if not access.can_access(requester, summary):
            raise forbidden(requester.key, f'summary {summary_id}')
        logger.info(f'{requester.key} is regenerating summary {summary_id}')
        return orchestrator.regenerate(summary_id)
