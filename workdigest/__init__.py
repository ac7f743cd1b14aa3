from .access import AccessControlEngine
from .aggregator import ActivityAggregator
from .meetings import MeetingMinutesService
from .orchestrator import SummaryOrchestrator
from .scoring import score
from .settings import settings  # noqa: F401

__all__ = ['AccessControlEngine', 'ActivityAggregator', 'MeetingMinutesService', 'SummaryOrchestrator', 'score']
