from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from workdigest.observers.base import SourceClient
from workdigest.utilities.loggers import get_logger

logger = get_logger('app.calendar')


class CalendarSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', env_prefix='CALENDAR_', extra='ignore')

    enabled: bool = Field(default=False, description='Collect attended meetings from Google Calendar')
    credentials_path: Path = Field(
        default=Path(__file__).parent.parent / 'service_account.json',
        description='Service account key with domain-wide delegation',
    )
    max_results: int = Field(default=250, ge=1, le=2500)


calendar_settings = CalendarSettings()


def build_client(settings: CalendarSettings = calendar_settings) -> SourceClient | None:
    if not settings.enabled:
        return None
    if not settings.credentials_path.exists():
        logger.error(f'Calendar is enabled but no credentials were found at {settings.credentials_path}')
        return None

    from workdigest.observers.calendar import GoogleCalendarClient

    return GoogleCalendarClient(credentials_path=settings.credentials_path, max_results=settings.max_results)
