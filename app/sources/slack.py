from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from workdigest.observers.slack import SlackClient
from workdigest.utilities.loggers import get_logger

logger = get_logger('app.slack')


class SlackSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', env_prefix='SLACK_', extra='ignore')

    enabled: bool = Field(default=False, description='Collect chat activity from Slack')
    user_token: str | None = Field(default=None, description='Slack user token with the search:read scope')
    page_size: int = Field(default=100, ge=1, le=100)


slack_settings = SlackSettings()


def build_client(settings: SlackSettings = slack_settings) -> SlackClient | None:
    if not settings.enabled:
        return None
    if not settings.user_token:
        logger.error('Slack is enabled but SLACK_USER_TOKEN is not set')
        return None
    return SlackClient(token=settings.user_token, page_size=settings.page_size)
