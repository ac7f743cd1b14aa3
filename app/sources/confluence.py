from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from workdigest.observers.confluence import ConfluenceClient
from workdigest.utilities.loggers import get_logger

logger = get_logger('app.confluence')


class ConfluenceSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', env_prefix='CONFLUENCE_', extra='ignore')

    enabled: bool = Field(default=False, description='Collect pages and blog posts from Confluence')
    base_url: str | None = Field(default=None, examples=['https://example.atlassian.net'])
    username: str | None = None
    api_token: str | None = None


confluence_settings = ConfluenceSettings()


def build_client(settings: ConfluenceSettings = confluence_settings) -> ConfluenceClient | None:
    if not settings.enabled:
        return None
    if not (settings.base_url and settings.username and settings.api_token):
        logger.error('Confluence is enabled but CONFLUENCE_BASE_URL, CONFLUENCE_USERNAME or CONFLUENCE_API_TOKEN is missing')
        return None
    return ConfluenceClient(base_url=settings.base_url, username=settings.username, api_token=settings.api_token)
