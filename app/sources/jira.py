from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from workdigest.observers.jira import JiraClient
from workdigest.utilities.loggers import get_logger

logger = get_logger('app.jira')


class JiraSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', env_prefix='JIRA_', extra='ignore')

    enabled: bool = Field(default=False, description='Collect tickets and resolved customer issues from Jira')
    base_url: str | None = Field(default=None, examples=['https://example.atlassian.net'])
    username: str | None = None
    api_token: str | None = None
    customer_projects: list[str] = Field(
        default_factory=list,
        description='Projects whose resolved issues count as customer issues',
        examples=[['SUP', 'CS']],
    )


jira_settings = JiraSettings()


def build_client(settings: JiraSettings = jira_settings) -> JiraClient | None:
    if not settings.enabled:
        return None
    if not (settings.base_url and settings.username and settings.api_token):
        logger.error('Jira is enabled but JIRA_BASE_URL, JIRA_USERNAME or JIRA_API_TOKEN is missing')
        return None
    return JiraClient(
        base_url=settings.base_url,
        username=settings.username,
        api_token=settings.api_token,
        customer_projects=settings.customer_projects,
    )
