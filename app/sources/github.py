from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from workdigest.observers.github import GitHubClient
from workdigest.utilities.loggers import get_logger

logger = get_logger('app.github')


class GitHubSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', env_prefix='GITHUB_', extra='ignore')

    enabled: bool = Field(default=False, description='Collect commits, pull requests and reviews from GitHub')
    token: str | None = Field(default=None, description='GitHub API token')
    base_url: str = Field(default='https://api.github.com', examples=['https://github.example.com/api/v3'])
    per_page: int = Field(default=100, ge=1, le=100)


github_settings = GitHubSettings()


def build_client(settings: GitHubSettings = github_settings) -> GitHubClient | None:
    if not settings.enabled:
        return None
    if not settings.token:
        logger.warning('GitHub is enabled but GITHUB_TOKEN is not set; using unauthenticated requests')
    return GitHubClient(base_url=settings.base_url, token=settings.token, per_page=settings.per_page)
