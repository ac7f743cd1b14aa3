from pathlib import Path
from typing import Literal
from zoneinfo import ZoneInfo

from pydantic import Field, IPvAnyAddress, computed_field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing_extensions import Self


class OllamaSettings(BaseSettings):
    """Settings for the local Ollama narrative backend"""

    model_config = SettingsConfigDict(env_file='.env', extra='ignore', env_prefix='OLLAMA_')

    base_url: str = Field(default='http://localhost:11434')
    model: str = Field(default='llama3', examples=['llama3', 'mistral'])
    timeout_seconds: float = Field(default=120.0, gt=0)
    temperature: float = Field(default=0.7, ge=0, le=2)
    top_p: float = Field(default=0.9, gt=0, le=1)
    max_tokens: int = Field(default=1000, gt=0)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', extra='ignore', env_prefix='WORKDIGEST_APP_')

    timezone: str = Field(default='UTC')

    host: IPvAnyAddress = Field(default='0.0.0.0')
    port: int = Field(default=8000, ge=1024, le=65535)
    app_dir: Path = Field(default=Path(__file__).parent)

    log_level: str = Field(default='INFO', examples=['info', 'INFO'])
    log_time_format: str | None = Field(default=None, examples=['%x %X', '%X'])

    database_url: str | None = Field(
        default=None,
        description='SQLAlchemy database URL; defaults to a SQLite file under the app directory',
        examples=['sqlite:///workdigest.db', 'postgresql+psycopg://localhost/workdigest'],
    )

    narrative_backend: Literal['ollama', 'agent'] = Field(
        default='ollama', description='Which collaborator writes narratives'
    )
    ollama: OllamaSettings = Field(default_factory=OllamaSettings)

    # Scheduled daily generation
    daily_generation_enabled: bool = Field(default=True)
    daily_generation_interval_seconds: int = Field(default=24 * 60 * 60, ge=60, examples=[3600, 86400])
    daily_generation_initial_delay_seconds: int = Field(
        default=60,
        ge=0,
        description='Initial delay before the first scheduled generation run',
        examples=[30, 60, 300],
    )
    max_source_workers: int | None = Field(
        default=None, ge=1, description='Fetch sources in a thread pool of this size; sequential when unset'
    )

    @computed_field
    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @computed_field
    @property
    def resolved_database_url(self) -> str:
        return self.database_url or f'sqlite:///{self.app_dir / "workdigest.db"}'

    @model_validator(mode='after')
    def setup_logging(self) -> Self:
        from workdigest.utilities.loggers import setup_logging

        setup_logging(self.log_level, log_time_format=self.log_time_format)
        return self


settings = Settings()
