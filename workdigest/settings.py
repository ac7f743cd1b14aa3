from zoneinfo import ZoneInfo

from pydantic import Field, computed_field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing_extensions import Self


class Settings(BaseSettings):
    """Core engine settings"""

    model_config = SettingsConfigDict(env_file='.env', extra='ignore', env_prefix='WORKDIGEST_')

    log_level: str = Field(default='INFO', examples=['info', 'DEBUG'])
    log_time_format: str | None = Field(default=None, examples=['%x %X', '%X'])
    timezone: str = Field(default='UTC', description='Timezone used to resolve calendar days into instants')

    @computed_field
    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @model_validator(mode='after')
    def ensure_logging_setup(self) -> Self:
        from workdigest.utilities.loggers import setup_logging

        setup_logging(self.log_level, log_time_format=self.log_time_format)
        return self


settings = Settings()
