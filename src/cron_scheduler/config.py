"""Settings for the scheduler and worker, loaded from environment variables."""

import logging
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import tzlocal
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SchedulerSettings(BaseSettings):
    """
    Scheduler configuration. Every value can be set with a ``CRON_SCHEDULER_`` prefixed
    environment variable, e.g. ``CRON_SCHEDULER_TRANSPORT_DSN=memory://nice``.
    """
    timezone: str = Field(default="UTC", description="Default timezone, 'local' uses the host timezone")
    transport_dsn: str = Field(default="memory://first_in_first_out", description="Transport connection string")
    policy: str = Field(default="first_in_first_out", description="Schedule policy applied to due tasks")
    sleep_duration_delay: float = Field(default=1, ge=0, description="Seconds between two worker cycles")
    task_limit: Optional[int] = Field(default=None, ge=1, description="Stop the worker after N executed tasks")
    time_limit: Optional[float] = Field(default=None, gt=0, description="Stop the worker after N seconds")
    lock_timeout: Optional[float] = Field(default=None, gt=0, description="Lock expiry for stores that support it")
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_prefix="CRON_SCHEDULER_", env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @field_validator("timezone")
    def check_timezone(cls, v: str) -> str:
        if v == "local":
            return tzlocal.get_localzone_name()
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone '{v}'") from e
        return v

    @field_validator("log_level")
    def check_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level '{v}'")
        return level


def configure_logging(level: str = "INFO") -> None:
    """
    Configure root logging for applications embedding the scheduler.
    The library itself only creates module loggers.
    """
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


settings = SchedulerSettings()
