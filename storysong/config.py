import logging
import os
from dataclasses import dataclass


def _int_env(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


@dataclass(frozen=True)
class Settings:
    redis_url: str = "redis://localhost:6379/0"
    testing: bool = False

    # Rate limiter: at most max_requests calls per window_seconds
    max_requests: int = 20
    window_seconds: int = 10

    job_ttl_seconds: int = 3600
    max_retries: int = 3
    # Cadence of the external scheduler; only used for wait estimates
    cron_interval_seconds: int = 60
    cron_secret: str = ""

    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-4o-mini"
    suno_api_key: str = ""
    http_timeout_seconds: float = 60.0

    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            redis_url=os.getenv("REDIS_URL", cls.redis_url),
            testing=os.getenv("TESTING") == "1",
            max_requests=_int_env("RATE_LIMIT_MAX_REQUESTS", cls.max_requests),
            window_seconds=_int_env("RATE_LIMIT_WINDOW_SECONDS", cls.window_seconds),
            job_ttl_seconds=_int_env("JOB_TTL_SECONDS", cls.job_ttl_seconds),
            max_retries=_int_env("MAX_RETRIES", cls.max_retries),
            cron_interval_seconds=_int_env("CRON_INTERVAL_SECONDS", cls.cron_interval_seconds),
            cron_secret=os.getenv("CRON_SECRET", ""),
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),
            openai_base_url=os.getenv("OPENAI_BASE_URL", cls.openai_base_url),
            openai_model=os.getenv("OPENAI_MODEL", cls.openai_model),
            suno_api_key=os.getenv("SUNO_API_KEY", ""),
            http_timeout_seconds=float(os.getenv("HTTP_TIMEOUT_SECONDS", str(cls.http_timeout_seconds))),
            log_level=os.getenv("LOG_LEVEL", cls.log_level),
        )


def configure_logging(settings: Settings) -> None:
    """Root handler for the server and worker entry points. A no-op when one is already installed."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
