from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    app_name: str = "Interview Core"
    debug: bool = False

    # Redis
    redis_url: str = "redis://localhost:6379"
    redis_key_prefix: str = "interview"  # namespace for every session-engine key
    redis_max_connections: int = 50
    redis_socket_timeout_seconds: float = 5.0
    redis_health_check_interval_seconds: int = 30

    # Session timing
    tick_interval_seconds: float = 1.0
    snapshot_interval_seconds: float = 120.0
    snapshot_cap: int = 20  # K: most recent snapshots kept per question

    # Submission guard (mirrors the evaluator's own "too short" check)
    min_submission_length: int = 10

    # External code evaluator
    evaluator_url: str = "http://localhost:8787/evaluate-code"
    evaluator_api_key: str = ""
    evaluator_timeout_seconds: float = 60.0
    evaluator_max_attempts: int = 3
    default_expected_time_seconds: int = 600

    # Finalize
    finalize_grace_seconds: float = 10.0  # bounded wait for in-flight evaluations
    persistence_max_attempts: int = 3
    persistence_retry_wait_seconds: float = 0.5  # exponential backoff multiplier
    points_per_solved_question: int = 100
    shutdown_finalize_timeout_seconds: float = 15.0  # per unfinished session at shutdown

    # Free-practice editor autosave
    autosave_quiet_seconds: float = 2.0

    # Calendar days for streaks and review dates
    calendar_timezone: str = "UTC"  # env: CALENDAR_TIMEZONE (IANA zone name)


@lru_cache
def get_settings() -> Settings:
    return Settings()
