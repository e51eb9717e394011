"""Application configuration using pydantic-settings with grouped env prefixes."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class AssignmentConfig(BaseSettings):
    """Assignment selector behaviour."""

    model_config = {"env_prefix": "APPEALS_ASSIGN_"}

    max_conflict_retries: int = 3
    exclude_previous_admin_on_reassign: bool = True
    auto_assign_on_create: bool = True


class EscalationConfig(BaseSettings):
    """SLA sweep configuration."""

    model_config = {"env_prefix": "APPEALS_ESCALATION_"}

    sla_hours: float = 72.0  # measured against Appeal.last_transition_at
    sweep_interval_seconds: int = 900
    run_in_app: bool = True  # start the periodic sweep with the API process
    reassign_after_escalation: bool = False


class RedisConfig(BaseSettings):
    """Redis store configuration."""

    model_config = {"env_prefix": "APPEALS_REDIS_"}

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    key_prefix: str = "appeals"


class LoggingConfig(BaseSettings):
    """Loguru sink configuration."""

    model_config = {"env_prefix": "APPEALS_LOG_"}

    level: str = "INFO"
    log_dir: str | None = None  # no file sink when unset
    filename: str = "appealrouter.log"
    rotation: str = "10 MB"
    retention: str = "14 days"
    json_logs: bool = False


class AppSettings(BaseSettings):
    """Root application settings aggregating all sub-configs."""

    model_config = {"env_prefix": "APPEALS_"}

    environment: Literal["dev", "uat", "prod"] = "dev"
    storage_backend: Literal["memory", "redis"] = "memory"

    assignment: AssignmentConfig = AssignmentConfig()
    escalation: EscalationConfig = EscalationConfig()
    redis: RedisConfig = RedisConfig()
    logging: LoggingConfig = LoggingConfig()
