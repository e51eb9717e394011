"""Tests for configuration defaults and env overrides."""

from __future__ import annotations

from appealrouter.core.config import AppSettings, AssignmentConfig, EscalationConfig, RedisConfig


def test_default_settings():
    settings = AppSettings()
    assert settings.environment == "dev"
    assert settings.storage_backend == "memory"


def test_assignment_config_defaults():
    config = AssignmentConfig()
    assert config.max_conflict_retries == 3
    assert config.exclude_previous_admin_on_reassign is True
    assert config.auto_assign_on_create is True


def test_escalation_config_defaults():
    config = EscalationConfig()
    assert config.sla_hours == 72.0
    assert config.sweep_interval_seconds == 900
    assert config.reassign_after_escalation is False


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("APPEALS_ESCALATION_SLA_HOURS", "24")
    monkeypatch.setenv("APPEALS_REDIS_KEY_PREFIX", "staging")
    monkeypatch.setenv("APPEALS_STORAGE_BACKEND", "redis")
    assert EscalationConfig().sla_hours == 24.0
    assert RedisConfig().key_prefix == "staging"
    assert AppSettings().storage_backend == "redis"
