"""Application configuration via environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service-wide configuration options."""

    api_v1_prefix: str = "/v1"
    artifact_cache_ttl_seconds: int = 2 * 60 * 60
    long_stage_days: float = 30.0
    long_cycle_days: float = 14.0
    fallback_resolution_penalty: float = 0.0
    classifier_min_length: int = 10
    event_sink_backend: str = "off"
    event_sink_path: str = "data/review_events.jsonl"
    event_sink_webhook_url: str | None = None
    event_sink_batch_size: int = 25
    otel_enabled: bool = False
    otel_exporter: str = "console"

    model_config = SettingsConfigDict(env_prefix="reviewpulse_", env_file=".env", extra="ignore")


settings = Settings()
