from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "redirect-categories"
    environment: str = "dev"
    api_key_header: str = "X-API-Key"
    machine_credentials_json: str | None = None

    wiki_host: str | None = None
    wiki_path: str = "/w/"
    wiki_scheme: str = "https"
    wiki_username: str | None = None
    wiki_password: str | None = None
    wiki_user_agent: str = "redirect-categories/0.1"

    content_language: str = "en"
    category_namespace_name: str | None = None
    system_user_name: str | None = None
    edit_summary: str | None = None

    inline_keep_empty_annotation: bool = True
    recategorize_preserve_annotation: bool = True
    recategorize_failure_policy: Literal["abort", "continue"] = "abort"
    job_claim_lease_seconds: int = 600

    api_base_url: str = "http://localhost:8000"
    module_id: str = "local-worker"
    api_key: str = "local-worker-key"
    poll_interval_seconds: float = 2.0
    max_backoff_seconds: float = 15.0
    lease_reaper_interval_seconds: float = 30.0
    lease_reaper_batch_size: int = 100

    otel_enabled: bool = True
    otel_service_name: str = "redirect-categories"
    otel_exporter_otlp_endpoint: str | None = None
    otel_exporter_otlp_headers: str | None = None
    otel_trace_sample_ratio: float = 1.0
    otel_log_correlation: bool = True

    model_config = SettingsConfigDict(env_prefix="RTC_", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()
