from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()

DEFAULT_DISPOSABLE_DOMAINS = (
    "tempmail.com,guerrillamail.com,10minutemail.com,throwaway.email,"
    "mailinator.com,trashmail.com,maildrop.cc,getnada.com"
)


class MockEmployee(BaseModel):
    id_number: str
    passport_number: str = ""
    staff_number: str = ""
    full_name: str = ""
    department: str = ""
    exit_date: str | None = None


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Alumni Registry"
    app_env: str = "development"
    app_host: str = "127.0.0.1"
    app_port: int = 8080
    log_level: str = "INFO"

    database_url: str = "sqlite:///./data/alumni.db"
    data_dir: Path = Path("./data")
    cors_origins: str = "http://127.0.0.1:8080"
    public_base_url: str = "http://127.0.0.1:8080"

    registration_number_prefix: str = "ALM"
    rejection_reason_min_length: int = 10
    verification_token_ttl_days: int = 30
    disposable_email_domains: str = DEFAULT_DISPOSABLE_DOMAINS

    erp_base_url: str = ""
    erp_roster_endpoint: str = "/api/ex-employees"
    erp_lookup_endpoint: str = "/api/ex-employees/{national_id}"
    erp_username: str = ""
    erp_password: str = ""
    erp_timeout_sec: float = 10.0
    erp_retry_count: int = 3
    erp_retry_backoff_sec: float = 2.0
    erp_circuit_failure_threshold: int = 5
    erp_circuit_sampling_sec: float = 60.0
    erp_circuit_break_sec: float = 30.0

    erp_enable_mock_mode: bool = False
    erp_mock_employees: list[MockEmployee] = Field(default_factory=list)
    erp_enable_caching: bool = True
    erp_cache_refresh_interval_min: int = 60
    erp_refresh_on_startup: bool = True
    erp_live_fallback_on_cache_miss: bool = False
    erp_name_match_threshold: float = 80.0
    erp_validate_on_submit: bool = True

    approval_job_enabled: bool = True
    approval_job_interval_sec: int = 120
    approval_batch_size: int = 100
    approval_max_retry_attempts: int = 5
    approval_retry_delay_min: int = 10
    approval_min_age_sec: int = 1
    approval_actor: str = "System"

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, value: str) -> str:
        allowed = {"development", "staging", "production", "test"}
        if value not in allowed:
            raise ValueError(f"app_env must be one of {sorted(allowed)}")
        return value

    @field_validator("erp_name_match_threshold")
    @classmethod
    def validate_threshold(cls, value: float) -> float:
        if not 0 <= value <= 100:
            raise ValueError("erp_name_match_threshold must be between 0 and 100")
        return value

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def disposable_domain_set(self) -> frozenset[str]:
        return frozenset(
            domain.strip().lower() for domain in self.disposable_email_domains.split(",") if domain.strip()
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
