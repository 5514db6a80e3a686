"""Configuration management for Vigia.

Loads settings from environment variables (and an optional .env file) using
pydantic-settings. No secret is mandatory: the Portal da Transparência key is
optional and every feature that needs it degrades gracefully without it.

Usage:
    from vigia.config import settings

    print(settings.cache_dir)
    print(settings.fast_cache_ttl)
"""

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Vigia configuration from environment variables.

    Attributes:
        log_level: Logging verbosity (DEBUG, INFO, WARNING, ERROR)
        cache_dir: Directory for the durable Parquet entity cache
        fast_cache_ttl: In-process cache window (seconds)
        durable_cache_ttl: Durable cache window (seconds), must exceed fast_cache_ttl
        refresh_interval: Periodic refresh cadence (seconds)
        election_check_interval: Future-election availability poll cadence (seconds)
        health_timeout: Per-probe timeout for source reachability checks (seconds)
        fetch_concurrency: Max identities aggregated concurrently
        transparencia_api_key: Portal da Transparência key (header chave-api-dados)
        staff_roster_path: CSV with declared office staffing per entity
        future_election_year: Election cycle watched for publication
        state_code: UF whose delegation is tracked
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # System Settings
    log_level: str = Field(default="INFO", description="Logging level")
    cache_dir: str = Field(default="data", description="Durable cache directory")

    # Cache windows
    fast_cache_ttl: float = Field(default=60 * 60, gt=0, description="In-process TTL (s)")
    durable_cache_ttl: float = Field(default=24 * 60 * 60, gt=0, description="Durable TTL (s)")

    # Scheduling
    refresh_interval: float = Field(default=6 * 60 * 60, gt=0, description="Refresh cadence (s)")
    election_check_interval: float = Field(
        default=12 * 60 * 60,
        gt=0,
        description="Future election availability poll cadence (s)",
    )
    health_timeout: float = Field(default=5.0, gt=0, le=60, description="Probe timeout (s)")
    fetch_concurrency: int = Field(
        default=4,
        ge=1,
        le=50,
        description="Max identities aggregated concurrently",
    )

    # Portal da Transparência (optional, amendments adapter disabled if absent)
    transparencia_api_key: str | None = Field(
        default=None,
        description="Portal da Transparência API key (https://portaldatransparencia.gov.br/api-de-dados)",
    )

    # Declared staffing (optional, staffing field falls back to defaults)
    staff_roster_path: str | None = Field(
        default=None,
        description="CSV with columns entity_id, staff_count, max_staff, monthly_cost, max_monthly_cost",
    )

    # Domain
    future_election_year: int = Field(default=2026, ge=2024, description="Watched election cycle")
    state_code: str = Field(default="PE", min_length=2, max_length=2, description="Tracked UF")

    # Rate Limiting (conservative defaults, sources publish no limits)
    camara_rate_limit: int = Field(default=5, ge=1, description="Câmara requests/second")
    senado_rate_limit: int = Field(default=5, ge=1, description="Senado requests/second")
    tse_rate_limit: int = Field(default=2, ge=1, description="TSE requests/second")
    transparencia_rate_limit: int = Field(default=3, ge=1, description="Portal requests/second")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid:
            raise ValueError(f"log_level must be one of {valid}, got {v}")
        return v_upper

    @field_validator("state_code")
    @classmethod
    def validate_state_code(cls, v: str) -> str:
        """UF codes are stored uppercase."""
        return v.upper()

    @model_validator(mode="after")
    def validate_cache_windows(self) -> "Settings":
        """The durable window must outlive the in-process window."""
        if self.durable_cache_ttl <= self.fast_cache_ttl:
            raise ValueError(
                f"durable_cache_ttl ({self.durable_cache_ttl}) must exceed "
                f"fast_cache_ttl ({self.fast_cache_ttl})"
            )
        return self


# Global settings instance, loaded once at import
settings = Settings()
