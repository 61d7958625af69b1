from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Admission-control settings loaded from environment variables.

    All settings can be configured via environment variables or .env file.
    """

    # Header the host gate reads the caller identity from
    access_token_header: str = "X-Access-Token"

    # Fixed window rule defaults
    rate_limit_max_requests: int = 5
    rate_limit_window_seconds: float = 60.0

    # Minimum interval rule defaults
    min_interval_seconds: float = 5.0

    # Token bucket rule defaults
    token_bucket_capacity: float = 10.0
    token_bucket_refill_amount: float = 3.0
    token_bucket_refill_interval_seconds: float = 1.0

    # Region delegation: identities equal to this token use the primary rule
    region_primary_token: str = "US-Token"

    # Entry TTL = multiplier * rule horizon (window, interval, full refill)
    storage_ttl_multiplier: float = 2.0

    # In-memory storage LRU bound
    memory_storage_max_entries: int = 10000

    # Redis settings (optional)
    redis_enabled: bool = False
    redis_url: str = "redis://localhost:6379/0"
    redis_key_prefix: str = "admission:"
    # Server-side key lock: expiry for a lost holder, and how long to wait for it
    redis_lock_timeout_seconds: float = 5.0
    redis_lock_blocking_timeout_seconds: float = 5.0

    # If True, deny requests when the storage backend is unavailable
    rate_limit_fail_closed: bool = False

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "text"  # text | structured | json

    @field_validator("rate_limit_max_requests", "memory_storage_max_entries")
    @classmethod
    def validate_count_positive(cls, v: int) -> int:
        """Validate count limits are at least 1."""
        if v < 1:
            raise ValueError("Rate limit counts must be at least 1")
        return v

    @field_validator(
        "rate_limit_window_seconds",
        "min_interval_seconds",
        "token_bucket_capacity",
        "token_bucket_refill_amount",
        "token_bucket_refill_interval_seconds",
        "storage_ttl_multiplier",
        "redis_lock_timeout_seconds",
        "redis_lock_blocking_timeout_seconds",
    )
    @classmethod
    def validate_duration_positive(cls, v: float) -> float:
        """Validate durations and token amounts are positive."""
        if v <= 0:
            raise ValueError("Durations and token amounts must be positive")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in ("text", "structured", "json"):
            raise ValueError("log_format must be one of: text, structured, json")
        return v

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


# Global settings instance
settings = Settings()
