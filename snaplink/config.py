from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Loading priority (highest to lowest):
    1. Environment variables
    2. .env file
    3. Default values below
    """

    # Environment
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Application
    app_name: str = "SnapLink"
    app_version: str = "1.0.0"

    # Database (links, counters, feedback)
    database_url: str = "sqlite:///./snaplink.db"
    store_timeout_seconds: int = 5

    # Short codes
    base_url: str = "http://127.0.0.1:8000"
    short_code_min_length: int = 7
    short_code_salt: str = "snaplink-default-salt"  # Fixed for the deployment's lifetime

    # Counter settings
    counter_backend: str = "redis"  # Options: "redis", "database", "memory"
    counter_key: str = "url_counter"

    # Cache settings
    cache_backend: str = "redis"  # Options: "redis", "memory", "null"
    redis_url: str = "redis://localhost:6379/0"
    cache_ttl: int = 86400  # 24 hours
    cache_timeout_seconds: float = 2.0

    # Geolocation
    geo_backend: str = "ip-api"  # Options: "ip-api", "null"
    geo_api_url: str = "http://ip-api.com/json/{ip}"
    geo_timeout_seconds: float = 3.0

    # Click aggregation
    aggregator_max_workers: int = 4
    aggregator_max_in_flight: int = 1000
    aggregator_shutdown_grace_seconds: float = 5.0

    # Feedback
    feedback_interval_days: int = 7

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Create settings instance
settings = Settings()
