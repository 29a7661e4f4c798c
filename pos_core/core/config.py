"""Application configuration."""

from os import getenv

from pydantic import BaseModel


class Settings(BaseModel):
    """Runtime settings for the application."""

    app_name: str = "pos_core API"
    app_env: str = getenv("APP_ENV", "dev")
    debug: bool = getenv("DEBUG", "0") == "1"
    log_level: str = getenv("LOG_LEVEL", "INFO")
    database_url: str = getenv("DATABASE_URL", "sqlite:///./pos_core.db")
    auto_create_schema: bool = getenv("AUTO_CREATE_SCHEMA", "1") == "1"
    seed_demo_data: bool = getenv("SEED_DEMO_DATA", "0") == "1"
    jwt_secret_key: str = getenv("JWT_SECRET_KEY", "dev-only-change-me-to-a-long-random-secret")
    jwt_algorithm: str = getenv("JWT_ALGORITHM", "HS256")
    jwt_expire_minutes: int = int(getenv("JWT_EXPIRE_MINUTES", "720"))
    order_number_prefix: str = getenv("ORDER_NUMBER_PREFIX", "KWR")
    order_number_width: int = int(getenv("ORDER_NUMBER_WIDTH", "3"))
    order_number_max_attempts: int = int(getenv("ORDER_NUMBER_MAX_ATTEMPTS", "2"))
    payment_max_attempts: int = int(getenv("PAYMENT_MAX_ATTEMPTS", "2"))
    currency_decimal_places: int = int(getenv("CURRENCY_DECIMAL_PLACES", "2"))
    business_utc_offset_hours: int = int(getenv("BUSINESS_UTC_OFFSET_HOURS", "7"))
    realtime_queue_max: int = int(getenv("REALTIME_QUEUE_MAX", "256"))
    realtime_heartbeat_seconds: float = float(getenv("REALTIME_HEARTBEAT_SECONDS", "30"))
    list_default_limit: int = int(getenv("LIST_DEFAULT_LIMIT", "20"))
    list_max_limit: int = int(getenv("LIST_MAX_LIMIT", "100"))


settings: Settings = Settings()
