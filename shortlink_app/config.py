from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


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
    
    # Application
    app_name: str = "Shortlink Live"
    app_version: str = "1.0.0"
    api_prefix: str = "/api"
    
    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    cors_origins: List[str] = ["http://localhost:3000"]
    
    # Logging
    log_level: str = "INFO"
    log_json: bool = False
    
    # Database
    database_url: str = "sqlite:///./shortlink.db"
    db_pool_size: int = 20
    db_pool_timeout: float = 2.0  # Seconds to wait for a pooled connection
    db_pool_recycle: int = 30  # Seconds before an idle connection is recycled
    
    # Auth
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7  # 7 days
    refresh_token_expire_minutes: int = 60 * 24 * 30  # 30 days
    bcrypt_rounds: int = 10
    
    # Shortening
    base_url: str = "http://127.0.0.1:8000"
    short_code_length: int = 6
    max_retries: int = 5
    
    # Analytics
    top_referrers_limit: int = 10
    recent_visits_limit: int = 10
    
    # Cache settings
    cache_backend: str = "redis"  # Options: "redis", "memory", "null"
    redis_url: str = "redis://localhost:6379/0"
    cache_ttl: int = 3600  # Cache TTL in seconds (1 hour)
    
    # Live updates
    live_path: str = "/ws"
    ws_require_token: bool = False
    
    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Create settings instance
settings = Settings()
