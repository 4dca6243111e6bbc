"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache


class Settings(BaseSettings):
    """
    Application settings.

    All values loaded from .env file or environment variables.
    Validation happens automatically on startup.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),  # Check current dir, then parent
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # Ignore extra env vars
    )

    # ===================
    # SUPABASE
    # ===================
    supabase_url: str = Field(
        ...,
        description="Supabase project URL"
    )
    supabase_key: str = Field(
        ...,
        description="Supabase anon/public key"
    )

    # ===================
    # SKU DETECTION
    # ===================
    sku_fuzzy_threshold: float = Field(
        default=0.7,
        ge=0,
        le=1,
        description="Similarity a fuzzy candidate must exceed"
    )
    sku_detection_enabled: bool = Field(
        default=True,
        description="Run SKU detection when auto-mapping ingested items"
    )
    sku_auto_map_confidence: int = Field(
        default=85,
        ge=0,
        le=100,
        description="Minimum confidence for auto-map to replace a SKU"
    )

    # ===================
    # MAPPING LISTS & IMPORT
    # ===================
    mapping_page_size: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Default page size for mapping lists"
    )
    mapping_max_page_size: int = Field(
        default=100,
        ge=1,
        le=1000,
        description="Largest page size a client may request"
    )
    import_max_file_mb: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Maximum size of an uploaded mapping file in MB"
    )

    # ===================
    # APP SETTINGS
    # ===================
    environment: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="Application environment"
    )
    debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API host"
    )
    api_port: int = Field(
        default=8000,
        ge=1000,
        le=65535,
        description="API port"
    )

    # ===================
    # COMPUTED PROPERTIES
    # ===================
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def import_max_bytes(self) -> int:
        """Upload limit in bytes."""
        return self.import_max_file_mb * 1024 * 1024


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload.

    Returns:
        Settings: Application settings

    Raises:
        ValidationError: If required env vars are missing or invalid
    """
    return Settings()


# For convenient imports: from config.settings import settings
settings = get_settings()
