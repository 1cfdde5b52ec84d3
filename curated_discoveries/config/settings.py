from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: Optional[str] = None  # Required for admin operations like deleting auth users

    # App
    app_name: str = "curated-discoveries"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000,http://127.0.0.1:5173"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"

    # Public origin of the web app, used to build share links
    site_url: str = "http://localhost:5173"

    # Uploads
    max_upload_bytes: int = 5 * 1024 * 1024

    # Orphaned identity reconciliation
    reconcile_enabled: bool = False
    reconcile_interval_seconds: int = 900
    orphan_grace_minutes: int = 30

    # Parallel count queries for profile stats
    stats_max_workers: int = 4

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


settings = Settings()
