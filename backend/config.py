# backend/config.py
"""
Configuration management for the Camera Vault automation backend
Loads settings from environment variables
"""

from pydantic_settings import BaseSettings
from typing import List, Optional
from pathlib import Path


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    app_env: str = "development"
    debug: bool = True

    # Storage layout
    data_dir: str = "./data"
    database_path: str = "./data/camera-vault.db"
    images_dir: str = "./public/images/cameras"
    thumbs_subdir: str = "thumbs"
    image_url_prefix: str = "/images/cameras"
    attributions_dir: str = "./data/attributions"
    backups_dir: str = "./data/backups"
    report_path: str = "./data/automation-report.json"

    # Discovery cadence
    daily_limit: int = 200
    discovery_interval_hours: float = 6.0
    request_delay_seconds: float = 1.5
    max_attempts_per_candidate: int = 3
    catalog_path: str = ""  # Optional JSON seed file; built-in list if empty
    scheduler_autostart: bool = True

    # Backups
    backup_time: str = "03:00"  # Local time, HH:MM
    backup_retain_count: int = 7

    # Image sources
    enabled_providers: str = "manufacturer,wikimedia,bhphoto,dpreview,web_search"
    provider_timeout_seconds: float = 12.0
    download_timeout_seconds: float = 15.0
    max_download_bytes: int = 15 * 1024 * 1024
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
    )

    # Image processing
    min_image_dimension: int = 100
    max_image_width: int = 1200
    thumb_width: int = 300
    jpeg_quality: int = 85
    placeholder_width: int = 1200
    placeholder_height: int = 800

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"  # Ignore extra fields in .env file

    @property
    def thumbs_dir(self) -> str:
        return str(Path(self.images_dir) / self.thumbs_subdir)

    @property
    def provider_names(self) -> List[str]:
        return [p.strip() for p in self.enabled_providers.split(",") if p.strip()]

    @property
    def catalog_file(self) -> Optional[Path]:
        return Path(self.catalog_path) if self.catalog_path else None


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get application settings"""
    return settings
