"""Runtime configuration for Ancient Sites."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven runtime settings."""

    model_config = SettingsConfigDict(env_prefix="ANCIENT_SITES_", env_file=".env", extra="ignore")

    app_name: str = "ancient-sites"
    log_level: str = "INFO"
    watched_worlds: list[str] = Field(
        default_factory=lambda: ["the_end"],
        description="Worlds whose region loads are scanned for ancient structures.",
    )
    spawn_chance: float = Field(default=0.25, ge=0.0, le=1.0)
    entry_cooldown_seconds: float = Field(default=30.0, ge=0.0)
    entry_radius: float = Field(default=15.0, gt=0.0)
    detection_radius: int = Field(default=40, ge=1)
    scan_min_y: int = 30
    scan_max_y: int = 100
    scan_stride: int = Field(default=2, ge=1)
    spawn_exclusion_radius: float = Field(
        default=1000.0,
        ge=0.0,
        description="Cells whose center lies closer than this to the world origin are never scanned.",
    )
    guardian_trigger_radius: float = Field(default=25.0, gt=0.0)
    guardian_search_radius: float = Field(default=30.0, gt=0.0)
    guardian_count_radius: float = Field(default=35.0, gt=0.0)
    guardian_initial_delay_ticks: int = Field(default=400, ge=0)
    guardian_check_interval_ticks: int = Field(default=1200, ge=1)
    ambience_interval_ticks: int = Field(default=60, ge=1)
    ambience_radius: float = Field(default=40.0, gt=0.0)
    cleanup_interval_ticks: int = Field(default=6000, ge=1)
    evict_unloaded_cells: bool = False
    bonus_drop_chance: float = Field(default=0.12, ge=0.0, le=1.0)
    worker_count: int = Field(default=2, ge=1)
    tick_seconds: float = Field(default=0.05, gt=0.0)
    teleport_delay_ticks: int = Field(default=20, ge=0)


settings = Settings()
