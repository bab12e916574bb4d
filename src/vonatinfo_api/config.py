"""Application configuration via environment variables."""

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Vonatinfo API"
    app_version: str = "0.1.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: str = "INFO"
    # "console" or "json"; unset picks console in development, json elsewhere
    log_format: Literal["console", "json"] | None = None

    # All schedule arithmetic happens in seconds since midnight of this zone
    timezone: str = "Europe/Budapest"

    # MÁV OTP2 GraphQL (fast source)
    mav_graphql_url: str = Field(
        default="https://mavplusz.hu//otp2-backend/otp/routers/default/index/graphql",
        validation_alias=AliasChoices("MAV_GRAPHQL_URL", "MAV_URL"),
    )
    mav_bbox_sw_lat: float = 45.7457
    mav_bbox_sw_lon: float = 16.2103
    mav_bbox_ne_lat: float = 48.5637
    mav_bbox_ne_lon: float = 22.9067
    mav_poll_interval_sec: int = 15

    # MÁV timetable lookup used to enrich ÖBB vehicles
    mav_timetable_url: str = Field(
        default="https://jegy-a.mav.hu/IK_API_PROD/api/InformationApi/GetTimetable",
        validation_alias=AliasChoices("MAV_TIMETABLE_URL"),
    )

    # ÖBB HAFAS gate (slow, authoritative source)
    oebb_gate_url: str = Field(
        default="https://fahrplan.oebb.at/gate",
        validation_alias=AliasChoices("OEBB_GATE_URL", "OEBB_URL"),
    )
    oebb_aid: str = "5vHavmuWPWIfetEe"
    oebb_rect_ll_x: int = 17104947
    oebb_rect_ll_y: int = 47407892
    oebb_rect_ur_x: int = 19135605
    oebb_rect_ur_y: int = 47948232
    oebb_category_filter: str = "railjet"
    oebb_poll_interval_sec: int = 60

    # Fetching
    feed_fetch_timeout_sec: float = 10.0
    feed_max_retries: int = Field(default=1, ge=1, le=5)
    feed_backoff_base: float = 2.0
    feed_cycle_timeout_sec: float = 45.0
    feeds_auto_start: bool = False

    # Roster policy
    stale_cutoff_sec: int = 600
    arrival_grace_sec: int = 60

    # Persisted mirror of the published roster
    mirror_dir: str = Field(
        default="public",
        validation_alias=AliasChoices("MIRROR_DIR", "PUBLIC_DIR"),
    )
    mirror_enabled: bool = True

    @property
    def mav_bbox(self) -> tuple[float, float, float, float]:
        """Return (sw_lat, sw_lon, ne_lat, ne_lon) for the MÁV query."""
        return (
            self.mav_bbox_sw_lat,
            self.mav_bbox_sw_lon,
            self.mav_bbox_ne_lat,
            self.mav_bbox_ne_lon,
        )

    @property
    def oebb_rect(self) -> tuple[int, int, int, int]:
        """Return (ll_x, ll_y, ur_x, ur_y) in HAFAS micro-degrees."""
        return (
            self.oebb_rect_ll_x,
            self.oebb_rect_ll_y,
            self.oebb_rect_ur_x,
            self.oebb_rect_ur_y,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
