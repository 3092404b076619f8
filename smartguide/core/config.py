"""Application configuration."""

from pydantic_settings import BaseSettings, SettingsConfigDict

from smartguide.core import sync_policies


class Settings(BaseSettings):
    """Client and relay settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_prefix="SMARTGUIDE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    app_name: str = "smartguide-relay"
    debug: bool = False

    # Relay endpoints
    relay_url: str = "ws://localhost:8000"
    http_base_url: str = "http://localhost:8000"
    client_id: str = "tracker-1"
    http_timeout_seconds: float = 10.0

    # Session transport
    reconnect_backoff_seconds: float = sync_policies.RECONNECT_BACKOFF_SECONDS
    send_retry_attempts: int = sync_policies.SEND_RETRY_ATTEMPTS
    send_retry_delay_seconds: float = sync_policies.SEND_RETRY_DELAY_SECONDS

    # Tracker
    sample_interval_seconds: float = sync_policies.SAMPLE_INTERVAL_SECONDS

    # Reverse geocoding (OpenStreetMap Nominatim)
    geocode_min_interval_seconds: float = sync_policies.GEOCODE_MIN_INTERVAL_SECONDS
    geocode_min_distance_meters: float = sync_policies.GEOCODE_MIN_DISTANCE_METERS
    geocoder_url: str = "https://nominatim.openstreetmap.org/reverse"
    geocoder_user_agent: str = "smartguide-sync/0.1"
    geocoder_language: str = "zh-TW"


settings = Settings()
