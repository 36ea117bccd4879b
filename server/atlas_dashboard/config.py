"""Configuration settings for the RED Atlas dashboard server."""

from pathlib import Path
from functools import lru_cache
from pydantic_settings import BaseSettings


def _find_env_file() -> str:
    """Find .env file - check current dir, then parent (repository root)."""
    current = Path.cwd()

    # Check current directory
    if (current / ".env").exists():
        return str(current / ".env")

    # Check parent directory (when running from server/)
    if (current.parent / ".env").exists():
        return str(current.parent / ".env")

    # Default to current directory
    return ".env"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Server settings
    port: int = 3456
    host: str = "0.0.0.0"
    debug: bool = False
    client_dist_dir: str = ""

    # Logging
    log_level: str = "INFO"
    log_file: str = ""

    # Cache TTLs (in seconds)
    cache_ttl_realtime: int = 60  # 1 minute
    cache_ttl_default: int = 600  # 10 minutes
    cache_ttl_stable: int = 1800  # 30 minutes
    cache_ttl_no_cache: int = 0  # always refetch, keep last value for failures
    cache_grace_factor: float = 2.0
    cache_sweep_interval: int = 300  # 5 minutes
    cache_single_flight: bool = False

    # Dates are bucketed in this IANA zone
    dashboard_timezone: str = "America/Puerto_Rico"

    # Stripe
    stripe_secret_key: str = ""
    cop_to_usd_rate: float = 4000.0
    stripe_fee_rate: float = 0.029
    external_revenue_usd: float = 3000.0
    external_subscribers: int = 15

    # Google Analytics
    ga_property_id: str = ""
    google_application_credentials: str = ""

    # Google Ads
    google_ads_client_id: str = ""
    google_ads_client_secret: str = ""
    google_ads_developer_token: str = ""
    google_ads_refresh_token: str = ""
    google_ads_customer_id: str = ""
    google_ads_login_customer_id: str = ""

    # Internal Atlas API
    atlas_api_url: str = "https://apiv2.atlas.red/api/dashboard"
    x_admin_key: str = ""
    atlas_timeout: float = 10.0

    # Access control
    dashboard_password: str = ""
    session_max_age: int = 30 * 24 * 3600
    allowed_ips: str = ""  # comma-separated
    trust_forwarded_for: bool = True

    # Slideshow timing
    screen_rotation_seconds: int = 30
    client_refresh_seconds: int = 300
    prefetch_lead_seconds: int = 15

    class Config:
        env_file = _find_env_file()
        env_file_encoding = "utf-8"
        extra = "ignore"

    @property
    def allowed_ip_list(self) -> list[str]:
        return [ip.strip() for ip in self.allowed_ips.split(",") if ip.strip()]

    def ttl_for(self, tier: str) -> int:
        """Resolve a cache tier name (realtime, default, stable, no_cache) to seconds."""
        ttl = getattr(self, f"cache_ttl_{tier}", None)
        if ttl is None:
            raise ValueError(f"Unknown cache tier: {tier}")
        return ttl

    @property
    def ads_configured(self) -> bool:
        """All Google Ads credentials are present."""
        return all((
            self.google_ads_client_id,
            self.google_ads_client_secret,
            self.google_ads_developer_token,
            self.google_ads_refresh_token,
            self.google_ads_customer_id,
        ))

    @property
    def client_dist(self) -> Path:
        """Directory holding the prebuilt slideshow client."""
        if self.client_dist_dir:
            return Path(self.client_dist_dir)
        return Path(__file__).parent.parent.parent / "client" / "dist"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
