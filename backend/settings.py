import os
from pathlib import Path

# Basic settings helper to read environment configuration.

BASE_DIR = Path(__file__).resolve().parent
DATA_DIR = BASE_DIR / "data"


def _as_bool(val: str | None, default: bool = False) -> bool:
    if val is None:
        return default
    return val.lower() in ("1", "true", "yes", "on")


def _as_int(val: str | None, default: int) -> int:
    if val is None or not val.strip():
        return default
    return int(val)


class Settings:
    def __init__(self) -> None:
        self.PLACES_ENV: str = os.getenv("PLACES_ENV", "production").lower()
        # Bumping the version orphans every cache entry written under the old one.
        self.PLACES_CACHE_VERSION: str = os.getenv("PLACES_CACHE_VERSION", "v1.0.2")
        self.PLACES_DEFAULT_PROVIDER: str = os.getenv("PLACES_DEFAULT_PROVIDER", "google")
        self.PLACES_DEFAULT_TYPE: str = os.getenv("PLACES_DEFAULT_TYPE", "restaurant")

        self.PLACES_MIN_RADIUS_M: int = _as_int(os.getenv("PLACES_MIN_RADIUS_M"), 100)
        self.PLACES_DEFAULT_RADIUS_M: int = _as_int(os.getenv("PLACES_DEFAULT_RADIUS_M"), 500)
        self.PLACES_MAX_RADIUS_M: int = _as_int(os.getenv("PLACES_MAX_RADIUS_M"), 50000)

        self.PLACES_KV_PATH: str = os.getenv(
            "PLACES_KV_PATH", str(DATA_DIR / "places_kv.sqlite")
        )
        self.PLACES_PROVIDER_TIMEOUT: float = float(os.getenv("PLACES_PROVIDER_TIMEOUT", "10"))
        self.PLACES_SINGLE_FLIGHT: bool = _as_bool(os.getenv("PLACES_SINGLE_FLIGHT"), True)

        # Optional TTL overrides (seconds); unset means the per-environment defaults apply.
        ttl_nearby = os.getenv("PLACES_TTL_NEARBY")
        ttl_details = os.getenv("PLACES_TTL_DETAILS")
        self.PLACES_TTL_NEARBY: int | None = int(ttl_nearby) if ttl_nearby else None
        self.PLACES_TTL_DETAILS: int | None = int(ttl_details) if ttl_details else None

        self.SECURE_API_KEY_PLACES: str | None = os.getenv("SECURE_API_KEY_PLACES")
        self.GOOGLE_PLACES_API_KEY: str | None = os.getenv("GOOGLE_PLACES_API_KEY")
        self.RADAR_API_KEY: str | None = os.getenv("RADAR_API_KEY")

    @property
    def is_development(self) -> bool:
        return self.PLACES_ENV in ("development", "dev", "local")


settings = Settings()
