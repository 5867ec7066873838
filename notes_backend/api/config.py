import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv


def _split(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


# PUBLIC_INTERFACE
@dataclass
class Settings:
    """Runtime configuration, read from the environment (and a local .env file)."""
    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:5173"])
    host: str = "0.0.0.0"
    port: int = 5000
    log_level: str = "INFO"

    # Token verification: a static key (PEM public key or shared secret) or a JWKS endpoint.
    identity_jwt_key: Optional[str] = None
    identity_jwks_url: Optional[str] = None
    identity_algorithms: List[str] = field(default_factory=lambda: ["RS256"])
    identity_issuer: Optional[str] = None
    identity_audience: Optional[str] = None

    # User-lookup API, used to enrich profiles when a secret key is configured.
    identity_secret_key: Optional[str] = None
    identity_api_url: str = "https://api.clerk.com/v1"
    identity_timeout: float = 5.0
    # Minimum seconds between JWKS downloads; unknown key ids fail fast in between.
    identity_jwks_refresh_interval: float = 60.0

    @classmethod
    def from_env(cls):
        load_dotenv()
        defaults = cls()
        return cls(
            cors_origins=_split(os.getenv("CORS_ORIGINS")) or defaults.cors_origins,
            host=os.getenv("HOST", defaults.host),
            port=int(os.getenv("PORT", defaults.port)),
            log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
            identity_jwt_key=os.getenv("IDENTITY_JWT_KEY") or None,
            identity_jwks_url=os.getenv("IDENTITY_JWKS_URL") or None,
            identity_algorithms=_split(os.getenv("IDENTITY_ALGORITHMS")) or defaults.identity_algorithms,
            identity_issuer=os.getenv("IDENTITY_ISSUER") or None,
            identity_audience=os.getenv("IDENTITY_AUDIENCE") or None,
            identity_secret_key=os.getenv("IDENTITY_SECRET_KEY") or None,
            identity_api_url=os.getenv("IDENTITY_API_URL", defaults.identity_api_url).rstrip("/"),
            identity_timeout=float(os.getenv("IDENTITY_TIMEOUT", defaults.identity_timeout)),
            identity_jwks_refresh_interval=float(
                os.getenv("IDENTITY_JWKS_REFRESH_INTERVAL", defaults.identity_jwks_refresh_interval)
            ),
        )


# PUBLIC_INTERFACE
@lru_cache()
def get_settings() -> Settings:
    return Settings.from_env()


def configure_logging(level: str):
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
