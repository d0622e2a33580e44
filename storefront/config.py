# storefront/config.py
import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv
from rich.logging import RichHandler

# Settings are read once from the environment (and a .env file, if present).


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name, default)
    if value is None:
        return None
    value = value.strip()
    return value or default


@dataclass
class Settings:
    db_backend: str = "mongo"
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db: str = "storefront"
    cloudinary_cloud_name: Optional[str] = None
    cloudinary_api_key: Optional[str] = None
    cloudinary_api_secret: Optional[str] = None
    clerk_secret_key: Optional[str] = None
    clerk_jwks_url: Optional[str] = None
    clerk_api_url: str = "https://api.clerk.com/v1"
    clerk_webhook_secret: Optional[str] = None
    http_timeout: float = 60.0
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    host: str = "0.0.0.0"
    port: int = 8085
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        origins = _env("CORS_ORIGINS", "*")
        return cls(
            db_backend=_env("STOREFRONT_DB", "mongo").lower(),
            mongo_uri=_env("MONGO_URI", "mongodb://localhost:27017"),
            mongo_db=_env("MONGO_DB", "storefront"),
            cloudinary_cloud_name=_env("CLOUDINARY_CLOUD_NAME"),
            cloudinary_api_key=_env("CLOUDINARY_API_KEY"),
            cloudinary_api_secret=_env("CLOUDINARY_API_SECRET"),
            clerk_secret_key=_env("CLERK_SECRET_KEY"),
            clerk_jwks_url=_env("CLERK_JWKS_URL"),
            clerk_api_url=_env("CLERK_API_URL", "https://api.clerk.com/v1"),
            clerk_webhook_secret=_env("CLERK_WEBHOOK_SECRET"),
            http_timeout=float(_env("HTTP_TIMEOUT", "60")),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            host=_env("HOST", "0.0.0.0"),
            port=int(_env("PORT", "8085")),
            log_level=_env("LOG_LEVEL", "INFO").upper(),
        )

    def require(self, *names: str) -> None:
        """Fail fast when a required setting is missing."""
        for name in names:
            if not getattr(self, name):
                raise RuntimeError(f"Missing required environment variable: {name.upper()}")


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )
