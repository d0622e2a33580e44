# storefront/services.py
from dataclasses import dataclass, field
from typing import Optional

from .config import Settings
from .database import Database, MemoryDatabase, MongoDatabase
from .identity import ClerkIdentity, IdentityProvider, webhook_key
from .media import CloudinaryMediaHost, MediaHost
from .sync import SyncMonitor


@dataclass
class Services:
    """Collaborators shared by the request handlers of one app."""
    db: Database
    media: MediaHost
    identity: IdentityProvider
    monitor: SyncMonitor = field(default_factory=SyncMonitor)
    webhook_secret: Optional[str] = None


def build_services(settings: Settings) -> Services:
    settings.require(
        "cloudinary_cloud_name", "cloudinary_api_key", "cloudinary_api_secret",
        "clerk_secret_key", "clerk_jwks_url",
    )
    if settings.clerk_webhook_secret:
        try:
            webhook_key(settings.clerk_webhook_secret)
        except ValueError as exc:
            raise RuntimeError(f"Invalid CLERK_WEBHOOK_SECRET: {exc}") from exc
    if settings.db_backend == "memory":
        db = MemoryDatabase()
    else:
        db = MongoDatabase(settings.mongo_uri, settings.mongo_db)
    media = CloudinaryMediaHost(
        settings.cloudinary_cloud_name, settings.cloudinary_api_key,
        settings.cloudinary_api_secret, timeout=settings.http_timeout,
    )
    identity = ClerkIdentity(
        settings.clerk_secret_key, settings.clerk_jwks_url,
        api_url=settings.clerk_api_url, timeout=settings.http_timeout,
    )
    return Services(db=db, media=media, identity=identity,
                    webhook_secret=settings.clerk_webhook_secret)
