# tests/test_services.py
import pytest

from storefront.config import Settings
from storefront.database import MemoryDatabase
from storefront.services import build_services


def settings(**overrides):
    values = dict(
        db_backend="memory",
        cloudinary_cloud_name="demo", cloudinary_api_key="key", cloudinary_api_secret="secret",
        clerk_secret_key="sk_test", clerk_jwks_url="https://clerk.test/.well-known/jwks.json",
    )
    values.update(overrides)
    return Settings(**values)


def test_build_services_with_memory_backend():
    services = build_services(settings(clerk_webhook_secret="whsec_c2VjcmV0"))
    assert isinstance(services.db, MemoryDatabase)
    assert services.webhook_secret == "whsec_c2VjcmV0"


def test_missing_setting_fails_fast():
    with pytest.raises(RuntimeError, match="CLERK_SECRET_KEY"):
        build_services(settings(clerk_secret_key=None))


def test_malformed_webhook_secret_fails_at_startup():
    with pytest.raises(RuntimeError, match="Invalid CLERK_WEBHOOK_SECRET"):
        build_services(settings(clerk_webhook_secret="whsec_not base64!"))
