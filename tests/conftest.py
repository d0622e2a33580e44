# tests/conftest.py
import pytest
from fastapi.testclient import TestClient

from fakes import FakeIdentity, FakeMediaHost
from storefront.config import Settings
from storefront.database import MemoryDatabase
from storefront.main import create_app
from storefront.services import Services

SELLER = {"Authorization": "Bearer alice-token"}
BUYER = {"Authorization": "Bearer bob-token"}


def make_client(db, media, identity, **kwargs):
    services = Services(db=db, media=media, identity=identity, **kwargs)
    return TestClient(create_app(services=services, settings=Settings()))


@pytest.fixture
def db():
    store = MemoryDatabase()
    store.create_user({"id": "user_alice", "email": "alice@example.com", "name": "Alice Seller"})
    store.create_user({"id": "user_bob", "email": "bob@example.com", "name": "Bob Buyer"})
    return store


@pytest.fixture
def identity():
    return FakeIdentity(
        tokens={"alice-token": "user_alice", "bob-token": "user_bob", "ghost-token": "user_ghost"},
        sellers={"user_alice"},
    )


@pytest.fixture
def media():
    return FakeMediaHost()


@pytest.fixture
def client(db, media, identity):
    return make_client(db, media, identity)
