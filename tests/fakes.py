# tests/fakes.py
import asyncio

from storefront.database import DatabaseError, MemoryDatabase
from storefront.errors import AuthenticationRequired
from storefront.media import MediaError
from storefront.models import ImageRef


class FakeIdentity:
    def __init__(self, tokens=None, sellers=()):
        self.tokens = dict(tokens or {})
        self.sellers = set(sellers)

    def verify_token(self, token):
        if token not in self.tokens:
            raise AuthenticationRequired("Invalid session token")
        return self.tokens[token]

    def is_seller(self, user_id):
        return user_id in self.sellers


class FakeMediaHost:
    """Records calls; earlier uploads take longer so completion order is reversed."""

    def __init__(self, fail_on=(), fail_destroy=False):
        self.fail_on = set(fail_on)
        self.fail_destroy = fail_destroy
        self.upload_calls = []
        self.destroyed = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def upload(self, content, filename, content_type):
        self.upload_calls.append(filename)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0.05 / len(self.upload_calls))
            if filename in self.fail_on:
                raise MediaError(f"upload rejected: {filename}")
            return ImageRef(url=f"https://media.test/{filename}", public_id=f"pid-{filename}")
        finally:
            self.in_flight -= 1

    async def destroy(self, public_id):
        self.destroyed.append(public_id)
        if self.fail_destroy:
            raise MediaError("destroy failed")


class CountingDatabase:
    """Wraps a database and records every method called on it."""

    def __init__(self, inner):
        self.inner = inner
        self.calls = []

    def __getattr__(self, name):
        attr = getattr(self.inner, name)
        if not callable(attr):
            return attr

        def wrapper(*args, **kwargs):
            self.calls.append(name)
            return attr(*args, **kwargs)
        return wrapper


class FailingDatabase(MemoryDatabase):
    def __init__(self, fail=("create_product",)):
        super().__init__()
        self.fail = set(fail)

    def create_product(self, data):
        if "create_product" in self.fail:
            raise DatabaseError("disk full")
        return super().create_product(data)

    def list_products(self):
        if "list_products" in self.fail:
            raise DatabaseError("connection refused")
        return super().list_products()

    def upsert_user(self, user_id, data):
        if "upsert_user" in self.fail:
            raise DatabaseError("connection refused")
        return super().upsert_user(user_id, data)


def product_data(seller="user_alice", name="Earbuds", price=49.99, offer_price=None,
                 category="Earphone"):
    return {
        "seller": seller,
        "name": name,
        "description": f"{name} description",
        "category": category,
        "price": price,
        "offer_price": offer_price,
        "images": [{"url": "https://media.test/a.png", "public_id": "pid-a"}],
        "date": 1700000000000,
    }
