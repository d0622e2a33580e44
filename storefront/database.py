# storefront/database.py
import logging
import threading
import uuid
from functools import wraps
from typing import Any, Dict, List, Optional, Protocol

from bson import ObjectId
from bson.errors import InvalidId
from pydantic.alias_generators import to_camel
from pymongo import MongoClient, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from .models import Product, User

logger = logging.getLogger(__name__)


class DatabaseError(Exception):
    """The document store failed or could not be reached."""


class DuplicateUser(DatabaseError):
    pass


class Database(Protocol):
    def find_user_by_id(self, user_id: str) -> Optional[User]: ...
    def save_user(self, user: User) -> User: ...
    def create_user(self, data: Dict[str, Any]) -> User: ...
    def upsert_user(self, user_id: str, data: Dict[str, Any]) -> User: ...
    def update_user(self, user_id: str, data: Dict[str, Any]) -> Optional[User]: ...
    def delete_user(self, user_id: str) -> bool: ...
    def add_cart_item(self, user_id: str, product_id: str, quantity: int) -> Optional[User]: ...
    def set_cart_item(self, user_id: str, product_id: str, quantity: int) -> Optional[User]: ...
    def find_product_by_id(self, product_id: str) -> Optional[Product]: ...
    def find_products_by_seller(self, seller_id: str) -> List[Product]: ...
    def list_products(self) -> List[Product]: ...
    def create_product(self, data: Dict[str, Any]) -> Product: ...


# ---------------------------
# In-memory store (tests, local runs)
# ---------------------------
class MemoryDatabase:
    def __init__(self):
        self.users: Dict[str, User] = {}
        self.products: Dict[str, Product] = {}
        self._lock = threading.Lock()

    def find_user_by_id(self, user_id: str) -> Optional[User]:
        with self._lock:
            user = self.users.get(user_id)
            return user.model_copy(deep=True) if user else None

    def save_user(self, user: User) -> User:
        with self._lock:
            self.users[user.id] = user.model_copy(deep=True)
            return user

    def create_user(self, data: Dict[str, Any]) -> User:
        user = User(**data)
        with self._lock:
            if user.id in self.users:
                raise DuplicateUser(f"user {user.id} already exists")
            self.users[user.id] = user
            return user.model_copy(deep=True)

    def upsert_user(self, user_id: str, data: Dict[str, Any]) -> User:
        with self._lock:
            current = self.users.get(user_id)
            if current is None:
                current = User(id=user_id, **data)
            else:
                current = current.model_copy(update=data)
            self.users[user_id] = current
            return current.model_copy(deep=True)

    def update_user(self, user_id: str, data: Dict[str, Any]) -> Optional[User]:
        with self._lock:
            current = self.users.get(user_id)
            if current is None:
                return None
            current = current.model_copy(update=data)
            self.users[user_id] = current
            return current.model_copy(deep=True)

    def delete_user(self, user_id: str) -> bool:
        with self._lock:
            return self.users.pop(user_id, None) is not None

    def add_cart_item(self, user_id: str, product_id: str, quantity: int) -> Optional[User]:
        with self._lock:
            user = self.users.get(user_id)
            if user is None:
                return None
            user.cart_items[product_id] = user.cart_items.get(product_id, 0) + quantity
            return user.model_copy(deep=True)

    def set_cart_item(self, user_id: str, product_id: str, quantity: int) -> Optional[User]:
        with self._lock:
            user = self.users.get(user_id)
            if user is None:
                return None
            if quantity <= 0:
                user.cart_items.pop(product_id, None)
            else:
                user.cart_items[product_id] = quantity
            return user.model_copy(deep=True)

    def find_product_by_id(self, product_id: str) -> Optional[Product]:
        with self._lock:
            product = self.products.get(product_id)
            return product.model_copy(deep=True) if product else None

    def find_products_by_seller(self, seller_id: str) -> List[Product]:
        with self._lock:
            return [p.model_copy(deep=True) for p in self.products.values() if p.seller == seller_id]

    def list_products(self) -> List[Product]:
        with self._lock:
            return [p.model_copy(deep=True) for p in self.products.values()]

    def create_product(self, data: Dict[str, Any]) -> Product:
        product = Product(id=uuid.uuid4().hex, **data)
        with self._lock:
            self.products[product.id] = product
        return product.model_copy(deep=True)


# ---------------------------
# MongoDB store
# ---------------------------
def _wrap_errors(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except DuplicateKeyError as exc:
            raise DuplicateUser(str(exc)) from exc
        except PyMongoError as exc:
            logger.error("MongoDB error in %s: %s", fn.__name__, exc)
            raise DatabaseError(str(exc)) from exc
    return wrapper


def _camel(data: Dict[str, Any]) -> Dict[str, Any]:
    return {to_camel(k): v for k, v in data.items()}


def _user_from_doc(doc: Optional[dict]) -> Optional[User]:
    if doc is None:
        return None
    d = dict(doc)
    d["id"] = str(d.pop("_id"))
    return User.model_validate(d)


def _product_from_doc(doc: dict) -> Product:
    d = dict(doc)
    d["id"] = str(d.pop("_id"))
    return Product.model_validate(d)


class MongoDatabase:
    """Users and products in MongoDB. Connects on first use."""

    def __init__(self, uri: str, name: str = "storefront", timeout_ms: int = 5000):
        self.uri = uri
        self.name = name
        self.timeout_ms = timeout_ms
        self._client: Optional[MongoClient] = None
        self._lock = threading.Lock()

    def connect(self):
        with self._lock:
            if self._client is None:
                client = MongoClient(self.uri, serverSelectionTimeoutMS=self.timeout_ms)
                try:
                    client[self.name]["products"].create_index("seller")
                except PyMongoError:
                    client.close()
                    raise
                self._client = client
                logger.info("Connected to MongoDB database %s", self.name)
            return self._client[self.name]

    @property
    def users(self):
        return self.connect()["users"]

    @property
    def products(self):
        return self.connect()["products"]

    @_wrap_errors
    def find_user_by_id(self, user_id: str) -> Optional[User]:
        return _user_from_doc(self.users.find_one({"_id": user_id}))

    @_wrap_errors
    def save_user(self, user: User) -> User:
        doc = user.model_dump(by_alias=True)
        doc["_id"] = doc.pop("id")
        self.users.replace_one({"_id": user.id}, doc, upsert=True)
        return user

    @_wrap_errors
    def create_user(self, data: Dict[str, Any]) -> User:
        user = User(**data)
        doc = user.model_dump(by_alias=True)
        doc["_id"] = doc.pop("id")
        self.users.insert_one(doc)
        return user

    @_wrap_errors
    def upsert_user(self, user_id: str, data: Dict[str, Any]) -> User:
        doc = self.users.find_one_and_update(
            {"_id": user_id},
            {"$set": _camel(data), "$setOnInsert": {"cartItems": {}}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return _user_from_doc(doc)

    @_wrap_errors
    def update_user(self, user_id: str, data: Dict[str, Any]) -> Optional[User]:
        doc = self.users.find_one_and_update(
            {"_id": user_id}, {"$set": _camel(data)}, return_document=ReturnDocument.AFTER
        )
        return _user_from_doc(doc)

    @_wrap_errors
    def delete_user(self, user_id: str) -> bool:
        return self.users.delete_one({"_id": user_id}).deleted_count == 1

    @_wrap_errors
    def add_cart_item(self, user_id: str, product_id: str, quantity: int) -> Optional[User]:
        doc = self.users.find_one_and_update(
            {"_id": user_id},
            {"$inc": {f"cartItems.{product_id}": quantity}},
            return_document=ReturnDocument.AFTER,
        )
        return _user_from_doc(doc)

    @_wrap_errors
    def set_cart_item(self, user_id: str, product_id: str, quantity: int) -> Optional[User]:
        field = f"cartItems.{product_id}"
        update = {"$unset": {field: ""}} if quantity <= 0 else {"$set": {field: quantity}}
        doc = self.users.find_one_and_update(
            {"_id": user_id}, update, return_document=ReturnDocument.AFTER
        )
        return _user_from_doc(doc)

    @_wrap_errors
    def find_product_by_id(self, product_id: str) -> Optional[Product]:
        try:
            oid = ObjectId(product_id)
        except (InvalidId, TypeError):
            return None
        doc = self.products.find_one({"_id": oid})
        return _product_from_doc(doc) if doc else None

    @_wrap_errors
    def find_products_by_seller(self, seller_id: str) -> List[Product]:
        return [_product_from_doc(d) for d in self.products.find({"seller": seller_id})]

    @_wrap_errors
    def list_products(self) -> List[Product]:
        return [_product_from_doc(d) for d in self.products.find({})]

    @_wrap_errors
    def create_product(self, data: Dict[str, Any]) -> Product:
        product = Product(id="pending", **data)
        doc = product.model_dump(mode="json", by_alias=True, exclude={"id"})
        result = self.products.insert_one(doc)
        return product.model_copy(update={"id": str(result.inserted_id)})
