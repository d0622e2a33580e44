# sdk/state.py
import logging
from decimal import ROUND_DOWN, Decimal
from typing import Any, Dict, List, Optional

from .client import StoreClient

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


class StoreState:
    """
    Local mirror of the catalog and the signed-in user's cart.

    Cart mutations are applied locally first, then sent to the server as
    single-item deltas; the merged cart the server returns replaces the
    local copy. Without a token the cart stays local.
    """

    def __init__(self, client: StoreClient):
        self.client = client
        self.products: List[Dict[str, Any]] = []
        self.user: Optional[Dict[str, Any]] = None
        self.is_seller = False
        self.cart_items: Dict[str, int] = {}

    @property
    def signed_in(self) -> bool:
        return bool(self.client.token)

    def fetch_products(self) -> List[Dict[str, Any]]:
        self.products = self.client.list_products() or []
        return self.products

    def fetch_user(self) -> Optional[Dict[str, Any]]:
        if not self.signed_in:
            return None
        self.user = self.client.user_data() or {}
        self.is_seller = bool(self.user.get("isSeller"))
        self.cart_items = dict(self.user.get("cartItems") or {})
        return self.user

    def product(self, product_id: str) -> Optional[Dict[str, Any]]:
        for p in self.products:
            if p.get("id") == product_id:
                return p
        return None

    def _sync(self, previous: Dict[str, int], call, *args) -> Dict[str, int]:
        if not self.signed_in:
            return self.cart_items
        try:
            merged = call(*args)
        except Exception as exc:
            logger.warning("Cart sync failed, restoring previous cart: %s", exc)
            self.cart_items = previous
            raise
        self.cart_items = dict(merged or {})
        return self.cart_items

    def add_to_cart(self, product_id: str) -> Dict[str, int]:
        previous = dict(self.cart_items)
        self.cart_items[product_id] = self.cart_items.get(product_id, 0) + 1
        return self._sync(previous, self.client.add_to_cart, product_id, 1)

    def update_cart_quantity(self, product_id: str, quantity: int) -> Dict[str, int]:
        if quantity < 0:
            raise ValueError("quantity must be >= 0")
        previous = dict(self.cart_items)
        if quantity == 0:
            self.cart_items.pop(product_id, None)
        else:
            self.cart_items[product_id] = quantity
        return self._sync(previous, self.client.set_cart_quantity, product_id, quantity)

    def cart_count(self) -> int:
        return sum(self.cart_items.values())

    def cart_amount(self) -> Decimal:
        """Cart total at offer price (base price when no offer), floored to cents."""
        total = Decimal("0")
        for product_id, qty in self.cart_items.items():
            item = self.product(product_id)
            if item is None or qty <= 0:
                continue
            unit = item.get("offerPrice")
            if unit is None:
                unit = item.get("price", 0)
            total += Decimal(str(unit)) * qty
        return total.quantize(CENT, rounding=ROUND_DOWN)
