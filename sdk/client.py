# sdk/client.py
from typing import Any, Dict, List, Optional, Tuple

import requests


class StoreClientError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class StoreClient:
    """
    REST client for the storefront API. Every call unwraps the
    {"success", "message", "data"} envelope and raises StoreClientError
    when success is false.
    """

    def __init__(self, base_url: str = "http://localhost:8085", token: Optional[str] = None,
                 timeout: int = 10, session=None):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self.token = token

    def _headers(self) -> Dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    def _unwrap(self, r) -> Any:
        try:
            body = r.json()
        except ValueError:
            raise StoreClientError(f"HTTP {r.status_code}: {r.text}", r.status_code)
        if not isinstance(body, dict) or not body.get("success"):
            message = body.get("message") if isinstance(body, dict) else None
            raise StoreClientError(message or f"HTTP {r.status_code}", r.status_code)
        return body.get("data")

    def _get(self, path: str):
        r = self.session.get(f"{self.base_url}{path}", headers=self._headers(), timeout=self.timeout)
        return self._unwrap(r)

    def _post(self, path: str, **kwargs):
        r = self.session.post(f"{self.base_url}{path}", headers=self._headers(),
                              timeout=self.timeout, **kwargs)
        return self._unwrap(r)

    # Catalog
    def list_products(self) -> List[Dict[str, Any]]:
        return self._get("/product/list")

    # User
    def user_data(self) -> Dict[str, Any]:
        return self._get("/user/data")

    # Cart
    def update_cart(self, cart_data: Dict[str, int]) -> Dict[str, int]:
        return self._post("/cart/update", json={"cartData": cart_data})

    def add_to_cart(self, product_id: str, quantity: int = 1) -> Dict[str, int]:
        return self._post("/cart/add", json={"productId": product_id, "quantity": quantity})

    def set_cart_quantity(self, product_id: str, quantity: int) -> Dict[str, int]:
        return self._post("/cart/set", json={"productId": product_id, "quantity": int(quantity)})

    # Seller
    def seller_products(self) -> List[Dict[str, Any]]:
        return self._get("/product/seller-list")

    def add_product(self, name: str, description: str, price: float, category: str,
                    images: List[Tuple[str, bytes, str]], offer_price: Optional[float] = None):
        """images: (filename, content, content_type) tuples, uploaded in order."""
        form = {
            "name": name,
            "description": description,
            "price": str(price),
            "category": category,
            "offerPrice": "" if offer_price is None else str(offer_price),
        }
        files = [("images", image) for image in images]
        return self._post("/product/add", data=form, files=files)
