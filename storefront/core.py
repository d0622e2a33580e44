# storefront/core.py
import time
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, Field, StrictInt, StringConstraints

from .models import CamelModel, Category, ImageRef

ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/png", "image/gif")
MAX_IMAGE_BYTES = 5 * 1024 * 1024  # 5MB

# Cart keys become document field paths, so no "$" or "."
ProductId = Annotated[str, StringConstraints(min_length=1, pattern=r"^[^$.]+$")]
Quantity = Annotated[StrictInt, Field(ge=0)]

# ---------------------------
# Request schemas
# ---------------------------
class CartUpdateIn(CamelModel):
    cart_data: Dict[ProductId, Quantity]

class AddToCartIn(CamelModel):
    product_id: ProductId
    quantity: Annotated[StrictInt, Field(gt=0)] = 1

class SetCartQuantityIn(CamelModel):
    product_id: ProductId
    quantity: Quantity

class EmailAddress(BaseModel):
    email_address: str = ""

class UserEventData(BaseModel):
    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email_addresses: List[EmailAddress] = Field(default_factory=list)
    image_url: Optional[str] = None

class IdentityEvent(BaseModel):
    type: str
    data: UserEventData

# ---------------------------
# Helpers
# ---------------------------
def envelope(message: str, data: Any = None, success: bool = True) -> Dict[str, Any]:
    body = {"success": success, "message": message}
    if data is not None:
        body["data"] = data
    return body

def _prune_cart(cart: Dict[str, int]) -> Dict[str, int]:
    return {pid: qty for pid, qty in cart.items() if qty > 0}

def _make_product_dict(seller: str, name: str, description: str, category: Category,
                       price: float, offer_price: Optional[float],
                       images: List[ImageRef]) -> Dict[str, Any]:
    return {
        "seller": seller,
        "name": name,
        "description": description,
        "category": category.value,
        "price": price,
        "offer_price": offer_price,
        "images": [img.model_dump() for img in images],
        "date": int(time.time() * 1000),
    }

def _profile_from_event(data: UserEventData) -> Dict[str, Any]:
    parts = [p for p in (data.first_name, data.last_name) if p]
    return {
        "email": data.email_addresses[0].email_address if data.email_addresses else "",
        "name": " ".join(parts),
        "image_url": data.image_url,
    }
