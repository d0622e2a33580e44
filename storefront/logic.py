import asyncio
import logging
import math
from typing import List, Optional

from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool

from .core import (
    ALLOWED_IMAGE_TYPES, MAX_IMAGE_BYTES, AddToCartIn, CartUpdateIn,
    SetCartQuantityIn, _make_product_dict, _prune_cart, envelope
)
from .database import Database
from .errors import (
    AuthorizationDenied, NotFound, UpstreamFailure, ValidationFailed, reason
)
from .identity import IdentityProvider
from .media import MediaHost
from .models import Category, ImageRef

# This file contains the core logic for all API endpoints.

logger = logging.getLogger(__name__)


# Cart endpoints
def cart_update_logic(db: Database, user_id: str, payload: CartUpdateIn):
    user = db.find_user_by_id(user_id)
    if user is None:
        raise NotFound("User not found")
    user.cart_items = _prune_cart(payload.cart_data)
    db.save_user(user)
    return envelope("Cart updated successfully", user.cart_items)

def cart_add_logic(db: Database, user_id: str, payload: AddToCartIn):
    if db.find_product_by_id(payload.product_id) is None:
        raise NotFound("Product not found")
    user = db.add_cart_item(user_id, payload.product_id, payload.quantity)
    if user is None:
        raise NotFound("User not found")
    return envelope("Item added to cart", user.cart_items)

def cart_set_logic(db: Database, user_id: str, payload: SetCartQuantityIn):
    if payload.quantity > 0 and db.find_product_by_id(payload.product_id) is None:
        raise NotFound("Product not found")
    user = db.set_cart_item(user_id, payload.product_id, payload.quantity)
    if user is None:
        raise NotFound("User not found")
    return envelope("Cart updated successfully", user.cart_items)

# Product endpoints
def list_products_logic(db: Database):
    return envelope("Products fetched", [p.to_json() for p in db.list_products()])

def seller_list_logic(db: Database, identity: IdentityProvider, user_id: str):
    if not identity.is_seller(user_id):
        raise AuthorizationDenied("You are not authorized to view seller products")
    products = db.find_products_by_seller(user_id)
    return envelope("Seller products fetched", [p.to_json() for p in products])

# User endpoints
def user_data_logic(db: Database, identity: IdentityProvider, user_id: str):
    user = db.find_user_by_id(user_id)
    if user is None:
        raise NotFound("User not found")
    data = user.to_json()
    data["isSeller"] = identity.is_seller(user_id)
    return envelope("User fetched", data)

# Product creation (seller upload)
def _parse_price(raw: Optional[str], message: str) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise ValidationFailed(message)
    if not math.isfinite(value) or value < 0:
        raise ValidationFailed(message)
    return value

async def _read_images(files: List[UploadFile]):
    images = []
    for f in files:
        if f.content_type not in ALLOWED_IMAGE_TYPES:
            raise ValidationFailed("Only JPEG, PNG, and GIF images are allowed")
        if f.size is not None and f.size > MAX_IMAGE_BYTES:
            raise ValidationFailed("File size must be less than 5MB")
        content = await f.read()
        if len(content) > MAX_IMAGE_BYTES:
            raise ValidationFailed("File size must be less than 5MB")
        images.append((content, f.filename or "upload", f.content_type))
    return images

async def _discard_images(media: MediaHost, images: List[ImageRef]):
    results = await asyncio.gather(
        *(media.destroy(img.public_id) for img in images), return_exceptions=True
    )
    for img, result in zip(images, results):
        if isinstance(result, BaseException):
            logger.warning("Could not delete orphaned image %s: %s", img.public_id, result)

async def product_add_logic(db: Database, media: MediaHost, identity: IdentityProvider,
                            user_id: str, name: Optional[str], description: Optional[str],
                            price: Optional[str], category: Optional[str],
                            offer_price: Optional[str], files: List[UploadFile]):
    if not await run_in_threadpool(identity.is_seller, user_id):
        raise AuthorizationDenied("You are not authorized to add a product")

    name = (name or "").strip()
    description = (description or "").strip()
    category = (category or "").strip()
    price = (price or "").strip()
    offer_price = (offer_price or "").strip()
    if not name or not description or not price or not category:
        raise ValidationFailed("Missing required fields")
    try:
        parsed_category = Category(category)
    except ValueError:
        raise ValidationFailed("Invalid category")
    if not files:
        raise ValidationFailed("Please upload at least one image")

    parsed_price = _parse_price(price, "Invalid price value")
    parsed_offer = _parse_price(offer_price, "Invalid offer price value") if offer_price else None
    images = await _read_images(files)

    # Upload everything at once; any failure aborts the whole batch
    results = await asyncio.gather(
        *(media.upload(content, filename, ctype) for content, filename, ctype in images),
        return_exceptions=True,
    )
    uploaded = [r for r in results if isinstance(r, ImageRef)]
    failures = [r for r in results if isinstance(r, BaseException)]
    if failures:
        logger.error("Image upload failed for seller %s: %s", user_id, failures[0])
        await _discard_images(media, uploaded)
        raise UpstreamFailure(f"Failed to upload images: {reason(failures[0])}")

    data = _make_product_dict(user_id, name, description, parsed_category,
                              parsed_price, parsed_offer, uploaded)
    try:
        product = await run_in_threadpool(db.create_product, data)
    except Exception as exc:
        logger.error("Product creation failed for seller %s: %s", user_id, exc)
        await _discard_images(media, uploaded)
        raise UpstreamFailure(f"Database error: {reason(exc)}") from exc

    logger.info("Seller %s added product %s with %d image(s)", user_id, product.id, len(uploaded))
    return envelope("Product uploaded successfully", product.to_json())
