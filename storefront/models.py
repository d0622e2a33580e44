# storefront/models.py
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    # snake_case attributes, camelCase on the wire
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class Category(str, Enum):
    EARPHONE = "Earphone"
    HEADPHONE = "Headphone"
    WATCH = "Watch"
    SMARTPHONE = "Smartphone"
    LAPTOP = "Laptop"
    CAMERA = "Camera"
    ACCESSORIES = "Accessories"


class ImageRef(CamelModel):
    url: str
    public_id: str


class User(CamelModel):
    id: str
    email: str = ""
    name: str = ""
    image_url: Optional[str] = None
    cart_items: Dict[str, int] = Field(default_factory=dict)


class Product(CamelModel):
    id: str
    seller: str
    name: str
    description: str
    category: Category
    price: float = Field(..., ge=0)
    offer_price: Optional[float] = Field(None, ge=0)
    images: List[ImageRef] = Field(default_factory=list)
    date: int = Field(..., description="Creation time, epoch milliseconds")
