"""
Database Schemas for the Seasonal Wishlist Store

Each Pydantic model describes a record in one collection of the JSON
document (users, items, carts, orders).
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Literal, Union

Number = Union[int, float]

Season = Literal["Spring", "Summer", "Fall", "Winter"]
Category = Literal["Outer", "Top", "Bottom", "Dress", "Shoes", "Accessories"]

PLACEHOLDER_IMAGE_URL = "https://via.placeholder.com/400"
MAX_PASSWORD_LENGTH = 16
MAX_ACCOUNT_PASSWORD_LENGTH = 6
MASKED_PASSWORD = "***"


# Persisted records

class User(BaseModel):
    id: str = Field(..., min_length=1, description="Login id, unique")
    password: str = Field(..., max_length=MAX_PASSWORD_LENGTH, description="Plain text password")


class Item(BaseModel):
    id: str = Field(..., description="Millisecond timestamp at creation")
    name: str
    price: Number
    season: Season
    category: Category
    userId: Optional[str] = Field(None, description="Owner id")
    url: str = Field("", description="Product page link")
    imageUrl: str = Field(PLACEHOLDER_IMAGE_URL, description="Image URL")


class CartEntry(BaseModel):
    productId: str
    name: str
    price: Number
    quantity: int = Field(..., ge=1)


class Customer(BaseModel):
    name: str
    phone: str
    address: str


class Payment(BaseModel):
    bank: str
    password: str = Field(..., description="Masked by the caller before it reaches the server")


class Order(BaseModel):
    id: str
    userId: str
    date: str = Field(..., description="ISO-8601 UTC creation instant")
    items: List[str] = Field(..., description='Display strings, "name (xQty)"')
    total: Number
    customer: Customer
    payment: Payment
