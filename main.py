import logging
import os
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from typing import List, Optional

from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from database import JsonDocumentStore, get_db, create_document, get_documents, find_index
from errors import StoreError, InvalidInput, Unauthorized, Conflict, NotFound
from schemas import (
    User, Item, CartEntry, Order, Customer, Payment,
    Number, Season, Category,
    PLACEHOLDER_IMAGE_URL, MAX_PASSWORD_LENGTH, MAX_ACCOUNT_PASSWORD_LENGTH, MASKED_PASSWORD,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    store = get_db()
    store.load()
    logger.info("Data file initialized/loaded: %s", store.path)
    yield


app = FastAPI(title="Seasonal Wishlist Store API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Error handling

@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg")
    else:
        message = "Invalid request"
    return JSONResponse(status_code=InvalidInput.status_code, content=InvalidInput(message).to_dict())


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": str(exc)})


# Utility helpers

def now_iso() -> str:
    """Current UTC instant, e.g. 2024-05-01T09:30:00.123Z"""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def order_day(order) -> Optional[date]:
    try:
        stamp = datetime.fromisoformat(str(order.get("date", "")).replace("Z", "+00:00"))
    except ValueError:
        return None
    if stamp.tzinfo is not None:
        stamp = stamp.astimezone(timezone.utc)
    return stamp.date()


def cart_position(cart, index: int) -> int:
    if index < 0 or index >= len(cart):
        raise NotFound("Cart item not found")
    return index


# Auth models (plain-text password, the user id is the client's session token)
class RegisterRequest(BaseModel):
    id: str = Field(..., min_length=1)
    password: str


class LoginRequest(BaseModel):
    # Anything missing is just a credential mismatch
    id: Optional[str] = None
    password: Optional[str] = None


# Item models
class ItemIn(BaseModel):
    name: str
    price: Number
    season: Season
    category: Category
    userId: Optional[str] = None
    url: Optional[str] = None
    imageUrl: Optional[str] = None


class ItemUpdate(BaseModel):
    name: Optional[str] = None
    price: Optional[Number] = None
    season: Optional[Season] = None
    category: Optional[Category] = None
    userId: Optional[str] = None
    url: Optional[str] = None
    imageUrl: Optional[str] = None


# Cart models
class CartAddRequest(BaseModel):
    productId: str


class CartQuantityRequest(BaseModel):
    quantity: int


# Order models
class CreateOrderRequest(BaseModel):
    items: List[str]
    total: Number
    customer: Customer
    payment: Payment


class CheckoutCustomer(BaseModel):
    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)


class CheckoutPayment(BaseModel):
    bank: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1, max_length=MAX_ACCOUNT_PASSWORD_LENGTH, description="Account password, never stored")


class CheckoutRequest(BaseModel):
    customer: CheckoutCustomer
    payment: CheckoutPayment


@app.get("/")
async def root():
    return {"message": "Seasonal Wishlist Store API running"}


@app.get("/test")
def test_database(store: JsonDocumentStore = Depends(get_db)):
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "data_file": store.path,
    }
    try:
        response["collections"] = store.stats()
        response["database"] = "✅ Connected"
    except StoreError as e:
        response["database"] = f"⚠️ {str(e)[:80]}"
    return response


@app.get("/schema")
def schema():
    return {
        "user": User.model_json_schema(),
        "item": Item.model_json_schema(),
        "cart_entry": CartEntry.model_json_schema(),
        "order": Order.model_json_schema(),
    }


# Auth endpoints
@app.post("/api/auth/signup")
def signup(req: RegisterRequest, store: JsonDocumentStore = Depends(get_db)):
    if len(req.password) > MAX_PASSWORD_LENGTH:
        raise InvalidInput(f"Password must be {MAX_PASSWORD_LENGTH} characters or less")

    with store.transaction() as data:
        if find_index(data["users"], id=req.id) != -1:
            raise Conflict("ID already exists")
        data["users"].append({"id": req.id, "password": req.password})

    logger.info("Account created: %s", req.id)
    return {"success": True}


@app.post("/api/auth/login")
def login(req: LoginRequest, store: JsonDocumentStore = Depends(get_db)):
    if req.id is None or req.password is None:
        raise Unauthorized("Invalid credentials")

    data = store.load()
    if find_index(data["users"], id=req.id, password=req.password) == -1:
        raise Unauthorized("Invalid credentials")
    return {"success": True, "userId": req.id}


# Wishlist items
@app.get("/api/items")
def list_items(userId: Optional[str] = None, store: JsonDocumentStore = Depends(get_db)):
    data = store.load()
    if userId:
        return get_documents(data, "items", {"userId": userId})
    return get_documents(data, "items")


@app.post("/api/items")
def create_item(p: ItemIn, store: JsonDocumentStore = Depends(get_db)):
    doc = p.model_dump()
    doc["url"] = doc["url"] or ""
    doc["imageUrl"] = doc["imageUrl"] or PLACEHOLDER_IMAGE_URL

    with store.transaction() as data:
        item = create_document(data, "items", doc)

    logger.info("Item %s created for %s", item["id"], item["userId"])
    return item


@app.put("/api/items/{item_id}")
def update_item(item_id: str, payload: ItemUpdate, store: JsonDocumentStore = Depends(get_db)):
    updates = {k: v for k, v in payload.model_dump().items() if v is not None}

    with store.transaction() as data:
        index = find_index(data["items"], id=item_id)
        if index == -1:
            raise NotFound("Item not found")
        data["items"][index] = {**data["items"][index], **updates, "id": item_id}
        item = data["items"][index]

    return item


@app.delete("/api/items/{item_id}")
def delete_item(item_id: str, store: JsonDocumentStore = Depends(get_db)):
    with store.transaction() as data:
        index = find_index(data["items"], id=item_id)
        if index == -1:
            raise NotFound("Item not found")
        # Cart entries and orders keep their snapshots of the deleted item
        del data["items"][index]

    logger.info("Item %s deleted", item_id)
    return {"message": "Item deleted successfully"}


# Cart
@app.get("/api/cart/{user_id}")
def get_cart(user_id: str, store: JsonDocumentStore = Depends(get_db)):
    return store.load()["carts"].get(user_id, [])


@app.post("/api/cart/{user_id}")
def add_to_cart(user_id: str, payload: CartAddRequest, store: JsonDocumentStore = Depends(get_db)):
    with store.transaction() as data:
        index = find_index(data["items"], id=payload.productId)
        if index == -1:
            raise NotFound("Item not found")
        product = data["items"][index]

        cart = data["carts"].setdefault(user_id, [])
        existing = find_index(cart, productId=payload.productId)
        if existing != -1:
            cart[existing]["quantity"] += 1
        else:
            cart.append({
                "productId": payload.productId,
                "name": product.get("name"),
                "price": product.get("price"),
                "quantity": 1,
            })

    return cart


@app.put("/api/cart/{user_id}/{index}")
def update_cart_quantity(user_id: str, index: int, payload: CartQuantityRequest, store: JsonDocumentStore = Depends(get_db)):
    with store.transaction() as data:
        cart = data["carts"].get(user_id, [])
        position = cart_position(cart, index)
        if payload.quantity <= 0:
            del cart[position]
        else:
            cart[position]["quantity"] = payload.quantity

    return cart


@app.delete("/api/cart/{user_id}/{index}")
def remove_from_cart(user_id: str, index: int, store: JsonDocumentStore = Depends(get_db)):
    with store.transaction() as data:
        cart = data["carts"].get(user_id, [])
        del cart[cart_position(cart, index)]

    return cart


@app.delete("/api/cart/{user_id}")
def clear_cart(user_id: str, store: JsonDocumentStore = Depends(get_db)):
    with store.transaction() as data:
        data["carts"][user_id] = []
    return {"message": "Cart cleared"}


# Orders
@app.get("/api/orders/{user_id}")
def list_orders(user_id: str, start: Optional[date] = None, end: Optional[date] = None, store: JsonDocumentStore = Depends(get_db)):
    orders = get_documents(store.load(), "orders", {"userId": user_id})
    if start is None and end is None:
        return orders

    filtered = []
    for order in orders:
        day = order_day(order)
        if day is None:
            continue
        if start is not None and day < start:
            continue
        if end is not None and day > end:
            continue
        filtered.append(order)
    return filtered


@app.post("/api/orders/{user_id}")
def create_order(user_id: str, req: CreateOrderRequest, store: JsonDocumentStore = Depends(get_db)):
    doc = {
        "userId": user_id,
        "date": now_iso(),
        "items": req.items,
        "total": req.total,
        "customer": req.customer.model_dump(),
        "payment": req.payment.model_dump(),
    }
    with store.transaction() as data:
        order = create_document(data, "orders", doc)

    logger.info("Order %s created for %s", order["id"], user_id)
    return order


@app.post("/api/orders/{user_id}/checkout")
def checkout(user_id: str, req: CheckoutRequest, store: JsonDocumentStore = Depends(get_db)):
    # Recording the order and emptying the cart share one transaction
    with store.transaction() as data:
        cart = data["carts"].get(user_id) or []
        if not cart:
            raise InvalidInput("Your cart is empty")

        doc = {
            "userId": user_id,
            "date": now_iso(),
            "items": [f"{entry['name']} (x{entry['quantity']})" for entry in cart],
            "total": sum(entry["price"] * entry["quantity"] for entry in cart),
            "customer": req.customer.model_dump(),
            "payment": {"bank": req.payment.bank, "password": MASKED_PASSWORD},
        }
        order = create_document(data, "orders", doc)
        data["carts"][user_id] = []

    logger.info("Checkout completed for %s: order %s, total %s", user_id, order["id"], order["total"])
    return order


@app.delete("/api/orders/{user_id}/{order_id}")
def delete_order(user_id: str, order_id: str, store: JsonDocumentStore = Depends(get_db)):
    with store.transaction() as data:
        index = find_index(data["orders"], id=order_id, userId=user_id)
        if index == -1:
            raise NotFound("Order not found")
        del data["orders"][index]

    logger.info("Order %s deleted for %s", order_id, user_id)
    return {"message": "Order deleted successfully"}


if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
