import logging
import os
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

import database
from cart_service import CartService
from order_service import OrderService
from product_service import ProductService
from record_store import get_record_client
from schemas import CartItemIn, OrderFilters, OrderIn, PaymentIn, ProductFilters, QuantityIn, SortBy, StatusIn, WishlistIn
from wishlist_service import WishlistService, WishlistError

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Storefront Records API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

cart = CartService()
orders = OrderService()
products = ProductService()
wishlist = WishlistService()


# ---------- Utils ----------
def respond(result: Dict[str, Any]) -> Dict[str, Any]:
    """Pass the envelope through, turning "not found" envelopes into 404s."""
    error = result.get("error") or ""
    if not result.get("success") and error.lower().endswith("not found"):
        raise HTTPException(404, error)
    return result


# ---------- Basic ----------
@app.get("/")
def root():
    return {"message": "Storefront Records API"}

@app.get("/test")
def test_database():
    client = get_record_client()
    response = {
        "backend": "✅ Running",
        "record_store": "❌ Not Available" if client is None else "✅ Connected",
        "database_url": "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set",
        "database_name": "✅ Set" if os.getenv("DATABASE_NAME") else "❌ Not Set",
        "collections": [],
    }
    if database.db is not None:
        try:
            response["collections"] = database.db.list_collection_names()
        except Exception as e:
            response["record_store"] = f"⚠️ Error {str(e)[:80]}"
    return response

# ---------- Cart ----------
@app.get("/api/cart")
def get_cart():
    return respond(cart.list())

@app.post("/api/cart")
def add_to_cart(item: CartItemIn):
    return respond(cart.add(item))

@app.get("/api/cart/total")
def cart_total():
    return respond(cart.total())

@app.get("/api/cart/count")
def cart_count():
    return respond(cart.item_count())

@app.patch("/api/cart/{item_id}")
def update_cart_quantity(item_id: int, payload: QuantityIn):
    return respond(cart.set_quantity(item_id, payload.quantity))

@app.delete("/api/cart/{item_id}")
def remove_from_cart(item_id: int):
    return respond(cart.remove(item_id))

@app.delete("/api/cart")
def clear_cart():
    return respond(cart.clear())

# ---------- Orders ----------
@app.post("/api/orders")
def create_order(order: OrderIn):
    return respond(orders.create(order))

@app.get("/api/orders")
def list_orders(status: Optional[str] = None, search: Optional[str] = None):
    return respond(orders.list_for_user(OrderFilters(status=status, search=search)))

@app.get("/api/orders/{order_id}")
def get_order(order_id: int):
    return respond(orders.get_by_id(order_id))

@app.get("/api/orders/{order_id}/tracking")
def get_order_tracking(order_id: int):
    return respond(orders.get_tracking(order_id))

@app.patch("/api/orders/{order_id}/status")
def update_order_status(order_id: int, payload: StatusIn):
    return respond(orders.update_status(order_id, payload.status))

@app.post("/api/payments")
def process_payment(payment: PaymentIn):
    return orders.process_payment(payment)

# ---------- Products ----------
@app.get("/api/products")
def list_products(
    category: Optional[str] = None,
    search: Optional[str] = None,
    sort_by: Optional[SortBy] = None,
    sizes: Optional[List[str]] = Query(None),
    colors: Optional[List[str]] = Query(None),
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
):
    filters = ProductFilters(
        category=category,
        search=search,
        sort_by=sort_by,
        sizes=sizes or [],
        colors=colors or [],
        min_price=min_price,
        max_price=max_price,
    )
    return respond(products.list(filters))

@app.get("/api/products/featured")
def featured_products():
    return respond(products.get_featured())

@app.get("/api/products/categories")
def product_categories():
    return respond(products.get_categories())

@app.get("/api/products/{product_id}")
def get_product(product_id: int):
    return respond(products.get_by_id(product_id))

@app.get("/api/products/{product_id}/related")
def related_products(product_id: int, limit: int = Query(4, ge=1, le=50)):
    return respond(products.get_related(product_id, limit))

# ---------- Wishlist ----------
@app.get("/api/wishlist")
def get_wishlist():
    return {"product_ids": wishlist.list()}

@app.post("/api/wishlist")
def add_wishlist(item: WishlistIn):
    try:
        added = wishlist.add(item.product_id)
    except WishlistError as e:
        raise HTTPException(500, str(e))
    return {"status": "added" if added else "exists", "added": added}

@app.get("/api/wishlist/count")
def wishlist_count():
    return {"count": wishlist.count()}

@app.get("/api/wishlist/{product_id}")
def in_wishlist(product_id: int):
    return {"product_id": product_id, "in_wishlist": wishlist.is_in_wishlist(product_id)}

@app.delete("/api/wishlist/{product_id}")
def remove_wishlist(product_id: int):
    try:
        wishlist.remove(product_id)
    except WishlistError as e:
        raise HTTPException(500, str(e))
    return {"status": "removed"}

@app.delete("/api/wishlist")
def clear_wishlist():
    return {"cleared": wishlist.clear()}


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
